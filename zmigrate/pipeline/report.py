"""
Migration summary report (pydantic), written by the CLI as JSON.

Counts are keyed by diagnostic kind / reason and discrepancy kind so a
report from one run can be diffed against the next.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from zmigrate.assignment.diagnostics import DiagnosticKind
from zmigrate.pipeline.runtime import MigrationResult


class DiscrepancyModel(BaseModel):
    txid: str
    kind: str
    account: str
    detail: str = ""


class AccountSummary(BaseModel):
    account: str
    name: str
    addresses: int = Field(0, ge=0)
    keys: int = Field(0, ge=0)
    transactions: int = Field(0, ge=0)


class MigrationReport(BaseModel):
    transactions: int = Field(0, ge=0, description="Transactions processed (dispatched before any cancellation)")
    assigned: int = Field(0, ge=0)
    unassigned: int = Field(0, ge=0)
    multi_account: int = Field(0, ge=0, description="Transactions assigned to more than one account")
    change_outputs: int = Field(0, ge=0)
    cancelled: bool = False
    unowned_keys: int = Field(0, ge=0, description="Stored keys exported without an owning account")
    seed_material: bool = Field(False, description="A BIP-39 mnemonic was carried over")
    accounts: list[AccountSummary] = Field(default_factory=list)
    diagnostics: dict[str, int] = Field(default_factory=dict, description="Diagnostic count per kind")
    missing_metadata: dict[str, int] = Field(default_factory=dict, description="Missing-metadata count per reason")
    unresolved_nullifiers: list[str] = Field(default_factory=list)
    unassigned_txids: list[str] = Field(default_factory=list)
    discrepancy_counts: dict[str, int] = Field(default_factory=dict)
    discrepancies: list[DiscrepancyModel] = Field(default_factory=list)


def build_report(result: MigrationResult) -> MigrationReport:
    discrepancy_counts: dict[str, int] = {}
    for d in result.discrepancies:
        discrepancy_counts[d.kind.value] = discrepancy_counts.get(d.kind.value, 0) + 1

    unresolved = sorted(
        {
            str(e.details.get("nullifier"))
            for e in result.diagnostics.entries(DiagnosticKind.UNRESOLVED_NULLIFIER)
            if e.details.get("nullifier")
        }
    )
    unassigned_txids = result.unassigned_txids
    return MigrationReport(
        transactions=len(result.assignments),
        assigned=len(result.assignments) - len(unassigned_txids),
        unassigned=len(unassigned_txids),
        multi_account=sum(1 for a in result.assignments if len(a.accounts) > 1),
        change_outputs=sum(len(a.change_outputs) for a in result.assignments),
        cancelled=result.cancelled,
        unowned_keys=len(result.unowned_keys),
        seed_material=result.seed_material is not None,
        accounts=[
            AccountSummary(
                account=str(r.account),
                name=r.name,
                addresses=len(r.addresses),
                keys=len(r.keys),
                transactions=len(r.transactions),
            )
            for r in result.accounts
        ],
        diagnostics=result.diagnostics.count_by_kind(),
        missing_metadata=result.diagnostics.count_by_reason(DiagnosticKind.MISSING_METADATA),
        unresolved_nullifiers=unresolved,
        unassigned_txids=unassigned_txids,
        discrepancy_counts=dict(sorted(discrepancy_counts.items())),
        discrepancies=[DiscrepancyModel(**d.to_dict()) for d in result.discrepancies],
    )
