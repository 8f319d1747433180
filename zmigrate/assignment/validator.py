"""
Independent cross-check of engine assignments.

The expected owner set is recomputed straight from the raw transaction
(scripts, recipients, viewing keys, nullifiers, prevouts) without going
through the signal extractor, then diffed against what the engine
produced. Discrepancies are reported; nothing is ever corrected here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from zmigrate.assignment.nullifiers import NullifierResolver
from zmigrate.assignment.registry import AddressRegistry
from zmigrate.assignment.signals import PrevoutIndex
from zmigrate.assignment.viewing_keys import ViewingKeyIndex
from zmigrate.wallet import transparent
from zmigrate.wallet.models import AccountKey, AddressId
from zmigrate.wallet.transactions import Transaction


class DiscrepancyKind(str, Enum):
    MISSING_ACCOUNT = "missing_account"
    UNEXPECTED_ACCOUNT = "unexpected_account"
    UNKNOWN_ACCOUNT = "unknown_account"


@dataclass(frozen=True)
class Discrepancy:
    txid: str
    kind: DiscrepancyKind
    account: AccountKey
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "kind": self.kind.value,
            "account": str(self.account),
            "detail": self.detail,
        }


class AssignmentValidator:
    def __init__(
        self,
        registry: AddressRegistry,
        resolver: NullifierResolver,
        viewing_keys: ViewingKeyIndex | None = None,
        prevout_index: PrevoutIndex | None = None,
        network: str = "main",
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.viewing_keys = viewing_keys if viewing_keys is not None else ViewingKeyIndex()
        self.prevout_index = prevout_index if prevout_index is not None else PrevoutIndex()
        self.network = network

    def _addresses(self, tx: Transaction) -> Iterable[AddressId]:
        for mapping in tx.recipients:
            yield mapping.address
            if mapping.unified_address:
                yield AddressId.unified(mapping.unified_address)
        for inp in tx.inputs:
            rendered = inp.address
            if not rendered and inp.script_sig and transparent.ripemd160_available():
                rendered = transparent.address_from_script_sig(inp.script_sig, self.network)
            if rendered:
                yield AddressId.transparent(rendered)
        for out in tx.outputs:
            rendered = out.address or (
                transparent.address_from_script_pubkey(out.script_pubkey, self.network)
                if out.script_pubkey
                else None
            )
            if rendered:
                yield AddressId.transparent(rendered)
        for sout in tx.shielded_outputs:
            recipient = sout.recipient or self.viewing_keys.address_for(sout.pool, sout.ivk)
            if recipient is not None:
                yield recipient

    def expected_accounts(self, tx: Transaction) -> set[AccountKey]:
        expected: set[AccountKey] = set()
        for address_id in self._addresses(tx):
            owner = self.registry.resolve(address_id)
            if owner is not None:
                expected.add(owner)
        for spend in tx.spends:
            owner = self.resolver.spent_note_owner(spend.pool, spend.nullifier)
            if owner is not None:
                expected.add(owner)
        if not expected and tx.created_locally:
            for inp in tx.inputs:
                address_id = self.prevout_index.address_for(inp.prevout)
                owner = self.registry.resolve(address_id) if address_id is not None else None
                if owner is not None:
                    expected.add(owner)
        return expected

    def validate(self, tx: Transaction, accounts: Iterable[AccountKey]) -> list[Discrepancy]:
        """Diff an assigned account set against the recomputed one, sorted by kind then account."""
        assigned = set(accounts)
        expected = self.expected_accounts(tx)
        found: list[Discrepancy] = []
        for account in expected - assigned:
            found.append(
                Discrepancy(tx.txid, DiscrepancyKind.MISSING_ACCOUNT, account, "owns an address or note in the transaction")
            )
        for account in assigned - expected:
            if not self.registry.knows_account(account):
                found.append(
                    Discrepancy(tx.txid, DiscrepancyKind.UNKNOWN_ACCOUNT, account, "account not present in the registry")
                )
            else:
                found.append(
                    Discrepancy(tx.txid, DiscrepancyKind.UNEXPECTED_ACCOUNT, account, "no ownership evidence in the transaction")
                )
        return sorted(found, key=lambda d: (d.kind.value, d.account.sort_key))
