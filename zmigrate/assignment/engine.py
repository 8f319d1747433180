"""
Account assignment engine: the owning accounts of one transaction.

Resolution order (each tier adds accounts; none is exclusive):
1. every address signal the registry resolves;
2. every spent nullifier the resolver attributes to an account;
3. only when 1 and 2 found nothing and the wallet built the transaction:
   the accounts owning the transparent outputs it consumed;
4. otherwise the transaction is unassigned. There is no default account.

assign() is a pure function of the frozen indexes and the signal set, so
transactions may be assigned in any order and on any thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from zmigrate.assignment.nullifiers import NullifierResolver
from zmigrate.assignment.registry import AddressRegistry
from zmigrate.assignment.signals import Direction, PrevoutIndex, SignalSet
from zmigrate.wallet.models import AccountKey, Pool, sorted_accounts
from zmigrate.wallet.transactions import Transaction


class AssignmentTier(IntEnum):
    ADDRESS = 1
    NULLIFIER = 2
    PREVOUT = 3


@dataclass(frozen=True, order=True)
class OutputRef:
    pool: Pool
    index: int

    def __str__(self) -> str:
        return f"{self.pool.value}:{self.index}"


@dataclass(frozen=True)
class Assignment:
    """
    Owning accounts of one transaction and how each was established.

    evidence: account -> tiers that produced it.
    change_outputs: outputs returning value to an account that also funded
    the transaction.
    """

    txid: str
    accounts: frozenset[AccountKey] = frozenset()
    evidence: dict[AccountKey, frozenset[AssignmentTier]] = field(default_factory=dict, hash=False)
    change_outputs: frozenset[OutputRef] = frozenset()

    @property
    def is_unassigned(self) -> bool:
        return not self.accounts

    def sorted_accounts(self) -> list[AccountKey]:
        return sorted_accounts(self.accounts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "accounts": [str(a) for a in self.sorted_accounts()],
            "evidence": {
                str(a): [t.name.lower() for t in sorted(self.evidence.get(a, ()))]
                for a in self.sorted_accounts()
            },
            "change_outputs": [str(o) for o in sorted(self.change_outputs)],
        }


class AccountAssignmentEngine:
    def __init__(
        self,
        registry: AddressRegistry,
        resolver: NullifierResolver,
        prevout_index: PrevoutIndex | None = None,
        labelled_addresses: frozenset[str] = frozenset(),
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.prevout_index = prevout_index if prevout_index is not None else PrevoutIndex()
        self.labelled_addresses = labelled_addresses

    def assign(self, tx: Transaction, signals: SignalSet) -> Assignment:
        evidence: dict[AccountKey, set[AssignmentTier]] = {}
        # Accounts proven to have funded the transaction.
        spenders: set[AccountKey] = set()

        for signal in signals.addresses:
            owner = self.registry.resolve(signal.address)
            if owner is None:
                continue
            evidence.setdefault(owner, set()).add(AssignmentTier.ADDRESS)
            if signal.direction is Direction.INPUT:
                spenders.add(owner)

        for nullifier in signals.nullifiers:
            owner = self.resolver.spent_note_owner(nullifier.pool, nullifier.value)
            if owner is None:
                continue
            evidence.setdefault(owner, set()).add(AssignmentTier.NULLIFIER)
            spenders.add(owner)

        if not evidence and signals.created_locally:
            for prevout in signals.prevouts:
                address = self.prevout_index.address_for(prevout)
                owner = self.registry.resolve(address) if address is not None else None
                if owner is None:
                    continue
                evidence.setdefault(owner, set()).add(AssignmentTier.PREVOUT)
                spenders.add(owner)

        accounts = frozenset(evidence)
        change: set[OutputRef] = set()
        if signals.created_locally:
            for signal in signals.output_signals():
                if signal.address.address in self.labelled_addresses:
                    continue
                owner = self.registry.resolve(signal.address)
                if owner is not None and owner in accounts and owner in spenders:
                    change.add(OutputRef(signal.pool, signal.output_index))

        return Assignment(
            txid=tx.txid,
            accounts=accounts,
            evidence={a: frozenset(tiers) for a, tiers in evidence.items()},
            change_outputs=frozenset(change),
        )


def assign_accounts(
    tx: Transaction,
    signals: SignalSet,
    registry: AddressRegistry,
    resolver: NullifierResolver,
    prevout_index: PrevoutIndex | None = None,
) -> frozenset[AccountKey]:
    """Owning accounts of tx; empty means unassigned."""
    return AccountAssignmentEngine(registry, resolver, prevout_index).assign(tx, signals).accounts
