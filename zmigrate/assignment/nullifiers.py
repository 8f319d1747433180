"""
Nullifier resolution: which account controlled the note a nullifier spends.

One table per shielded pool (Sprout, Sapling, Orchard), all behind a
single spent_note_owner() lookup. Tables are built by walking every
recorded note: note -> receiving address -> owning account. A nullifier
whose note has no traceable owner resolves to None and is reported; it is
never taken as evidence for any account.
"""

from __future__ import annotations

from dataclasses import dataclass

from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.registry import AddressRegistry
from zmigrate.assignment.viewing_keys import ViewingKeyIndex
from zmigrate.core.exceptions import NullifierCollision, RegistryFrozenError
from zmigrate.wallet.models import SHIELDED_POOLS, AccountKey, Pool
from zmigrate.wallet.snapshot import WalletSnapshot
from zmigrate.zmigrate_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Nullifier:
    pool: Pool
    value: bytes

    def __post_init__(self) -> None:
        if self.pool not in SHIELDED_POOLS:
            raise ValueError(f"Nullifiers exist only in shielded pools, not {self.pool.value}")

    @property
    def hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return f"{self.pool.value}:{self.hex}"


class NullifierResolver:
    """Per-pool write-once tables nullifier -> AccountKey."""

    def __init__(self) -> None:
        self._tables: dict[Pool, dict[bytes, AccountKey]] = {pool: {} for pool in SHIELDED_POOLS}
        self._frozen = False

    def record(self, nullifier: Nullifier, account: AccountKey) -> bool:
        """
        Bind a nullifier to the account that owned the spent note.

        Returns True on a new binding; the same binding again is a no-op.
        A different account for a known nullifier raises NullifierCollision.
        """
        if self._frozen:
            raise RegistryFrozenError("Nullifier resolver is frozen")
        table = self._tables[nullifier.pool]
        existing = table.get(nullifier.value)
        if existing is not None:
            if existing == account:
                return False
            raise NullifierCollision(nullifier, existing, account)
        table[nullifier.value] = account
        return True

    def spent_note_owner(self, pool: Pool, nullifier: bytes) -> AccountKey | None:
        table = self._tables.get(pool)
        if table is None:
            return None
        return table.get(bytes(nullifier))

    def table_size(self, pool: Pool) -> int:
        return len(self._tables[pool])

    def freeze(self) -> "NullifierResolver":
        self._frozen = True
        return self

    def __len__(self) -> int:
        return sum(len(t) for t in self._tables.values())


def build_nullifier_resolver(
    snapshot: WalletSnapshot,
    registry: AddressRegistry,
    viewing_keys: ViewingKeyIndex | None = None,
    diagnostics: DiagnosticsLog | None = None,
) -> NullifierResolver:
    """
    Walk every note table and bind each known nullifier to its note's owner.

    Missing nullifiers and untraceable recipients are recorded in
    diagnostics; only a nullifier bound to two accounts is fatal.
    """
    diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
    viewing_keys = viewing_keys if viewing_keys is not None else ViewingKeyIndex.from_snapshot(snapshot)
    resolver = NullifierResolver()

    for pool in SHIELDED_POOLS:
        for note in snapshot.notes_for_pool(pool):
            if not note.nullifier:
                diagnostics.record(
                    DiagnosticKind.MISSING_METADATA,
                    "note_without_nullifier",
                    txid=note.outpoint.txid,
                    pool=pool.value,
                    outpoint=str(note.outpoint),
                )
                continue
            nullifier = Nullifier(pool, note.nullifier)
            recipient = note.recipient or viewing_keys.address_for(pool, note.ivk)
            owner = registry.resolve(recipient) if recipient is not None else None
            if owner is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_NULLIFIER,
                    "nullifier_without_owner" if recipient is not None else "nullifier_without_recipient",
                    txid=note.outpoint.txid,
                    nullifier=str(nullifier),
                    recipient=str(recipient) if recipient is not None else None,
                )
                continue
            resolver.record(nullifier, owner)

    logger.info(
        "nullifier_resolver_built",
        **{f"{pool.value}_nullifiers": resolver.table_size(pool) for pool in SHIELDED_POOLS},
    )
    return resolver.freeze()
