"""
Per-account export records: preserved keys, owned addresses and the
transactions assigned to each account.

Key bytes are copied through preserve_key() and nothing else. Full
viewing keys are never part of a record; the encoded UFVK of a unified
account is carried only when the source wallet stored it. Stored keys
whose address cannot be traced to an account are still exported, as
unowned keys on the migration result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from zmigrate.assignment.engine import Assignment
from zmigrate.assignment.registry import AddressRegistry
from zmigrate.wallet import transparent
from zmigrate.wallet.keys import KeyMaterial, preserve_key
from zmigrate.wallet.models import AccountKey, AddressId
from zmigrate.wallet.snapshot import WalletSnapshot


@dataclass(frozen=True)
class AccountAddress:
    """An owned address with its address-book name and purpose, if any."""

    address: AddressId
    name: str = ""
    purpose: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"address": str(self.address), "name": self.name, "purpose": self.purpose}


@dataclass
class AccountRecord:
    account: AccountKey
    name: str
    addresses: list[AccountAddress] = field(default_factory=list)
    keys: list[KeyMaterial] = field(default_factory=list)
    transactions: list[str] = field(default_factory=list)
    ufvk: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account.to_dict(),
            "name": self.name,
            "addresses": [a.to_dict() for a in self.addresses],
            "keys": [k.to_dict() for k in self.keys],
            "transactions": list(self.transactions),
            "ufvk": self.ufvk,
        }


def _key_sources(
    snapshot: WalletSnapshot, registry: AddressRegistry
) -> Iterator[tuple[AccountKey | None, Iterable[KeyMaterial]]]:
    """Every stored key record paired with the account owning its address (None if untraced)."""
    for record in snapshot.transparent_keys:
        address = record.address
        if not address and record.pubkey and transparent.ripemd160_available():
            address = transparent.address_from_pubkey(record.pubkey, snapshot.network)
        owner = registry.resolve(AddressId.transparent(address)) if address else None
        yield owner, record.keys
    for record in snapshot.shielded_addresses:
        yield registry.resolve(record.address_id), record.keys


def _append_once(bucket: list[KeyMaterial], keys: Iterable[KeyMaterial]) -> None:
    for key in keys:
        # Diversified addresses share one IVK; export it once.
        if key not in bucket:
            bucket.append(preserve_key(key))


def collect_unowned_keys(snapshot: WalletSnapshot, registry: AddressRegistry) -> list[KeyMaterial]:
    """Preserved copies of stored keys no account could claim."""
    unowned: list[KeyMaterial] = []
    for owner, keys in _key_sources(snapshot, registry):
        if owner is None:
            _append_once(unowned, keys)
    return unowned


def _account_address(snapshot: WalletSnapshot, address: AddressId) -> AccountAddress:
    entry = snapshot.address_book.get(address.address)
    if entry is None:
        return AccountAddress(address)
    return AccountAddress(address, name=entry.name, purpose=entry.purpose)


def build_account_records(
    snapshot: WalletSnapshot,
    registry: AddressRegistry,
    assignments: Iterable[Assignment],
) -> list[AccountRecord]:
    """One record per registry account, in deterministic account order."""
    ufvks = {
        meta.account_key(): meta.ufvk for meta in snapshot.unified_accounts if meta.ufvk
    }
    txids: dict[AccountKey, list[str]] = {}
    for assignment in assignments:
        for account in assignment.accounts:
            txids.setdefault(account, []).append(assignment.txid)

    owned: dict[AccountKey, list[KeyMaterial]] = {}
    for owner, keys in _key_sources(snapshot, registry):
        if owner is not None:
            _append_once(owned.setdefault(owner, []), keys)

    return [
        AccountRecord(
            account=account,
            name=account.display_name,
            addresses=[_account_address(snapshot, a) for a in registry.addresses_for(account)],
            keys=owned.get(account, []),
            transactions=sorted(txids.get(account, [])),
            ufvk=ufvks.get(account),
        )
        for account in registry.accounts()
    ]
