"""
Wallet snapshot: the fully materialised wallet state handed over by the
upstream wallet-dump reader.

Everything the migration needs is in memory before any index is built.
from_dict() accepts the JSON-shaped payload the dump reader emits, with
byte fields hex-encoded and addresses either encoded ("zs1...") or in
canonical form ("zs:zs1...").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from zmigrate.config.env import DEFAULT_NETWORK, normalize_network
from zmigrate.core.exceptions import SnapshotFormatError
from zmigrate.wallet.keys import IncomingViewingKey, KeyMaterial, SeedMaterial, SpendingKey
from zmigrate.wallet.models import (
    AddressId,
    Pool,
    ReceiverType,
    UnifiedAccountMetadata,
    UnifiedAddressMetadata,
)
from zmigrate.wallet.transactions import (
    NoteRecord,
    OutPoint,
    RecipientMapping,
    ShieldedOutput,
    ShieldedSpend,
    Transaction,
    TransparentInput,
    TransparentOutput,
)


@dataclass
class TransparentKeyRecord:
    """A transparent key pair from the wallet key table and the address it controls."""

    address: str | None = None
    pubkey: bytes = b""
    spending_key: SpendingKey | None = None
    hd_keypath: str | None = None
    seed_fingerprint: str | None = None
    account_group: str | None = None
    """Explicit account grouping, when the source wallet provides one."""

    @property
    def keys(self) -> list[KeyMaterial]:
        return [self.spending_key] if self.spending_key is not None else []


@dataclass
class ShieldedAddressRecord:
    """A standalone shielded address with whatever key material the wallet holds for it."""

    pool: Pool
    address: str
    incoming_viewing_key: IncomingViewingKey | None = None
    spending_key: SpendingKey | None = None
    hd_keypath: str | None = None
    seed_fingerprint: str | None = None
    account_group: str | None = None

    @property
    def address_id(self) -> AddressId:
        return AddressId.for_pool(self.pool, self.address)

    @property
    def keys(self) -> list[KeyMaterial]:
        out: list[KeyMaterial] = []
        if self.spending_key is not None:
            out.append(self.spending_key)
        if self.incoming_viewing_key is not None:
            out.append(self.incoming_viewing_key)
        return out


@dataclass(frozen=True)
class AddressBookEntry:
    name: str = ""
    purpose: str = ""

    @property
    def is_labelled(self) -> bool:
        return bool(self.name or self.purpose)


@dataclass
class WalletSnapshot:
    network: str = "main"
    transactions: list[Transaction] = field(default_factory=list)
    unified_accounts: list[UnifiedAccountMetadata] = field(default_factory=list)
    unified_addresses: list[UnifiedAddressMetadata] = field(default_factory=list)
    transparent_keys: list[TransparentKeyRecord] = field(default_factory=list)
    shielded_addresses: list[ShieldedAddressRecord] = field(default_factory=list)
    notes: list[NoteRecord] = field(default_factory=list)
    address_book: dict[str, AddressBookEntry] = field(default_factory=dict)
    seed_material: SeedMaterial | None = None

    def notes_for_pool(self, pool: Pool) -> Iterator[NoteRecord]:
        return (n for n in self.notes if n.pool is pool)

    def labelled_addresses(self) -> frozenset[str]:
        """Encoded addresses with a name or purpose in the address book."""
        return frozenset(a for a, entry in self.address_book.items() if entry.is_labelled)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WalletSnapshot":
        """Build from the dump reader's JSON payload. Raises SnapshotFormatError on bad input."""
        if not isinstance(payload, dict):
            raise SnapshotFormatError("Snapshot payload must be an object")
        try:
            return cls(
                network=_network(payload.get("network")),
                transactions=[_transaction(t) for t in payload.get("transactions", [])],
                unified_accounts=[_unified_account(a) for a in payload.get("unified_accounts", [])],
                unified_addresses=[_unified_address(a) for a in payload.get("unified_addresses", [])],
                transparent_keys=[_transparent_key(k) for k in payload.get("transparent_keys", [])],
                shielded_addresses=[_shielded_address(a) for a in payload.get("shielded_addresses", [])],
                notes=[_note(n) for n in payload.get("notes", [])],
                address_book={
                    str(addr): AddressBookEntry(
                        name=str(entry.get("name") or ""),
                        purpose=str(entry.get("purpose") or ""),
                    )
                    for addr, entry in (payload.get("address_book") or {}).items()
                },
                seed_material=_seed_material(payload),
            )
        except SnapshotFormatError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotFormatError(f"Malformed wallet snapshot: {e!r}") from e


def _network(value: Any) -> str:
    try:
        return normalize_network(str(value or DEFAULT_NETWORK))
    except ValueError as e:
        raise SnapshotFormatError(f"Unsupported snapshot network: {value!r}") from e


def _seed_material(payload: dict[str, Any]) -> SeedMaterial | None:
    """The BIP-39 mnemonic, if the wallet holds one. An empty phrase means none."""
    mnemonic = payload.get("mnemonic")
    if not mnemonic:
        return None
    return SeedMaterial(mnemonic=str(mnemonic), language=payload.get("mnemonic_language") or None)


def _hex(value: Any) -> bytes:
    if value is None or value == "":
        return b""
    return bytes.fromhex(str(value))


def _optional_hex(value: Any) -> bytes | None:
    return _hex(value) if value else None


def parse_address(value: str) -> AddressId:
    """Accept either canonical "<prefix>:<address>" text or an encoded address."""
    try:
        return AddressId.parse(value)
    except ValueError:
        return AddressId.from_address_string(value)


def _optional_address(value: Any) -> AddressId | None:
    return parse_address(str(value)) if value else None


def _receiver_type(value: Any) -> ReceiverType:
    if isinstance(value, int):
        return ReceiverType.from_code(value)
    return ReceiverType(str(value).lower())


def _spending_key(pool: Pool, value: Any) -> SpendingKey | None:
    return SpendingKey(pool=pool, data=_hex(value)) if value else None


def _unified_account(item: dict[str, Any]) -> UnifiedAccountMetadata:
    return UnifiedAccountMetadata(
        seed_fingerprint=str(item["seed_fingerprint"]).lower(),
        coin_type=int(item["coin_type"]),
        account_index=int(item["account_index"]),
        ufvk_id=str(item["ufvk_id"]).lower(),
        ufvk=item.get("ufvk"),
    )


def _unified_address(item: dict[str, Any]) -> UnifiedAddressMetadata:
    return UnifiedAddressMetadata(
        ufvk_id=str(item["ufvk_id"]).lower(),
        diversifier_index=_hex(item.get("diversifier_index")),
        receiver_types=frozenset(_receiver_type(r) for r in item.get("receiver_types", [])),
        address=item.get("address"),
        receivers={
            _receiver_type(k): str(v)
            for k, v in (item.get("receivers") or {}).items()
            if v
        },
    )


def _transparent_key(item: dict[str, Any]) -> TransparentKeyRecord:
    return TransparentKeyRecord(
        address=item.get("address"),
        pubkey=_hex(item.get("pubkey")),
        spending_key=_spending_key(Pool.TRANSPARENT, item.get("spending_key")),
        hd_keypath=item.get("hd_keypath"),
        seed_fingerprint=(item.get("seed_fingerprint") or None),
        account_group=item.get("account_group"),
    )


def _shielded_address(item: dict[str, Any]) -> ShieldedAddressRecord:
    pool = Pool(item["pool"])
    if pool is Pool.TRANSPARENT:
        raise SnapshotFormatError("Shielded address record cannot be transparent", record=item)
    ivk = item.get("ivk")
    return ShieldedAddressRecord(
        pool=pool,
        address=str(item["address"]),
        incoming_viewing_key=IncomingViewingKey(pool=pool, data=_hex(ivk)) if ivk else None,
        spending_key=_spending_key(pool, item.get("spending_key")),
        hd_keypath=item.get("hd_keypath"),
        seed_fingerprint=(item.get("seed_fingerprint") or None),
        account_group=item.get("account_group"),
    )


def _note(item: dict[str, Any]) -> NoteRecord:
    pool = Pool(item["pool"])
    if pool is Pool.TRANSPARENT:
        raise SnapshotFormatError("Note records belong to shielded pools", record=item)
    return NoteRecord(
        pool=pool,
        outpoint=OutPoint(str(item["txid"]), int(item["index"])),
        nullifier=_optional_hex(item.get("nullifier")),
        recipient=_optional_address(item.get("recipient")),
        ivk=_optional_hex(item.get("ivk")),
    )


def _spend(item: dict[str, Any]) -> ShieldedSpend:
    pool = Pool(item["pool"])
    if pool is Pool.TRANSPARENT:
        raise SnapshotFormatError("Shielded spends belong to shielded pools", record=item)
    return ShieldedSpend(pool=pool, nullifier=_hex(item["nullifier"]))


def _transaction(item: dict[str, Any]) -> Transaction:
    spends = [_spend(s) for s in item.get("spends", [])]
    shielded_outputs = [
        ShieldedOutput(
            pool=Pool(o["pool"]),
            index=int(o["index"]),
            commitment=_hex(o.get("commitment")),
            recipient=_optional_address(o.get("recipient")),
            ivk=_optional_hex(o.get("ivk")),
        )
        for o in item.get("shielded_outputs", [])
    ]
    # An Orchard action both spends (nullifier) and creates (cmx) a note.
    for position, action in enumerate(item.get("orchard_actions", [])):
        spends.append(ShieldedSpend(pool=Pool.ORCHARD, nullifier=_hex(action["nullifier"])))
        shielded_outputs.append(
            ShieldedOutput(
                pool=Pool.ORCHARD,
                index=int(action.get("index", position)),
                commitment=_hex(action.get("cmx")),
                recipient=_optional_address(action.get("recipient")),
                ivk=_optional_hex(action.get("ivk")),
            )
        )
    return Transaction(
        txid=str(item["txid"]),
        inputs=[
            TransparentInput(
                prevout=OutPoint(str(i["txid"]), int(i["index"])),
                script_sig=_hex(i.get("script_sig")),
                address=i.get("address"),
            )
            for i in item.get("inputs", [])
        ],
        outputs=[
            TransparentOutput(
                index=int(o.get("index", position)),
                value=int(o.get("value", 0)),
                script_pubkey=_hex(o.get("script_pubkey")),
                address=o.get("address"),
            )
            for position, o in enumerate(item.get("outputs", []))
        ],
        spends=spends,
        shielded_outputs=shielded_outputs,
        recipients=[
            RecipientMapping(
                address=parse_address(str(r["address"])),
                unified_address=r.get("unified_address") or None,
            )
            for r in item.get("recipients", [])
        ],
        created_locally=bool(item.get("created_locally", False)),
    )
