"""
Identity model: pools, address identities, and account keys.

AddressId is a closed tagged union over the address kinds a legacy wallet
can hold. Identity is the kind plus the rendered address string; the
receiver set carried by unified addresses is informational only.
AccountKey identifies a logical account in either the legacy family (one
standalone key or explicit grouping) or the unified family (ZIP-32
account under a seed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class Pool(str, Enum):
    TRANSPARENT = "transparent"
    SPROUT = "sprout"
    SAPLING = "sapling"
    ORCHARD = "orchard"


SHIELDED_POOLS = (Pool.SPROUT, Pool.SAPLING, Pool.ORCHARD)


class ReceiverType(str, Enum):
    """Receiver kinds a unified address may contain, in wallet encoding order."""

    P2PKH = "p2pkh"
    P2SH = "p2sh"
    SAPLING = "sapling"
    ORCHARD = "orchard"

    @classmethod
    def from_code(cls, code: int) -> "ReceiverType":
        """Decode the single-byte receiver type used in wallet metadata records."""
        try:
            return _RECEIVER_CODES[code]
        except KeyError:
            raise ValueError(f"Invalid receiver type code: 0x{code:02x}") from None

    @property
    def pool(self) -> Pool:
        if self in (ReceiverType.P2PKH, ReceiverType.P2SH):
            return Pool.TRANSPARENT
        return Pool(self.value)


_RECEIVER_CODES = {
    0x00: ReceiverType.P2PKH,
    0x01: ReceiverType.P2SH,
    0x02: ReceiverType.SAPLING,
    0x03: ReceiverType.ORCHARD,
}


class AddressKind(str, Enum):
    TRANSPARENT = "transparent"
    SPROUT = "sprout"
    SAPLING = "sapling"
    ORCHARD = "orchard"
    UNIFIED = "unified"


_TEXT_PREFIXES = {
    AddressKind.TRANSPARENT: "t:",
    AddressKind.SPROUT: "zc:",
    AddressKind.SAPLING: "zs:",
    AddressKind.ORCHARD: "zo:",
    AddressKind.UNIFIED: "u:",
}

# Human-readable prefixes of encoded addresses, longest first so that
# "ztestsapling" is not mistaken for the Sprout testnet "zt" prefix.
_ENCODING_PREFIXES: tuple[tuple[str, AddressKind], ...] = (
    ("zregtestsapling", AddressKind.SAPLING),
    ("ztestsapling", AddressKind.SAPLING),
    ("uregtest", AddressKind.UNIFIED),
    ("utest", AddressKind.UNIFIED),
    ("zs", AddressKind.SAPLING),
    ("zc", AddressKind.SPROUT),
    ("zt", AddressKind.SPROUT),
    ("u1", AddressKind.UNIFIED),
    ("t1", AddressKind.TRANSPARENT),
    ("t3", AddressKind.TRANSPARENT),
    ("tm", AddressKind.TRANSPARENT),
    ("t2", AddressKind.TRANSPARENT),
)

_TEX_PREFIXES = ("tex1", "textest1")


@dataclass(frozen=True)
class AddressId:
    """
    Canonical identity of one address or receiver.

    Equal addresses always hash equally, however many times they are
    rendered; the unified receiver set does not take part in comparison.
    """

    kind: AddressKind
    address: str
    receivers: frozenset[ReceiverType] = field(default=frozenset(), compare=False)

    def __post_init__(self) -> None:
        if not self.address:
            raise ValueError("AddressId requires a non-empty address string")
        if self.receivers and self.kind is not AddressKind.UNIFIED:
            raise ValueError("Only unified addresses carry a receiver set")

    @classmethod
    def transparent(cls, address: str) -> "AddressId":
        return cls(AddressKind.TRANSPARENT, address)

    @classmethod
    def sprout(cls, address: str) -> "AddressId":
        return cls(AddressKind.SPROUT, address)

    @classmethod
    def sapling(cls, address: str) -> "AddressId":
        return cls(AddressKind.SAPLING, address)

    @classmethod
    def orchard(cls, address: str) -> "AddressId":
        return cls(AddressKind.ORCHARD, address)

    @classmethod
    def unified(cls, address: str, receivers: Iterable[ReceiverType] = ()) -> "AddressId":
        return cls(AddressKind.UNIFIED, address, frozenset(receivers))

    @classmethod
    def for_pool(cls, pool: Pool, address: str) -> "AddressId":
        """Single-pool address for a receiver or note recipient of the given pool."""
        return cls(AddressKind(pool.value), address)

    @classmethod
    def for_receiver(cls, receiver: ReceiverType, address: str) -> "AddressId":
        return cls.for_pool(receiver.pool, address)

    @classmethod
    def from_address_string(cls, encoded: str) -> "AddressId":
        """
        Infer the kind of an encoded address from its human-readable prefix.

        Orchard receivers have no standalone encoding and are never inferred.
        TEX addresses do not occur in legacy wallet data and are rejected.
        """
        text = encoded.strip()
        lowered = text.lower()
        if lowered.startswith(_TEX_PREFIXES):
            raise ValueError(f"TEX addresses are not supported: {text}")
        for prefix, kind in _ENCODING_PREFIXES:
            if lowered.startswith(prefix):
                return cls(kind, text)
        raise ValueError(f"Unrecognised address encoding: {text}")

    @classmethod
    def parse(cls, text: str) -> "AddressId":
        """Inverse of str(): parse the canonical "<prefix>:<address>" form."""
        for kind, prefix in _TEXT_PREFIXES.items():
            if text.startswith(prefix):
                return cls(kind, text[len(prefix):])
        raise ValueError(f"Invalid AddressId format: {text}")

    @property
    def pool(self) -> Pool | None:
        """The pool this address receives into; None for unified addresses."""
        if self.kind is AddressKind.UNIFIED:
            return None
        return Pool(self.kind.value)

    def __str__(self) -> str:
        return f"{_TEXT_PREFIXES[self.kind]}{self.address}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind.value, "address": self.address}
        if self.receivers:
            out["receivers"] = sorted(r.value for r in self.receivers)
        return out


class AccountFamily(str, Enum):
    LEGACY = "legacy"
    UNIFIED = "unified"


@dataclass(frozen=True)
class AccountKey:
    """
    Opaque, stable identifier of a logical account.

    identifier: UFVK fingerprint (hex) for unified accounts; for legacy
    accounts a source-qualified key fingerprint such as "sapling:<hex>" or
    "group:<name>".
    """

    family: AccountFamily
    identifier: str
    account_index: int | None = None
    seed_fingerprint: str | None = None
    coin_type: int | None = None

    @classmethod
    def legacy(cls, identifier: str) -> "AccountKey":
        return cls(AccountFamily.LEGACY, identifier)

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.family.value, self.identifier)

    @property
    def is_unified(self) -> bool:
        return self.family is AccountFamily.UNIFIED

    @property
    def display_name(self) -> str:
        if self.is_unified:
            return f"Account #{self.account_index}"
        source, _, ident = self.identifier.partition(":")
        return f"Legacy {source} {ident[:8]}" if ident else f"Legacy {source}"

    def __str__(self) -> str:
        return f"{self.family.value}:{self.identifier}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "family": self.family.value,
            "identifier": self.identifier,
            "account_index": self.account_index,
            "seed_fingerprint": self.seed_fingerprint,
            "coin_type": self.coin_type,
            "name": self.display_name,
        }


def sorted_accounts(accounts: Iterable[AccountKey]) -> list[AccountKey]:
    """Deterministic ordering for account collections."""
    return sorted(accounts, key=lambda a: a.sort_key)


@dataclass(frozen=True)
class UnifiedAccountMetadata:
    """
    One ZIP-32 unified account: seed fingerprint, coin type, account index
    and the fingerprint of its unified full viewing key (UFVK).

    ufvk: the encoded UFVK when the wallet stored one; preserved verbatim.
    """

    seed_fingerprint: str
    coin_type: int
    account_index: int
    ufvk_id: str
    ufvk: str | None = None

    def account_key(self) -> AccountKey:
        return AccountKey(
            family=AccountFamily.UNIFIED,
            identifier=self.ufvk_id,
            account_index=self.account_index,
            seed_fingerprint=self.seed_fingerprint,
            coin_type=self.coin_type,
        )


@dataclass
class UnifiedAddressMetadata:
    """
    Derivation metadata for one diversified unified address.

    The wallet stores only (ufvk_id, diversifier_index, receiver_types);
    the rendered unified address and receivers come from the upstream
    reader when it could derive them.
    """

    ufvk_id: str
    diversifier_index: bytes
    receiver_types: frozenset[ReceiverType]
    address: str | None = None
    receivers: dict[ReceiverType, str] = field(default_factory=dict)

    def address_id(self) -> AddressId | None:
        if not self.address:
            return None
        return AddressId.unified(self.address, self.receiver_types)
