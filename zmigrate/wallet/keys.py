"""
Key material preservation.

Only spending keys and incoming viewing keys are stored entities. A full
viewing key is a capability computed from a spending key on demand by a
caller-supplied derivation function; it is never stored or exported.
Stored key bytes are carried through untouched: no re-encoding, no
normalisation.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar

from zmigrate.core.exceptions import SnapshotFormatError
from zmigrate.wallet.models import Pool

FINGERPRINT_BYTES = 16


def fingerprint_bytes(data: bytes) -> str:
    """Short stable hex identifier of a byte string (truncated SHA-256)."""
    return hashlib.sha256(data).digest()[:FINGERPRINT_BYTES].hex()


class KeyKind(str, Enum):
    SPENDING_KEY = "spending_key"
    INCOMING_VIEWING_KEY = "incoming_viewing_key"


@dataclass(frozen=True)
class KeyMaterial:
    """Pool-tagged opaque key bytes exactly as found in the source wallet."""

    pool: Pool
    data: bytes
    kind: ClassVar[KeyKind]

    def __post_init__(self) -> None:
        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, "data", bytes(self.data))
        if not isinstance(self.data, bytes):
            raise TypeError(f"{type(self).__name__} data must be bytes, got {type(self.data).__name__}")
        if not self.data:
            raise ValueError(f"{type(self).__name__} data must not be empty")

    @property
    def fingerprint(self) -> str:
        """Short stable identifier; used to name legacy accounts."""
        return fingerprint_bytes(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "pool": self.pool.value, "data": self.data.hex()}

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "KeyMaterial":
        """Rebuild a stored key from {"kind", "pool", "data": hex}."""
        try:
            kind = KeyKind(payload["kind"])
            pool = Pool(payload["pool"])
            data = bytes.fromhex(payload["data"])
        except (KeyError, ValueError, TypeError) as e:
            raise SnapshotFormatError(f"Invalid key record: {e}", record=payload) from e
        return _KEY_CLASSES[kind](pool=pool, data=data)


@dataclass(frozen=True)
class SpendingKey(KeyMaterial):
    kind: ClassVar[KeyKind] = KeyKind.SPENDING_KEY


@dataclass(frozen=True)
class IncomingViewingKey(KeyMaterial):
    kind: ClassVar[KeyKind] = KeyKind.INCOMING_VIEWING_KEY


_KEY_CLASSES: dict[KeyKind, type[KeyMaterial]] = {
    KeyKind.SPENDING_KEY: SpendingKey,
    KeyKind.INCOMING_VIEWING_KEY: IncomingViewingKey,
}


@dataclass(frozen=True)
class SeedMaterial:
    """
    The wallet's BIP-39 mnemonic, carried verbatim into the migrated wallet.

    The phrase is excluded from repr so it cannot leak into log lines.
    """

    mnemonic: str = field(repr=False)
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"mnemonic": self.mnemonic, "language": self.language}


def preserve_key(key: KeyMaterial) -> KeyMaterial:
    """
    Return the preserved copy of a stored key for export.

    The copy is of the same class, pool and bytes; anything else is a
    fidelity failure and raises.
    """
    preserved = type(key)(pool=key.pool, data=bytes(key.data))
    if preserved.data != key.data or preserved.kind is not key.kind:
        raise ValueError(f"Key preservation altered a {key.kind.value} for pool {key.pool.value}")
    return preserved


def derive_full_viewing_key(
    spending_key: SpendingKey,
    deriver: Callable[[SpendingKey], bytes],
) -> bytes:
    """
    Compute a full viewing key from a spending key when a caller needs one.

    Derivation itself belongs to the pool's cryptographic library; the
    result is returned to the caller and never attached to an account.
    """
    if not isinstance(spending_key, SpendingKey):
        raise TypeError("A full viewing key can only be derived from a spending key")
    return deriver(spending_key)
