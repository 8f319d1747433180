"""
Transaction model as handed over by the wallet-dump reader.

A transaction's relationship to accounts is computed by the assignment
engine; nothing here records ownership.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from zmigrate.wallet.models import AddressId, Pool


@dataclass(frozen=True)
class OutPoint:
    """Reference to output `index` of transaction `txid` (transparent or shielded)."""

    txid: str
    index: int

    def __str__(self) -> str:
        return f"{self.txid}:{self.index}"


@dataclass(frozen=True)
class TransparentInput:
    prevout: OutPoint
    script_sig: bytes = b""
    address: str | None = None
    """Rendered address of the spent output when the reader already knew it."""


@dataclass(frozen=True)
class TransparentOutput:
    index: int
    value: int = 0
    script_pubkey: bytes = b""
    address: str | None = None


@dataclass(frozen=True)
class ShieldedSpend:
    pool: Pool
    nullifier: bytes


@dataclass(frozen=True)
class ShieldedOutput:
    """
    One shielded output (Sprout JoinSplit output, Sapling output, Orchard action output).

    recipient: decrypted recipient, when the wallet could decrypt the note.
    ivk: the wallet's incoming viewing key recorded as having received it.
    """

    pool: Pool
    index: int
    commitment: bytes = b""
    recipient: AddressId | None = None
    ivk: bytes | None = None


@dataclass(frozen=True)
class RecipientMapping:
    """Wallet bookkeeping of a send target: the receiver paid and the unified address it came from."""

    address: AddressId
    unified_address: str | None = None


@dataclass(frozen=True)
class NoteRecord:
    """
    One row of a pool's note table: the note created at `outpoint`,
    its nullifier once known, and who received it.
    """

    pool: Pool
    outpoint: OutPoint
    nullifier: bytes | None = None
    recipient: AddressId | None = None
    ivk: bytes | None = None


@dataclass
class Transaction:
    txid: str
    inputs: list[TransparentInput] = field(default_factory=list)
    outputs: list[TransparentOutput] = field(default_factory=list)
    spends: list[ShieldedSpend] = field(default_factory=list)
    shielded_outputs: list[ShieldedOutput] = field(default_factory=list)
    recipients: list[RecipientMapping] = field(default_factory=list)
    created_locally: bool = False
    """The wallet built and signed this transaction (zcashd's fFromMe)."""
