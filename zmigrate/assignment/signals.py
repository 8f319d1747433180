"""
Transaction signal extraction.

Turns one raw Transaction into the set of ownership signals it carries:
addresses it pays or spends from, nullifiers it reveals and transparent
outputs it consumes. Nothing here resolves an account; the extractor only
decodes, so the assignment engine sees every transaction in one shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.nullifiers import Nullifier
from zmigrate.assignment.viewing_keys import ViewingKeyIndex
from zmigrate.wallet import transparent
from zmigrate.wallet.models import AddressId, Pool
from zmigrate.wallet.transactions import OutPoint, Transaction
from zmigrate.zmigrate_logging import get_logger

logger = get_logger(__name__)


class Direction(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


class SignalSource(str, Enum):
    RECIPIENT_MAPPING = "recipient_mapping"
    TRANSPARENT_INPUT = "transparent_input"
    TRANSPARENT_OUTPUT = "transparent_output"
    SHIELDED_OUTPUT = "shielded_output"


@dataclass(frozen=True)
class AddressSignal:
    """
    One address seen in a transaction.

    output_index is set for transparent and shielded outputs so the engine
    can mark change; pool is the output's pool (None for unified addresses).
    """

    address: AddressId
    direction: Direction
    source: SignalSource
    pool: Pool | None = None
    output_index: int | None = None


@dataclass(frozen=True)
class SignalSet:
    txid: str
    addresses: frozenset[AddressSignal] = frozenset()
    nullifiers: frozenset[Nullifier] = frozenset()
    prevouts: tuple[OutPoint, ...] = ()
    created_locally: bool = False

    def output_signals(self) -> list[AddressSignal]:
        return sorted(
            (s for s in self.addresses if s.direction is Direction.OUTPUT and s.output_index is not None),
            key=lambda s: (s.pool.value if s.pool else "", s.output_index, str(s.address)),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.addresses or self.nullifiers or self.prevouts)


class PrevoutIndex:
    """(txid, output index) -> address paid, for every wallet transaction's transparent outputs."""

    def __init__(self) -> None:
        self._by_outpoint: dict[OutPoint, AddressId] = {}

    def add(self, outpoint: OutPoint, address_id: AddressId) -> None:
        self._by_outpoint[outpoint] = address_id

    def address_for(self, outpoint: OutPoint) -> AddressId | None:
        return self._by_outpoint.get(outpoint)

    def __contains__(self, outpoint: object) -> bool:
        return outpoint in self._by_outpoint

    def __len__(self) -> int:
        return len(self._by_outpoint)


def transparent_output_address(script_pubkey: bytes, address: str | None, network: str) -> str | None:
    if address:
        return address
    if not script_pubkey:
        return None
    return transparent.address_from_script_pubkey(script_pubkey, network)


def transparent_input_address(script_sig: bytes, address: str | None, network: str) -> str | None:
    """Spending address of an input: the rendered one, else the P2PKH signer when hashable."""
    if address:
        return address
    if not script_sig or not transparent.ripemd160_available():
        return None
    return transparent.address_from_script_sig(script_sig, network)


def build_prevout_index(transactions: Iterable[Transaction], network: str = "main") -> PrevoutIndex:
    index = PrevoutIndex()
    for tx in transactions:
        for out in tx.outputs:
            rendered = transparent_output_address(out.script_pubkey, out.address, network)
            if rendered:
                index.add(OutPoint(tx.txid, out.index), AddressId.transparent(rendered))
    logger.info("prevout_index_built", outpoints=len(index))
    return index


class TransactionSignalExtractor:
    """Stateless apart from the frozen viewing-key index; safe to share across workers."""

    def __init__(
        self,
        viewing_keys: ViewingKeyIndex | None = None,
        network: str = "main",
        diagnostics: DiagnosticsLog | None = None,
    ) -> None:
        self.viewing_keys = viewing_keys if viewing_keys is not None else ViewingKeyIndex()
        self.network = network
        self.diagnostics = diagnostics

    def extract(self, tx: Transaction) -> SignalSet:
        signals: set[AddressSignal] = set()

        for mapping in tx.recipients:
            signals.add(
                AddressSignal(
                    mapping.address,
                    Direction.OUTPUT,
                    SignalSource.RECIPIENT_MAPPING,
                    pool=mapping.address.pool,
                )
            )
            if mapping.unified_address:
                signals.add(
                    AddressSignal(
                        AddressId.unified(mapping.unified_address),
                        Direction.OUTPUT,
                        SignalSource.RECIPIENT_MAPPING,
                    )
                )

        for inp in tx.inputs:
            rendered = transparent_input_address(inp.script_sig, inp.address, self.network)
            if rendered:
                signals.add(
                    AddressSignal(
                        AddressId.transparent(rendered),
                        Direction.INPUT,
                        SignalSource.TRANSPARENT_INPUT,
                        pool=Pool.TRANSPARENT,
                    )
                )

        for out in tx.outputs:
            rendered = transparent_output_address(out.script_pubkey, out.address, self.network)
            if rendered:
                signals.add(
                    AddressSignal(
                        AddressId.transparent(rendered),
                        Direction.OUTPUT,
                        SignalSource.TRANSPARENT_OUTPUT,
                        pool=Pool.TRANSPARENT,
                        output_index=out.index,
                    )
                )

        for sout in tx.shielded_outputs:
            recipient = sout.recipient or self.viewing_keys.address_for(sout.pool, sout.ivk)
            if recipient is None:
                if sout.ivk and self.diagnostics is not None:
                    self.diagnostics.record(
                        DiagnosticKind.MISSING_METADATA,
                        "shielded_output_ivk_unknown",
                        txid=tx.txid,
                        pool=sout.pool.value,
                        index=sout.index,
                    )
                continue
            signals.add(
                AddressSignal(
                    recipient,
                    Direction.OUTPUT,
                    SignalSource.SHIELDED_OUTPUT,
                    pool=sout.pool,
                    output_index=sout.index,
                )
            )

        nullifiers = frozenset(
            Nullifier(spend.pool, spend.nullifier) for spend in tx.spends if spend.nullifier
        )
        return SignalSet(
            txid=tx.txid,
            addresses=frozenset(signals),
            nullifiers=nullifiers,
            prevouts=tuple(inp.prevout for inp in tx.inputs),
            created_locally=tx.created_locally,
        )
