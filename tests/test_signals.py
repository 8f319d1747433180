"""
Tests for TransactionSignalExtractor and the prevout index.
"""

from __future__ import annotations

import pytest

from wallet_fixtures import SAPLING_NF, T_LEGACY, T_UNIFIED_0, UA_0, ZS_LEGACY, ZS_UNIFIED_0
from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.nullifiers import Nullifier
from zmigrate.assignment.signals import (
    AddressSignal,
    Direction,
    SignalSource,
    TransactionSignalExtractor,
    build_prevout_index,
)
from zmigrate.wallet import transparent
from zmigrate.wallet.models import AddressId, Pool
from zmigrate.wallet.transactions import OutPoint, ShieldedOutput, Transaction, TransparentInput, TransparentOutput


@pytest.fixture
def extractor(viewing_keys):
    return TransactionSignalExtractor(viewing_keys, "main")


def test_shielded_output_recipient_from_viewing_key(extractor, transactions):
    signals = extractor.extract(transactions["tx02"])
    assert AddressSignal(
        AddressId.sapling(ZS_LEGACY),
        Direction.OUTPUT,
        SignalSource.SHIELDED_OUTPUT,
        pool=Pool.SAPLING,
        output_index=1,
    ) in signals.addresses
    assert signals.nullifiers == frozenset({Nullifier(Pool.SAPLING, SAPLING_NF)})
    assert signals.created_locally


def test_recipient_mapping_emits_receiver_and_unified_address(extractor, transactions):
    signals = extractor.extract(transactions["tx07"])
    addresses = {s.address for s in signals.addresses}
    assert addresses == {AddressId.sapling(ZS_UNIFIED_0), AddressId.unified(UA_0)}
    assert all(s.source is SignalSource.RECIPIENT_MAPPING for s in signals.addresses)


def test_transparent_outputs_and_prevouts(extractor, transactions):
    signals = extractor.extract(transactions["tx03"])
    assert [s.address for s in signals.output_signals()] == [
        AddressId.transparent(T_UNIFIED_0),
        AddressId.transparent(T_LEGACY),
    ]
    tx05 = extractor.extract(transactions["tx05"])
    assert tx05.prevouts == (OutPoint("tx03", 1),)


def test_output_address_decoded_from_script():
    payload = bytes(range(20))
    script = bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    tx = Transaction(txid="txs", outputs=[TransparentOutput(0, 1, script_pubkey=script)])
    signals = TransactionSignalExtractor().extract(tx)
    (signal,) = signals.addresses
    assert signal.address == AddressId.transparent(transparent.encode_address(payload, transparent.P2PKH))


@pytest.mark.skipif(not transparent.ripemd160_available(), reason="RIPEMD-160 not available in hashlib")
def test_input_address_decoded_from_script_sig():
    pubkey = b"\x02" + b"\x11" * 32
    signature = b"\x30" + b"\x01" * 70
    script_sig = bytes([len(signature)]) + signature + bytes([len(pubkey)]) + pubkey
    tx = Transaction(txid="txi", inputs=[TransparentInput(OutPoint("prev", 0), script_sig=script_sig)])
    signals = TransactionSignalExtractor().extract(tx)
    (signal,) = signals.addresses
    assert signal.direction is Direction.INPUT
    assert signal.address == AddressId.transparent(transparent.address_from_pubkey(pubkey))


def test_unknown_ivk_is_reported():
    diagnostics = DiagnosticsLog()
    tx = Transaction(txid="txu", shielded_outputs=[ShieldedOutput(Pool.SAPLING, 0, ivk=b"\x01" * 32)])
    signals = TransactionSignalExtractor(diagnostics=diagnostics).extract(tx)
    assert signals.is_empty
    assert diagnostics.count_by_reason(DiagnosticKind.MISSING_METADATA) == {"shielded_output_ivk_unknown": 1}


def test_prevout_index_covers_wallet_outputs(wallet_snapshot):
    index = build_prevout_index(wallet_snapshot.transactions)
    assert index.address_for(OutPoint("tx03", 1)) == AddressId.transparent(T_LEGACY)
    assert OutPoint("tx03", 7) not in index

