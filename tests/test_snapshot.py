"""
Tests for WalletSnapshot.from_dict: the JSON hand-off from the wallet-dump reader.
"""

from __future__ import annotations

import pytest

from zmigrate.core.exceptions import SnapshotFormatError
from zmigrate.wallet.keys import IncomingViewingKey, SpendingKey
from zmigrate.wallet.models import AddressId, Pool, ReceiverType
from zmigrate.wallet.snapshot import WalletSnapshot, parse_address

PAYLOAD = {
    "network": "test",
    "unified_accounts": [
        {"seed_fingerprint": "ABCD", "coin_type": 1, "account_index": 0, "ufvk_id": "F00D", "ufvk": "uviewtest1xyz"}
    ],
    "unified_addresses": [
        {
            "ufvk_id": "f00d",
            "diversifier_index": "0000",
            "receiver_types": [0, "sapling"],
            "address": "utest1abc",
            "receivers": {"p2pkh": "tmReceiver", "sapling": "ztestsapling1rcv"},
        }
    ],
    "transparent_keys": [{"address": "tmKey", "pubkey": "02" + "11" * 32, "spending_key": "01" * 32}],
    "shielded_addresses": [
        {"pool": "sapling", "address": "ztestsapling1own", "ivk": "22" * 32, "spending_key": "33" * 32}
    ],
    "notes": [
        {"pool": "sapling", "txid": "aa", "index": 0, "nullifier": "44" * 32, "recipient": "zs:ztestsapling1own"}
    ],
    "transactions": [
        {
            "txid": "aa",
            "created_locally": True,
            "inputs": [{"txid": "99", "index": 1, "script_sig": ""}],
            "outputs": [{"value": 5, "address": "tmSomeone"}],
            "spends": [{"pool": "sapling", "nullifier": "55" * 32}],
            "shielded_outputs": [{"pool": "sapling", "index": 0, "recipient": "ztestsapling1own"}],
            "orchard_actions": [{"nullifier": "66" * 32, "cmx": "77" * 32, "ivk": "88" * 32}],
            "recipients": [{"address": "ztestsapling1rcv", "unified_address": "utest1abc"}],
        }
    ],
    "address_book": {"tmSomeone": {"name": "Shop", "purpose": "send"}, "tmBlank": {}},
}


def test_from_dict_builds_full_snapshot():
    snapshot = WalletSnapshot.from_dict(PAYLOAD)
    assert snapshot.network == "test"
    account = snapshot.unified_accounts[0]
    assert account.seed_fingerprint == "abcd"
    assert account.ufvk_id == "f00d"
    ua = snapshot.unified_addresses[0]
    assert ua.receiver_types == {ReceiverType.P2PKH, ReceiverType.SAPLING}
    assert ua.receivers[ReceiverType.P2PKH] == "tmReceiver"
    key = snapshot.transparent_keys[0]
    assert key.spending_key == SpendingKey(Pool.TRANSPARENT, b"\x01" * 32)
    shielded = snapshot.shielded_addresses[0]
    assert shielded.incoming_viewing_key == IncomingViewingKey(Pool.SAPLING, b"\x22" * 32)
    assert snapshot.notes[0].recipient == AddressId.sapling("ztestsapling1own")
    assert snapshot.labelled_addresses() == frozenset({"tmSomeone"})


def test_orchard_actions_split_into_spend_and_output():
    tx = WalletSnapshot.from_dict(PAYLOAD).transactions[0]
    assert [s.pool for s in tx.spends] == [Pool.SAPLING, Pool.ORCHARD]
    orchard_out = [o for o in tx.shielded_outputs if o.pool is Pool.ORCHARD]
    assert len(orchard_out) == 1
    assert orchard_out[0].ivk == b"\x88" * 32
    assert tx.outputs[0].index == 0
    assert tx.recipients[0].address == AddressId.sapling("ztestsapling1rcv")
    assert tx.created_locally


def test_parse_address_accepts_both_forms():
    assert parse_address("zs:zs1abc") == parse_address("zs1abc")


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"transactions": [{"inputs": []}]},
        {"shielded_addresses": [{"pool": "transparent", "address": "t1abc"}]},
        {"notes": [{"pool": "transparent", "txid": "aa", "index": 0}]},
        {"transparent_keys": [{"address": "t1abc", "pubkey": "zz"}]},
        {"unified_addresses": [{"ufvk_id": "a", "receiver_types": [9]}]},
    ],
)
def test_malformed_payloads_raise(payload):
    with pytest.raises(SnapshotFormatError):
        WalletSnapshot.from_dict(payload)


@pytest.mark.parametrize(
    "raw, network",
    [("main", "main"), ("mainnet", "main"), ("test", "test"), ("TestNet", "test"), ("regtest", "regtest"), (None, "main")],
)
def test_network_aliases_are_normalised(raw, network):
    assert WalletSnapshot.from_dict({"network": raw}).network == network


def test_unknown_network_is_rejected():
    with pytest.raises(SnapshotFormatError, match="network"):
        WalletSnapshot.from_dict({"network": "signet"})


def test_transparent_spend_is_rejected():
    payload = {"transactions": [{"txid": "aa", "spends": [{"pool": "transparent", "nullifier": "11" * 32}]}]}
    with pytest.raises(SnapshotFormatError):
        WalletSnapshot.from_dict(payload)


def test_mnemonic_is_carried_verbatim():
    phrase = "abandon  abandon ability Able"
    snapshot = WalletSnapshot.from_dict({"mnemonic": phrase, "mnemonic_language": "english"})
    assert snapshot.seed_material.mnemonic == phrase
    assert snapshot.seed_material.language == "english"
    assert phrase not in repr(snapshot.seed_material)
    assert WalletSnapshot.from_dict({"mnemonic": ""}).seed_material is None
