"""
Tests for the identity model: AddressId equality, canonical text form,
encoded-address inference and AccountKey ordering.
"""

from __future__ import annotations

import pytest

from zmigrate.wallet.models import (
    AccountFamily,
    AccountKey,
    AddressId,
    AddressKind,
    Pool,
    ReceiverType,
    UnifiedAccountMetadata,
    UnifiedAddressMetadata,
    sorted_accounts,
)


def test_unified_identity_ignores_receiver_set():
    """Two renderings of one unified address are the same AddressId."""
    a = AddressId.unified("u1same", [ReceiverType.ORCHARD])
    b = AddressId.unified("u1same", [ReceiverType.SAPLING, ReceiverType.P2PKH])
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_kind_participates_in_identity():
    assert AddressId.sapling("abc") != AddressId.orchard("abc")


def test_canonical_text_round_trip():
    for address_id in (
        AddressId.transparent("t1abc"),
        AddressId.sprout("zcabc"),
        AddressId.sapling("zs1abc"),
        AddressId.orchard("orchard-abc"),
        AddressId.unified("u1abc"),
    ):
        assert AddressId.parse(str(address_id)) == address_id
    assert str(AddressId.sapling("zs1abc")) == "zs:zs1abc"


def test_parse_rejects_unknown_prefix():
    with pytest.raises(ValueError):
        AddressId.parse("x:whatever")


@pytest.mark.parametrize(
    "encoded,kind",
    [
        ("t1Vz3ZmhRrQ4W5HkA7", AddressKind.TRANSPARENT),
        ("t3Vz3ZmhRrQ4W5HkA7", AddressKind.TRANSPARENT),
        ("tmVz3ZmhRrQ4W5HkA7", AddressKind.TRANSPARENT),
        ("zcVz3ZmhRrQ4W5HkA7", AddressKind.SPROUT),
        ("zs1qqqqqqqq", AddressKind.SAPLING),
        ("ztestsapling1qqqq", AddressKind.SAPLING),
        ("u1qqqqqqqq", AddressKind.UNIFIED),
        ("utest1qqqq", AddressKind.UNIFIED),
    ],
)
def test_kind_inferred_from_encoding(encoded, kind):
    assert AddressId.from_address_string(encoded).kind is kind


def test_tex_addresses_rejected():
    with pytest.raises(ValueError, match="TEX"):
        AddressId.from_address_string("tex1qqqqqqqq")


def test_only_unified_carries_receivers():
    with pytest.raises(ValueError):
        AddressId(AddressKind.SAPLING, "zs1abc", frozenset({ReceiverType.SAPLING}))
    with pytest.raises(ValueError):
        AddressId.transparent("")


def test_pool_of_address():
    assert AddressId.sapling("zs1abc").pool is Pool.SAPLING
    assert AddressId.unified("u1abc").pool is None
    assert AddressId.for_receiver(ReceiverType.P2SH, "t3abc") == AddressId.transparent("t3abc")


def test_receiver_type_codes():
    assert ReceiverType.from_code(0x03) is ReceiverType.ORCHARD
    with pytest.raises(ValueError):
        ReceiverType.from_code(0x04)


def test_account_key_sorting_is_family_then_identifier():
    u = AccountKey(AccountFamily.UNIFIED, "aaa", account_index=0)
    l1 = AccountKey.legacy("sapling:bbb")
    l2 = AccountKey.legacy("group:zzz")
    assert sorted_accounts([u, l1, l2]) == [l2, l1, u]


def test_account_display_names():
    meta = UnifiedAccountMetadata("seed", 133, 3, "ufvkid")
    assert meta.account_key().display_name == "Account #3"
    assert AccountKey.legacy("sapling:0123456789abcdef").display_name == "Legacy sapling 01234567"


def test_unified_address_metadata_without_rendering():
    meta = UnifiedAddressMetadata("ufvkid", b"\x00", frozenset({ReceiverType.ORCHARD}))
    assert meta.address_id() is None
