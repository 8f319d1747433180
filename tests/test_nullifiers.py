"""
Tests for NullifierResolver: per-pool tables, write-once bindings and
untraceable notes.
"""

from __future__ import annotations

import pytest

from wallet_fixtures import (
    LEGACY_ZS,
    ORCHARD_NF,
    SAPLING_NF,
    UNIFIED_1,
    UNKNOWN_NF,
    ZS_LEGACY_IVK,
    build_wallet_snapshot,
)
from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.nullifiers import Nullifier, NullifierResolver, build_nullifier_resolver
from zmigrate.assignment.registry import build_address_registry
from zmigrate.core.exceptions import NullifierCollision, RegistryFrozenError
from zmigrate.wallet.models import AccountKey, AddressId, Pool
from zmigrate.wallet.transactions import NoteRecord, OutPoint


def test_known_nullifiers_resolve_to_note_owner(resolver):
    assert resolver.spent_note_owner(Pool.SAPLING, SAPLING_NF) == LEGACY_ZS
    assert resolver.spent_note_owner(Pool.ORCHARD, ORCHARD_NF) == UNIFIED_1


def test_tables_are_per_pool(resolver):
    """A Sapling nullifier's bytes mean nothing in the Orchard table."""
    assert resolver.spent_note_owner(Pool.ORCHARD, SAPLING_NF) is None
    assert resolver.spent_note_owner(Pool.SPROUT, SAPLING_NF) is None
    assert resolver.spent_note_owner(Pool.TRANSPARENT, SAPLING_NF) is None


def test_unknown_nullifier_is_not_evidence(resolver):
    assert resolver.spent_note_owner(Pool.SAPLING, UNKNOWN_NF) is None


def test_note_without_nullifier_is_missing_metadata(resolver, diagnostics):
    reasons = diagnostics.count_by_reason(DiagnosticKind.MISSING_METADATA)
    assert reasons.get("note_without_nullifier") == 1


def test_untraceable_note_recorded_not_raised():
    snapshot = build_wallet_snapshot()
    snapshot.notes.append(
        NoteRecord(Pool.SAPLING, OutPoint("tx99", 0), nullifier=UNKNOWN_NF, recipient=AddressId.sapling("zs1nobody"))
    )
    snapshot.notes.append(NoteRecord(Pool.ORCHARD, OutPoint("tx99", 1), nullifier=b"\x67" * 32))
    diagnostics = DiagnosticsLog()
    registry = build_address_registry(snapshot, diagnostics)
    resolver = build_nullifier_resolver(snapshot, registry, diagnostics=diagnostics)
    assert resolver.spent_note_owner(Pool.SAPLING, UNKNOWN_NF) is None
    reasons = diagnostics.count_by_reason(DiagnosticKind.UNRESOLVED_NULLIFIER)
    assert reasons == {"nullifier_without_owner": 1, "nullifier_without_recipient": 1}


def test_note_recipient_found_through_viewing_key():
    snapshot = build_wallet_snapshot()
    snapshot.notes.append(NoteRecord(Pool.SAPLING, OutPoint("tx02", 1), nullifier=b"\x45" * 32, ivk=ZS_LEGACY_IVK))
    registry = build_address_registry(snapshot)
    resolver = build_nullifier_resolver(snapshot, registry)
    assert resolver.spent_note_owner(Pool.SAPLING, b"\x45" * 32) == LEGACY_ZS


def test_collision_raises():
    resolver = NullifierResolver()
    nf = Nullifier(Pool.SAPLING, b"\x01" * 32)
    resolver.record(nf, AccountKey.legacy("a"))
    assert resolver.record(nf, AccountKey.legacy("a")) is False
    with pytest.raises(NullifierCollision) as excinfo:
        resolver.record(nf, AccountKey.legacy("b"))
    assert excinfo.value.existing == AccountKey.legacy("a")


def test_same_bytes_in_two_pools_do_not_collide():
    resolver = NullifierResolver()
    resolver.record(Nullifier(Pool.SAPLING, b"\x01" * 32), AccountKey.legacy("a"))
    resolver.record(Nullifier(Pool.ORCHARD, b"\x01" * 32), AccountKey.legacy("b"))
    assert len(resolver) == 2


def test_frozen_resolver_rejects_records(resolver):
    with pytest.raises(RegistryFrozenError):
        resolver.record(Nullifier(Pool.SAPLING, b"\x02" * 32), AccountKey.legacy("a"))


def test_transparent_nullifier_rejected():
    with pytest.raises(ValueError):
        Nullifier(Pool.TRANSPARENT, b"\x01")
