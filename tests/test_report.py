"""
Tests for the pydantic migration report.
"""

from __future__ import annotations

import json

from wallet_fixtures import UNKNOWN_NF, build_wallet_snapshot
from zmigrate.pipeline.report import MigrationReport, build_report
from zmigrate.pipeline.runtime import run_migration
from zmigrate.wallet.models import AddressId, Pool
from zmigrate.wallet.snapshot import WalletSnapshot
from zmigrate.wallet.transactions import NoteRecord, OutPoint


def test_report_counts():
    snapshot = build_wallet_snapshot()
    snapshot.notes.append(
        NoteRecord(Pool.SAPLING, OutPoint("tx99", 0), nullifier=UNKNOWN_NF, recipient=AddressId.sapling("zs1nobody"))
    )
    report = build_report(run_migration(snapshot))
    assert report.transactions == 7
    assert report.assigned == 6
    assert report.unassigned == 1
    assert report.unassigned_txids == ["tx04"]
    assert report.multi_account == 1
    assert report.change_outputs == 1
    assert report.missing_metadata == {"note_without_nullifier": 1}
    assert report.unresolved_nullifiers == [f"sapling:{UNKNOWN_NF.hex()}"]
    assert report.diagnostics["unresolved_transaction"] == 1
    assert report.discrepancy_counts == {}
    assert [a.name for a in report.accounts][-2:] == ["Account #0", "Account #1"]


def test_report_json_round_trip():
    report = build_report(run_migration(build_wallet_snapshot()))
    data = json.loads(report.model_dump_json())
    assert MigrationReport.model_validate(data) == report
    assert data["cancelled"] is False


def test_report_counts_unowned_keys_and_seed():
    snapshot = WalletSnapshot.from_dict(
        {"mnemonic": "abandon ability", "transparent_keys": [{"spending_key": "02" * 32}]}
    )
    report = build_report(run_migration(snapshot))
    assert report.unowned_keys == 1
    assert report.seed_material is True
    assert "abandon" not in report.model_dump_json()
    assert build_report(run_migration(build_wallet_snapshot())).seed_material is False
