"""
Tests for AssignmentValidator: agreement with the engine and each
discrepancy kind.
"""

from __future__ import annotations

import pytest

from wallet_fixtures import LEGACY_T, LEGACY_ZS, UNIFIED_0, UNIFIED_1
from zmigrate.assignment.engine import AccountAssignmentEngine
from zmigrate.assignment.signals import TransactionSignalExtractor
from zmigrate.assignment.validator import AssignmentValidator, DiscrepancyKind
from zmigrate.wallet.models import AccountKey


@pytest.fixture
def validator(registry, resolver, viewing_keys, prevout_index):
    return AssignmentValidator(registry, resolver, viewing_keys, prevout_index, "main")


def test_engine_and_validator_agree(validator, registry, resolver, viewing_keys, prevout_index, wallet_snapshot):
    engine = AccountAssignmentEngine(registry, resolver, prevout_index)
    extractor = TransactionSignalExtractor(viewing_keys, "main")
    for tx in wallet_snapshot.transactions:
        assignment = engine.assign(tx, extractor.extract(tx))
        assert validator.validate(tx, assignment.accounts) == [], tx.txid


def test_missing_account_reported(validator, transactions):
    found = validator.validate(transactions["tx03"], {UNIFIED_0})
    assert [(d.kind, d.account) for d in found] == [(DiscrepancyKind.MISSING_ACCOUNT, LEGACY_T)]


def test_unexpected_account_reported(validator, transactions):
    found = validator.validate(transactions["tx01"], {LEGACY_ZS, UNIFIED_1})
    assert [(d.kind, d.account) for d in found] == [(DiscrepancyKind.UNEXPECTED_ACCOUNT, UNIFIED_1)]


def test_unknown_account_reported(validator, transactions):
    ghost = AccountKey.legacy("sapling:ghost")
    found = validator.validate(transactions["tx04"], {ghost})
    assert len(found) == 1
    assert found[0].kind is DiscrepancyKind.UNKNOWN_ACCOUNT
    assert found[0].to_dict()["account"] == "legacy:sapling:ghost"


def test_validator_never_corrects(validator, transactions):
    accounts = {UNIFIED_0}
    validator.validate(transactions["tx03"], accounts)
    assert accounts == {UNIFIED_0}
