"""
Pytest fixtures for zmigrate tests.

The wallet itself lives in wallet_fixtures so tests can import its
addresses and accounts by name.
"""

from __future__ import annotations

import pytest

from wallet_fixtures import build_wallet_snapshot
from zmigrate.assignment.diagnostics import DiagnosticsLog
from zmigrate.assignment.nullifiers import build_nullifier_resolver
from zmigrate.assignment.registry import build_address_registry
from zmigrate.assignment.signals import build_prevout_index
from zmigrate.assignment.viewing_keys import ViewingKeyIndex
from zmigrate.wallet.snapshot import WalletSnapshot
from zmigrate.wallet.transactions import Transaction


@pytest.fixture
def wallet_snapshot() -> WalletSnapshot:
    return build_wallet_snapshot()


@pytest.fixture
def diagnostics() -> DiagnosticsLog:
    return DiagnosticsLog()


@pytest.fixture
def registry(wallet_snapshot, diagnostics):
    return build_address_registry(wallet_snapshot, diagnostics)


@pytest.fixture
def viewing_keys(wallet_snapshot):
    return ViewingKeyIndex.from_snapshot(wallet_snapshot)


@pytest.fixture
def resolver(wallet_snapshot, registry, viewing_keys, diagnostics):
    return build_nullifier_resolver(wallet_snapshot, registry, viewing_keys, diagnostics)


@pytest.fixture
def prevout_index(wallet_snapshot):
    return build_prevout_index(wallet_snapshot.transactions, wallet_snapshot.network)


@pytest.fixture
def transactions(wallet_snapshot) -> dict[str, Transaction]:
    return {tx.txid: tx for tx in wallet_snapshot.transactions}
