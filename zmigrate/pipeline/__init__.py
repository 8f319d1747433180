"""
Migration pipeline: index construction, parallel assignment, per-account
export and the summary report.
"""

from zmigrate.pipeline.accounts import AccountAddress, AccountRecord, build_account_records, collect_unowned_keys
from zmigrate.pipeline.report import MigrationReport, build_report
from zmigrate.pipeline.runtime import (
    MigrationConfig,
    MigrationContext,
    MigrationResult,
    assign_transaction,
    build_context,
    run_migration,
)

__all__ = [
    "AccountAddress",
    "AccountRecord",
    "build_account_records",
    "collect_unowned_keys",
    "MigrationReport",
    "build_report",
    "MigrationConfig",
    "MigrationContext",
    "MigrationResult",
    "assign_transaction",
    "build_context",
    "run_migration",
]
