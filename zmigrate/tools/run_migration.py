"""
Run a wallet migration from a JSON snapshot produced by the wallet-dump reader.

Usage:
  zmigrate --snapshot wallet.json
  zmigrate --snapshot wallet.json --report report.json --concurrency 4
  python -m zmigrate.tools.run_migration --snapshot wallet.json --no-validate

Exit codes: 0 success, 1 unreadable input or settings, 2 structural
conflict (an address or nullifier claimed by two accounts).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from zmigrate.config import get_settings
from zmigrate.core.exceptions import ConflictingRegistration, NullifierCollision, SnapshotFormatError
from zmigrate.pipeline.report import build_report
from zmigrate.pipeline.runtime import MigrationConfig, run_migration
from zmigrate.wallet.snapshot import WalletSnapshot
from zmigrate.zmigrate_logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_CONFLICT = 2


def _load_snapshot(path: Path, default_network: str) -> WalletSnapshot:
    with path.open(encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload.setdefault("network", default_network)
    return WalletSnapshot.from_dict(payload)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Assign every transaction of a legacy wallet snapshot to its owning accounts.",
    )
    parser.add_argument("--snapshot", required=True, type=Path, help="Wallet snapshot JSON file")
    parser.add_argument("--report", type=Path, default=None, help="Write the migration report JSON here")
    parser.add_argument("--concurrency", type=int, default=None, help="Worker threads (default: ZMIGRATE_CONCURRENCY)")
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip the independent assignment validator",
    )
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
        config = MigrationConfig.from_settings(settings)
        if args.concurrency is not None:
            config = MigrationConfig(
                concurrency=args.concurrency,
                max_in_flight=max(config.max_in_flight, args.concurrency),
                validate=config.validate,
                legacy_grouping=config.legacy_grouping,
            )
        if args.no_validate:
            config.validate = False
        snapshot = _load_snapshot(args.snapshot, settings.network)
    except (OSError, json.JSONDecodeError, SnapshotFormatError, ValueError) as e:
        logger.error("migration_input_unreadable", path=str(args.snapshot), error=str(e))
        print(f"Cannot read snapshot {args.snapshot}: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    try:
        result = run_migration(snapshot, config)
    except (ConflictingRegistration, NullifierCollision) as e:
        logger.error("migration_structural_conflict", **e.to_dict())
        print(f"Migration aborted: {e.message}", file=sys.stderr)
        return EXIT_CONFLICT

    report = build_report(result)
    if args.report is not None:
        args.report.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.info("migration_report_written", path=str(args.report))

    print(f"Transactions: {report.transactions}")
    print(f"Assigned: {report.assigned}  Unassigned: {report.unassigned}  Multi-account: {report.multi_account}")
    print(f"Accounts: {len(report.accounts)}")
    for account in report.accounts:
        print(f"  {account.name}: {account.transactions} tx, {account.addresses} addresses, {account.keys} keys")
    if report.unowned_keys:
        print(f"Unowned keys: {report.unowned_keys}")
    if report.discrepancy_counts:
        print(f"Discrepancies: {report.discrepancy_counts}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
