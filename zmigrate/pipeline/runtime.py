"""
Migration runtime: build the frozen indexes once, then assign every
transaction in parallel.

Index construction is single-threaded and may raise the structural
errors (ConflictingRegistration, NullifierCollision). Per-transaction
work is isolated: a failure in one transaction is logged, recorded as an
unresolved transaction and carried forward unassigned. Cancellation is
cooperative: once stop_event is set no further transaction is
dispatched, and results already dispatched are still collected.

Usage: run_migration(WalletSnapshot.from_dict(payload))
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.engine import AccountAssignmentEngine, Assignment
from zmigrate.assignment.nullifiers import NullifierResolver, build_nullifier_resolver
from zmigrate.assignment.registry import AddressRegistry, build_address_registry
from zmigrate.assignment.signals import PrevoutIndex, TransactionSignalExtractor, build_prevout_index
from zmigrate.assignment.validator import AssignmentValidator, Discrepancy
from zmigrate.assignment.viewing_keys import ViewingKeyIndex
from zmigrate.config import env
from zmigrate.config.settings import Settings, get_settings
from zmigrate.pipeline.accounts import AccountRecord, build_account_records, collect_unowned_keys
from zmigrate.wallet.keys import KeyMaterial, SeedMaterial
from zmigrate.wallet.models import AccountKey
from zmigrate.wallet.snapshot import WalletSnapshot
from zmigrate.wallet.transactions import Transaction
from zmigrate.zmigrate_logging import bind_transaction, get_logger

logger = get_logger(__name__)


@dataclass
class MigrationConfig:
    """
    Config for one migration run.

    concurrency: worker threads assigning transactions.
    max_in_flight: cap on dispatched but uncollected transactions.
    validate: run the AssignmentValidator on every assignment.
    legacy_grouping: per_key | per_seed, see config.env.
    """

    concurrency: int = env.DEFAULT_CONCURRENCY
    max_in_flight: int = env.DEFAULT_CONCURRENCY * env.IN_FLIGHT_PER_WORKER
    validate: bool = True
    legacy_grouping: str = env.LEGACY_GROUPING_PER_KEY

    def __post_init__(self) -> None:
        self.concurrency = max(env.MIN_CONCURRENCY, int(self.concurrency))
        self.max_in_flight = max(self.concurrency, int(self.max_in_flight))
        if self.legacy_grouping not in env.LEGACY_GROUPINGS:
            raise ValueError(f"legacy_grouping must be one of {env.LEGACY_GROUPINGS}, got {self.legacy_grouping!r}")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MigrationConfig":
        settings = settings or get_settings()
        return cls(
            concurrency=settings.concurrency,
            max_in_flight=settings.max_in_flight,
            validate=settings.validate,
            legacy_grouping=settings.legacy_grouping,
        )


@dataclass
class MigrationContext:
    """Frozen indexes and the stateless workers shared by every assignment thread."""

    registry: AddressRegistry
    resolver: NullifierResolver
    viewing_keys: ViewingKeyIndex
    prevout_index: PrevoutIndex
    extractor: TransactionSignalExtractor
    engine: AccountAssignmentEngine
    validator: AssignmentValidator | None
    diagnostics: DiagnosticsLog


@dataclass
class MigrationResult:
    assignments: list[Assignment] = field(default_factory=list)
    accounts: list[AccountRecord] = field(default_factory=list)
    diagnostics: DiagnosticsLog = field(default_factory=DiagnosticsLog)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    cancelled: bool = False
    unowned_keys: list[KeyMaterial] = field(default_factory=list)
    seed_material: SeedMaterial | None = None

    @property
    def unassigned_txids(self) -> list[str]:
        return sorted(a.txid for a in self.assignments if a.is_unassigned)

    def accounts_for(self, txid: str) -> frozenset[AccountKey]:
        for assignment in self.assignments:
            if assignment.txid == txid:
                return assignment.accounts
        return frozenset()


def build_context(
    snapshot: WalletSnapshot,
    config: MigrationConfig,
    diagnostics: DiagnosticsLog,
) -> MigrationContext:
    registry = build_address_registry(snapshot, diagnostics, legacy_grouping=config.legacy_grouping)
    viewing_keys = ViewingKeyIndex.from_snapshot(snapshot)
    resolver = build_nullifier_resolver(snapshot, registry, viewing_keys, diagnostics)
    prevout_index = build_prevout_index(snapshot.transactions, snapshot.network)
    validator = None
    if config.validate:
        validator = AssignmentValidator(registry, resolver, viewing_keys, prevout_index, snapshot.network)
    return MigrationContext(
        registry=registry,
        resolver=resolver,
        viewing_keys=viewing_keys,
        prevout_index=prevout_index,
        extractor=TransactionSignalExtractor(viewing_keys, snapshot.network, diagnostics),
        engine=AccountAssignmentEngine(
            registry, resolver, prevout_index, snapshot.labelled_addresses()
        ),
        validator=validator,
        diagnostics=diagnostics,
    )


def assign_transaction(ctx: MigrationContext, tx: Transaction) -> tuple[Assignment, list[Discrepancy]]:
    """Extract, assign and (optionally) validate one transaction."""
    signals = ctx.extractor.extract(tx)
    assignment = ctx.engine.assign(tx, signals)
    discrepancies = _validate_safe(ctx, tx, assignment) if ctx.validator is not None else []
    if assignment.is_unassigned:
        ctx.diagnostics.record(
            DiagnosticKind.UNRESOLVED_TRANSACTION,
            "no_ownership_evidence",
            txid=tx.txid,
        )
    return assignment, discrepancies


def _validate_safe(ctx: MigrationContext, tx: Transaction, assignment: Assignment) -> list[Discrepancy]:
    """Validate one assignment; a validator error is recorded and never discards the assignment."""
    try:
        discrepancies = ctx.validator.validate(tx, assignment.accounts)
    except Exception as e:
        bind_transaction(tx.txid).warning(
            "transaction_validation_failed",
            error=str(e),
            exc_info=True,
        )
        ctx.diagnostics.record(
            DiagnosticKind.DISCREPANCY,
            "validation_failed",
            txid=tx.txid,
            error=str(e),
        )
        return []
    for d in discrepancies:
        ctx.diagnostics.record(
            DiagnosticKind.DISCREPANCY,
            d.kind.value,
            txid=tx.txid,
            account=str(d.account),
        )
    return discrepancies


def _assign_safe(ctx: MigrationContext, tx: Transaction) -> tuple[Assignment, list[Discrepancy]]:
    """Run assign_transaction; on any error log it and carry the transaction forward unassigned."""
    try:
        return assign_transaction(ctx, tx)
    except Exception as e:
        bind_transaction(tx.txid).warning(
            "transaction_assignment_failed",
            error=str(e),
            exc_info=True,
        )
        ctx.diagnostics.record(
            DiagnosticKind.UNRESOLVED_TRANSACTION,
            "assignment_failed",
            txid=tx.txid,
            error=str(e),
        )
        return Assignment(txid=tx.txid), []


def run_migration(
    snapshot: WalletSnapshot,
    config: MigrationConfig | None = None,
    stop_event: threading.Event | None = None,
) -> MigrationResult:
    """
    Migrate one wallet snapshot.

    Raises ConflictingRegistration / NullifierCollision when the indexes
    cannot be built. Assignments are returned sorted by txid.
    """
    config = config or MigrationConfig()
    if stop_event is None:
        stop_event = threading.Event()
    diagnostics = DiagnosticsLog()
    ctx = build_context(snapshot, config, diagnostics)

    logger.info(
        "migration_started",
        transactions=len(snapshot.transactions),
        accounts=ctx.registry.account_count,
        concurrency=config.concurrency,
        validate=config.validate,
    )

    assignments: list[Assignment] = []
    discrepancies: list[Discrepancy] = []
    cancelled = False
    pending: set[Future] = set()

    def collect(done: set[Future]) -> None:
        for fut in done:
            assignment, found = fut.result()
            assignments.append(assignment)
            discrepancies.extend(found)

    with ThreadPoolExecutor(max_workers=config.concurrency) as executor:
        for tx in snapshot.transactions:
            if stop_event.is_set():
                cancelled = True
                break
            if len(pending) >= config.max_in_flight:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                collect(done)
                if stop_event.is_set():
                    cancelled = True
                    break
            pending.add(executor.submit(_assign_safe, ctx, tx))
        done, _ = wait(pending)
        collect(done)

    if cancelled:
        logger.warning(
            "migration_cancelled",
            dispatched=len(assignments),
            remaining=len(snapshot.transactions) - len(assignments),
        )

    assignments.sort(key=lambda a: a.txid)
    discrepancies.sort(key=lambda d: (d.txid, d.kind.value, d.account.sort_key))
    accounts = build_account_records(snapshot, ctx.registry, assignments)
    unowned_keys = collect_unowned_keys(snapshot, ctx.registry)

    logger.info(
        "migration_done",
        assigned=sum(1 for a in assignments if not a.is_unassigned),
        unassigned=sum(1 for a in assignments if a.is_unassigned),
        multi_account=sum(1 for a in assignments if len(a.accounts) > 1),
        discrepancies=len(discrepancies),
        unowned_keys=len(unowned_keys),
        diagnostics=len(diagnostics),
        cancelled=cancelled,
    )
    return MigrationResult(
        assignments=assignments,
        accounts=accounts,
        diagnostics=diagnostics,
        discrepancies=discrepancies,
        cancelled=cancelled,
        unowned_keys=unowned_keys,
        seed_material=snapshot.seed_material,
    )
