"""
Transaction-to-account assignment: address registry, nullifier resolver,
signal extraction, the assignment engine and its validator.
"""

from zmigrate.assignment.diagnostics import Diagnostic, DiagnosticKind, DiagnosticsLog
from zmigrate.assignment.engine import (
    AccountAssignmentEngine,
    Assignment,
    AssignmentTier,
    OutputRef,
    assign_accounts,
)
from zmigrate.assignment.nullifiers import Nullifier, NullifierResolver, build_nullifier_resolver
from zmigrate.assignment.registry import AddressRegistry, build_address_registry
from zmigrate.assignment.signals import (
    AddressSignal,
    Direction,
    PrevoutIndex,
    SignalSet,
    SignalSource,
    TransactionSignalExtractor,
    build_prevout_index,
)
from zmigrate.assignment.validator import AssignmentValidator, Discrepancy, DiscrepancyKind
from zmigrate.assignment.viewing_keys import ViewingKeyIndex

__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsLog",
    "AccountAssignmentEngine",
    "Assignment",
    "AssignmentTier",
    "OutputRef",
    "assign_accounts",
    "Nullifier",
    "NullifierResolver",
    "build_nullifier_resolver",
    "AddressRegistry",
    "build_address_registry",
    "AddressSignal",
    "Direction",
    "PrevoutIndex",
    "SignalSet",
    "SignalSource",
    "TransactionSignalExtractor",
    "build_prevout_index",
    "AssignmentValidator",
    "Discrepancy",
    "DiscrepancyKind",
    "ViewingKeyIndex",
]
