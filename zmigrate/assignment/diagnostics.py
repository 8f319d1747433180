"""
Append-only diagnostics log for non-fatal migration findings.

Workers append concurrently; entry order carries no meaning. Nothing in
here ever corrects data: it only records what the pipeline could not
resolve so the migration summary can report it.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from zmigrate.zmigrate_logging import get_logger

logger = get_logger(__name__)


class DiagnosticKind(str, Enum):
    UNRESOLVED_TRANSACTION = "unresolved_transaction"
    MISSING_METADATA = "missing_metadata"
    UNRESOLVED_NULLIFIER = "unresolved_nullifier"
    DISCREPANCY = "discrepancy"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    reason: str
    """Short machine-readable cause, e.g. "note_without_nullifier"."""
    txid: str | None = None
    details: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "reason": self.reason,
            "txid": self.txid,
            "details": {k: str(v) for k, v in self.details.items()},
        }


class DiagnosticsLog:
    """Thread-safe append-only collection of Diagnostic entries."""

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []
        self._lock = threading.Lock()

    def record(
        self,
        kind: DiagnosticKind,
        reason: str,
        *,
        txid: str | None = None,
        **details: Any,
    ) -> Diagnostic:
        entry = Diagnostic(kind=kind, reason=reason, txid=txid, details=details)
        with self._lock:
            self._entries.append(entry)
        logger.debug("diagnostic_recorded", kind=kind.value, reason=reason, txid=txid, **details)
        return entry

    def entries(self, kind: DiagnosticKind | None = None) -> list[Diagnostic]:
        with self._lock:
            snapshot = list(self._entries)
        if kind is None:
            return snapshot
        return [e for e in snapshot if e.kind is kind]

    def count_by_kind(self) -> dict[str, int]:
        counts = Counter(e.kind.value for e in self.entries())
        return dict(sorted(counts.items()))

    def count_by_reason(self, kind: DiagnosticKind) -> dict[str, int]:
        counts = Counter(e.reason for e in self.entries(kind))
        return dict(sorted(counts.items()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
