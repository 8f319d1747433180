"""
Application-level exceptions.

Structural conflicts (ambiguous address ownership, colliding nullifiers)
abort a migration run; each exception carries a stable error code and the
identities involved so the caller can report them verbatim.
"""

from __future__ import annotations

from typing import Any


class MigrationError(Exception):
    """Base class for all migration errors."""

    code = "migration_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


class ConflictingRegistration(MigrationError):
    """The same address was bound to two different accounts."""

    code = "conflicting_registration"

    def __init__(self, address_id: Any, existing: Any, attempted: Any) -> None:
        super().__init__(
            f"Address {address_id} is already bound to {existing}; refusing to rebind to {attempted}",
            address_id=address_id,
            existing=existing,
            attempted=attempted,
        )
        self.address_id = address_id
        self.existing = existing
        self.attempted = attempted


class NullifierCollision(MigrationError):
    """The same nullifier resolves to two different accounts within one pool."""

    code = "nullifier_collision"

    def __init__(self, nullifier: Any, existing: Any, attempted: Any) -> None:
        super().__init__(
            f"Nullifier {nullifier} already spends a note of {existing}; it cannot also belong to {attempted}",
            nullifier=nullifier,
            existing=existing,
            attempted=attempted,
        )
        self.nullifier = nullifier
        self.existing = existing
        self.attempted = attempted


class RegistryFrozenError(MigrationError):
    """An index was mutated after construction finished."""

    code = "registry_frozen"


class SnapshotFormatError(MigrationError, ValueError):
    """A wallet snapshot payload is missing fields or holds malformed values."""

    code = "snapshot_format"
