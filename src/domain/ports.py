"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the value types the domain works with and the
interfaces (ports) that the domain requires from infrastructure.
Adapters implement these protocols.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class ValidationStatus(str, Enum):
    """
    Result of a validation attempt.

    Success outcomes:
    - ACTIVATED: first successful validation, code transitions to used
    - STILL_VALID: code already used and still inside its access window

    Failure outcomes:
    - REJECTED: blank input, no record touched
    - NOT_FOUND: no record with that code
    - INVALIDATED: validation limit exceeded (terminal)
    - EXPIRED: access window elapsed (terminal for this activation)
    """

    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    INVALIDATED = "invalidated"
    EXPIRED = "expired"
    STILL_VALID = "still_valid"
    ACTIVATED = "activated"


@dataclass(frozen=True)
class ActivationCode:
    """Snapshot of one activation code record."""

    id: int
    code: str
    is_used: bool = False
    activated_at: datetime | None = None
    expires_at: datetime | None = None
    validation_count: int = 0
    last_validated_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ValidationOutcome:
    """Outcome of validate(), carrying the counters after the attempt."""

    status: ValidationStatus
    expires_at: datetime | None = None
    validation_count: int | None = None
    remaining_validations: int | None = None

    @property
    def is_valid(self) -> bool:
        return self.status in (ValidationStatus.ACTIVATED, ValidationStatus.STILL_VALID)


@dataclass(frozen=True)
class CodePage:
    """One page of a cursor-paginated listing."""

    codes: list[ActivationCode]
    total_count: int
    next_cursor: int | None
    has_more: bool


@dataclass(frozen=True)
class CodeStats:
    """Aggregate code counts."""

    total: int
    unused: int
    used: int
    active: int


# Pure state transition applied by the repository while it holds the row lock.
Transition = Callable[[ActivationCode], tuple[ActivationCode, ValidationOutcome]]


class CodeRepository(Protocol):
    """Port interface for activation code persistence."""

    def find(self, code: str) -> ActivationCode | None:
        """Return the record with this exact code, or None."""
        ...

    def insert_many(self, codes: Sequence[str]) -> list[str]:
        """
        Insert unused codes in one transaction.

        Duplicates are skipped by the storage uniqueness constraint.

        Returns:
            The codes that were actually inserted
        """
        ...

    def validate(self, code: str, transition: Transition) -> ValidationOutcome | None:
        """
        Apply a validation transition to one record atomically.

        Implementations must read, transform and persist the record as a
        single unit under a per-record lock (SELECT FOR UPDATE), so that
        concurrent validations of the same code are serialized.

        Args:
            code: Exact code value
            transition: Pure function producing the new record and outcome

        Returns:
            The transition's outcome, or None when no record matches
        """
        ...

    def delete(self, code: str) -> bool:
        """Delete one record. Returns False when it did not exist."""
        ...

    def delete_codes(self, codes: Sequence[str]) -> int:
        """Delete the given codes in one statement. Returns rows deleted."""
        ...

    def delete_expired(self, now: datetime, timeout_seconds: float | None = None) -> int:
        """
        Delete all used codes whose expires_at is before now.

        timeout_seconds bounds the statement; the store aborts it once exceeded.
        """
        ...

    def all_codes(self) -> list[str]:
        """Return every code value (full scan)."""
        ...

    def page(self, is_used: bool | None, cursor: int | None, limit: int) -> CodePage:
        """
        Return records with id > cursor ordered by id, at most limit of them.

        Args:
            is_used: Optional filter on the used flag
            cursor: Last id seen by the caller, None for the first page
            limit: Maximum number of records returned
        """
        ...

    def stats(self, now: datetime) -> CodeStats:
        """Return total/unused/used/active counts as of now."""
        ...


class AdminRepository(Protocol):
    """Port interface for admin credential persistence."""

    def any_admin_exists(self) -> bool:
        ...

    def create_admin(self, username: str, password_hash: str) -> bool:
        """Create an admin. Returns False when the username is taken."""
        ...

    def get_password_hash(self, username: str) -> str | None:
        ...

    def update_password_hash(self, username: str, password_hash: str) -> bool:
        ...
