"""
Domain exceptions - Semantic error types for activation code handling.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Validation outcomes such as EXPIRED or INVALIDATED are not exceptions;
they are returned as values (see ports.ValidationStatus).
"""


class ActivationError(Exception):
    """Base class for activation domain errors."""

    pass


class InvalidRequest(ActivationError):
    """Client input rejected before any state was touched."""

    pass


class InvalidPattern(InvalidRequest):
    """Batch delete pattern is not a valid regular expression."""

    pass


class CodeNotFound(ActivationError):
    """No activation code with the requested value exists."""

    pass


class StorageConflict(ActivationError):
    """Generated codes kept colliding with existing ones."""

    pass
