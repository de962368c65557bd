"""
Activation domain service - public validation entry point.

Input screening happens here; the counted read-modify-write is delegated
to the repository, which applies lifecycle.evaluate() under a row lock.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial

from .lifecycle import ValidationPolicy, evaluate
from .ports import CodeRepository, ValidationOutcome, ValidationStatus

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ActivationService:
    """
    Domain service for code validation.

    Deterministic given the stored record and the supplied time.
    """

    repository: CodeRepository
    policy: ValidationPolicy = field(default_factory=ValidationPolicy)

    def validate(self, code: str | None, now: datetime | None = None) -> ValidationOutcome:
        """
        Validate (and on first use, activate) an activation code.

        Args:
            code: Code as submitted by the client, matched exactly
            now: Time of the attempt, defaults to the current UTC time

        Returns:
            ValidationOutcome; REJECTED and NOT_FOUND carry no counters
        """
        if code is None or not code.strip():
            return ValidationOutcome(status=ValidationStatus.REJECTED)
        if "\x00" in code:
            # Text columns cannot hold NUL, so no stored code matches
            logger.warning("Activation code not found: %r", code)
            return ValidationOutcome(status=ValidationStatus.NOT_FOUND)

        now = now or utc_now()
        outcome = self.repository.validate(code, partial(evaluate, now=now, policy=self.policy))

        if outcome is None:
            logger.warning("Activation code not found: %s", code)
            return ValidationOutcome(status=ValidationStatus.NOT_FOUND)

        if outcome.status == ValidationStatus.ACTIVATED:
            logger.info(
                "Activation code activated: %s, expires at: %s, validation count: %s",
                code,
                outcome.expires_at,
                outcome.validation_count,
            )
        elif outcome.status == ValidationStatus.INVALIDATED:
            logger.warning(
                "Activation code validation limit exceeded: %s, count: %s",
                code,
                outcome.validation_count,
            )
        return outcome
