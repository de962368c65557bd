"""
Activation code lifecycle - Validation state machine.

Every validation attempt on an existing code is counted, then the
counted record is classified in priority order:

    count > limit            -> INVALIDATED  (terminal, remaining = 0)
    used and now < expires   -> STILL_VALID
    used otherwise           -> EXPIRED
    unused                   -> ACTIVATED    (used, activated_at = now,
                                              expires_at = now + period)

Invariants kept by every transition:
- unused codes have neither activated_at nor expires_at
- used codes have both, with expires_at = activated_at + period
- activated_at and expires_at are written once, on the ACTIVATED branch

The functions here are pure. Persistence and locking live in the
repository, which calls evaluate() while holding the row lock.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from .ports import ActivationCode, ValidationOutcome, ValidationStatus

DEFAULT_MAX_VALIDATIONS = 3
DEFAULT_ACTIVATION_PERIOD = timedelta(days=7)


@dataclass(frozen=True)
class ValidationPolicy:
    """Tunable limits of the state machine."""

    max_validations: int = DEFAULT_MAX_VALIDATIONS
    activation_period: timedelta = DEFAULT_ACTIVATION_PERIOD

    def remaining(self, validation_count: int) -> int:
        return max(0, self.max_validations - validation_count)


def evaluate(
    record: ActivationCode, now: datetime, policy: ValidationPolicy
) -> tuple[ActivationCode, ValidationOutcome]:
    """
    Compute the next record state and the outcome of one validation.

    Args:
        record: Current record, as read under lock
        now: Time of the attempt
        policy: Validation limit and activation period

    Returns:
        (updated record to persist, outcome to return)
    """
    count = record.validation_count + 1
    counted = replace(record, validation_count=count, last_validated_at=now)

    if count > policy.max_validations:
        return counted, ValidationOutcome(
            status=ValidationStatus.INVALIDATED,
            validation_count=count,
            remaining_validations=0,
        )

    remaining = policy.remaining(count)

    if counted.is_used:
        if counted.expires_at is not None and now < counted.expires_at:
            return counted, ValidationOutcome(
                status=ValidationStatus.STILL_VALID,
                expires_at=counted.expires_at,
                validation_count=count,
                remaining_validations=remaining,
            )
        return counted, ValidationOutcome(
            status=ValidationStatus.EXPIRED,
            validation_count=count,
            remaining_validations=remaining,
        )

    expires_at = now + policy.activation_period
    activated = replace(counted, is_used=True, activated_at=now, expires_at=expires_at)
    return activated, ValidationOutcome(
        status=ValidationStatus.ACTIVATED,
        expires_at=expires_at,
        validation_count=count,
        remaining_validations=remaining,
    )
