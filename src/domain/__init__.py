"""
Domain layer - Pure business logic with zero framework imports.

This package contains the activation code lifecycle: the validation state
machine, admin batch operations, the expiry sweeper and admin accounts.
It defines its own port interfaces for infrastructure abstraction.
"""

from .accounts import AdminAccountService
from .activation import ActivationService
from .administration import BatchDeleteResult, CodeAdministrationService
from .exceptions import (
    ActivationError,
    CodeNotFound,
    InvalidPattern,
    InvalidRequest,
    StorageConflict,
)
from .lifecycle import ValidationPolicy, evaluate
from .ports import (
    ActivationCode,
    AdminRepository,
    CodePage,
    CodeRepository,
    CodeStats,
    ValidationOutcome,
    ValidationStatus,
)
from .sweeper import ExpirySweeper

__all__ = [
    "ActivationCode",
    "ActivationError",
    "ActivationService",
    "AdminAccountService",
    "AdminRepository",
    "BatchDeleteResult",
    "CodeAdministrationService",
    "CodeNotFound",
    "CodePage",
    "CodeRepository",
    "CodeStats",
    "ExpirySweeper",
    "InvalidPattern",
    "InvalidRequest",
    "StorageConflict",
    "ValidationOutcome",
    "ValidationPolicy",
    "ValidationStatus",
    "evaluate",
]
