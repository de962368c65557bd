"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serializing to camelCase, accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidateCodeRequest(ApiModel):
    """Request model for code validation. Blank codes are rejected by the service."""

    code: str | None = Field(default=None, description="Activation code to validate")


class ValidateCodeResponse(ApiModel):
    """Response model for code validation."""

    is_valid: bool
    message: str
    expires_at: datetime | None = None
    validation_count: int | None = None
    remaining_validations: int | None = None


class AdminLoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminLoginResponse(ApiModel):
    success: bool
    message: str
    token: str | None = None


class ChangePasswordRequest(ApiModel):
    old_password: str = Field(..., min_length=1)
    # Length checked by AdminAccountService
    new_password: str = Field(..., description="New password (min 6 characters)")


class GenerateCodesRequest(ApiModel):
    count: int = Field(..., description="Number of codes to generate")
    prefix: str | None = Field(default=None, description="Code prefix, defaults to CODE")


class GenerateCodesResponse(ApiModel):
    message: str
    count: int
    prefix: str
    codes: list[str] | None = None
    note: str | None = None


class ActivationCodeResponse(ApiModel):
    id: int
    code: str
    is_used: bool
    activated_at: datetime | None = None
    expires_at: datetime | None = None
    validation_count: int
    last_validated_at: datetime | None = None
    created_at: datetime | None = None


class PagedCodesResponse(ApiModel):
    codes: list[ActivationCodeResponse]
    total_count: int
    page_size: int
    next_skip_token: int | None = None
    has_more: bool


class CodeStatsResponse(ApiModel):
    total_codes: int
    unused_codes: int
    used_codes: int
    active_codes: int


class BatchDeleteRequest(ApiModel):
    pattern: str = Field(..., description="Regular expression searched in each code")
    dry_run: bool = False


class BatchDeleteResponse(ApiModel):
    success: bool
    message: str
    matched_count: int = 0
    deleted_count: int = 0
    matched_codes: list[str] = Field(default_factory=list)
    was_dry_run: bool = False


class DeleteExpiredResponse(ApiModel):
    message: str
    deleted_count: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
