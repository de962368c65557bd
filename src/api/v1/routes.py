"""
API v1 public routes.

Defines the public activation code validation endpoint.
"""

from fastapi import APIRouter, Depends, Response, status

from src.api.dependencies import get_activation_service
from src.api.models import ValidateCodeRequest, ValidateCodeResponse
from src.api.rate_limit import enforce_rate_limit
from src.domain.activation import ActivationService
from src.domain.ports import ValidationOutcome, ValidationStatus

router = APIRouter(prefix="/activation", tags=["activation"])

_MESSAGES = {
    ValidationStatus.REJECTED: "Activation code is required",
    ValidationStatus.NOT_FOUND: "Activation code not found",
    ValidationStatus.INVALIDATED: (
        "Activation code has been invalidated due to excessive validation attempts"
    ),
    ValidationStatus.EXPIRED: "Activation code has expired",
    ValidationStatus.STILL_VALID: "Activation code is valid",
    ValidationStatus.ACTIVATED: "Activation code successfully activated",
}

_STATUS_CODES = {
    ValidationStatus.REJECTED: status.HTTP_400_BAD_REQUEST,
    ValidationStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ValidationStatus.INVALIDATED: status.HTTP_400_BAD_REQUEST,
    ValidationStatus.EXPIRED: status.HTTP_400_BAD_REQUEST,
    ValidationStatus.STILL_VALID: status.HTTP_200_OK,
    ValidationStatus.ACTIVATED: status.HTTP_200_OK,
}


def to_response(outcome: ValidationOutcome) -> ValidateCodeResponse:
    return ValidateCodeResponse(
        is_valid=outcome.is_valid,
        message=_MESSAGES[outcome.status],
        expires_at=outcome.expires_at,
        validation_count=outcome.validation_count,
        remaining_validations=outcome.remaining_validations,
    )


@router.post(
    "/validate",
    response_model=ValidateCodeResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ValidateCodeResponse, "description": "Code missing, invalidated or expired"},
        404: {"model": ValidateCodeResponse, "description": "Code not found"},
        429: {"description": "Too many requests"},
    },
    dependencies=[Depends(enforce_rate_limit)],
    summary="Validate an activation code",
    description="Validate an activation code. The first successful validation "
    "activates the code for 7 days. Every attempt is counted; after 3 attempts "
    "the code is permanently invalidated.",
)
def validate_code(
    request_data: ValidateCodeRequest,
    response: Response,
    service: ActivationService = Depends(get_activation_service),
) -> ValidateCodeResponse:
    """
    Validate (and on first use, activate) an activation code.

    - **code**: the activation code, matched exactly
    """
    outcome = service.validate(request_data.code)
    response.status_code = _STATUS_CODES[outcome.status]
    return to_response(outcome)
