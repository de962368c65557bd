"""
API v1 admin routes.

Login is public; every other endpoint requires an admin bearer token.
Admin operations act on the code store directly, bypassing validation.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.auth.jwt_tokens import JwtTokenService
from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import (
    get_account_service,
    get_administration_service,
    get_pool,
    get_token_service,
    require_admin,
)
from src.api.models import (
    ActivationCodeResponse,
    AdminLoginRequest,
    AdminLoginResponse,
    BatchDeleteRequest,
    BatchDeleteResponse,
    ChangePasswordRequest,
    CodeStatsResponse,
    DeleteExpiredResponse,
    ErrorResponse,
    GenerateCodesRequest,
    GenerateCodesResponse,
    MessageResponse,
    PagedCodesResponse,
)
from src.api.rate_limit import enforce_rate_limit
from src.config.settings import get_settings
from src.domain.accounts import AdminAccountService
from src.domain.administration import DEFAULT_PREFIX, CodeAdministrationService
from src.domain.exceptions import CodeNotFound, InvalidRequest, StorageConflict

logger = logging.getLogger(__name__)

# Generated codes are echoed back only for small batches.
_MAX_LISTED_CODES = 100

public_router = APIRouter(prefix="/admin", tags=["admin"])
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@public_router.post(
    "/login",
    response_model=AdminLoginResponse,
    responses={
        401: {"model": AdminLoginResponse, "description": "Invalid credentials"},
        429: {"description": "Too many requests"},
    },
    dependencies=[Depends(enforce_rate_limit)],
    summary="Log in as admin",
)
def login(
    request_data: AdminLoginRequest,
    accounts: AdminAccountService = Depends(get_account_service),
    tokens: JwtTokenService = Depends(get_token_service),
) -> AdminLoginResponse | JSONResponse:
    """Exchange admin credentials for a bearer token."""
    if not accounts.authenticate(request_data.username, request_data.password):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=AdminLoginResponse(
                success=False, message="Invalid username or password"
            ).model_dump(by_alias=True),
        )

    logger.info("Admin user logged in: %s", request_data.username)
    return AdminLoginResponse(
        success=True, message="Login successful", token=tokens.issue(request_data.username)
    )


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid old password"}},
    summary="Change the current admin's password",
)
def change_password(
    request_data: ChangePasswordRequest,
    username: str = Depends(require_admin),
    accounts: AdminAccountService = Depends(get_account_service),
) -> MessageResponse:
    try:
        changed = accounts.change_password(
            username, request_data.old_password, request_data.new_password
        )
    except InvalidRequest as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    if not changed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid old password"
        )
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/generate-codes",
    response_model=GenerateCodesResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse, "description": "Count out of range"}},
    summary="Generate activation codes",
    description="Generate unused codes of the form PREFIX-XXXXXXXXXXXX. "
    "Codes are listed in the response only for batches of 100 or fewer.",
)
def generate_codes(
    request_data: GenerateCodesRequest,
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> GenerateCodesResponse:
    prefix = (request_data.prefix or "").strip() or DEFAULT_PREFIX
    try:
        codes = admin.generate_codes(request_data.count, prefix)
    except InvalidRequest as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except StorageConflict as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from None

    small = len(codes) <= _MAX_LISTED_CODES
    return GenerateCodesResponse(
        message=f"Successfully generated {len(codes)} activation codes",
        count=len(codes),
        prefix=prefix,
        codes=codes if small else None,
        note=None if small else "Use GET /v1/admin/codes to retrieve the generated codes",
    )


@router.get(
    "/codes",
    response_model=PagedCodesResponse,
    responses={400: {"model": ErrorResponse, "description": "Page size out of range"}},
    summary="List activation codes",
    description="Cursor-paginated listing ordered by id. Pass nextSkipToken "
    "from the previous page as skipToken.",
)
def list_codes(
    is_used: bool | None = Query(default=None, alias="isUsed"),
    skip_token: int | None = Query(default=None, alias="skipToken"),
    page_size: int | None = Query(default=None, alias="pageSize"),
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> PagedCodesResponse:
    if page_size is None:
        page_size = get_settings().default_page_size
    try:
        page = admin.list_codes(is_used=is_used, cursor=skip_token, page_size=page_size)
    except InvalidRequest as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    return PagedCodesResponse(
        codes=[ActivationCodeResponse(**asdict(code)) for code in page.codes],
        total_count=page.total_count,
        page_size=page_size,
        next_skip_token=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/stats", response_model=CodeStatsResponse, summary="Aggregate code counts")
def get_stats(
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> CodeStatsResponse:
    stats = admin.stats()
    return CodeStatsResponse(
        total_codes=stats.total,
        unused_codes=stats.unused,
        used_codes=stats.used,
        active_codes=stats.active,
    )


# Registered before /codes/{code} so "expired" is not captured as a code.
@router.delete(
    "/codes/expired",
    response_model=DeleteExpiredResponse,
    summary="Delete all used and expired codes",
)
def delete_expired_codes(
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> DeleteExpiredResponse:
    deleted = admin.delete_expired()
    return DeleteExpiredResponse(message=f"Deleted {deleted} expired codes", deleted_count=deleted)


@router.delete(
    "/codes/{code}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Code not found"}},
    summary="Delete one activation code",
)
def delete_code(
    code: str,
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> MessageResponse:
    try:
        admin.delete_code(code)
    except CodeNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Code not found") from None
    return MessageResponse(message="Code deleted successfully")


@router.post(
    "/codes/batch-delete",
    response_model=BatchDeleteResponse,
    responses={400: {"model": BatchDeleteResponse, "description": "Missing or invalid pattern"}},
    summary="Delete codes matching a regular expression",
    description="The pattern is searched in every code. With dryRun the "
    "matches are returned and nothing is deleted.",
)
def batch_delete_codes(
    request_data: BatchDeleteRequest,
    admin: CodeAdministrationService = Depends(get_administration_service),
) -> BatchDeleteResponse | JSONResponse:
    try:
        result = admin.batch_delete(request_data.pattern, dry_run=request_data.dry_run)
    except InvalidRequest as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=BatchDeleteResponse(success=False, message=str(e)).model_dump(by_alias=True),
        )

    if result.dry_run:
        message = f"Dry run completed. Found {result.matched_count} matching codes"
    else:
        message = f"Successfully deleted {result.deleted_count} codes"
    return BatchDeleteResponse(
        success=True,
        message=message,
        matched_count=result.matched_count,
        deleted_count=result.deleted_count,
        matched_codes=result.matched_codes,
        was_dry_run=result.dry_run,
    )


@router.post(
    "/init-database",
    response_model=MessageResponse,
    responses={500: {"description": "Initialization failed"}},
    summary="Initialize storage",
    description="Run the idempotent schema migrations.",
)
def init_database(pool: ConnectionPool = Depends(get_pool)) -> MessageResponse | JSONResponse:
    try:
        run_migrations(pool)
    except RuntimeError as e:
        logger.error("Failed to initialize database: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Failed to initialize database", "error": str(e)},
        )
    logger.info("Database initialized successfully")
    return MessageResponse(message="Database initialized successfully")
