"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.auth.jwt_tokens import JwtTokenService
from src.adapters.repository.postgres import PostgresAdminRepository, PostgresCodeRepository
from src.config.settings import get_settings
from src.domain.accounts import AdminAccountService
from src.domain.activation import ActivationService
from src.domain.administration import CodeAdministrationService
from src.domain.lifecycle import ValidationPolicy


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_code_repository(request: Request) -> PostgresCodeRepository:
    """Create code repository with connection pool from app state."""
    return PostgresCodeRepository(get_pool(request))


def get_admin_repository(request: Request) -> PostgresAdminRepository:
    """Create admin repository with connection pool from app state."""
    return PostgresAdminRepository(get_pool(request))


def get_validation_policy() -> ValidationPolicy:
    settings = get_settings()
    return ValidationPolicy(
        max_validations=settings.max_validations,
        activation_period=timedelta(days=settings.activation_days),
    )


def get_activation_service(request: Request) -> ActivationService:
    """Create activation service wired to the code repository."""
    return ActivationService(
        repository=get_code_repository(request), policy=get_validation_policy()
    )


def get_administration_service(request: Request) -> CodeAdministrationService:
    """Create code administration service with batch limits from settings."""
    settings = get_settings()
    return CodeAdministrationService(
        repository=get_code_repository(request),
        max_generate_count=settings.max_generate_count,
        batch_size=settings.generate_batch_size,
        max_page_size=settings.max_page_size,
    )


def get_account_service(request: Request) -> AdminAccountService:
    settings = get_settings()
    return AdminAccountService(
        repository=get_admin_repository(request), bcrypt_cost=settings.bcrypt_cost
    )


def get_token_service() -> JwtTokenService:
    settings = get_settings()
    return JwtTokenService(
        secret_key=settings.jwt_secret_key,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        lifetime=timedelta(minutes=settings.token_lifetime_minutes),
    )


# Bearer token security scheme for OpenAPI documentation.
# auto_error=False so a missing header yields 401 rather than FastAPI's 403.
http_bearer = HTTPBearer(auto_error=False)


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    tokens: JwtTokenService = Depends(get_token_service),
) -> str:
    """
    Authorize the request as an admin.

    Returns:
        The authenticated admin username

    Raises:
        HTTPException 401: missing, invalid or expired bearer token
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization token is missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = tokens.verify(credentials.credentials)
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return username
