"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAdminRepository,
    PostgresCodeRepository,
    run_migrations,
)
from src.api.health import router as health_router
from src.api.rate_limit import SlidingWindowRateLimiter
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.accounts import AdminAccountService
from src.domain.administration import CodeAdministrationService
from src.domain.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "activation",
        "description": "Public activation code validation",
    },
    {
        "name": "admin",
        "description": "Code generation, listing, statistics and deletion (bearer token required)",
    },
    {
        "name": "health",
        "description": "Liveness, readiness and startup probes",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations, bootstraps the default admin, optionally seeds codes
    - Starts the expiry sweeper
    - Stops the sweeper and closes the connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    code_repository = PostgresCodeRepository(pool)

    if settings.bootstrap_admin:
        AdminAccountService(
            repository=PostgresAdminRepository(pool), bcrypt_cost=settings.bcrypt_cost
        ).bootstrap_default_admin(
            settings.default_admin_username, settings.default_admin_password
        )

    if settings.seed_demo_codes:
        CodeAdministrationService(repository=code_repository).seed_codes()

    # Store pool in app state for dependency injection
    app.state.pool = pool

    sweeper = ExpirySweeper(
        code_repository,
        interval_seconds=settings.sweep_interval_seconds,
        shutdown_grace_seconds=settings.sweep_shutdown_grace_seconds,
    )
    if settings.sweeper_enabled:
        sweeper.start()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await sweeper.stop()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="keygate",
    description="Activation Code API - Issue, validate and administer single-use activation codes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.rate_limiter = SlidingWindowRateLimiter(
    max_requests=get_settings().rate_limit_requests,
    window_seconds=get_settings().rate_limit_window_seconds,
)


@app.exception_handler(psycopg.Error)
async def storage_error_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    """Surface storage failures as a generic 500 carrying the driver message."""
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Storage failure: {exc}"},
    )


# Include v1 API routes
app.include_router(v1_router, prefix="/v1")
app.include_router(health_router)
