"""
Health probes - liveness, readiness, startup and a detailed summary.

Readiness and startup report 503 while the database is unreachable;
readiness additionally requires the admin bootstrap to have run.
"""

import logging
from datetime import datetime, timezone

import psycopg
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.adapters.repository.postgres import PostgresAdminRepository, PostgresCodeRepository, ping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unavailable(payload: dict) -> JSONResponse:
    payload["timestamp"] = _timestamp()
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=payload)


@router.get("/live")
def liveness() -> dict:
    """The process answers requests."""
    return {"status": "alive", "timestamp": _timestamp()}


@router.get("/ready")
def readiness(request: Request):
    """Database reachable and admin account initialized."""
    pool = request.app.state.pool
    try:
        ping(pool)
        admin_exists = PostgresAdminRepository(pool).any_admin_exists()
    except psycopg.Error as e:
        logger.warning("Readiness check failed: %s", e)
        return _unavailable({"status": "not_ready", "reason": "database_unavailable"})

    if not admin_exists:
        logger.warning("Readiness check failed: Admin user not initialized")
        return _unavailable({"status": "not_ready", "reason": "database_not_initialized"})

    return {"status": "ready", "database": "connected", "timestamp": _timestamp()}


@router.get("/startup")
def startup(request: Request):
    """Database reachable; used to hold off liveness checks during slow starts."""
    try:
        ping(request.app.state.pool)
    except psycopg.Error as e:
        logger.warning("Startup check failed: %s", e)
        return _unavailable({"status": "starting", "reason": "database_unavailable"})

    return {"status": "started", "database": "initialized", "timestamp": _timestamp()}


@router.get("")
def health(request: Request):
    """
    Health check endpoint with database validation.

    Returns 200 with per-check details when the database answers,
    503 otherwise.
    """
    pool = request.app.state.pool
    try:
        ping(pool)
        stats = PostgresCodeRepository(pool).stats(datetime.now(timezone.utc))
    except psycopg.Error as e:
        logger.error("Health check failed: %s", e)
        return _unavailable({"status": "unhealthy", "error": str(e)})

    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "checks": {
            "database": {"status": "healthy", "message": "Connected"},
            "database_data": {"status": "healthy", "activationCodes": stats.total},
            "version": {"status": "healthy", "version": request.app.version},
        },
    }
