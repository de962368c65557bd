"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A PostgreSQL connection pool (integration and adversarial suites)
- Table cleanup between database tests

Database tests are skipped when DATABASE_URL is unreachable.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool against the configured database, migrated."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=3):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean activation_codes and admin_users tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM activation_codes")
        conn.execute("DELETE FROM admin_users")
        conn.commit()
    yield
