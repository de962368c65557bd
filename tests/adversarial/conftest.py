"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and brute force tests.
The connection pool comes from the root conftest.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresCodeRepository
from src.domain.activation import ActivationService


@pytest.fixture(autouse=True)
def _clean(clean_database: None) -> Generator[None, None, None]:
    """Every adversarial test starts from empty tables."""
    yield


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresCodeRepository:
    return PostgresCodeRepository(pool)


@pytest.fixture
def service(repository: PostgresCodeRepository) -> ActivationService:
    return ActivationService(repository=repository)
