"""Repository adapters - Database implementations."""

from .postgres import PostgresAdminRepository, PostgresCodeRepository, ping, run_migrations

__all__ = ["PostgresAdminRepository", "PostgresCodeRepository", "ping", "run_migrations"]
