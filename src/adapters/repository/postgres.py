"""
PostgreSQL repository adapters - Implement the domain's repository protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design - Per-Code Serialization:
--------------------------------------------
validate() reads the code row with SELECT ... FOR UPDATE, runs the pure
domain transition, writes the result back and commits, all inside one
transaction on one pooled connection:

1. **Row lock**: concurrent validations of the same code queue on the row
   lock, so exactly one of them can observe is_used = FALSE and perform
   the first activation. Different codes lock different rows.

2. **Single commit**: counter increment and state transition are one
   UPDATE, so a partial write is never visible. The table CHECK constraint
   rejects any row that would break the used/activated_at/expires_at
   invariant.

3. **Sweeper interplay**: the sweeper's DELETE waits on a row held by a
   validation and re-checks its predicate against the committed row.
   expires_at never changes once set, so the decision is unaffected. A
   validation that arrives after the delete committed finds no row.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.ports import (
    ActivationCode,
    CodePage,
    CodeStats,
    Transition,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

_CODE_COLUMNS = (
    "id, code, is_used, activated_at, expires_at, "
    "validation_count, last_validated_at, created_at"
)


def _row_to_code(row: tuple) -> ActivationCode:
    return ActivationCode(
        id=row[0],
        code=row[1],
        is_used=row[2],
        activated_at=row[3],
        expires_at=row[4],
        validation_count=row[5],
        last_validated_at=row[6],
        created_at=row[7],
    )


class PostgresCodeRepository:
    """
    Implements CodeRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find(self, code: str) -> ActivationCode | None:
        sql = f"SELECT {_CODE_COLUMNS} FROM activation_codes WHERE code = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (code,))
            row = cursor.fetchone()
        return _row_to_code(row) if row is not None else None

    def insert_many(self, codes: Sequence[str]) -> list[str]:
        """
        Insert unused codes, skipping values that already exist.

        The UNIQUE constraint on code is the collision check: ON CONFLICT
        DO NOTHING drops duplicates and RETURNING reports what went in.
        """
        if not codes:
            return []

        sql = """
            INSERT INTO activation_codes (code)
            SELECT unnest(%s::text[])
            ON CONFLICT (code) DO NOTHING
            RETURNING code
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (list(codes),))
            inserted = [row[0] for row in cursor.fetchall()]
            conn.commit()
        return inserted

    def validate(self, code: str, transition: Transition) -> ValidationOutcome | None:
        """
        Apply a validation transition to one code under a row lock.

        Args:
            code: Exact code value
            transition: Pure domain transition (lifecycle.evaluate)

        Returns:
            The transition's outcome, or None when the code does not exist
        """
        select_sql = f"""
            SELECT {_CODE_COLUMNS}
            FROM activation_codes
            WHERE code = %s
            FOR UPDATE
        """

        update_sql = """
            UPDATE activation_codes
            SET is_used = %s,
                activated_at = %s,
                expires_at = %s,
                validation_count = %s,
                last_validated_at = %s
            WHERE id = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(select_sql, (code,))
            row = cursor.fetchone()

            if row is None:
                conn.commit()
                return None

            updated, outcome = transition(_row_to_code(row))
            cursor.execute(
                update_sql,
                (
                    updated.is_used,
                    updated.activated_at,
                    updated.expires_at,
                    updated.validation_count,
                    updated.last_validated_at,
                    updated.id,
                ),
            )
            conn.commit()
            return outcome

    def delete(self, code: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM activation_codes WHERE code = %s", (code,))
            conn.commit()
            return cursor.rowcount == 1

    def delete_codes(self, codes: Sequence[str]) -> int:
        if not codes:
            return 0

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "DELETE FROM activation_codes WHERE code = ANY(%s)", (list(codes),)
            )
            conn.commit()
            return cursor.rowcount

    def delete_expired(self, now: datetime, timeout_seconds: float | None = None) -> int:
        """
        Delete used codes that expired before now.

        With timeout_seconds, both the wait for a pooled connection and the
        DELETE itself are bounded. The statement timeout is transaction-local
        (set_config(..., true)), so the connection goes back to the pool
        with its default restored. A timed-out DELETE raises QueryCanceled
        and is rolled back.
        """
        sql = """
            DELETE FROM activation_codes
            WHERE is_used
              AND expires_at IS NOT NULL
              AND expires_at < %s
        """

        with self._pool.connection(timeout=timeout_seconds) as conn, conn.cursor() as cursor:
            if timeout_seconds is not None:
                # 0 would disable the timeout
                timeout_ms = max(1, int(timeout_seconds * 1000))
                cursor.execute(
                    "SELECT set_config('statement_timeout', %s, true)", (f"{timeout_ms}ms",)
                )
            cursor.execute(sql, (now,))
            conn.commit()
            return cursor.rowcount

    def all_codes(self) -> list[str]:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT code FROM activation_codes ORDER BY id")
            return [row[0] for row in cursor.fetchall()]

    def page(self, is_used: bool | None, cursor: int | None, limit: int) -> CodePage:
        """
        Return one cursor page ordered by id.

        Fetches limit + 1 rows so has_more needs no second query. The
        total_count is the size of the filtered set after the cursor.
        """
        conditions: list[str] = []
        params: list[object] = []
        if is_used is not None:
            conditions.append("is_used = %s")
            params.append(is_used)
        if cursor is not None:
            conditions.append("id > %s")
            params.append(cursor)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count_sql = f"SELECT COUNT(*) FROM activation_codes {where}"
        page_sql = f"""
            SELECT {_CODE_COLUMNS}
            FROM activation_codes
            {where}
            ORDER BY id
            LIMIT %s
        """

        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(count_sql, params)
            total_count = cur.fetchone()[0]
            cur.execute(page_sql, [*params, limit + 1])
            rows = cur.fetchall()

        has_more = len(rows) > limit
        codes = [_row_to_code(row) for row in rows[:limit]]
        next_cursor = codes[-1].id if has_more and codes else None
        return CodePage(
            codes=codes, total_count=total_count, next_cursor=next_cursor, has_more=has_more
        )

    def stats(self, now: datetime) -> CodeStats:
        sql = """
            SELECT COUNT(*),
                   COUNT(*) FILTER (WHERE NOT is_used),
                   COUNT(*) FILTER (WHERE is_used),
                   COUNT(*) FILTER (WHERE is_used AND expires_at > %s)
            FROM activation_codes
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (now,))
            total, unused, used, active = cursor.fetchone()
        return CodeStats(total=total, unused=unused, used=used, active=active)


class PostgresAdminRepository:
    """Implements AdminRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def any_admin_exists(self) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT EXISTS (SELECT 1 FROM admin_users)")
            return bool(cursor.fetchone()[0])

    def create_admin(self, username: str, password_hash: str) -> bool:
        sql = """
            INSERT INTO admin_users (username, password_hash)
            VALUES (%s, %s)
            ON CONFLICT (username) DO NOTHING
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username, password_hash))
            conn.commit()
            return cursor.rowcount == 1

    def get_password_hash(self, username: str) -> str | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT password_hash FROM admin_users WHERE username = %s", (username,)
            )
            row = cursor.fetchone()
        return row[0] if row is not None else None

    def update_password_hash(self, username: str, password_hash: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "UPDATE admin_users SET password_hash = %s WHERE username = %s",
                (password_hash, username),
            )
            conn.commit()
            return cursor.rowcount == 1


def ping(pool: ConnectionPool) -> None:
    """Round-trip check; raises psycopg.Error when the database is unreachable."""
    with pool.connection() as conn:
        conn.execute("SELECT 1")


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
