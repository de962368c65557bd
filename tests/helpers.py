"""
Test helpers shared across suites.

- InMemoryCodeRepository / InMemoryAdminRepository: thread-safe fakes of
  the repository ports for unit tests
- insert_code / fetch_code_row: direct SQL helpers for database suites
"""

import threading
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from psycopg_pool import ConnectionPool

from src.domain.ports import (
    ActivationCode,
    CodePage,
    CodeStats,
    Transition,
    ValidationOutcome,
)


def is_expired(record: ActivationCode, now: datetime) -> bool:
    """Same predicate as the DELETE in PostgresCodeRepository.delete_expired."""
    return record.is_used and record.expires_at is not None and record.expires_at < now


class InMemoryCodeRepository:
    """
    CodeRepository fake backed by a dict.

    A single lock serializes validate() the way a row lock does in PostgreSQL.
    """

    def __init__(self, codes: Sequence[str] = ()) -> None:
        self._lock = threading.Lock()
        self._next_id = 1
        self.records: dict[str, ActivationCode] = {}
        self.insert_calls: list[list[str]] = []
        self.insert_many(codes)
        self.insert_calls.clear()

    def add(self, record: ActivationCode) -> None:
        with self._lock:
            self.records[record.code] = replace(record, id=self._next_id)
            self._next_id += 1

    def find(self, code: str) -> ActivationCode | None:
        return self.records.get(code)

    def insert_many(self, codes: Sequence[str]) -> list[str]:
        with self._lock:
            self.insert_calls.append(list(codes))
            inserted = []
            for code in codes:
                if code in self.records:
                    continue
                self.records[code] = ActivationCode(id=self._next_id, code=code)
                self._next_id += 1
                inserted.append(code)
            return inserted

    def validate(self, code: str, transition: Transition) -> ValidationOutcome | None:
        with self._lock:
            record = self.records.get(code)
            if record is None:
                return None
            updated, outcome = transition(record)
            self.records[code] = updated
            return outcome

    def delete(self, code: str) -> bool:
        with self._lock:
            return self.records.pop(code, None) is not None

    def delete_codes(self, codes: Sequence[str]) -> int:
        with self._lock:
            return sum(1 for code in codes if self.records.pop(code, None) is not None)

    def delete_expired(self, now: datetime, timeout_seconds: float | None = None) -> int:
        with self._lock:
            expired = [c for c, r in self.records.items() if is_expired(r, now)]
            for code in expired:
                del self.records[code]
            return len(expired)

    def all_codes(self) -> list[str]:
        return [r.code for r in sorted(self.records.values(), key=lambda r: r.id)]

    def page(self, is_used: bool | None, cursor: int | None, limit: int) -> CodePage:
        rows = sorted(self.records.values(), key=lambda r: r.id)
        if is_used is not None:
            rows = [r for r in rows if r.is_used == is_used]
        if cursor is not None:
            rows = [r for r in rows if r.id > cursor]
        has_more = len(rows) > limit
        codes = rows[:limit]
        return CodePage(
            codes=codes,
            total_count=len(rows),
            next_cursor=codes[-1].id if has_more and codes else None,
            has_more=has_more,
        )

    def stats(self, now: datetime) -> CodeStats:
        rows = list(self.records.values())
        used = [r for r in rows if r.is_used]
        return CodeStats(
            total=len(rows),
            unused=len(rows) - len(used),
            used=len(used),
            active=sum(1 for r in used if r.expires_at is not None and r.expires_at > now),
        )


class InMemoryAdminRepository:
    """AdminRepository fake backed by a dict."""

    def __init__(self) -> None:
        self.hashes: dict[str, str] = {}

    def any_admin_exists(self) -> bool:
        return bool(self.hashes)

    def create_admin(self, username: str, password_hash: str) -> bool:
        if username in self.hashes:
            return False
        self.hashes[username] = password_hash
        return True

    def get_password_hash(self, username: str) -> str | None:
        return self.hashes.get(username)

    def update_password_hash(self, username: str, password_hash: str) -> bool:
        if username not in self.hashes:
            return False
        self.hashes[username] = password_hash
        return True


def insert_code(
    pool: ConnectionPool,
    code: str,
    activated_at: datetime | None = None,
    expires_at: datetime | None = None,
    validation_count: int = 0,
) -> None:
    """Insert a code directly; passing activated_at inserts it as used."""
    with pool.connection() as conn:
        conn.execute(
            """INSERT INTO activation_codes
                   (code, is_used, activated_at, expires_at, validation_count)
               VALUES (%s, %s, %s, %s, %s)""",
            (code, activated_at is not None, activated_at, expires_at, validation_count),
        )
        conn.commit()


def fetch_code_row(pool: ConnectionPool, code: str) -> tuple | None:
    """Return (is_used, activated_at, expires_at, validation_count) for a code."""
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute(
            "SELECT is_used, activated_at, expires_at, validation_count "
            "FROM activation_codes WHERE code = %s",
            (code,),
        )
        return cursor.fetchone()
