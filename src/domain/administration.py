"""
Code administration service - bulk generation, querying and deletion.

These operations act on the code store directly and never go through
the validation state machine.
"""

import logging
import re
import secrets
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from .activation import utc_now
from .exceptions import CodeNotFound, InvalidPattern, InvalidRequest, StorageConflict
from .ports import CodePage, CodeRepository, CodeStats

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "CODE"

DEMO_CODES = (
    "TEST-CODE-001",
    "TEST-CODE-002",
    "TEST-CODE-003",
    "DEMO-CODE-123",
    "DEMO-CODE-456",
)

# Regeneration rounds per batch before giving up on collisions.
_MAX_COLLISION_RETRIES = 5


@dataclass(frozen=True)
class BatchDeleteResult:
    """Result of a pattern-based bulk delete."""

    matched_count: int
    deleted_count: int
    matched_codes: list[str]
    dry_run: bool


@dataclass
class CodeAdministrationService:
    """Admin-side operations over the code store."""

    repository: CodeRepository
    max_generate_count: int = 20000
    batch_size: int = 1000
    max_page_size: int = 1000

    def generate_codes(self, count: int, prefix: str | None = None) -> list[str]:
        """
        Generate and store count new unused codes.

        Codes have the form PREFIX-XXXXXXXXXXXX (12 uppercase hex chars).
        Inserted in batches; codes the store rejects as duplicates are
        regenerated.

        Raises:
            InvalidRequest: count outside 1..max_generate_count
            StorageConflict: collisions persisted past the retry budget
        """
        if count < 1 or count > self.max_generate_count:
            raise InvalidRequest(f"Count must be between 1 and {self.max_generate_count}")

        prefix = prefix.strip() if prefix and prefix.strip() else DEFAULT_PREFIX
        total_batches = -(-count // self.batch_size)
        logger.info("Starting generation of %d activation codes", count)

        generated: list[str] = []
        for batch in range(total_batches):
            batch_count = min(self.batch_size, count - batch * self.batch_size)
            generated.extend(self._insert_batch(prefix, batch_count))
            logger.info(
                "Generated batch %d/%d (%d codes)", batch + 1, total_batches, batch_count
            )

        logger.info("Successfully generated %d activation codes", count)
        return generated

    def _insert_batch(self, prefix: str, batch_count: int) -> list[str]:
        inserted: list[str] = []
        for _ in range(_MAX_COLLISION_RETRIES):
            candidates = {self._new_code(prefix) for _ in range(batch_count - len(inserted))}
            inserted.extend(self.repository.insert_many(sorted(candidates)))
            if len(inserted) == batch_count:
                return inserted
        raise StorageConflict(
            f"Could not generate {batch_count} unique codes with prefix {prefix!r}"
        )

    @staticmethod
    def _new_code(prefix: str) -> str:
        return f"{prefix}-{secrets.token_hex(6).upper()}"

    def batch_delete(self, pattern: str, dry_run: bool = False) -> BatchDeleteResult:
        """
        Delete every code matching a regular expression.

        The pattern is searched (not anchored) against each code value over
        a full scan of the store.

        Raises:
            InvalidRequest: pattern is blank
            InvalidPattern: pattern does not compile
        """
        if not pattern or not pattern.strip():
            raise InvalidRequest("Pattern is required")
        try:
            regex = re.compile(pattern)
        except re.error as e:
            logger.warning("Invalid regex pattern: %s", pattern)
            raise InvalidPattern(f"Invalid regex pattern: {e}") from e

        matched = [code for code in self.repository.all_codes() if regex.search(code)]

        if dry_run:
            logger.info("Dry run: Found %d codes matching pattern '%s'", len(matched), pattern)
            return BatchDeleteResult(len(matched), 0, matched, dry_run=True)

        deleted = self.repository.delete_codes(matched) if matched else 0
        logger.info("Batch deleted %d codes matching pattern '%s'", deleted, pattern)
        return BatchDeleteResult(len(matched), deleted, matched, dry_run=False)

    def list_codes(
        self, is_used: bool | None = None, cursor: int | None = None, page_size: int = 100
    ) -> CodePage:
        if page_size < 1 or page_size > self.max_page_size:
            raise InvalidRequest(f"Page size must be between 1 and {self.max_page_size}")
        return self.repository.page(is_used, cursor, page_size)

    def stats(self, now: datetime | None = None) -> CodeStats:
        return self.repository.stats(now or utc_now())

    def delete_code(self, code: str) -> None:
        if "\x00" in code or not self.repository.delete(code):
            raise CodeNotFound(code)
        logger.info("Deleted activation code: %s", code)

    def seed_codes(self, codes: Sequence[str] = DEMO_CODES) -> int:
        """Insert fixed codes into an empty store. Returns how many were added."""
        if self.repository.stats(utc_now()).total > 0:
            return 0
        inserted = self.repository.insert_many(codes)
        logger.info("Seeded %d activation codes", len(inserted))
        return len(inserted)

    def delete_expired(self, now: datetime | None = None) -> int:
        deleted = self.repository.delete_expired(now or utc_now())
        logger.info("Deleted %d expired codes", deleted)
        return deleted
