"""
Unit tests for ExpirySweeper.

Tests verify:
- A sweep removes only used and expired codes
- Sweeps are idempotent
- Failed ticks are logged and do not stop the loop
- The loop honors the stop signal promptly
- stop() never returns while a sweep is still running
"""

import asyncio
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from src.domain.ports import ActivationCode
from src.domain.sweeper import ExpirySweeper
from tests.helpers import InMemoryCodeRepository

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def seeded_repository() -> InMemoryCodeRepository:
    repo = InMemoryCodeRepository(["UNUSED-001"])
    repo.add(
        ActivationCode(
            id=0, code="ACTIVE-001", is_used=True, activated_at=T0,
            expires_at=T0 + timedelta(days=7), validation_count=1,
        )
    )
    repo.add(
        ActivationCode(
            id=0, code="EXPIRED-001", is_used=True, activated_at=T0 - timedelta(days=8),
            expires_at=T0 - timedelta(days=1), validation_count=1,
        )
    )
    repo.add(
        ActivationCode(
            id=0, code="EXPIRED-002", is_used=True, activated_at=T0 - timedelta(days=9),
            expires_at=T0 - timedelta(days=2), validation_count=2,
        )
    )
    return repo


class TestSweepOnce:
    """Tests for a single sweep tick."""

    def test_deletes_used_and_expired(self) -> None:
        repo = seeded_repository()
        sweeper = ExpirySweeper(repo)

        deleted = sweeper.sweep_once(T0)

        assert deleted == 2
        assert repo.all_codes() == ["UNUSED-001", "ACTIVE-001"]

    def test_second_sweep_is_noop(self) -> None:
        repo = seeded_repository()
        sweeper = ExpirySweeper(repo)

        assert sweeper.sweep_once(T0) == 2
        assert sweeper.sweep_once(T0) == 0
        assert repo.all_codes() == ["UNUSED-001", "ACTIVE-001"]

    def test_uses_clock_when_no_time_given(self) -> None:
        repo = Mock()
        repo.delete_expired.return_value = 0
        sweeper = ExpirySweeper(repo, clock=lambda: T0)

        sweeper.sweep_once()

        repo.delete_expired.assert_called_once_with(T0, timeout_seconds=5.0)

    def test_store_call_bounded_by_grace(self) -> None:
        repo = Mock()
        repo.delete_expired.return_value = 0
        sweeper = ExpirySweeper(repo, shutdown_grace_seconds=0.5)

        sweeper.sweep_once(T0)

        assert repo.delete_expired.call_args.kwargs["timeout_seconds"] == 0.5


class TestSweepLoop:
    """Tests for the background loop lifecycle."""

    def test_runs_immediately_and_stops_promptly(self) -> None:
        repo = Mock()
        repo.delete_expired.return_value = 0
        sweeper = ExpirySweeper(repo, interval_seconds=3600, shutdown_grace_seconds=1)

        async def scenario() -> None:
            sweeper.start()
            assert sweeper.running
            await asyncio.sleep(0.05)
            await asyncio.wait_for(sweeper.stop(), timeout=2)
            assert not sweeper.running

        asyncio.run(scenario())

        assert repo.delete_expired.call_count == 1

    def test_ticks_repeat_on_interval(self) -> None:
        repo = Mock()
        repo.delete_expired.return_value = 0
        sweeper = ExpirySweeper(repo, interval_seconds=0.01)

        async def scenario() -> None:
            sweeper.start()
            await asyncio.sleep(0.2)
            await sweeper.stop()

        asyncio.run(scenario())

        assert repo.delete_expired.call_count >= 3

    def test_failure_is_logged_and_loop_continues(self, caplog) -> None:
        calls = []

        def flaky_delete(now: datetime, timeout_seconds: float | None = None) -> int:
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("connection lost")
            return 0

        repo = Mock()
        repo.delete_expired.side_effect = flaky_delete
        sweeper = ExpirySweeper(repo, interval_seconds=0.01)

        async def scenario() -> None:
            sweeper.start()
            await asyncio.sleep(0.1)
            await sweeper.stop()

        with caplog.at_level(logging.ERROR, logger="src.domain.sweeper"):
            asyncio.run(scenario())

        assert repo.delete_expired.call_count >= 2
        assert "Error occurred while cleaning up expired codes" in caplog.text

    def test_stop_without_start_is_noop(self) -> None:
        sweeper = ExpirySweeper(Mock())

        asyncio.run(sweeper.stop())

        assert not sweeper.running

    def test_start_twice_keeps_one_task(self) -> None:
        repo = Mock()
        repo.delete_expired.return_value = 0
        sweeper = ExpirySweeper(repo, interval_seconds=3600)

        async def scenario() -> None:
            sweeper.start()
            sweeper.start()
            await asyncio.sleep(0.05)
            await sweeper.stop()

        asyncio.run(scenario())

        assert repo.delete_expired.call_count == 1

    def test_stop_waits_for_sweep_past_grace(self, caplog) -> None:
        """A sweep still running when the grace period ends finishes before stop() returns."""
        started = threading.Event()
        finished = threading.Event()

        def slow_delete(now: datetime, timeout_seconds: float | None = None) -> int:
            started.set()
            time.sleep(0.3)
            finished.set()
            return 0

        repo = Mock()
        repo.delete_expired.side_effect = slow_delete
        sweeper = ExpirySweeper(repo, interval_seconds=3600, shutdown_grace_seconds=0.05)

        async def scenario() -> bool:
            sweeper.start()
            await asyncio.to_thread(started.wait, 2)
            await sweeper.stop()
            return finished.is_set()

        with caplog.at_level(logging.WARNING, logger="src.domain.sweeper"):
            finished_at_stop = asyncio.run(scenario())

        assert finished_at_stop is True
        assert not sweeper.running
        assert "did not stop within" in caplog.text

    def test_sweep_failure_during_shutdown_is_logged(self, caplog) -> None:
        started = threading.Event()

        def cancelled_delete(now: datetime, timeout_seconds: float | None = None) -> int:
            started.set()
            time.sleep(0.2)
            raise RuntimeError("canceling statement due to statement timeout")

        repo = Mock()
        repo.delete_expired.side_effect = cancelled_delete
        sweeper = ExpirySweeper(repo, interval_seconds=3600, shutdown_grace_seconds=0.05)

        async def scenario() -> None:
            sweeper.start()
            await asyncio.to_thread(started.wait, 2)
            await sweeper.stop()

        with caplog.at_level(logging.WARNING, logger="src.domain.sweeper"):
            asyncio.run(scenario())

        assert "Sweep aborted during shutdown" in caplog.text
