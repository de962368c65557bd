"""
Expiry sweeper - periodic removal of used and expired codes.

Runs as an asyncio task for the lifetime of the application. Each tick
issues a single delete for the predicate

    is_used AND expires_at IS NOT NULL AND expires_at < now

The store call runs in a worker thread so the event loop keeps serving
validation traffic, and no lock is held across the sweep. A failed tick
is logged and the next tick starts from scratch; re-running the same
predicate is idempotent.

Shutdown: every tick's store call is bounded by shutdown_grace_seconds.
stop() gives the loop that long to exit, then waits for the in-flight
tick, so no sweep outlives stop() and the connection pool can be closed
right after it.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from .activation import utc_now
from .ports import CodeRepository

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Cancellable background loop bound to application lifespan."""

    def __init__(
        self,
        repository: CodeRepository,
        interval_seconds: float = 3600.0,
        shutdown_grace_seconds: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._interval = interval_seconds
        self._grace = shutdown_grace_seconds
        self._clock = clock
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._tick: asyncio.Future[int] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self, now: datetime | None = None) -> int:
        """Delete every used code that expired before now. Returns rows deleted."""
        deleted = self._repository.delete_expired(
            now or self._clock(), timeout_seconds=self._grace
        )
        if deleted:
            logger.info("Deleted %d expired activation codes", deleted)
        return deleted

    async def run(self, stop_event: asyncio.Event) -> None:
        """Sweep immediately, then once per interval until stop_event is set."""
        logger.info("Code cleanup sweeper started (interval: %ss)", self._interval)
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            self._tick = loop.run_in_executor(None, self.sweep_once)
            try:
                # Shielded so cancelling the loop leaves the tick for stop() to await
                await asyncio.shield(self._tick)
            except Exception:
                logger.exception("Error occurred while cleaning up expired codes")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Code cleanup sweeper stopped")

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._stop_event), name="expiry-sweeper")

    async def stop(self) -> None:
        """
        Signal shutdown and wait for the loop to exit.

        A tick still in flight after the grace period is awaited to
        completion; its store call is itself bounded by the grace period.
        """
        if self._task is None or self._stop_event is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=self._grace)
        except asyncio.TimeoutError:
            logger.warning(
                "Sweeper did not stop within %ss, waiting for the running sweep", self._grace
            )
            await self._drain_tick()
        finally:
            self._task = None
            self._stop_event = None
            self._tick = None

    async def _drain_tick(self) -> None:
        if self._tick is None or self._tick.done():
            return
        try:
            await self._tick
        except Exception as e:
            logger.warning("Sweep aborted during shutdown: %s", e)
