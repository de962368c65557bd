"""
Per-client request throttling for the public endpoints.

Sliding window limiter keyed by client IP, held in process memory.
"""

import threading
import time
from collections import deque
from collections.abc import Callable

from fastapi import HTTPException, Request, status


class SlidingWindowRateLimiter:
    """
    Allows at most max_requests per key inside any window_seconds span.

    Timestamps outside the window are dropped on each check. Once per
    window, keys with no hit left inside it are evicted, so memory tracks
    recently active clients only.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_eviction = clock()

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def allow(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            if now - self._last_eviction >= self.window_seconds:
                self._evict_stale(now)

            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()

            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def _evict_stale(self, now: float) -> None:
        stale = [
            key for key, hits in self._hits.items()
            if not hits or now - hits[-1] >= self.window_seconds
        ]
        for key in stale:
            del self._hits[key]
        self._last_eviction = now

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest hit for key leaves the window."""
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            return max(1, int(self.window_seconds - (self._clock() - hits[0]) + 0.999))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request) -> None:
    """
    Dependency rejecting requests over the per-IP limit with 429.

    The limiter instance lives on app.state, set when the app is created.
    Apps without one are not throttled.
    """
    limiter: SlidingWindowRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    key = client_key(request)
    if not limiter.allow(key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(limiter.retry_after(key))},
        )
