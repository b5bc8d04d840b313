"""
Rate Limiters - Cooperative request spacing for ledger backends.

Two modes:
- EndpointRateLimiter: minimum delay between requests to the same endpoint
- SlidingWindowRateLimiter: at most N requests in any window of T seconds

Both suspend with asyncio.sleep and never fail; they always eventually
grant access.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class _LoopBoundLock:
    """Creates the limiter lock inside the running loop, once per loop."""

    _lock: Optional[asyncio.Lock]
    _lock_loop: Optional[asyncio.AbstractEventLoop]

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock


class EndpointRateLimiter(_LoopBoundLock):
    """
    Fixed-delay limiter keyed by endpoint.

    Concurrent callers on one key reserve consecutive slots under the lock,
    then sleep outside it, so they are spaced by ``min_delay`` as well.
    """

    def __init__(
        self,
        min_delay: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if min_delay < 0:
            raise ValueError("min_delay must not be negative")
        self._min_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._last_request: dict[str, float] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def min_delay(self) -> float:
        return self._min_delay

    async def acquire(self, endpoint_key: str) -> None:
        """Wait until ``endpoint_key`` may be called, then record the request."""
        async with self._get_lock():
            now = self._clock()
            last = self._last_request.get(endpoint_key)
            scheduled = now if last is None else max(now, last + self._min_delay)
            self._last_request[endpoint_key] = scheduled

        delay = scheduled - now
        if delay > 0:
            logger.debug(f"Rate limit: waiting {delay:.3f}s for {endpoint_key}")
            await self._sleep(delay)

    def last_request(self, endpoint_key: str) -> Optional[float]:
        """Clock value of the last granted request to ``endpoint_key``."""
        return self._last_request.get(endpoint_key)

    def reset(self) -> None:
        self._last_request.clear()

    def __len__(self) -> int:
        return len(self._last_request)


class SlidingWindowRateLimiter(_LoopBoundLock):
    """
    Sliding-window limiter.

    Keeps at most ``max_requests`` timestamps younger than ``time_window``.
    When the window is full the caller waits until the oldest timestamp
    expires and re-checks.
    """

    def __init__(
        self,
        max_requests: int = 10,
        time_window: float = 60.0,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")
        self._max_requests = max_requests
        self._time_window = time_window
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def time_window(self) -> float:
        return self._time_window

    def _prune(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self._time_window:
            self._requests.popleft()

    async def acquire(self) -> None:
        """Wait until the window has room, then record the request."""
        while True:
            async with self._get_lock():
                now = self._clock()
                self._prune(now)

                if len(self._requests) < self._max_requests:
                    self._requests.append(now)
                    return

                wait_time = self._time_window - (now - self._requests[0])

            wait_time = min(max(wait_time, 0.0), self._time_window)
            logger.debug(
                f"Rate window full ({self._max_requests}/{self._time_window}s), "
                f"waiting {wait_time:.3f}s"
            )
            await self._sleep(wait_time)

    def remaining(self) -> int:
        """Requests still available in the current window."""
        self._prune(self._clock())
        return max(0, self._max_requests - len(self._requests))

    def reset(self) -> None:
        self._requests.clear()

    def __len__(self) -> int:
        return len(self._requests)
