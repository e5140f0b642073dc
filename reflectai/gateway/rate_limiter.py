"""Call Rate Limiter — rolling 5-minute and 1-hour budgets for the primary provider.

Keeps the timestamps of primary-provider calls in a sliding window and
admits or denies a new outbound call against two budgets:
  - short window: at most ``max_per_5min`` calls in the last 5 minutes
  - long window: at most ``max_per_hour`` calls in the last hour

Admission reserves a slot in the window under the lock, so concurrent
requests cannot all pass the check while earlier calls are still in flight.
A call that does not end in a successful primary response hands its slot
back with ``release()``; only successful calls stay counted.

Denied requests are routed to the secondary provider by the gateway, which
protects the primary quota even while credentials are still available.

Thread-safe via asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

from reflectai.gateway.types import Admission

logger = logging.getLogger(__name__)

SHORT_WINDOW_SECONDS = 5 * 60
LONG_WINDOW_SECONDS = 60 * 60


class CallRateLimiter:
    """Rolling-window limiter over reserved primary-provider calls.

    Usage:
        limiter = CallRateLimiter()

        admission = await limiter.admit()
        if not admission.allowed:
            # skip the primary provider
            ...

        # The call failed or never happened:
        await limiter.release(admission.slot)
    """

    def __init__(
        self,
        max_per_5min: int = 10,
        max_per_hour: int = 50,
        clock: Callable[[], float] = time.time,
    ):
        self.max_per_5min = max_per_5min
        self.max_per_hour = max_per_hour
        self._clock = clock
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        """Drop records older than the long window."""
        cutoff = now - LONG_WINDOW_SECONDS
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

    def _count_since(self, since: float) -> int:
        # Timestamps are appended in order, so count from the right
        count = 0
        for ts in reversed(self._calls):
            if ts <= since:
                break
            count += 1
        return count

    async def admit(self) -> Admission:
        """Reserve a slot for a new primary-provider call if both budgets allow it."""
        async with self._lock:
            now = self._clock()
            self._prune(now)

            recent = self._count_since(now - SHORT_WINDOW_SECONDS)
            if recent >= self.max_per_5min:
                reason = f"Rate limit: {recent}/{self.max_per_5min} calls in 5 minutes"
                logger.warning("%s — primary provider skipped", reason)
                return Admission(allowed=False, reason=reason)

            hourly = len(self._calls)
            if hourly >= self.max_per_hour:
                reason = f"Rate limit: {hourly}/{self.max_per_hour} calls in 1 hour"
                logger.warning("%s — primary provider skipped", reason)
                return Admission(allowed=False, reason=reason)

            self._calls.append(now)
            return Admission(allowed=True, slot=now)

    async def release(self, slot: float | None) -> None:
        """Hand back a reserved slot whose call did not succeed."""
        if slot is None:
            return
        async with self._lock:
            # The slot is gone already if it aged out of the long window
            if slot in self._calls:
                self._calls.remove(slot)

    async def reset(self) -> None:
        async with self._lock:
            self._calls.clear()

    def get_stats(self) -> dict:
        """Current window usage, for the status endpoint. Read-only."""
        now = self._clock()
        calls = list(self._calls)
        return {
            "calls_last_5min": sum(1 for ts in calls if ts > now - SHORT_WINDOW_SECONDS),
            "limit_5min": self.max_per_5min,
            "calls_last_hour": sum(1 for ts in calls if ts > now - LONG_WINDOW_SECONDS),
            "limit_hour": self.max_per_hour,
        }
