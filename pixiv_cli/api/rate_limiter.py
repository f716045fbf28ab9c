"""
Provides an adaptive rate limiter that keeps requests to Pixiv polite.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Spaces out requests and slows down when Pixiv answers with HTTP 429.
    """

    RECOVERY_WINDOW_S = 300

    def __init__(
        self, initial_calls_per_second: float = 2.0, max_calls_per_second: float = 4.0
    ):
        """
        Args:
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The ceiling the rate recovers to after throttling.
        """
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._last_429_time = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_429(self) -> None:
        """Halves the request rate, down to one call every four seconds."""
        async with self._lock:
            self._rate = max(0.25, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_429_time = time.monotonic()
            log.warning(
                f"[yellow]Pixiv is throttling requests. New rate: {self._rate:.2f} calls/s[/yellow]"
            )

    async def acquire(self) -> None:
        """Waits until the next call may be issued."""
        async with self._lock:
            now = time.monotonic()
            if now - self._last_429_time > self.RECOVERY_WINDOW_S:
                self._rate = min(self._max_rate, self._rate * 1.05)
                self._min_interval = 1.0 / self._rate

            wait = self._min_interval - (now - self._last_call_time)
            if wait > 0:
                await asyncio.sleep(wait)

            self._last_call_time = time.monotonic()
