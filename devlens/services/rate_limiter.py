import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from ..errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Permits for upstream calls.

    Tracks the quota the upstream reports (`remaining`, `reset_at`) and refuses
    permits while `remaining - in_flight <= reserve` and the reset time is still
    ahead. Calls already holding a permit count against the quota, since requests
    interleaved on the event loop can each have one outstanding. That
    refusal is a circuit breaker: it raises immediately, it never waits for the
    reset. Independently, consecutive permits are spaced `min_interval` seconds apart.
    """

    def __init__(
        self,
        reserve: int = 2,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.reserve = reserve
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self.remaining: Optional[int] = None
        self.reset_at: Optional[float] = None
        self.in_flight = 0
        self._last_acquired: Optional[float] = None

    def update(self, remaining: Optional[int], reset_at: Optional[float]) -> None:
        if remaining is not None:
            self.remaining = remaining
        if reset_at is not None:
            self.reset_at = reset_at

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        remaining = headers.get("x-ratelimit-remaining")
        reset = headers.get("x-ratelimit-reset")
        try:
            remaining_val = int(remaining) if remaining is not None else None
        except ValueError:
            remaining_val = None
        try:
            reset_val = float(reset) if reset is not None else None
        except ValueError:
            reset_val = None
        self.update(remaining_val, reset_val)

    def retry_after(self) -> Optional[float]:
        if self.reset_at is None:
            return None
        return max(0.0, self.reset_at - self._clock())

    def check(self) -> None:
        if self.remaining is None or self.reset_at is None:
            return
        if self.remaining - self.in_flight <= self.reserve and self._clock() < self.reset_at:
            wait = self.retry_after()
            logger.warning(
                "Rate limit breaker open: %s requests remaining, %d in flight, resets in %.0fs",
                self.remaining, self.in_flight, wait,
            )
            raise RateLimitedError(
                "GitHub API rate limit exceeded. Please try again later.", retry_after=wait
            )

    async def acquire(self) -> None:
        self.check()
        if self.min_interval > 0 and self._last_acquired is not None:
            wait_time = self.min_interval - (self._clock() - self._last_acquired)
            if wait_time > 0:
                await self._sleep(wait_time)
        self._last_acquired = self._clock()
        self.in_flight += 1

    def release(self) -> None:
        self.in_flight = max(0, self.in_flight - 1)

    @asynccontextmanager
    async def permit(self):
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def status(self) -> Dict[str, Any]:
        return {
            "remaining": self.remaining,
            "resetAt": self.reset_at,
            "reserve": self.reserve,
            "inFlight": self.in_flight,
        }
