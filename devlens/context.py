import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from .services.cache import CacheLayer
from .services.rate_limiter import RateLimiter
from .settings import Settings


@dataclass
class ExternalClientContext:
    """Process-wide shared state, built once and handed to every component.

    Holds the caches and the upstream rate-limit counters. Tests build their own
    context with a mock `transport`, a fake `clock` and a no-op `sleep`.
    """

    settings: Settings
    cache: CacheLayer
    github_limiter: RateLimiter
    transport: Optional[httpx.AsyncBaseTransport] = None
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> "ExternalClientContext":
        return cls(
            settings=settings,
            cache=CacheLayer(settings.cache_ttl_seconds, clock=clock),
            github_limiter=RateLimiter(reserve=settings.rate_limit_reserve, clock=clock, sleep=sleep),
            transport=transport,
            clock=clock,
            sleep=sleep,
        )

    def batch_limiter(self) -> RateLimiter:
        """A fresh limiter that spaces batch candidates `batch_delay_seconds` apart."""
        return RateLimiter(
            reserve=self.settings.rate_limit_reserve,
            min_interval=self.settings.batch_delay_seconds,
            clock=self.clock,
            sleep=self.sleep,
        )
