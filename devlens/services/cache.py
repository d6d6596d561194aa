import logging
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from ..utils import cache_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """In-memory map of lower-cased identifier -> (stored_at, value).

    Entries are valid while `now - stored_at < ttl`. There is no size bound;
    expired entries are dropped when they are next read.
    """

    def __init__(self, name: str, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Dict[str, Tuple[float, T]] = {}

    def get(self, key: str) -> Optional[T]:
        key = cache_key(key)
        item = self._items.get(key)
        if item is None:
            logger.debug("cache miss %s:%s", self.name, key)
            return None
        stored_at, value = item
        if self._clock() - stored_at >= self.ttl_seconds:
            # expired
            self._items.pop(key, None)
            logger.debug("cache expired %s:%s", self.name, key)
            return None
        logger.debug("cache hit %s:%s", self.name, key)
        return value

    def set(self, key: str, value: T) -> None:
        self._items[cache_key(key)] = (self._clock(), value)

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._items.clear()
        else:
            self._items.pop(cache_key(key), None)

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for stored_at, _ in self._items.values() if now - stored_at < self.ttl_seconds)


class CacheLayer:
    """The three independent caches: raw upstream data, profiles and code DNA."""

    def __init__(self, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.raw = TTLCache("raw", ttl_seconds, clock)
        self.profiles = TTLCache("profile", ttl_seconds, clock)
        self.dna = TTLCache("dna", ttl_seconds, clock)

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one identifier from every cache, or everything when no key is given."""
        for cache in (self.raw, self.profiles, self.dna):
            cache.invalidate(key)
        logger.info("Cache cleared for %s", key if key is not None else "all identifiers")

    def status(self) -> Dict[str, float]:
        return {
            "rawData": len(self.raw),
            "profiles": len(self.profiles),
            "dna": len(self.dna),
            "ttlSeconds": self.ttl_seconds,
        }
