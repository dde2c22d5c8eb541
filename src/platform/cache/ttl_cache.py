"""In-process TTL cache for query results"""

from collections.abc import Callable
import time
from typing import Dict, Generic, Optional, TypedDict, TypeVar


T = TypeVar('T')


class CacheEntry(TypedDict, Generic[T]):
    data: T
    timestamp: float


class TtlCache(Generic[T]):
    """
    Key → value cache with a fixed time-to-live

    - Expired entries are dropped lazily on read
    - invalidate(key) / invalidate_all() for explicit eviction after writes
    - generation(key) changes on every invalidation of the key; a reader that
      passes the generation it saw before querying cannot overwrite a newer
      invalidation with stale data
    """

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._cache: Dict[str, CacheEntry[T]] = {}
        self._generations: Dict[str, int] = {}
        self._cleared = 0
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def _is_expired(self, *, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry['timestamp'] >= self._ttl_seconds

    def get(self, key: str) -> T | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._is_expired(entry=entry):
            del self._cache[key]
            return None
        return entry['data']

    def generation(self, key: str) -> int:
        # Both counters only grow, so the sum moves on any invalidation
        return self._cleared + self._generations.get(key, 0)

    def set(self, key: str, value: T, *, generation: Optional[int] = None) -> bool:
        """Store `value`; skipped (returns False) when `generation` is stale."""
        if generation is not None and generation != self.generation(key):
            return False
        self._cache[key] = CacheEntry(data=value, timestamp=self._clock())
        return True

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)
        self._generations[key] = self._generations.get(key, 0) + 1

    def invalidate_all(self) -> None:
        self._cache.clear()
        self._cleared += 1

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
