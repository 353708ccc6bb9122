"""
In-process caches.

MemoryCache keeps key -> (value, stored_at) and expires entries lazily on
read. NullCache never stores anything and is what tests inject when they
want every call to hit the database.
"""
import copy
import fnmatch
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .stats import CacheStats

logger = logging.getLogger(__name__)


class MemoryCache:
    """TTL cache held in process memory."""

    def __init__(self, default_ttl: int = 60, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        # key -> (value, stored_at, ttl)
        self._entries: Dict[str, Tuple[Any, float, int]] = {}
        self.stats = CacheStats()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.stats.record_miss()
            return None

        value, stored_at, ttl = entry
        if self._clock() - stored_at >= ttl:
            del self._entries[key]
            self.stats.record_miss()
            return None

        self.stats.record_hit()
        # Callers may mutate what they get back
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._entries[key] = (copy.deepcopy(value), self._clock(), ttl or self.default_ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern."""
        keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries matching {pattern}")
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class NullCache:
    """Cache that stores nothing."""

    def __init__(self):
        self.stats = CacheStats()

    async def get(self, key: str) -> Optional[Any]:
        self.stats.record_miss()
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return False

    async def delete(self, key: str) -> bool:
        return False

    async def invalidate_pattern(self, pattern: str) -> int:
        return 0
