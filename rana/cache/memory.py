"""
In-Memory Cache
===============
Process-local LRU cache bounded by ``max_size``.
"""

from collections import OrderedDict
from typing import Any, Optional

import structlog

from rana.cache.base import CacheEntry, CacheProvider, Clock

logger = structlog.get_logger()


class MemoryCache(CacheProvider):
    """Least-recently-used entries are evicted once ``max_size`` is exceeded."""

    def __init__(self, ttl: Optional[int] = 3600, max_size: int = 1000, clock: Optional[Clock] = None):
        super().__init__(ttl=ttl, clock=clock)
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.evictions = 0

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[Any]:
        entry = self._live_entry(key)
        self._record(entry is not None)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry.data

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self._entries[key] = self._new_entry(value, ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug("Evicted cache entry", key=evicted)

    async def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    async def size(self) -> int:
        return len(self._entries)

    async def cleanup(self) -> int:
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)
