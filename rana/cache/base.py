"""
Cache Contract
==============
Shared interface, entry model and key derivation for response caches.
"""

import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from pydantic import BaseModel

Clock = Callable[[], float]


class CacheEntry(BaseModel):
    """Stored value with creation and optional expiry, both epoch seconds."""

    data: Any
    created_at: float
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class CacheStats(BaseModel):
    hits: int = 0
    misses: int = 0
    size: int = 0
    hit_rate: float = 0.0


class CacheProvider(ABC):
    """
    Async get/set/has/delete/clear cache.

    Backend failures never escape: reads degrade to a miss and writes to a
    no-op, so callers can always proceed as though the cache were empty.
    """

    def __init__(self, ttl: Optional[int] = 3600, clock: Optional[Clock] = None):
        self.default_ttl = ttl
        self._clock = clock or time.time
        self._hits = 0
        self._misses = 0

    def _new_entry(self, value: Any, ttl: Optional[int]) -> CacheEntry:
        now = self._clock()
        ttl = self.default_ttl if ttl is None else ttl
        return CacheEntry(
            data=value,
            created_at=now,
            expires_at=now + ttl if ttl and ttl > 0 else None,
        )

    def _record(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def has(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    @abstractmethod
    async def size(self) -> int:
        ...

    async def cleanup(self) -> int:
        """Sweep expired entries. Returns how many were removed."""
        return 0

    async def get_stats(self) -> CacheStats:
        total = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=await self.size(),
            hit_rate=self._hits / total if total else 0.0,
        )

    async def close(self) -> None:
        return None


def request_cache_key(request: dict[str, Any]) -> str:
    """Stable SHA-256 of a request's canonical JSON form."""
    canonical = json.dumps(request, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
