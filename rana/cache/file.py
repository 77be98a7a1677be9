"""
File Cache
==========
One JSON file per entry, named after the SHA-256 of the key.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from rana.cache.base import CacheEntry, CacheProvider, Clock

logger = structlog.get_logger()


class FileCache(CacheProvider):
    """Entries live under ``cache_dir`` as ``<prefix><sha256[:32]>.json``."""

    def __init__(
        self,
        cache_dir: str | Path = "~/.rana/cache",
        prefix: str = "rana_",
        ttl: Optional[int] = 3600,
        clock: Optional[Clock] = None,
    ):
        super().__init__(ttl=ttl, clock=clock)
        self.cache_dir = Path(cache_dir).expanduser()
        self.prefix = prefix
        self._dir_ready = False

    def _ensure_dir(self) -> None:
        if not self._dir_ready:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._dir_ready = True

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"{self.prefix}{digest}.json"

    def _files(self) -> list[Path]:
        if not self.cache_dir.exists():
            return []
        return list(self.cache_dir.glob(f"{self.prefix}*.json"))

    def _read(self, path: Path) -> Optional[CacheEntry]:
        """Read a live entry, removing it if expired."""
        if not path.exists():
            return None
        entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        if entry.is_expired(self._clock()):
            path.unlink(missing_ok=True)
            return None
        return entry

    async def get(self, key: str) -> Optional[Any]:
        try:
            entry = self._read(self.path_for(key))
        except (OSError, ValidationError, ValueError) as e:
            logger.warning("File cache read failed", key=key, error=str(e))
            entry = None
        self._record(entry is not None)
        return entry.data if entry else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            self._ensure_dir()
            entry = self._new_entry(value, ttl)
            self.path_for(key).write_text(entry.model_dump_json(), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning("File cache write failed", key=key, error=str(e))

    async def has(self, key: str) -> bool:
        try:
            return self._read(self.path_for(key)) is not None
        except (OSError, ValidationError, ValueError) as e:
            logger.warning("File cache read failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            if not path.exists():
                return False
            path.unlink()
            return True
        except OSError as e:
            logger.warning("File cache delete failed", key=key, error=str(e))
            return False

    async def clear(self) -> None:
        for path in self._files():
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("File cache clear failed", path=str(path), error=str(e))

    async def size(self) -> int:
        return len(self._files())

    async def cleanup(self) -> int:
        """Remove expired and unreadable entries without waiting for access."""
        now = self._clock()
        removed = 0
        for path in self._files():
            try:
                entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
                if not entry.is_expired(now):
                    continue
            except (ValidationError, ValueError):
                pass
            except OSError:
                continue
            path.unlink(missing_ok=True)
            removed += 1
        if removed:
            logger.info("Swept file cache", removed=removed, cache_dir=str(self.cache_dir))
        return removed
