"""
JSON File Ledger
================
The whole ledger is one pretty-printed JSON array, rewritten on every change.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from pydantic import TypeAdapter

from rana.ledger.base import CostStore, newest_first, paginate
from rana.schemas.cost import CostQuery, CostRecord, CostRecordCreate, generate_record_id

logger = structlog.get_logger()

_records_adapter = TypeAdapter(list[CostRecord])


class FileCostStore(CostStore):
    def __init__(self, path: str | Path = "~/.rana/cost-history.json"):
        self.path = Path(path).expanduser()
        self._records: list[CostRecord] = []
        self._loaded = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._loaded:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            content = self.path.read_text(encoding="utf-8").strip()
            self._records = _records_adapter.validate_json(content) if content else []
        self._loaded = True
        logger.info("Loaded cost ledger", path=str(self.path), records=len(self._records))

    def _flush(self) -> None:
        self.path.write_bytes(_records_adapter.dump_json(self._records, indent=2))

    async def save(self, record: CostRecordCreate) -> CostRecord:
        await self.initialize()
        saved = CostRecord(id=generate_record_id(), **record.model_dump())
        async with self._lock:
            self._records.append(saved)
            self._flush()
        return saved

    async def query(self, query: Optional[CostQuery] = None) -> list[CostRecord]:
        await self.initialize()
        query = query or CostQuery()
        return paginate(newest_first(r for r in self._records if query.matches(r)), query)

    async def cleanup(self, older_than: datetime) -> int:
        await self.initialize()
        async with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.timestamp >= older_than]
            removed = before - len(self._records)
            if removed:
                self._flush()
        return removed
