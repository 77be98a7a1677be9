"""In-process cost ledger."""

from datetime import datetime
from typing import Optional

from rana.ledger.base import CostStore, newest_first, paginate
from rana.schemas.cost import CostQuery, CostRecord, CostRecordCreate, generate_record_id


class MemoryCostStore(CostStore):
    def __init__(self) -> None:
        self._records: list[CostRecord] = []

    async def save(self, record: CostRecordCreate) -> CostRecord:
        saved = CostRecord(id=generate_record_id(), **record.model_dump())
        self._records.append(saved)
        return saved

    async def query(self, query: Optional[CostQuery] = None) -> list[CostRecord]:
        query = query or CostQuery()
        return paginate(newest_first(r for r in self._records if query.matches(r)), query)

    async def cleanup(self, older_than: datetime) -> int:
        before = len(self._records)
        self._records = [r for r in self._records if r.timestamp >= older_than]
        return before - len(self._records)
