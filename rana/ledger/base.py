"""
Cost Ledger Contract
====================
Interface shared by every ledger backend, plus the aggregation all of them use.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from rana.schemas.cost import CostQuery, CostRecord, CostRecordCreate, CostSummary, UsageBucket


def newest_first(records: Iterable[CostRecord]) -> list[CostRecord]:
    return sorted(records, key=lambda r: (r.timestamp, r.id), reverse=True)


def paginate(records: list[CostRecord], query: CostQuery) -> list[CostRecord]:
    end = query.offset + query.limit if query.limit else None
    return records[query.offset:end]


def summarize(records: Iterable[CostRecord]) -> CostSummary:
    """Aggregate a record set in a single pass."""
    summary = CostSummary()
    total_latency = 0

    for record in records:
        summary.total_cost += record.total_cost
        summary.total_tokens += record.total_tokens
        summary.total_requests += 1
        if record.cached:
            summary.cache_hits += 1
        total_latency += record.latency_ms

        for bucket_map, key in ((summary.by_provider, record.provider), (summary.by_model, record.model)):
            bucket = bucket_map.setdefault(key, UsageBucket())
            bucket.cost += record.total_cost
            bucket.tokens += record.total_tokens
            bucket.requests += 1

    if summary.total_requests:
        summary.avg_latency = total_latency / summary.total_requests
    return summary


class CostStore(ABC):
    """
    Append-only store of priced requests.

    Records are never mutated after ``save``; the only deletion is the
    age-based ``cleanup``.
    """

    async def initialize(self) -> None:
        return None

    @abstractmethod
    async def save(self, record: CostRecordCreate) -> CostRecord:
        ...

    @abstractmethod
    async def query(self, query: Optional[CostQuery] = None) -> list[CostRecord]:
        """Matching records, newest first."""

    @abstractmethod
    async def cleanup(self, older_than: datetime) -> int:
        """Delete records with ``timestamp < older_than``; return how many."""

    async def get_summary(self, query: Optional[CostQuery] = None) -> CostSummary:
        unpaged = (query or CostQuery()).model_copy(update={"limit": None, "offset": 0})
        return summarize(await self.query(unpaged))

    async def get_total_cost(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Decimal:
        summary = await self.get_summary(CostQuery(start_date=start_date, end_date=end_date))
        return summary.total_cost

    async def close(self) -> None:
        return None
