"""
Cost Tracker
============
Records every chat response into the ledger and enforces an optional budget.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

import structlog

from rana.core.errors import BudgetExceededError
from rana.ledger.base import CostStore
from rana.ledger.memory import MemoryCostStore
from rana.schemas.chat import ChatResponse
from rana.schemas.cost import (
    BudgetConfig,
    BudgetPeriod,
    BudgetStatus,
    CostQuery,
    CostRecord,
    CostRecordCreate,
    CostStats,
    ProviderBreakdown,
)

logger = structlog.get_logger()

# Unoptimized baseline: every request priced as GPT-4o.
BASELINE_INPUT_PER_1K = Decimal("0.0025")
BASELINE_OUTPUT_PER_1K = Decimal("0.01")


def period_start(period: BudgetPeriod, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the current budget window in UTC, or None for ``total``."""
    now = now or datetime.now(timezone.utc)
    if period == "hourly":
        return now.replace(minute=0, second=0, microsecond=0)
    if period == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "weekly":
        day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return day - timedelta(days=day.weekday())
    if period == "monthly":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


class CostTracker:
    """Thin layer over a CostStore that knows about responses and budgets."""

    def __init__(self, store: Optional[CostStore] = None, budget: Optional[BudgetConfig] = None):
        self.store = store or MemoryCostStore()
        self.budget = budget

    async def track(
        self,
        response: ChatResponse,
        session_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> CostRecord:
        record = await self.store.save(
            CostRecordCreate(
                timestamp=response.created_at,
                provider=response.provider,
                model=response.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
                input_cost=response.cost.input_cost,
                output_cost=response.cost.output_cost,
                cached=response.cached,
                latency_ms=response.latency_ms,
                request_id=response.id,
                session_id=session_id,
                metadata=metadata,
            )
        )
        logger.info(
            "Recorded cost",
            provider=record.provider,
            model=record.model,
            tokens=record.total_tokens,
            cost=float(record.total_cost),
            cached=record.cached,
        )
        return record

    async def get_stats(self, period: BudgetPeriod = "daily") -> CostStats:
        now = datetime.now(timezone.utc)
        start = period_start(period, now)
        records = await self.store.query(CostQuery(start_date=start, end_date=now))

        total_spent = sum((r.total_cost for r in records), Decimal("0"))
        total_tokens = sum(r.total_tokens for r in records)
        cache_hits = sum(1 for r in records if r.cached)

        baseline = sum(
            (
                Decimal(r.prompt_tokens) / 1000 * BASELINE_INPUT_PER_1K
                + Decimal(r.completion_tokens) / 1000 * BASELINE_OUTPUT_PER_1K
                for r in records
                if not r.cached
            ),
            Decimal("0"),
        )
        total_saved = baseline - total_spent

        by_provider: dict[str, list[CostRecord]] = {}
        for record in records:
            by_provider.setdefault(record.provider, []).append(record)

        breakdown = []
        for provider, provider_records in by_provider.items():
            cost = sum((r.total_cost for r in provider_records), Decimal("0"))
            breakdown.append(
                ProviderBreakdown(
                    provider=provider,
                    model=provider_records[-1].model,
                    requests=len(provider_records),
                    total_tokens=sum(r.total_tokens for r in provider_records),
                    total_cost=cost,
                    percentage=float(cost / total_spent * 100) if total_spent else 0.0,
                )
            )

        return CostStats(
            total_spent=total_spent,
            total_saved=total_saved,
            savings_percentage=float(total_saved / baseline * 100) if baseline else 0.0,
            total_requests=len(records),
            total_tokens=total_tokens,
            cache_hit_rate=cache_hits / len(records) if records else 0.0,
            breakdown=breakdown,
            period_start=start or (records[-1].timestamp if records else now),
            period_end=now,
        )

    def set_budget(self, budget: BudgetConfig) -> None:
        self.budget = budget
        logger.info("Budget configured", limit=float(budget.limit), period=budget.period, action=budget.action)

    def clear_budget(self) -> None:
        self.budget = None

    async def get_budget_status(self) -> Optional[BudgetStatus]:
        if self.budget is None:
            return None
        spent = await self.store.get_total_cost(start_date=period_start(self.budget.period))
        limit = self.budget.limit
        percent = float(spent / limit * 100)
        return BudgetStatus(
            limit=limit,
            spent=spent,
            remaining=max(limit - spent, Decimal("0")),
            percent_used=percent,
            period=self.budget.period,
            is_warning=percent >= self.budget.warning_threshold * 100,
            is_exceeded=spent >= limit,
        )

    async def check_budget(self, critical: bool = False) -> None:
        """
        Enforce the budget before a request is dispatched.

        Raises BudgetExceededError only when the action is ``block`` and the
        request is not an allowed critical request.
        """
        status = await self.get_budget_status()
        if status is None or self.budget is None:
            return

        if status.is_exceeded:
            if self.budget.action == "block" and not (critical and self.budget.allow_critical):
                raise BudgetExceededError(float(status.spent), float(status.limit), status.period)
            log = logger.warning if self.budget.action == "warn" else logger.info
            log("Budget exceeded", spent=float(status.spent), limit=float(status.limit), period=status.period)
        elif status.is_warning:
            logger.warning("Budget warning threshold reached", percent_used=round(status.percent_used, 2))

    async def will_exceed(self, estimated_cost: Decimal) -> bool:
        status = await self.get_budget_status()
        return status is not None and status.spent + estimated_cost > status.limit
