"""
Cost Schemas
============
Pydantic models for the cost ledger, summaries and budgets.
"""

import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def generate_record_id() -> str:
    """Ledger ids look like cost_<epoch-ms>_<random>."""
    return f"cost_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _as_utc(v: Any) -> Any:
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if isinstance(v, datetime):
        v = v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)
    return v


class CostRecordCreate(BaseModel):
    """A ledger entry before the store assigns its id."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    provider: str
    model: str
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    input_cost: Decimal = Decimal("0")
    output_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    cached: bool = False
    latency_ms: int = Field(default=0, ge=0)
    request_id: str | None = None
    session_id: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime:
        return _as_utc(v)

    @model_validator(mode="before")
    @classmethod
    def derive_totals(cls, data: Any) -> Any:
        # total_cost is always input_cost + output_cost
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("total_tokens"):
                data["total_tokens"] = int(data.get("prompt_tokens") or 0) + int(
                    data.get("completion_tokens") or 0
                )
            data["total_cost"] = Decimal(str(data.get("input_cost") or 0)) + Decimal(
                str(data.get("output_cost") or 0)
            )
        return data


class CostRecord(CostRecordCreate):
    """Persisted, immutable ledger entry."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str


class CostQuery(BaseModel):
    """Ledger filters; every set field must match."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    provider: str | None = None
    model: str | None = None
    session_id: str | None = None
    cached: bool | None = None
    limit: int | None = Field(default=None, gt=0)
    offset: int = Field(default=0, ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _as_utc(v)

    def matches(self, record: CostRecord) -> bool:
        if self.start_date and record.timestamp < self.start_date:
            return False
        if self.end_date and record.timestamp > self.end_date:
            return False
        if self.provider and record.provider != self.provider:
            return False
        if self.model and record.model != self.model:
            return False
        if self.session_id and record.session_id != self.session_id:
            return False
        if self.cached is not None and record.cached != self.cached:
            return False
        return True


class UsageBucket(BaseModel):
    cost: Decimal = Decimal("0")
    tokens: int = 0
    requests: int = 0


class CostSummary(BaseModel):
    total_cost: Decimal = Decimal("0")
    total_tokens: int = 0
    total_requests: int = 0
    cache_hits: int = 0
    avg_latency: float = 0.0
    by_provider: dict[str, UsageBucket] = Field(default_factory=dict)
    by_model: dict[str, UsageBucket] = Field(default_factory=dict)


class ProviderBreakdown(BaseModel):
    provider: str
    model: str
    requests: int
    total_tokens: int
    total_cost: Decimal
    percentage: float


class CostStats(BaseModel):
    """Spend for a period, with savings measured against an unoptimized baseline."""

    total_spent: Decimal
    total_saved: Decimal
    savings_percentage: float
    total_requests: int
    total_tokens: int
    cache_hit_rate: float
    breakdown: list[ProviderBreakdown]
    period_start: datetime
    period_end: datetime


BudgetPeriod = Literal["hourly", "daily", "weekly", "monthly", "total"]
BudgetAction = Literal["block", "warn", "log"]


class BudgetConfig(BaseModel):
    limit: Decimal = Field(..., gt=0)
    period: BudgetPeriod = "daily"
    action: BudgetAction = "block"
    warning_threshold: float = Field(default=0.8, gt=0, le=1)
    allow_critical: bool = True


class BudgetStatus(BaseModel):
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: float
    period: BudgetPeriod
    is_warning: bool
    is_exceeded: bool
