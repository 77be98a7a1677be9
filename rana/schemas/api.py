"""
API Schemas
===========
Response and request bodies for the HTTP service.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from rana.schemas.cost import BudgetStatus, CostRecord, CostStats, CostSummary


class HealthResponse(BaseModel):
    status: str
    version: str


class ProviderStatus(BaseModel):
    """Availability of one provider under the active tier."""

    provider: str
    available: bool
    default_model: str


class ProvidersResponse(BaseModel):
    tier: str
    key_source: str
    providers: list[ProviderStatus]


class ModelPricing(BaseModel):
    """Pricing information for a model."""

    model: str
    input_price_per_1k: Decimal
    output_price_per_1k: Decimal


class ProviderModelsResponse(BaseModel):
    provider: str
    models: list[ModelPricing]


class CostSummaryResponse(BaseModel):
    summary: CostSummary
    stats: CostStats
    budget: BudgetStatus | None = None


class CostRecordsResponse(BaseModel):
    records: list[CostRecord]
    count: int


class ScanTextRequest(BaseModel):
    """Text to run through the injection, content and PII checks."""

    text: str = Field(..., min_length=1)
    sensitivity: Literal["low", "medium", "high"] = "medium"
    pii_mode: Literal["detect", "redact", "mask"] = "redact"


class InjectionReport(BaseModel):
    detected: bool
    confidence: float
    risk_level: str
    patterns_matched: list[str]


class ContentReport(BaseModel):
    passed: bool
    action_taken: str
    categories: list[str]
    filtered_content: str


class PIIReport(BaseModel):
    detected: bool
    by_type: dict[str, int]
    processed: str


class ScanTextResponse(BaseModel):
    safe: bool
    injection: InjectionReport
    content: ContentReport
    pii: PIIReport
