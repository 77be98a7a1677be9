"""
Cost Endpoints
==============
Ledger summaries, spend statistics and raw records.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from rana.api.deps import get_client
from rana.client import RanaClient
from rana.ledger.tracker import period_start
from rana.schemas.api import CostRecordsResponse, CostSummaryResponse
from rana.schemas.cost import BudgetPeriod, CostQuery

router = APIRouter()
logger = structlog.get_logger()


@router.get(
    "/summary",
    response_model=CostSummaryResponse,
    summary="Get cost summary",
    description="Aggregate spend for the current period with budget status",
)
async def get_cost_summary(
    client: Annotated[RanaClient, Depends(get_client)],
    period: BudgetPeriod = "daily",
    provider: str | None = None,
) -> CostSummaryResponse:
    try:
        summary = await client.cost.store.get_summary(
            CostQuery(start_date=period_start(period), provider=provider)
        )
        return CostSummaryResponse(
            summary=summary,
            stats=await client.cost.get_stats(period),
            budget=await client.cost.get_budget_status(),
        )
    except Exception as e:
        logger.error("Failed to get cost summary", period=period, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve cost summary",
        ) from e


@router.get(
    "/records",
    response_model=CostRecordsResponse,
    summary="List cost records",
    description="Ledger records newest first, with optional filters",
)
async def list_cost_records(
    client: Annotated[RanaClient, Depends(get_client)],
    provider: str | None = None,
    model: str | None = None,
    session_id: str | None = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> CostRecordsResponse:
    try:
        records = await client.cost.store.query(
            CostQuery(provider=provider, model=model, session_id=session_id, limit=limit, offset=offset)
        )
    except Exception as e:
        logger.error("Failed to list cost records", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve cost records",
        ) from e
    return CostRecordsResponse(records=records, count=len(records))
