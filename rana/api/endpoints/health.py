"""
Health Check Endpoints
======================
Liveness probe.
"""

from fastapi import APIRouter

from rana import __version__
from rana.schemas.api import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness probe endpoint.
    Returns OK if the service is running.
    """
    return HealthResponse(status="ok", version=__version__)
