"""
Chat Endpoints
==============
Send a chat request through provider selection, cache and cost tracking.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from rana.api.deps import get_client, http_error
from rana.client import RanaClient
from rana.core.errors import RanaError
from rana.schemas.chat import ChatRequest, ChatResponse

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a chat request",
    description="Route a chat request to a provider and record its cost",
)
async def chat(
    request: ChatRequest,
    client: Annotated[RanaClient, Depends(get_client)],
) -> ChatResponse:
    try:
        return await client.chat(request)
    except RanaError as e:
        logger.warning("Chat request failed", code=e.code, provider=e.provider, error=e.message)
        raise http_error(e) from e
    except Exception as e:
        logger.error("Chat request crashed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process chat request",
        ) from e
