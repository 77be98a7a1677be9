"""
Provider Endpoints
==================
Provider availability, model pricing and pricing reload.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from rana.api.deps import get_client
from rana.client import RanaClient
from rana.providers import PROVIDERS
from rana.schemas.api import ModelPricing, ProviderModelsResponse, ProvidersResponse, ProviderStatus

router = APIRouter()
logger = structlog.get_logger()


@router.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="List providers",
    description="Every supported provider and whether a credential is available for it",
)
async def list_providers(client: Annotated[RanaClient, Depends(get_client)]) -> ProvidersResponse:
    keys = client.keys
    valid, _ = keys.validate()
    return ProvidersResponse(
        tier=keys.tier,
        key_source="waymaker" if keys.is_paid else "user",
        providers=[
            ProviderStatus(
                provider=name,
                available=valid and keys.is_provider_available(name),
                default_model=spec.default_model,
            )
            for name, spec in PROVIDERS.items()
        ],
    )


@router.get(
    "/provider/{provider}/models",
    response_model=ProviderModelsResponse,
    summary="Get provider models",
    description="Get configured models and pricing for a provider",
)
async def get_provider_models(
    provider: str,
    client: Annotated[RanaClient, Depends(get_client)],
) -> ProviderModelsResponse:
    if provider not in PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid provider. Must be one of: {', '.join(PROVIDERS)}",
        )

    models = client.pricing.get_provider_models(provider)
    return ProviderModelsResponse(
        provider=provider,
        models=[
            ModelPricing(
                model=m["model"],
                input_price_per_1k=m["input_price_per_1k"],
                output_price_per_1k=m["output_price_per_1k"],
            )
            for m in models
        ],
    )


@router.post(
    "/provider/pricing/reload",
    summary="Reload pricing configuration",
    description="Reload pricing configuration from the YAML file",
)
async def reload_pricing(client: Annotated[RanaClient, Depends(get_client)]) -> dict[str, str]:
    try:
        client.pricing.reload()
    except Exception as e:
        logger.error("Failed to reload pricing", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reload pricing configuration",
        ) from e
    return {"status": "ok", "message": "Pricing configuration reloaded"}
