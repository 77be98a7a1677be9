"""
API Router
==========
Main API router combining all endpoint modules.
"""

from fastapi import APIRouter

from rana.api.endpoints import chat, costs, health, providers, security

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])
api_router.include_router(costs.router, prefix="/costs", tags=["Costs"])
api_router.include_router(providers.router, tags=["Providers"])
api_router.include_router(security.router, prefix="/security", tags=["Security"])
