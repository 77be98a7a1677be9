"""
HTTP API
========
FastAPI routers for chat, costs, providers and security scans.
"""

from rana.api.router import api_router

__all__ = ["api_router"]
