"""
RANA API
========
FastAPI application entry point.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from rana import __version__
from rana.api import api_router
from rana.client import RanaClient
from rana.config import settings
from rana.core.logging import configure_logging
from rana.jobs import MaintenanceScheduler

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Starting RANA", env=settings.app_env)
    client = RanaClient()
    await client.initialize()
    app.state.client = client
    logger.info(
        "Client ready",
        cache=settings.cache_backend,
        ledger=settings.ledger_backend,
        providers=client.keys.get_available_providers() if client.keys.validate()[0] else [],
    )

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = MaintenanceScheduler(client.cache, client.cost.store)
        scheduler.setup()
        scheduler.start()

    yield

    logger.info("Shutting down RANA")
    if scheduler is not None:
        scheduler.stop()
    await client.close()
    logger.info("Client closed")


app = FastAPI(
    title="RANA API",
    description="Provider routing, response caching and cost tracking for LLM applications",
    version=__version__,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.is_production else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.metrics_enabled:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

app.include_router(api_router)


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "rana.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
