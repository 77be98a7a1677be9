"""
Maintenance Scheduler
=====================
APScheduler jobs that sweep expired cache entries and enforce ledger retention.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from rana.cache import CacheProvider, create_cache
from rana.config import Settings, settings
from rana.ledger import CostStore, create_cost_store

logger = structlog.get_logger()


class MaintenanceScheduler:
    """
    Manages the cache sweep and ledger retention jobs.

    Job failures are logged and never propagate into the scheduler.
    """

    def __init__(self, cache: CacheProvider, store: CostStore, config: Optional[Settings] = None):
        self.config = config or settings
        self.cache = cache
        self.store = store
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

    async def run_cache_cleanup(self) -> int:
        """Remove expired cache entries."""
        try:
            removed = await self.cache.cleanup()
        except Exception as e:
            logger.error("Cache cleanup failed", error=str(e))
            return 0
        logger.info("Cache cleanup completed", removed=removed)
        return removed

    async def run_ledger_cleanup(self, now: Optional[datetime] = None) -> int:
        """Delete ledger records older than the retention window."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=self.config.ledger_retention_days)
        try:
            removed = await self.store.cleanup(cutoff)
        except Exception as e:
            logger.error("Ledger cleanup failed", error=str(e))
            return 0
        logger.info("Ledger cleanup completed", removed=removed, older_than=cutoff.isoformat())
        return removed

    def setup(self) -> None:
        self.scheduler.add_job(
            self.run_cache_cleanup,
            IntervalTrigger(minutes=self.config.cache_cleanup_minutes),
            id="cache_cleanup",
            name="Response Cache Sweep",
            replace_existing=True,
        )

        self.scheduler.add_job(
            self.run_ledger_cleanup,
            CronTrigger(hour=self.config.ledger_cleanup_hour, minute=0),
            id="ledger_cleanup",
            name="Cost Ledger Retention",
            replace_existing=True,
        )

        logger.info(
            "Scheduler configured",
            cache_cleanup_minutes=self.config.cache_cleanup_minutes,
            ledger_cleanup_hour=self.config.ledger_cleanup_hour,
            retention_days=self.config.ledger_retention_days,
        )

    def start(self) -> None:
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")


async def run_scheduler() -> None:
    """Run the maintenance jobs standalone against the configured backends."""
    cache = create_cache(settings)
    store = create_cost_store(settings)
    await store.initialize()
    scheduler = MaintenanceScheduler(cache, store)
    scheduler.setup()
    scheduler.start()

    try:
        while True:
            await asyncio.sleep(60)
    finally:
        scheduler.stop()
        await cache.close()
        await store.close()


def run() -> None:
    """Entry point for the scheduler worker."""
    from rana.core.logging import configure_logging

    configure_logging(settings.log_level, settings.log_format)
    if not settings.scheduler_enabled:
        logger.warning("Scheduler is disabled")
        return

    logger.info("Starting RANA maintenance scheduler")
    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        logger.info("Scheduler interrupted")


if __name__ == "__main__":
    run()
