"""
Cost Ledger
===========
Append-only store of priced requests with interchangeable backends.
"""

from typing import Optional

from rana.config import Settings, settings
from rana.ledger.base import CostStore, summarize
from rana.ledger.file import FileCostStore
from rana.ledger.memory import MemoryCostStore
from rana.ledger.sql import SQLCostStore, sqlite_url
from rana.ledger.tracker import CostTracker


def create_cost_store(config: Optional[Settings] = None) -> CostStore:
    """Build the ledger backend named by ``ledger_backend``."""
    config = config or settings
    if config.ledger_backend == "file":
        return FileCostStore(config.ledger_path)
    if config.ledger_backend == "sqlite":
        return SQLCostStore(sqlite_url(config.ledger_sqlite_path))
    if config.ledger_backend == "postgres":
        return SQLCostStore(config.database_url)
    return MemoryCostStore()


__all__ = [
    "CostStore",
    "CostTracker",
    "FileCostStore",
    "MemoryCostStore",
    "SQLCostStore",
    "create_cost_store",
    "sqlite_url",
    "summarize",
]
