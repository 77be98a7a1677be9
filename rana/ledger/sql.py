"""
Relational Ledger
=================
SQLAlchemy async store for embedded (SQLite) and external (PostgreSQL) databases.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from rana.ledger.base import CostStore
from rana.models.base import Base
from rana.models.cost import CostRecordRow
from rana.schemas.cost import CostQuery, CostRecord, CostRecordCreate, generate_record_id

logger = structlog.get_logger()


def sqlite_url(path: str | Path) -> str:
    """Build an aiosqlite URL, creating the parent directory for file databases."""
    if str(path) == ":memory:":
        return "sqlite+aiosqlite:///:memory:"
    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{resolved}"


class SQLCostStore(CostStore):
    """Ledger backed by the ``cost_records`` table."""

    def __init__(self, database_url: str, engine: Optional[AsyncEngine] = None, pool_size: int = 5):
        self.database_url = database_url
        if engine is None:
            options: dict[str, Any] = {"echo": False}
            if not database_url.startswith("sqlite"):
                options.update(pool_size=pool_size, pool_pre_ping=True)
            engine = create_async_engine(database_url, **options)
        self.engine = engine
        self._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True
        logger.info("Cost ledger table ready", backend=self.engine.dialect.name)

    @staticmethod
    def _to_record(row: CostRecordRow) -> CostRecord:
        timestamp = row.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return CostRecord(
            id=row.id,
            timestamp=timestamp,
            provider=row.provider,
            model=row.model,
            prompt_tokens=row.prompt_tokens,
            completion_tokens=row.completion_tokens,
            total_tokens=row.total_tokens,
            input_cost=row.input_cost,
            output_cost=row.output_cost,
            cached=row.cached,
            latency_ms=row.latency_ms,
            request_id=row.request_id,
            session_id=row.session_id,
            metadata=row.metadata_json,
        )

    async def save(self, record: CostRecordCreate) -> CostRecord:
        await self.initialize()
        row = CostRecordRow(
            id=generate_record_id(),
            timestamp=record.timestamp,
            provider=record.provider,
            model=record.model,
            prompt_tokens=record.prompt_tokens,
            completion_tokens=record.completion_tokens,
            total_tokens=record.total_tokens,
            input_cost=record.input_cost,
            output_cost=record.output_cost,
            total_cost=record.total_cost,
            cached=record.cached,
            latency_ms=record.latency_ms,
            request_id=record.request_id,
            session_id=record.session_id,
            metadata_json=record.metadata,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
        return CostRecord(id=row.id, **record.model_dump())

    async def query(self, query: Optional[CostQuery] = None) -> list[CostRecord]:
        await self.initialize()
        query = query or CostQuery()

        stmt = select(CostRecordRow)
        if query.start_date:
            stmt = stmt.where(CostRecordRow.timestamp >= query.start_date)
        if query.end_date:
            stmt = stmt.where(CostRecordRow.timestamp <= query.end_date)
        if query.provider:
            stmt = stmt.where(CostRecordRow.provider == query.provider)
        if query.model:
            stmt = stmt.where(CostRecordRow.model == query.model)
        if query.session_id:
            stmt = stmt.where(CostRecordRow.session_id == query.session_id)
        if query.cached is not None:
            stmt = stmt.where(CostRecordRow.cached == query.cached)

        stmt = stmt.order_by(CostRecordRow.timestamp.desc(), CostRecordRow.id.desc()).offset(query.offset)
        if query.limit:
            stmt = stmt.limit(query.limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(row) for row in result.scalars().all()]

    async def cleanup(self, older_than: datetime) -> int:
        await self.initialize()
        async with self._session_factory() as session:
            result = await session.execute(
                delete(CostRecordRow).where(CostRecordRow.timestamp < older_than)
            )
            await session.commit()
            removed = result.rowcount or 0
        logger.info("Cleaned up cost ledger", removed=removed, older_than=older_than.isoformat())
        return removed

    async def close(self) -> None:
        await self.engine.dispose()
