"""
Cost Ledger Tests
=================
Backend equivalence for the cost stores, plus tracker budgets and stats.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from rana.core.errors import BudgetExceededError
from rana.ledger import CostTracker, FileCostStore, MemoryCostStore, SQLCostStore, sqlite_url
from rana.schemas.chat import ChatResponse, CostBreakdown, TokenUsage
from rana.schemas.cost import BudgetConfig, CostQuery, CostRecordCreate

NOW = datetime.now(timezone.utc)


def entry(provider="anthropic", model="claude-3-5-haiku-20241022", cost="0.01", age_days=0, **extra):
    return CostRecordCreate(
        timestamp=NOW - timedelta(days=age_days),
        provider=provider,
        model=model,
        prompt_tokens=100,
        completion_tokens=50,
        input_cost=Decimal(cost) / 2,
        output_cost=Decimal(cost) / 2,
        latency_ms=200,
        **extra,
    )


def response(cost: str = "0.5", cached: bool = False) -> ChatResponse:
    half = Decimal(cost) / 2
    return ChatResponse(
        provider="anthropic",
        model="claude-3-5-haiku-20241022",
        content="ok",
        usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
        cost=CostBreakdown(input_cost=half, output_cost=half, total_cost=Decimal(cost)),
        cached=cached,
    )


@pytest.fixture(params=["memory", "file", "sqlite"])
async def store(request, tmp_path):
    """Each ledger backend, initialized and closed around the test."""
    if request.param == "memory":
        backend = MemoryCostStore()
    elif request.param == "file":
        backend = FileCostStore(tmp_path / "ledger.json")
    else:
        backend = SQLCostStore(sqlite_url(tmp_path / "ledger.db"))
    await backend.initialize()
    yield backend
    await backend.close()


class TestCostStores:
    """Every backend must behave identically."""

    async def test_save_assigns_id_and_total(self, store):
        """Test saved records get a cost_ id and a derived total."""
        record = await store.save(entry(cost="0.02"))

        assert record.id.startswith("cost_")
        assert record.total_cost == Decimal("0.02")
        assert record.total_tokens == 150

    async def test_query_newest_first_with_filters(self, store):
        """Test ordering, provider filter and pagination."""
        await store.save(entry(provider="openai", model="gpt-4o", age_days=2))
        await store.save(entry(age_days=1))
        await store.save(entry(age_days=0))

        everything = await store.query()
        assert [r.timestamp for r in everything] == sorted((r.timestamp for r in everything), reverse=True)

        openai = await store.query(CostQuery(provider="openai"))
        assert [r.model for r in openai] == ["gpt-4o"]

        page = await store.query(CostQuery(limit=1, offset=1))
        assert len(page) == 1
        assert page[0].id == everything[1].id

    async def test_query_by_date_range_and_session(self, store):
        """Test start date and session filters combine."""
        await store.save(entry(age_days=10, session_id="s1"))
        await store.save(entry(age_days=0, session_id="s1"))
        await store.save(entry(age_days=0, session_id="s2"))

        recent = await store.query(CostQuery(start_date=NOW - timedelta(days=1), session_id="s1"))

        assert len(recent) == 1
        assert recent[0].session_id == "s1"

    async def test_summary_aggregates(self, store):
        """Test summary totals and per-provider buckets."""
        await store.save(entry(cost="0.01"))
        await store.save(entry(cost="0.03", cached=True))
        await store.save(entry(provider="openai", model="gpt-4o", cost="0.02"))

        summary = await store.get_summary()

        assert summary.total_requests == 3
        assert summary.total_cost == Decimal("0.06")
        assert summary.cache_hits == 1
        assert summary.by_provider["anthropic"].requests == 2
        assert summary.by_model["gpt-4o"].cost == Decimal("0.02")
        assert summary.avg_latency == 200

    async def test_cleanup_removes_only_old_records(self, store):
        """Test cleanup deletes records strictly older than the cutoff."""
        await store.save(entry(age_days=100))
        await store.save(entry(age_days=95))
        await store.save(entry(age_days=1))

        removed = await store.cleanup(NOW - timedelta(days=90))

        assert removed == 2
        assert len(await store.query()) == 1

    async def test_total_cost_for_window(self, store):
        """Test total cost honours the start date."""
        await store.save(entry(cost="0.05", age_days=3))
        await store.save(entry(cost="0.01", age_days=0))

        total = await store.get_total_cost(start_date=NOW - timedelta(days=1))

        assert total == Decimal("0.01")


class TestFileCostStore:
    """Persistence specifics of the JSON file ledger."""

    async def test_reload_from_disk(self, tmp_path):
        """Test records survive a new store instance on the same file."""
        path = tmp_path / "ledger.json"
        first = FileCostStore(path)
        saved = await first.save(entry())

        second = FileCostStore(path)
        records = await second.query()

        assert [r.id for r in records] == [saved.id]


class TestCostTracker:
    """Tests for response tracking and budget enforcement."""

    async def test_track_records_response(self):
        """Test tracking copies usage and cost into the ledger."""
        tracker = CostTracker()
        record = await tracker.track(response("0.004"), session_id="abc", metadata={"k": "v"})

        assert record.total_cost == Decimal("0.004")
        assert record.request_id.startswith("chat_")
        assert record.session_id == "abc"
        assert record.metadata == {"k": "v"}

    async def test_block_budget_raises_once_exceeded(self):
        """Test a block budget rejects requests after the limit is reached."""
        tracker = CostTracker(budget=BudgetConfig(limit=Decimal("1"), period="daily", action="block"))
        await tracker.check_budget()
        await tracker.track(response("1.0"))

        with pytest.raises(BudgetExceededError) as exc_info:
            await tracker.check_budget()
        assert exc_info.value.limit == 1.0
        assert exc_info.value.status_code == 402

    async def test_critical_requests_bypass_block(self):
        """Test critical requests pass when allow_critical is set."""
        tracker = CostTracker(budget=BudgetConfig(limit=Decimal("1"), action="block", allow_critical=True))
        await tracker.track(response("2.0"))

        await tracker.check_budget(critical=True)

    async def test_warn_budget_never_raises(self):
        """Test a warn budget only logs."""
        tracker = CostTracker(budget=BudgetConfig(limit=Decimal("1"), action="warn"))
        await tracker.track(response("5.0"))

        await tracker.check_budget()

    async def test_budget_status(self):
        """Test budget status arithmetic and warning threshold."""
        tracker = CostTracker(budget=BudgetConfig(limit=Decimal("1"), warning_threshold=0.5))
        await tracker.track(response("0.6"))

        status = await tracker.get_budget_status()

        assert status.spent == Decimal("0.6")
        assert status.remaining == Decimal("0.4")
        assert status.is_warning
        assert not status.is_exceeded
        assert await tracker.will_exceed(Decimal("0.5"))
        assert not await tracker.will_exceed(Decimal("0.1"))

    async def test_no_budget_has_no_status(self):
        """Test budget status is None without a configured budget."""
        assert await CostTracker().get_budget_status() is None

    async def test_stats_count_cache_hits(self):
        """Test stats report totals and the cache hit rate."""
        tracker = CostTracker()
        await tracker.track(response("0.2"))
        await tracker.track(response("0", cached=True))

        stats = await tracker.get_stats("daily")

        assert stats.total_requests == 2
        assert stats.total_spent == Decimal("0.2")
        assert stats.cache_hit_rate == 0.5
        assert stats.breakdown[0].provider == "anthropic"
