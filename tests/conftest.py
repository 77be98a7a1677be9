"""
Test Configuration
==================
Pytest fixtures for RANA tests.
"""

import json
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from rana.api.deps import get_client
from rana.cache import MemoryCache
from rana.client import RanaClient
from rana.config import Settings
from rana.core.keys import ApiKeyManager
from rana.core.pricing import PricingEngine
from rana.ledger import CostTracker, MemoryCostStore
from rana.main import app
from rana.schemas.chat import ChatResponse, TokenUsage, ToolCall

PRICING_PATH = Path(__file__).resolve().parent.parent / "config" / "pricing.yaml"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedLLM:
    """Async llm callable that replays queued responses and records each call."""

    def __init__(self, *responses: ChatResponse):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, messages, tools=None, **options) -> ChatResponse:
        self.calls.append({"messages": list(messages), "tools": tools, **options})
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        return self.responses.pop(0)


def reply(content: str = "", tool_calls: list[ToolCall] | None = None) -> ChatResponse:
    return ChatResponse(
        provider="anthropic",
        model="claude-3-5-haiku-20241022",
        content=content,
        tool_calls=tool_calls or [],
        usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
    )


def anthropic_body(text: str = "Hello!", input_tokens: int = 5, output_tokens: int = 1) -> dict:
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


class RecordingTransport:
    """httpx handler that answers with a fixed response and keeps every request."""

    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self.body = anthropic_body() if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, content=self.body)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def pricing() -> PricingEngine:
    """Pricing engine loaded from the bundled pricing config."""
    return PricingEngine(str(PRICING_PATH))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Isolated settings: memory backends, one anthropic key, no .env file."""
    return Settings(
        _env_file=None,
        anthropic_api_key="sk-ant-test",
        cache_backend="memory",
        ledger_backend="memory",
        cache_dir=str(tmp_path / "cache"),
        pricing_config_path=str(PRICING_PATH),
        scheduler_enabled=False,
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def rana_client(test_settings, pricing, transport) -> RanaClient:
    """RanaClient wired to a mock HTTP transport and in-memory backends."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    client = RanaClient(
        keys=ApiKeyManager(tier="free", user_keys={"anthropic": "sk-ant-test"}),
        cache=MemoryCache(ttl=3600),
        tracker=CostTracker(MemoryCostStore()),
        pricing=pricing,
        http_client=http_client,
        config=test_settings,
    )
    await client.initialize()
    yield client
    await client.close()
    await http_client.aclose()


@pytest.fixture
def api_client(rana_client) -> Generator[TestClient, None, None]:
    """Test client with the shared RanaClient dependency overridden."""
    app.dependency_overrides[get_client] = lambda: rana_client
    yield TestClient(app)
    app.dependency_overrides.clear()
