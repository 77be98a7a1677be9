"""
Provider Dispatch Tests
=======================
Request shapes, response parsing and error typing per provider, over a mock
HTTP transport.
"""

from decimal import Decimal

import httpx
import pytest

from rana.core.errors import (
    AuthenticationError,
    ConfigurationError,
    EmptyResponseError,
    ProviderHTTPError,
    ProviderNetworkError,
    RateLimitError,
)
from rana.core.keys import ApiKeyManager
from rana.providers import ProviderCall, ProviderDispatcher, is_retryable, with_retry
from rana.schemas.chat import ChatMessage, ToolCall, ToolDefinition

from tests.conftest import RecordingTransport

USER_KEYS = {
    "anthropic": "sk-ant",
    "openai": "sk-oai",
    "google": "g-key",
    "cohere": "co-key",
    "groq": "gq-key",
}

WEATHER = ToolDefinition(
    name="weather",
    description="Look up the weather",
    parameters={"type": "object", "properties": {"city": {"type": "string"}}},
)


def call(model: str, tools=None, system: bool = False) -> ProviderCall:
    messages = [ChatMessage(role="user", content="Hi")]
    if system:
        messages.insert(0, ChatMessage(role="system", content="Be brief."))
    return ProviderCall(model=model, messages=messages, temperature=0.2, max_tokens=64, tools=tools)


def dispatcher_for(handler, pricing, user_keys=None) -> ProviderDispatcher:
    keys = ApiKeyManager(tier="free", user_keys=USER_KEYS if user_keys is None else user_keys)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProviderDispatcher(keys, pricing=pricing, http_client=http_client)


class TestAnthropic:
    """Messages API request and response shapes."""

    async def test_request_shape_and_priced_response(self, pricing):
        """Test headers, system hoisting and cost on a plain reply."""
        transport = RecordingTransport()
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("anthropic", call("claude-3-5-sonnet-20241022", system=True))

        request = transport.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = transport.last_json()
        assert body["system"] == "Be brief."
        assert body["messages"] == [{"role": "user", "content": "Hi"}]
        assert body["max_tokens"] == 64

        assert response.content == "Hello!"
        assert response.usage.total_tokens == 6
        assert response.cost.total_cost == Decimal("0.00003")
        assert response.finish_reason == "end_turn"

    async def test_tool_use_blocks(self, pricing):
        """Test tool definitions go out as input_schema and tool_use comes back as calls."""
        transport = RecordingTransport(body={
            "content": [
                {"type": "text", "text": "Checking."},
                {"type": "tool_use", "id": "tu_1", "name": "weather", "input": {"city": "Oslo"}},
            ],
            "stop_reason": "tool_use",
            "usage": {"input_tokens": 20, "output_tokens": 10},
        })
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022", tools=[WEATHER]))

        assert transport.last_json()["tools"][0]["input_schema"] == WEATHER.parameters
        assert response.tool_calls == [ToolCall(id="tu_1", name="weather", arguments={"city": "Oslo"})]
        assert response.content == "Checking."

    async def test_tool_result_turn_becomes_user_block(self, pricing):
        """Test tool messages are sent as tool_result blocks."""
        transport = RecordingTransport()
        dispatcher = dispatcher_for(transport, pricing)
        messages = [
            ChatMessage(role="user", content="Weather?"),
            ChatMessage(
                role="assistant",
                content="",
                tool_calls=[ToolCall(id="tu_1", name="weather", arguments={"city": "Oslo"})],
            ),
            ChatMessage(role="tool", content="sunny", tool_call_id="tu_1", name="weather"),
        ]

        await dispatcher.dispatch(
            "anthropic",
            ProviderCall(model="claude-3-5-haiku-20241022", messages=messages, temperature=0, max_tokens=10),
        )

        sent = transport.last_json()["messages"]
        assert sent[1]["content"][0]["type"] == "tool_use"
        assert sent[2] == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "tu_1", "content": "sunny"}],
        }


class TestOpenAICompatible:
    """Chat Completions format shared by OpenAI, Groq and friends."""

    async def test_openai_request_and_tool_call_parsing(self, pricing):
        """Test bearer auth and JSON-string tool arguments."""
        transport = RecordingTransport(body={
            "choices": [{
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [{
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "weather", "arguments": '{"city": "Lima"}'},
                    }],
                },
                "finish_reason": "tool_calls",
            }],
            "usage": {"prompt_tokens": 1000, "completion_tokens": 500},
        })
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("openai", call("gpt-4o", tools=[WEATHER], system=True))

        request = transport.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-oai"
        body = transport.last_json()
        assert body["messages"][0] == {"role": "system", "content": "Be brief."}
        assert body["tools"][0]["function"]["name"] == "weather"

        assert response.content == ""
        assert response.tool_calls[0].arguments == {"city": "Lima"}
        assert response.cost.total_cost == Decimal("0.0075")

    async def test_groq_uses_its_base_url(self, pricing):
        """Test compatible vendors post to their own endpoint."""
        transport = RecordingTransport(body={
            "choices": [{"message": {"content": "fast"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 1},
        })
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("groq", call("llama-3.1-8b-instant"))

        assert str(transport.requests[0].url) == "https://api.groq.com/openai/v1/chat/completions"
        assert response.content == "fast"

    async def test_cohere_v2_response(self, pricing):
        """Test cohere content parts and billed token usage."""
        transport = RecordingTransport(body={
            "message": {"role": "assistant", "content": [{"type": "text", "text": "Bonjour"}]},
            "finish_reason": "COMPLETE",
            "usage": {"tokens": {"input_tokens": 7, "output_tokens": 2}},
        })
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("cohere", call("command-r"))

        assert str(transport.requests[0].url) == "https://api.cohere.com/v2/chat"
        assert response.content == "Bonjour"
        assert response.usage.prompt_tokens == 7
        assert response.usage.completion_tokens == 2


class TestGoogle:
    """Gemini generateContent shapes."""

    async def test_request_and_function_call(self, pricing):
        """Test model in the URL, key header, system instruction and functionCall parsing."""
        transport = RecordingTransport(body={
            "candidates": [{
                "content": {"parts": [{"functionCall": {"name": "weather", "args": {"city": "Rome"}}}]},
                "finishReason": "STOP",
            }],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 4},
        })
        dispatcher = dispatcher_for(transport, pricing)

        response = await dispatcher.dispatch("google", call("gemini-1.5-flash", tools=[WEATHER], system=True))

        request = transport.requests[0]
        assert str(request.url).endswith("/models/gemini-1.5-flash:generateContent")
        assert request.headers["x-goog-api-key"] == "g-key"
        body = transport.last_json()
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "Hi"}]}]
        assert body["generationConfig"]["maxOutputTokens"] == 64

        assert response.tool_calls[0].name == "weather"
        assert response.tool_calls[0].arguments == {"city": "Rome"}
        assert response.usage.total_tokens == 16


class TestOllama:
    """Local server without an API key."""

    async def test_no_key_needed_and_default_url(self, pricing):
        """Test ollama works with no credential and posts to localhost."""
        transport = RecordingTransport(body={
            "message": {"role": "assistant", "content": "local"},
            "done": True,
            "prompt_eval_count": 4,
            "eval_count": 2,
        })
        dispatcher = dispatcher_for(transport, pricing, user_keys={"openai": "x"})

        response = await dispatcher.dispatch("ollama", call("llama3.2"))

        assert str(transport.requests[0].url) == "http://localhost:11434/api/chat"
        assert transport.last_json()["stream"] is False
        assert response.content == "local"
        assert response.finish_reason == "stop"
        assert response.cost.total_cost == Decimal("0")

    async def test_configured_base_url(self, pricing):
        """Test the ollama credential is used as the server URL."""
        transport = RecordingTransport(body={"message": {"content": "hi"}, "done": True})
        dispatcher = dispatcher_for(transport, pricing, user_keys={"ollama": "http://gpu-box:11434/"})

        await dispatcher.dispatch("ollama", call("llama3.2"))

        assert str(transport.requests[0].url) == "http://gpu-box:11434/api/chat"


class TestDispatchErrors:
    """Failures are typed before they reach callers."""

    async def test_missing_key_fails_before_request(self, pricing):
        """Test a provider without credentials raises ConfigurationError."""
        transport = RecordingTransport()
        dispatcher = dispatcher_for(transport, pricing, user_keys={"openai": "x"})

        with pytest.raises(ConfigurationError):
            await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022"))
        assert transport.requests == []

    async def test_unknown_provider(self, pricing):
        """Test an unknown provider name is a configuration error."""
        dispatcher = dispatcher_for(RecordingTransport(), pricing)

        with pytest.raises(ConfigurationError, match="Unknown provider"):
            await dispatcher.dispatch("nope", call("m"))

    @pytest.mark.parametrize(
        "status,error_type",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (429, RateLimitError),
            (500, ProviderHTTPError),
        ],
    )
    async def test_http_status_mapping(self, pricing, status, error_type):
        """Test error statuses map to typed errors carrying the provider message."""
        transport = RecordingTransport(status_code=status, body={"error": {"message": "nope"}})
        dispatcher = dispatcher_for(transport, pricing)

        with pytest.raises(error_type) as exc_info:
            await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022"))

        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "anthropic"
        assert exc_info.value.provider_message == "nope"

    async def test_network_failure(self, pricing):
        """Test transport errors become ProviderNetworkError."""
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = dispatcher_for(refuse, pricing)

        with pytest.raises(ProviderNetworkError):
            await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022"))

    async def test_empty_body(self, pricing):
        """Test an empty 200 body is rejected."""
        dispatcher = dispatcher_for(RecordingTransport(body=b""), pricing)

        with pytest.raises(EmptyResponseError):
            await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022"))

    async def test_no_content_and_no_tools(self, pricing):
        """Test a reply with nothing in it is rejected."""
        transport = RecordingTransport(body={"content": [], "usage": {}})
        dispatcher = dispatcher_for(transport, pricing)

        with pytest.raises(EmptyResponseError, match="no content"):
            await dispatcher.dispatch("anthropic", call("claude-3-5-haiku-20241022"))

    async def test_malformed_body(self, pricing):
        """Test a body missing the expected fields is rejected."""
        dispatcher = dispatcher_for(RecordingTransport(body={"unexpected": True}), pricing)

        with pytest.raises(EmptyResponseError, match="unexpected body"):
            await dispatcher.dispatch("openai", call("gpt-4o"))


class TestRetryPolicy:
    """Tests for which failures are retried."""

    def test_retryable_classification(self):
        """Test network, rate limit and 5xx are retryable; auth and 4xx are not."""
        assert is_retryable(ProviderNetworkError("down"))
        assert is_retryable(RateLimitError("openai", 429, "slow down"))
        assert is_retryable(ProviderHTTPError("openai", 503, "unavailable"))
        assert not is_retryable(ProviderHTTPError("openai", 400, "bad request"))
        assert not is_retryable(AuthenticationError("openai", 401, "bad key"))
        assert not is_retryable(ValueError("other"))

    async def test_retries_until_success(self):
        """Test a transient failure is retried and the result returned."""
        attempts = []

        @with_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ProviderNetworkError("down")
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 3

    async def test_non_retryable_raises_immediately(self):
        """Test a non-retryable error is not retried."""
        attempts = []

        @with_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def broken():
            attempts.append(1)
            raise AuthenticationError("openai", 401, "bad key")

        with pytest.raises(AuthenticationError):
            await broken()
        assert len(attempts) == 1
