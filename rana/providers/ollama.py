"""Local Ollama server. The configured "key" is the server's base URL."""

from typing import Any, Optional

from rana.core.keys import ApiKeySource
from rana.providers.base import ProviderCall, ProviderReply, ProviderSpec
from rana.schemas.chat import ChatMessage, TokenUsage, ToolCall

DEFAULT_BASE_URL = "http://localhost:11434"


def _url(model: str, credential: Optional[ApiKeySource]) -> str:
    base = credential.key if credential and credential.source == "user" else DEFAULT_BASE_URL
    return f"{base.rstrip('/')}/api/chat"


def _message(message: ChatMessage) -> dict[str, Any]:
    out: dict[str, Any] = {"role": message.role, "content": message.content}
    if message.tool_calls:
        out["tool_calls"] = [
            {"function": {"name": call.name, "arguments": call.arguments}}
            for call in message.tool_calls
        ]
    return out


def build_body(call: ProviderCall) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": call.model,
        "messages": [_message(m) for m in call.messages],
        "stream": False,
        "options": {"temperature": call.temperature, "num_predict": call.max_tokens},
    }
    if call.tools:
        body["tools"] = [
            {
                "type": "function",
                "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
            }
            for t in call.tools
        ]
    return body


def parse_response(payload: dict[str, Any]) -> ProviderReply:
    message = payload["message"]
    tool_calls = [
        ToolCall(name=raw["function"]["name"], arguments=raw["function"].get("arguments") or {})
        for raw in message.get("tool_calls") or []
    ]
    return ProviderReply(
        content=message.get("content") or "",
        tool_calls=tool_calls,
        usage=TokenUsage(
            prompt_tokens=payload.get("prompt_eval_count", 0),
            completion_tokens=payload.get("eval_count", 0),
        ),
        finish_reason=payload.get("done_reason") or ("stop" if payload.get("done") else None),
    )


OLLAMA = ProviderSpec(
    name="ollama",
    build_url=_url,
    build_headers=lambda credential: {"Content-Type": "application/json"},
    build_body=build_body,
    parse_response=parse_response,
    default_model="llama3.2",
    quality_model="llama3.2",
    speed_model="llama3.2",
    requires_key=False,
)
