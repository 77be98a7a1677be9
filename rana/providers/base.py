"""
Provider Specs
==============
A provider is a fixed bundle of request builder, response parser and
defaults. Specs are immutable and resolved once at import.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from rana.core.keys import ApiKeySource
from rana.schemas.chat import ChatMessage, TokenUsage, ToolCall, ToolDefinition


@dataclass(frozen=True)
class ProviderCall:
    """Everything a request builder needs, after defaults are applied."""

    model: str
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int
    tools: Optional[list[ToolDefinition]] = None


@dataclass
class ProviderReply:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    build_url: Callable[[str, Optional[ApiKeySource]], str]
    build_headers: Callable[[Optional[ApiKeySource]], dict[str, str]]
    build_body: Callable[[ProviderCall], dict[str, Any]]
    parse_response: Callable[[dict[str, Any]], ProviderReply]
    default_model: str
    quality_model: str
    speed_model: str
    requires_key: bool = True

    def error_message(self, payload: Any) -> Optional[str]:
        """Pull the provider's own error text out of an error body."""
        if not isinstance(payload, dict):
            return None
        error = payload.get("error") or payload.get("message")
        if isinstance(error, dict):
            return error.get("message") or json.dumps(error)
        if isinstance(error, str):
            return error
        return None


def split_system(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Separate system turns, which several providers take out of band."""
    system = "\n\n".join(m.content for m in messages if m.role == "system" and m.content)
    return system, [m for m in messages if m.role != "system"]


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Tool arguments arrive as JSON text from OpenAI-style APIs."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {"_raw": raw}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


def bearer(credential: Optional[ApiKeySource]) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if credential:
        headers["Authorization"] = f"Bearer {credential.key}"
    return headers
