"""Anthropic Messages API."""

import json
from typing import Any, Optional

from rana.core.keys import ApiKeySource
from rana.providers.base import ProviderCall, ProviderReply, ProviderSpec, split_system
from rana.schemas.chat import ChatMessage, TokenUsage, ToolCall

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


def _headers(credential: Optional[ApiKeySource]) -> dict[str, str]:
    headers = {"Content-Type": "application/json", "anthropic-version": API_VERSION}
    if credential:
        headers["x-api-key"] = credential.key
    return headers


def _message(message: ChatMessage) -> dict[str, Any]:
    if message.role == "tool":
        return {
            "role": "user",
            "content": [{
                "type": "tool_result",
                "tool_use_id": message.tool_call_id,
                "content": message.content,
            }],
        }
    if message.role == "assistant" and message.tool_calls:
        blocks: list[dict[str, Any]] = []
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        blocks.extend(
            {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
            for call in message.tool_calls
        )
        return {"role": "assistant", "content": blocks}
    return {"role": message.role, "content": message.content}


def build_body(call: ProviderCall) -> dict[str, Any]:
    system, turns = split_system(call.messages)
    body: dict[str, Any] = {
        "model": call.model,
        "max_tokens": call.max_tokens,
        "temperature": call.temperature,
        "messages": [_message(m) for m in turns],
    }
    if system:
        body["system"] = system
    if call.tools:
        body["tools"] = [
            {"name": t.name, "description": t.description, "input_schema": t.parameters}
            for t in call.tools
        ]
    return body


def parse_response(payload: dict[str, Any]) -> ProviderReply:
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    for block in payload["content"]:
        if block.get("type") == "text":
            text_parts.append(block.get("text", ""))
        elif block.get("type") == "tool_use":
            arguments = block.get("input") or {}
            if not isinstance(arguments, dict):
                arguments = {"value": json.dumps(arguments)}
            tool_calls.append(ToolCall(id=block["id"], name=block["name"], arguments=arguments))

    usage = payload.get("usage") or {}
    return ProviderReply(
        content="".join(text_parts),
        tool_calls=tool_calls,
        usage=TokenUsage(
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
        ),
        finish_reason=payload.get("stop_reason"),
    )


ANTHROPIC = ProviderSpec(
    name="anthropic",
    build_url=lambda model, credential: API_URL,
    build_headers=_headers,
    build_body=build_body,
    parse_response=parse_response,
    default_model="claude-3-5-haiku-20241022",
    quality_model="claude-3-5-sonnet-20241022",
    speed_model="claude-3-5-haiku-20241022",
)
