"""
OpenAI-Compatible Chat Completions
==================================
OpenAI plus the vendors that speak the same wire format (Groq, Together, xAI,
Mistral) and Cohere's v2 chat API, which shares the message shape.
"""

import json
from typing import Any

from rana.providers.base import (
    ProviderCall,
    ProviderReply,
    ProviderSpec,
    bearer,
    parse_arguments,
)
from rana.schemas.chat import ChatMessage, TokenUsage, ToolCall


def _message(message: ChatMessage) -> dict[str, Any]:
    if message.role == "tool":
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}
    out: dict[str, Any] = {"role": message.role, "content": message.content}
    if message.role == "assistant" and message.tool_calls:
        out["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in message.tool_calls
        ]
    return out


def build_body(call: ProviderCall) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": call.model,
        "messages": [_message(m) for m in call.messages],
        "temperature": call.temperature,
        "max_tokens": call.max_tokens,
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


def _tool_calls(raw_calls: Any) -> list[ToolCall]:
    calls = []
    for raw in raw_calls or []:
        function = raw.get("function") or {}
        calls.append(
            ToolCall(
                id=raw.get("id") or f"call_{len(calls)}",
                name=function["name"],
                arguments=parse_arguments(function.get("arguments")),
            )
        )
    return calls


def parse_response(payload: dict[str, Any]) -> ProviderReply:
    choice = payload["choices"][0]
    message = choice["message"]
    usage = payload.get("usage") or {}
    return ProviderReply(
        content=message.get("content") or "",
        tool_calls=_tool_calls(message.get("tool_calls")),
        usage=TokenUsage(
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
        ),
        finish_reason=choice.get("finish_reason"),
    )


def parse_cohere_response(payload: dict[str, Any]) -> ProviderReply:
    message = payload["message"]
    text = "".join(
        part.get("text", "") for part in message.get("content") or [] if part.get("type") == "text"
    )
    tokens = (payload.get("usage") or {}).get("tokens") or {}
    return ProviderReply(
        content=text,
        tool_calls=_tool_calls(message.get("tool_calls")),
        usage=TokenUsage(
            prompt_tokens=int(tokens.get("input_tokens", 0)),
            completion_tokens=int(tokens.get("output_tokens", 0)),
        ),
        finish_reason=payload.get("finish_reason"),
    )


def _compatible(name: str, base_url: str, default: str, quality: str, speed: str) -> ProviderSpec:
    return ProviderSpec(
        name=name,
        build_url=lambda model, credential: f"{base_url}/chat/completions",
        build_headers=bearer,
        build_body=build_body,
        parse_response=parse_response,
        default_model=default,
        quality_model=quality,
        speed_model=speed,
    )


OPENAI = _compatible("openai", "https://api.openai.com/v1", "gpt-4o-mini", "gpt-4o", "gpt-4o-mini")
GROQ = _compatible(
    "groq",
    "https://api.groq.com/openai/v1",
    "llama-3.1-70b-versatile",
    "llama-3.1-70b-versatile",
    "llama-3.1-70b-versatile",
)
TOGETHER = _compatible(
    "together",
    "https://api.together.xyz/v1",
    "Qwen/Qwen2.5-72B-Instruct-Turbo",
    "meta-llama/Llama-3.2-90B-Vision-Instruct-Turbo",
    "Qwen/Qwen2.5-72B-Instruct-Turbo",
)
XAI = _compatible("xai", "https://api.x.ai/v1", "grok-beta", "grok-beta", "grok-beta")
MISTRAL = _compatible(
    "mistral",
    "https://api.mistral.ai/v1",
    "mistral-small-latest",
    "mistral-large-latest",
    "mistral-small-latest",
)

COHERE = ProviderSpec(
    name="cohere",
    build_url=lambda model, credential: "https://api.cohere.com/v2/chat",
    build_headers=bearer,
    build_body=build_body,
    parse_response=parse_cohere_response,
    default_model="command-r",
    quality_model="command-r-plus",
    speed_model="command-r",
)
