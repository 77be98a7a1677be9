"""Google Gemini generateContent API."""

from typing import Any, Optional

from rana.core.keys import ApiKeySource
from rana.providers.base import ProviderCall, ProviderReply, ProviderSpec, split_system
from rana.schemas.chat import ChatMessage, TokenUsage, ToolCall

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def _url(model: str, credential: Optional[ApiKeySource]) -> str:
    return f"{API_BASE}/{model}:generateContent"


def _headers(credential: Optional[ApiKeySource]) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if credential:
        headers["x-goog-api-key"] = credential.key
    return headers


def _content(message: ChatMessage) -> dict[str, Any]:
    if message.role == "tool":
        return {
            "role": "user",
            "parts": [{
                "functionResponse": {
                    "name": message.name or "tool",
                    "response": {"content": message.content},
                },
            }],
        }
    parts: list[dict[str, Any]] = []
    if message.content:
        parts.append({"text": message.content})
    for call in message.tool_calls or []:
        parts.append({"functionCall": {"name": call.name, "args": call.arguments}})
    return {
        "role": "model" if message.role == "assistant" else "user",
        "parts": parts or [{"text": ""}],
    }


def build_body(call: ProviderCall) -> dict[str, Any]:
    system, turns = split_system(call.messages)
    body: dict[str, Any] = {
        "contents": [_content(m) for m in turns],
        "generationConfig": {
            "temperature": call.temperature,
            "maxOutputTokens": call.max_tokens,
        },
    }
    if system:
        body["systemInstruction"] = {"parts": [{"text": system}]}
    if call.tools:
        body["tools"] = [{
            "functionDeclarations": [
                {"name": t.name, "description": t.description, "parameters": t.parameters}
                for t in call.tools
            ],
        }]
    return body


def parse_response(payload: dict[str, Any]) -> ProviderReply:
    candidate = payload["candidates"][0]
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    for part in (candidate.get("content") or {}).get("parts") or []:
        if "text" in part:
            text_parts.append(part["text"])
        elif "functionCall" in part:
            function = part["functionCall"]
            tool_calls.append(ToolCall(name=function["name"], arguments=function.get("args") or {}))

    usage = payload.get("usageMetadata") or {}
    return ProviderReply(
        content="".join(text_parts),
        tool_calls=tool_calls,
        usage=TokenUsage(
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
        ),
        finish_reason=candidate.get("finishReason"),
    )


GOOGLE = ProviderSpec(
    name="google",
    build_url=_url,
    build_headers=_headers,
    build_body=build_body,
    parse_response=parse_response,
    default_model="gemini-1.5-flash",
    quality_model="gemini-1.5-pro",
    speed_model="gemini-2.0-flash-exp",
)
