"""
Chat Schemas
============
Pydantic models for chat requests, responses and conversation turns.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Role = Literal["system", "user", "assistant", "tool"]
Optimize = Literal["cost", "speed", "quality", "balanced"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:12]}")
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome of executing a single tool call."""

    model_config = ConfigDict(frozen=True)

    tool_call_id: str
    name: str
    success: bool
    result: Any = None
    error: str | None = None

    def payload(self) -> Any:
        """Value fed back to the model as the tool turn content."""
        if self.success:
            return self.result
        return {"error": self.error}


class ChatMessage(BaseModel):
    """Single conversation turn."""

    role: Role
    content: str = ""
    name: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None


class ToolDefinition(BaseModel):
    """JSON-schema description of a tool as sent to providers."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class TokenUsage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def fill_total(self) -> "TokenUsage":
        if not self.total_tokens:
            self.total_tokens = self.prompt_tokens + self.completion_tokens
        return self


class CostBreakdown(BaseModel):
    """Computed price of a request in USD."""

    input_cost: Decimal = Decimal("0")
    output_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")

    @classmethod
    def zero(cls) -> "CostBreakdown":
        return cls()


class ChatRequest(BaseModel):
    """Chat request accepted by the client and the HTTP API."""

    messages: list[ChatMessage] = Field(..., min_length=1)
    provider: str | None = None
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: int | None = Field(default=None, gt=0)
    optimize: Optimize | None = None
    cache: bool | None = None
    tools: list[ToolDefinition] | None = None
    session_id: str | None = None
    critical: bool = False
    metadata: dict[str, Any] | None = None

    @field_validator("messages", mode="before")
    @classmethod
    def coerce_messages(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [{"role": "user", "content": v}]
        return v


class ChatResponse(BaseModel):
    """Normalized response from any provider."""

    id: str = Field(default_factory=lambda: f"chat_{uuid4().hex}")
    provider: str
    model: str
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: CostBreakdown = Field(default_factory=CostBreakdown)
    latency_ms: int = 0
    cached: bool = False
    finish_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    raw: dict[str, Any] | None = Field(default=None, exclude=True)


class StreamChunk(BaseModel):
    """Incremental piece of a streamed chat response."""

    type: Literal["content", "done", "error"]
    delta: str = ""
    response: ChatResponse | None = None
    error: str | None = None
