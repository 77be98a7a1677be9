"""
Pydantic Schemas
================
Request/response and ledger models.
"""

from rana.schemas.chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    CostBreakdown,
    StreamChunk,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolResult,
)
from rana.schemas.cost import (
    BudgetConfig,
    BudgetStatus,
    CostQuery,
    CostRecord,
    CostRecordCreate,
    CostStats,
    CostSummary,
    UsageBucket,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "CostBreakdown",
    "StreamChunk",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "BudgetConfig",
    "BudgetStatus",
    "CostQuery",
    "CostRecord",
    "CostRecordCreate",
    "CostStats",
    "CostSummary",
    "UsageBucket",
]
