"""
Agents
======
Tool-using agent loop, streaming variant, multi-agent orchestrator and tools.
"""

from rana.agents.agent import AgentState, LLMAgent
from rana.agents.expression import ExpressionError, evaluate
from rana.agents.orchestrator import (
    AgentRegistration,
    Orchestrator,
    RouteDecision,
    TaskResult,
    route_by_keywords,
)
from rana.agents.streaming import (
    AgentChunk,
    ContentChunk,
    DoneChunk,
    ErrorChunk,
    StreamingAgent,
    ThinkingChunk,
    ToolCallChunk,
    ToolResultChunk,
)
from rana.agents.tools import (
    SessionContext,
    Tool,
    ToolRegistry,
    calculator_tool,
    create_default_registry,
    create_memory_tool,
    datetime_tool,
    json_tool,
    tool,
)

__all__ = [
    "AgentChunk",
    "AgentRegistration",
    "AgentState",
    "ContentChunk",
    "DoneChunk",
    "ErrorChunk",
    "ExpressionError",
    "LLMAgent",
    "Orchestrator",
    "RouteDecision",
    "SessionContext",
    "StreamingAgent",
    "TaskResult",
    "ThinkingChunk",
    "Tool",
    "ToolCallChunk",
    "ToolRegistry",
    "ToolResultChunk",
    "calculator_tool",
    "create_default_registry",
    "create_memory_tool",
    "datetime_tool",
    "evaluate",
    "json_tool",
    "route_by_keywords",
    "tool",
]
