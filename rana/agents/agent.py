"""
LLM Agent
=========
Bounded loop that alternates between model turns and tool execution until
the model answers without requesting tools.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Optional, Union

import structlog

from rana.agents.tools import Tool, ToolRegistry
from rana.core.errors import (
    AgentAbortedError,
    AgentError,
    EmptyResponseError,
    MaxIterationsExceededError,
    ToolNotFoundError,
)
from rana.schemas.chat import ChatMessage, ChatResponse, ToolCall, ToolResult

logger = structlog.get_logger()

AgentStatus = Literal["idle", "running", "completed", "error", "aborted"]


@dataclass
class AgentState:
    status: AgentStatus = "idle"
    current_step: int = 0
    history: list[ChatMessage] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class LLMAgent:
    """
    Tool-using agent over any async ``llm(messages, tools, **options)``
    callable returning a ChatResponse.

    Per iteration: abort check, model call with the registered tool schemas,
    then either execute the requested tools and loop, or finish with the
    model's content.
    """

    def __init__(
        self,
        name: str,
        llm: Any,
        description: str = "",
        system_prompt: Optional[str] = None,
        tools: Union[ToolRegistry, Iterable[Tool], None] = None,
        max_iterations: int = 10,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.name = name
        self.llm = llm
        self.description = description
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.provider = provider
        self.model = model
        self.tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(list(tools or []))
        self.state = AgentState()
        self._abort: Optional[asyncio.Event] = None

    def register_tool(self, tool: Tool) -> "LLMAgent":
        self.tools.register(tool)
        return self

    def register_tools(self, tools: Iterable[Tool]) -> "LLMAgent":
        for t in tools:
            self.tools.register(t)
        return self

    def unregister_tool(self, name: str) -> bool:
        return self.tools.remove(name)

    def default_system_prompt(self) -> str:
        tool_list = "\n".join(f"- {t.name}: {t.description}" for t in self.tools.all())
        return (
            "You are a helpful AI assistant that can use tools to accomplish tasks.\n\n"
            f"Available tools:\n{tool_list or 'No tools available.'}\n\n"
            "When you need to use a tool, use the appropriate function call.\n"
            "Think step by step about how to accomplish the user's request.\n"
            "When the task is complete, provide a final summary."
        )

    def build_messages(self) -> list[ChatMessage]:
        system = ChatMessage(role="system", content=self.system_prompt or self.default_system_prompt())
        return [system, *self.state.history]

    async def execute_tool(self, call: ToolCall) -> ToolResult:
        """Run one tool call. Failures are captured in the result, never raised."""
        target = self.tools.get(call.name)
        if target is None:
            error = ToolNotFoundError(call.name)
            return ToolResult(tool_call_id=call.id, name=call.name, success=False, error=error.message)
        try:
            result = await target(call.arguments)
        except Exception as e:
            logger.warning("Tool failed", agent=self.name, tool=call.name, error=str(e))
            return ToolResult(tool_call_id=call.id, name=call.name, success=False, error=str(e))
        return ToolResult(tool_call_id=call.id, name=call.name, success=True, result=result)

    async def _think(self) -> ChatResponse:
        definitions = self.tools.definitions()
        return await self.llm(
            self.build_messages(),
            tools=definitions or None,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            provider=self.provider,
            model=self.model,
        )

    def _record_tool_turn(self, response: ChatResponse) -> None:
        self.state.history.append(
            ChatMessage(role="assistant", content=response.content, tool_calls=response.tool_calls)
        )

    def _record_tool_result(self, result: ToolResult) -> None:
        self.state.history.append(
            ChatMessage(
                role="tool",
                content=json.dumps(result.payload(), default=str),
                name=result.name,
                tool_call_id=result.tool_call_id,
            )
        )

    def _last_answer(self) -> Optional[str]:
        for message in reversed(self.state.history):
            if message.role == "assistant" and message.content:
                return message.content
        return None

    def _check_abort(self) -> None:
        if self._abort is not None and self._abort.is_set():
            raise AgentAbortedError()

    def _begin(self, input: str, abort: Optional[asyncio.Event]) -> None:
        if self.state.status == "running":
            raise AgentError("Agent is already running")
        self._abort = abort or asyncio.Event()
        self.state.status = "running"
        self.state.started_at = datetime.now(timezone.utc)
        self.state.completed_at = None
        self.state.current_step = 0
        self.state.error = None
        self.state.history.append(ChatMessage(role="user", content=input))

    def _finish(self, error: Optional[Exception] = None) -> None:
        self.state.completed_at = datetime.now(timezone.utc)
        if error is None:
            self.state.status = "completed"
        else:
            self.state.status = "aborted" if isinstance(error, AgentAbortedError) else "error"
            self.state.error = str(error)
        self._abort = None

    async def run(self, input: str, abort: Optional[asyncio.Event] = None) -> str:
        """
        Run the agent to completion.

        Raises:
            AgentAbortedError: abort was set before an iteration started
            EmptyResponseError: the model returned neither content nor tools
            MaxIterationsExceededError: the cap was hit with no answer so far
        """
        self._begin(input, abort)
        try:
            result = await self._loop()
        except Exception as e:
            self._finish(e)
            logger.warning("Agent run failed", agent=self.name, error=str(e))
            raise
        self._finish()
        logger.info("Agent run completed", agent=self.name, iterations=self.state.current_step)
        return result

    async def _loop(self) -> str:
        for iteration in range(1, self.max_iterations + 1):
            self._check_abort()
            self.state.current_step = iteration

            response = await self._think()

            if response.tool_calls:
                self._record_tool_turn(response)
                for call in response.tool_calls:
                    self._record_tool_result(await self.execute_tool(call))
                continue

            if response.content:
                self.state.history.append(ChatMessage(role="assistant", content=response.content))
                return response.content

            raise EmptyResponseError("LLM returned empty response", provider=response.provider)

        answer = self._last_answer()
        if answer is not None:
            return answer
        raise MaxIterationsExceededError(self.max_iterations)

    def stop(self) -> None:
        """Request the running loop to stop before its next iteration."""
        if self._abort is not None:
            self._abort.set()

    def reset(self) -> None:
        self.stop()
        self.state = AgentState()
