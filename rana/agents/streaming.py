"""
Streaming Agent
===============
The agent loop as an async generator of typed chunks.

Iteration is single pass. Closing the generator (or setting the abort
event) stops the loop before the next model call; an in-flight call is
not interrupted.
"""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, ClassVar, Optional, Union

import structlog

from rana.agents.agent import LLMAgent
from rana.core.errors import (
    AgentAbortedError,
    EmptyResponseError,
    MaxIterationsExceededError,
    RanaError,
)
from rana.schemas.chat import ChatMessage, ToolCall, ToolResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class ThinkingChunk:
    type: ClassVar[str] = "thinking"
    iteration: int
    max_iterations: int


@dataclass(frozen=True)
class ContentChunk:
    type: ClassVar[str] = "content"
    delta: str


@dataclass(frozen=True)
class ToolCallChunk:
    type: ClassVar[str] = "tool_call"
    call: ToolCall


@dataclass(frozen=True)
class ToolResultChunk:
    type: ClassVar[str] = "tool_result"
    result: ToolResult


@dataclass(frozen=True)
class ErrorChunk:
    type: ClassVar[str] = "error"
    error: str
    code: str = "AGENT_ERROR"


@dataclass(frozen=True)
class DoneChunk:
    type: ClassVar[str] = "done"
    content: str
    iterations: int


AgentChunk = Union[ThinkingChunk, ContentChunk, ToolCallChunk, ToolResultChunk, ErrorChunk, DoneChunk]


class StreamingAgent(LLMAgent):
    """LLMAgent whose run can be observed step by step."""

    async def stream(self, input: str, abort: Optional[asyncio.Event] = None) -> AsyncIterator[AgentChunk]:
        """
        Yield chunks for one run. Ends with exactly one DoneChunk or ErrorChunk
        unless the consumer stops iterating first.
        """
        self._begin(input, abort)
        error: Optional[Exception] = None
        finished = False
        try:
            for iteration in range(1, self.max_iterations + 1):
                self._check_abort()
                self.state.current_step = iteration
                yield ThinkingChunk(iteration=iteration, max_iterations=self.max_iterations)

                response = await self._think()

                if response.content:
                    yield ContentChunk(delta=response.content)

                if response.tool_calls:
                    self._check_abort()
                    self._record_tool_turn(response)
                    for call in response.tool_calls:
                        yield ToolCallChunk(call=call)
                        result = await self.execute_tool(call)
                        self._record_tool_result(result)
                        yield ToolResultChunk(result=result)
                    continue

                if response.content:
                    self.state.history.append(ChatMessage(role="assistant", content=response.content))
                    finished = True
                    yield DoneChunk(content=response.content, iterations=iteration)
                    return

                raise EmptyResponseError("LLM returned empty response", provider=response.provider)

            answer = self._last_answer()
            if answer is None:
                raise MaxIterationsExceededError(self.max_iterations)
            finished = True
            yield DoneChunk(content=answer, iterations=self.max_iterations)
        except Exception as e:
            error = e
            finished = True
            message = e.message if isinstance(e, RanaError) else str(e)
            logger.warning("Agent stream failed", agent=self.name, error=message)
            yield ErrorChunk(error=message, code=getattr(e, "code", "AGENT_ERROR"))
        finally:
            if not finished:
                error = AgentAbortedError("Agent stream was closed")
            self._finish(error)
