"""
Agent Orchestrator
==================
Runs a set of registered agents with one of four fixed strategies:
sequential, parallel, hierarchical or router.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Literal, Optional, Union

import structlog

from rana.agents.agent import LLMAgent
from rana.agents.tools import Tool
from rana.core.errors import AgentError, ConfigurationError

logger = structlog.get_logger()

Strategy = Literal["sequential", "parallel", "hierarchical", "router"]
STRATEGIES = ("sequential", "parallel", "hierarchical", "router")
NO_RESULTS = "No agents returned successful results."


@dataclass
class AgentRegistration:
    agent: LLMAgent
    name: str
    description: str = ""
    capabilities: list[str] = field(default_factory=list)
    priority: int = 0


@dataclass(frozen=True)
class TaskResult:
    agent_name: str
    success: bool
    result: str
    duration_ms: int
    error: Optional[str] = None


@dataclass(frozen=True)
class RouteDecision:
    agent_name: str
    reason: str = ""


@dataclass
class OrchestratorState:
    status: Literal["idle", "running", "completed", "error"] = "idle"
    current_task: Optional[str] = None
    completed_tasks: list[str] = field(default_factory=list)
    results: list[TaskResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


RouterResult = Union[RouteDecision, str]
RouterFn = Callable[[str, list[AgentRegistration]], Union[RouterResult, Awaitable[RouterResult]]]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class Orchestrator:
    def __init__(
        self,
        name: str,
        strategy: Strategy = "sequential",
        description: str = "",
        max_concurrency: int = 5,
    ):
        if strategy not in STRATEGIES:
            raise ConfigurationError(f"Unknown strategy: {strategy}")
        if max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")
        self.name = name
        self.strategy = strategy
        self.description = description
        self.max_concurrency = max_concurrency
        self.state = OrchestratorState()
        self._agents: dict[str, AgentRegistration] = {}
        self._router: Optional[RouterFn] = None

    def register(
        self,
        agent: LLMAgent,
        name: Optional[str] = None,
        description: Optional[str] = None,
        capabilities: Optional[list[str]] = None,
        priority: int = 0,
    ) -> "Orchestrator":
        registration = AgentRegistration(
            agent=agent,
            name=name or agent.name,
            description=agent.description if description is None else description,
            capabilities=list(capabilities or []),
            priority=priority,
        )
        self._agents[registration.name] = registration
        return self

    @property
    def agents(self) -> list[AgentRegistration]:
        return list(self._agents.values())

    def set_router(self, router: RouterFn) -> "Orchestrator":
        """Custom router returning a RouteDecision or an agent name; may be async."""
        self._router = router
        return self

    async def run(self, input: str) -> str:
        self.state = OrchestratorState(status="running", started_at=datetime.now(timezone.utc))
        logger.info("Orchestrator started", orchestrator=self.name, strategy=self.strategy)
        runners = {
            "sequential": self._run_sequential,
            "parallel": self._run_parallel,
            "hierarchical": self._run_hierarchical,
            "router": self._run_router,
        }
        try:
            result = await runners[self.strategy](input)
        except Exception as e:
            self.state.status = "error"
            logger.warning("Orchestrator failed", orchestrator=self.name, error=str(e))
            raise
        self.state.status = "completed"
        self.state.completed_at = datetime.now(timezone.utc)
        return result

    def reset(self) -> None:
        self.state = OrchestratorState()

    def _require_agents(self) -> list[AgentRegistration]:
        if not self._agents:
            raise AgentError("No agents registered")
        return self.agents

    async def _run_agent(self, registration: AgentRegistration, input: str) -> str:
        """Run one agent and record its outcome. Failures are recorded then re-raised."""
        self.state.current_task = registration.name
        started = time.perf_counter()
        try:
            output = await registration.agent.run(input)
        except Exception as e:
            self.state.results.append(
                TaskResult(registration.name, False, "", _elapsed_ms(started), error=str(e))
            )
            raise
        self.state.results.append(TaskResult(registration.name, True, output, _elapsed_ms(started)))
        self.state.completed_tasks.append(registration.name)
        return output

    async def _run_sequential(self, input: str) -> str:
        current = input
        for registration in sorted(self._require_agents(), key=lambda r: r.priority):
            current = await self._run_agent(registration, current)
        return current

    async def _run_parallel(self, input: str) -> str:
        agents = self._require_agents()

        async def attempt(registration: AgentRegistration) -> None:
            try:
                await self._run_agent(registration, input)
            except Exception as e:
                logger.warning("Parallel agent failed", agent=registration.name, error=str(e))

        for start in range(0, len(agents), self.max_concurrency):
            await asyncio.gather(*(attempt(r) for r in agents[start:start + self.max_concurrency]))

        order = {r.name: i for i, r in enumerate(agents)}
        successes = sorted((r for r in self.state.results if r.success), key=lambda r: order[r.agent_name])
        if not successes:
            return NO_RESULTS
        return "\n\n".join(f"[{r.agent_name}]: {r.result}" for r in successes)

    def _delegate_tool(self, workers: list[AgentRegistration]) -> Tool:
        by_name = {w.name: w for w in workers}

        async def delegate(args: dict[str, Any]) -> dict[str, Any]:
            worker = by_name.get(args.get("agent", ""))
            if worker is None:
                return {"success": False, "error": f'Agent "{args.get("agent")}" not found'}
            try:
                output = await self._run_agent(worker, str(args.get("task", "")))
            except Exception as e:
                return {"success": False, "error": str(e)}
            return {"success": True, "result": output}

        listing = ", ".join(f"{w.name} ({w.description})" for w in workers)
        return Tool(
            name="delegate",
            description=f"Delegate a task to a specialized agent. Available agents: {listing}",
            execute=delegate,
            parameters={
                "type": "object",
                "properties": {
                    "agent": {
                        "type": "string",
                        "description": "Name of the agent to delegate to",
                        "enum": [w.name for w in workers],
                    },
                    "task": {"type": "string", "description": "The task to delegate"},
                },
                "required": ["agent", "task"],
            },
        )

    async def _run_hierarchical(self, input: str) -> str:
        ranked = sorted(self._require_agents(), key=lambda r: r.priority, reverse=True)
        master, workers = ranked[0], ranked[1:]
        if not workers:
            return await self._run_agent(master, input)

        master.agent.register_tool(self._delegate_tool(workers))
        try:
            return await self._run_agent(master, input)
        finally:
            master.agent.unregister_tool("delegate")

    async def _run_router(self, input: str) -> str:
        agents = self._require_agents()
        if self._router is not None:
            decision = self._router(input, agents)
            if inspect.isawaitable(decision):
                decision = await decision
            if isinstance(decision, str):
                decision = RouteDecision(agent_name=decision, reason="custom router")
            selected = self._agents.get(decision.agent_name)
            if selected is None:
                raise AgentError(f"Router selected unknown agent: {decision.agent_name}")
            reason = decision.reason
        else:
            selected = route_by_keywords(input, agents)
            reason = "keyword match"

        logger.info("Routed input", orchestrator=self.name, agent=selected.name, reason=reason)
        return await self._run_agent(selected, input)


def route_by_keywords(input: str, agents: list[AgentRegistration]) -> AgentRegistration:
    """
    First agent whose capability appears in the input, or failing that whose
    description has a word longer than three characters that does. Defaults to
    the first registered agent.
    """
    text = input.lower()
    for registration in agents:
        if any(capability.lower() in text for capability in registration.capabilities):
            return registration
        words = registration.description.lower().split()
        if any(len(word) > 3 and word in text for word in words):
            return registration
    return agents[0]
