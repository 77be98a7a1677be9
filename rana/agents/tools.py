"""
Agent Tools
===========
Tool type, registry and the built-in calculator, datetime, json and memory
tools.
"""

import calendar
import inspect
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rana.agents.expression import ExpressionError, evaluate
from rana.schemas.chat import ToolDefinition

ToolHandler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


@dataclass
class Tool:
    """A named function the model may call, described by a JSON schema."""

    name: str
    description: str
    execute: ToolHandler
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=self.name, description=self.description, parameters=self.parameters)

    async def __call__(self, arguments: dict[str, Any]) -> Any:
        result = self.execute(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolRegistry:
    def __init__(self, tools: Optional[list[Tool]] = None):
        self._tools: dict[str, Tool] = {}
        for t in tools or []:
            self.register(t)

    def register(self, tool: Tool) -> "ToolRegistry":
        self._tools[tool.name] = tool
        return self

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def has(self, name: str) -> bool:
        return name in self._tools

    def remove(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def clear(self) -> None:
        self._tools.clear()

    def definitions(self) -> list[ToolDefinition]:
        return [t.definition() for t in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._tools)


def tool(
    name: Optional[str] = None,
    description: Optional[str] = None,
    parameters: Optional[dict[str, Any]] = None,
) -> Callable[[ToolHandler], Tool]:
    """
    Turn a function taking the argument dict into a Tool.

    The name defaults to the function name and the description to the first
    docstring line.
    """

    def decorator(fn: ToolHandler) -> Tool:
        doc = (inspect.getdoc(fn) or "").strip().splitlines()
        return Tool(
            name=name or fn.__name__,
            description=description or (doc[0] if doc else fn.__name__),
            execute=fn,
            parameters=parameters or {"type": "object", "properties": {}},
        )

    return decorator


@dataclass
class SessionContext:
    """Per-session state handed to tools that need memory."""

    session_id: str = field(default_factory=lambda: uuid4().hex)
    memory: dict[str, str] = field(default_factory=dict)


# Calculator

async def _calculate(args: dict[str, Any]) -> dict[str, Any]:
    expression = str(args.get("expression", ""))
    try:
        return {"expression": expression, "result": evaluate(expression)}
    except ExpressionError as e:
        return {"expression": expression, "error": str(e)}


calculator_tool = Tool(
    name="calculator",
    description=(
        "Perform mathematical calculations. Supports basic arithmetic, "
        "percentages, and common math functions."
    ),
    execute=_calculate,
    parameters={
        "type": "object",
        "properties": {
            "expression": {
                "type": "string",
                "description": 'The mathematical expression to evaluate (e.g., "2 + 2", "sqrt(16)", "15% of 200")',
            },
        },
        "required": ["expression"],
    },
)


# Date and time

def _parse_date(value: Optional[str], default: datetime) -> datetime:
    if not value:
        return default
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


_UNIT_DELTAS = {
    "minutes": timedelta(minutes=1),
    "hours": timedelta(hours=1),
    "days": timedelta(days=1),
    "weeks": timedelta(weeks=1),
}


async def _datetime(args: dict[str, Any]) -> dict[str, Any]:
    operation = args.get("operation")
    tz_name = args.get("timezone")
    try:
        tz = ZoneInfo(tz_name) if tz_name else timezone.utc
        now = datetime.now(timezone.utc)

        if operation == "now":
            local = now.astimezone(tz)
            return {
                "iso": now.isoformat(),
                "unix": int(now.timestamp()),
                "readable": local.strftime("%m/%d/%Y, %I:%M:%S %p"),
                "timezone": tz_name or "UTC",
            }

        if operation in ("format", "parse"):
            value = _parse_date(args.get("date"), now).astimezone(tz)
            return {
                "iso": value.isoformat(),
                "readable": value.strftime("%m/%d/%Y, %I:%M:%S %p"),
                "date": value.strftime("%m/%d/%Y"),
                "time": value.strftime("%I:%M:%S %p"),
            }

        if operation == "add":
            value = _parse_date(args.get("date"), now)
            amount = int(args.get("amount") or 0)
            unit = args.get("unit") or "days"
            if unit == "months":
                value = _add_months(value, amount)
            elif unit == "years":
                value = _add_months(value, amount * 12)
            else:
                value = value + amount * _UNIT_DELTAS.get(unit, _UNIT_DELTAS["days"])
            return {"result": value.isoformat(), "readable": value.strftime("%m/%d/%Y, %I:%M:%S %p")}

        if operation == "diff":
            start = _parse_date(args.get("date"), now)
            end = _parse_date(args.get("date2"), now)
            delta_ms = int((end - start).total_seconds() * 1000)
            return {
                "milliseconds": delta_ms,
                "seconds": delta_ms // 1000,
                "minutes": delta_ms // 60_000,
                "hours": delta_ms // 3_600_000,
                "days": delta_ms // 86_400_000,
            }
    except (ValueError, TypeError, ZoneInfoNotFoundError) as e:
        return {"error": str(e)}

    return {"error": f"Unknown operation: {operation}"}


datetime_tool = Tool(
    name="datetime",
    description="Get current date/time or perform date calculations.",
    execute=_datetime,
    parameters={
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "description": "Operation to perform",
                "enum": ["now", "format", "add", "diff", "parse"],
            },
            "date": {"type": "string", "description": "ISO date string (for format, add, diff, parse)"},
            "date2": {"type": "string", "description": "Second ISO date string (for diff)"},
            "timezone": {"type": "string", "description": 'IANA timezone (e.g., "America/New_York")'},
            "amount": {"type": "number", "description": "Amount to add (for add operation)"},
            "unit": {
                "type": "string",
                "description": "Unit for add operation",
                "enum": ["days", "hours", "minutes", "weeks", "months", "years"],
            },
        },
        "required": ["operation"],
    },
)


# JSON

def _load(data: Any) -> Any:
    return json.loads(data) if isinstance(data, str) else data


def _walk(value: Any, part: str) -> Any:
    if isinstance(value, list):
        try:
            return value[int(part)]
        except (ValueError, IndexError):
            return None
    if isinstance(value, dict):
        return value.get(part)
    return None


async def _json(args: dict[str, Any]) -> dict[str, Any]:
    operation = args.get("operation")
    data = args.get("data")
    path = args.get("path")
    try:
        if operation == "parse":
            return {"result": _load(data)}
        if operation == "stringify":
            return {"result": json.dumps(_load(data), indent=2)}
        if operation == "validate":
            _load(data)
            return {"valid": True}
        if operation == "get":
            if not path:
                return {"error": "Path required for get operation"}
            current = _load(data)
            for part in path.split("."):
                current = _walk(current, part)
            return {"result": current}
        if operation == "set":
            if not path:
                return {"error": "Path required for set operation"}
            root = _load(data)
            target = root
            *parents, leaf = path.split(".")
            for part in parents:
                child = target.get(part)
                if not isinstance(child, dict):
                    child = target[part] = {}
                target = child
            target[leaf] = args.get("value")
            return {"result": root}
    except (ValueError, TypeError, AttributeError) as e:
        if operation == "validate":
            return {"valid": False, "error": str(e)}
        return {"error": str(e)}

    return {"error": f"Unknown operation: {operation}"}


json_tool = Tool(
    name="json",
    description="Parse, validate, or transform JSON data.",
    execute=_json,
    parameters={
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "description": "Operation to perform",
                "enum": ["parse", "stringify", "validate", "get", "set"],
            },
            "data": {"type": "string", "description": "JSON string"},
            "path": {"type": "string", "description": 'Dotted path for get/set (e.g., "user.name")'},
            "value": {"type": "string", "description": "Value to set (for set operation)"},
        },
        "required": ["operation", "data"],
    },
)


# Memory

def create_memory_tool(context: SessionContext) -> Tool:
    """Memory tool whose store is the given session's, never a shared one."""

    async def _memory(args: dict[str, Any]) -> dict[str, Any]:
        operation = args.get("operation")
        key = args.get("key")
        value = args.get("value")
        store = context.memory

        if operation == "store":
            if not key or value is None:
                return {"error": "Key and value required for store operation"}
            store[key] = value
            return {"success": True, "key": key, "value": value}
        if operation == "retrieve":
            if not key:
                return {"error": "Key required for retrieve operation"}
            return {"key": key, "value": store.get(key)}
        if operation == "list":
            return {"keys": list(store), "count": len(store)}
        if operation == "delete":
            if not key:
                return {"error": "Key required for delete operation"}
            existed = store.pop(key, None) is not None
            return {"success": True, "existed": existed}
        if operation == "clear":
            store.clear()
            return {"success": True, "message": "Memory cleared"}
        return {"error": f"Unknown operation: {operation}"}

    return Tool(
        name="memory",
        description=(
            "Store and retrieve information during the conversation. Use this to remember "
            "important facts, user preferences, or intermediate results."
        ),
        execute=_memory,
        parameters={
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "description": "Operation to perform",
                    "enum": ["store", "retrieve", "list", "delete", "clear"],
                },
                "key": {"type": "string", "description": "Key to store/retrieve"},
                "value": {"type": "string", "description": "Value to store"},
            },
            "required": ["operation"],
        },
    )


def create_default_registry(context: Optional[SessionContext] = None) -> ToolRegistry:
    """Registry with every built-in tool, memory bound to ``context``."""
    return ToolRegistry([
        calculator_tool,
        datetime_tool,
        json_tool,
        create_memory_tool(context or SessionContext()),
    ])
