"""
Tool Tests
==========
Expression evaluation, the tool registry and the built-in tools.
"""

import json
import re

import pytest

from rana.agents import (
    ExpressionError,
    SessionContext,
    Tool,
    ToolRegistry,
    calculator_tool,
    create_default_registry,
    create_memory_tool,
    datetime_tool,
    evaluate,
    json_tool,
    tool,
)


class TestExpression:
    """Tests for the calculator's arithmetic parser."""

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("2 + 3 * 4", 14),
            ("(2 + 3) * 4", 20),
            ("-2^2", -4),
            ("2^3^2", 512),
            ("10 % 3", 1),
            ("sqrt(16)", 4),
            ("pow(2, 10)", 1024),
            ("round(2.5)", 3),
            ("15% of 200", 30),
            ("abs(-7) + floor(1.9) + ceil(1.1)", 10),
        ],
    )
    def test_evaluates(self, expression, expected):
        """Test precedence, associativity, functions and the percent shorthand."""
        assert evaluate(expression) == expected

    def test_integral_results_are_ints(self):
        """Test whole results come back as int and fractions as float."""
        assert isinstance(evaluate("4 / 2"), int)
        assert evaluate("1 / 4") == 0.25

    def test_constants(self):
        """Test pi and e are available."""
        assert evaluate("pi") == pytest.approx(3.14159, rel=1e-5)
        assert evaluate("e") == pytest.approx(2.71828, rel=1e-5)

    @pytest.mark.parametrize(
        "expression,message",
        [
            ("", "Empty expression"),
            ("1 / 0", "Division by zero"),
            ("2 +", "Unexpected end"),
            ("foo(1)", "Unknown function"),
            ("bar", "Unknown identifier"),
            ("pow(2)", "takes 2"),
            ("2 $ 3", "Unexpected character"),
            ("(1 + 2", "Expected ')'"),
        ],
    )
    def test_rejects(self, expression, message):
        """Test malformed expressions raise ExpressionError with a reason."""
        with pytest.raises(ExpressionError, match=re.escape(message)):
            evaluate(expression)

    def test_no_code_execution(self):
        """Test python syntax is not evaluated."""
        with pytest.raises(ExpressionError):
            evaluate("__import__('os').system('true')")


class TestToolRegistry:
    """Tests for tool registration and invocation."""

    async def test_decorator_builds_tool(self):
        """Test the decorator takes the name and first docstring line."""
        @tool(parameters={"type": "object", "properties": {"x": {"type": "number"}}})
        def double(args):
            """Double a number.

            More detail here.
            """
            return args["x"] * 2

        assert double.name == "double"
        assert double.description == "Double a number."
        assert await double({"x": 4}) == 8

    async def test_async_handlers_are_awaited(self):
        """Test coroutine handlers are awaited when called."""
        async def handler(args):
            return "async"

        assert await Tool(name="t", description="d", execute=handler)({}) == "async"

    def test_register_replace_and_remove(self):
        """Test names are unique and later registrations replace earlier ones."""
        registry = ToolRegistry()
        registry.register(Tool(name="a", description="first", execute=lambda args: 1))
        registry.register(Tool(name="a", description="second", execute=lambda args: 2))

        assert len(registry) == 1
        assert registry.get("a").description == "second"
        assert "a" in registry
        assert registry.remove("a") is True
        assert registry.remove("a") is False

    def test_definitions(self):
        """Test definitions carry the JSON schema."""
        registry = ToolRegistry([calculator_tool])

        (definition,) = registry.definitions()

        assert definition.name == "calculator"
        assert definition.parameters["required"] == ["expression"]

    def test_default_registry(self):
        """Test the default registry holds every built-in tool."""
        registry = create_default_registry()

        assert sorted(t.name for t in registry.all()) == ["calculator", "datetime", "json", "memory"]


class TestBuiltinTools:
    """Tests for calculator, datetime, json and memory tools."""

    async def test_calculator(self):
        """Test the calculator reports results and errors without raising."""
        assert await calculator_tool({"expression": "2 + 2"}) == {"expression": "2 + 2", "result": 4}
        failed = await calculator_tool({"expression": "1 / 0"})
        assert failed["error"] == "Division by zero"

    async def test_datetime_add_months_clamps_day(self):
        """Test adding a month to Jan 31 lands on the last day of February."""
        result = await datetime_tool({
            "operation": "add", "date": "2024-01-31T00:00:00Z", "amount": 1, "unit": "months",
        })

        assert result["result"].startswith("2024-02-29")

    async def test_datetime_diff(self):
        """Test diff reports the gap in several units."""
        result = await datetime_tool({
            "operation": "diff", "date": "2024-01-01T00:00:00Z", "date2": "2024-01-03T12:00:00Z",
        })

        assert result["days"] == 2
        assert result["hours"] == 60

    async def test_datetime_errors(self):
        """Test bad zones and operations return an error instead of raising."""
        assert "error" in await datetime_tool({"operation": "now", "timezone": "Mars/Olympus"})
        assert await datetime_tool({"operation": "explode"}) == {"error": "Unknown operation: explode"}

    async def test_json_get_and_set(self):
        """Test dotted paths read lists and create missing objects."""
        data = json.dumps({"users": [{"name": "Ada"}]})

        assert await json_tool({"operation": "get", "data": data, "path": "users.0.name"}) == {"result": "Ada"}
        result = await json_tool({"operation": "set", "data": "{}", "path": "a.b", "value": "x"})
        assert result == {"result": {"a": {"b": "x"}}}

    async def test_json_validate(self):
        """Test validate reports invalid input without raising."""
        assert await json_tool({"operation": "validate", "data": "[1, 2]"}) == {"valid": True}
        assert (await json_tool({"operation": "validate", "data": "{nope"}))["valid"] is False

    async def test_memory_is_per_session(self):
        """Test memory tools for different sessions never share state."""
        first = create_memory_tool(SessionContext(session_id="a"))
        second = create_memory_tool(SessionContext(session_id="b"))

        await first({"operation": "store", "key": "color", "value": "blue"})

        assert await first({"operation": "retrieve", "key": "color"}) == {"key": "color", "value": "blue"}
        assert await second({"operation": "retrieve", "key": "color"}) == {"key": "color", "value": None}
        assert await first({"operation": "list"}) == {"keys": ["color"], "count": 1}

    async def test_memory_requires_key(self):
        """Test store without a value is an error result."""
        memory = create_memory_tool(SessionContext())

        assert "error" in await memory({"operation": "store", "key": "k"})
