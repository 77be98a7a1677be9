"""
Arithmetic Expressions
======================
Recursive-descent parser and evaluator backing the calculator tool.

Grammar::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/" | "%") unary)*
    unary   := ("-" | "+") unary | power
    power   := primary ("^" unary)?
    primary := NUMBER | NAME | NAME "(" expr ("," expr)* ")" | "(" expr ")"

``N% of M`` is accepted as shorthand for ``N / 100 * M``.
"""

import math
import re
from typing import Callable, Optional, Union

Number = Union[int, float]

_TOKEN = re.compile(r"\s*(?:(\d+(?:\.\d*)?|\.\d+)|([A-Za-z_][A-Za-z_0-9]*)|(\S))")
_PERCENT_OF = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*of\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


def _round_half_up(x: float) -> float:
    return math.floor(x + 0.5)


FUNCTIONS: dict[str, tuple[int, Callable[..., float]]] = {
    "sqrt": (1, math.sqrt),
    "pow": (2, math.pow),
    "abs": (1, abs),
    "round": (1, _round_half_up),
    "floor": (1, math.floor),
    "ceil": (1, math.ceil),
    "sin": (1, math.sin),
    "cos": (1, math.cos),
    "tan": (1, math.tan),
    "log": (1, math.log),
    "exp": (1, math.exp),
}

CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e}


class ExpressionError(ValueError):
    pass


def tokenize(source: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    source = source.rstrip()
    while pos < len(source):
        match = _TOKEN.match(source, pos)
        if not match:
            break
        number, name, symbol = match.groups()
        if number is not None:
            tokens.append(("number", number))
        elif name is not None:
            tokens.append(("name", name.lower()))
        elif symbol in "+-*/%^(),":
            tokens.append(("op", symbol))
        else:
            raise ExpressionError(f"Unexpected character: {symbol!r}")
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> tuple[str, str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else ("end", "")

    def take(self, value: Optional[str] = None) -> tuple[str, str]:
        token = self.peek()
        if value is not None and token[1] != value:
            found = token[1] or "end of expression"
            raise ExpressionError(f"Expected {value!r} but found {found!r}")
        if token[0] == "end":
            raise ExpressionError("Unexpected end of expression")
        self.pos += 1
        return token

    def parse(self) -> float:
        value = self.expr()
        if self.peek()[0] != "end":
            raise ExpressionError(f"Unexpected token: {self.peek()[1]!r}")
        return value

    def expr(self) -> float:
        value = self.term()
        while self.peek() in (("op", "+"), ("op", "-")):
            op = self.take()[1]
            right = self.term()
            value = value + right if op == "+" else value - right
        return value

    def term(self) -> float:
        value = self.unary()
        while self.peek() in (("op", "*"), ("op", "/"), ("op", "%")):
            op = self.take()[1]
            right = self.unary()
            if op == "*":
                value *= right
            elif right == 0:
                raise ExpressionError("Division by zero")
            elif op == "/":
                value /= right
            else:
                value = math.fmod(value, right)
        return value

    def unary(self) -> float:
        if self.peek() == ("op", "-"):
            self.take()
            return -self.unary()
        if self.peek() == ("op", "+"):
            self.take()
            return self.unary()
        return self.power()

    def power(self) -> float:
        base = self.primary()
        if self.peek() == ("op", "^"):
            self.take()
            try:
                return math.pow(base, self.unary())
            except (OverflowError, ValueError) as e:
                raise ExpressionError(str(e)) from e
        return base

    def primary(self) -> float:
        kind, value = self.take()
        if kind == "number":
            return float(value)
        if kind == "name":
            if self.peek() == ("op", "("):
                return self.call(value)
            if value in CONSTANTS:
                return CONSTANTS[value]
            raise ExpressionError(f"Unknown identifier: {value}")
        if value == "(":
            inner = self.expr()
            self.take(")")
            return inner
        raise ExpressionError(f"Unexpected token: {value!r}")

    def call(self, name: str) -> float:
        if name not in FUNCTIONS:
            raise ExpressionError(f"Unknown function: {name}")
        arity, fn = FUNCTIONS[name]
        self.take("(")
        args = [self.expr()]
        while self.peek() == ("op", ","):
            self.take()
            args.append(self.expr())
        self.take(")")
        if len(args) != arity:
            raise ExpressionError(f"{name}() takes {arity} argument(s), got {len(args)}")
        try:
            return float(fn(*args))
        except (OverflowError, ValueError) as e:
            raise ExpressionError(f"{name}(): {e}") from e


def evaluate(expression: str) -> Number:
    """Evaluate an arithmetic expression. Integral results come back as int."""
    source = _PERCENT_OF.sub(r"(\1 / 100) * \2", expression)
    tokens = tokenize(source)
    if not tokens:
        raise ExpressionError("Empty expression")
    result = _Parser(tokens).parse()
    if math.isfinite(result) and result == int(result):
        return int(result)
    return result
