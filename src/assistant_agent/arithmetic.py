"""
Restricted arithmetic evaluator.

Grammar::

    expr   := term (('+' | '-') term)*
    term   := factor (('*' | '/') factor)*
    factor := ('+' | '-') factor | NUMBER | '(' expr ')'

Only numbers, the four operators and parentheses are accepted; everything
else raises ``ArithmeticExpressionError``.
"""

from __future__ import annotations

import re
from typing import List, NamedTuple, Union

Number = Union[int, float]

MAX_NESTING = 100

_TOKEN_RE = re.compile(r"\s*(?:(\d+\.\d*|\.\d+|\d+)|(.))")


class ArithmeticExpressionError(ValueError):
    pass


class Token(NamedTuple):
    kind: str  # "num" or "op"
    value: str
    position: int


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    for match in _TOKEN_RE.finditer(expression):
        number, other = match.groups()
        if number is not None:
            tokens.append(Token("num", number, match.start(1)))
        elif other is not None:
            if other not in "+-*/()":
                raise ArithmeticExpressionError(f"Unexpected character {other!r} at {match.start(2)}")
            tokens.append(Token("op", other, match.start(2)))
    return tokens


class _Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self._tokens = tokens
        self._index = 0
        self._depth = 0

    def _peek(self) -> Token | None:
        return self._tokens[self._index] if self._index < len(self._tokens) else None

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def parse(self) -> float:
        if not self._tokens:
            raise ArithmeticExpressionError("Empty expression")
        value = self._expr()
        leftover = self._peek()
        if leftover is not None:
            raise ArithmeticExpressionError(f"Unexpected {leftover.value!r} at {leftover.position}")
        return value

    def _expr(self) -> float:
        value = self._term()
        while (token := self._peek()) is not None and token.value in ("+", "-"):
            self._advance()
            rhs = self._term()
            value = value + rhs if token.value == "+" else value - rhs
        return value

    def _term(self) -> float:
        value = self._factor()
        while (token := self._peek()) is not None and token.value in ("*", "/"):
            self._advance()
            rhs = self._factor()
            if token.value == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise ArithmeticExpressionError("Division by zero")
                value = value / rhs
        return value

    def _factor(self) -> float:
        # Unary signs and parentheses recurse, so their depth is bounded.
        self._depth += 1
        try:
            if self._depth > MAX_NESTING:
                raise ArithmeticExpressionError(f"Expression nested deeper than {MAX_NESTING} levels")
            return self._primary()
        finally:
            self._depth -= 1

    def _primary(self) -> float:
        token = self._peek()
        if token is None:
            raise ArithmeticExpressionError("Unexpected end of expression")
        self._advance()
        if token.kind == "num":
            return float(token.value)
        if token.value == "-":
            return -self._factor()
        if token.value == "+":
            return self._factor()
        if token.value == "(":
            value = self._expr()
            closing = self._peek()
            if closing is None or closing.value != ")":
                raise ArithmeticExpressionError("Missing closing parenthesis")
            self._advance()
            return value
        raise ArithmeticExpressionError(f"Unexpected {token.value!r} at {token.position}")


def evaluate(expression: str) -> Number:
    """Evaluate ``expression``; integral results come back as ``int``."""
    value = _Parser(tokenize(expression)).parse()
    if value.is_integer():
        return int(value)
    return value
