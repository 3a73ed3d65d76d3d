"""Sandboxed arithmetic evaluator for pay component formulas.

Formulas are limited to decimal literals, identifiers, ``+ - * /`` and
parentheses, e.g. ``BASIC * 0.5 + 1600`` or ``(GROSS - HRA) / 12``.
Identifiers are resolved from a caller-supplied mapping; nothing else is
reachable from a formula.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, DivisionByZero, InvalidOperation


class FormulaError(ValueError):
    """Raised for formulas that cannot be tokenized, parsed or evaluated."""


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, IDENT, OP, LPAREN, RPAREN
    text: str
    position: int


_OPERATORS = "+-*/"


def tokenize(formula: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    n = len(formula)

    while i < n:
        ch = formula[i]
        if ch.isspace():
            i += 1
        elif ch.isdigit() or (ch == "." and i + 1 < n and formula[i + 1].isdigit()):
            start = i
            seen_dot = False
            while i < n and (formula[i].isdigit() or (formula[i] == "." and not seen_dot)):
                seen_dot = seen_dot or formula[i] == "."
                i += 1
            tokens.append(Token("NUMBER", formula[start:i], start))
        elif ch.isalpha() or ch == "_":
            start = i
            while i < n and (formula[i].isalnum() or formula[i] == "_"):
                i += 1
            tokens.append(Token("IDENT", formula[start:i], start))
        elif ch in _OPERATORS:
            tokens.append(Token("OP", ch, i))
            i += 1
        elif ch == "(":
            tokens.append(Token("LPAREN", ch, i))
            i += 1
        elif ch == ")":
            tokens.append(Token("RPAREN", ch, i))
            i += 1
        else:
            raise FormulaError(f"Unexpected character {ch!r} at position {i}")

    return tokens


def referenced_names(formula: str) -> set[str]:
    """Identifiers a formula refers to."""
    return {t.text for t in tokenize(formula) if t.kind == "IDENT"}


def evaluate(formula: str, variables: Mapping[str, Decimal]) -> Decimal:
    """Evaluate ``formula`` with identifiers bound from ``variables``."""
    if not formula or not formula.strip():
        raise FormulaError("Formula is empty")
    return _Parser(tokenize(formula), variables).parse()


class _Parser:
    """Recursive-descent parser that evaluates while it parses.

    expr   := term (('+' | '-') term)*
    term   := factor (('*' | '/') factor)*
    factor := ('+' | '-') factor | NUMBER | IDENT | '(' expr ')'
    """

    def __init__(self, tokens: list[Token], variables: Mapping[str, Decimal]):
        self.tokens = tokens
        self.variables = variables
        self.pos = 0

    def parse(self) -> Decimal:
        value = self._expr()
        if self.pos != len(self.tokens):
            token = self.tokens[self.pos]
            raise FormulaError(f"Unexpected {token.text!r} at position {token.position}")
        return value

    def _peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaError("Unexpected end of formula")
        self.pos += 1
        return token

    def _at_operator(self, operators: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "OP" and token.text in operators

    def _expr(self) -> Decimal:
        value = self._term()
        while self._at_operator("+-"):
            token = self._next()
            rhs = self._term()
            value = value + rhs if token.text == "+" else value - rhs
        return value

    def _term(self) -> Decimal:
        value = self._factor()
        while self._at_operator("*/"):
            token = self._next()
            rhs = self._factor()
            if token.text == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise FormulaError("Division by zero")
                try:
                    value = value / rhs
                except (DivisionByZero, InvalidOperation) as e:
                    raise FormulaError(f"Invalid division: {e}") from e
        return value

    def _factor(self) -> Decimal:
        token = self._next()

        if token.kind == "OP" and token.text in "+-":
            operand = self._factor()
            return operand if token.text == "+" else -operand

        if token.kind == "NUMBER":
            return Decimal(token.text)

        if token.kind == "IDENT":
            if token.text not in self.variables:
                raise FormulaError(f"Unknown reference '{token.text}'")
            return Decimal(self.variables[token.text])

        if token.kind == "LPAREN":
            value = self._expr()
            closing = self._next()
            if closing.kind != "RPAREN":
                raise FormulaError(f"Expected ')' at position {closing.position}")
            return value

        raise FormulaError(f"Unexpected {token.text!r} at position {token.position}")
