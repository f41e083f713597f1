"""
Arithmetic Expression System

Arithmetic in computed variables, placeholders and comparisons
(``rent + food * 2``, ``(a - b) / 3``) is parsed into a small Abstract
Syntax Tree and evaluated by walking that tree. No string is ever
handed to a dynamic evaluation primitive.

Grammar (recursive descent, usual precedence):
    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("-" | "+") unary | primary
    primary    := NUMBER | IDENTIFIER | "(" expression ")"

ARCHITECTURAL RULE:
    Parsing is strict (malformed input raises ExpressionSyntaxError).
    Evaluation is total: evaluate_expression never raises and returns 0
    for anything it cannot compute.
"""

import logging
import re
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from surveytext.values import to_number

logger = logging.getLogger(__name__)


class ExpressionSyntaxError(Exception):
    """Raised when an arithmetic expression cannot be parsed."""
    pass


class Expression(ABC):
    """
    Base class for all arithmetic AST nodes.

    This class is structure only. Evaluation lives in _evaluate().
    """
    pass


class BinaryOperator(Enum):
    """Binary arithmetic operators."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


class UnaryOperator(Enum):
    """Unary arithmetic operators."""

    NEGATE = "-"
    PLUS = "+"


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary arithmetic operation.

    Example:
        rent + food * 2

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.ADD,
            left=VariableReference("rent"),
            right=BinaryExpression(
                operator=BinaryOperator.MULTIPLY,
                left=VariableReference("food"),
                right=Literal(2.0)
            )
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """Represents a unary sign, e.g. ``-(a + b)``."""

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class VariableReference(Expression):
    """
    References a variable by name.

    IMPORTANT:
        This object does NOT validate variable existence.
        Unknown names evaluate to 0.
    """

    name: str


@dataclass(frozen=True)
class Literal(Expression):
    """Numeric constant."""

    value: float


_TOKEN_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+|[^\W\d]\w*|[+\-*/()]|\S")
_NUMBER_TOKEN_RE = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$")
_IDENTIFIER_TOKEN_RE = re.compile(r"^[^\W\d]\w*$")
_IDENTIFIER_RE = re.compile(r"(?<![\w.])([^\W\d]\w*)")
_BARE_IDENTIFIER_RE = re.compile(r"^\w+$")
_OPERATOR_BETWEEN_RE = re.compile(r"\w+\s*[+\-*/]\s*\w+")

_BINARY_OPERATORS = {
    "+": BinaryOperator.ADD,
    "-": BinaryOperator.SUBTRACT,
    "*": BinaryOperator.MULTIPLY,
    "/": BinaryOperator.DIVIDE,
}


def _tokenize(text: str) -> List[str]:
    """Tokenize an arithmetic expression."""
    tokens = _TOKEN_RE.findall(text)
    if not tokens:
        raise ExpressionSyntaxError(f"Empty expression: '{text}'")
    return tokens


def parse_arithmetic(text: str) -> Expression:
    """
    Parse an arithmetic expression into an AST.

    Args:
        text: Expression such as "rent + food * 2"

    Returns:
        Expression AST

    Raises:
        ExpressionSyntaxError: If the text is not a complete expression
    """
    tokens = _tokenize(text)
    tree, pos = _parse_sum(tokens, 0)
    if pos < len(tokens):
        raise ExpressionSyntaxError(f"Unexpected token '{tokens[pos]}' in '{text}'")
    return tree


def _parse_sum(tokens: List[str], pos: int) -> Tuple[Expression, int]:
    """Parse + and - (lowest precedence)."""
    left, pos = _parse_product(tokens, pos)
    while pos < len(tokens) and tokens[pos] in ("+", "-"):
        operator = _BINARY_OPERATORS[tokens[pos]]
        right, pos = _parse_product(tokens, pos + 1)
        left = BinaryExpression(operator, left, right)
    return left, pos


def _parse_product(tokens: List[str], pos: int) -> Tuple[Expression, int]:
    """Parse * and /."""
    left, pos = _parse_unary(tokens, pos)
    while pos < len(tokens) and tokens[pos] in ("*", "/"):
        operator = _BINARY_OPERATORS[tokens[pos]]
        right, pos = _parse_unary(tokens, pos + 1)
        left = BinaryExpression(operator, left, right)
    return left, pos


def _parse_unary(tokens: List[str], pos: int) -> Tuple[Expression, int]:
    """Parse a leading sign."""
    if pos < len(tokens) and tokens[pos] in ("-", "+"):
        operator = UnaryOperator.NEGATE if tokens[pos] == "-" else UnaryOperator.PLUS
        operand, pos = _parse_unary(tokens, pos + 1)
        return UnaryExpression(operator, operand), pos
    return _parse_primary(tokens, pos)


def _parse_primary(tokens: List[str], pos: int) -> Tuple[Expression, int]:
    """Parse a number, identifier or parenthesized expression."""
    if pos >= len(tokens):
        raise ExpressionSyntaxError("Unexpected end of expression")

    token = tokens[pos]

    if token == "(":
        expr, pos = _parse_sum(tokens, pos + 1)
        if pos >= len(tokens) or tokens[pos] != ")":
            raise ExpressionSyntaxError("Missing closing parenthesis")
        return expr, pos + 1

    if _NUMBER_TOKEN_RE.match(token):
        return Literal(float(token)), pos + 1

    if _IDENTIFIER_TOKEN_RE.match(token):
        return VariableReference(token), pos + 1

    raise ExpressionSyntaxError(f"Unexpected token: {token}")


def _evaluate(expr: Expression, variables: Mapping[str, Any]) -> float:
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, VariableReference):
        return to_number(variables.get(expr.name))
    if isinstance(expr, UnaryExpression):
        operand = _evaluate(expr.operand, variables)
        return -operand if expr.operator == UnaryOperator.NEGATE else operand
    if isinstance(expr, BinaryExpression):
        left = _evaluate(expr.left, variables)
        right = _evaluate(expr.right, variables)
        if expr.operator == BinaryOperator.ADD:
            return left + right
        if expr.operator == BinaryOperator.SUBTRACT:
            return left - right
        if expr.operator == BinaryOperator.MULTIPLY:
            return left * right
        return left / right
    raise ExpressionSyntaxError(f"Unknown expression node: {expr!r}")


def evaluate_expression(
    expression: str,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> float:
    """
    Evaluate an arithmetic expression over named variables.

    Known names are replaced by their numeric coercion (see
    values.to_number); unknown names count as 0. Computed values take
    precedence over answers with the same name.

    Args:
        expression: Expression text, e.g. "rent + food + transport"
        variables: Answer variables by name
        computed: Already-resolved computed variables

    Returns:
        The numeric result, or 0.0 when the expression is malformed or
        cannot be computed (e.g. division by zero)
    """
    scope: Dict[str, Any] = dict(variables)
    if computed:
        scope.update(computed)
    try:
        return _evaluate(parse_arithmetic(expression), scope)
    except (ExpressionSyntaxError, ZeroDivisionError, OverflowError) as e:
        logger.debug("Expression '%s' evaluated to 0: %s", expression, e)
        return 0.0


def is_arithmetic_expression(text: str) -> bool:
    """
    True when the text is an arithmetic expression rather than a bare name.

    The text must contain an operator between two operands (or be fully
    parenthesized) and must parse as a complete expression, so labels
    such as "Text/essay questions" are not mistaken for division.
    """
    text = text.strip()
    if not text or _BARE_IDENTIFIER_RE.match(text):
        return False
    if not (_OPERATOR_BETWEEN_RE.search(text) or (text.startswith("(") and text.endswith(")"))):
        return False
    try:
        parse_arithmetic(text)
    except ExpressionSyntaxError:
        return False
    return True


def find_identifiers(text: str) -> List[str]:
    """
    Return the distinct identifiers in a piece of expression text.

    Numbers and the fractional part of decimals are skipped. Order of
    first appearance is preserved.
    """
    seen: List[str] = []
    for match in _IDENTIFIER_RE.finditer(text):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


__all__ = [
    "ExpressionSyntaxError",
    "Expression",
    "BinaryOperator",
    "UnaryOperator",
    "BinaryExpression",
    "UnaryExpression",
    "VariableReference",
    "Literal",
    "parse_arithmetic",
    "evaluate_expression",
    "is_arithmetic_expression",
    "find_identifiers",
]
