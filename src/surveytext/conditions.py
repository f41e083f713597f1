"""
Condition Evaluator

Evaluates SHOW_IF conditions and boolean computed variables.

Conditions are pattern-matched rather than precedence-parsed. The steps
run in this fixed order and the first one that applies decides:

    1. Keyword normalization   IS_NOT -> !=, IS -> ==,
                               GREATER_THAN(_OR_EQUAL) -> > / >=,
                               LESS_THAN(_OR_EQUAL) -> < / <=
    2. NOT <condition>         negates the rest
    3. a OR b  /  a || b       true if any part is true
    4. a AND b /  a && b       true if every part is true
    5. true / false            literals
    6. name                    simple boolean test
    7. STARTS_WITH p op value  any variable named p* satisfies the comparison
    8. left op right           general comparison

Because NOT is checked before OR, ``NOT a OR b`` means ``NOT (a OR b)``.

FAILURE POLICY:
    Evaluation is fail-open. Internally every problem is raised as a
    ConditionError; evaluate_condition() turns any failure into True so
    that a broken condition never hides content.

Examples:
    evaluate_condition('age >= 18', {'age': '20'})              -> True
    evaluate_condition('pets == Dog', {'pets': ['Dog', 'Cat']}) -> True
    evaluate_condition('pets == 2', {'pets': ['Dog', 'Cat']})   -> True
    evaluate_condition('STARTS_WITH crime == Yes',
                       {'crime_fraud': 'Yes', 'crime_theft': 'No'}) -> True
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from surveytext.expressions import evaluate_expression, is_arithmetic_expression
from surveytext.values import is_empty, is_numeric_value, to_number

logger = logging.getLogger(__name__)

# Longer keywords first so IS_NOT is not read as IS.
KEYWORD_OPERATORS = [
    ("IS_NOT", "!="),
    ("GREATER_THAN_OR_EQUAL", ">="),
    ("LESS_THAN_OR_EQUAL", "<="),
    ("GREATER_THAN", ">"),
    ("LESS_THAN", "<"),
    ("IS", "=="),
]

_KEYWORD_RES = [(re.compile(rf"\s+{keyword}\s+"), symbol) for keyword, symbol in KEYWORD_OPERATORS]
_OR_RE = re.compile(r"\s+OR\s+|\s*\|\|\s*")
_AND_RE = re.compile(r"\s+AND\s+|\s*&&\s*")
_BARE_NAME_RE = re.compile(r"^\w+$")
_COMPARISON_RE = re.compile(r"^(.+?)\s*(==|!=|>=|<=|>|<)\s*(.+)$", re.DOTALL)
_STARTS_WITH_RE = re.compile(r"^STARTS_WITH\s+(\w+)\s*(==|!=|>=|<=|>|<)\s*(.+)$", re.DOTALL)


class ConditionError(Exception):
    """Raised internally when a condition cannot be evaluated."""
    pass


@dataclass(frozen=True)
class Comparison:
    """A parsed ``left op right`` comparison."""

    left: str
    operator: str
    right: str


def normalize_operators(condition: str) -> str:
    """Rewrite keyword operators (IS, IS_NOT, GREATER_THAN, ...) as symbols."""
    for pattern, symbol in _KEYWORD_RES:
        condition = pattern.sub(f" {symbol} ", condition)
    return condition


def parse_comparison(condition: str) -> Optional[Comparison]:
    """
    Split a condition into left side, operator and right side.

    Returns:
        Comparison, or None when the text holds no comparison operator
    """
    match = _COMPARISON_RE.match(condition.strip())
    if not match:
        return None
    return Comparison(match.group(1).strip(), match.group(2), match.group(3).strip())


def strip_quotes(value: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def evaluate_condition(
    condition: Optional[str],
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Evaluate a condition against the current variables.

    Args:
        condition: Condition text; empty or None means "always visible"
        variables: Answer variables by declared name
        computed: Resolved computed variables (take precedence on collision)

    Returns:
        The condition's truth value. Any evaluation failure yields True.
    """
    if condition is None or not condition.strip():
        return True

    scope: Dict[str, Any] = dict(variables)
    if computed:
        scope.update(computed)

    try:
        return _evaluate(condition.strip(), scope)
    except Exception as e:
        logger.debug("Condition '%s' failed open: %s", condition, e)
        return True


def _evaluate(condition: str, scope: Dict[str, Any]) -> bool:
    condition = normalize_operators(condition).strip()
    if not condition:
        return True

    if condition.startswith("NOT "):
        return not evaluate_condition(condition[4:], scope)

    if _OR_RE.search(condition):
        parts = _split(_OR_RE, condition)
        return any(evaluate_condition(part, scope) for part in parts)

    if _AND_RE.search(condition):
        parts = _split(_AND_RE, condition)
        return all(evaluate_condition(part, scope) for part in parts)

    lowered = condition.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if _BARE_NAME_RE.match(condition):
        return _is_truthy(scope.get(condition))

    starts_with = _STARTS_WITH_RE.match(condition)
    if starts_with:
        prefix, operator, right = starts_with.groups()
        names = [name for name in scope if name.startswith(prefix)]
        return any(
            _compare(Comparison(name, operator, right.strip()), scope) for name in names
        )

    comparison = parse_comparison(condition)
    if comparison is None:
        raise ConditionError(f"Unrecognized condition: '{condition}'")
    return _compare(comparison, scope)


def _split(pattern: "re.Pattern[str]", condition: str) -> List[str]:
    parts = [part.strip() for part in pattern.split(condition)]
    if any(not part for part in parts):
        raise ConditionError(f"Dangling logical operator in '{condition}'")
    return parts


def _is_truthy(value: Any) -> bool:
    """Simple boolean test for a bare variable name."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return True
    return not is_empty(value)


def _compare(comparison: Comparison, scope: Dict[str, Any]) -> bool:
    left, operator, right = comparison.left, comparison.operator, comparison.right

    if is_arithmetic_expression(left) or is_arithmetic_expression(right):
        return _apply(operator, evaluate_expression(left, scope), evaluate_expression(right, scope))

    value = scope.get(left)

    if _BARE_NAME_RE.match(right) and right in scope and not is_numeric_value(right):
        return _apply(operator, to_number(value), to_number(scope[right]))

    target = strip_quotes(right)

    if target == "":
        return _compare_empty(left, operator, value, scope)

    # An unanswered variable satisfies no comparison, not even !=.
    if value is None:
        return False

    # A numeric target on a list compares its length, == included.
    if operator in ("==", "!=") and not (_is_list(value) and is_numeric_value(target)):
        equal = _matches(value, target)
        return equal if operator == "==" else not equal

    return _compare_numeric(operator, value, target)


def _compare_empty(left: str, operator: str, value: Any, scope: Dict[str, Any]) -> bool:
    """``x == ""`` means "shown but unanswered"; a never-rendered x is neither."""
    if left not in scope:
        return operator != "=="
    empty = is_empty(value)
    return empty if operator == "==" else not empty


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _matches(value: Any, target: str) -> bool:
    """Equality for ==/!=: membership for lists, numeric or text otherwise."""
    if _is_list(value):
        return any(str(item) == target for item in value)
    if isinstance(value, bool):
        return target.lower() == ("true" if value else "false")
    if is_numeric_value(target):
        if isinstance(value, (int, float)):
            return float(value) == float(target)
        if isinstance(value, str) and is_numeric_value(value):
            return float(value) == float(target)
    return str(value) == target


def _compare_numeric(operator: str, value: Any, target: str) -> bool:
    """Ordering comparison; lists compare by length."""
    if not is_numeric_value(target):
        return False
    if isinstance(value, str) and not is_numeric_value(value):
        return False
    return _apply(operator, to_number(value), float(target))


def _apply(operator: str, left: float, right: float) -> bool:
    if operator == "==":
        return left == right
    if operator == "!=":
        return left != right
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "<":
        return left < right
    if operator == "<=":
        return left <= right
    raise ConditionError(f"Unknown operator: {operator}")


__all__ = [
    "ConditionError",
    "Comparison",
    "normalize_operators",
    "parse_comparison",
    "strip_quotes",
    "evaluate_condition",
]
