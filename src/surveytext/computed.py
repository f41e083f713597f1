"""
Computed-Variable Resolver

Computed variables (``COMPUTE: total = rent + food``) are derived from
answers and from each other. Resolution:

    1. Build a dependency graph: an identifier in an expression that names
       another computed variable of the same scope is an edge.
    2. Order with Kahn's algorithm. If a cycle prevents a full ordering,
       warn and fall back to declaration order for every variable.
    3. Evaluate each expression in that order. Boolean expressions go to
       the condition evaluator, arithmetic ones to the expression
       evaluator. Values already resolved are visible to later ones.

A failing variable defaults to 0 (arithmetic) or False (boolean) and
never stops its siblings.

The resolver keeps no state between calls. Callers that re-render often
memoize per scope with ComputedCache and invalidate it when answers change.
"""

import logging
import re
import warnings
from collections import deque
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from surveytext.conditions import evaluate_condition
from surveytext.expressions import evaluate_expression, find_identifiers, is_arithmetic_expression
from surveytext.model import Block, ComputedVariable, Page, Survey

logger = logging.getLogger(__name__)

ComputedValue = Union[bool, float]

RESERVED_WORDS = {"AND", "OR", "NOT", "IS", "THEN", "ELSE", "IF", "true", "false", "null", "undefined"}

_BOOLEAN_SIGNAL_RE = re.compile(
    r"[<>=!]=?|\bIS(?:_NOT)?\b|\bGREATER_THAN\b|\bLESS_THAN\b|\bAND\b|\bOR\b|\bNOT\b|\bSTARTS_WITH\b|&&|\|\|"
)


def is_boolean_expression(expression: str) -> bool:
    """True when the expression compares, combines or quantifies values."""
    return bool(_BOOLEAN_SIGNAL_RE.search(expression))


def expression_dependencies(expression: str) -> List[str]:
    """Identifiers in an expression, minus reserved words."""
    return [name for name in find_identifiers(expression) if name not in RESERVED_WORDS]


def dependency_order(declared: Sequence[ComputedVariable]) -> Tuple[List[ComputedVariable], bool]:
    """
    Order computed variables so that dependencies come first.

    Args:
        declared: Computed variables in declaration order

    Returns:
        (ordered variables, True) on success, or
        (declaration order, False) when a cycle blocks a full ordering
    """
    names = {var.name for var in declared}
    in_degree: Dict[str, int] = {var.name: 0 for var in declared}
    dependents: Dict[str, List[str]] = {var.name: [] for var in declared}

    for var in declared:
        for dep in expression_dependencies(var.expression):
            if dep in names and dep != var.name and var.name not in dependents[dep]:
                dependents[dep].append(var.name)
                in_degree[var.name] += 1
            elif dep == var.name:
                # Self reference can never be ordered.
                in_degree[var.name] += 1

    by_name = {var.name: var for var in declared}
    queue = deque(var.name for var in declared if in_degree[var.name] == 0)
    ordered: List[ComputedVariable] = []

    while queue:
        name = queue.popleft()
        ordered.append(by_name[name])
        for dependent in dependents[name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(ordered) != len(by_name):
        return list(declared), False
    return ordered, True


def evaluate_computed(
    var: ComputedVariable,
    variables: Mapping[str, Any],
    computed: Mapping[str, Any],
) -> ComputedValue:
    """Evaluate one computed variable, defaulting to 0/False on failure."""
    arithmetic = not is_boolean_expression(var.expression) and is_arithmetic_expression(var.expression)
    try:
        if arithmetic:
            return evaluate_expression(var.expression, variables, computed)
        return evaluate_condition(var.expression, variables, computed)
    except Exception as e:
        logger.debug("Computed variable '%s' defaulted: %s", var.name, e)
        return 0.0 if arithmetic else False


def resolve_computed_variables(
    declared: Sequence[ComputedVariable],
    variables: Mapping[str, Any],
    prior: Optional[Mapping[str, Any]] = None,
) -> Dict[str, ComputedValue]:
    """
    Resolve a scope's computed variables.

    Args:
        declared: Computed variables of one page or block
        variables: Answer variables by name
        prior: Values resolved in an enclosing scope, visible to these
            expressions. They are included in the result unless a
            variable of this scope overrides them.

    Returns:
        Map of computed variable name to bool or float
    """
    ordered, complete = dependency_order(declared)
    if not complete:
        warnings.warn(
            "Possible circular dependency in computed variables, using declaration order: "
            + ", ".join(var.name for var in declared),
            UserWarning,
        )

    resolved: Dict[str, ComputedValue] = dict(prior or {})
    for var in ordered:
        resolved[var.name] = evaluate_computed(var, variables, resolved)
    return resolved


def resolve_scope(
    block: Optional[Block],
    page: Optional[Page],
    variables: Mapping[str, Any],
    prior: Optional[Mapping[str, Any]] = None,
) -> Dict[str, ComputedValue]:
    """
    Resolve block-level then page-level computed variables.

    Block values are visible to page expressions; page values win on a
    name collision.
    """
    values: Dict[str, ComputedValue] = dict(prior or {})
    if block is not None and block.computed_variables:
        values = resolve_computed_variables(block.computed_variables, variables, values)
    if page is not None and page.computed_variables:
        values = resolve_computed_variables(page.computed_variables, variables, values)
    return values


def resolve_survey(survey: Survey, variables: Mapping[str, Any]) -> Dict[str, ComputedValue]:
    """
    Resolve every computed variable of a survey in document order.

    Each block is resolved before its pages, and every scope sees the
    values of the scopes before it, so a condition anywhere in the
    survey can use any computed value.
    """
    values: Dict[str, ComputedValue] = {}
    for block in survey.blocks:
        values = resolve_scope(block, None, variables, values)
        for page in block.pages:
            values = resolve_scope(None, page, variables, values)
    return values


class ComputedCache:
    """
    Per-scope memo for a consumer that re-renders often.

    Keys are (block name, page index within the block). Call invalidate()
    whenever the answer variables change.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, Optional[int]], Dict[str, ComputedValue]] = {}

    def get(
        self,
        block: Block,
        page: Optional[Page],
        variables: Mapping[str, Any],
    ) -> Dict[str, ComputedValue]:
        page_index = next((i for i, p in enumerate(block.pages) if p is page), None)
        key = (block.name, page_index)
        if key not in self._entries:
            self._entries[key] = resolve_scope(block, page, variables)
        return self._entries[key]

    def invalidate(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "RESERVED_WORDS",
    "is_boolean_expression",
    "expression_dependencies",
    "dependency_order",
    "evaluate_computed",
    "resolve_computed_variables",
    "resolve_scope",
    "resolve_survey",
    "ComputedCache",
]
