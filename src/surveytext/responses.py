"""
Responses -> Variables, and breakdown arithmetic.

Answers are stored by question id:
    "Q1": "Yes"                          single choice / text / number
    "Q2": ["Red", "Blue"]                checkbox
    "Q3": {"Q3_1": "Good", "Q3_2": "Poor"}  matrix (row id -> cell)
    "Q4": {"Rent": "1200", "Food": "300"}   breakdown (row value -> cell)

Variables are derived from that map, never edited directly. Only
questions, matrix rows and breakdown rows that declare a VARIABLE
produce one, and an unanswered question produces no key at all.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from surveytext.expressions import evaluate_expression
from surveytext.model import BreakdownQuestion, Option, Survey
from surveytext.values import format_number, is_numeric_value


def derive_variables(survey: Survey, responses: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build the variable map from raw responses.

    Args:
        survey: Compiled survey
        responses: Answers keyed by question id

    Returns:
        Answers keyed by declared variable name
    """
    variables: Dict[str, Any] = {}
    for question in survey.iter_questions():
        if question.id not in responses:
            continue
        answer = responses[question.id]
        if question.variable:
            variables[question.variable] = answer
        if not isinstance(answer, Mapping):
            continue
        for sub in getattr(question, "subquestions", []):
            if sub.variable and sub.id in answer:
                variables[sub.variable] = answer[sub.id]
        for option in question.options:
            if option.variable and option.value in answer:
                variables[option.variable] = answer[option.value]
    return variables


def _cell(value: Any) -> float:
    """Numeric value of a breakdown cell; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and is_numeric_value(value):
        return float(value.strip())
    return 0.0


def _signed(option: Option, values: Mapping[str, Any]) -> float:
    amount = _cell(values.get(option.value))
    return -amount if option.subtract else amount


def breakdown_total(question: BreakdownQuestion, values: Mapping[str, Any]) -> float:
    """
    Total of a breakdown question.

    Header, separator and subtotal rows never count. Rows flagged
    EXCLUDE are skipped and rows flagged SUBTRACT are subtracted.
    """
    total = 0.0
    for option in question.choices:
        if option.is_structural or option.exclude:
            continue
        total += _signed(option, values)
    return total


def breakdown_subtotals(
    question: BreakdownQuestion,
    values: Mapping[str, Any],
    variables: Optional[Mapping[str, Any]] = None,
) -> List[Tuple[Option, float]]:
    """
    Figures for each subtotal row.

    A subtotal sums the ordinary rows since the previous header or
    subtotal row. A subtotal with a CUSTOM expression is evaluated
    instead, over the variables plus the row variables of this question.
    """
    scope: Dict[str, Any] = dict(variables or {})
    for option in question.choices:
        if option.variable and option.value in values:
            scope[option.variable] = values[option.value]

    results: List[Tuple[Option, float]] = []
    running = 0.0
    for option in question.choices:
        if option.subtotal_label:
            figure = evaluate_expression(option.custom, scope) if option.custom else running
            results.append((option, figure))
            running = 0.0
        elif option.header:
            running = 0.0
        elif not option.separator and not option.exclude:
            running += _signed(option, values)
    return results


def prefill_values(
    question: BreakdownQuestion,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> Dict[str, str]:
    """Evaluate every row's VALUE expression (row value -> number text)."""
    return {
        option.value: format_number(evaluate_expression(option.prefill_value, variables, computed))
        for option in question.choices
        if option.prefill_value
    }


__all__ = [
    "derive_variables",
    "breakdown_total",
    "breakdown_subtotals",
    "prefill_values",
]
