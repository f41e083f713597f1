"""
Survey Validator

Cross-checks a compiled Survey before it is handed to a consumer:

    - Variable names are unique. Question, matrix-row and breakdown-row
      variables share one namespace across the whole document. A
      computed variable may not reuse one of those names or the name of
      another computed variable in the same scope.

    - Every identifier a SHOW_IF or COMPUTE depends on is declared. For a
      comparison that is the left side (a value such as ``Yes`` on the
      right is not a name); for a bare test or an arithmetic expression
      it is every identifier.

All problems are collected and raised together in one
SurveyValidationError, never one at a time.
"""

import re
from collections import Counter
from typing import Iterable, List, Optional, Set

from surveytext.conditions import normalize_operators, parse_comparison
from surveytext.expressions import find_identifiers, is_arithmetic_expression
from surveytext.model import Block, Survey

CONDITION_KEYWORDS = {
    "AND", "OR", "NOT", "IS", "IS_NOT", "GREATER_THAN", "GREATER_THAN_OR_EQUAL",
    "LESS_THAN", "LESS_THAN_OR_EQUAL", "STARTS_WITH", "THEN", "ELSE", "IF",
    "true", "false", "null", "undefined",
}

_LOGICAL_SPLIT_RE = re.compile(r"\s+(?:AND|OR)\s+|\s*(?:&&|\|\|)\s*")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SurveyValidationError(Exception):
    """Raised when a compiled survey has duplicate or undefined variables."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


def referenced_variables(condition: Optional[str]) -> List[str]:
    """
    Names a condition or computed expression depends on.

    Args:
        condition: SHOW_IF condition or COMPUTE expression

    Returns:
        Distinct names in order of first appearance
    """
    if not condition:
        return []

    names: List[str] = []
    for part in _LOGICAL_SPLIT_RE.split(normalize_operators(condition)):
        part = part.strip()
        while part.startswith("NOT "):
            part = part[4:].strip()
        if not part or part.startswith("STARTS_WITH"):
            continue

        comparison = parse_comparison(part)
        if comparison is None:
            candidates = find_identifiers(part)
        else:
            candidates = []
            if is_arithmetic_expression(comparison.left):
                candidates.extend(find_identifiers(comparison.left))
            elif _IDENTIFIER_RE.match(comparison.left):
                candidates.append(comparison.left)
            if is_arithmetic_expression(comparison.right):
                candidates.extend(find_identifiers(comparison.right))

        for name in candidates:
            if name not in CONDITION_KEYWORDS and name not in names:
                names.append(name)
    return names


def find_undefined_variables(condition: Optional[str], declared: Set[str]) -> List[str]:
    """Names referenced by ``condition`` that are not in ``declared``."""
    return [name for name in referenced_variables(condition) if name not in declared]


def _duplicates(names: Iterable[str]) -> List[str]:
    names = list(names)
    counts = Counter(names)
    found: List[str] = []
    for name in names:
        if counts[name] > 1 and name not in found:
            found.append(name)
    return found


def _answer_variable_names(survey: Survey) -> List[str]:
    names: List[str] = []
    for question in survey.iter_questions():
        if question.variable:
            names.append(question.variable)
        for sub in getattr(question, "subquestions", []):
            if sub.variable:
                names.append(sub.variable)
        for option in question.options:
            if option.variable:
                names.append(option.variable)
    return names


def validate_variable_names(survey: Survey) -> List[str]:
    """Return duplicate-name errors (empty list when names are unique)."""
    answer_names = _answer_variable_names(survey)
    duplicates = _duplicates(answer_names)

    scopes = []
    for block in survey.blocks:
        scopes.append(block.computed_variables)
        scopes.extend(page.computed_variables for page in block.pages)
    for scope in scopes:
        scope_names = [var.name for var in scope]
        for name in _duplicates(scope_names) + [n for n in scope_names if n in answer_names]:
            if name not in duplicates:
                duplicates.append(name)

    if not duplicates:
        return []
    return [
        f"Duplicate variable names found: {', '.join(duplicates)}. "
        "Each variable name must be unique across the entire questionnaire."
    ]


def _check(errors: List[str], owner: str, condition: Optional[str], declared: Set[str]) -> None:
    undefined = find_undefined_variables(condition, declared)
    if undefined:
        errors.append(f"{owner} SHOW_IF references undefined variables: {', '.join(undefined)}")


def _check_block(errors: List[str], block: Block, declared: Set[str]) -> None:
    _check(errors, f'Block "{block.name}"', block.show_if, declared)
    for page in block.pages:
        _check(errors, f'Page "{page.title}"', page.show_if, declared)
        for section in page.sections:
            if section.title is not None:
                _check(errors, f'Section "{section.title}"', section.show_if, declared)
            for question in section.questions:
                _check(errors, f'Question "{question.id}"', question.show_if, declared)
                for option in question.options:
                    _check(errors, f'Question "{question.id}" option "{option.label}"',
                           option.show_if, declared)
                for sub in getattr(question, "subquestions", []):
                    _check(errors, f'Question "{question.id}" row "{sub.id}"', sub.show_if, declared)


def validate_references(survey: Survey) -> List[str]:
    """Return undefined-reference errors for every SHOW_IF and COMPUTE."""
    declared = set(survey.variable_names())
    errors: List[str] = []

    for block in survey.blocks:
        _check_block(errors, block, declared)

    for block in survey.blocks:
        scopes = [block.computed_variables] + [page.computed_variables for page in block.pages]
        for scope in scopes:
            for var in scope:
                undefined = find_undefined_variables(var.expression, declared)
                if undefined:
                    errors.append(
                        f'Computed variable "{var.name}" references undefined variables: '
                        f"{', '.join(undefined)}"
                    )
    return errors


def validate_survey(survey: Survey) -> None:
    """
    Validate a compiled survey.

    Raises:
        SurveyValidationError: Listing every duplicate and undefined
            variable found
    """
    errors = validate_variable_names(survey) + validate_references(survey)
    if errors:
        raise SurveyValidationError(errors)


__all__ = [
    "SurveyValidationError",
    "referenced_variables",
    "find_undefined_variables",
    "validate_variable_names",
    "validate_references",
    "validate_survey",
]
