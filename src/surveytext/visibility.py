"""
Visibility helpers for the consuming layer.

These walk the compiled tree and apply SHOW_IF conditions with the
condition evaluator. Nothing here mutates the tree.

When no computed values are passed in, every computed variable of the
survey is resolved first (see computed.resolve_survey).
"""

from typing import Any, List, Mapping, Optional, Tuple

from surveytext.computed import resolve_survey
from surveytext.conditions import evaluate_condition
from surveytext.model import Block, Item, Option, Page, Question, Section, Subquestion, Survey


def _computed(survey: Survey, variables: Mapping[str, Any],
              computed: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return resolve_survey(survey, variables) if computed is None else computed


def visible_blocks(
    survey: Survey,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Block]:
    computed = _computed(survey, variables, computed)
    return [block for block in survey.blocks if evaluate_condition(block.show_if, variables, computed)]


def visible_pages(
    survey: Survey,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Tuple[Block, Page]]:
    """(block, page) pairs whose block and page conditions both hold."""
    computed = _computed(survey, variables, computed)
    pages: List[Tuple[Block, Page]] = []
    for block in visible_blocks(survey, variables, computed):
        for page in block.pages:
            if evaluate_condition(page.show_if, variables, computed):
                pages.append((block, page))
    return pages


def visible_sections(
    page: Page,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Section]:
    return [s for s in page.sections if evaluate_condition(s.show_if, variables, computed)]


def visible_items(
    section: Section,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Item]:
    """Text items are always shown; questions follow their SHOW_IF."""
    items: List[Item] = []
    for item in section.items:
        if isinstance(item, Question) and not evaluate_condition(item.show_if, variables, computed):
            continue
        items.append(item)
    return items


def visible_options(
    question: Question,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Option]:
    return [o for o in question.options if evaluate_condition(o.show_if, variables, computed)]


def visible_subquestions(
    question: Question,
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> List[Subquestion]:
    rows = getattr(question, "subquestions", [])
    return [row for row in rows if evaluate_condition(row.show_if, variables, computed)]


__all__ = [
    "visible_blocks",
    "visible_pages",
    "visible_sections",
    "visible_items",
    "visible_options",
    "visible_subquestions",
]
