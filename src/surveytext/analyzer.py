"""
Survey Analyzer: early diagnostics and inventory of compiled surveys.

This module provides lightweight analysis of Survey objects:
    - Structure inventory (blocks, pages, sections, question types)
    - Variable usage across SHOW_IF, COMPUTE and text placeholders
    - Computed-variable dependency cycles
    - Warning flags for authoring risk

IMPORTANT: This layer does NOT modify the survey and never raises on a
survey the parser produced. It only produces read-only reports.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from surveytext.computed import expression_dependencies
from surveytext.expressions import find_identifiers, is_arithmetic_expression
from surveytext.model import ComputedVariable, Question, Survey, TextItem
from surveytext.validation import referenced_variables

_CONDITIONAL_RE = re.compile(r"\{\{\s*IF\s+(.+?)\s+THEN\s", re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"(?<!\{)\{([^{}]+)\}(?!\})")
_LIST_SUFFIX_RE = re.compile(r"\s+AS\s+(?:LIST|INLINE_LIST)$")


def _text_references(text: Optional[str]) -> List[str]:
    """Variables used by conditional text and placeholders."""
    if not text:
        return []
    names: List[str] = []
    for match in _CONDITIONAL_RE.finditer(text):
        names.extend(referenced_variables(match.group(1)))
    for match in _PLACEHOLDER_RE.finditer(text):
        content = _LIST_SUFFIX_RE.sub("", match.group(1).strip())
        if content.startswith("IF "):
            continue
        if is_arithmetic_expression(content):
            names.extend(find_identifiers(content))
        elif re.match(r"^[A-Za-z_]\w*$", content):
            names.append(content)
    return names


def _find_cycles_dfs(graph: Dict[str, List[str]], start: str, visited: Set[str],
                     rec_stack: Set[str], path: List[str]) -> Optional[List[str]]:
    """DFS to find a cycle starting from a node."""
    visited.add(start)
    rec_stack.add(start)
    path.append(start)

    for neighbor in graph.get(start, []):
        if neighbor not in visited:
            cycle = _find_cycles_dfs(graph, neighbor, visited, rec_stack, path[:])
            if cycle:
                return cycle
        elif neighbor in rec_stack:
            cycle_start_idx = path.index(neighbor)
            return path[cycle_start_idx:] + [neighbor]

    rec_stack.remove(start)
    return None


def _computed_scopes(survey: Survey) -> Iterator[List[ComputedVariable]]:
    for block in survey.blocks:
        if block.computed_variables:
            yield block.computed_variables
        for page in block.pages:
            if page.computed_variables:
                yield page.computed_variables


@dataclass
class SurveyReport:
    """Inventory and diagnostics for a compiled survey."""

    survey_name: str
    total_blocks: int = 0
    total_pages: int = 0
    total_sections: int = 0
    total_text_items: int = 0
    total_questions: int = 0
    total_computed_variables: int = 0
    question_types: Dict[str, int] = field(default_factory=dict)

    # Variable usage
    declared_variables: Dict[str, str] = field(default_factory=dict)
    variable_usage: Dict[str, int] = field(default_factory=dict)
    undefined_variables: Set[str] = field(default_factory=set)
    unused_variables: Set[str] = field(default_factory=set)

    # Computed-variable dependencies
    has_cycles: bool = False
    cycle_example: Optional[List[str]] = None

    # Coverage
    conditional_questions: int = 0
    empty_pages: List[str] = field(default_factory=list)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_survey(survey: Survey) -> SurveyReport:
    """
    Analyze a compiled Survey.

    Checks for:
    - Structure counts and question types
    - Variable declarations and usage
    - Cycles between computed variables
    - Pages without content

    Returns a SurveyReport with metrics and warnings.
    """
    report = SurveyReport(survey_name=survey.name)

    # =========================================================================
    # 1. STRUCTURE
    # =========================================================================

    report.total_blocks = len(survey.blocks)
    types: Dict[str, int] = defaultdict(int)
    texts: List[Optional[str]] = []

    for block, page in survey.iter_pages():
        report.total_pages += 1
        report.total_sections += len(page.sections)
        if not any(section.items for section in page.sections):
            report.empty_pages.append(page.title or f"(untitled page in block '{block.name}')")
        for section in page.sections:
            for item in section.items:
                if isinstance(item, TextItem):
                    report.total_text_items += 1
                    texts.append(item.value)
                elif isinstance(item, Question):
                    report.total_questions += 1
                    types[item.type.value] += 1
                    if item.show_if:
                        report.conditional_questions += 1
                    texts.extend([item.text, item.hint, item.tooltip])
                    texts.extend(option.label for option in item.options)
                    texts.extend(sub.text for sub in getattr(item, "subquestions", []))

    report.question_types = dict(types)
    report.total_computed_variables = sum(len(scope) for scope in _computed_scopes(survey))

    # =========================================================================
    # 2. VARIABLE ANALYSIS
    # =========================================================================

    report.declared_variables = survey.variable_names()
    usage: Dict[str, int] = defaultdict(int)

    conditions: List[Optional[str]] = []
    for block in survey.blocks:
        conditions.append(block.show_if)
        for page in block.pages:
            conditions.append(page.show_if)
            for section in page.sections:
                conditions.append(section.show_if)
                for question in section.questions:
                    conditions.append(question.show_if)
                    conditions.extend(option.show_if for option in question.options)
                    conditions.extend(sub.show_if for sub in getattr(question, "subquestions", []))
    for scope in _computed_scopes(survey):
        conditions.extend(var.expression for var in scope)

    for condition in conditions:
        for name in referenced_variables(condition):
            usage[name] += 1
    for text in texts:
        for name in _text_references(text):
            usage[name] += 1

    report.variable_usage = dict(usage)
    declared = set(report.declared_variables)
    report.undefined_variables = set(usage) - declared
    report.unused_variables = declared - set(usage)

    # =========================================================================
    # 3. COMPUTED-VARIABLE DEPENDENCIES
    # =========================================================================

    for scope in _computed_scopes(survey):
        names = {var.name for var in scope}
        graph = {
            var.name: [dep for dep in expression_dependencies(var.expression) if dep in names]
            for var in scope
        }
        visited: Set[str] = set()
        for name in graph:
            if name not in visited:
                cycle = _find_cycles_dfs(graph, name, visited, set(), [])
                if cycle:
                    report.has_cycles = True
                    report.cycle_example = cycle
                    break
        if report.has_cycles:
            break

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if report.undefined_variables:
        report.add_warning(
            f"Undefined variable references: {', '.join(sorted(report.undefined_variables))}"
        )

    if report.unused_variables:
        report.add_warning(
            f"Unused variables: {', '.join(sorted(report.unused_variables))}"
        )

    if report.has_cycles:
        report.add_warning(
            f"Computed variable cycle: {' -> '.join(report.cycle_example)}"
        )

    if report.empty_pages:
        report.add_warning(
            f"Pages without content: {', '.join(report.empty_pages)}"
        )

    return report


def format_report(report: SurveyReport) -> str:
    """Plain-text rendering of a report (used by the CLI)."""
    lines = [
        f"Survey: {report.survey_name}",
        f"  Blocks: {report.total_blocks}",
        f"  Pages: {report.total_pages}",
        f"  Sections: {report.total_sections}",
        f"  Text items: {report.total_text_items}",
        f"  Questions: {report.total_questions}",
    ]
    for type_name, count in sorted(report.question_types.items()):
        lines.append(f"    {type_name}: {count}")
    lines.append(f"  Conditional questions: {report.conditional_questions}")
    lines.append(f"  Computed variables: {report.total_computed_variables}")
    lines.append(f"  Declared variables: {len(report.declared_variables)}")
    for name in sorted(report.declared_variables):
        lines.append(
            f"    {name} ({report.declared_variables[name]}): "
            f"{report.variable_usage.get(name, 0)} reference(s)"
        )
    if report.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in report.warnings)
    return "\n".join(lines)


__all__ = ["SurveyReport", "analyze_survey", "format_report"]
