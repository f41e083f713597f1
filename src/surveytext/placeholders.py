"""
Placeholder / Template Engine

Rewrites free text (questions, options, hints, text items) in two
passes, always in this order:

    1. Conditional text:  {{IF condition THEN text ELSE text}}
       ELSE is optional. Branches may contain further {{...}} blocks;
       THEN and ELSE are only recognized at brace depth 0 of the block
       being processed.

    2. Interpolation:     {name}, {expression}, {name AS LIST},
                          {name AS INLINE_LIST}

Rendering rules for {name}:
    list  -> markdown bullet list ("none" when empty, the item itself
             when there is only one)
    AS INLINE_LIST -> lower-cased, Oxford comma ("a, b, and c")
    bool  -> "true" / "false"
    number / string -> as is

A placeholder that cannot be resolved stays in the text with escaped
braces (``\\{name\\}``) so the author can see the mistake.

replace_placeholders() is pure and never raises.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from surveytext.conditions import evaluate_condition
from surveytext.expressions import evaluate_expression, is_arithmetic_expression
from surveytext.values import format_number, format_value

logger = logging.getLogger(__name__)

_IF_RE = re.compile(r"^\s*IF\s+")
_PLACEHOLDER_RE = re.compile(r"(?<!\\)\{([^{}]+)\}")
_LIST_SUFFIX_RE = re.compile(r"^(.+?)\s+AS\s+(LIST|INLINE_LIST)$")


def find_matching_braces(text: str, start: int) -> int:
    """
    Find the ``}}`` closing the ``{{`` that begins at ``start``.

    Nested ``{{...}}`` blocks and single-brace placeholders inside the
    block are skipped over.

    Returns:
        Index of the closing ``}}``, or -1 when it is missing
    """
    depth = 0
    single = 0
    i = start
    while i < len(text):
        if text.startswith("{{", i):
            depth += 1
            i += 2
        elif text.startswith("}}", i) and single == 0:
            depth -= 1
            if depth == 0:
                return i
            i += 2
        elif text[i] == "{":
            single += 1
            i += 1
        elif text[i] == "}" and single > 0:
            single -= 1
            i += 1
        else:
            i += 1
    return -1


def _find_keyword(text: str, keyword: str) -> int:
    """Index of a whole-word keyword at brace depth 0, or -1."""
    depth = 0
    i = 0
    while i < len(text):
        if text.startswith("{{", i):
            depth += 1
            i += 2
            continue
        if text.startswith("}}", i):
            depth -= 1
            i += 2
            continue
        if depth == 0 and text.startswith(keyword, i):
            before_ok = i == 0 or text[i - 1].isspace()
            end = i + len(keyword)
            after_ok = end == len(text) or text[end].isspace()
            if before_ok and after_ok:
                return i
        i += 1
    return -1


def parse_conditional(content: str) -> Optional[Tuple[str, str, str]]:
    """
    Split the inside of a ``{{...}}`` block into its parts.

    Args:
        content: Text between the outer braces

    Returns:
        (condition, then_text, else_text), or None when the block is not
        a well-formed IF ... THEN ... [ELSE ...]
    """
    match = _IF_RE.match(content)
    if not match:
        return None
    rest = content[match.end():]

    then_index = _find_keyword(rest, "THEN")
    if then_index < 0:
        return None
    condition = rest[:then_index].strip()
    if not condition:
        return None

    branches = rest[then_index + len("THEN"):]
    else_index = _find_keyword(branches, "ELSE")
    if else_index < 0:
        return condition, branches.strip(), ""
    return condition, branches[:else_index].strip(), branches[else_index + len("ELSE"):].strip()


def _replace_conditionals(text: str, scope: Dict[str, Any]) -> str:
    # Every pass removes at least one pair of braces, so this ends.
    search_from = 0
    while True:
        start = text.find("{{", search_from)
        if start < 0:
            break
        end = find_matching_braces(text, start)
        if end < 0:
            break

        content = text[start + 2:end]
        parsed = parse_conditional(content)
        if parsed is None:
            # Not a conditional: keep it for the interpolation pass.
            text = text[:start] + "{" + content + "}" + text[end + 2:]
            search_from = start + 1
            continue

        condition, then_text, else_text = parsed
        chosen = then_text if evaluate_condition(condition, scope) else else_text
        text = text[:start] + chosen + text[end + 2:]
        search_from = start
    return text


def format_list(items: List[Any]) -> str:
    """Markdown bullet list for a multi-select answer."""
    if not items:
        return "none"
    if len(items) == 1:
        return format_value(items[0])
    return "\n" + "\n".join(f"- {format_value(item)}" for item in items) + "\n\n"


def format_inline_list(items: List[Any]) -> str:
    """Lower-cased inline list with an Oxford comma."""
    words = [format_value(item).lower() for item in items]
    if not words:
        return "none"
    if len(words) == 1:
        return words[0]
    if len(words) == 2:
        return f"{words[0]} and {words[1]}"
    return ", ".join(words[:-1]) + ", and " + words[-1]


def _render(value: Any, style: Optional[str]) -> str:
    if isinstance(value, dict):
        value = [f"{key}: {format_value(cell)}" for key, cell in value.items()]
    if isinstance(value, (list, tuple)):
        if style == "INLINE_LIST":
            return format_inline_list(list(value))
        return format_list(list(value))
    return format_value(value)


def _interpolate(match: "re.Match[str]", scope: Dict[str, Any]) -> str:
    content = match.group(1).strip()

    style = None
    suffix = _LIST_SUFFIX_RE.match(content)
    if suffix:
        content, style = suffix.group(1).strip(), suffix.group(2)

    if content in scope:
        return _render(scope[content], style)

    if is_arithmetic_expression(content):
        return format_number(evaluate_expression(content, scope))

    logger.debug("Unresolved placeholder: {%s}", match.group(1))
    return "\\{" + match.group(1) + "\\}"


def replace_placeholders(
    text: Optional[str],
    variables: Mapping[str, Any],
    computed: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Resolve conditional text and placeholders.

    Args:
        text: Source text (None is treated as "")
        variables: Answer variables by name
        computed: Resolved computed variables (take precedence on collision)

    Returns:
        The rendered text
    """
    if not text:
        return ""

    scope: Dict[str, Any] = dict(variables)
    if computed:
        scope.update(computed)

    text = _replace_conditionals(text, scope)
    return _PLACEHOLDER_RE.sub(lambda m: _interpolate(m, scope), text)


__all__ = [
    "find_matching_braces",
    "parse_conditional",
    "format_list",
    "format_inline_list",
    "replace_placeholders",
]
