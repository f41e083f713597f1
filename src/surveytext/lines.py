"""
Line Classifier

Turns one raw source line into a ClassifiedLine, given the parser's
current context. The same text can mean different things depending on
where it appears: ``- Yes`` is an option inside a question and a plain
markdown bullet outside one; ``- SHOW_IF: x`` targets the current matrix
row or the current option.

Rules are tried in priority order:
    1. Page marker         "#" or "# title"
    2. Block marker        "BLOCK: name"
    3. Section marker      "##" or "## title"
    4. Question marker     "Q: text" or "Q7: text"
    5. Keyword lines       COMPUTE:, NAVIGATION:, LEVEL:, SHOW_IF:,
                           TOOLTIP:, VARIABLE:, HINT:, PREFIX:, SUFFIX:,
                           TOTAL:, SUBTOTAL:, RANGE:, type keywords
    6. Dash lines          option, matrix row, row modifier, row
                           header / separator / subtotal
    7. Free text

Keywords that only make sense inside a question (type keywords,
VARIABLE:, HINT:, PREFIX:, ...) are free text when no question is open.

Values are validated here, so malformed RANGE:, COLUMN:, COMPUTE: and
NAVIGATION: lines fail as soon as they are read.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class LineParseError(ValueError):
    """Raised for a line whose keyword value is malformed."""
    pass


class LineKind(Enum):
    """Tagged kinds of source lines."""

    BLANK = "blank"
    PAGE = "page"
    BLOCK = "block"
    SECTION = "section"
    QUESTION = "question"
    NAVIGATION = "navigation"
    COMPUTE = "compute"
    SHOW_IF = "show_if"
    TOOLTIP = "tooltip"
    HINT = "hint"
    VARIABLE = "variable"
    INPUT_TYPE = "input_type"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    TOTAL = "total"
    SUBTOTAL = "subtotal"
    RANGE = "range"
    OPTION = "option"
    MATRIX_ROW = "matrix_row"
    ROW_MODIFIER = "row_modifier"
    ROW_HEADER = "row_header"
    ROW_SEPARATOR = "row_separator"
    ROW_SUBTOTAL = "row_subtotal"
    TEXT = "text"


class ParseContext(Enum):
    """
    Where the parser currently is.

    CONTENT      no question open
    QUESTION     a question is open, no row selected
    OPTION       the last line created or modified an option
    SUBQUESTION  the last line created or modified a matrix row
    """

    CONTENT = "content"
    QUESTION = "question"
    OPTION = "option"
    SUBQUESTION = "subquestion"


INPUT_TYPE_KEYWORDS = ("TEXT", "ESSAY", "NUMBER", "CHECKBOX", "BREAKDOWN")

# Dash-line keywords that modify the current row rather than create one.
ROW_MODIFIERS = (
    "SHOW_IF",
    "VARIABLE",
    "SUBTRACT",
    "VALUE",
    "COLUMN",
    "EXCLUDE",
    "PREFIX",
    "SUFFIX",
    "CUSTOM",
    "TEXT",
    "HINT",
    "TOOLTIP",
)

_FLAG_MODIFIERS = ("SUBTRACT", "EXCLUDE", "TEXT")

_QUESTION_RE = re.compile(r"^Q\d*:\s*(.*)$")
_DASH_RE = re.compile(r"^-\s*(.*)$")
_KEYWORD_RE = re.compile(r"^([A-Z_]+):\s*(.*)$")
_RANGE_RE = re.compile(r"^(-?\d+)-(-?\d+)$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_QUESTION_KEYWORDS = {
    "VARIABLE": LineKind.VARIABLE,
    "HINT": LineKind.HINT,
    "PREFIX": LineKind.PREFIX,
    "SUFFIX": LineKind.SUFFIX,
    "TOTAL": LineKind.TOTAL,
    "SUBTOTAL": LineKind.SUBTOTAL,
    "RANGE": LineKind.RANGE,
}


@dataclass
class ClassifiedLine:
    """
    A source line with its kind and extracted value.

    Properties:
        kind: LineKind tag
        value: Keyword value, option label or text (stripped)
        raw: Original line, unmodified
        line_number: 1-based source line number
        keyword: Row modifier keyword for ROW_MODIFIER lines
        indent: Width of leading whitespace (tab counts as 2)
    """

    kind: LineKind
    value: str
    raw: str
    line_number: int = 0
    keyword: Optional[str] = None
    indent: int = 0


def indentation(line: str) -> int:
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += 2
        else:
            break
    return width


def is_page_marker(stripped: str) -> bool:
    return stripped == "#" or stripped.startswith("# ")


def is_section_marker(stripped: str) -> bool:
    return stripped == "##" or stripped.startswith("## ")


def is_question_marker(stripped: str) -> bool:
    return bool(_QUESTION_RE.match(stripped))


def parse_range(value: str) -> Tuple[int, int]:
    """
    Parse a RANGE value such as "1-10" or "-5-5".

    Raises:
        LineParseError: If the syntax is wrong or start > end
    """
    match = _RANGE_RE.match(value.strip())
    if not match:
        raise LineParseError(
            f'Invalid RANGE syntax: "{value}". Expected format: RANGE: start-end (e.g., RANGE: 1-10)'
        )
    start, end = int(match.group(1)), int(match.group(2))
    if start > end:
        raise LineParseError(
            f"Invalid RANGE: start ({start}) must be less than or equal to end ({end})"
        )
    return start, end


def parse_column(value: str) -> int:
    """Parse a COLUMN value (a positive integer)."""
    text = value.strip()
    if not text.isdigit() or int(text) < 1:
        raise LineParseError(f'Invalid COLUMN syntax: "{value}". Expected a positive number')
    return int(text)


def parse_compute(value: str) -> Tuple[str, str]:
    """
    Parse ``name = expression`` (split on the first ``=``).

    Returns:
        (name, expression)
    """
    name, sep, expression = value.partition("=")
    name, expression = name.strip(), expression.strip()
    if not sep or not _IDENTIFIER_RE.match(name) or not expression:
        raise LineParseError(
            f'Invalid COMPUTE syntax: "{value}". Expected format: COMPUTE: variableName = expression'
        )
    return name, expression


def parse_navigation_level(value: str, keyword: str = "NAVIGATION") -> int:
    """Parse a navigation level (1 or 2)."""
    text = value.strip()
    if text not in ("1", "2"):
        raise LineParseError(f'Invalid {keyword} level: "{value}". Expected 1 or 2')
    return int(text)


def _classify_dash(content: str, context: ParseContext) -> Tuple[LineKind, str, Optional[str]]:
    """Classify the text after a leading dash inside a question."""
    question = _QUESTION_RE.match(content)
    if question:
        return LineKind.MATRIX_ROW, question.group(1).strip(), None

    if content == "SEPARATOR":
        return LineKind.ROW_SEPARATOR, "", None

    keyword = _KEYWORD_RE.match(content)
    if keyword:
        name, value = keyword.group(1), keyword.group(2).strip()
        if name == "HEADER":
            return LineKind.ROW_HEADER, value, None
        if name == "SUBTOTAL":
            return LineKind.ROW_SUBTOTAL, value, None
        if name in ROW_MODIFIERS and context in (ParseContext.OPTION, ParseContext.SUBQUESTION):
            return LineKind.ROW_MODIFIER, value, name

    if content in _FLAG_MODIFIERS and context in (ParseContext.OPTION, ParseContext.SUBQUESTION):
        return LineKind.ROW_MODIFIER, "", content

    return LineKind.OPTION, content, None


def classify_line(line: str, context: ParseContext, line_number: int = 0) -> ClassifiedLine:
    """
    Classify one raw line.

    Args:
        line: Raw source line (without newline)
        context: Current parse context
        line_number: 1-based line number, recorded on the result

    Returns:
        ClassifiedLine

    Raises:
        LineParseError: For malformed RANGE:, COLUMN:, COMPUTE:,
            NAVIGATION: or LEVEL: values
    """
    stripped = line.strip()
    indent = indentation(line)

    def result(kind: LineKind, value: str = "", keyword: Optional[str] = None) -> ClassifiedLine:
        return ClassifiedLine(kind, value, line, line_number, keyword, indent)

    if not stripped:
        return result(LineKind.BLANK)

    if is_page_marker(stripped):
        return result(LineKind.PAGE, stripped[1:].strip())
    if stripped.startswith("BLOCK:"):
        return result(LineKind.BLOCK, stripped[len("BLOCK:"):].strip())
    if is_section_marker(stripped):
        return result(LineKind.SECTION, stripped[2:].strip())

    question = _QUESTION_RE.match(stripped)
    if question:
        return result(LineKind.QUESTION, question.group(1).strip())

    in_question = context != ParseContext.CONTENT

    keyword = _KEYWORD_RE.match(stripped)
    if keyword:
        name, value = keyword.group(1), keyword.group(2).strip()
        if name == "COMPUTE":
            parse_compute(value)
            return result(LineKind.COMPUTE, value)
        if name in ("NAVIGATION", "LEVEL"):
            parse_navigation_level(value, name)
            return result(LineKind.NAVIGATION, value, name)
        if name == "SHOW_IF":
            return result(LineKind.SHOW_IF, value)
        if name == "TOOLTIP":
            return result(LineKind.TOOLTIP, value)
        if in_question and name in _QUESTION_KEYWORDS:
            if name == "RANGE":
                parse_range(value)
            return result(_QUESTION_KEYWORDS[name], value)

    if in_question and stripped in INPUT_TYPE_KEYWORDS:
        return result(LineKind.INPUT_TYPE, stripped)

    dash = _DASH_RE.match(stripped)
    if dash and in_question:
        kind, value, modifier = _classify_dash(dash.group(1).strip(), context)
        if kind == LineKind.ROW_MODIFIER and modifier == "COLUMN":
            parse_column(value)
        return result(kind, value, modifier)

    return result(LineKind.TEXT, stripped)


__all__ = [
    "LineParseError",
    "LineKind",
    "ParseContext",
    "ClassifiedLine",
    "INPUT_TYPE_KEYWORDS",
    "ROW_MODIFIERS",
    "indentation",
    "is_page_marker",
    "is_section_marker",
    "is_question_marker",
    "parse_range",
    "parse_column",
    "parse_compute",
    "parse_navigation_level",
    "classify_line",
]
