"""
Survey Parser (Source Format -> Document Model).

Compiles the line-oriented questionnaire format into a Survey tree.

Source Format (abridged):
    BLOCK: name               start a block
    # title                   start a page ("#" alone: untitled page)
    NAVIGATION: 1             make this page a navigation entry (1 or 2)
    ## title                  start a section
    Q: text                   start a question (ids Q1, Q2, ... document-wide)
    TEXT | ESSAY | NUMBER | CHECKBOX | BREAKDOWN
    - option                  option row
    - Q: row                  matrix row
      - SHOW_IF: cond         per-row modifier (VARIABLE, VALUE, COLUMN, ...)
    RANGE: 1-10               numeric options
    VARIABLE: / SHOW_IF: / HINT: / TOOLTIP: / PREFIX: / SUFFIX: / TOTAL:
    COMPUTE: name = expr      computed variable (page, else block)
    HINT: \"\"\"              multi-line value until the closing \"\"\"

Anything else is free markdown text.

ARCHITECTURAL RULE:
    The parser is a single pass over the lines with an explicit cursor
    (ParserState). Every structural boundary is a flush: the current
    question, text, section, page and block are appended to their parent
    in that order, and only then is the new container opened.

Question type is decided when the question starts, by looking ahead
(determine_question_type). Later keywords can only add modifiers that
fit that type; anything else is ignored with a UserWarning.
"""

import os
import re
import textwrap
import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from surveytext.lines import (
    ClassifiedLine,
    LineKind,
    LineParseError,
    ParseContext,
    classify_line,
    is_question_marker,
    parse_column,
    parse_compute,
    parse_navigation_level,
    parse_range,
)
from surveytext.model import (
    Block,
    BreakdownQuestion,
    ComputedVariable,
    MatrixQuestion,
    NavItem,
    NumberQuestion,
    Option,
    Page,
    Question,
    QuestionType,
    Section,
    Subquestion,
    Survey,
    TextItem,
    create_question,
)
from surveytext.validation import validate_survey

TRIPLE_QUOTE = '"""'
CODE_FENCE = "```"

TYPE_KEYWORDS = {
    "TEXT": QuestionType.TEXT,
    "ESSAY": QuestionType.ESSAY,
    "NUMBER": QuestionType.NUMBER,
    "CHECKBOX": QuestionType.CHECKBOX,
    "BREAKDOWN": QuestionType.BREAKDOWN,
}

MATRIX_INPUT_TYPES = ("CHECKBOX", "TEXT", "ESSAY")

_MATRIX_ROW_RE = re.compile(r"^-\s*Q\d*:")
_OPENS_QUOTE_RE = re.compile(r'^(?:-\s*)?[A-Z_]+:\s*"""')
_STOP_PREFIXES = ("#", "COMPUTE:", "BLOCK:")


class SurveyParseError(Exception):
    """Raised when the source text cannot be compiled."""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.reason = message
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)


@dataclass
class _Capture:
    """An open triple-quoted value."""

    assign: Callable[[str], None]
    join: str
    line_number: int
    lines: List[str] = field(default_factory=list)

    def finish(self) -> None:
        text = textwrap.dedent("\n".join(self.lines)).strip("\n")
        if self.join == " ":
            text = " ".join(part.strip() for part in text.split("\n") if part.strip())
        self.assign(text.rstrip())


@dataclass
class ParserState:
    """
    Explicit parse cursor.

    Containers (block, page, section, question) are "open" while they
    are referenced here and become part of the tree when flushed.
    """

    lines: List[str]
    blocks: List[Block] = field(default_factory=list)
    nav_items: List[NavItem] = field(default_factory=list)
    block: Block = field(default_factory=Block)
    block_is_implicit: bool = True
    page: Optional[Page] = None
    section: Optional[Section] = None
    question: Optional[Question] = None
    subquestion: Optional[Subquestion] = None
    option: Optional[Option] = None
    row_context: Optional[ParseContext] = None
    nav_item: Optional[NavItem] = None
    nav_page: Optional[Page] = None
    text_lines: List[str] = field(default_factory=list)
    question_counter: int = 0
    question_text_open: bool = False
    capture: Optional[_Capture] = None
    in_code_fence: bool = False

    @property
    def context(self) -> ParseContext:
        if self.question is None:
            return ParseContext.CONTENT
        return self.row_context or ParseContext.QUESTION


# =========================================================================
# LOOKAHEAD
# =========================================================================

def _opens_quote(stripped: str) -> bool:
    return bool(_OPENS_QUOTE_RE.match(stripped)) and stripped.count(TRIPLE_QUOTE) == 1


def determine_question_type(lines: List[str], start: int) -> QuestionType:
    """
    Decide a question's type from the lines that follow it.

    Scans from ``start`` until the next question, page, section, block or
    COMPUTE line and collects every signal before deciding:

        1. BREAKDOWN anywhere makes a breakdown question
        2. any "- Q:" row makes a matrix (TEXT/ESSAY/CHECKBOX become
           its input type)
        3. TEXT, ESSAY, NUMBER in that order
        4. CHECKBOX, when options or a RANGE are present

    Triple-quoted values and code fences are skipped.

    Args:
        lines: All source lines
        start: Index of the first line after the question marker

    Returns:
        QuestionType (MULTIPLE_CHOICE when there is no signal)
    """
    keywords = set()
    has_rows = False
    has_options = False
    in_quote = False
    in_fence = False
    for line in lines[start:]:
        stripped = line.strip()
        if in_quote:
            if stripped.endswith(TRIPLE_QUOTE):
                in_quote = False
            continue
        if stripped.startswith(CODE_FENCE):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        if is_question_marker(stripped) or stripped.startswith(_STOP_PREFIXES):
            break
        if _opens_quote(stripped):
            in_quote = True
            continue
        if stripped in TYPE_KEYWORDS:
            keywords.add(stripped)
        elif _MATRIX_ROW_RE.match(stripped):
            has_rows = True
        elif stripped.startswith("-") or stripped.startswith("RANGE:"):
            has_options = True

    if "BREAKDOWN" in keywords:
        return QuestionType.BREAKDOWN
    if has_rows:
        return QuestionType.MATRIX
    for keyword in ("TEXT", "ESSAY", "NUMBER"):
        if keyword in keywords:
            return TYPE_KEYWORDS[keyword]
    if "CHECKBOX" in keywords and has_options:
        return QuestionType.CHECKBOX
    return QuestionType.MULTIPLE_CHOICE


# =========================================================================
# FLUSHING
# =========================================================================

def _ensure_page(state: ParserState) -> Page:
    if state.page is None:
        state.page = Page()
    return state.page


def _ensure_section(state: ParserState) -> Section:
    _ensure_page(state)
    if state.section is None:
        state.section = Section()
    return state.section


def _flush_question(state: ParserState) -> None:
    question = state.question
    if question is None:
        return
    if isinstance(question, BreakdownQuestion):
        columns = [option.column for option in question.choices if option.column]
        question.total_column = max(columns) if columns else None
    _ensure_section(state).items.append(question)
    state.question = None
    state.subquestion = None
    state.option = None
    state.row_context = None
    state.question_text_open = False


def _flush_text(state: ParserState) -> None:
    lines = state.text_lines
    state.text_lines = []
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if lines:
        _ensure_section(state).items.append(TextItem("\n".join(lines)))


def _flush_section(state: ParserState) -> None:
    _flush_question(state)
    _flush_text(state)
    if state.section is not None:
        _ensure_page(state).sections.append(state.section)
        state.section = None


def _flush_page(state: ParserState) -> None:
    _flush_section(state)
    if state.page is not None:
        state.block.pages.append(state.page)
        if state.nav_item is not None:
            state.nav_item.pages.append(state.page)
        state.page = None


def _flush_block(state: ParserState) -> None:
    _flush_page(state)
    block = state.block
    empty = not block.pages and not block.computed_variables and block.show_if is None
    if not (state.block_is_implicit and empty):
        state.blocks.append(block)


# =========================================================================
# VALUES
# =========================================================================

def _assign(state: ParserState, value: str, setter: Callable[[str], None],
            line_number: int, join: str = "\n") -> None:
    """Assign a keyword value, opening a triple-quoted capture if needed."""
    if value.startswith(TRIPLE_QUOTE):
        rest = value[len(TRIPLE_QUOTE):]
        if rest.endswith(TRIPLE_QUOTE):
            setter(rest[:-len(TRIPLE_QUOTE)].strip())
            return
        state.capture = _Capture(setter, join, line_number)
        if rest.strip():
            state.capture.lines.append(rest.strip())
        return
    setter(value)


def _warn(line: ClassifiedLine, message: str) -> None:
    warnings.warn(f"Line {line.line_number}: {message}", UserWarning)


# =========================================================================
# HANDLERS
# =========================================================================

def _handle_blank(state: ParserState, line: ClassifiedLine) -> None:
    if state.question is None and state.text_lines:
        state.text_lines.append("")


def _handle_text(state: ParserState, raw: str) -> None:
    if state.question is not None:
        if state.question_text_open and not state.in_code_fence:
            state.question.text += "\n" + raw.strip()
            return
        _flush_question(state)
    state.text_lines.append(raw.rstrip())


def _handle_page(state: ParserState, line: ClassifiedLine) -> None:
    _flush_page(state)
    state.page = Page(title=line.value)


def _handle_block(state: ParserState, line: ClassifiedLine) -> None:
    _flush_block(state)
    state.block = Block(name=line.value)
    state.block_is_implicit = False


def _handle_section(state: ParserState, line: ClassifiedLine) -> None:
    _flush_section(state)
    _ensure_page(state)
    state.section = Section(title=line.value)


def _handle_question(state: ParserState, line: ClassifiedLine) -> None:
    _flush_question(state)
    _flush_text(state)
    _ensure_section(state)
    state.question_counter += 1
    question_type = determine_question_type(state.lines, line.line_number)
    state.question = create_question(f"Q{state.question_counter}", line.value, question_type)
    state.question_text_open = True


def _handle_navigation(state: ParserState, line: ClassifiedLine) -> None:
    level = parse_navigation_level(line.value, line.keyword or "NAVIGATION")
    page = _ensure_page(state)
    if state.nav_item is not None and state.nav_page is page:
        state.nav_item.level = level
        return
    state.nav_item = NavItem(name=page.title, level=level)
    state.nav_items.append(state.nav_item)
    state.nav_page = page


def _handle_compute(state: ParserState, line: ClassifiedLine) -> None:
    _flush_question(state)
    _flush_text(state)
    name, expression = parse_compute(line.value)
    target = state.page if state.page is not None else state.block
    target.computed_variables.append(ComputedVariable(name=name, expression=expression))


def _handle_show_if(state: ParserState, line: ClassifiedLine) -> None:
    if state.question is not None:
        target = state.question
    elif state.section is not None and state.section.title is not None:
        target = state.section
    elif state.page is not None:
        target = state.page
    else:
        target = state.block
    _assign(state, line.value, lambda v: setattr(target, "show_if", v), line.line_number, join=" ")


def _handle_tooltip(state: ParserState, line: ClassifiedLine) -> None:
    if state.question is not None:
        target = state.question
    else:
        section = state.section
        if section is not None and (section.title is not None or section.items or state.text_lines):
            _flush_text(state)
            target = section
        else:
            target = _ensure_page(state)
    _assign(state, line.value, lambda v: setattr(target, "tooltip", v), line.line_number)


def _handle_hint(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    _assign(state, line.value, lambda v: setattr(question, "hint", v), line.line_number)


def _handle_variable(state: ParserState, line: ClassifiedLine) -> None:
    state.question.variable = line.value


def _handle_unit(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if not isinstance(question, (NumberQuestion, BreakdownQuestion)):
        _warn(line, f"{line.kind.name} ignored: question {question.id} is {question.type.value}")
        return
    setattr(question, line.kind.value, line.value)


def _handle_total(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if not isinstance(question, BreakdownQuestion):
        _warn(line, f"TOTAL ignored: question {question.id} is {question.type.value}")
        return
    question.total_label = line.value


def _handle_subtotal(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if isinstance(question, MatrixQuestion) and question.subquestions:
        question.subquestions[-1].subtotal_label = line.value
        return
    if isinstance(question, BreakdownQuestion):
        option = Option(value=line.value, label=line.value, subtotal_label=line.value)
        _add_option(state, option)
        return
    _warn(line, f"SUBTOTAL ignored: question {question.id} is {question.type.value}")


def _handle_range(state: ParserState, line: ClassifiedLine) -> None:
    start, end = parse_range(line.value)
    question = state.question
    if not question.has_options:
        _warn(line, f"RANGE ignored: question {question.id} is {question.type.value}")
        return
    for number in range(start, end + 1):
        _add_option(state, Option(value=str(number), label=str(number)))


def _handle_input_type(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    keyword = line.value
    if question.type == TYPE_KEYWORDS[keyword]:
        return
    if isinstance(question, MatrixQuestion) and keyword in MATRIX_INPUT_TYPES:
        question.input_type = keyword.lower()
        return
    _warn(line, f"{keyword} ignored: question {question.id} is already {question.type.value}")


def _add_option(state: ParserState, option: Option) -> None:
    state.question.options.append(option)
    state.option = option
    state.row_context = ParseContext.OPTION


def _handle_option(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if not question.has_options:
        _warn(line, f"Option '{line.value}' ignored: question {question.id} is {question.type.value}")
        return
    _add_option(state, Option(value=line.value, label=line.value))


def _handle_matrix_row(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if not isinstance(question, MatrixQuestion):
        _warn(line, f"Matrix row ignored: question {question.id} is {question.type.value}")
        return
    number = len(question.subquestions) + 1
    subquestion = Subquestion(id=f"{question.id}_{number}", text=line.value)
    question.subquestions.append(subquestion)
    state.subquestion = subquestion
    state.row_context = ParseContext.SUBQUESTION


def _handle_row_header(state: ParserState, line: ClassifiedLine) -> None:
    if not isinstance(state.question, BreakdownQuestion):
        _warn(line, f"HEADER ignored: question {state.question.id} is not a breakdown")
        return
    _add_option(state, Option(value=line.value, label=line.value, header=True))


def _handle_row_separator(state: ParserState, line: ClassifiedLine) -> None:
    question = state.question
    if not isinstance(question, BreakdownQuestion):
        _warn(line, f"SEPARATOR ignored: question {question.id} is not a breakdown")
        return
    index = len(question.choices)
    _add_option(state, Option(value=f"separator-{index}", label="", separator=True))


def _modify_subquestion(state: ParserState, line: ClassifiedLine) -> None:
    subquestion = state.subquestion
    keyword, value = line.keyword, line.value
    if keyword == "SHOW_IF":
        _assign(state, value, lambda v: setattr(subquestion, "show_if", v), line.line_number, join=" ")
    elif keyword == "VARIABLE":
        subquestion.variable = value
    elif keyword == "SUBTRACT":
        subquestion.subtract = True
    elif keyword == "VALUE":
        subquestion.value = value
    elif keyword in ("HINT", "TOOLTIP"):
        attr = keyword.lower()
        _assign(state, value, lambda v: setattr(subquestion, attr, v), line.line_number)
    else:
        _warn(line, f"{keyword} does not apply to matrix row {subquestion.id}")


_BREAKDOWN_ONLY = ("VARIABLE", "SUBTRACT", "VALUE", "COLUMN", "EXCLUDE", "PREFIX", "SUFFIX", "CUSTOM")


def _modify_option(state: ParserState, line: ClassifiedLine) -> None:
    option = state.option
    keyword, value = line.keyword, line.value
    if keyword == "SHOW_IF":
        _assign(state, value, lambda v: setattr(option, "show_if", v), line.line_number, join=" ")
        return
    if keyword == "TEXT":
        option.allows_other_text = True
        return
    if keyword in ("HINT", "TOOLTIP"):
        attr = keyword.lower()
        _assign(state, value, lambda v: setattr(option, attr, v), line.line_number)
        return

    if not isinstance(state.question, BreakdownQuestion):
        _warn(line, f"{keyword} only applies to breakdown rows (question {state.question.id})")
        return

    if keyword == "VARIABLE":
        option.variable = value
    elif keyword == "SUBTRACT":
        option.subtract = True
    elif keyword == "EXCLUDE":
        option.exclude = True
    elif keyword == "VALUE":
        option.prefill_value = value
    elif keyword == "COLUMN":
        option.column = parse_column(value)
    elif keyword == "PREFIX":
        option.prefix = value
    elif keyword == "SUFFIX":
        option.suffix = value
    elif keyword == "CUSTOM":
        option.custom = value


def _handle_row_modifier(state: ParserState, line: ClassifiedLine) -> None:
    if state.row_context == ParseContext.SUBQUESTION and state.subquestion is not None:
        _modify_subquestion(state, line)
    elif state.option is not None:
        _modify_option(state, line)
    else:
        _warn(line, f"{line.keyword} has no row to modify")


_HANDLERS = {
    LineKind.BLANK: _handle_blank,
    LineKind.PAGE: _handle_page,
    LineKind.BLOCK: _handle_block,
    LineKind.SECTION: _handle_section,
    LineKind.QUESTION: _handle_question,
    LineKind.NAVIGATION: _handle_navigation,
    LineKind.COMPUTE: _handle_compute,
    LineKind.SHOW_IF: _handle_show_if,
    LineKind.TOOLTIP: _handle_tooltip,
    LineKind.HINT: _handle_hint,
    LineKind.VARIABLE: _handle_variable,
    LineKind.INPUT_TYPE: _handle_input_type,
    LineKind.PREFIX: _handle_unit,
    LineKind.SUFFIX: _handle_unit,
    LineKind.TOTAL: _handle_total,
    LineKind.SUBTOTAL: _handle_subtotal,
    LineKind.RANGE: _handle_range,
    LineKind.OPTION: _handle_option,
    LineKind.MATRIX_ROW: _handle_matrix_row,
    LineKind.ROW_MODIFIER: _handle_row_modifier,
    LineKind.ROW_HEADER: _handle_row_header,
    LineKind.ROW_SEPARATOR: _handle_row_separator,
    LineKind.ROW_SUBTOTAL: _handle_subtotal,
}


# =========================================================================
# DRIVER
# =========================================================================

def _process_line(state: ParserState, index: int) -> None:
    raw = state.lines[index]
    stripped = raw.strip()

    if state.capture is not None:
        if stripped.endswith(TRIPLE_QUOTE):
            before = raw.rstrip()[:-len(TRIPLE_QUOTE)]
            if before.strip():
                state.capture.lines.append(before)
            state.capture.finish()
            state.capture = None
        else:
            state.capture.lines.append(raw)
        return

    if stripped.startswith(CODE_FENCE):
        state.in_code_fence = not state.in_code_fence
        _handle_text(state, raw)
        return
    if state.in_code_fence:
        _handle_text(state, raw)
        return

    line = classify_line(raw, state.context, index + 1)
    if line.kind != LineKind.TEXT:
        state.question_text_open = False
    if line.kind == LineKind.TEXT:
        _handle_text(state, raw)
        return
    _HANDLERS[line.kind](state, line)


def _finish(state: ParserState) -> None:
    if state.capture is not None:
        warnings.warn(
            f"Line {state.capture.line_number}: unterminated {TRIPLE_QUOTE} block, "
            f"value runs to the end of the document",
            UserWarning,
        )
        state.capture.finish()
        state.capture = None
    _flush_block(state)


def parse_survey(text: str, name: str = "Survey", validate: bool = True) -> Survey:
    """
    Compile source text into a Survey.

    Args:
        text: Whole document in the Source Format
        name: Name for the survey
        validate: Run the validator on the finished tree

    Returns:
        Survey with blocks, pages, sections, items and navigation

    Raises:
        SurveyParseError: If a RANGE:, COLUMN:, COMPUTE: or NAVIGATION:
            value is malformed
        SurveyValidationError: If validation is on and finds duplicate
            or undefined variables
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    state = ParserState(lines=lines)

    for index, raw in enumerate(lines):
        try:
            _process_line(state, index)
        except LineParseError as e:
            raise SurveyParseError(str(e), index + 1, raw) from e

    _finish(state)
    survey = Survey(name=name, blocks=state.blocks, nav_items=state.nav_items)

    if validate:
        validate_survey(survey)
    return survey


def parse_survey_file(filepath: str, name: Optional[str] = None, validate: bool = True) -> Survey:
    """
    Compile a survey file (UTF-8).

    Args:
        filepath: Path to the source file
        name: Optional survey name (defaults to the file stem)
        validate: Run the validator on the finished tree

    Raises:
        FileNotFoundError: If the file doesn't exist
        SurveyParseError: If parsing fails
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        raise FileNotFoundError(f"Survey file not found: {filepath}")

    if name is None:
        name = os.path.splitext(os.path.basename(filepath))[0]

    return parse_survey(content, name=name, validate=validate)


__all__ = [
    "SurveyParseError",
    "ParserState",
    "determine_question_type",
    "parse_survey",
    "parse_survey_file",
]
