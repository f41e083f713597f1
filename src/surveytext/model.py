"""
Core Document Model Objects

Defines the data structures produced by the survey compiler.

The document is a strict hierarchy:
    - Survey (root container, plus the flat navigation list)
    - Blocks (top-level groupings, optionally conditional)
    - Pages (navigable screens)
    - Sections (mid-page groupings)
    - Items (TextItem or Question)

Questions are a tagged union. The QuestionType tag and the concrete
subclass always agree:
    - ChoiceQuestion    multiple_choice, checkbox
    - TextQuestion      text, essay
    - NumberQuestion    number
    - MatrixQuestion    matrix
    - BreakdownQuestion breakdown

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering or respondent state
        - Are built once per parse and never touched afterwards
        - Are fully serializable
        - Keep conditions and expressions as the author wrote them
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union


class QuestionType(Enum):
    """
    Question variants understood by the compiler.

    The type is fixed when the question is created (by lookahead over
    the lines that follow the question marker).
    """

    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    TEXT = "text"
    ESSAY = "essay"
    NUMBER = "number"
    MATRIX = "matrix"
    BREAKDOWN = "breakdown"


@dataclass
class Option:
    """
    A single choice row.

    For multiple choice and checkbox questions this is an answer option.
    For matrix questions it is a shared column. For breakdown questions it
    is a numeric input row (or a structural row: header, separator, subtotal).

    Properties:
        value: Stored answer value
        label: Displayed label (identical to value for authored options)
        show_if: Condition gating visibility of this row
        allows_other_text: Row accepts a free-text "other" answer
        subtract: Breakdown row is subtracted from the total
        exclude: Breakdown row is left out of the total
        header: Breakdown row is a heading, not an input
        separator: Breakdown row is a visual separator
        subtotal_label: Breakdown row is a subtotal with this label
        custom: Custom calculation expression for the row
        column: Breakdown column (1-based)
        prefix / suffix: Unit markers shown around the row input
        prefill_value: Expression used to prefill the row
        variable: Variable name bound to the row value
        hint / tooltip: Supplementary text
    """

    value: str
    label: str
    show_if: Optional[str] = None
    allows_other_text: Optional[bool] = None
    subtract: Optional[bool] = None
    exclude: Optional[bool] = None
    header: Optional[bool] = None
    separator: Optional[bool] = None
    subtotal_label: Optional[str] = None
    custom: Optional[str] = None
    column: Optional[int] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    prefill_value: Optional[str] = None
    variable: Optional[str] = None
    hint: Optional[str] = None
    tooltip: Optional[str] = None

    @property
    def is_structural(self) -> bool:
        """True for header, separator and subtotal rows (never summed)."""
        return bool(self.header or self.separator or self.subtotal_label)


@dataclass
class Subquestion:
    """
    One row of a matrix question.

    IDs are derived as ``<question id>_<row number>`` (1-based) and are
    never written by the author.
    """

    id: str
    text: str
    variable: Optional[str] = None
    show_if: Optional[str] = None
    subtract: Optional[bool] = None
    value: Optional[str] = None
    subtotal_label: Optional[str] = None
    hint: Optional[str] = None
    tooltip: Optional[str] = None


@dataclass
class Question:
    """
    Base question contract shared by every variant.

    Properties:
        id:
            Generated identifier ``Q<n>``. The counter runs across the
            whole document, so ids are unique and increase in source order.

        text:
            Question text (markdown, may contain placeholders)

        type:
            QuestionType tag, always consistent with the subclass

        variable:
            Optional variable name exposing the answer to conditions

        show_if:
            Optional condition gating visibility

        hint / tooltip:
            Supplementary text
    """

    id: str
    text: str
    type: QuestionType
    variable: Optional[str] = None
    show_if: Optional[str] = None
    hint: Optional[str] = None
    tooltip: Optional[str] = None

    @property
    def options(self) -> List[Option]:
        """Variants without options expose an empty list."""
        return []

    @property
    def has_options(self) -> bool:
        return False


@dataclass
class ChoiceQuestion(Question):
    """Multiple choice (single answer) or checkbox (many answers)."""

    choices: List[Option] = field(default_factory=list)

    @property
    def options(self) -> List[Option]:
        return self.choices

    @property
    def has_options(self) -> bool:
        return True


@dataclass
class TextQuestion(Question):
    """Short text or long-form essay answer."""

    pass


@dataclass
class NumberQuestion(Question):
    """Single numeric answer with optional unit markers."""

    prefix: Optional[str] = None
    suffix: Optional[str] = None


@dataclass
class MatrixQuestion(Question):
    """
    Grid of subquestion rows sharing one set of options.

    input_type is None for the default radio grid, or one of
    "checkbox", "text", "essay".
    """

    subquestions: List[Subquestion] = field(default_factory=list)
    choices: List[Option] = field(default_factory=list)
    input_type: Optional[str] = None

    @property
    def options(self) -> List[Option]:
        return self.choices

    @property
    def has_options(self) -> bool:
        return True


@dataclass
class BreakdownQuestion(Question):
    """
    Numeric rows summed into a total.

    total_column is the highest COLUMN used by any row, or None when the
    rows are laid out in a single column.
    """

    choices: List[Option] = field(default_factory=list)
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    total_label: Optional[str] = None
    total_column: Optional[int] = None

    @property
    def options(self) -> List[Option]:
        return self.choices

    @property
    def has_options(self) -> bool:
        return True


QUESTION_CLASSES = {
    QuestionType.MULTIPLE_CHOICE: ChoiceQuestion,
    QuestionType.CHECKBOX: ChoiceQuestion,
    QuestionType.TEXT: TextQuestion,
    QuestionType.ESSAY: TextQuestion,
    QuestionType.NUMBER: NumberQuestion,
    QuestionType.MATRIX: MatrixQuestion,
    QuestionType.BREAKDOWN: BreakdownQuestion,
}


def create_question(question_id: str, text: str, question_type: QuestionType) -> Question:
    """
    Build an empty question of the class matching its type tag.

    Args:
        question_id: Generated id (``Q<n>``)
        text: Question text
        question_type: Variant tag

    Returns:
        A Question subclass instance
    """
    cls = QUESTION_CLASSES[question_type]
    return cls(id=question_id, text=text, type=question_type)


@dataclass
class TextItem:
    """Opaque markdown text between questions."""

    value: str


Item = Union[TextItem, Question]


@dataclass
class Section:
    """
    Mid-page grouping of items.

    The title is None for the implicit section that collects content
    appearing before any ``##`` marker on a page.
    """

    title: Optional[str] = None
    tooltip: Optional[str] = None
    show_if: Optional[str] = None
    items: List[Item] = field(default_factory=list)

    @property
    def questions(self) -> List[Question]:
        return [item for item in self.items if isinstance(item, Question)]


@dataclass
class ComputedVariable:
    """
    A value derived from other variables.

    The expression is kept as written (e.g. ``rent + food`` or
    ``age >= 18 AND member IS Yes``). Values are produced at evaluation
    time by the computed-variable resolver and never stored here.
    """

    name: str
    expression: str


@dataclass
class Page:
    """A navigable screen. The title is empty for an implicit page."""

    title: str = ""
    show_if: Optional[str] = None
    tooltip: Optional[str] = None
    computed_variables: List[ComputedVariable] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)

    @property
    def questions(self) -> List[Question]:
        return [q for section in self.sections for q in section.questions]


@dataclass
class Block:
    """
    Top-level grouping of pages.

    The implicit default block has the empty name and collects pages that
    appear before the first ``BLOCK:`` marker.
    """

    name: str = ""
    show_if: Optional[str] = None
    computed_variables: List[ComputedVariable] = field(default_factory=list)
    pages: List[Page] = field(default_factory=list)


@dataclass
class NavItem:
    """
    Respondent-facing navigation entry.

    Properties:
        name: Entry label (the title of the page that opened it)
        level: 1 for top-level entries, 2 for nested ones
        pages: Pages reachable through this entry, in source order
    """

    name: str
    level: int = 1
    pages: List[Page] = field(default_factory=list)


@dataclass
class Survey:
    """
    Root container for a compiled questionnaire.

    Properties:
        name:
            Survey identifier (file stem or caller supplied)

        blocks:
            Ordered blocks, each holding its pages

        nav_items:
            Flat navigation list (level-2 entries follow their parent)

    INVARIANTS:
        - Question ids are unique across all blocks
        - Variable names are unique (checked by the validator)
    """

    name: str = "Survey"
    blocks: List[Block] = field(default_factory=list)
    nav_items: List[NavItem] = field(default_factory=list)

    def iter_pages(self) -> Iterator[Tuple[Block, Page]]:
        """Yield (block, page) pairs in document order."""
        for block in self.blocks:
            for page in block.pages:
                yield block, page

    def iter_questions(self) -> Iterator[Question]:
        """Yield every question in document order."""
        for _, page in self.iter_pages():
            for section in page.sections:
                yield from section.questions

    def get_question(self, question_id: str) -> Optional[Question]:
        """
        Retrieve a question by id.

        Args:
            question_id: Generated id such as "Q3"

        Returns:
            Question or None if not found
        """
        for question in self.iter_questions():
            if question.id == question_id:
                return question
        return None

    def get_block(self, block_name: str) -> Optional[Block]:
        for block in self.blocks:
            if block.name == block_name:
                return block
        return None

    def navigation_tree(self) -> List[Tuple[NavItem, List[NavItem]]]:
        """
        Group the flat navigation list into (level-1 item, children) pairs.

        A level-2 item nests under the nearest preceding level-1 item. A
        level-2 item with no preceding level-1 item is kept at the top.
        """
        tree: List[Tuple[NavItem, List[NavItem]]] = []
        for item in self.nav_items:
            if item.level == 2 and tree and tree[-1][0].level == 1:
                tree[-1][1].append(item)
            else:
                tree.append((item, []))
        return tree

    def variable_names(self) -> Dict[str, str]:
        """
        Map every declared variable name to the kind that declares it.

        Kinds: "question", "subquestion", "option", "computed". When a
        name is declared twice the first declaration wins here; duplicate
        detection is the validator's job.
        """
        names: Dict[str, str] = {}
        for block in self.blocks:
            for computed in block.computed_variables:
                names.setdefault(computed.name, "computed")
            for page in block.pages:
                for computed in page.computed_variables:
                    names.setdefault(computed.name, "computed")
                for section in page.sections:
                    for question in section.questions:
                        if question.variable:
                            names.setdefault(question.variable, "question")
                        for sub in getattr(question, "subquestions", []):
                            if sub.variable:
                                names.setdefault(sub.variable, "subquestion")
                        for option in question.options:
                            if option.variable:
                                names.setdefault(option.variable, "option")
        return names
