"""
Value coercion shared by the expression, condition and placeholder layers.

Respondent answers arrive as loosely typed values:
    - str for choice, text and number answers
    - list of str for checkbox answers
    - dict for matrix and breakdown answers (row -> cell)
    - bool / int / float for computed variables

Every evaluator funnels through these helpers so that a value means the
same number everywhere.
"""

import re
from typing import Any

TRUE_WORDS = {"true", "yes", "ja"}
FALSE_WORDS = {"false", "no", "nee"}

_NUMBER_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)$")


def to_number(value: Any) -> float:
    """
    Coerce a variable value to a number.

    Rules:
        None, "", [] -> 0
        list         -> its length
        bool         -> 1 / 0
        "true", "yes", "ja"  -> 1
        "false", "no", "nee" -> 0
        numeric str  -> its float value
        dict         -> number of populated keys
        anything else -> 0
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        return float(len(value))
    if isinstance(value, dict):
        return float(sum(1 for v in value.values() if not is_empty(v)))
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        lowered = text.lower()
        if lowered in TRUE_WORDS:
            return 1.0
        if lowered in FALSE_WORDS:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return 0.0
    return 0.0


def is_empty(value: Any) -> bool:
    """True for None, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def is_numeric_value(text: str) -> bool:
    """
    True when the text is a plain decimal number (e.g. "18", "-2.5").

    Strings such as "12abc", "1e5" or "0x10" are not numbers here.
    """
    return bool(_NUMBER_RE.match(text.strip()))


def format_number(number: float) -> str:
    """Render a number without a trailing ``.0`` for integral values."""
    if number != number or number in (float("inf"), float("-inf")):
        return "0"
    number = round(float(number), 10)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def format_value(value: Any) -> str:
    """Render a scalar value for display."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if value is None:
        return ""
    return str(value)
