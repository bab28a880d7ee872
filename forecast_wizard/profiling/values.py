"""
Raw cell values as they arrive from CSV parsing.

A cell can be a string, a number or nothing at all. RawValue makes the
three cases explicit so the classifier and the aggregator never rely on
implicit coercion.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

_QUOTES = re.compile(r'^["\']|["\']$')
_NUMBER_NOISE = re.compile(r'[,%$€£¥\s]')

TRUE_TOKENS = frozenset({'1', 'true', 'yes', 'y'})
FALSE_TOKENS = frozenset({'0', 'false', 'no', 'n'})
BOOLEAN_VOCABULARIES = (
    frozenset({'0', '1'}),
    frozenset({'true', 'false'}),
    frozenset({'yes', 'no'}),
    frozenset({'y', 'n'}),
)


class ValueKind(Enum):
    NULL = "null"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class RawValue:
    """Tagged cell value: NULL, NUMBER (finite float) or TEXT (stripped string)."""

    kind: ValueKind
    number: Optional[float] = None
    text: Optional[str] = None

    @classmethod
    def of(cls, value: Any) -> 'RawValue':
        if isinstance(value, RawValue):
            return value
        if value is None:
            return NULL
        if isinstance(value, bool):
            return cls(ValueKind.TEXT, text='true' if value else 'false')
        if isinstance(value, (int, float)):
            try:
                number = float(value)
            except OverflowError:
                return cls(ValueKind.TEXT, text=str(value))
            if math.isnan(number):
                return NULL
            if math.isinf(number):
                return cls(ValueKind.TEXT, text=str(value))
            return cls(ValueKind.NUMBER, number=number)
        # numpy scalars and other number-likes
        if hasattr(value, 'item') and not isinstance(value, (str, bytes)):
            try:
                return cls.of(value.item())
            except (TypeError, ValueError):
                pass
        text = str(value).strip()
        if text == '' or text.lower() in ('nan', 'null', 'none'):
            return NULL
        return cls(ValueKind.TEXT, text=text)

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_text(self) -> str:
        """Display form; integral numbers drop their trailing '.0'."""
        if self.kind is ValueKind.NUMBER:
            if self.number.is_integer():
                return str(int(self.number))
            return repr(self.number)
        if self.kind is ValueKind.TEXT:
            return self.text
        return ''

    def as_key(self) -> Optional[str]:
        """Grouping key for series ids; None for nulls."""
        if self.is_null:
            return None
        return self.as_text()


NULL = RawValue(ValueKind.NULL)


def coerce_number(value: Any) -> Optional[float]:
    """
    Parse a cell as a finite number.

    Strips quotes, thousands separators, currency symbols, percent signs
    and whitespace; accounting parentheses become a leading minus.
    Returns None when the cell is not numeric.
    """
    raw = RawValue.of(value)
    if raw.kind is ValueKind.NUMBER:
        return raw.number
    if raw.kind is ValueKind.NULL:
        return None

    text = _QUOTES.sub('', raw.text)
    text = _NUMBER_NOISE.sub('', text)
    if text.startswith('(') and text.endswith(')'):
        text = '-' + text[1:-1]
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_boolean(value: Any) -> Optional[float]:
    """Map 0/1, true/false, yes/no, y/n (any case) to 1.0/0.0."""
    raw = RawValue.of(value)
    if raw.kind is ValueKind.NUMBER:
        return raw.number if raw.number in (0.0, 1.0) else None
    if raw.kind is ValueKind.NULL:
        return None
    token = raw.text.lower()
    if token in TRUE_TOKENS:
        return 1.0
    if token in FALSE_TOKENS:
        return 0.0
    return None


def is_digit_string(value: Any) -> bool:
    """True for bare integers written without any separator ('2024', '45292')."""
    raw = RawValue.of(value)
    if raw.kind is ValueKind.NUMBER:
        return raw.number.is_integer()
    return raw.kind is ValueKind.TEXT and raw.text.isdigit()


def non_null(values: Iterable[Any]) -> List[RawValue]:
    """Wrap values and drop nulls/empties."""
    wrapped = (RawValue.of(v) for v in values)
    return [v for v in wrapped if not v.is_null]
