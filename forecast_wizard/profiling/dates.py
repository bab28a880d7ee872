"""
Date parsing and calendar arithmetic for the forecast wizard.

Every date leaving this module is a timezone-aware UTC datetime, so that
day/week/month stepping never drifts with the server's local timezone.

Parsing priority:
1. Strict ISO 8601 date/datetime
2. Separated numeric triples (Y/M/D, D/M/Y, M/D/Y with '/', '-' or '.')
3. Spreadsheet serial numbers (5+ digit integers, epoch 1899-12-30)
4. dateutil as a last resort

Ambiguous triples where both leading parts are <= 12 are resolved by a
single rule: month first unless the parser was built with dayfirst=True.
"""

import logging
import re
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.values import RawValue, ValueKind, coerce_number

logger = logging.getLogger(__name__)

SERIAL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
MIN_SERIAL_DIGITS = 5

_ISO_PATTERN = re.compile(
    r'^\d{4}-\d{2}-\d{2}'
    r'(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?(?:Z|[+-]\d{2}(?::?\d{2})?)?)?$'
)
_TRIPLE_PATTERN = re.compile(
    r'^(\d{1,4})([/.\-])(\d{1,2})\2(\d{1,4})'
    r'(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$'
)


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_date(value: datetime) -> str:
    """'YYYY-MM-DD' for midnight timestamps, full ISO otherwise."""
    if (value.hour, value.minute, value.second, value.microsecond) == (0, 0, 0, 0):
        return value.strftime('%Y-%m-%d')
    return value.isoformat()


def _expand_year(year_text: str) -> int:
    year = int(year_text)
    if len(year_text) == 2:
        return 1900 + year if year >= 50 else 2000 + year
    return year


class DateParser:
    """
    Normalizes heterogeneous date values to UTC datetimes.

    Never raises on bad input: unparseable values return None and the
    caller counts them.
    """

    def __init__(self, dayfirst: bool = False):
        self.dayfirst = dayfirst

    def parse(self, value: Any) -> Optional[datetime]:
        if isinstance(value, datetime):
            # pandas.Timestamp is a datetime subclass
            if hasattr(value, 'to_pydatetime'):
                if value != value:  # NaT
                    return None
                value = value.to_pydatetime()
            return to_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

        raw = RawValue.of(value)
        if raw.kind is ValueKind.NULL:
            return None
        if raw.kind is ValueKind.NUMBER:
            if raw.number.is_integer() and abs(raw.number) >= 10 ** (MIN_SERIAL_DIGITS - 1):
                return self._parse_serial(int(raw.number))
            return None

        text = raw.text.strip('"\'').strip()
        if not text:
            return None

        if _ISO_PATTERN.match(text):
            try:
                return to_utc(dateutil_parser.isoparse(text))
            except (ValueError, OverflowError):
                return None

        match = _TRIPLE_PATTERN.match(text)
        if match:
            return self._parse_triple(match)

        if text.isdigit():
            if len(text) >= MIN_SERIAL_DIGITS:
                parsed = self._parse_serial(int(text))
                if parsed is not None:
                    return parsed
            # Compact YYYYMMDD is the only bare digit run worth handing to dateutil
            if len(text) != 8:
                return None
        elif coerce_number(text) is not None:
            # "1,200" or "$500" are amounts, not dates
            return None

        return self._parse_native(text)

    def _parse_triple(self, match) -> Optional[datetime]:
        first, _, second, third, hour, minute, second_of_minute = match.groups()
        try:
            if len(first) == 4:
                year, month, day = int(first), int(second), int(third)
            elif len(first) <= 2 and len(third) in (2, 4):
                a, b = int(first), int(second)
                year = _expand_year(third)
                if a > 12 and b <= 12:
                    day, month = a, b
                elif b > 12 and a <= 12:
                    month, day = a, b
                elif a <= 12 and b <= 12:
                    day, month = (a, b) if self.dayfirst else (b, a)
                else:
                    return None
            else:
                return None
            return datetime(
                year, month, day,
                int(hour or 0), int(minute or 0), int(second_of_minute or 0),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None

    @staticmethod
    def _parse_serial(serial: int) -> Optional[datetime]:
        try:
            return SERIAL_EPOCH + timedelta(days=serial)
        except OverflowError:
            return None

    def _parse_native(self, text: str) -> Optional[datetime]:
        default = datetime(datetime.now(timezone.utc).year, 1, 1)
        try:
            return to_utc(dateutil_parser.parse(text, dayfirst=self.dayfirst, default=default))
        except (ValueError, OverflowError, TypeError):
            return None


@lru_cache(maxsize=2)
def _parser_for(dayfirst: bool) -> DateParser:
    return DateParser(dayfirst=dayfirst)


def get_date_parser() -> DateParser:
    """Parser configured from settings (FORECAST_WIZARD_DAYFIRST)."""
    from forecast_wizard.settings import get_settings
    return _parser_for(get_settings().dayfirst)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a single value with the configured parser; None when unparseable."""
    return get_date_parser().parse(value)


class Frequency(str, Enum):
    """Calendar step used for expected sequences and aggregation buckets."""

    DAILY = 'D'
    WEEKLY = 'W'
    MONTHLY = 'M'
    QUARTERLY = 'Q'
    YEARLY = 'Y'

    @classmethod
    def from_alias(cls, value: Any) -> 'Frequency':
        if isinstance(value, Frequency):
            return value
        key = str(value).strip().lower() if value is not None else ''
        if key not in _FREQUENCY_ALIASES:
            raise PreconditionError(
                f"Invalid frequency: {value!r}. Expected one of D, W, M, Q, Y"
            )
        return _FREQUENCY_ALIASES[key]

    @property
    def rank(self) -> int:
        return _RANK[self]

    def step(self, value: datetime, units: int = 1) -> datetime:
        if self is Frequency.DAILY:
            return value + timedelta(days=units)
        if self is Frequency.WEEKLY:
            return value + timedelta(days=7 * units)
        if self is Frequency.MONTHLY:
            return value + relativedelta(months=units)
        if self is Frequency.QUARTERLY:
            return value + relativedelta(months=3 * units)
        return value + relativedelta(years=units)

    def sequence(self, start: datetime, end: datetime) -> List[datetime]:
        """Inclusive sequence from start to end.

        Each element is computed from the anchor, so a month-end start
        (Jan 31) yields Feb 29, Mar 31 rather than drifting to the 29th.
        """
        dates = []
        k = 0
        current = start
        while current <= end:
            dates.append(current)
            k += 1
            current = self.step(start, k)
        return dates

    def period_start(self, value: datetime) -> datetime:
        midnight = value.replace(hour=0, minute=0, second=0, microsecond=0)
        if self is Frequency.DAILY:
            return midnight
        if self is Frequency.WEEKLY:
            return midnight - timedelta(days=midnight.weekday())
        if self is Frequency.MONTHLY:
            return midnight.replace(day=1)
        if self is Frequency.QUARTERLY:
            return midnight.replace(month=3 * ((midnight.month - 1) // 3) + 1, day=1)
        return midnight.replace(month=1, day=1)


_FREQUENCY_ALIASES: Dict[str, Frequency] = {}
for _freq, _aliases in {
    Frequency.DAILY: ('d', 'day', 'daily'),
    Frequency.WEEKLY: ('w', 'week', 'weekly'),
    Frequency.MONTHLY: ('m', 'month', 'monthly'),
    Frequency.QUARTERLY: ('q', 'quarter', 'quarterly'),
    Frequency.YEARLY: ('y', 'a', 'year', 'yearly', 'annual'),
}.items():
    for _alias in _aliases:
        _FREQUENCY_ALIASES[_alias] = _freq

_RANK = {f: i for i, f in enumerate(Frequency)}

# Coarser-or-equal targets reachable from each data granularity
VALID_AGGREGATIONS: Dict[Frequency, List[Frequency]] = {
    f: [g for g in Frequency if g.rank >= f.rank] for f in Frequency
}


def can_aggregate_to(granularity: Frequency, frequency: Frequency) -> bool:
    return frequency in VALID_AGGREGATIONS[granularity]


def needs_aggregation(granularity: Optional[Frequency], frequency: Frequency) -> bool:
    """Aggregation runs whenever the requested frequency differs from the data's."""
    return granularity is not None and granularity is not frequency


def _months_between(earlier: datetime, later: datetime) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def _interval_class(earlier: datetime, later: datetime) -> Optional[Frequency]:
    days = round((later - earlier).total_seconds() / 86400)
    months = _months_between(earlier, later)
    if days == 1:
        return Frequency.DAILY
    if 6 <= days <= 8:
        return Frequency.WEEKLY
    if months == 1:
        return Frequency.MONTHLY
    if months == 3:
        return Frequency.QUARTERLY
    if months == 12:
        return Frequency.YEARLY
    return None


def detect_date_granularity(values: Iterable[Any]) -> Optional[Frequency]:
    """
    Infer the sampling granularity of a date column.

    Strict patterns are checked from finest to coarsest; otherwise the
    most common interval class wins, defaulting to daily.
    """
    parser = get_date_parser()
    dates = sorted({d for d in (parser.parse(v) for v in values) if d is not None})
    if len(dates) < 2:
        return None

    pairs = list(zip(dates, dates[1:]))
    day_gaps = [round((b - a).total_seconds() / 86400) for a, b in pairs]

    if all(gap == 1 for gap in day_gaps):
        return Frequency.DAILY
    if all(6 <= gap <= 8 for gap in day_gaps):
        return Frequency.WEEKLY
    if all(_months_between(a, b) == 1 and abs(a.day - b.day) <= 3 for a, b in pairs):
        return Frequency.MONTHLY

    counts = Counter(c for c in (_interval_class(a, b) for a, b in pairs) if c is not None)
    if not counts:
        return Frequency.DAILY
    return counts.most_common(1)[0][0]
