"""Tests for date parsing, calendar stepping and granularity detection."""

from datetime import date, datetime, timezone

import pandas as pd
import pytest

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import (
    VALID_AGGREGATIONS,
    DateParser,
    Frequency,
    detect_date_granularity,
    format_date,
    needs_aggregation,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestDateParser:

    @pytest.fixture
    def parser(self):
        return DateParser()

    @pytest.mark.parametrize("text", [
        "2024-03-15", "1999-12-31", "2024-02-29", "2000-01-01",
    ])
    def test_iso_dates_keep_their_calendar_fields(self, parser, text):
        parsed = parser.parse(text)
        assert (parsed.year, parsed.month, parsed.day) == tuple(int(p) for p in text.split('-'))
        assert parsed.tzinfo == timezone.utc
        assert (parsed.hour, parsed.minute) == (0, 0)

    def test_iso_datetime_keeps_time_of_day(self, parser):
        assert parser.parse("2024-03-15T10:30:00") == utc(2024, 3, 15, 10, 30)

    def test_iso_offset_is_converted_to_utc(self, parser):
        assert parser.parse("2024-03-15T10:30:00+02:00") == utc(2024, 3, 15, 8, 30)
        assert parser.parse("2024-03-15T10:30:00+02:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("text", ["2024-03-15", "2024-03-15T10:30:00", "03/04/2024", "45292"])
    def test_parsing_canonical_output_is_idempotent(self, parser, text):
        first = parser.parse(text)
        assert parser.parse(format_date(first)) == first
        assert parser.parse(first) == first

    def test_day_first_when_first_part_exceeds_twelve(self, parser):
        assert parser.parse("15/03/2024") == utc(2024, 3, 15)

    def test_month_first_when_second_part_exceeds_twelve(self, parser):
        assert parser.parse("03/15/2024") == utc(2024, 3, 15)

    def test_ambiguous_triple_defaults_to_month_first(self, parser):
        assert parser.parse("03/04/2024") == utc(2024, 3, 4)

    def test_ambiguous_triple_with_dayfirst(self):
        assert DateParser(dayfirst=True).parse("03/04/2024") == utc(2024, 4, 3)

    def test_year_first_triple(self, parser):
        assert parser.parse("2024/03/15") == utc(2024, 3, 15)
        assert parser.parse("2024.3.5") == utc(2024, 3, 5)

    def test_two_digit_years(self, parser):
        assert parser.parse("15.03.24") == utc(2024, 3, 15)
        assert parser.parse("01-02-75") == utc(1975, 1, 2)

    def test_impossible_triple_is_none(self, parser):
        assert parser.parse("13/14/2024") is None
        assert parser.parse("02/30/2024") is None

    def test_spreadsheet_serial(self, parser):
        assert parser.parse(45292) == utc(2024, 1, 1)
        assert parser.parse("45292") == utc(2024, 1, 1)

    def test_compact_yyyymmdd_falls_through_to_native(self, parser):
        assert parser.parse("20240315") == utc(2024, 3, 15)

    def test_native_fallback(self, parser):
        assert parser.parse("March 5, 2024") == utc(2024, 3, 5)

    @pytest.mark.parametrize("value", [
        None, "", "   ", "hello", "2024", "1,200", "$500", float("nan"), 42, 3.5,
    ])
    def test_unparseable_values_return_none(self, parser, value):
        assert parser.parse(value) is None

    def test_native_date_types(self, parser):
        assert parser.parse(date(2024, 1, 2)) == utc(2024, 1, 2)
        assert parser.parse(pd.Timestamp("2024-01-02")) == utc(2024, 1, 2)
        assert parser.parse(pd.NaT) is None


class TestFrequency:

    @pytest.mark.parametrize("alias,expected", [
        ("D", Frequency.DAILY), ("daily", Frequency.DAILY), ("w", Frequency.WEEKLY),
        ("Monthly", Frequency.MONTHLY), ("quarter", Frequency.QUARTERLY), ("annual", Frequency.YEARLY),
    ])
    def test_aliases(self, alias, expected):
        assert Frequency.from_alias(alias) is expected

    @pytest.mark.parametrize("alias", ["X", "", None, "hourly"])
    def test_unknown_alias_raises(self, alias):
        with pytest.raises(PreconditionError):
            Frequency.from_alias(alias)

    def test_month_step_clamps_to_month_end(self):
        assert Frequency.MONTHLY.step(utc(2024, 1, 31)) == utc(2024, 2, 29)

    def test_month_sequence_is_anchored_on_start(self):
        sequence = Frequency.MONTHLY.sequence(utc(2024, 1, 31), utc(2024, 4, 30))
        assert sequence == [utc(2024, 1, 31), utc(2024, 2, 29), utc(2024, 3, 31), utc(2024, 4, 30)]

    def test_sequence_is_inclusive(self):
        sequence = Frequency.DAILY.sequence(utc(2024, 1, 1), utc(2024, 1, 5))
        assert len(sequence) == 5
        assert sequence[-1] == utc(2024, 1, 5)

    def test_backward_step(self):
        assert Frequency.QUARTERLY.step(utc(2024, 5, 15), -2) == utc(2023, 11, 15)
        assert Frequency.WEEKLY.step(utc(2024, 1, 15), -1) == utc(2024, 1, 8)

    def test_period_starts(self):
        value = utc(2024, 5, 22, 13, 45)
        assert Frequency.DAILY.period_start(value) == utc(2024, 5, 22)
        assert Frequency.WEEKLY.period_start(value) == utc(2024, 5, 20)
        assert Frequency.MONTHLY.period_start(value) == utc(2024, 5, 1)
        assert Frequency.QUARTERLY.period_start(value) == utc(2024, 4, 1)
        assert Frequency.YEARLY.period_start(value) == utc(2024, 1, 1)

    def test_sunday_belongs_to_previous_monday(self):
        assert Frequency.WEEKLY.period_start(utc(2024, 1, 7)) == utc(2024, 1, 1)


class TestGranularity:

    def test_daily(self):
        assert detect_date_granularity(["2024-01-01", "2024-01-02", "2024-01-03"]) is Frequency.DAILY

    def test_weekly(self):
        assert detect_date_granularity(["2024-01-01", "2024-01-08", "2024-01-15"]) is Frequency.WEEKLY

    def test_monthly_with_uneven_month_lengths(self):
        values = ["2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"]
        assert detect_date_granularity(values) is Frequency.MONTHLY

    def test_quarterly(self):
        values = ["2023-01-01", "2023-04-01", "2023-07-01", "2023-10-01"]
        assert detect_date_granularity(values) is Frequency.QUARTERLY

    def test_yearly(self):
        assert detect_date_granularity(["2020-01-01", "2021-01-01", "2022-01-01"]) is Frequency.YEARLY

    def test_gappy_daily_uses_most_common_interval(self):
        values = ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-10", "2024-01-11"]
        assert detect_date_granularity(values) is Frequency.DAILY

    def test_too_few_dates(self):
        assert detect_date_granularity(["2024-01-01", None, "garbage"]) is None

    def test_valid_aggregations(self):
        assert VALID_AGGREGATIONS[Frequency.WEEKLY] == [
            Frequency.WEEKLY, Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.YEARLY,
        ]
        assert VALID_AGGREGATIONS[Frequency.YEARLY] == [Frequency.YEARLY]

    def test_needs_aggregation(self):
        assert needs_aggregation(Frequency.DAILY, Frequency.MONTHLY)
        assert not needs_aggregation(Frequency.MONTHLY, Frequency.MONTHLY)
        assert not needs_aggregation(None, Frequency.MONTHLY)
