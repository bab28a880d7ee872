"""Tests for the @log_io decorator and value truncation."""

import asyncio
import logging
from dataclasses import dataclass

import pandas as pd
import pytest

from forecast_wizard.utils.logging_utils import _truncate_value, log_io


@dataclass
class _Point:
    x: int
    y: int


class TestTruncateValue:

    def test_row_list_summary(self):
        rows = [{'date': '2024-01-01', 'sales': 1}] * 50
        assert _truncate_value(rows) == "rows(len=50, cols=['date', 'sales'])"

    def test_wide_rows_are_capped(self):
        rows = [{f'c{i}': i for i in range(12)}]
        assert "...+4" in _truncate_value(rows)

    def test_dataframe(self):
        df = pd.DataFrame({'a': [1, 2], 'b': [3, 4]})
        assert _truncate_value(df) == "DataFrame(shape=(2, 2), cols=['a', 'b'])"

    def test_dataclass(self):
        assert _truncate_value(_Point(1, 2)) == "_Point({x=1, y=2})"

    def test_long_string(self):
        assert _truncate_value('x' * 500).startswith("str(len=500")

    def test_long_list(self):
        assert _truncate_value(list(range(20))).startswith("list(len=20, first_5=")


class TestLogIO:

    def test_enter_and_exit(self, caplog):
        @log_io
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger=__name__):
            assert add(1, b=2) == 3
        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("[ENTER]") and "a=1" in m and "b=2" in m for m in messages)
        assert any(m.startswith("[EXIT]") and "-> 3" in m for m in messages)

    def test_result_hidden(self, caplog):
        @log_io(log_result=False)
        def secret():
            return {'token': 'abc'}

        with caplog.at_level(logging.DEBUG, logger=__name__):
            secret()
        exit_line = [r.getMessage() for r in caplog.records if r.getMessage().startswith("[EXIT]")][0]
        assert "-> dict" in exit_line
        assert "abc" not in exit_line

    def test_errors_are_logged_and_reraised(self, caplog):
        @log_io
        def boom():
            raise ValueError("bad input")

        with caplog.at_level(logging.DEBUG, logger=__name__):
            with pytest.raises(ValueError, match="bad input"):
                boom()
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors and "raised ValueError" in errors[0].getMessage()

    def test_async(self, caplog):
        @log_io
        async def double(x):
            return x * 2

        with caplog.at_level(logging.DEBUG, logger=__name__):
            assert asyncio.run(double(4)) == 8
        assert any("-> 8" in r.getMessage() for r in caplog.records)

    def test_silent_above_debug(self, caplog):
        @log_io
        def noop():
            return None

        with caplog.at_level(logging.INFO, logger=__name__):
            noop()
        assert not caplog.records
