"""Tests for gap repair."""

import pytest

from forecast_wizard.config import ForecastConfig, GapHandlingChoice
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.repair.gaps import GapRepairer, repair_gaps
from forecast_wizard.validation.integrity import validate


@pytest.fixture
def config():
    return ForecastConfig.create('date', 'D', 1, target_column='sales', id_column='store')


@pytest.fixture
def report(daily_rows, config):
    return validate(daily_rows, config)


def _dates(rows, store):
    return [r['date'] for r in rows if r['store'] == store]


class TestGapRepair:

    def test_fixture_categories(self, report):
        assert report.get('A').category == 3
        assert report.get('B').category == 2

    @pytest.mark.parametrize("non_critical", [None, 'fill_zeros', 'mark_missing', 'remove'])
    def test_critical_remove_drops_whole_series(self, daily_rows, report, config, non_critical):
        choices = GapHandlingChoice.create('remove', non_critical)
        rows = repair_gaps(daily_rows, report, choices, config)
        assert _dates(rows, 'A') == []

    def test_critical_fill_zeros(self, daily_rows, report, config):
        choices = GapHandlingChoice.create('fill_zeros', None)
        rows = repair_gaps(daily_rows, report, choices, config)
        a_rows = [r for r in rows if r['store'] == 'A']
        assert [r['date'] for r in a_rows] == [
            '2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04', '2024-01-05',
        ]
        assert a_rows[2] == {'date': '2024-01-03', 'store': 'A', 'sales': 0}
        # non-critical gap left alone
        assert '2024-01-02' not in _dates(rows, 'B')

    def test_non_critical_fill_zeros(self, daily_rows, report, config):
        choices = GapHandlingChoice.create('fill_zeros', 'fill_zeros')
        rows = repair_gaps(daily_rows, report, choices, config)
        assert _dates(rows, 'B')[1] == '2024-01-02'
        assert all('is_missing' not in r for r in rows)

    def test_mark_missing_flags_synthesized_rows(self, daily_rows, report, config):
        choices = GapHandlingChoice.create(None, 'mark_missing')
        rows = repair_gaps(daily_rows, report, choices, config)
        synthesized = [r for r in rows if r['is_missing'] == 1]
        assert synthesized == [{'date': '2024-01-02', 'store': 'B', 'sales': 0, 'is_missing': 1}]
        assert sum(1 for r in rows if r['is_missing'] == 0) == len(daily_rows)

    def test_non_critical_remove(self, daily_rows, report, config):
        choices = GapHandlingChoice.create('fill_zeros', 'remove')
        result = GapRepairer(config, choices).repair(daily_rows, report)
        assert result.removed_series == ['B']
        assert _dates(result.rows, 'B') == []
        assert result.synthesized_count == 2

    def test_output_sorted_by_series_then_date(self, daily_rows, report, config):
        shuffled = list(reversed(daily_rows))
        rows = repair_gaps(shuffled, report, GapHandlingChoice(), config)
        keys = [(r['store'], r['date']) for r in rows]
        assert keys == sorted(keys)
        assert len(rows) == len(daily_rows)

    def test_wire_series_analysis_is_accepted(self, daily_rows, report, config):
        wire = report.to_dict()['seriesAnalysis']
        rows = repair_gaps(daily_rows, wire, {'criticalBreaks': 'fill_zeros'}, config)
        assert '2024-01-04' in _dates(rows, 'A')

    def test_missing_analysis_is_recomputed(self, daily_rows, config):
        rows = repair_gaps(daily_rows, None, {'criticalBreaks': 'remove'}, config)
        assert _dates(rows, 'A') == []

    def test_input_rows_are_not_mutated(self, daily_rows, report, config):
        before = [dict(r) for r in daily_rows]
        repair_gaps(daily_rows, report, GapHandlingChoice.create(None, 'mark_missing'), config)
        assert daily_rows == before

    def test_filling_requires_target(self, daily_rows, report):
        config = ForecastConfig.create('date', 'D', 1, id_column='store')
        with pytest.raises(PreconditionError):
            repair_gaps(daily_rows, report, GapHandlingChoice.create('fill_zeros'), config)

    def test_invalid_choice(self):
        with pytest.raises(PreconditionError):
            GapHandlingChoice.from_wire({'criticalBreaks': 'mark_missing'})
