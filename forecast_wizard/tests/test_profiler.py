"""Tests for dataset-level profiling."""

import pytest

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.classifier import ColumnType
from forecast_wizard.profiling.profiler import collect_columns, profile_dataset


@pytest.fixture
def store_rows():
    rows = []
    for i in range(35):
        rows.append({
            'date': f'2024-01-{(i % 28) + 1:02d}' if i < 28 else f'2024-02-{i - 27:02d}',
            'store': 'North' if i % 2 else 'South',
            'sales': f'{100.5 + i * 3.3:.2f}',
            'promo': '1' if i % 3 == 0 else '0',
        })
    return rows


class TestDatasetProfiler:

    def test_types_and_summary(self, store_rows):
        profile = profile_dataset(store_rows)
        types = {name: p.effective_type for name, p in profile.column_profiles.items()}
        assert types == {
            'date': ColumnType.DATE,
            'store': ColumnType.CATEGORICAL,
            'sales': ColumnType.NUMERIC,
            'promo': ColumnType.BINARY,
        }
        summary = profile.summary()
        assert summary['totalRows'] == 35
        assert summary['numericColumns'] == 1
        assert summary['dateColumns'] == 1
        assert summary['excludedColumns'] == 0
        assert profile.warnings == []

    def test_overlay_is_populated(self, store_rows):
        profile = profile_dataset(store_rows)
        assert profile.overlay.auto_classified['sales'] is ColumnType.NUMERIC
        assert dict(profile.overlay.user_classified) == {}

    def test_user_override_drives_quality_checks(self, store_rows):
        profile = profile_dataset(store_rows, user_classified={'store': 'text'})
        store = profile.column_profiles['store']
        assert store.effective_type is ColumnType.TEXT
        assert store.classification.type is ColumnType.CATEGORICAL
        assert profile.overlay.effective_type('store') is ColumnType.TEXT

    def test_file_level_warnings_for_small_untyped_data(self):
        rows = [{'name': n} for n in ('alpha', 'beta', 'gamma')]
        profile = profile_dataset(rows)
        assert any('No numeric columns' in w for w in profile.warnings)
        assert any('No date columns' in w for w in profile.warnings)
        assert any('quite small' in w for w in profile.warnings)

    def test_low_confidence_warning(self):
        rows = [{'comment': c} for c in ('alpha', 'beta', 'gamma', 'delta', 'epsilon')]
        profile = profile_dataset(rows)
        warnings = profile.column_profiles['comment'].classification.warnings
        assert any('Low confidence (50%)' in w for w in warnings)

    def test_empty_column_is_excluded(self, store_rows):
        for row in store_rows:
            row['notes'] = None
        profile = profile_dataset(store_rows)
        assert profile.column_profiles['notes'].excluded
        assert profile.summary()['excludedColumns'] == 1

    def test_to_dict_shape(self, store_rows):
        data = profile_dataset(store_rows).to_dict()
        assert set(data) == {'isValid', 'warnings', 'columnAnalysis', 'autoClassified', 'userClassified', 'summary'}
        assert data['autoClassified']['promo'] == 'binary'
        assert data['columnAnalysis']['sales']['effectiveType'] == 'numeric'

    def test_no_rows(self):
        with pytest.raises(PreconditionError):
            profile_dataset([])

    def test_columns_are_unioned_in_first_seen_order(self):
        assert collect_columns([{'a': 1}, {'b': 2, 'a': 3}, {'c': None}]) == ['a', 'b', 'c']
