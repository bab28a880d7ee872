"""
Aggregation of repaired rows to one row per (series, period).

Numeric columns are reduced by mean unless the user picked another
reducer; categorical, binary and text columns by mode (first seen wins a
tie) or first/last. Date-typed value columns are dropped.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from forecast_wizard.config import ForecastConfig
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.classifier import ClassificationOverlay, ColumnClassifier, ColumnType
from forecast_wizard.profiling.dates import format_date, get_date_parser
from forecast_wizard.profiling.profiler import collect_columns
from forecast_wizard.profiling.values import RawValue, coerce_number
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)

NUMERIC_AGGREGATIONS = ('sum', 'mean', 'median', 'min', 'max', 'first', 'last')
CATEGORICAL_AGGREGATIONS = ('mode', 'first', 'last')
DEFAULT_NUMERIC_AGGREGATION = 'mean'
DEFAULT_CATEGORICAL_AGGREGATION = 'mode'

_SERIES = '__series__'
_PERIOD = '__period__'

ColumnTypes = Union[ClassificationOverlay, Mapping[str, Any], None]


@dataclass
class AggregationResult:
    rows: List[Dict[str, Any]]
    original_count: int
    skipped_count: int = 0
    dropped_columns: List[str] = field(default_factory=list)

    @property
    def aggregated_count(self) -> int:
        return len(self.rows)

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            'originalCount': self.original_count,
            'aggregatedCount': self.aggregated_count,
            'reductionPercent': reduction_percent(self.original_count, self.aggregated_count),
        }


def reduction_percent(original: int, aggregated: int) -> float:
    if not original:
        return 0.0
    return round((original - aggregated) / original * 100, 1)


def _mode(values: pd.Series) -> Optional[str]:
    counts = Counter(v for v in values if v is not None)
    if not counts:
        return None
    # Counter keeps insertion order, so max() returns the first-seen value on ties
    return max(counts, key=counts.get)


def _first(values: pd.Series) -> Optional[str]:
    return next((v for v in values if v is not None), None)


def _last(values: pd.Series) -> Optional[str]:
    return next((v for v in reversed(list(values)) if v is not None), None)


_CATEGORICAL_REDUCERS: Dict[str, Callable] = {
    'mode': _mode,
    'first': _first,
    'last': _last,
}


def _overlay(column_types: ColumnTypes) -> ClassificationOverlay:
    if isinstance(column_types, ClassificationOverlay):
        return column_types
    return ClassificationOverlay.create(auto_classified=column_types or {})


class Aggregator:
    """Buckets rows by (series, period start) and reduces every value column."""

    def __init__(
        self,
        config: ForecastConfig,
        column_types: ColumnTypes = None,
        aggregation_rules: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.overlay = _overlay(column_types)
        self.rules = {k: str(v).lower() for k, v in (aggregation_rules or {}).items()}
        self.classifier = ColumnClassifier()
        self.date_parser = get_date_parser()

    def value_types(self, rows: Sequence[Mapping[str, Any]]) -> Dict[str, ColumnType]:
        """
        Effective type of every non-key column; unclassified columns are
        classified here. The target is numeric unless the user overrode it.
        """
        types = {}
        target = self.config.target_column
        for column in collect_columns(rows):
            if column in self.config.key_columns:
                continue
            if column == target and column not in self.overlay.user_classified:
                types[column] = ColumnType.NUMERIC
                continue
            column_type = self.overlay.effective_type(column)
            if column_type is None:
                column_type = self.classifier.classify(column, [r.get(column) for r in rows]).type
            types[column] = column_type
        return types

    def _rule_for(self, column: str, column_type: ColumnType) -> str:
        if column_type is ColumnType.NUMERIC:
            rule = self.rules.get(column, DEFAULT_NUMERIC_AGGREGATION)
            allowed = NUMERIC_AGGREGATIONS
        else:
            rule = self.rules.get(column, DEFAULT_CATEGORICAL_AGGREGATION)
            allowed = CATEGORICAL_AGGREGATIONS
        if rule not in allowed:
            raise PreconditionError(
                f"Invalid aggregation '{rule}' for {column_type.value} column '{column}'. "
                f"Expected one of: {', '.join(allowed)}"
            )
        return rule

    @log_io(log_result=False)
    def aggregate(self, rows: Sequence[Mapping[str, Any]]) -> AggregationResult:
        config = self.config
        frequency = config.frequency
        types = self.value_types(rows)

        dropped_columns = [c for c, t in types.items() if t in (ColumnType.DATE, ColumnType.UNKNOWN)]
        if dropped_columns:
            logger.warning(f"Dropping date/unknown columns from aggregation: {dropped_columns}")
        value_columns = {c: t for c, t in types.items() if c not in dropped_columns}
        rules = {c: self._rule_for(c, t) for c, t in value_columns.items()}
        passthrough = [c for c in config.key_columns if c != config.date_column]

        records = []
        skipped = 0
        for row in rows:
            series_id = config.series_id(row)
            timestamp = self.date_parser.parse(row.get(config.date_column))
            if series_id is None or timestamp is None:
                skipped += 1
                continue
            record = {_SERIES: series_id, _PERIOD: frequency.period_start(timestamp)}
            for column in passthrough:
                record[column] = RawValue.of(row.get(column)).as_key()
            for column, column_type in value_columns.items():
                value = row.get(column)
                if column_type is ColumnType.NUMERIC:
                    number = coerce_number(value)
                    record[column] = np.nan if number is None else number
                else:
                    record[column] = RawValue.of(value).as_key()
            records.append(record)

        if skipped:
            logger.warning(f"Skipped {skipped} row(s) with a missing id or unparseable date during aggregation")

        result = AggregationResult(
            rows=[],
            original_count=len(rows),
            skipped_count=skipped,
            dropped_columns=dropped_columns,
        )
        if not records:
            return result

        df = pd.DataFrame.from_records(records)
        for column, column_type in value_columns.items():
            if column_type is ColumnType.NUMERIC:
                df[column] = df[column].astype('float64')
            else:
                df[column] = df[column].astype(object)

        spec = {column: _first for column in passthrough}
        for column, rule in rules.items():
            if value_columns[column] is ColumnType.NUMERIC:
                spec[column] = rule
            else:
                spec[column] = _CATEGORICAL_REDUCERS[rule]

        grouped = df.groupby([_PERIOD, _SERIES], sort=True)
        reduced = grouped.agg(spec) if spec else grouped.size().to_frame('__size__')
        reduced = reduced.reset_index()

        for record in reduced.to_dict(orient='records'):
            out = {config.date_column: format_date(record[_PERIOD].to_pydatetime())}
            for column in passthrough:
                out[column] = record[column]
            for column, column_type in value_columns.items():
                value = record[column]
                if column_type is ColumnType.NUMERIC:
                    out[column] = None if pd.isna(value) else float(value)
                else:
                    out[column] = value
            result.rows.append(out)

        logger.info(
            f"📉 Aggregated {result.original_count} rows to {result.aggregated_count} "
            f"at frequency {frequency.value} ({result.summary['reductionPercent']}% reduction)"
        )
        return result


def aggregate(
    rows: Sequence[Mapping[str, Any]],
    config: ForecastConfig,
    column_types: ColumnTypes = None,
    aggregation_rules: Optional[Mapping[str, str]] = None,
) -> AggregationResult:
    return Aggregator(config, column_types, aggregation_rules).aggregate(rows)


@log_io
def analyze_aggregation_impact(
    rows: Sequence[Mapping[str, Any]],
    date_column: str,
    grouping_columns: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Preview how many rows collapse when rows sharing a (date, grouping)
    key are merged.

    Returns:
        Dict with originalCount, aggregatedCount, reductionPercent,
        hasDuplicates, duplicateCount and up to 5 duplicateSamples
    """
    if not date_column:
        raise PreconditionError("Missing required data or date column")
    grouping_columns = list(grouping_columns or [])

    first_seen: Dict[tuple, int] = {}
    duplicates = []
    for index, row in enumerate(rows, start=1):
        key = (RawValue.of(row.get(date_column)).as_key(),) + tuple(
            RawValue.of(row.get(c)).as_key() for c in grouping_columns
        )
        if key in first_seen:
            duplicates.append({
                'key': '|'.join('' if part is None else part for part in key),
                'rows': [first_seen[key], index],
                'values': {
                    'date': row.get(date_column),
                    'grouping': {c: row.get(c) for c in grouping_columns},
                },
            })
        else:
            first_seen[key] = index

    return {
        'originalCount': len(rows),
        'aggregatedCount': len(first_seen),
        'reductionPercent': reduction_percent(len(rows), len(first_seen)),
        'hasDuplicates': bool(duplicates),
        'duplicateCount': len(duplicates),
        'duplicateSamples': duplicates[:5],
    }
