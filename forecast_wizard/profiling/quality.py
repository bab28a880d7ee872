"""
Per-column data quality checks.

All findings are advisory (warnings/suggestions) except a column without
a single usable value, which is reported as an issue and excluded from
later wizard steps.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta

from forecast_wizard.profiling.classifier import ColumnType
from forecast_wizard.profiling.dates import format_date, get_date_parser
from forecast_wizard.profiling.values import RawValue, coerce_boolean, coerce_number
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)


@dataclass
class QualityReport:
    """Findings for one column."""
    column: str
    column_type: ColumnType
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def excluded(self) -> bool:
        return bool(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'column': self.column,
            'type': self.column_type.value,
            'issues': list(self.issues),
            'warnings': list(self.warnings),
            'suggestions': list(self.suggestions),
            'stats': dict(self.stats),
            'excluded': self.excluded,
        }


class ColumnQualityAnalyzer:
    """
    Computes descriptive statistics and flags data-quality problems for a
    classified column.
    """

    IQR_MULTIPLIER = 1.5
    # Columns whose values all sit in [.., 100] are treated as percentage-like
    PERCENT_IQR_MULTIPLIER = 2.0
    PERCENT_LIKE_MAX = 100
    MIN_OUTLIER_SAMPLE = 4
    MAX_OUTLIER_EXAMPLES = 3
    ZERO_SHARE_WARNING = 0.10
    CV_SUGGESTION = 1.0

    # Quantities that should never go below zero
    NON_NEGATIVE_HINTS = (
        'sales', 'revenue', 'quantity', 'qty', 'count', 'units', 'volume',
        'price', 'cost', 'amount', 'orders', 'demand', 'footfall', 'visits',
    )

    MAX_YEARS_PAST = 100
    MAX_YEARS_FUTURE = 10

    BINARY_IMBALANCE_RATIO = 0.1

    HIGH_CARDINALITY_SHARE = 0.8
    GROUPING_CARDINALITY = (2, 10)

    NULL_SHARE_WARNING = 0.10

    def __init__(self, reference_time: Optional[datetime] = None):
        self.reference_time = reference_time
        self.date_parser = get_date_parser()

    @log_io
    def analyze(self, column_name: str, values: Sequence[Any], column_type: Any) -> QualityReport:
        """
        Analyze a column's values under its (auto or user) type.

        Args:
            column_name: Column header
            values: Raw cells, nulls included
            column_type: ColumnType or its string value

        Returns:
            QualityReport with issues, warnings, suggestions and stats
        """
        column_type = ColumnType.parse(column_type)
        report = QualityReport(column=column_name, column_type=column_type)

        wrapped = [RawValue.of(v) for v in values]
        present = [v for v in wrapped if not v.is_null]
        report.stats['total'] = len(wrapped)
        report.stats['null_count'] = len(wrapped) - len(present)

        if wrapped and report.stats['null_count'] / len(wrapped) > self.NULL_SHARE_WARNING:
            report.warnings.append(
                f"{report.stats['null_count'] / len(wrapped) * 100:.1f}% missing values"
            )

        if not present:
            report.issues.append('Column has no values')
            return report

        checks = {
            ColumnType.NUMERIC: self._check_numeric,
            ColumnType.DATE: self._check_date,
            ColumnType.BINARY: self._check_binary,
            ColumnType.CATEGORICAL: self._check_categorical,
            ColumnType.TEXT: self._check_text,
        }
        check = checks.get(column_type)
        if check is not None:
            check(column_name, present, report)
        return report

    def _check_numeric(self, column_name: str, present: List[RawValue], report: QualityReport):
        numbers = pd.Series([coerce_number(v) for v in present], dtype='float64').dropna()
        unparsed = len(present) - len(numbers)
        report.stats['unparseable_count'] = unparsed
        if numbers.empty:
            report.issues.append('No parseable numeric values')
            return
        if unparsed:
            report.warnings.append(f"{unparsed} value(s) could not be read as numbers")

        mean = float(numbers.mean())
        std = float(numbers.std()) if len(numbers) > 1 else 0.0
        report.stats.update({
            'min': float(numbers.min()),
            'max': float(numbers.max()),
            'mean': mean,
            'median': float(numbers.median()),
            'std': std,
        })

        negatives = int((numbers < 0).sum())
        report.stats['negative_count'] = negatives
        name_lower = column_name.lower()
        if negatives and any(h in name_lower for h in self.NON_NEGATIVE_HINTS):
            report.warnings.append(
                f"{negatives} negative value(s) in a column that is expected to be non-negative"
            )

        self._detect_outliers(numbers, report)

        zero_share = float((numbers == 0).mean())
        report.stats['zero_share'] = zero_share
        if zero_share > self.ZERO_SHARE_WARNING:
            report.warnings.append(f"{zero_share * 100:.1f}% of values are exactly zero")

        if mean != 0:
            cv = std / abs(mean)
            report.stats['cv'] = cv
            if cv > self.CV_SUGGESTION:
                report.suggestions.append(
                    f"High variability (CV={cv:.2f}); investigate spikes or mixed units"
                )

    def _detect_outliers(self, numbers: pd.Series, report: QualityReport):
        if len(numbers) < self.MIN_OUTLIER_SAMPLE:
            return

        q1 = float(numbers.quantile(0.25))
        q3 = float(numbers.quantile(0.75))
        iqr = q3 - q1
        percent_like = float(numbers.max()) <= self.PERCENT_LIKE_MAX
        multiplier = self.PERCENT_IQR_MULTIPLIER if percent_like else self.IQR_MULTIPLIER
        lower = q1 - multiplier * iqr
        upper = q3 + multiplier * iqr

        mask = (numbers < lower) | (numbers > upper)
        outliers = numbers[mask]
        examples = [
            {'value': float(v), 'direction': 'high' if v > upper else 'low'}
            for v in outliers.head(self.MAX_OUTLIER_EXAMPLES)
        ]
        report.stats['outliers'] = {
            'count': int(mask.sum()),
            'percentage': round(float(mask.mean()) * 100, 1),
            'examples': examples,
            'normal_range': [q1, q3],
            'bounds': [lower, upper],
            'multiplier': multiplier,
        }
        if len(outliers):
            report.warnings.append(
                f"{len(outliers)} outlier(s) ({report.stats['outliers']['percentage']}%) "
                f"outside [{lower:.2f}, {upper:.2f}]; normal range {q1:.2f} to {q3:.2f}"
            )

    def _check_date(self, column_name: str, present: List[RawValue], report: QualityReport):
        parsed = [self.date_parser.parse(v) for v in present]
        dates = sorted(d for d in parsed if d is not None)
        unparsed = len(parsed) - len(dates)
        report.stats['unparseable_count'] = unparsed
        if not dates:
            report.issues.append('No parseable date values')
            return
        if unparsed:
            report.warnings.append(f"{unparsed} value(s) could not be read as dates")

        start, end = dates[0], dates[-1]
        report.stats['min'] = format_date(start)
        report.stats['max'] = format_date(end)

        now = self.reference_time or datetime.now(timezone.utc)
        if start < now - relativedelta(years=self.MAX_YEARS_PAST):
            report.warnings.append(
                f"Dates start at {format_date(start)}, more than {self.MAX_YEARS_PAST} years ago"
            )
        if end > now + relativedelta(years=self.MAX_YEARS_FUTURE):
            report.warnings.append(
                f"Dates run to {format_date(end)}, more than {self.MAX_YEARS_FUTURE} years ahead"
            )

        duplicates = len(dates) - len(set(dates))
        report.stats['duplicate_count'] = duplicates
        if duplicates:
            report.warnings.append(f"{duplicates} duplicate timestamp(s)")

        frequency = self._infer_sampling(sorted(set(dates)))
        report.stats['inferred_frequency'] = frequency
        if frequency:
            report.suggestions.append(f"Data appears to be sampled {frequency}")

    @staticmethod
    def _infer_sampling(unique_dates: List[datetime]) -> Optional[str]:
        if len(unique_dates) < 2:
            return None
        gaps = np.diff([d.timestamp() for d in unique_dates]) / 86400.0
        median_days = float(np.median(gaps))
        if median_days < 1:
            return 'sub-daily'
        if median_days <= 1.5:
            return 'daily'
        if median_days <= 8:
            return 'weekly'
        if median_days <= 32:
            return 'monthly'
        return 'quarterly-or-yearly'

    def _check_binary(self, column_name: str, present: List[RawValue], report: QualityReport):
        tokens = pd.Series([v.as_text().lower() for v in present])
        counts = tokens.value_counts()
        report.stats['value_counts'] = {str(k): int(v) for k, v in counts.items()}
        if len(counts) > 2:
            report.warnings.append(
                f"{len(counts)} distinct values in a binary column; check the classification"
            )
            return

        as_flags = [coerce_boolean(v) for v in present]
        if any(f is None for f in as_flags):
            report.warnings.append('Some values are not recognizable as 0/1, true/false or yes/no')

        if len(counts) == 2:
            ratio = int(counts.min()) / int(counts.max())
            report.stats['minority_ratio'] = ratio
            if ratio < self.BINARY_IMBALANCE_RATIO:
                report.warnings.append(
                    f"Imbalanced binary column (minority/majority ratio {ratio:.2f})"
                )

    def _check_categorical(self, column_name: str, present: List[RawValue], report: QualityReport):
        unique = len({v.as_text().lower() for v in present})
        report.stats['unique_count'] = unique
        low, high = self.GROUPING_CARDINALITY
        if unique > self.HIGH_CARDINALITY_SHARE * len(present):
            report.warnings.append(
                f"{unique} distinct values across {len(present)} rows; too many categories for grouping"
            )
        elif unique == 1:
            report.warnings.append('Only one distinct value; column carries no information')
        if low <= unique <= high:
            report.suggestions.append(f"{unique} categories; good candidate for grouping")

    def _check_text(self, column_name: str, present: List[RawValue], report: QualityReport):
        unique = len({v.as_text().lower() for v in present})
        report.stats['unique_count'] = unique
        if unique < 10:
            report.suggestions.append('Consider if this should be categorical instead')


def analyze_column(column_name: str, values: Sequence[Any], column_type: Any) -> QualityReport:
    return ColumnQualityAnalyzer().analyze(column_name, values, column_type)
