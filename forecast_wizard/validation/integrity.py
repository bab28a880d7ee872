"""
Series integrity validation.

Groups rows into series, lays out the expected date sequence for each one
at the configured frequency and splits the missing periods into critical
breaks (inside the trailing window the forecaster conditions on) and
non-critical breaks (older history).

Categories:
    1 - no breaks
    2 - only non-critical breaks
    3 - at least one critical break
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from forecast_wizard.config import ForecastConfig
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import DateParser, format_date, get_date_parser
from forecast_wizard.settings import get_settings
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)


@dataclass
class SeriesBreakReport:
    """Break counts for one series relative to its expected date sequence."""

    series_id: str
    critical_breaks_count: int
    non_critical_breaks_count: int
    total_records: int
    critical_dates: List[datetime] = field(default_factory=list)
    non_critical_dates: List[datetime] = field(default_factory=list)

    @property
    def has_critical_breaks(self) -> bool:
        return self.critical_breaks_count > 0

    @property
    def has_non_critical_breaks(self) -> bool:
        return self.non_critical_breaks_count > 0

    @property
    def category(self) -> int:
        if self.has_critical_breaks:
            return 3
        if self.has_non_critical_breaks:
            return 2
        return 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'seriesId': self.series_id,
            'hasCriticalBreaks': self.has_critical_breaks,
            'hasNonCriticalBreaks': self.has_non_critical_breaks,
            'criticalBreaksCount': self.critical_breaks_count,
            'nonCriticalBreaksCount': self.non_critical_breaks_count,
            'totalRecords': self.total_records,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> 'SeriesBreakReport':
        critical = int(payload.get('criticalBreaksCount') or 0)
        non_critical = int(payload.get('nonCriticalBreaksCount') or 0)
        # Flags without counts still mark the series as broken
        if payload.get('hasCriticalBreaks') and not critical:
            critical = 1
        if payload.get('hasNonCriticalBreaks') and not non_critical:
            non_critical = 1
        return cls(
            series_id=str(payload.get('seriesId')),
            critical_breaks_count=critical,
            non_critical_breaks_count=non_critical,
            total_records=int(payload.get('totalRecords') or 0),
        )


@dataclass
class IntegrityReport:
    """Result of one validation run across all series."""

    config: ForecastConfig
    series_analysis: List[SeriesBreakReport]
    processed_records: int
    dropped_records: int = 0
    required_length: int = 0

    @property
    def total_series(self) -> int:
        return len(self.series_analysis)

    def category_count(self, category: int) -> int:
        return sum(1 for s in self.series_analysis if s.category == category)

    @property
    def has_critical_breaks(self) -> bool:
        return any(s.has_critical_breaks for s in self.series_analysis)

    def get(self, series_id: str) -> Optional[SeriesBreakReport]:
        for report in self.series_analysis:
            if report.series_id == series_id:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'totalSeries': self.total_series,
            'category1Count': self.category_count(1),
            'category2Count': self.category_count(2),
            'category3Count': self.category_count(3),
            'processedRecords': self.processed_records,
            'droppedRecords': self.dropped_records,
            'seriesAnalysis': [s.to_dict() for s in self.series_analysis],
            'timeGranularity': self.config.frequency.value,
            'predictionLength': self.config.horizon,
            'requiredLength': self.required_length,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], config: ForecastConfig) -> 'IntegrityReport':
        return cls(
            config=config,
            series_analysis=[SeriesBreakReport.from_dict(s) for s in payload.get('seriesAnalysis') or []],
            processed_records=int(payload.get('processedRecords') or 0),
            dropped_records=int(payload.get('droppedRecords') or 0),
            required_length=int(payload.get('requiredLength') or 0),
        )


class SeriesIntegrityValidator:
    """Checks every series for missing periods at the configured frequency."""

    def __init__(
        self,
        config: ForecastConfig,
        critical_multiplier: Optional[int] = None,
        date_parser: Optional[DateParser] = None,
    ):
        if critical_multiplier is None:
            critical_multiplier = get_settings().critical_window_multiplier
        if critical_multiplier < 1:
            raise PreconditionError(
                f"Critical window multiplier must be at least 1, got {critical_multiplier}"
            )
        self.config = config
        self.critical_multiplier = critical_multiplier
        self.date_parser = date_parser or get_date_parser()

    @property
    def required_length(self) -> int:
        return self.config.horizon * self.critical_multiplier

    def critical_period_start(self, max_date: datetime) -> datetime:
        return self.config.frequency.step(max_date, -self.required_length)

    @log_io(log_result=False)
    def validate(self, rows: Sequence[Mapping[str, Any]]) -> IntegrityReport:
        self._check_columns(rows)

        config = self.config
        observed: Dict[str, Set[datetime]] = {}
        processed = 0
        dropped = 0

        for index, row in enumerate(rows):
            try:
                series_id = config.series_id(row)
                timestamp = self.date_parser.parse(row.get(config.date_column))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping row {index}: {e}")
                dropped += 1
                continue
            if series_id is None or timestamp is None:
                dropped += 1
                continue
            observed.setdefault(series_id, set()).add(timestamp)
            processed += 1

        if dropped:
            logger.warning(f"Dropped {dropped} row(s) with a missing id or unparseable date")
        logger.info(f"Processed {processed} rows with {len(observed)} unique series")

        analysis = [self.analyze_series(sid, dates) for sid, dates in observed.items()]
        report = IntegrityReport(
            config=config,
            series_analysis=analysis,
            processed_records=processed,
            dropped_records=dropped,
            required_length=self.required_length,
        )
        logger.info(
            f"🔍 Validation: {report.total_series} series, "
            f"category 1/2/3 = {report.category_count(1)}/"
            f"{report.category_count(2)}/{report.category_count(3)}"
        )
        return report

    def analyze_series(self, series_id: str, dates: Set[datetime]) -> SeriesBreakReport:
        ordered = sorted(dates)
        min_date, max_date = ordered[0], ordered[-1]
        expected = self.config.frequency.sequence(min_date, max_date)
        missing = [d for d in expected if d not in dates]

        boundary = self.critical_period_start(max_date)
        critical = [d for d in missing if d >= boundary]
        non_critical = [d for d in missing if d < boundary]
        if missing:
            logger.debug(
                f"Series '{series_id}': {len(critical)} critical, {len(non_critical)} non-critical "
                f"break(s); critical window starts {format_date(boundary)}"
            )
        return SeriesBreakReport(
            series_id=series_id,
            critical_breaks_count=len(critical),
            non_critical_breaks_count=len(non_critical),
            total_records=len(dates),
            critical_dates=critical,
            non_critical_dates=non_critical,
        )

    def _check_columns(self, rows: Sequence[Mapping[str, Any]]):
        if not rows:
            raise PreconditionError("No data provided")
        present = set()
        for row in rows:
            if isinstance(row, Mapping):
                present.update(row.keys())
        for column in (self.config.date_column,) + self.config.level_columns:
            if column not in present:
                raise PreconditionError(f"Column '{column}' not found in data")


def validate(
    rows: Sequence[Mapping[str, Any]],
    config: ForecastConfig,
    critical_multiplier: Optional[int] = None,
) -> IntegrityReport:
    return SeriesIntegrityValidator(config, critical_multiplier).validate(rows)


def validate_series_integrity(
    rows: Sequence[Mapping[str, Any]],
    id_column: Optional[str],
    date_column: str,
    frequency: Any,
    horizon: Any,
    *,
    critical_multiplier: Optional[int] = None,
) -> IntegrityReport:
    """
    Validate series continuity from loose arguments.

    The config is built (and rejected) before a single row is looked at,
    so an invalid frequency or horizon never yields a partial report.
    """
    config = ForecastConfig.create(
        date_column=date_column,
        frequency=frequency,
        horizon=horizon,
        id_column=id_column,
    )
    return validate(rows, config, critical_multiplier)
