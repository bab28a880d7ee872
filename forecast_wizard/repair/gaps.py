"""
Gap repair driven by the user's gap-handling choices.

Each series is handled independently. Removal short-circuits: once a
series is removed for one kind of break, nothing is synthesized for it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from forecast_wizard.config import (
    CriticalBreakPolicy,
    ForecastConfig,
    GapHandlingChoice,
    NonCriticalBreakPolicy,
)
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import format_date
from forecast_wizard.utils.logging_utils import log_io
from forecast_wizard.validation.integrity import (
    IntegrityReport,
    SeriesBreakReport,
    SeriesIntegrityValidator,
)

logger = logging.getLogger(__name__)

MISSING_FLAG_COLUMN = 'is_missing'

SeriesAnalysis = Union[IntegrityReport, Iterable[Union[SeriesBreakReport, Mapping[str, Any]]]]


@dataclass
class RepairResult:
    rows: List[Dict[str, Any]]
    removed_series: List[str] = field(default_factory=list)
    synthesized_count: int = 0
    dropped_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'removedSeries': list(self.removed_series),
            'synthesizedCount': self.synthesized_count,
            'droppedCount': self.dropped_count,
        }


def _index_reports(series_analysis: Optional[SeriesAnalysis]) -> Dict[str, SeriesBreakReport]:
    if series_analysis is None:
        return {}
    if isinstance(series_analysis, IntegrityReport):
        series_analysis = series_analysis.series_analysis
    reports = {}
    for entry in series_analysis:
        if not isinstance(entry, SeriesBreakReport):
            entry = SeriesBreakReport.from_dict(entry)
        reports[entry.series_id] = entry
    return reports


class GapRepairer:
    """Applies gap-handling choices to the rows of every series."""

    def __init__(
        self,
        config: ForecastConfig,
        choices: GapHandlingChoice,
        critical_multiplier: Optional[int] = None,
    ):
        self.config = config
        self.choices = choices
        self.validator = SeriesIntegrityValidator(config, critical_multiplier)

    @property
    def fills_gaps(self) -> bool:
        return (
            self.choices.critical_breaks is CriticalBreakPolicy.FILL_ZEROS
            or self.choices.non_critical_breaks in (
                NonCriticalBreakPolicy.FILL_ZEROS, NonCriticalBreakPolicy.MARK_MISSING,
            )
        )

    @log_io(log_result=False)
    def repair(
        self,
        rows: Sequence[Mapping[str, Any]],
        series_analysis: Optional[SeriesAnalysis] = None,
    ) -> RepairResult:
        if self.fills_gaps and not self.config.target_column:
            raise PreconditionError("Target column is required to fill missing periods")

        config = self.config
        parser = self.validator.date_parser
        reports = _index_reports(series_analysis)

        grouped: Dict[str, List[tuple]] = {}
        dropped = 0
        for row in rows:
            series_id = config.series_id(row)
            timestamp = parser.parse(row.get(config.date_column))
            if series_id is None or timestamp is None:
                dropped += 1
                continue
            grouped.setdefault(series_id, []).append((timestamp, dict(row)))
        if dropped:
            logger.warning(f"Dropped {dropped} row(s) with a missing id or unparseable date before repair")

        result = RepairResult(rows=[], dropped_count=dropped)
        marked = False
        output: List[tuple] = []

        for series_id, entries in grouped.items():
            observed = {ts for ts, _ in entries}
            report = reports.get(series_id)
            if report is None or (
                not report.critical_dates and not report.non_critical_dates
                and (report.has_critical_breaks or report.has_non_critical_breaks)
            ):
                report = self.validator.analyze_series(series_id, observed)

            if self._should_remove(report):
                result.removed_series.append(series_id)
                continue

            output.extend((series_id, ts, row) for ts, row in entries)

            fill = []
            if report.has_critical_breaks and self.choices.critical_breaks is CriticalBreakPolicy.FILL_ZEROS:
                fill.extend((d, False) for d in report.critical_dates)
            if report.has_non_critical_breaks and self.choices.non_critical_breaks in (
                NonCriticalBreakPolicy.FILL_ZEROS, NonCriticalBreakPolicy.MARK_MISSING,
            ):
                mark = self.choices.non_critical_breaks is NonCriticalBreakPolicy.MARK_MISSING
                fill.extend((d, mark) for d in report.non_critical_dates)

            template = entries[0][1]
            for missing_date, mark in fill:
                output.append((series_id, missing_date, self._synthesize(template, missing_date, mark)))
                result.synthesized_count += 1
                marked = marked or mark

        if marked:
            for _, _, row in output:
                row.setdefault(MISSING_FLAG_COLUMN, 0)

        output.sort(key=lambda item: (item[0], item[1]))
        result.rows = [row for _, _, row in output]

        if result.removed_series:
            logger.info(f"Removed {len(result.removed_series)} series: {result.removed_series[:10]}")
        logger.info(
            f"🔧 Repair: {len(result.rows)} rows out, {result.synthesized_count} synthesized, "
            f"{len(result.removed_series)} series removed"
        )
        return result

    def _should_remove(self, report: SeriesBreakReport) -> bool:
        if report.has_critical_breaks and self.choices.critical_breaks is CriticalBreakPolicy.REMOVE:
            return True
        return report.has_non_critical_breaks and self.choices.non_critical_breaks is NonCriticalBreakPolicy.REMOVE

    def _synthesize(self, template: Mapping[str, Any], missing_date: datetime, mark: bool) -> Dict[str, Any]:
        row = {self.config.date_column: format_date(missing_date)}
        for column in self.config.level_columns:
            row[column] = template.get(column)
        if self.config.id_column:
            row[self.config.id_column] = template.get(self.config.id_column)
        row[self.config.target_column] = 0
        if mark:
            row[MISSING_FLAG_COLUMN] = 1
        return row


def repair_gaps(
    rows: Sequence[Mapping[str, Any]],
    series_analysis: Optional[SeriesAnalysis],
    choices: Union[GapHandlingChoice, Mapping[str, Any]],
    config: ForecastConfig,
) -> List[Dict[str, Any]]:
    """Apply gap-handling choices and return the repaired rows sorted by series then date."""
    if not isinstance(choices, GapHandlingChoice):
        choices = GapHandlingChoice.from_wire(choices)
    return GapRepairer(config, choices).repair(rows, series_analysis).rows
