"""Repair then aggregate: the rows handed to the training step."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from forecast_wizard.config import ForecastConfig, GapHandlingChoice
from forecast_wizard.profiling.dates import Frequency, detect_date_granularity
from forecast_wizard.repair.aggregation import ColumnTypes, Aggregator, reduction_percent
from forecast_wizard.repair.gaps import GapRepairer, SeriesAnalysis
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)


@dataclass
class TrainingData:
    rows: List[Dict[str, Any]]
    summary: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {'data': self.rows, 'summary': self.summary}


@log_io(log_result=False)
def prepare_training_rows(
    rows: Sequence[Mapping[str, Any]],
    config: ForecastConfig,
    series_analysis: Optional[SeriesAnalysis],
    choices: GapHandlingChoice,
    column_types: ColumnTypes = None,
    aggregation_rules: Optional[Mapping[str, str]] = None,
    critical_multiplier: Optional[int] = None,
) -> TrainingData:
    """
    Apply gap choices, then collapse to one row per (series, period).

    Daily forecasts skip aggregation: the repaired rows are returned as-is.
    """
    repaired = GapRepairer(config, choices, critical_multiplier).repair(rows, series_analysis)
    granularity = detect_date_granularity(row.get(config.date_column) for row in rows)

    if config.frequency is Frequency.DAILY:
        out_rows = repaired.rows
        dropped_columns: List[str] = []
        skipped = repaired.dropped_count
        aggregation_applied = False
    else:
        logger.info(
            f"Aggregating from {granularity.value if granularity else 'unknown'} to {config.frequency.value}"
        )
        aggregated = Aggregator(config, column_types, aggregation_rules).aggregate(repaired.rows)
        out_rows = aggregated.rows
        dropped_columns = aggregated.dropped_columns
        skipped = repaired.dropped_count + aggregated.skipped_count
        aggregation_applied = True

    summary = {
        'originalCount': len(rows),
        'aggregatedCount': len(out_rows),
        'reductionPercent': reduction_percent(len(rows), len(out_rows)),
        'detectedGranularity': granularity.value if granularity else None,
        'frequency': config.frequency.value,
        'aggregationApplied': aggregation_applied,
        'droppedColumns': dropped_columns,
        'skippedRows': skipped,
    }
    summary.update(repaired.to_dict())
    return TrainingData(rows=out_rows, summary=summary)
