"""Column selection checks run before the validation step."""

import logging
from typing import Any, List, Mapping, Sequence, Union

from forecast_wizard.config import ColumnSelection, coerce_horizon
from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import Frequency, can_aggregate_to, detect_date_granularity
from forecast_wizard.profiling.profiler import collect_columns

logger = logging.getLogger(__name__)

_FREQUENCY_NAMES = {
    Frequency.DAILY: 'daily',
    Frequency.WEEKLY: 'weekly',
    Frequency.MONTHLY: 'monthly',
    Frequency.QUARTERLY: 'quarterly',
    Frequency.YEARLY: 'yearly',
}


def validate_selection(
    selection: Union[ColumnSelection, Mapping[str, Any]],
    rows: Sequence[Mapping[str, Any]],
) -> List[str]:
    """
    Return blocking messages for a column selection; empty when it is usable.

    Checks required roles, horizon, role overlap, unknown columns and that
    the chosen frequency is not finer than the date column's granularity.
    """
    if not isinstance(selection, ColumnSelection):
        selection = ColumnSelection.from_wire(selection)

    errors = []
    if not selection.target:
        errors.append("Target column is required for forecasting")
    if not selection.date:
        errors.append("Date column is required for time series forecasting")
    if not selection.frequency:
        errors.append("Forecast frequency is required")

    try:
        coerce_horizon(selection.horizon)
    except PreconditionError:
        errors.append("Forecast horizon must be at least 1 period")

    frequency = None
    if selection.frequency:
        try:
            frequency = Frequency.from_alias(selection.frequency)
        except PreconditionError as e:
            errors.append(str(e))

    columns = set(collect_columns(rows))
    chosen = [c for c in [selection.target, selection.date] + list(selection.grouping) if c]
    unknown = [c for c in chosen if c not in columns]
    if unknown:
        errors.append(f"Columns not found in data: {', '.join(unknown)}")

    if len(chosen) != len(set(chosen)):
        errors.append("The same column cannot be used for multiple purposes")

    if selection.date and selection.date in columns and frequency is not None:
        granularity = detect_date_granularity(row.get(selection.date) for row in rows)
        if granularity is None:
            errors.append("Unable to determine date granularity. Please check date column values.")
        elif not can_aggregate_to(granularity, frequency):
            errors.append(
                f"Selected frequency ({_FREQUENCY_NAMES[frequency]}) is too granular for the date column. "
                f"Minimum possible frequency is {_FREQUENCY_NAMES[granularity]}."
            )

    if errors:
        logger.info(f"Column selection rejected: {errors}")
    return errors
