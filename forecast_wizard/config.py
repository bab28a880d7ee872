"""
Typed configuration passed between wizard steps.

ForecastConfig is validated once, at construction; everything downstream
trusts it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import Frequency
from forecast_wizard.profiling.values import RawValue

DEFAULT_SERIES_ID = 'overall'
CONFIG_VERSION = 1


def coerce_horizon(value: Any) -> int:
    if isinstance(value, bool):
        raise PreconditionError(f"Invalid horizon value: {value!r}")
    if isinstance(value, int):
        horizon = value
    elif isinstance(value, float) and value.is_integer():
        horizon = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        horizon = int(value.strip())
    else:
        raise PreconditionError(f"Invalid horizon value: {value!r}")
    if horizon < 1:
        raise PreconditionError(f"Forecast horizon must be at least 1 period, got {horizon}")
    return horizon


@dataclass(frozen=True)
class ForecastConfig:
    """User's forecast setup: which columns play which role, at what cadence."""

    date_column: str
    frequency: Frequency
    horizon: int
    target_column: Optional[str] = None
    id_column: Optional[str] = None
    level_columns: Tuple[str, ...] = ()
    version: int = CONFIG_VERSION

    @classmethod
    def create(
        cls,
        date_column: str,
        frequency: Any,
        horizon: Any,
        target_column: Optional[str] = None,
        id_column: Optional[str] = None,
        level_columns: Optional[List[str]] = None,
    ) -> 'ForecastConfig':
        if not date_column:
            raise PreconditionError("Date column is required for time series forecasting")
        levels = tuple(c for c in (level_columns or []) if c)
        if id_column and not levels:
            levels = (id_column,)
        return cls(
            date_column=date_column,
            frequency=Frequency.from_alias(frequency),
            horizon=coerce_horizon(horizon),
            target_column=target_column or None,
            id_column=id_column or (levels[0] if len(levels) == 1 else None),
            level_columns=levels,
        )

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> 'ForecastConfig':
        """Build from the validation boundary's snake_case config object."""
        if not isinstance(payload, Mapping):
            raise PreconditionError("Missing data or configuration")
        return cls.create(
            date_column=payload.get('timestamp_column'),
            frequency=payload.get('time_granularity'),
            horizon=payload.get('prediction_length'),
            target_column=payload.get('target_column') or payload.get('target'),
            id_column=payload.get('id_column'),
            level_columns=payload.get('level_columns'),
        )

    def to_wire(self) -> Dict[str, Any]:
        wire = {
            'id_column': self.id_column,
            'timestamp_column': self.date_column,
            'time_granularity': self.frequency.value,
            'prediction_length': self.horizon,
        }
        if self.target_column:
            wire['target_column'] = self.target_column
        if len(self.level_columns) > 1:
            wire['level_columns'] = list(self.level_columns)
        return wire

    @property
    def key_columns(self) -> Tuple[str, ...]:
        keys = [self.date_column]
        if self.id_column:
            keys.append(self.id_column)
        keys.extend(c for c in self.level_columns if c not in keys)
        return tuple(keys)

    def series_id(self, row: Mapping[str, Any]) -> Optional[str]:
        """
        Series key of a row: the id column value, the '_'-joined level
        values, or 'overall' when no grouping is configured. None when
        the configured id is missing from the row.
        """
        if self.id_column:
            return RawValue.of(row.get(self.id_column)).as_key()
        if self.level_columns:
            parts = [RawValue.of(row.get(c)).as_key() for c in self.level_columns]
            joined = '_'.join(p for p in parts if p)
            return joined or None
        return DEFAULT_SERIES_ID


class CriticalBreakPolicy(str, Enum):
    FILL_ZEROS = 'fill_zeros'
    REMOVE = 'remove'


class NonCriticalBreakPolicy(str, Enum):
    FILL_ZEROS = 'fill_zeros'
    MARK_MISSING = 'mark_missing'
    REMOVE = 'remove'


@dataclass(frozen=True)
class GapHandlingChoice:
    """How the user wants breaks closed. None leaves that kind of break untouched."""

    critical_breaks: Optional[CriticalBreakPolicy] = None
    non_critical_breaks: Optional[NonCriticalBreakPolicy] = None

    @classmethod
    def create(cls, critical_breaks: Any = None, non_critical_breaks: Any = None) -> 'GapHandlingChoice':
        try:
            critical = CriticalBreakPolicy(critical_breaks) if critical_breaks else None
            non_critical = NonCriticalBreakPolicy(non_critical_breaks) if non_critical_breaks else None
        except ValueError as e:
            raise PreconditionError(f"Invalid gap handling choice: {e}") from e
        return cls(critical_breaks=critical, non_critical_breaks=non_critical)

    @classmethod
    def from_wire(cls, payload: Optional[Mapping[str, Any]]) -> 'GapHandlingChoice':
        payload = payload or {}
        return cls.create(
            critical_breaks=payload.get('criticalBreaks', payload.get('critical_breaks')),
            non_critical_breaks=payload.get('nonCriticalBreaks', payload.get('non_critical_breaks')),
        )


@dataclass
class ColumnSelection:
    """Raw, not-yet-validated choices from the column selection step."""

    target: Optional[str] = None
    date: Optional[str] = None
    frequency: Optional[str] = None
    horizon: Any = None
    grouping: List[str] = field(default_factory=list)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> 'ColumnSelection':
        grouping = payload.get('grouping') or payload.get('level') or []
        if isinstance(grouping, str):
            grouping = [grouping]
        return cls(
            target=payload.get('target') or None,
            date=payload.get('date') or None,
            frequency=payload.get('frequency') or None,
            horizon=payload.get('horizon'),
            grouping=list(grouping),
        )

    def to_config(self) -> ForecastConfig:
        return ForecastConfig.create(
            date_column=self.date,
            frequency=self.frequency,
            horizon=self.horizon,
            target_column=self.target,
            level_columns=self.grouping,
        )
