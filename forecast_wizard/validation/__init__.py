# Validation - series integrity checks and column selection rules
from .integrity import (
    IntegrityReport,
    SeriesBreakReport,
    SeriesIntegrityValidator,
    validate,
    validate_series_integrity,
)
from .selection import validate_selection

__all__ = [
    'IntegrityReport',
    'SeriesBreakReport',
    'SeriesIntegrityValidator',
    'validate',
    'validate_series_integrity',
    'validate_selection',
]
