"""CSV / JSON serialization of wizard output rows."""

import json
import logging
from typing import Any, Dict, Mapping, Sequence

import pandas as pd

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.profiler import collect_columns

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'json')


def rows_to_frame(rows: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """DataFrame with columns in first-seen order; absent cells are empty."""
    return pd.DataFrame.from_records(list(rows), columns=collect_columns(rows))


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> bytes:
    df = rows_to_frame(rows)
    logger.info(f"Exporting {len(df)} rows x {len(df.columns)} columns as CSV")
    return df.to_csv(index=False).encode()


def rows_to_json(rows: Sequence[Mapping[str, Any]]) -> bytes:
    logger.info(f"Exporting {len(rows)} rows as JSON")
    return json.dumps([dict(row) for row in rows], indent=2, default=str).encode()


def export_rows(rows: Sequence[Mapping[str, Any]], fmt: str = 'csv') -> Dict[str, Any]:
    """
    Serialize rows for download.

    Returns:
        Dict with 'content' (bytes), 'media_type' and 'extension'
    """
    fmt = (fmt or 'csv').lower()
    if fmt not in EXPORT_FORMATS:
        raise PreconditionError(f"Unsupported export format: {fmt}. Expected one of: {', '.join(EXPORT_FORMATS)}")
    if fmt == 'json':
        return {'content': rows_to_json(rows), 'media_type': 'application/json', 'extension': 'json'}
    return {'content': rows_to_csv(rows), 'media_type': 'text/csv', 'extension': 'csv'}

