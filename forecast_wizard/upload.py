"""CSV upload parsing: cleaned headers, string cells, empty cells as None."""

import io
import logging
import re
from typing import Any, Dict, List, Tuple

import pandas as pd

from forecast_wizard.exceptions import PreconditionError

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10

_NON_WORD = re.compile(r'[^\w\s-]')
_WHITESPACE = re.compile(r'\s+')


def clean_header(header: Any) -> str:
    """'  Sales ($) ' -> 'Sales'; 'Order Date' -> 'Order_Date'."""
    text = _NON_WORD.sub('', str(header).strip())
    return _WHITESPACE.sub('_', text.strip())


def _unique_headers(headers: List[Any]) -> List[str]:
    cleaned = []
    seen: Dict[str, int] = {}
    for index, header in enumerate(headers):
        name = clean_header(header) or f"column_{index + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        cleaned.append(name)
    return cleaned


def parse_csv_rows(content: bytes) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    Parse CSV bytes into (columns, rows).

    Every cell is read as a string so type inference sees the raw text;
    empty cells become None.
    """
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise PreconditionError("No data found in file")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise PreconditionError(f"Could not parse CSV: {e}")

    df.columns = _unique_headers(list(df.columns))
    if df.empty:
        raise PreconditionError("No data found in file")

    rows = [
        {k: (v if v.strip() != '' else None) for k, v in record.items()}
        for record in df.to_dict(orient='records')
    ]
    logger.info(f"📄 Parsed CSV: {len(rows)} rows, {len(df.columns)} columns")
    return list(df.columns), rows
