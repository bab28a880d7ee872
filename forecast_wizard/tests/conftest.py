import os
import sys

import pytest

# Add the project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


@pytest.fixture
def daily_rows():
    """Two stores: A has a trailing gap, B an early one."""
    rows = []
    for day in (1, 2, 5):
        rows.append({'date': f'2024-01-{day:02d}', 'store': 'A', 'sales': 10 * day})
    for day in (1, 3, 4, 5, 6, 7, 8):
        rows.append({'date': f'2024-01-{day:02d}', 'store': 'B', 'sales': 5 * day})
    return rows
