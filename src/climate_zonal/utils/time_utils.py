#!/usr/bin/env python
"""Date window and date formatting helpers for yearly extraction loops."""

import re
from datetime import date
from typing import List, Optional, Tuple

import pandas as pd
import xarray as xr

# Joda-style tokens used in export date columns, longest tokens first
_JODA_TOKENS = {
    'yyyy': '%Y',
    'YYYY': '%Y',
    'yy': '%y',
    'YY': '%y',
    'MM': '%m',
    'dd': '%d',
    'DD': '%j',
    'HH': '%H',
    'mm': '%M',
    'ss': '%S',
}
_JODA_PATTERN = re.compile('|'.join(sorted(_JODA_TOKENS, key=len, reverse=True)))


def joda_to_strftime(pattern: str) -> str:
    """Translate a Joda-style date pattern (e.g. ``YYYYMMdd``) to strftime.

    Characters that are not recognized tokens are copied through, so
    ``YYYY-MM-dd`` becomes ``%Y-%m-%d``.
    """
    return _JODA_PATTERN.sub(lambda m: _JODA_TOKENS[m.group(0)], pattern)


def format_date(value, pattern: str = 'YYYYMMdd') -> str:
    """Format a timestamp-like value with a Joda-style pattern."""
    if not hasattr(value, 'strftime'):
        value = pd.Timestamp(value)
    return value.strftime(joda_to_strftime(pattern))


def resolve_end_year(end_year: Optional[int]) -> int:
    """Return ``end_year`` or the current calendar year when it is None."""
    if end_year is None:
        return date.today().year
    return int(end_year)


def year_range(start_year: int, end_year: Optional[int] = None) -> List[int]:
    """Inclusive list of years from ``start_year`` to ``end_year``."""
    end = resolve_end_year(end_year)
    if end < start_year:
        raise ValueError(f"end_year {end} is before start_year {start_year}")
    return list(range(int(start_year), end + 1))


def year_window(year: int) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """Half-open date window ``[year-01-01, year+1-01-01)``."""
    start = pd.Timestamp(year=int(year), month=1, day=1)
    end = pd.Timestamp(year=int(year) + 1, month=1, day=1)
    return start, end


def to_datetime_index(data) -> pd.DatetimeIndex:
    """Return the time coordinate of a Dataset/DataArray as a DatetimeIndex.

    cftime calendars are converted through ``CFTimeIndex.to_datetimeindex``.
    """
    index = data.indexes['time']
    if isinstance(index, xr.CFTimeIndex):
        return index.to_datetimeindex()
    return pd.DatetimeIndex(index)
