#!/usr/bin/env python
"""Unit conversion and table cleaning helpers."""

import logging
from typing import Sequence

import pandas as pd

logger = logging.getLogger(__name__)

_UNIT_ALIASES = {
    'c': 'C', 'degc': 'C', 'celsius': 'C', '°c': 'C', 'deg c': 'C',
    'f': 'F', 'degf': 'F', 'fahrenheit': 'F', '°f': 'F', 'deg f': 'F',
    'k': 'K', 'kelvin': 'K',
}


def normalize_unit(unit: str) -> str:
    """Map a temperature unit spelling to one of ``C``, ``F`` or ``K``."""
    key = str(unit).strip().lower()
    if key not in _UNIT_ALIASES:
        raise ValueError(f"Unsupported temperature unit: {unit!r}")
    return _UNIT_ALIASES[key]


def convert_units(value, from_unit: str, to_unit: str):
    """Convert temperatures between Celsius, Fahrenheit and Kelvin.

    Works on scalars, numpy arrays and xarray objects alike.

    Args:
        value: Temperature value(s)
        from_unit: Source unit
        to_unit: Target unit

    Returns:
        Converted value(s) of the same kind as ``value``
    """
    src = normalize_unit(from_unit)
    dst = normalize_unit(to_unit)
    if src == dst:
        return value

    # Go through Celsius
    if src == 'F':
        celsius = (value - 32) * 5 / 9
    elif src == 'K':
        celsius = value - 273.15
    else:
        celsius = value

    if dst == 'F':
        return celsius * 9 / 5 + 32
    if dst == 'K':
        return celsius + 273.15
    return celsius


def drop_incomplete_rows(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Drop rows where any of ``columns`` is null.

    Args:
        df: Table of zonal statistics
        columns: Columns that must all be present

    Returns:
        Filtered copy with a fresh index
    """
    if df.empty:
        return df.reset_index(drop=True)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found in table: {missing}")
    keep = df[list(columns)].notna().all(axis=1)
    dropped = int((~keep).sum())
    if dropped:
        logger.debug("Dropped %d rows without data", dropped)
    return df.loc[keep].reset_index(drop=True)
