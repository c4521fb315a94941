"""
Utility modules for zonal climate extraction.

This package provides spatial helpers, unit conversion, date handling
and table export used by the processors.
"""

from .data_utils import convert_units, drop_incomplete_rows
from .output_utils import OutputManager, get_output_manager
from .spatial_utils import get_coordinate_arrays, get_spatial_dims, standardize_grid, zone_weights
from .time_utils import format_date, joda_to_strftime, year_range, year_window

__all__ = [
    # Spatial utilities
    "get_coordinate_arrays",
    "get_spatial_dims",
    "standardize_grid",
    "zone_weights",
    # Data utilities
    "convert_units",
    "drop_incomplete_rows",
    # Dates
    "format_date",
    "joda_to_strftime",
    "year_range",
    "year_window",
    # Output
    "OutputManager",
    "get_output_manager",
]
