"""
Climate Zonal - yearly zonal statistics from daily climate rasters.

Extracts per-county or per-ZIP daily means and threshold exceedance counts
from PRISM-style raster archives and exports them as CSV tables.
"""

__version__ = "0.1.0"

from .archive import ArchiveError, RasterArchive
from .boundaries import BoundaryError, load_boundaries
from .climate_config import ConfigurationError, ExtractionConfig, get_config, load_config
from .pipeline import ExportRecord, run_extraction

__all__ = [
    "ArchiveError",
    "BoundaryError",
    "ConfigurationError",
    "ExportRecord",
    "ExtractionConfig",
    "RasterArchive",
    "get_config",
    "load_boundaries",
    "load_config",
    "run_extraction",
]
