"""Zonal statistics processors and reduction strategies."""

from .base_processor import BaseZonalProcessor, YearResult
from .exceedance_processor import ExceedanceProcessor
from .processing_strategies import ClipStrategy, RasterizedStrategy, ZonalStrategy, get_strategy
from .zonal_mean_processor import ZonalMeanProcessor

__all__ = [
    "BaseZonalProcessor",
    "YearResult",
    "ZonalMeanProcessor",
    "ExceedanceProcessor",
    "ZonalStrategy",
    "RasterizedStrategy",
    "ClipStrategy",
    "get_strategy",
]
