#!/usr/bin/env python
"""Base processor class for yearly zonal climate extractions."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import geopandas as gpd
import pandas as pd
import xarray as xr

from ..archive import RasterArchive
from ..climate_config import ExtractionConfig
from ..utils.time_utils import year_window
from .processing_strategies import ZonalStrategy, get_strategy

logger = logging.getLogger(__name__)


@dataclass
class YearResult:
    """Table produced for one year, with the number of frames it came from."""

    year: int
    table: pd.DataFrame
    frames: int


class BaseZonalProcessor(ABC):
    """Base class for per-year zonal statistics over a raster archive."""

    def __init__(
        self,
        config: ExtractionConfig,
        strategy: Optional[ZonalStrategy] = None
    ):
        """Initialize the processor.

        Args:
            config: Extraction configuration
            strategy: Zonal reduction strategy; built from the config when None
        """
        self.config = config
        self.strategy = strategy or get_strategy(
            config.strategy,
            coverage_supersample=config.coverage_supersample,
            all_touched=config.all_touched,
        )

    @property
    def bands(self) -> List[str]:
        return list(self.config.archive.bands)

    def prepare_zones(self, zones: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Turn loaded boundary features into the zones that get reduced."""
        return zones

    def load_year(
        self,
        archive: RasterArchive,
        zones: gpd.GeoDataFrame,
        year: int,
        bands: Optional[Sequence[str]] = None
    ) -> RasterArchive:
        """Narrow the archive to one year, the requested bands and the zone bounds.

        Args:
            archive: Full raster archive
            zones: Zones the year will be reduced over
            year: Calendar year; the window is ``[year-01-01, year+1-01-01)``
            bands: Bands to keep; the configured bands when None

        Returns:
            Filtered archive
        """
        start, end = year_window(year)
        subset = (
            archive
            .select(bands or self.bands)
            .filter_date(start, end)
            .filter_bounds(zones)
        )
        logger.info("Year %d: %d frames between %s and %s", year, subset.size, start.date(), end.date())
        return subset

    def reduce_year(
        self,
        data: xr.Dataset,
        zones: gpd.GeoDataFrame,
        bands: Sequence[str],
        resolution=None
    ) -> pd.DataFrame:
        """Reduce every frame of a year's data to per-zone means."""
        return self.strategy.reduce(
            data,
            zones,
            id_field=self.config.boundary.id_field,
            bands=bands,
            resolution=resolution,
        )

    @abstractmethod
    def process_year(
        self,
        archive: RasterArchive,
        zones: gpd.GeoDataFrame,
        year: int
    ) -> YearResult:
        """Process one year of the archive.

        This method must be implemented by subclasses for specific statistics.

        Args:
            archive: Raster archive
            zones: Zones prepared by ``prepare_zones``
            year: Calendar year

        Returns:
            Result table for the year
        """
        pass

    def close(self):
        """Clean up resources."""
        pass

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        self.close()
        return False
