#!/usr/bin/env python
"""Yearly counts of days whose region mean exceeds a threshold."""

import logging
from typing import List, Optional

import geopandas as gpd
import pandas as pd
import xarray as xr

from ..archive import RasterArchive
from ..boundaries import dissolve_region
from ..climate_config import ExtractionConfig
from ..utils.data_utils import convert_units, normalize_unit
from ..utils.time_utils import format_date
from .base_processor import BaseZonalProcessor, YearResult
from .processing_strategies import ZonalStrategy

logger = logging.getLogger(__name__)

DAILY_COLUMNS = ['date', 'exceedance']
DAILY_DATE_FORMAT = 'YYYY-MM-dd'


class ExceedanceProcessor(BaseZonalProcessor):
    """Processor for threshold exceedance days over a dissolved region."""

    def __init__(self, config: ExtractionConfig, strategy: Optional[ZonalStrategy] = None):
        if config.threshold is None:
            raise ValueError(f"Extraction '{config.name}' has no threshold")
        super().__init__(config, strategy)
        self.band = config.threshold.band
        self.column = config.threshold.column_name
        self.threshold_c = float(convert_units(config.threshold.value, config.threshold.units, 'C'))
        logger.info(
            "Threshold %g%s is %.2f°C",
            config.threshold.value, config.threshold.units, self.threshold_c,
        )

    @property
    def bands(self) -> List[str]:
        return [self.band]

    def prepare_zones(self, zones: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        region = dissolve_region(zones, name=self.config.name)
        return region.rename(columns={'zone_id': self.config.boundary.id_field})

    def _band_unit(self, data: xr.Dataset) -> str:
        units = data[self.band].attrs.get('units')
        if units is None:
            return 'C'
        try:
            return normalize_unit(units)
        except ValueError:
            logger.debug("Unrecognized units %r on %s, assuming Celsius", units, self.band)
            return 'C'

    def process_year(
        self,
        archive: RasterArchive,
        zones: gpd.GeoDataFrame,
        year: int
    ) -> YearResult:
        """Flag each day whose region mean is strictly above the threshold.

        Days without a region mean count as no exceedance.

        Returns:
            YearResult with the daily ``date``/``exceedance`` table
        """
        subset = self.load_year(archive, zones, year, bands=[self.band])
        if subset.size == 0:
            logger.warning("No %s frames for %d", self.band, year)
            return YearResult(year=year, table=pd.DataFrame(columns=DAILY_COLUMNS), frames=0)

        data = subset.to_dataset().load()
        table = self.reduce_year(data, zones, [self.band], resolution=subset.resolution)
        means = convert_units(table[self.band].astype(float), self._band_unit(data), 'C')

        missing = int(means.isna().sum())
        if missing:
            logger.warning("%d days in %d have no region mean; counted as no exceedance", missing, year)

        daily = pd.DataFrame({
            'date': [format_date(t, DAILY_DATE_FORMAT) for t in table['time']],
            'exceedance': (means > self.threshold_c).astype(int).to_numpy(),
        })
        logger.info("Year %d: %d of %d days above threshold", year, int(daily['exceedance'].sum()), len(daily))
        return YearResult(year=year, table=daily, frames=subset.size)

    def summarize(self, results: List[YearResult]) -> pd.DataFrame:
        """Yearly exceedance counts, one row per year."""
        return pd.DataFrame({
            'year': [r.year for r in results],
            self.column: [int(r.table['exceedance'].sum()) if len(r.table) else 0 for r in results],
        })

    def daily_table(self, results: List[YearResult]) -> pd.DataFrame:
        """All daily exceedance flags, in year order."""
        tables = [r.table for r in results if len(r.table)]
        if not tables:
            return pd.DataFrame(columns=DAILY_COLUMNS)
        return pd.concat(tables, ignore_index=True)
