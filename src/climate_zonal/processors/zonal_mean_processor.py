#!/usr/bin/env python
"""Per-feature daily zonal means, one table per year."""

import logging

import geopandas as gpd
import pandas as pd

from ..archive import RasterArchive
from ..utils.data_utils import drop_incomplete_rows
from ..utils.time_utils import format_date
from .base_processor import BaseZonalProcessor, YearResult

logger = logging.getLogger(__name__)


class ZonalMeanProcessor(BaseZonalProcessor):
    """Processor for the mean of every band over every feature and day."""

    def process_year(
        self,
        archive: RasterArchive,
        zones: gpd.GeoDataFrame,
        year: int
    ) -> YearResult:
        """Compute the flattened zonal mean table of one year.

        Every frame is reduced per feature, tagged with its date and rows
        missing any band are dropped.

        Returns:
            YearResult whose table has the configured selector columns
        """
        config = self.config
        selectors = config.selectors

        subset = self.load_year(archive, zones, year)
        if subset.size == 0:
            return YearResult(year=year, table=pd.DataFrame(columns=selectors), frames=0)

        data = subset.to_dataset().load()
        table = self.reduce_year(data, zones, self.bands, resolution=subset.resolution)
        table[config.date_field] = [format_date(t, config.date_format) for t in table['time']]
        table = drop_incomplete_rows(table, self.bands)

        logger.info("Year %d: %d rows from %d frames", year, len(table), subset.size)
        return YearResult(year=year, table=table[selectors], frames=subset.size)
