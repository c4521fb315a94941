#!/usr/bin/env python
"""
Daily raster archive access.

A ``RasterArchive`` wraps a gridded time series (Zarr, NetCDF or a directory
of PRISM daily rasters) and supports the same narrowing steps a hosted image
collection does: band selection, date filtering and bounds filtering. Filters
return new archives; nothing is read until frames are requested.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import geopandas as gpd
import numpy as np
import pandas as pd
import xarray as xr
import rioxarray

from climate_zonal.utils.spatial_utils import (
    get_coordinate_arrays,
    get_resolution,
    standardize_grid,
    subset_to_bounds,
)
from climate_zonal.utils.time_utils import to_datetime_index

logger = logging.getLogger(__name__)

# PRISM daily file names, legacy and current distributions
PRISM_FILE_PATTERNS = (
    re.compile(
        r'^PRISM_(?P<variable>[a-z]+)_(?P<stability>[a-z0-9]+)_(?P<resolution>[A-Za-z0-9]+)_'
        r'(?P<date>\d{8})_bil\.(?:bil|tif)$'
    ),
    re.compile(r'^prism_(?P<variable>[a-z]+)_us_(?P<resolution>[a-z0-9]+)_(?P<date>\d{8})\.tif$'),
)

NETCDF_SUFFIXES = ('.nc', '.nc4', '.netcdf')


class ArchiveError(ValueError):
    """Raised when a raster archive cannot be opened or queried."""
    pass


def index_prism_directory(directory: Union[str, Path]) -> pd.DataFrame:
    """Index PRISM daily rasters in a directory tree by variable and date.

    Args:
        directory: Directory searched recursively

    Returns:
        DataFrame with ``time``, ``variable`` and ``path`` columns sorted by time
    """
    records = []
    for path in sorted(Path(directory).rglob('*')):
        if not path.is_file():
            continue
        for pattern in PRISM_FILE_PATTERNS:
            match = pattern.match(path.name)
            if match:
                records.append({
                    'time': pd.Timestamp(match.group('date')),
                    'variable': match.group('variable'),
                    'path': path,
                })
                break
    files = pd.DataFrame(records, columns=['time', 'variable', 'path'])
    # Prefer the first file found when provisional and stable copies overlap
    files = files.drop_duplicates(subset=['time', 'variable'], keep='first')
    return files.sort_values(['time', 'variable']).reset_index(drop=True)


def _is_zarr(path: Path) -> bool:
    return path.suffix == '.zarr' or (path / '.zgroup').exists() or (path / 'zarr.json').exists()


def _read_prism_file(path: Path) -> xr.DataArray:
    da = rioxarray.open_rasterio(path, masked=True)
    if 'band' in da.dims:
        da = da.squeeze('band', drop=True)
    return da


class RasterArchive:
    """A filterable daily raster time series."""

    def __init__(
        self,
        dataset: Optional[xr.Dataset] = None,
        files: Optional[pd.DataFrame] = None,
        source: Optional[Path] = None,
        bands: Optional[List[str]] = None,
        bounds: Optional[Tuple[float, float, float, float]] = None,
        resolution: Optional[Tuple[float, float]] = None,
        crs: Any = None,
    ):
        if dataset is None and files is None:
            raise ArchiveError("RasterArchive needs a dataset or a file index")
        self._dataset = dataset
        self._files = files
        self.source = source
        self._bands = bands
        self._bounds = bounds
        self.resolution = resolution
        self.crs = crs

    # ------------------------------------------------------------------ opening

    @classmethod
    def open(cls, path: Union[str, Path], bands: Optional[Sequence[str]] = None) -> 'RasterArchive':
        """Open an archive from a Zarr store, NetCDF file/directory or PRISM directory.

        Args:
            path: Archive location
            bands: Bands to keep; all bands when None

        Returns:
            Archive limited to ``bands``
        """
        path = Path(path)
        if not path.exists():
            raise ArchiveError(f"Raster archive not found: {path}")

        if path.is_dir() and _is_zarr(path):
            logger.info("Opening Zarr archive: %s", path)
            archive = cls.from_dataset(xr.open_zarr(path), source=path)
        elif path.is_file() and path.suffix in NETCDF_SUFFIXES:
            logger.info("Opening NetCDF archive: %s", path)
            archive = cls.from_dataset(xr.open_dataset(path, chunks={}), source=path)
        elif path.is_dir():
            nc_files = sorted(p for p in path.iterdir() if p.suffix in NETCDF_SUFFIXES)
            if nc_files:
                logger.info("Opening %d NetCDF files in %s", len(nc_files), path)
                ds = xr.open_mfdataset(nc_files, combine='by_coords')
                archive = cls.from_dataset(ds, source=path)
            else:
                archive = cls.from_prism_directory(path)
        else:
            raise ArchiveError(f"Unsupported raster archive: {path}")

        if bands is not None:
            archive = archive.select(bands)
        return archive

    @classmethod
    def from_dataset(cls, dataset: xr.Dataset, source: Optional[Path] = None) -> 'RasterArchive':
        """Wrap an in-memory or lazily loaded xarray Dataset."""
        if isinstance(dataset, xr.DataArray):
            dataset = dataset.to_dataset(name=dataset.name or 'value')
        if 'time' not in dataset.dims:
            raise ArchiveError(f"Archive has no time dimension: {list(dataset.dims)}")
        dataset = standardize_grid(dataset)
        return cls(
            dataset=dataset,
            source=source,
            resolution=get_resolution(dataset),
            crs=dataset.rio.crs,
        )

    @classmethod
    def from_prism_directory(cls, directory: Union[str, Path]) -> 'RasterArchive':
        """Index a directory of PRISM daily rasters without reading them."""
        files = index_prism_directory(directory)
        if files.empty:
            raise ArchiveError(f"No NetCDF or PRISM raster files found in {directory}")
        logger.info(
            "Indexed %d PRISM files (%s) in %s",
            len(files), ", ".join(sorted(files['variable'].unique())), directory,
        )
        template = standardize_grid(_read_prism_file(files.iloc[0]['path']))
        return cls(
            files=files,
            source=Path(directory),
            resolution=get_resolution(template),
            crs=template.rio.crs,
        )

    def _replace(self, **changes) -> 'RasterArchive':
        state = dict(
            dataset=self._dataset,
            files=self._files,
            source=self.source,
            bands=self._bands,
            bounds=self._bounds,
            resolution=self.resolution,
            crs=self.crs,
        )
        state.update(changes)
        return RasterArchive(**state)

    # ------------------------------------------------------------------ queries

    @property
    def available_bands(self) -> List[str]:
        if self._dataset is not None:
            return [str(v) for v in self._dataset.data_vars if 'time' in self._dataset[v].dims]
        return sorted(self._files['variable'].unique())

    @property
    def bands(self) -> List[str]:
        return list(self._bands) if self._bands is not None else self.available_bands

    @property
    def dates(self) -> pd.DatetimeIndex:
        if self._dataset is not None:
            return to_datetime_index(self._dataset)
        return pd.DatetimeIndex(sorted(self._files['time'].unique()))

    @property
    def size(self) -> int:
        return len(self.dates)

    def select(self, bands: Sequence[str]) -> 'RasterArchive':
        """Keep only ``bands``; raises ``ArchiveError`` for unknown bands."""
        bands = list(bands)
        missing = [b for b in bands if b not in self.available_bands]
        if missing:
            raise ArchiveError(f"Bands {missing} not in archive. Available: {self.available_bands}")
        if self._dataset is not None:
            return self._replace(dataset=self._dataset[bands], bands=bands)
        files = self._files[self._files['variable'].isin(bands)].reset_index(drop=True)
        return self._replace(files=files, bands=bands)

    def filter_date(self, start, end) -> 'RasterArchive':
        """Keep frames with ``start <= time < end``."""
        start, end = pd.Timestamp(start), pd.Timestamp(end)
        if self._dataset is not None:
            times = to_datetime_index(self._dataset)
            keep = np.nonzero((times >= start) & (times < end))[0]
            return self._replace(dataset=self._dataset.isel(time=keep))
        times = self._files['time']
        files = self._files[(times >= start) & (times < end)].reset_index(drop=True)
        return self._replace(files=files)

    def filter_bounds(self, features: gpd.GeoDataFrame) -> 'RasterArchive':
        """Restrict the grid to the bounds of ``features`` plus one pixel."""
        if features.empty:
            raise ArchiveError("Cannot filter bounds with an empty feature collection")
        if self.crs is not None and features.crs is not None and features.crs != self.crs:
            features = features.to_crs(self.crs)
        bounds = tuple(float(b) for b in features.total_bounds)
        if self._dataset is not None:
            return self._replace(
                dataset=subset_to_bounds(self._dataset, bounds, self.resolution),
                bounds=bounds,
            )
        return self._replace(bounds=bounds)

    # ------------------------------------------------------------------ reading

    def to_dataset(self) -> xr.Dataset:
        """Materialize the filtered archive as a standardized Dataset."""
        if self._dataset is not None:
            return self._dataset

        bands = self.bands
        if self._files.empty:
            return xr.Dataset(coords={'time': pd.DatetimeIndex([])})

        per_band = []
        for band in bands:
            band_files = self._files[self._files['variable'] == band]
            if band_files.empty:
                continue
            frames = []
            for row in band_files.itertuples(index=False):
                da = standardize_grid(_read_prism_file(row.path))
                if self._bounds is not None:
                    da = subset_to_bounds(da, self._bounds, self.resolution)
                frames.append(da.expand_dims(time=[row.time]))
            per_band.append(xr.concat(frames, dim='time').rename(band))

        ds = xr.merge(per_band, join='outer', compat='override')
        return ds.rio.write_crs(self.crs) if self.crs is not None else ds

    def frames(self) -> Iterator[Tuple[pd.Timestamp, xr.Dataset]]:
        """Iterate (timestamp, single-frame Dataset) pairs in time order."""
        ds = self.to_dataset().load()
        for i, ts in enumerate(to_datetime_index(ds)):
            yield ts, ds.isel(time=i)

    def describe(self) -> Dict[str, Any]:
        """Summary of bands, date range and grid."""
        dates = self.dates
        info: Dict[str, Any] = {
            'source': str(self.source) if self.source else 'in-memory',
            'bands': self.bands,
            'frames': len(dates),
            'start': dates.min().date().isoformat() if len(dates) else None,
            'end': dates.max().date().isoformat() if len(dates) else None,
            'resolution': self.resolution,
            'crs': str(self.crs) if self.crs is not None else None,
        }
        if self._dataset is not None:
            ys, xs = get_coordinate_arrays(self._dataset)
            info['shape'] = (len(ys), len(xs))
        return info

    def __repr__(self) -> str:
        return f"RasterArchive(source={self.source}, bands={self.bands}, frames={self.size})"
