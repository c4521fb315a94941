"""
Pytest configuration and fixtures for Climate Zonal tests.

The synthetic archive is a 20 x 20 grid of 0.1 degree pixels covering
-78..-76 E, 38..40 N, with five days spanning the 2020/2021 new year.
Band values are chosen so zonal means are exact:

* ``ppt``    = column index + 100 * day index
* ``tmax``   = one value per day, constant in space (degC)
* ``tmean``  = 10, ``tmin`` = 0
* ``tdmean`` = 5, but missing everywhere on 2020-12-31

County boxes are aligned to pixel edges.
"""

import pytest
from pathlib import Path
import numpy as np
import xarray as xr
import pandas as pd
import geopandas as gpd
import rioxarray  # noqa: F401
from shapely.geometry import box

from climate_zonal.climate_config import ExtractionConfig
from climate_zonal.utils.spatial_utils import standardize_grid

DATES = pd.to_datetime(['2020-12-30', '2020-12-31', '2021-01-01', '2021-01-02', '2021-01-03'])
TMAX = [25.0, 27.0, 20.0, 30.0, 26.0]
XS = -78 + 0.05 + 0.1 * np.arange(20)
YS = 40 - 0.05 - 0.1 * np.arange(20)

COUNTIES = [
    {"NAME": "Montgomery", "STATEFP": "24", "COUNTYFP": "031", "GEOID": "24031",
     "geometry": box(-77.5, 39.0, -77.0, 39.5)},
    {"NAME": "Baltimore", "STATEFP": "24", "COUNTYFP": "005", "GEOID": "24005",
     "geometry": box(-77.0, 39.0, -76.5, 39.5)},
    {"NAME": "Baltimore city", "STATEFP": "24", "COUNTYFP": "510", "GEOID": "24510",
     "geometry": box(-76.5, 39.2, -76.3, 39.4)},
    {"NAME": "Montgomery", "STATEFP": "42", "COUNTYFP": "091", "GEOID": "42091",
     "geometry": box(-77.9, 39.6, -77.6, 39.9)},
]


def build_dataset() -> xr.Dataset:
    """Daily PRISM-like bands on an ascending lat/lon grid."""
    n_t, n_y, n_x = len(DATES), len(YS), len(XS)
    lats = YS[::-1]

    cols = np.broadcast_to(np.arange(n_x, dtype=float), (n_t, n_y, n_x))
    days = np.arange(n_t, dtype=float)[:, None, None]
    ppt = cols + 100.0 * days
    tmax = np.broadcast_to(np.array(TMAX)[:, None, None], (n_t, n_y, n_x)).copy()
    tdmean = np.full((n_t, n_y, n_x), 5.0)
    tdmean[1] = np.nan

    dims = ["time", "lat", "lon"]
    return xr.Dataset(
        {
            "ppt": (dims, ppt, {"units": "mm"}),
            "tmean": (dims, np.full((n_t, n_y, n_x), 10.0), {"units": "degC"}),
            "tmax": (dims, tmax, {"units": "degC"}),
            "tmin": (dims, np.zeros((n_t, n_y, n_x)), {"units": "degC"}),
            "tdmean": (dims, tdmean, {"units": "degC"}),
        },
        coords={"time": DATES, "lat": lats, "lon": XS},
        attrs={"title": "Synthetic PRISM daily test data"},
    )


@pytest.fixture(scope="session")
def test_data_dir(tmp_path_factory):
    """Session-wide directory for generated test data."""
    return tmp_path_factory.mktemp("climate_zonal_test_")


@pytest.fixture
def climate_dataset():
    """Fresh in-memory synthetic dataset."""
    return build_dataset()


@pytest.fixture(scope="session")
def netcdf_archive(test_data_dir):
    """Synthetic dataset written to a single NetCDF file."""
    path = test_data_dir / "prism_daily.nc"
    build_dataset().to_netcdf(path)
    return path


@pytest.fixture(scope="session")
def zarr_archive(test_data_dir):
    """Synthetic dataset written to a Zarr store."""
    path = test_data_dir / "prism_daily.zarr"
    build_dataset().to_zarr(path, mode="w")
    return path


@pytest.fixture(scope="session")
def prism_directory(test_data_dir):
    """Synthetic tmax and ppt bands written as PRISM-named daily GeoTIFFs."""
    directory = test_data_dir / "prism"
    (directory / "tmax").mkdir(parents=True)
    (directory / "ppt").mkdir(parents=True)
    ds = standardize_grid(build_dataset())
    for band in ("tmax", "ppt"):
        for i, ts in enumerate(DATES):
            name = f"PRISM_{band}_stable_4kmD2_{ts:%Y%m%d}_bil.tif"
            frame = ds[band].isel(time=i).astype("float32")
            frame.rio.to_raster(directory / band / name)
    # Files that are not PRISM rasters are ignored
    (directory / "README.txt").write_text("PRISM daily subset")
    return directory


@pytest.fixture
def counties_gdf():
    """Mock county boundaries."""
    return gpd.GeoDataFrame(COUNTIES, crs="EPSG:4326")


@pytest.fixture(scope="session")
def county_shapefile(test_data_dir):
    """Mock county boundaries saved as a shapefile."""
    path = test_data_dir / "shapefiles" / "test_counties.shp"
    path.parent.mkdir(exist_ok=True)
    gpd.GeoDataFrame(COUNTIES, crs="EPSG:4326").to_file(path)
    return path


@pytest.fixture
def make_extraction(county_shapefile, netcdf_archive):
    """Factory for extraction configs over the synthetic data."""
    def _make(**overrides) -> ExtractionConfig:
        data = {
            "name": "test_extraction",
            "boundary": {
                "path": county_shapefile,
                "id_field": "GEOID",
                "filters": {"NAME": "Montgomery", "STATEFP": "24"},
            },
            "archive": {"path": netcdf_archive},
            "export": {"folder": "TEST_EXPORT", "filename_base": "TEST_{scale}m_"},
            "start_year": 2020,
            "end_year": 2021,
        }
        data.update(overrides)
        return ExtractionConfig(**data)
    return _make


@pytest.fixture
def cli_runner():
    """Create a CLI runner for testing Typer apps."""
    from typer.testing import CliRunner
    return CliRunner()
