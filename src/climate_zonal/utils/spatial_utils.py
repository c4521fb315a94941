#!/usr/bin/env python
"""Spatial processing utilities for gridded climate data and boundary polygons."""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np
import xarray as xr
import rioxarray  # noqa: F401  registers the .rio accessor
from rasterio.features import rasterize
from rasterio.transform import Affine

logger = logging.getLogger(__name__)

_X_NAMES = ('lon', 'longitude', 'x')
_Y_NAMES = ('lat', 'latitude', 'y')


def get_spatial_dims(data) -> List[str]:
    """Get spatial dimension names, handling both labeled and unlabeled scenarios.

    Args:
        data: xarray DataArray or Dataset

    Returns:
        List of spatial dimension names, y first
    """
    dims = list(data.dims)
    for y_name, x_name in (('y', 'x'), ('lat', 'lon'), ('latitude', 'longitude')):
        if y_name in dims and x_name in dims:
            return [y_name, x_name]

    # Last resort: assume the last two dimensions are spatial
    if len(dims) >= 2:
        logger.warning("Using last 2 dimensions as spatial: %s", dims[-2:])
        return dims[-2:]
    return []


def get_coordinate_arrays(data) -> Tuple[np.ndarray, np.ndarray]:
    """Extract (ys, xs) coordinate arrays from an xarray object.

    Raises:
        ValueError: If no spatial coordinates can be found
    """
    for y_name, x_name in (('y', 'x'), ('lat', 'lon'), ('latitude', 'longitude')):
        if y_name in data.coords and x_name in data.coords:
            return np.asarray(data[y_name].values), np.asarray(data[x_name].values)

    raise ValueError(
        "Could not find spatial coordinates. "
        f"Available coordinates: {list(data.coords)}, dimensions: {list(data.dims)}"
    )


def get_resolution(data) -> Tuple[float, float]:
    """Return the absolute pixel size (dx, dy) of a regular grid."""
    ys, xs = get_coordinate_arrays(data)
    if len(xs) > 1 and len(ys) > 1:
        return float(abs(xs[1] - xs[0])), float(abs(ys[1] - ys[0]))
    res_x, res_y = data.rio.resolution()
    return float(abs(res_x)), float(abs(res_y))


def standardize_grid(data, default_crs: str = 'EPSG:4326'):
    """Bring a raster Dataset/DataArray into the canonical (time, y, x) layout.

    Renames lon/lat style coordinates to x/y, writes a CRS when none is set,
    wraps 0-360 longitudes and orders the grid north-up.

    Args:
        data: Input xarray object
        default_crs: CRS assumed when the data carries none

    Returns:
        Standardized xarray object
    """
    rename_map = {}
    for name in _X_NAMES[:-1]:
        if name in data.dims or name in data.coords:
            rename_map[name] = 'x'
            break
    for name in _Y_NAMES[:-1]:
        if name in data.dims or name in data.coords:
            rename_map[name] = 'y'
            break
    if rename_map:
        data = data.rename(rename_map)

    if 'x' in data.coords and float(data.x.max()) > 180:
        logger.info("Wrapping 0-360 longitudes to -180..180")
        data = data.assign_coords(x=(data.x + 180) % 360 - 180)

    if 'x' in data.dims:
        data = data.sortby('x')
    if 'y' in data.dims:
        data = data.sortby('y', ascending=False)

    desired_order = [d for d in ('time', 'y', 'x') if d in data.dims]
    extra = [d for d in data.dims if d not in desired_order]
    data = data.transpose(*(desired_order + extra))

    data = data.rio.set_spatial_dims(x_dim='x', y_dim='y')
    if data.rio.crs is None:
        data = data.rio.write_crs(default_crs)
    return data


def grid_origin(
    xs: np.ndarray,
    ys: np.ndarray,
    resolution: Tuple[float, float]
) -> Tuple[float, float]:
    """Return (left, top) edges of a north-up grid from its pixel centers."""
    dx, dy = resolution
    return float(xs[0]) - dx / 2.0, float(ys[0]) + dy / 2.0


def zone_weights(
    geometry,
    xs: np.ndarray,
    ys: np.ndarray,
    resolution: Tuple[float, float],
    supersample: int = 1,
    all_touched: bool = False,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute the pixels covered by a polygon and their coverage weights.

    The polygon is rasterized over its own pixel window only. With
    ``supersample > 1`` each pixel is split into ``supersample**2`` cells and
    the weight is the fraction of cells burned, which approximates the
    area-weighted mean used by hosted zonal reducers.

    Zones smaller than a sub-cell fall back to the pixel under the centroid
    when it lies on the grid.

    Args:
        geometry: Shapely polygon in the grid CRS
        xs: Pixel-center x coordinates, ascending
        ys: Pixel-center y coordinates, descending
        resolution: (dx, dy) pixel size
        supersample: Sub-pixel factor per axis
        all_touched: Burn every cell touched by the polygon

    Returns:
        Tuple of (rows, cols, weights) arrays
    """
    empty = (np.empty(0, dtype=int), np.empty(0, dtype=int), np.empty(0, dtype=float))
    if geometry is None or geometry.is_empty or len(xs) == 0 or len(ys) == 0:
        return empty

    nx, ny = len(xs), len(ys)
    dx, dy = resolution
    left, top = grid_origin(xs, ys, resolution)
    minx, miny, maxx, maxy = geometry.bounds

    c0 = max(0, int(math.floor((minx - left) / dx)))
    c1 = min(nx, int(math.ceil((maxx - left) / dx)))
    r0 = max(0, int(math.floor((top - maxy) / dy)))
    r1 = min(ny, int(math.ceil((top - miny) / dy)))

    if c1 > c0 and r1 > r0:
        f = max(1, int(supersample))
        window_transform = Affine(dx / f, 0.0, left + c0 * dx, 0.0, -dy / f, top - r0 * dy)
        burned = rasterize(
            [(geometry, 1)],
            out_shape=((r1 - r0) * f, (c1 - c0) * f),
            transform=window_transform,
            fill=0,
            dtype='uint8',
            all_touched=all_touched,
        )
        coverage = burned.reshape(r1 - r0, f, c1 - c0, f).sum(axis=(1, 3)) / float(f * f)
        rr, cc = np.nonzero(coverage)
        if len(rr):
            return rr + r0, cc + c0, coverage[rr, cc].astype(float)

    # Centroid fallback for zones that miss every cell
    centroid = geometry.centroid
    if left <= centroid.x <= left + nx * dx and top - ny * dy <= centroid.y <= top:
        col = min(nx - 1, int((centroid.x - left) // dx))
        row = min(ny - 1, int((top - centroid.y) // dy))
        logger.debug("Zone assigned to centroid pixel (%d, %d)", row, col)
        return np.array([row]), np.array([col]), np.array([1.0])

    return empty


def weighted_zone_mean(
    values: np.ndarray,
    rows: np.ndarray,
    cols: np.ndarray,
    weights: np.ndarray
) -> np.ndarray:
    """Weighted mean of a (time, y, x) array over selected pixels, skipping NaN.

    Returns:
        Array of shape (time,); NaN where no covered pixel holds data
    """
    n_steps = values.shape[0]
    if len(rows) == 0:
        return np.full(n_steps, np.nan)

    samples = values[:, rows, cols].astype(float)
    valid = ~np.isnan(samples)
    numerator = np.where(valid, samples, 0.0) @ weights
    denominator = valid.astype(float) @ weights
    out = np.full(n_steps, np.nan)
    np.divide(numerator, denominator, out=out, where=denominator > 0)
    return out


def clip_zone_data(data, geometry, all_touched: bool = False):
    """Clip data to a zone geometry using rioxarray.

    Args:
        data: Standardized xarray object with CRS
        geometry: Shapely geometry in the data CRS
        all_touched: Whether to include all touched pixels

    Returns:
        Clipped xarray object; raises ``rioxarray.exceptions.NoDataInBounds``
        when the geometry does not overlap the grid
    """
    return data.rio.clip([geometry], crs=data.rio.crs, all_touched=all_touched, drop=True)


def subset_to_bounds(
    data,
    bounds: Tuple[float, float, float, float],
    resolution: Optional[Tuple[float, float]] = None,
    buffer_pixels: int = 1,
):
    """Subset a north-up grid to a bounding box padded by whole pixels.

    Pixels touching the box edge are kept, plus ``buffer_pixels`` beyond them.
    """
    if resolution is None:
        resolution = get_resolution(data)
    dx, dy = resolution
    minx, miny, maxx, maxy = bounds
    # Pixel centers of grids aligned to the box sit half a pixel off these edges
    pad_x = dx * (buffer_pixels + 1)
    pad_y = dy * (buffer_pixels + 1)
    return data.sel(
        x=slice(minx - pad_x, maxx + pad_x),
        y=slice(maxy + pad_y, miny - pad_y),
    )
