#!/usr/bin/env python
"""Administrative boundary loading, filtering and inspection."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import geopandas as gpd
import pandas as pd

from climate_zonal.climate_config import BoundaryConfig

logger = logging.getLogger(__name__)

DESCRIBE_FIELDS = ['NAME', 'GEOID', 'COUNTYFP']


class BoundaryError(ValueError):
    """Raised when boundary features are missing or cannot be selected."""
    pass


def read_boundaries(path: Union[str, Path], layer: Optional[str] = None) -> gpd.GeoDataFrame:
    """Read a vector file of boundary polygons."""
    path = Path(path)
    if not path.exists():
        raise BoundaryError(f"Boundary file not found: {path}")
    logger.info("Loading boundaries: %s", path)
    gdf = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)
    if gdf.crs is None:
        logger.warning("Boundary file has no CRS, assuming EPSG:4326")
        gdf = gdf.set_crs('EPSG:4326')
    return gdf


def filter_features(
    gdf: gpd.GeoDataFrame,
    filters: Dict[str, Union[str, int, Sequence[Union[str, int]]]]
) -> gpd.GeoDataFrame:
    """Keep features whose attributes match every filter.

    A scalar value is an equality filter. A list keeps features matching any
    of its values, which is how several filtered collections are merged.
    Values are compared as strings so FIPS codes match whether the file
    stores them as text or numbers.

    Args:
        gdf: Boundary features
        filters: Attribute name to value(s)

    Returns:
        Filtered features in their original order
    """
    mask = pd.Series(True, index=gdf.index)
    for field, wanted in filters.items():
        if field not in gdf.columns:
            raise BoundaryError(
                f"Filter attribute '{field}' not found. Available: {list(gdf.columns)}"
            )
        if isinstance(wanted, (list, tuple, set)):
            values = [str(v) for v in wanted]
        else:
            values = [str(wanted)]
        mask &= gdf[field].astype(str).isin(values)
    return gdf.loc[mask]


def merge_features(*collections: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Concatenate feature collections, preserving order."""
    if not collections:
        raise BoundaryError("No feature collections to merge")
    crs = collections[0].crs
    parts = [c.to_crs(crs) if c.crs != crs else c for c in collections]
    return gpd.GeoDataFrame(pd.concat(parts), crs=crs)


def select_id(gdf: gpd.GeoDataFrame, id_field: str) -> gpd.GeoDataFrame:
    """Reduce features to the unique id column plus geometry.

    Ids are kept as strings, verbatim.
    """
    if id_field not in gdf.columns:
        raise BoundaryError(
            f"Unique id field '{id_field}' not found. Available: {list(gdf.columns)}"
        )
    out = gdf[[id_field, gdf.geometry.name]].copy()
    out[id_field] = out[id_field].astype(str)
    return out.reset_index(drop=True)


def load_boundaries(config: BoundaryConfig) -> gpd.GeoDataFrame:
    """Load, filter and reproject the boundary features of an extraction.

    Args:
        config: Boundary configuration

    Returns:
        GeoDataFrame with the id column and geometry in ``target_crs``
    """
    gdf = read_boundaries(config.path, layer=config.layer)
    if config.filters:
        gdf = filter_features(gdf, config.filters)

    if gdf.empty:
        raise BoundaryError(
            f"No boundary features left after filtering {config.path} with {config.filters}"
        )

    gdf = select_id(gdf, config.id_field)
    if gdf.crs.to_string() != config.target_crs:
        logger.info("Converting CRS from %s to %s", gdf.crs, config.target_crs)
        gdf = gdf.to_crs(config.target_crs)

    logger.info("Filtered feature collection size: %d", len(gdf))
    logger.info("Sample feature: %s=%s", config.id_field, gdf.iloc[0][config.id_field])
    return gdf


def dissolve_region(gdf: gpd.GeoDataFrame, name: str = 'region') -> gpd.GeoDataFrame:
    """Union all features into one region polygon."""
    if gdf.empty:
        raise BoundaryError("Cannot dissolve an empty feature collection")
    geometry = gdf.geometry.union_all()
    return gpd.GeoDataFrame({'zone_id': [name]}, geometry=[geometry], crs=gdf.crs)


def describe_features(
    gdf: gpd.GeoDataFrame,
    fields: Optional[Iterable[str]] = None
) -> pd.DataFrame:
    """Tabulate identifying attributes of features, with their index.

    Args:
        gdf: Boundary features
        fields: Attribute columns to list; missing columns are skipped

    Returns:
        DataFrame with an ``index`` column followed by the requested fields
    """
    fields = list(fields) if fields is not None else list(DESCRIBE_FIELDS)
    present: List[str] = [f for f in fields if f in gdf.columns]
    missing = [f for f in fields if f not in gdf.columns]
    if missing:
        logger.debug("Fields not in boundary file: %s", missing)
    table = pd.DataFrame(gdf[present]).copy()
    table.insert(0, 'index', [str(i) for i in gdf.index])
    return table.reset_index(drop=True)
