#!/usr/bin/env python
"""
Configuration for zonal climate extractions.

Extractions are declared as pydantic models and can be loaded from YAML.
A set of built-in presets reproduces the county and ZCTA workflows the
toolkit was first written for.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from rich.logging import RichHandler

from climate_zonal.utils.data_utils import normalize_unit
from climate_zonal.utils.time_utils import resolve_end_year

CONFIG_ENV_VAR = "CLIMATE_ZONAL_CONFIG"

PRISM_BANDS = ['ppt', 'tmean', 'tmax', 'tmin', 'tdmean']


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class BoundaryConfig(BaseModel):
    """Where the boundary polygons come from and which of them to keep."""

    path: Path = Field(..., description="Vector file with boundary polygons")
    id_field: str = Field("GEOID", description="Unique feature identifier column")
    filters: Dict[str, Union[str, int, List[Union[str, int]]]] = Field(
        default_factory=dict,
        description="Attribute filters; a list keeps features matching any value",
    )
    layer: Optional[str] = None
    target_crs: str = "EPSG:4326"


class ArchiveConfig(BaseModel):
    """Raster archive location and the bands to extract."""

    path: Path = Field(..., description="Zarr store, NetCDF file/directory or PRISM directory")
    bands: List[str] = Field(default_factory=lambda: list(PRISM_BANDS), min_length=1)


class ExportConfig(BaseModel):
    """Export folder and file naming."""

    folder: Path
    filename_base: str
    write_metadata: bool = False


class ThresholdConfig(BaseModel):
    """Threshold used to count exceedance days."""

    band: str = "tmax"
    value: float = 80.0
    units: str = "F"
    column: Optional[str] = None

    @field_validator("units")
    @classmethod
    def _check_units(cls, v: str) -> str:
        return normalize_unit(v)

    @property
    def column_name(self) -> str:
        return self.column or f"daysAbove{self.value:g}{self.units}"


class ExtractionConfig(BaseModel):
    """A complete extraction: boundary, archive, statistic, years and export."""

    name: str
    mode: Literal["zonal_mean", "exceedance"] = "zonal_mean"
    boundary: BoundaryConfig
    archive: ArchiveConfig
    export: ExportConfig
    start_year: int = Field(..., ge=1800)
    end_year: Optional[int] = Field(None, description="Inclusive; None means the current year")
    scale: int = Field(4000, gt=0, description="Nominal pixel size in meters")
    date_field: str = "date_ymd"
    date_format: str = "YYYYMMdd"
    strategy: Literal["rasterized", "clip"] = "rasterized"
    coverage_supersample: int = Field(4, ge=1, le=16)
    all_touched: bool = False
    threshold: Optional[ThresholdConfig] = None
    include_daily: bool = False

    @model_validator(mode="after")
    def _check_consistency(self) -> "ExtractionConfig":
        if self.end_year is not None and self.end_year < self.start_year:
            raise ValueError(
                f"end_year ({self.end_year}) must not be before start_year ({self.start_year})"
            )
        if self.mode == "exceedance" and self.threshold is None:
            raise ValueError("exceedance extractions require a threshold")
        if self.threshold is not None and self.threshold.band not in self.archive.bands:
            raise ValueError(
                f"threshold band '{self.threshold.band}' is not in archive bands {self.archive.bands}"
            )
        return self

    @property
    def years(self) -> List[int]:
        return list(range(self.start_year, resolve_end_year(self.end_year) + 1))

    @property
    def filename_base(self) -> str:
        return self.export.filename_base.replace("{scale}", str(self.scale))

    @property
    def selectors(self) -> List[str]:
        """Columns of the exported zonal-mean table, in order."""
        return [self.boundary.id_field, self.date_field] + list(self.archive.bands)


class ClimateConfig(BaseModel):
    """Top-level configuration."""

    log_level: str = "INFO"
    output_base_dir: Path = Path("exports")
    extractions: Dict[str, ExtractionConfig] = Field(default_factory=dict)

    def get_extraction(self, name: str) -> ExtractionConfig:
        if name not in self.extractions:
            available = ", ".join(sorted(self.extractions)) or "none"
            raise ConfigurationError(f"Unknown extraction '{name}'. Available: {available}")
        return self.extractions[name]


_TIGER_COUNTIES = "data/boundaries/tl_2018_us_county.shp"
_PRISM_DAILY = "data/prism/daily"

# Built-in extraction presets
DEFAULT_PRESETS: Dict[str, Dict[str, Any]] = {
    "montco_prism": {
        "boundary": {
            "path": _TIGER_COUNTIES,
            "id_field": "GEOID",
            "filters": {"NAME": "Montgomery", "STATEFP": "24"},
        },
        "archive": {"path": _PRISM_DAILY, "bands": PRISM_BANDS},
        "export": {"folder": "GEE_PRISM_MONTCO_ZIP", "filename_base": "PRISM_MONTCO_{scale}m_"},
        "start_year": 2017,
        "end_year": 2024,
        "scale": 4000,
    },
    "oregon_zcta": {
        "boundary": {
            "path": "data/boundaries/tl_2010_41_zcta510.shp",
            "id_field": "GEOID10",
        },
        "archive": {"path": _PRISM_DAILY, "bands": PRISM_BANDS},
        "export": {"folder": "GEE_PRISM_OREGON_CO", "filename_base": "PRISM_CO10_ORE_{scale}m_"},
        "start_year": 1991,
        "end_year": 2024,
        "scale": 4000,
    },
    "montco_heat_days": {
        "mode": "exceedance",
        "boundary": {
            "path": _TIGER_COUNTIES,
            "id_field": "GEOID",
            "filters": {"NAME": "Montgomery", "STATEFP": "24"},
        },
        "archive": {"path": _PRISM_DAILY, "bands": ["tmax"]},
        "export": {
            "folder": "GEE_PRISM_MONTCO_HEAT",
            "filename_base": "MontgomeryCounty_DaysAbove80F_CountyLevel",
        },
        "threshold": {"band": "tmax", "value": 80.0, "units": "F"},
        "start_year": 2017,
        "end_year": None,
        "scale": 4000,
    },
}


def _build_config(raw: Dict[str, Any]) -> ClimateConfig:
    extractions = {}
    for name, body in (raw.get("extractions") or {}).items():
        extractions[name] = {**(body or {}), "name": name}
    return ClimateConfig(**{**raw, "extractions": extractions})


def load_config(path: Optional[Union[str, Path]] = None, include_presets: bool = True) -> ClimateConfig:
    """Load configuration from YAML, layered over the built-in presets.

    Args:
        path: YAML file. Falls back to the ``CLIMATE_ZONAL_CONFIG`` environment
            variable, then to presets only.
        include_presets: Whether built-in presets are available

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file cannot be read or validated
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)

    raw: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with open(path) as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")

    extractions: Dict[str, Any] = dict(DEFAULT_PRESETS) if include_presets else {}
    extractions.update(raw.get("extractions") or {})

    try:
        return _build_config({**raw, "extractions": extractions})
    except ValidationError as e:
        raise ConfigurationError(f"Failed to validate configuration: {e}") from e


_config_cache: Optional[ClimateConfig] = None


def get_config(reload: bool = False) -> ClimateConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config_cache
    if _config_cache is None or reload:
        _config_cache = load_config()
    return _config_cache


def setup_logging(level: str = "INFO") -> None:
    """Route stdlib logging through a rich handler."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Invalid log level: {level}")

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
