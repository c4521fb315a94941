#!/usr/bin/env python
"""
Yearly extraction loop and CSV export.

Each year of an extraction is processed independently: the archive is
narrowed to the year, reduced over the boundary zones and written out.
Years can be spread over a process pool; every worker reopens the archive
from its path.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

import geopandas as gpd
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from .archive import RasterArchive
from .boundaries import load_boundaries
from .climate_config import ExtractionConfig
from .processors import BaseZonalProcessor, ExceedanceProcessor, YearResult, ZonalMeanProcessor
from .utils.output_utils import OutputManager, get_output_manager
from .utils.time_utils import year_range

logger = logging.getLogger(__name__)
console = Console(stderr=True, highlight=False)

__all__ = ['ExportRecord', 'create_processor', 'run_extraction', 'year_range']


@dataclass
class ExportRecord:
    """One written table. ``year`` is None for multi-year tables."""

    year: Optional[int]
    path: Path
    rows: int
    frames: int


def create_processor(config: ExtractionConfig) -> BaseZonalProcessor:
    """Build the processor for an extraction's mode."""
    if config.mode == 'exceedance':
        return ExceedanceProcessor(config)
    return ZonalMeanProcessor(config)


def _process_year_worker(args) -> YearResult:
    """Process one year in a worker process."""
    config, zones, year = args
    archive = RasterArchive.open(config.archive.path)
    with create_processor(config) as processor:
        return processor.process_year(archive, zones, year)


def _run_years(
    config: ExtractionConfig,
    archive: RasterArchive,
    processor: BaseZonalProcessor,
    zones: gpd.GeoDataFrame,
    years: List[int],
    workers: int,
) -> List[YearResult]:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Processing {config.name}...", total=len(years))

        if workers <= 1 or len(years) < 2:
            results = []
            for year in years:
                progress.update(task, description=f"Processing {config.name} {year}...")
                results.append(processor.process_year(archive, zones, year))
                progress.advance(task)
            return results

        logger.info("Processing %d years with %d workers", len(years), workers)
        results = []
        with ProcessPoolExecutor(max_workers=min(workers, len(years))) as executor:
            # map yields in year order
            for result in executor.map(_process_year_worker, [(config, zones, y) for y in years]):
                results.append(result)
                progress.advance(task)
        return results


def _metadata(config: ExtractionConfig, **extra) -> dict:
    return {
        'extraction': config.name,
        'mode': config.mode,
        'boundary': str(config.boundary.path),
        'archive': str(config.archive.path),
        'bands': list(config.archive.bands),
        'scale': config.scale,
        'strategy': config.strategy,
        **extra,
    }


def _export_zonal_means(
    config: ExtractionConfig,
    results: List[YearResult],
    output: OutputManager,
) -> List[ExportRecord]:
    records = []
    for result in results:
        path = output.get_output_path(config.export.folder, f"{config.filename_base}{result.year}")
        if result.table.empty:
            logger.warning("No data for %d; writing header-only %s", result.year, path.name)
        metadata = _metadata(config, year=result.year, frames=result.frames) if config.export.write_metadata else None
        output.save_table(result.table, path, selectors=config.selectors, metadata=metadata)
        records.append(ExportRecord(year=result.year, path=path, rows=len(result.table), frames=result.frames))
    return records


def _export_exceedance(
    config: ExtractionConfig,
    processor: ExceedanceProcessor,
    results: List[YearResult],
    output: OutputManager,
) -> List[ExportRecord]:
    frames = sum(r.frames for r in results)
    metadata = None
    if config.export.write_metadata:
        metadata = _metadata(
            config,
            threshold_c=processor.threshold_c,
            years=[r.year for r in results],
            frames=frames,
        )

    summary = processor.summarize(results)
    path = output.get_output_path(config.export.folder, config.filename_base)
    output.save_table(summary, path, selectors=['year', processor.column], metadata=metadata)
    records = [ExportRecord(year=None, path=path, rows=len(summary), frames=frames)]

    if config.include_daily:
        daily = processor.daily_table(results)
        daily_path = output.get_output_path(config.export.folder, f"{config.filename_base}_daily")
        output.save_table(daily, daily_path, selectors=['date', 'exceedance'])
        records.append(ExportRecord(year=None, path=daily_path, rows=len(daily), frames=frames))
    return records


def run_extraction(
    config: ExtractionConfig,
    years: Optional[Iterable[int]] = None,
    workers: int = 1,
    output_dir: Optional[Union[str, Path]] = None,
) -> List[ExportRecord]:
    """Run an extraction over a range of years and export the results.

    Args:
        config: Extraction configuration
        years: Years to process; the configured range when None
        workers: Number of worker processes for the year loop
        output_dir: Base directory export folders are resolved against

    Returns:
        List of written tables
    """
    years = list(years) if years is not None else config.years
    if not years:
        raise ValueError(f"Extraction '{config.name}' has no years to process")

    logger.info("Running '%s' (%s) for %d-%d", config.name, config.mode, years[0], years[-1])

    archive = RasterArchive.open(config.archive.path, bands=config.archive.bands)
    output = get_output_manager(output_dir if output_dir is not None else 'exports')

    with create_processor(config) as processor:
        zones = processor.prepare_zones(load_boundaries(config.boundary))
        results = _run_years(config, archive, processor, zones, years, workers)

        if isinstance(processor, ExceedanceProcessor):
            records = _export_exceedance(config, processor, results, output)
        else:
            records = _export_zonal_means(config, results, output)

    logger.info("Finished '%s': %d tables written", config.name, len(records))
    return records
