#!/usr/bin/env python
"""Extract command: run a configured extraction over its years."""

from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from climate_zonal.climate_config import (
    ClimateConfig,
    ConfigurationError,
    ExtractionConfig,
    load_config,
    setup_logging,
)
from climate_zonal.pipeline import run_extraction
from climate_zonal.utils.output_utils import get_output_manager

console = Console(highlight=False)
app = typer.Typer(add_completion=False, invoke_without_command=True)


def _apply_overrides(extraction: ExtractionConfig, overrides: Dict[str, Any]) -> ExtractionConfig:
    """Revalidate an extraction with command-line overrides applied."""
    threshold_overrides = {
        k: overrides.pop(k) for k in ('value', 'units') if overrides.get(k) is not None
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    data = extraction.model_dump()
    data.update(overrides)
    if threshold_overrides:
        if data.get('threshold') is None:
            raise ConfigurationError("--threshold/--units only apply to exceedance extractions")
        data['threshold'] = {**data['threshold'], **threshold_overrides}
    return ExtractionConfig.model_validate(data)


def _print_plan(extraction: ExtractionConfig, cfg_output: Path) -> None:
    output = get_output_manager(cfg_output)
    years = extraction.years
    if extraction.mode == 'exceedance':
        target = output.get_output_path(extraction.export.folder, extraction.filename_base)
    else:
        target = output.get_output_path(extraction.export.folder, f"{extraction.filename_base}<year>")

    table = Table(title=f"Extraction plan: {extraction.name}", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Mode", extraction.mode)
    table.add_row("Boundaries", f"{extraction.boundary.path} {extraction.boundary.filters or ''}")
    table.add_row("Unique id", extraction.boundary.id_field)
    table.add_row("Archive", str(extraction.archive.path))
    table.add_row("Bands", ", ".join(extraction.archive.bands))
    table.add_row("Years", f"{years[0]}-{years[-1]} ({len(years)})")
    table.add_row("Strategy", extraction.strategy)
    if extraction.threshold is not None:
        table.add_row("Threshold", f"{extraction.threshold.band} > {extraction.threshold.value:g}{extraction.threshold.units}")
    table.add_row("Output", str(target))
    console.print(table)


@app.callback(invoke_without_command=True)
def run(
    name: str = typer.Argument(..., help="Extraction name (see `presets`)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    start_year: Optional[int] = typer.Option(None, "--start-year", help="First year (inclusive)"),
    end_year: Optional[int] = typer.Option(None, "--end-year", help="Last year (inclusive)"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Base output directory"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of worker processes"),
    strategy: Optional[str] = typer.Option(None, "--strategy", "-s", help="Zonal strategy: rasterized or clip"),
    threshold: Optional[float] = typer.Option(None, "--threshold", "-t", help="Exceedance threshold value"),
    units: Optional[str] = typer.Option(None, "--units", "-u", help="Threshold units (C, F or K)"),
    daily: bool = typer.Option(False, "--daily", help="Also export daily exceedance flags"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without processing"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
):
    """Run a zonal extraction and export CSV tables."""
    try:
        cfg: ClimateConfig = load_config(config_path)
        setup_logging(log_level or cfg.log_level)
        extraction = _apply_overrides(
            cfg.get_extraction(name),
            {
                'start_year': start_year,
                'end_year': end_year,
                'strategy': strategy,
                'include_daily': True if daily else None,
                'value': threshold,
                'units': units,
            },
        )
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    base_dir = output_dir if output_dir is not None else cfg.output_base_dir
    _print_plan(extraction, base_dir)
    if dry_run:
        console.print("[yellow]Dry run: nothing processed[/yellow]")
        return

    try:
        records = run_extraction(extraction, workers=workers, output_dir=base_dir)
    except (ConfigurationError, ValueError, OSError) as e:
        console.print(f"[red]❌ Extraction failed: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Exported tables")
    table.add_column("Year", style="cyan")
    table.add_column("Rows", justify="right")
    table.add_column("Frames", justify="right")
    table.add_column("File")
    for record in records:
        table.add_row(
            str(record.year) if record.year is not None else "all",
            str(record.rows),
            str(record.frames),
            str(record.path),
        )
    console.print(table)
    console.print(Panel.fit(f"[green]✅ Wrote {len(records)} tables[/green]", border_style="green"))
