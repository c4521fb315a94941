#!/usr/bin/env python
"""Presets command: list configured extractions."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from climate_zonal.climate_config import ConfigurationError, load_config

console = Console(highlight=False)
app = typer.Typer(add_completion=False, invoke_without_command=True)


@app.callback(invoke_without_command=True)
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
):
    """List available extractions."""
    try:
        cfg = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Extractions")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Mode")
    table.add_column("Years")
    table.add_column("Bands")
    table.add_column("Output")
    for name, extraction in sorted(cfg.extractions.items()):
        end = extraction.end_year if extraction.end_year is not None else "current"
        table.add_row(
            name,
            extraction.mode,
            f"{extraction.start_year}-{end}",
            ", ".join(extraction.archive.bands),
            f"{extraction.export.folder}/{extraction.filename_base}",
        )
    console.print(table)
