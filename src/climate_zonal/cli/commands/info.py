#!/usr/bin/env python
"""Info command: summarize a raster archive."""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from climate_zonal.archive import ArchiveError, RasterArchive

console = Console(highlight=False)
app = typer.Typer(add_completion=False, invoke_without_command=True)


@app.callback(invoke_without_command=True)
def run(
    path: Path = typer.Argument(..., help="Zarr store, NetCDF file/directory or PRISM directory"),
):
    """Display bands, date range and grid of a raster archive."""
    try:
        info = RasterArchive.open(path).describe()
    except ArchiveError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(f"[bold blue]{info['source']}[/bold blue]", border_style="blue"))
    table = Table(show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Bands", ", ".join(info['bands']))
    table.add_row("Frames", str(info['frames']))
    table.add_row("Dates", f"{info['start']} to {info['end']}")
    if info.get('shape'):
        table.add_row("Grid", f"{info['shape'][0]} x {info['shape'][1]}")
    if info['resolution']:
        table.add_row("Resolution", f"{info['resolution'][0]:.6g} x {info['resolution'][1]:.6g}")
    table.add_row("CRS", str(info['crs']))
    console.print(table)
