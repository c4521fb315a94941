#!/usr/bin/env python
"""Boundaries command: list feature identifiers in a boundary file."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import typer
from rich.console import Console
from rich.table import Table

from climate_zonal.boundaries import (
    DESCRIBE_FIELDS,
    BoundaryError,
    describe_features,
    filter_features,
    read_boundaries,
)

console = Console(highlight=False)
app = typer.Typer(add_completion=False, invoke_without_command=True)


def parse_filters(items: Optional[List[str]]) -> Dict[str, Union[str, List[str]]]:
    """Parse ``KEY=VALUE`` options; a repeated key matches any of its values."""
    filters: Dict[str, Union[str, List[str]]] = {}
    for item in items or []:
        if '=' not in item:
            raise typer.BadParameter(f"Filter must look like KEY=VALUE: {item}")
        key, value = item.split('=', 1)
        key = key.strip()
        if key in filters:
            current = filters[key]
            filters[key] = (current if isinstance(current, list) else [current]) + [value]
        else:
            filters[key] = value
    return filters


@app.callback(invoke_without_command=True)
def run(
    path: Path = typer.Argument(..., help="Boundary vector file"),
    filters: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Attribute filter KEY=VALUE (repeatable)"),
    fields: Optional[str] = typer.Option(None, "--fields", help="Comma-separated fields to list"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows to display"),
):
    """List feature names and ids, e.g. to find GEOIDs for an extraction."""
    field_list = [f.strip() for f in fields.split(',')] if fields else list(DESCRIBE_FIELDS)
    try:
        gdf = read_boundaries(path)
        parsed = parse_filters(filters)
        if parsed:
            gdf = filter_features(gdf, parsed)
    except (BoundaryError, typer.BadParameter) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    listing = describe_features(gdf, field_list)
    table = Table(title=f"{path.name}: {len(gdf)} features")
    for column in listing.columns:
        table.add_column(str(column), style="cyan" if column == 'index' else None)
    for row in listing.head(limit).itertuples(index=False):
        table.add_row(*[str(v) for v in row])
    console.print(table)
    if len(listing) > limit:
        console.print(f"[yellow]... {len(listing) - limit} more features not shown[/yellow]")
