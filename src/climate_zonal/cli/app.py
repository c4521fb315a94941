#!/usr/bin/env python
"""Typer application aggregator for Climate Zonal CLI."""

import typer

from .commands.boundaries import app as boundaries_app
from .commands.extract import app as extract_app
from .commands.info import app as info_app
from .commands.presets import app as presets_app

app = typer.Typer(
    name="climate-zonal",
    help="🌡️ Zonal climate statistics from daily raster archives",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

# Mount sub-apps under main app
app.add_typer(extract_app, name="extract")
app.add_typer(boundaries_app, name="boundaries")
app.add_typer(presets_app, name="presets")
app.add_typer(info_app, name="info")
