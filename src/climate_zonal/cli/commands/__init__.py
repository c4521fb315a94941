"""Subcommands of the climate-zonal CLI."""
