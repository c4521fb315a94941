"""
CLI package for Climate Zonal.

The Typer application is assembled from one module per subcommand.
"""

from .app import app  # re-export main Typer app

__all__ = ["app"]
