"""CLI module for treesweep.

This module provides the command-line interface using Typer.
"""

from treesweep.cli.main import app

__all__ = ["app"]
