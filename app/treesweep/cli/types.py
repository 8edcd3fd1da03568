"""Shared types and utilities for CLI commands.

This module provides common enums and helpers used across multiple
CLI command modules to avoid code duplication.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

import typer

from treesweep.core.config import ConfigError, load_config
from treesweep.core.errors import TreesweepError
from treesweep.core.service import Workspace
from treesweep.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


@contextmanager
def open_workspace() -> Iterator[Workspace]:
    """Load settings and yield an opened Workspace.

    Configuration and treesweep errors are printed and turned into
    exit code 1.

    Raises:
        typer.Exit: If the config cannot be loaded or an operation fails.
    """
    try:
        settings = load_config()
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e

    try:
        with Workspace(settings) as workspace:
            yield workspace
    except TreesweepError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
