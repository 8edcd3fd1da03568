"""CLI commands for treesweep.

This package contains all subcommand implementations.
"""

from treesweep.cli.commands import fs, scan, trash

__all__ = ["fs", "scan", "trash"]
