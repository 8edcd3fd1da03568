"""Logging setup for the command line."""

import logging

from rich.logging import RichHandler

from treesweep.utils.formatting import err_console


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Route the root logger through Rich on stderr.

    WARNING by default, DEBUG with ``verbose``, ERROR with ``quiet``.
    Reconfiguring replaces the previous handler.
    """
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    handler = RichHandler(console=err_console, show_path=verbose, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
