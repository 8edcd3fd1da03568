"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from treesweep import __version__
from treesweep.cli.commands import fs, scan, trash
from treesweep.utils.log import configure_logging

# Create main Typer app
app = typer.Typer(
    name="treesweep",
    help="Scan directory trees and manage a recoverable trash.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"treesweep version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
) -> None:
    """treesweep - scan directory trees and manage a recoverable trash."""
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(fs.app, name="fs")
app.add_typer(scan.app, name="scan")
app.add_typer(trash.app, name="trash")


if __name__ == "__main__":
    app()
