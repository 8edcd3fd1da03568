"""Trash commands.

Provides soft delete, listing, restore, purge and recovery for the
treesweep trash. Every soft delete is journaled before the move, so
items can always be restored or reconciled later.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from treesweep.cli.types import OutputFormat, open_workspace
from treesweep.core.errors import TreesweepError
from treesweep.filesystem.operator import FilesystemActionResult
from treesweep.trash.models import TrashItem
from treesweep.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Soft delete, restore and purge.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def delete(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Paths to move to the trash."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Move files or directories to the trash."""
    if not yes:
        confirmed = typer.confirm(f"Move {len(paths)} path(s) to the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    results: list[FilesystemActionResult] = []
    with open_workspace() as workspace:
        for path in paths:
            try:
                item = workspace.soft_delete(path)
            except TreesweepError as e:
                results.append(FilesystemActionResult(path=str(path), success=False, error=str(e)))
                continue
            results.append(
                FilesystemActionResult(path=item.original_path, success=True, target=item.id)
            )

    _print_results(results, verb="trashed")
    if any(not r.success for r in results):
        raise typer.Exit(code=1)


@app.command("list")
def list_command(
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List trashed items, oldest first."""
    with open_workspace() as workspace:
        items = workspace.trash.list_items()

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([item.to_dict() for item in items]))
        return

    if not items:
        print_info("Trash is empty.")
        return

    _print_items(items)


@app.command()
def restore(
    item_id: Annotated[
        str,
        typer.Argument(help="Trash item id (see `treesweep trash list`)."),
    ],
) -> None:
    """Move a trashed item back to its original location."""
    with open_workspace() as workspace:
        item = workspace.restore(item_id)
    print_success(f"Restored {item.original_path}")


@app.command()
def purge(
    item_id: Annotated[
        str,
        typer.Argument(help="Trash item id (see `treesweep trash list`)."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Permanently delete one trashed item."""
    if not yes:
        confirmed = typer.confirm(f"Permanently delete {item_id}?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    with open_workspace() as workspace:
        item = workspace.purge(item_id)
    print_success(f"Purged {item.original_path}")


@app.command()
def empty(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Permanently delete every trashed item."""
    with open_workspace() as workspace:
        count = len(workspace.trash.list_items())
        if count == 0:
            print_info("Trash is empty.")
            return
        if not yes:
            confirmed = typer.confirm(f"Permanently delete {count} item(s)?", default=False)
            if not confirmed:
                print_info("Aborted.")
                raise typer.Exit(code=0)
        results = workspace.trash.empty()

    _print_results(results, verb="purged")
    if any(not r.success for r in results):
        raise typer.Exit(code=1)


@app.command()
def recover() -> None:
    """Reconcile the trash journal with the filesystem.

    Recovery also runs every time treesweep opens the trash; this
    command reports what it found.
    """
    with open_workspace() as workspace:
        report = workspace.recovery

    if report is None:
        return

    print_info(f"{len(report.confirmed)} item(s) confirmed in the trash.")
    if report.dropped:
        print_warning(f"Dropped {len(report.dropped)} stale journal entries")
        for item_id in report.dropped:
            console.print(f"  [muted]{item_id}[/]")
    for item_id in report.conflicts:
        print_warning(f"Item {item_id} exists in the trash and at its original path")
    for orphan in report.orphans:
        print_warning(f"Unreferenced file in trash storage: {orphan}")
    if not (report.dropped or report.conflicts or report.orphans):
        print_success("Trash is consistent.")


# === Private helper functions ===


def _print_items(items: list[TrashItem]) -> None:
    """Display trashed items as a Rich table."""
    table = Table(
        title="Trash",
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="muted", no_wrap=True)
    table.add_column("Original Path", style="bold")
    table.add_column("Kind", width=9)
    table.add_column("Size", style="info", justify="right")
    table.add_column("Deleted", style="muted")

    for item in items:
        table.add_row(
            item.id,
            item.original_path,
            item.kind.value,
            format_size(item.size_bytes),
            item.deleted_at[:19].replace("T", " "),
        )

    console.print(table)
    total = sum(item.size_bytes for item in items)
    console.print(f"\n[muted]{len(items)} item(s) ({format_size(total)} total)[/]")


def _print_results(results: list[FilesystemActionResult], verb: str) -> None:
    """Display per-path outcomes and a summary line."""
    for r in results:
        if r.success:
            detail = f" [muted]({r.target})[/]" if r.target else ""
            console.print(f"[success]{verb}[/] {r.path}{detail}")
        else:
            print_error(f"{r.path}: {r.error or 'Unknown error'}")

    success_count = sum(1 for r in results if r.success)
    fail_count = len(results) - success_count
    if fail_count:
        print_warning(f"{success_count} succeeded, {fail_count} failed")
    else:
        print_success(f"All {success_count} path(s) {verb}.")
