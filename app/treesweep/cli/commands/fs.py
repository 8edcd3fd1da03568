"""Directory browsing and rename commands.

Provides commands to list a directory, check read access, rename an
entry and watch a directory for changes.
"""

import json
import threading
from pathlib import Path
from typing import Annotated

import typer

from treesweep.cli.types import OutputFormat, open_workspace
from treesweep.filesystem.models import Entry, FlatScanResult, ScanRequest, TreeNode
from treesweep.filesystem.watch import ChangeEvent
from treesweep.utils.formatting import (
    console,
    create_entry_table,
    format_entry_row,
    format_size,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Browse, rename and watch directories.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("ls")
def list_command(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to list."),
    ] = Path("."),
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
    """List the immediate children of a directory."""
    with open_workspace() as workspace:
        entries = workspace.list_directory(path)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([entry.to_dict() for entry in entries]))
        return

    if not entries:
        print_info("Directory is empty.")
        return

    _print_entries(entries, title=str(path))


@app.command()
def access(
    path: Annotated[
        Path,
        typer.Argument(help="Path to check."),
    ],
) -> None:
    """Check whether a path is readable (exit code 1 if not)."""
    with open_workspace() as workspace:
        readable = workspace.check_access(path)

    if readable:
        print_success(f"Readable: {path}")
        return
    print_error(f"Not readable: {path}")
    raise typer.Exit(code=1)


@app.command()
def rename(
    old_path: Annotated[
        Path,
        typer.Argument(help="Existing entry."),
    ],
    new_path: Annotated[
        Path,
        typer.Argument(help="New path; must not exist."),
    ],
) -> None:
    """Rename a file or directory without overwriting."""
    with open_workspace() as workspace:
        result = workspace.rename_entry(old_path, new_path)

    if not result.success:
        print_error(result.error or "Rename failed")
        raise typer.Exit(code=1)
    print_success(f"Renamed {result.path} -> {result.target}")


@app.command()
def watch(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to watch."),
    ] = Path("."),
    depth: Annotated[
        int | None,
        typer.Option("--depth", "-d", min=0, help="Rescan depth (default from config)."),
    ] = None,
    count: Annotated[
        int,
        typer.Option(
            "--count",
            "-n",
            min=0,
            help="Stop after this many rescans (0 = until interrupted).",
        ),
    ] = 0,
) -> None:
    """Watch a directory and rescan it whenever it changes."""
    done = threading.Event()
    rescans = 0
    lock = threading.Lock()

    def on_change(event: ChangeEvent) -> None:
        console.print(f"[muted]{event.observed_at}[/] change in [directory]{event.path}[/]")

    def on_scan(request: ScanRequest, result: TreeNode | FlatScanResult) -> None:
        nonlocal rescans
        with lock:
            rescans += 1
            current = rescans
        size = result.size_bytes if isinstance(result, TreeNode) else result.total_bytes
        console.print(f"Rescanned {request.path} ({format_size(size)})")
        if count and current > count:
            done.set()

    with open_workspace() as workspace:
        workspace.add_scan_listener(on_scan)
        # Initial scan also validates the path before the watch starts
        workspace.request_scan(path, depth).result()
        workspace.watch_directory(path, on_change)
        print_info(f"Watching {path} (Ctrl+C to stop)")
        try:
            done.wait()
        except KeyboardInterrupt:
            print_info("Stopped.")


# === Private helper functions ===


def _print_entries(entries: list[Entry], title: str) -> None:
    """Display entries as a Rich table with a size summary."""
    table = create_entry_table(title)
    for entry in entries:
        table.add_row(*format_entry_row(entry))
    console.print(table)

    total = sum(entry.size_bytes for entry in entries)
    console.print(f"\n[muted]{len(entries)} entries ({format_size(total)} total)[/]")
