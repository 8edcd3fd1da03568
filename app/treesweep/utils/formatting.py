"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from treesweep.filesystem.models import Entry, EntryKind

THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "directory": "bold #0e8ac8",
        "symlink": "#d44ebc",
    }
)


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, let Rich auto-detect otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=THEME, color_system=_detect_color_system())
err_console = Console(theme=THEME, stderr=True, color_system=_detect_color_system())


def format_size(size_bytes: int | None) -> str:
    """Format byte count as human-readable string."""
    if size_bytes is None or size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def create_entry_table(title: str) -> Table:
    """Create a pre-configured table for listing entries."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Name", no_wrap=True)
    table.add_column("Kind", style="muted", width=9)
    table.add_column("Category", style="muted")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Modified", style="muted")
    return table


def format_entry_row(entry: Entry) -> tuple[str, str, str, str, str]:
    """Format an entry as a table row with markup."""
    if entry.kind == EntryKind.DIRECTORY:
        name = f"[directory]{entry.name}/[/]"
    elif entry.kind == EntryKind.SYMLINK:
        name = f"[symlink]{entry.name}@[/]"
    else:
        name = f"[text]{entry.name}[/]"
    return (
        name,
        entry.kind.value,
        entry.category,
        format_size(entry.size_bytes),
        entry.modified_at[:19].replace("T", " "),
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
