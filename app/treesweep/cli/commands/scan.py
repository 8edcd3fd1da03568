"""Tree and flat scan commands.

This module provides `treesweep scan tree` for a depth-limited size
tree and `treesweep scan flat` for a categorized file listing.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table
from rich.tree import Tree

from treesweep.cli.types import OutputFormat, open_workspace
from treesweep.filesystem.models import EntryKind, FlatScanResult, TreeNode
from treesweep.utils.formatting import console, format_size, print_info

app = typer.Typer(
    help="Scan directory trees.",
    invoke_without_command=True,
    no_args_is_help=True,
)

DepthOption = Annotated[
    int | None,
    typer.Option("--depth", "-d", min=0, help="Maximum depth (default from config)."),
]

FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format.",
        case_sensitive=False,
    ),
]


@app.command()
def tree(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to scan."),
    ] = Path("."),
    depth: DepthOption = None,
    deep: Annotated[
        bool,
        typer.Option("--deep", help="Use the configured deep scan depth."),
    ] = False,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """Show a directory tree with aggregated sizes.

    Examples:
        treesweep scan tree ~/Downloads
        treesweep scan tree . --depth 4
        treesweep scan tree . --deep --format json
    """
    with open_workspace() as workspace:
        if deep:
            depth = workspace.settings.scan.deep_depth
        root = workspace.scan_tree(path, depth)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(root.to_dict()))
        return

    console.print(_render_tree(root))


@app.command()
def flat(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to scan."),
    ] = Path("."),
    depth: DepthOption = None,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """List files grouped by category."""
    with open_workspace() as workspace:
        result = workspace.scan_flat(path, depth)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result.to_dict()))
        return

    if not result.files:
        print_info("No files found.")
        return

    _print_categories(result)


# === Private helper functions ===


def _node_label(node: TreeNode) -> str:
    entry = node.entry
    size = f"[info]{format_size(node.size_bytes)}[/]"
    if entry.kind == EntryKind.DIRECTORY:
        marker = "" if node.expanded else " [muted]...[/]"
        return f"[directory]{entry.name}/[/] {size}{marker}"
    if entry.kind == EntryKind.SYMLINK:
        return f"[symlink]{entry.name}@[/] {size}"
    return f"[text]{entry.name}[/] {size}"


def _render_tree(root: TreeNode) -> Tree:
    """Build a Rich tree, largest children first."""
    rendered = Tree(_node_label(root), guide_style="border")
    stack: list[tuple[TreeNode, Tree]] = [(root, rendered)]
    while stack:
        node, branch = stack.pop()
        children = sorted(node.children, key=lambda child: child.size_bytes, reverse=True)
        for child in children:
            stack.append((child, branch.add(_node_label(child))))
    return rendered


def _print_categories(result: FlatScanResult) -> None:
    """Display per-category counts and sizes."""
    table = Table(
        title=result.root,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Category", style="bold")
    table.add_column("Files", justify="right")
    table.add_column("Size", style="info", justify="right")

    for category, entries in result.by_category.items():
        size = sum(entry.size_bytes for entry in entries)
        table.add_row(category, str(len(entries)), format_size(size))

    console.print(table)
    console.print(
        f"\n[muted]{result.total_count} files ({format_size(result.total_bytes)} total)[/]"
    )
