"""Filesystem domain models for scanning.

This module defines the immutable snapshots produced by the scanners:
single entries, tree nodes with aggregated sizes, flat categorized
listings, and the scan request value object.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EntryKind(str, Enum):
    """Type of filesystem object.

    Attributes:
        FILE: Regular file.
        DIRECTORY: Directory (never a symlink to one).
        SYMLINK: Symbolic link, recorded but never followed.
        OTHER: FIFO, socket, device node or anything else.
    """

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


class ScanMode(str, Enum):
    """Shape of a scan result."""

    TREE = "tree"
    FLAT = "flat"


@dataclass(frozen=True, slots=True)
class Entry:
    """One filesystem object observed during a scan.

    Attributes:
        name: Basename of the entry.
        path: Absolute path.
        relative_path: Path relative to the scan root ("." for the root).
        kind: Object type.
        size_bytes: Own byte length for leaves, aggregated size for directories.
        modified_at: Last modification time in ISO 8601 (UTC).
        category: Classification tag shared by tree and flat views.
        extension: Lower-cased suffix without the dot ("" if none).
    """

    name: str
    path: str
    relative_path: str
    kind: EntryKind
    size_bytes: int
    modified_at: str
    category: str
    extension: str = ""

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "name": self.name,
            "path": self.path,
            "relative_path": self.relative_path,
            "kind": self.kind.value,
            "size_bytes": self.size_bytes,
            "modified_at": self.modified_at,
            "category": self.category,
            "extension": self.extension,
        }


@dataclass(frozen=True, slots=True)
class TreeNode:
    """An entry plus its scanned children.

    Only directory nodes have children, and only when ``expanded`` is
    True. An expanded node's size equals the sum of its children's sizes.

    Attributes:
        entry: The node's own entry.
        children: Child nodes (empty unless expanded).
        expanded: Whether the directory's listing was read.
        depth: Listing depth (the root's entries are depth 0, the root is -1).
    """

    entry: Entry
    children: tuple["TreeNode", ...] = ()
    expanded: bool = False
    depth: int = -1

    @property
    def size_bytes(self) -> int:
        return self.entry.size_bytes

    def walk(self) -> "list[TreeNode]":
        """Return this node and all descendants in pre-order."""
        nodes: list[TreeNode] = []
        stack: list[TreeNode] = [self]
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes

    def to_dict(self) -> dict[str, Any]:
        """Serialize the subtree to nested dictionaries."""
        result = self.entry.to_dict()
        result["depth"] = self.depth
        result["expanded"] = self.expanded
        if self.entry.is_dir:
            result["children"] = [child.to_dict() for child in self.children]
        return result


@dataclass(frozen=True, slots=True)
class FlatScanResult:
    """Flat categorized listing of the non-directory entries of a scan.

    Attributes:
        root: Absolute path of the scanned directory.
        files: Every non-directory entry, in traversal order.
        by_category: Entries grouped by category, first-seen order.
        total_count: Number of entries in ``files``.
        total_bytes: Sum of the entries' sizes.
    """

    root: str
    files: tuple[Entry, ...]
    by_category: dict[str, tuple[Entry, ...]] = field(default_factory=dict)
    total_count: int = 0
    total_bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "root": self.root,
            "files": [entry.to_dict() for entry in self.files],
            "by_category": {
                category: [entry.path for entry in entries]
                for category, entries in self.by_category.items()
            },
            "total_count": self.total_count,
            "total_bytes": self.total_bytes,
        }


@dataclass(frozen=True, slots=True)
class ScanRequest:
    """A request to scan a directory.

    Requests are plain values; scheduling state lives in the scheduler.
    """

    path: str
    max_depth: int
    mode: ScanMode = ScanMode.TREE

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        if self.max_depth < 0:
            msg = f"max_depth cannot be negative, got {self.max_depth}"
            raise ValueError(msg)

    @property
    def key(self) -> tuple[str, ScanMode]:
        """Scheduling key: one in-flight scan per (path, mode)."""
        return (self.path, self.mode)
