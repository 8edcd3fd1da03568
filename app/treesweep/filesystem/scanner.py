"""Depth-bounded directory scanner.

Walks a directory iteratively with an explicit stack, stats the entries
of each directory through a bounded thread pool, and aggregates sizes
bottom-up into an immutable tree. The flat scanner shares the same walk
and discards the tree shape.

Per-entry failures (permission denied, vanished mid-scan) never abort a
scan: the entry is omitted, or an unreadable directory is kept as an
unexpanded leaf, and the problem is logged.
"""

import logging
import os
import stat
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from treesweep.core.config import DEFAULT_EXCLUDES
from treesweep.core.errors import (
    InvalidPathError,
    NotADirectoryPathError,
    error_from_os,
    retry_on_exhaustion,
)
from treesweep.filesystem.cache import StatCache
from treesweep.filesystem.categories import categorize, extension_of
from treesweep.filesystem.models import Entry, EntryKind, FlatScanResult, TreeNode
from treesweep.filesystem.resolver import resolve

logger = logging.getLogger(__name__)

DEFAULT_FAN_OUT = 8
DEFAULT_DEPTH_CEILING = 64


@dataclass(slots=True)
class _Frame:
    """Mutable builder for one directory that is being expanded.

    ``slots`` holds finished leaf nodes and integer indexes of child
    frames, in listing order. Child frames always have a larger index
    than their parent, so building in reverse index order visits every
    child before its parent.
    """

    path: str
    name: str
    relative_path: str
    depth: int
    st: os.stat_result
    slots: list[TreeNode | int] = field(default_factory=list)
    listed: bool = False


def _kind_from_mode(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


def _format_mtime(st: os.stat_result) -> str:
    return datetime.fromtimestamp(st.st_mtime, tz=UTC).isoformat()


def _child_relative(parent_relative: str, name: str) -> str:
    return name if parent_relative == "." else f"{parent_relative}/{name}"


def make_entry(
    *,
    path: str,
    name: str,
    relative_path: str,
    st: os.stat_result,
    size_bytes: int | None = None,
) -> Entry:
    """Build an Entry from an lstat result.

    Args:
        path: Absolute path of the object.
        name: Basename.
        relative_path: Path relative to the scan root.
        st: Result of ``lstat`` on the object.
        size_bytes: Override for the size (used for directories).

    Returns:
        Immutable Entry snapshot.
    """
    kind = _kind_from_mode(st.st_mode)
    extension = extension_of(name) if kind == EntryKind.FILE else ""
    return Entry(
        name=name,
        path=path,
        relative_path=relative_path,
        kind=kind,
        size_bytes=st.st_size if size_bytes is None else size_bytes,
        modified_at=_format_mtime(st),
        category=categorize(name, kind),
        extension=extension,
    )


class DirectoryScanner:
    """Scans directory trees into size-aggregated trees or flat listings.

    One scanner may serve several scans at once; all of them share the
    same stat pool, so ``fan_out`` bounds concurrent stat calls across
    every scan the scanner runs.

    Args:
        exclude: Directory or file names skipped without being stat'd.
        fan_out: Maximum concurrent stat calls.
        max_depth_ceiling: Hard limit applied to any requested depth.
        cache: Shallow-size cache for depth-limited directories.
        allowed_roots: Roots scanned paths must stay under (empty = any).
    """

    def __init__(
        self,
        *,
        exclude: Iterable[str] = DEFAULT_EXCLUDES,
        fan_out: int = DEFAULT_FAN_OUT,
        max_depth_ceiling: int = DEFAULT_DEPTH_CEILING,
        cache: StatCache[int] | None = None,
        allowed_roots: Iterable[Path] = (),
    ) -> None:
        if fan_out < 1:
            msg = f"fan_out must be at least 1, got {fan_out}"
            raise ValueError(msg)
        self._exclude = frozenset(exclude)
        self._fan_out = fan_out
        self._max_depth_ceiling = max_depth_ceiling
        self._cache: StatCache[int] = cache if cache is not None else StatCache()
        self._allowed_roots = tuple(allowed_roots)
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @property
    def cache(self) -> StatCache[int]:
        return self._cache

    def close(self) -> None:
        """Shut down the stat pool. The scanner restarts it on next use."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "DirectoryScanner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public operations

    def scan_tree(self, path: str | os.PathLike[str], max_depth: int) -> TreeNode:
        """Scan a directory into a size-aggregated tree.

        Args:
            path: Directory to scan.
            max_depth: Directories at listing depth < max_depth are expanded;
                0 lists the root's immediate entries only.

        Returns:
            Root TreeNode whose size is the sum of its children's sizes.

        Raises:
            InvalidPathError: If the path is invalid or outside allowed roots.
            NotFoundError, PermissionDeniedError: If the root itself is
                missing or unreadable.
            NotADirectoryPathError: If the root is not a directory.
        """
        frames = self._traverse(path, max_depth)
        return self._build_tree(frames)

    def scan_flat(self, path: str | os.PathLike[str], max_depth: int) -> FlatScanResult:
        """Scan a directory into a flat categorized listing.

        Uses the same traversal and exclusion rules as scan_tree. Only
        non-directory entries are listed.

        Raises:
            Same errors as scan_tree.
        """
        frames = self._traverse(path, max_depth, shallow_sizes=False)

        files: list[Entry] = []
        by_category: dict[str, list[Entry]] = {}
        for frame in frames:
            for slot in frame.slots:
                if isinstance(slot, int) or slot.entry.is_dir:
                    continue
                files.append(slot.entry)
                by_category.setdefault(slot.entry.category, []).append(slot.entry)

        return FlatScanResult(
            root=frames[0].path,
            files=tuple(files),
            by_category={category: tuple(entries) for category, entries in by_category.items()},
            total_count=len(files),
            total_bytes=sum(entry.size_bytes for entry in files),
        )

    def list_directory(self, path: str | os.PathLike[str]) -> list[Entry]:
        """List a directory's immediate entries with metadata.

        Subdirectories report their best-effort shallow size.
        """
        return [child.entry for child in self.scan_tree(path, 0).children]

    # ------------------------------------------------------------------
    # Traversal

    def _clamp_depth(self, max_depth: int) -> int:
        if max_depth < 0:
            msg = f"max_depth cannot be negative, got {max_depth}"
            raise ValueError(msg)
        if max_depth > self._max_depth_ceiling:
            logger.debug("Clamping depth %d to ceiling %d", max_depth, self._max_depth_ceiling)
            return self._max_depth_ceiling
        return max_depth

    def _open_root(self, path: str | os.PathLike[str]) -> _Frame:
        root = resolve(path, self._allowed_roots)
        root_str = str(root)
        try:
            st = retry_on_exhaustion(lambda: os.lstat(root_str))
        except OSError as e:
            raise error_from_os(e, root_str) from e
        if not stat.S_ISDIR(st.st_mode):
            msg = f"Not a directory: {root_str}"
            raise NotADirectoryPathError(msg, path=root_str)
        return _Frame(path=root_str, name=root.name or root_str, relative_path=".", depth=-1, st=st)

    def _traverse(
        self,
        path: str | os.PathLike[str],
        max_depth: int,
        *,
        shallow_sizes: bool = True,
    ) -> list[_Frame]:
        """Walk the tree and return expanded directory frames in creation order."""
        depth_limit = self._clamp_depth(max_depth)
        root = self._open_root(path)

        # Root listing failures are not per-entry failures: they propagate.
        try:
            root_listing = self._list(root.path)
        except OSError as e:
            raise error_from_os(e, root.path) from e

        frames: list[_Frame] = [root]
        stack: list[tuple[int, list[os.DirEntry[str]] | None]] = [(0, root_listing)]

        while stack:
            index, listing = stack.pop()
            frame = frames[index]
            if listing is None:
                try:
                    listing = self._list(frame.path)
                except OSError as e:
                    logger.warning("Cannot list directory %s: %s", frame.path, e)
                    continue
            frame.listed = True
            child_depth = frame.depth + 1

            for dir_entry, st in self._stat_entries(listing):
                relative = _child_relative(frame.relative_path, dir_entry.name)
                if stat.S_ISDIR(st.st_mode) and child_depth < depth_limit:
                    frames.append(
                        _Frame(
                            path=dir_entry.path,
                            name=dir_entry.name,
                            relative_path=relative,
                            depth=child_depth,
                            st=st,
                        )
                    )
                    frame.slots.append(len(frames) - 1)
                    stack.append((len(frames) - 1, None))
                    continue

                size: int | None = None
                if stat.S_ISDIR(st.st_mode):
                    size = self._shallow_size(dir_entry.path, st) if shallow_sizes else 0
                entry = make_entry(
                    path=dir_entry.path,
                    name=dir_entry.name,
                    relative_path=relative,
                    st=st,
                    size_bytes=size,
                )
                frame.slots.append(TreeNode(entry=entry, depth=child_depth))

        return frames

    def _build_tree(self, frames: list[_Frame]) -> TreeNode:
        """Aggregate sizes bottom-up and freeze frames into TreeNodes."""
        built: dict[int, TreeNode] = {}
        for index in range(len(frames) - 1, -1, -1):
            frame = frames[index]
            children = tuple(
                built.pop(slot) if isinstance(slot, int) else slot for slot in frame.slots
            )
            entry = make_entry(
                path=frame.path,
                name=frame.name,
                relative_path=frame.relative_path,
                st=frame.st,
                size_bytes=sum(child.size_bytes for child in children),
            )
            built[index] = TreeNode(
                entry=entry,
                children=children,
                expanded=frame.listed,
                depth=frame.depth,
            )
        return built[0]

    def _list(self, directory: str) -> list[os.DirEntry[str]]:
        """List a directory, skipping excluded names. Raises OSError."""

        def scan() -> list[os.DirEntry[str]]:
            with os.scandir(directory) as it:
                return [entry for entry in it if entry.name not in self._exclude]

        entries = retry_on_exhaustion(scan)
        entries.sort(key=lambda entry: entry.name)
        return entries

    def _stat_entries(
        self, entries: list[os.DirEntry[str]]
    ) -> list[tuple[os.DirEntry[str], os.stat_result]]:
        """Stat one directory's entries through the bounded pool.

        Entries whose stat fails are dropped.
        """
        if not entries:
            return []
        results = self._get_executor().map(self._stat_one, entries)
        return [(entry, st) for entry, st in zip(entries, results, strict=True) if st is not None]

    @staticmethod
    def _stat_one(entry: os.DirEntry[str]) -> os.stat_result | None:
        try:
            return retry_on_exhaustion(lambda: entry.stat(follow_symlinks=False))
        except OSError as e:
            logger.warning("Skipping unreadable entry %s: %s", entry.path, e)
            return None

    def _shallow_size(self, directory: str, st: os.stat_result) -> int:
        """Best-effort size of a depth-limited directory.

        Sums the sizes of the directory's immediate non-directory entries,
        cached against the directory's mtime. Returns 0 if unreadable.
        """
        cached = self._cache.get(directory, st.st_mtime_ns)
        if cached is not None:
            return cached

        total = 0
        try:
            for _entry, child_st in self._stat_entries(self._list(directory)):
                if not stat.S_ISDIR(child_st.st_mode):
                    total += child_st.st_size
        except OSError as e:
            logger.debug("Shallow size unavailable for %s: %s", directory, e)
            return 0

        self._cache.put(directory, st.st_mtime_ns, total)
        return total

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._fan_out,
                    thread_name_prefix="treesweep-stat",
                )
            return self._executor


def check_access(path: str | os.PathLike[str], allowed_roots: Iterable[Path] = ()) -> bool:
    """Check read permission on a path.

    Directories must also be searchable. Invalid paths report False.
    """
    try:
        resolved = resolve(path, allowed_roots)
    except InvalidPathError:
        return False
    if not os.access(resolved, os.R_OK):
        return False
    if resolved.is_dir():
        return os.access(resolved, os.X_OK)
    return True
