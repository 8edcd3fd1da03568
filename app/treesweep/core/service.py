"""Service facade exposing the scanning and trash operations.

Workspace wires the scanner, scheduler, watch bridge and trash manager
together from one Settings object. Presentation layers (the CLI, or any
UI) talk only to this class.
"""

import logging
import os
from concurrent.futures import Future

from treesweep.core.config import Settings
from treesweep.filesystem.cache import StatCache
from treesweep.filesystem.models import Entry, FlatScanResult, ScanMode, ScanRequest, TreeNode
from treesweep.filesystem.operator import FilesystemActionResult, FilesystemOperator
from treesweep.filesystem.resolver import resolve
from treesweep.filesystem.scanner import DirectoryScanner, check_access
from treesweep.filesystem.scheduler import (
    ScanListener,
    ScanResultType,
    ScanScheduler,
    scanner_function,
)
from treesweep.filesystem.watch import ChangeCallback, ChangeEvent, Subscription, WatchBridge
from treesweep.trash.journal import TrashJournal
from treesweep.trash.manager import RecoveryReport, TrashManager
from treesweep.trash.models import TrashItem

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike[str]


class Workspace:
    """Owns every long-lived component and their lifecycle.

    Entering the context opens the trash journal and runs recovery;
    leaving it stops watches, the scheduler and the stat pool.

    Args:
        settings: Configuration; defaults if None.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        scan = self.settings.scan
        self._allowed_roots = tuple(scan.allowed_roots)

        self.cache: StatCache[int] = StatCache(scan.stat_cache_capacity)
        self.scanner = DirectoryScanner(
            exclude=scan.exclude,
            fan_out=scan.fan_out,
            max_depth_ceiling=scan.max_depth_ceiling,
            cache=self.cache,
            allowed_roots=self._allowed_roots,
        )
        self.scheduler = ScanScheduler(
            scanner_function(self.scanner),
            debounce=self.settings.scheduler.debounce_ms / 1000,
            max_concurrent_scans=self.settings.scheduler.max_concurrent_scans,
        )
        self.watch_bridge = WatchBridge(
            self.scheduler,
            interval=self.settings.watch.poll_interval_ms / 1000,
        )
        self.watch_bridge.add_callback(self._invalidate_on_change)
        self.operator = FilesystemOperator(allowed_roots=self._allowed_roots)
        self.trash = TrashManager(
            TrashJournal(self.settings.trash.resolved_journal_path()),
            self.settings.trash.resolved_storage_dir(),
            allowed_roots=self._allowed_roots,
        )
        self.recovery: RecoveryReport | None = None

    # ------------------------------------------------------------------
    # Lifecycle

    def open(self) -> "Workspace":
        """Open the trash journal and reconcile interrupted operations."""
        self.recovery = self.trash.open()
        if self.recovery.dropped or self.recovery.conflicts:
            logger.warning(
                "Trash recovery: %d dropped, %d conflict(s)",
                len(self.recovery.dropped),
                len(self.recovery.conflicts),
            )
        return self

    def close(self) -> None:
        self.watch_bridge.close()
        self.scheduler.close()
        self.scanner.close()
        self.trash.close()

    def __enter__(self) -> "Workspace":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Browsing and scanning

    def list_directory(self, path: PathLike) -> list[Entry]:
        """Immediate children of a directory, with metadata."""
        return self.scanner.list_directory(path)

    def check_access(self, path: PathLike) -> bool:
        """Whether the path is readable."""
        return check_access(path, self._allowed_roots)

    def scan_tree(self, path: PathLike, max_depth: int | None = None) -> TreeNode:
        """Synchronous tree scan (runs on the caller's thread)."""
        depth = self.settings.scan.default_depth if max_depth is None else max_depth
        return self.scanner.scan_tree(path, depth)

    def scan_flat(self, path: PathLike, max_depth: int | None = None) -> FlatScanResult:
        """Synchronous flat scan (runs on the caller's thread)."""
        depth = self.settings.scan.default_depth if max_depth is None else max_depth
        return self.scanner.scan_flat(path, depth)

    def request_scan(
        self,
        path: PathLike,
        max_depth: int | None = None,
        mode: ScanMode = ScanMode.TREE,
    ) -> "Future[ScanResultType]":
        """Schedule a debounced background scan.

        Returns:
            Future resolved with a TreeNode or FlatScanResult.
        """
        depth = self.settings.scan.default_depth if max_depth is None else max_depth
        canonical = resolve(path, self._allowed_roots)
        return self.scheduler.request(ScanRequest(path=str(canonical), max_depth=depth, mode=mode))

    def deep_scan(self, path: PathLike) -> "Future[ScanResultType]":
        """Schedule a tree scan at the configured deep depth."""
        return self.request_scan(path, self.settings.scan.deep_depth, ScanMode.TREE)

    def add_scan_listener(self, listener: ScanListener) -> None:
        self.scheduler.add_listener(listener)

    # ------------------------------------------------------------------
    # Mutations

    def rename_entry(self, old_path: PathLike, new_path: PathLike) -> FilesystemActionResult:
        """Rename without overwriting; failures are reported in the result."""
        return self.operator.rename(os.fspath(old_path), os.fspath(new_path))

    def soft_delete(self, path: PathLike) -> TrashItem:
        return self.trash.soft_delete(path)

    def restore(self, item_id: str) -> TrashItem:
        return self.trash.restore(item_id)

    def purge(self, item_id: str) -> TrashItem:
        return self.trash.purge(item_id)

    # ------------------------------------------------------------------
    # Watches

    def watch_directory(
        self,
        path: PathLike,
        callback: ChangeCallback | None = None,
    ) -> Subscription:
        """Watch a directory; changes trigger debounced rescans.

        Args:
            path: Directory to watch.
            callback: Optional callback for change signals of this
                directory only; released by unwatch_directory().

        Returns:
            The subscription backing the watch.
        """
        canonical = resolve(path, self._allowed_roots)
        return self.watch_bridge.watch_directory(canonical, callback)

    def unwatch_directory(self, path: PathLike) -> bool:
        return self.watch_bridge.unwatch(resolve(path, self._allowed_roots))

    def _invalidate_on_change(self, event: ChangeEvent) -> None:
        removed = self.cache.invalidate_under(event.path)
        if removed:
            logger.debug("Invalidated %d cached size(s) under %s", removed, event.path)
