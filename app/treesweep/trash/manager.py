"""Soft delete, restore and purge on top of the trash journal.

Ordering rules (each step is durable before the next starts):

- soft delete: journal append, then move original -> stored;
- restore:     move stored -> original, then journal remove;
- purge:       remove stored copy, then journal remove.

The journal therefore always lists a superset of the items whose stored
copy exists, and recover() can reconcile any interrupted operation.
"""

import logging
import os
import stat
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from treesweep.core.errors import (
    DestinationUnavailableError,
    InvalidPathError,
    NotFoundError,
    PermissionDeniedError,
    RestoreConflictError,
    TreesweepError,
    error_from_os,
)
from treesweep.filesystem.models import EntryKind
from treesweep.filesystem.operator import (
    FilesystemActionResult,
    lexists,
    move_path,
    path_size,
    remove_path,
)
from treesweep.filesystem.protected import is_protected_path
from treesweep.filesystem.resolver import resolve
from treesweep.trash.journal import TrashJournal
from treesweep.trash.models import TrashItem, create_trash_item

logger = logging.getLogger(__name__)

_PARTIAL_SUFFIX = ".partial"


@dataclass(frozen=True, slots=True)
class RecoveryReport:
    """Outcome of reconciling the journal with the filesystem.

    Attributes:
        confirmed: Ids whose stored copy exists (Trashed).
        dropped: Ids removed from the journal (never moved, or lost).
        conflicts: Ids whose stored copy exists while something also
            occupies the original path; kept as Trashed.
        orphans: Files in the storage root that no journal item references.
    """

    confirmed: tuple[str, ...] = ()
    dropped: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    orphans: tuple[str, ...] = ()


def _kind_of(path: Path) -> EntryKind:
    mode = os.lstat(path).st_mode
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


class TrashManager:
    """Moves items in and out of the trash storage directory.

    The manager exclusively owns the storage directory; the journal
    exclusively owns the manifest file. Operations on the same item id
    are serialized; journal writes are serialized by the journal.

    Args:
        journal: Journal store (opened by open()).
        storage_root: Directory holding stored copies.
        allowed_roots: Roots soft-deleted paths must stay under (empty = any).
    """

    def __init__(
        self,
        journal: TrashJournal,
        storage_root: Path,
        allowed_roots: tuple[Path, ...] = (),
    ) -> None:
        self._journal = journal
        self._storage_root = storage_root
        self._allowed_roots = allowed_roots
        self._guard = threading.Lock()
        self._item_locks: dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Lifecycle

    def open(self) -> RecoveryReport:
        """Open the journal and reconcile it with the filesystem.

        Raises:
            TreesweepError: If the storage directory cannot be created or
                the journal cannot be read.
        """
        try:
            self._storage_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise error_from_os(e, str(self._storage_root)) from e
        if not self._journal.is_open:
            self._journal.open()
        return self.recover()

    def close(self) -> None:
        self._journal.close()

    def __enter__(self) -> "TrashManager":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries

    def list_items(self) -> list[TrashItem]:
        """Snapshot of trashed items, oldest first."""
        return self._journal.items()

    def get(self, item_id: str) -> TrashItem:
        """Return one trashed item.

        Raises:
            NotFoundError: If no item has this id.
        """
        return self._journal.get(item_id)

    # ------------------------------------------------------------------
    # Operations

    def soft_delete(self, path: str | os.PathLike[str]) -> TrashItem:
        """Move a path into the trash.

        Args:
            path: File, directory or symlink to trash. Symlinks are
                trashed as links; their targets are untouched.

        Returns:
            The journaled TrashItem.

        Raises:
            InvalidPathError: If the path is invalid, outside the allowed
                roots, or overlaps the trash storage.
            PermissionDeniedError: If the path is protected or the move
                is refused by the OS.
            NotFoundError: If nothing exists at the path.
            TreesweepError: For other move failures. The journal entry
                is removed again when the original is still in place.
        """
        source = resolve(path, self._allowed_roots, follow_final=False)
        self._check_deletable(source)

        try:
            kind = _kind_of(source)
        except OSError as e:
            raise error_from_os(e, str(source)) from e
        size = path_size(source)

        try:
            self._storage_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise error_from_os(e, str(self._storage_root)) from e
        item = create_trash_item(source, self._storage_root, size, kind)

        with self._locked(item.id):
            self._journal.append(item)
            stored = Path(item.stored_path)
            try:
                move_path(source, stored)
            except TreesweepError:
                if lexists(stored):
                    # Copy landed but the source could not be removed; recover() decides.
                    logger.warning("Soft delete of %s left copies at both locations", source)
                else:
                    self._journal.remove(item.id)
                raise

        logger.info("Trashed %s as %s", source, item.id)
        return item

    def restore(self, item_id: str) -> TrashItem:
        """Move a trashed item back to its original path.

        Raises:
            NotFoundError: If the id is unknown or its stored copy is gone.
            RestoreConflictError: If something now occupies the original path.
            DestinationUnavailableError: If the original parent directory is gone.
        """
        with self._locked(item_id):
            item = self._journal.get(item_id)
            stored = Path(item.stored_path)
            original = Path(item.original_path)

            if not lexists(stored):
                msg = f"Stored copy of {item_id} is missing: {stored}"
                raise NotFoundError(msg, path=str(stored))
            if lexists(original):
                msg = f"Restore target already exists: {original}"
                raise RestoreConflictError(msg, path=str(original))
            if not original.parent.is_dir():
                msg = f"Restore destination directory no longer exists: {original.parent}"
                raise DestinationUnavailableError(msg, path=str(original.parent))

            move_path(stored, original)
            self._journal.remove(item_id)

        logger.info("Restored %s to %s", item_id, original)
        return item

    def purge(self, item_id: str) -> TrashItem:
        """Permanently remove a trashed item.

        Raises:
            NotFoundError: If the id is unknown.
            TreesweepError: If the stored copy cannot be removed; the
                journal entry is kept.
        """
        with self._locked(item_id):
            item = self._journal.get(item_id)
            if not remove_path(Path(item.stored_path)):
                logger.debug("Stored copy of %s was already gone", item_id)
            self._journal.remove(item_id)

        logger.info("Purged %s (%s)", item_id, item.original_path)
        return item

    def empty(self) -> list[FilesystemActionResult]:
        """Purge every trashed item, isolating failures per item."""
        results: list[FilesystemActionResult] = []
        for item in self._journal.items():
            try:
                self.purge(item.id)
            except TreesweepError as e:
                results.append(
                    FilesystemActionResult(path=item.original_path, success=False, error=str(e))
                )
                continue
            results.append(FilesystemActionResult(path=item.original_path, success=True))
        return results

    def recover(self) -> RecoveryReport:
        """Reconcile journal items with what is actually on disk.

        - stored copy only: confirmed Trashed;
        - original only: soft delete never completed, entry dropped;
        - neither: irrecoverable, entry dropped;
        - both: kept as Trashed and reported as a conflict.

        Leftover staging files from interrupted cross-device moves are
        removed; other unreferenced files are reported, never deleted.
        """
        confirmed: list[str] = []
        dropped: list[str] = []
        conflicts: list[str] = []

        items = self._journal.items()
        for item in items:
            has_stored = lexists(Path(item.stored_path))
            has_original = lexists(Path(item.original_path))
            if has_stored and has_original:
                logger.warning(
                    "Trash item %s: both %s and %s exist; keeping it trashed",
                    item.id,
                    item.original_path,
                    item.stored_path,
                )
                conflicts.append(item.id)
            elif has_stored:
                confirmed.append(item.id)
            elif has_original:
                logger.info("Trash item %s was never moved; dropping entry", item.id)
                dropped.append(item.id)
            else:
                logger.warning(
                    "Trash item %s is irrecoverable (%s missing); dropping entry",
                    item.id,
                    item.original_path,
                )
                dropped.append(item.id)

        if dropped:
            self._journal.remove_many(dropped)

        referenced = {Path(item.stored_path).name for item in items}
        orphans = self._sweep_storage(referenced)

        return RecoveryReport(
            confirmed=tuple(confirmed),
            dropped=tuple(dropped),
            conflicts=tuple(conflicts),
            orphans=tuple(orphans),
        )

    # ------------------------------------------------------------------
    # Helpers

    def _lock_for(self, item_id: str) -> threading.Lock:
        with self._guard:
            lock = self._item_locks.get(item_id)
            if lock is None:
                lock = threading.Lock()
                self._item_locks[item_id] = lock
            return lock

    @contextmanager
    def _locked(self, item_id: str) -> Iterator[None]:
        """Hold the id's lock; drop it once the id has left the journal."""
        lock = self._lock_for(item_id)
        try:
            with lock:
                yield
        finally:
            if item_id not in self._journal:
                with self._guard:
                    if self._item_locks.get(item_id) is lock:
                        del self._item_locks[item_id]

    def _check_deletable(self, source: Path) -> None:
        if is_protected_path(str(source)):
            msg = f"Protected path cannot be trashed: {source}"
            raise PermissionDeniedError(msg, path=str(source))

        storage = self._storage_root.resolve(strict=False)
        journal_dir = self._journal.path.parent.resolve(strict=False)
        if source.is_relative_to(storage) or storage.is_relative_to(source):
            msg = f"Path overlaps the trash storage directory: {source}"
            raise InvalidPathError(msg, path=str(source))
        if journal_dir.is_relative_to(source):
            msg = f"Path contains the trash journal: {source}"
            raise InvalidPathError(msg, path=str(source))

        if not lexists(source):
            msg = f"Path does not exist: {source}"
            raise NotFoundError(msg, path=str(source))

    def _sweep_storage(self, referenced: set[str]) -> list[str]:
        orphans: list[str] = []
        try:
            entries = list(os.scandir(self._storage_root))
        except FileNotFoundError:
            return orphans
        except OSError as e:
            logger.warning("Cannot inspect trash storage %s: %s", self._storage_root, e)
            return orphans

        for entry in entries:
            if entry.name in referenced:
                continue
            if entry.name.startswith(".") and entry.name.endswith(_PARTIAL_SUFFIX):
                logger.info("Removing leftover staging file %s", entry.path)
                try:
                    remove_path(Path(entry.path))
                except TreesweepError as e:
                    logger.warning("Cannot remove staging file %s: %s", entry.path, e)
                continue
            logger.warning("Unreferenced file in trash storage: %s", entry.path)
            orphans.append(entry.path)
        return orphans
