"""Durable trash journal.

The journal is a JSON Lines file with one TrashItem per line. Every
mutation rewrites the whole file: the new content goes to a temporary
file in the same directory, is flushed and fsync'ed, and then replaces
the journal with os.replace(). A crash therefore leaves either the old
or the new journal, never a partial one.

Mutations are serialized by a writer lock held across the disk write.
The in-memory snapshot is swapped under a separate short lock, so
readers get copies of it and never block on disk I/O.
"""

import json
import logging
import os
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile

from treesweep.core.errors import IOFailureError, NotFoundError
from treesweep.trash.models import TrashItem

logger = logging.getLogger(__name__)


class JournalClosedError(RuntimeError):
    """Raised when the journal is used outside its open/close lifecycle."""


class TrashJournal:
    """Owns the on-disk manifest of trashed items.

    Storage location: ~/.local/state/treesweep/trash.jsonl by default.

    Args:
        path: Journal file location.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._items: dict[str, TrashItem] = {}
        self._open = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._open

    # ------------------------------------------------------------------
    # Lifecycle

    def open(self) -> "TrashJournal":
        """Load the journal from disk. A missing file is an empty journal.

        Corrupt lines are skipped with a warning; the next rewrite drops
        them from the file.
        """
        with self._write_lock:
            items = self._load()
            with self._lock:
                self._items = items
                self._open = True
        logger.debug("Opened trash journal %s with %d item(s)", self._path, len(self._items))
        return self

    def close(self) -> None:
        """Release the journal. Every mutation is already durable on disk."""
        with self._write_lock, self._lock:
            self._open = False
            self._items = {}

    def __enter__(self) -> "TrashJournal":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reads (copy-on-read snapshots)

    def items(self) -> list[TrashItem]:
        """Return the journaled items in insertion order."""
        with self._lock:
            self._ensure_open()
            return list(self._items.values())

    def get(self, item_id: str) -> TrashItem:
        """Return one item.

        Raises:
            NotFoundError: If no item has this id.
        """
        with self._lock:
            self._ensure_open()
            item = self._items.get(item_id)
        if item is None:
            msg = f"No trash item with id {item_id}"
            raise NotFoundError(msg)
        return item

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # ------------------------------------------------------------------
    # Mutations (single writer, durable before returning)

    def append(self, item: TrashItem) -> None:
        """Add an item and persist the journal.

        Raises:
            ValueError: If the id is already journaled.
            IOFailureError: If the journal cannot be written; the in-memory
                snapshot is left unchanged.
        """
        with self._write_lock:
            self._ensure_open()
            if item.id in self._items:
                msg = f"Duplicate trash item id: {item.id}"
                raise ValueError(msg)
            updated = dict(self._items)
            updated[item.id] = item
            self._write(updated)
            self._publish(updated)

    def remove(self, item_id: str) -> TrashItem:
        """Remove an item and persist the journal.

        Raises:
            NotFoundError: If no item has this id.
            IOFailureError: If the journal cannot be written.
        """
        with self._write_lock:
            self._ensure_open()
            if item_id not in self._items:
                msg = f"No trash item with id {item_id}"
                raise NotFoundError(msg)
            updated = dict(self._items)
            removed = updated.pop(item_id)
            self._write(updated)
            self._publish(updated)
            return removed

    def remove_many(self, item_ids: list[str]) -> int:
        """Remove several items with a single rewrite. Unknown ids are ignored."""
        with self._write_lock:
            self._ensure_open()
            updated = {key: item for key, item in self._items.items() if key not in item_ids}
            removed = len(self._items) - len(updated)
            if removed:
                self._write(updated)
                self._publish(updated)
            return removed

    # ------------------------------------------------------------------
    # Disk I/O (caller holds the writer lock)

    def _publish(self, items: dict[str, TrashItem]) -> None:
        with self._lock:
            self._items = items

    def _ensure_open(self) -> None:
        if not self._open:
            msg = f"Trash journal is not open: {self._path}"
            raise JournalClosedError(msg)

    def _load(self) -> dict[str, TrashItem]:
        items: dict[str, TrashItem] = {}
        if not self._path.exists():
            return items

        try:
            with self._path.open(encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        item = TrashItem.from_json_line(line)
                    except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                        logger.warning("Skipping corrupt journal line %d: %s", line_num, str(e))
                        continue
                    items[item.id] = item
        except OSError as e:
            raise IOFailureError(f"Cannot read trash journal {self._path}: {e}") from e
        return items

    def _write(self, items: dict[str, TrashItem]) -> None:
        tmp_path: Path | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                for item in items.values():
                    f.write(item.to_json_line() + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
            self._fsync_dir()
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise IOFailureError(f"Cannot write trash journal {self._path}: {e}") from e

    def _fsync_dir(self) -> None:
        """Persist the rename itself; not supported everywhere."""
        try:
            fd = os.open(self._path.parent, os.O_RDONLY)
        except OSError:
            return
        try:
            os.fsync(fd)
        except OSError:
            logger.debug("Directory fsync unsupported for %s", self._path.parent)
        finally:
            os.close(fd)
