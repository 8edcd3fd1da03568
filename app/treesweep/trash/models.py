"""Trash item model.

A TrashItem is the journal record of one soft-deleted path. Items are
never mutated: restore and purge remove the record entirely.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from treesweep.filesystem.models import EntryKind


class TrashState(str, Enum):
    """Lifecycle states of an item moving through the trash.

    Attributes:
        ACTIVE: On disk at its original path, not in the trash.
        PENDING_TRASH: Journaled, not yet moved into storage.
        TRASHED: Stored copy exists at the stored path.
        RESTORING: Being moved back to its original path.
        PURGING: Stored copy being removed.
        GONE: Permanently removed.
    """

    ACTIVE = "active"
    PENDING_TRASH = "pending_trash"
    TRASHED = "trashed"
    RESTORING = "restoring"
    PURGING = "purging"
    GONE = "gone"


@dataclass(frozen=True, slots=True)
class TrashItem:
    """Persisted record of a soft-deleted item.

    Attributes:
        id: Unique identifier (UUID4 hex), the only handle for restore/purge.
        name: Original basename.
        original_path: Where the item lived before deletion.
        stored_path: Where the item lives inside the trash storage root.
        size_bytes: Total size at deletion time.
        kind: Entry kind at deletion time.
        deleted_at: When the soft delete started (ISO 8601, UTC).
    """

    id: str
    name: str
    original_path: str
    stored_path: str
    size_bytes: int
    kind: EntryKind
    deleted_at: str

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not self.id:
            msg = "Trash item ID cannot be empty"
            raise ValueError(msg)
        if not self.original_path or not self.stored_path:
            msg = "Trash item paths cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "name": self.name,
            "original_path": self.original_path,
            "stored_path": self.stored_path,
            "size_bytes": self.size_bytes,
            "kind": self.kind.value,
            "deleted_at": self.deleted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrashItem":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If kind or field values are invalid.
        """
        return cls(
            id=data["id"],
            name=data.get("name") or Path(data["original_path"]).name,
            original_path=data["original_path"],
            stored_path=data["stored_path"],
            size_bytes=int(data["size_bytes"]),
            kind=EntryKind(data["kind"]),
            deleted_at=data["deleted_at"],
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "TrashItem":
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def stored_name(item_id: str, name: str) -> str:
    """Name of a stored copy: the id plus the original basename."""
    return f"{item_id}__{name}"


def create_trash_item(
    original_path: Path,
    storage_root: Path,
    size_bytes: int,
    kind: EntryKind,
) -> TrashItem:
    """Factory for a new TrashItem with a fresh id and timestamp.

    The stored path is derived from the storage root, the id and the
    original basename so stored copies remain identifiable on disk.
    """
    item_id = uuid.uuid4().hex
    name = original_path.name
    return TrashItem(
        id=item_id,
        name=name,
        original_path=str(original_path),
        stored_path=str(storage_root / stored_name(item_id, name)),
        size_bytes=size_bytes,
        kind=kind,
        deleted_at=datetime.now(UTC).isoformat(),
    )
