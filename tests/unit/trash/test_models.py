"""Unit tests for trash item models."""

import json
from pathlib import Path

import pytest
from treesweep.filesystem.models import EntryKind
from treesweep.trash.models import TrashItem, TrashState, create_trash_item, stored_name


@pytest.fixture
def item() -> TrashItem:
    return TrashItem(
        id="abc123",
        name="report.pdf",
        original_path="/home/user/report.pdf",
        stored_path="/data/trash/abc123__report.pdf",
        size_bytes=2048,
        kind=EntryKind.FILE,
        deleted_at="2026-03-01T12:00:00+00:00",
    )


class TestTrashItem:
    """Tests for TrashItem validation and serialization."""

    def test_json_line_is_single_line(self, item: TrashItem) -> None:
        line = item.to_json_line()

        assert "\n" not in line
        assert json.loads(line)["kind"] == "file"

    def test_from_json_line(self, item: TrashItem) -> None:
        assert TrashItem.from_json_line(item.to_json_line() + "\n") == item

    def test_name_defaults_to_basename(self, item: TrashItem) -> None:
        """Records without a name fall back to the original basename."""
        data = item.to_dict()
        del data["name"]

        assert TrashItem.from_dict(data).name == "report.pdf"

    def test_missing_field(self, item: TrashItem) -> None:
        data = item.to_dict()
        del data["stored_path"]

        with pytest.raises(KeyError):
            TrashItem.from_dict(data)

    def test_invalid_kind(self, item: TrashItem) -> None:
        data = item.to_dict()
        data["kind"] = "teleporter"

        with pytest.raises(ValueError):
            TrashItem.from_dict(data)

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="ID"):
            TrashItem(
                id="",
                name="a",
                original_path="/a",
                stored_path="/t/a",
                size_bytes=0,
                kind=EntryKind.FILE,
                deleted_at="",
            )

    def test_negative_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            TrashItem(
                id="x",
                name="a",
                original_path="/a",
                stored_path="/t/a",
                size_bytes=-5,
                kind=EntryKind.FILE,
                deleted_at="",
            )


class TestCreateTrashItem:
    """Tests for the create_trash_item factory."""

    def test_fields(self, tmp_path: Path) -> None:
        item = create_trash_item(tmp_path / "photo.png", tmp_path / "store", 10, EntryKind.FILE)

        assert len(item.id) == 32
        assert item.name == "photo.png"
        assert item.original_path == str(tmp_path / "photo.png")
        assert item.stored_path == str(tmp_path / "store" / stored_name(item.id, "photo.png"))
        assert item.deleted_at.endswith("+00:00")

    def test_ids_are_unique(self, tmp_path: Path) -> None:
        ids = {
            create_trash_item(tmp_path / "a", tmp_path, 0, EntryKind.FILE).id for _ in range(50)
        }

        assert len(ids) == 50


def test_trash_states() -> None:
    assert [state.value for state in TrashState] == [
        "active",
        "pending_trash",
        "trashed",
        "restoring",
        "purging",
        "gone",
    ]
