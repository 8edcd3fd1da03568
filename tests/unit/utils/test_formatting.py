"""Unit tests for formatting and logging helpers."""

import logging
from collections.abc import Iterator

import pytest
from rich.logging import RichHandler
from treesweep.filesystem.models import Entry, EntryKind
from treesweep.utils.formatting import format_entry_row, format_size
from treesweep.utils.log import configure_logging


class TestFormatSize:
    """Tests for format_size."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (None, "0 B"),
            (0, "0 B"),
            (150, "150 B"),
            (2048, "2.0 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024**4, "3.0 TB"),
        ],
    )
    def test_format_size(self, size: int | None, expected: str) -> None:
        assert format_size(size) == expected


class TestFormatEntryRow:
    """Tests for format_entry_row."""

    def test_directory_marker(self) -> None:
        entry = Entry(
            name="photos",
            path="/data/photos",
            relative_path="photos",
            kind=EntryKind.DIRECTORY,
            size_bytes=1024,
            modified_at="2026-02-03T04:05:06.789+00:00",
            category="directory",
        )

        name, kind, category, size, modified = format_entry_row(entry)

        assert "photos/" in name
        assert kind == "directory"
        assert size == "1.0 KB"
        assert modified == "2026-02-03 04:05:06"


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def _restore_root(self) -> Iterator[None]:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_levels(self) -> None:
        configure_logging()
        assert logging.getLogger().level == logging.WARNING

        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

        configure_logging(quiet=True)
        assert logging.getLogger().level == logging.ERROR

    def test_single_rich_handler(self) -> None:
        configure_logging()
        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)
