"""Unit tests for the fs CLI commands.

Tests for treesweep fs ls, access, rename and watch.
"""

import json
from pathlib import Path

import pytest
from treesweep.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_xdg(xdg_dirs: dict[str, Path]) -> None:
    """Keep config, journal and storage inside the test directory."""


class TestLs:
    """Tests for treesweep fs ls."""

    def test_table(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["fs", "ls", str(sample_tree)])

        assert result.exit_code == 0
        assert "f1.txt" in result.output
        assert "2 entries" in result.output

    def test_json(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["fs", "ls", str(sample_tree), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [entry["name"] for entry in data] == ["B", "f1.txt"]
        assert data[0]["kind"] == "directory"
        assert data[1]["category"] == "document"

    def test_empty_directory(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(app, ["fs", "ls", str(empty)])

        assert result.exit_code == 0
        assert "empty" in result.output

    def test_missing_directory(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["fs", "ls", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_file_instead_of_directory(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["fs", "ls", str(sample_tree / "f1.txt")])

        assert result.exit_code == 1
        assert "Not a directory" in result.output


class TestAccess:
    """Tests for treesweep fs access."""

    def test_readable(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["fs", "access", str(sample_tree)])

        assert result.exit_code == 0
        assert "Readable" in result.output

    def test_missing(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["fs", "access", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Not readable" in result.output


class TestRename:
    """Tests for treesweep fs rename."""

    def test_rename(self, sample_tree: Path) -> None:
        result = runner.invoke(
            app, ["fs", "rename", str(sample_tree / "f1.txt"), str(sample_tree / "g.txt")]
        )

        assert result.exit_code == 0
        assert "Renamed" in result.output
        assert (sample_tree / "g.txt").exists()

    def test_existing_destination(self, sample_tree: Path) -> None:
        result = runner.invoke(
            app, ["fs", "rename", str(sample_tree / "f1.txt"), str(sample_tree / "B")]
        )

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert (sample_tree / "f1.txt").exists()


class TestWatch:
    """Tests for treesweep fs watch."""

    def test_missing_directory(self, tmp_path: Path) -> None:
        """The initial scan fails fast before any watch starts."""
        result = runner.invoke(app, ["fs", "watch", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Error" in result.output
