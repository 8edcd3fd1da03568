"""Unit tests for the scan CLI commands.

Tests for treesweep scan tree and treesweep scan flat.
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


class TestTree:
    """Tests for treesweep scan tree."""

    def test_renders_tree(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["scan", "tree", str(sample_tree)])

        assert result.exit_code == 0
        assert "A/" in result.output
        assert "B/" in result.output
        assert "f2.png" in result.output
        assert "150 B" in result.output

    def test_json(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["scan", "tree", str(sample_tree), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["size_bytes"] == 150
        sub = next(child for child in data["children"] if child["name"] == "B")
        assert sub["size_bytes"] == 50
        assert sub["expanded"] is True

    def test_depth_zero(self, sample_tree: Path) -> None:
        result = runner.invoke(
            app, ["scan", "tree", str(sample_tree), "--depth", "0", "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        sub = next(child for child in data["children"] if child["name"] == "B")
        assert sub["expanded"] is False
        assert sub["children"] == []

    def test_deep_uses_configured_depth(self, nested_tree: Path, xdg_dirs: dict[str, Path]) -> None:
        config = xdg_dirs["config"] / "treesweep" / "config.toml"
        config.parent.mkdir(parents=True)
        config.write_text("[scan]\ndeep_depth = 1\n")

        result = runner.invoke(
            app, ["scan", "tree", str(nested_tree), "--deep", "--format", "json"]
        )

        assert result.exit_code == 0
        level0 = json.loads(result.stdout)["children"][0]
        assert level0["expanded"] is True
        assert level0["children"][0]["name"] == "file0.py"
        level1 = next(child for child in level0["children"] if child["name"] == "level1")
        assert level1["expanded"] is False

    def test_negative_depth_rejected(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["scan", "tree", str(sample_tree), "--depth", "-1"])

        assert result.exit_code != 0

    def test_missing_path(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["scan", "tree", str(tmp_path / "missing")])

        assert result.exit_code == 1


class TestFlat:
    """Tests for treesweep scan flat."""

    def test_table(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["scan", "flat", str(sample_tree)])

        assert result.exit_code == 0
        assert "document" in result.output
        assert "image" in result.output
        assert "2 files" in result.output

    def test_json(self, sample_tree: Path) -> None:
        result = runner.invoke(app, ["scan", "flat", str(sample_tree), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["total_count"] == 2
        assert data["total_bytes"] == 150
        assert set(data["by_category"]) == {"document", "image"}

    def test_no_files(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(app, ["scan", "flat", str(empty)])

        assert result.exit_code == 0
        assert "No files found" in result.output
