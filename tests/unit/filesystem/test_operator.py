"""Unit tests for filesystem mutation primitives.

Tests same- and cross-device moves, removal, size measurement, and
FilesystemOperator.rename outcomes.
"""

import errno
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from treesweep.core.errors import NotFoundError, PermissionDeniedError
from treesweep.filesystem.operator import (
    FilesystemOperator,
    move_path,
    path_size,
    remove_path,
)


def _exdev_rename(src: str, dst: str) -> None:
    raise OSError(errno.EXDEV, "Invalid cross-device link")


class TestMovePath:
    """Tests for move_path."""

    def test_same_device_move(self, tmp_path: Path) -> None:
        source = tmp_path / "a.txt"
        source.write_text("data")
        destination = tmp_path / "b.txt"

        move_path(source, destination)

        assert not source.exists()
        assert destination.read_text() == "data"

    def test_cross_device_file(self, tmp_path: Path) -> None:
        """EXDEV falls back to copy, atomic replace, then source removal."""
        source = tmp_path / "a.txt"
        source.write_text("data")
        destination = tmp_path / "dest" / "a.txt"
        destination.parent.mkdir()

        with patch("treesweep.filesystem.operator.os.rename", side_effect=_exdev_rename):
            move_path(source, destination)

        assert not source.exists()
        assert destination.read_text() == "data"
        assert [p.name for p in destination.parent.iterdir()] == ["a.txt"]

    def test_cross_device_directory_keeps_symlinks(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        source.mkdir()
        (source / "file.txt").write_text("data")
        (source / "link").symlink_to("file.txt")
        destination = tmp_path / "moved"

        with patch("treesweep.filesystem.operator.os.rename", side_effect=_exdev_rename):
            move_path(source, destination)

        assert not source.exists()
        assert (destination / "file.txt").read_text() == "data"
        assert (destination / "link").is_symlink()
        assert os.readlink(destination / "link") == "file.txt"

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            move_path(tmp_path / "missing", tmp_path / "dest")


class TestRemoveAndMeasure:
    """Tests for remove_path and path_size."""

    def test_remove_file_and_tree(self, tmp_path: Path) -> None:
        file = tmp_path / "f"
        file.write_text("x")
        tree = tmp_path / "tree"
        (tree / "sub").mkdir(parents=True)

        assert remove_path(file) is True
        assert remove_path(tree) is True
        assert not file.exists()
        assert not tree.exists()

    def test_remove_symlink_keeps_target(self, tmp_path: Path) -> None:
        target = tmp_path / "target"
        target.mkdir()
        link = tmp_path / "link"
        link.symlink_to(target)

        assert remove_path(link) is True
        assert target.is_dir()

    def test_remove_missing(self, tmp_path: Path) -> None:
        assert remove_path(tmp_path / "missing") is False

    def test_path_size(self, sample_tree: Path) -> None:
        assert path_size(sample_tree) == 150
        assert path_size(sample_tree / "f1.txt") == 100
        assert path_size(sample_tree / "missing") == 0


class TestFilesystemOperatorRename:
    """Tests for FilesystemOperator.rename."""

    def test_rename(self, sample_tree: Path) -> None:
        op = FilesystemOperator()

        result = op.rename(str(sample_tree / "f1.txt"), str(sample_tree / "renamed.txt"))

        assert result.success is True
        assert result.target == str(sample_tree.resolve() / "renamed.txt")
        assert (sample_tree / "renamed.txt").stat().st_size == 100
        assert not (sample_tree / "f1.txt").exists()

    def test_refuses_to_overwrite(self, sample_tree: Path) -> None:
        (sample_tree / "other.txt").write_text("keep me")
        op = FilesystemOperator()

        result = op.rename(str(sample_tree / "f1.txt"), str(sample_tree / "other.txt"))

        assert result.success is False
        assert "already exists" in (result.error or "")
        assert (sample_tree / "other.txt").read_text() == "keep me"
        assert (sample_tree / "f1.txt").exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        result = FilesystemOperator().rename(str(tmp_path / "a"), str(tmp_path / "b"))

        assert result.success is False
        assert "does not exist" in (result.error or "")

    def test_into_itself(self, sample_tree: Path) -> None:
        result = FilesystemOperator().rename(str(sample_tree / "B"), str(sample_tree / "B" / "C"))

        assert result.success is False
        assert (sample_tree / "B").is_dir()

    def test_protected_path(self) -> None:
        home = str(Path.home())

        result = FilesystemOperator().rename(f"{home}/.ssh/id_rsa", f"{home}/id_rsa")

        assert result.success is False
        assert "Protected" in (result.error or "")

    def test_dry_run(self, sample_tree: Path) -> None:
        result = FilesystemOperator(dry_run=True).rename(
            str(sample_tree / "f1.txt"), str(sample_tree / "renamed.txt")
        )

        assert result.success is True
        assert result.dry_run is True
        assert (sample_tree / "f1.txt").exists()

    def test_symlink_renamed_not_target(self, sample_tree: Path) -> None:
        link = sample_tree / "link"
        link.symlink_to(sample_tree / "B")

        result = FilesystemOperator().rename(str(link), str(sample_tree / "link2"))

        assert result.success is True
        assert (sample_tree / "link2").is_symlink()
        assert (sample_tree / "B").is_dir()

    def test_os_failure_reported(self, sample_tree: Path) -> None:
        with patch(
            "treesweep.filesystem.operator.os.rename",
            side_effect=PermissionError(errno.EACCES, "Permission denied"),
        ):
            result = FilesystemOperator().rename(
                str(sample_tree / "f1.txt"), str(sample_tree / "renamed.txt")
            )

        assert result.success is False
        assert "Permission denied" in (result.error or "")


def test_permission_error_maps_kind(tmp_path: Path) -> None:
    """move_path translates EACCES into PermissionDeniedError."""
    source = tmp_path / "a"
    source.write_text("x")

    with (
        patch(
            "treesweep.filesystem.operator.os.rename",
            side_effect=PermissionError(errno.EACCES, "Permission denied"),
        ),
        pytest.raises(PermissionDeniedError),
    ):
        move_path(source, tmp_path / "b")
