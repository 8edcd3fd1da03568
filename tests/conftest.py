"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest


@pytest.fixture
def xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point every XDG base directory into the test's temporary directory."""
    dirs = {
        "config": tmp_path / "xdg" / "config",
        "state": tmp_path / "xdg" / "state",
        "data": tmp_path / "xdg" / "data",
    }
    monkeypatch.setenv("XDG_CONFIG_HOME", str(dirs["config"]))
    monkeypatch.setenv("XDG_STATE_HOME", str(dirs["state"]))
    monkeypatch.setenv("XDG_DATA_HOME", str(dirs["data"]))
    return dirs


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Directory A with f1.txt (100 bytes) and B/f2.png (50 bytes)."""
    root = tmp_path / "A"
    (root / "B").mkdir(parents=True)
    (root / "f1.txt").write_bytes(b"x" * 100)
    (root / "B" / "f2.png").write_bytes(b"y" * 50)
    return root


@pytest.fixture
def nested_tree(tmp_path: Path) -> Path:
    """Four directory levels, each holding one 10-byte file."""
    root = tmp_path / "nested"
    current = root
    for level in range(4):
        current = current / f"level{level}"
        current.mkdir(parents=True)
        (current / f"file{level}.py").write_bytes(b"z" * 10)
    (root / "top.md").write_bytes(b"t" * 5)
    return root
