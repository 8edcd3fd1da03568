"""XDG-compliant path management for treesweep.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, and data storage.

XDG defaults:
- Config: ~/.config/treesweep/
- State: ~/.local/state/treesweep/
- Data: ~/.local/share/treesweep/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "treesweep"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/treesweep/ (or XDG_CONFIG_HOME/treesweep/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data holds the trash journal, which must survive restarts
    but is not configuration.

    Returns:
        Path to ~/.local/state/treesweep/ (or XDG_STATE_HOME/treesweep/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_data_dir() -> Path:
    """Get the data directory path.

    Returns:
        Path to ~/.local/share/treesweep/ (or XDG_DATA_HOME/treesweep/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/treesweep/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_journal_path() -> Path:
    """Get the default trash journal path.

    Returns:
        Path to ~/.local/state/treesweep/trash.jsonl.
    """
    return get_state_dir() / "trash.jsonl"


def get_trash_storage_dir() -> Path:
    """Get the default trash storage directory.

    Stored copies of soft-deleted items live here, one per journal item.

    Returns:
        Path to ~/.local/share/treesweep/trash/.
    """
    return get_data_dir() / "trash"
