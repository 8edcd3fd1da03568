"""Configuration models and file I/O.

This module defines the Pydantic models for config.toml and provides
functions for loading and saving it. A missing file yields defaults.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from treesweep.core.paths import get_config_path, get_journal_path, get_trash_storage_dir

DEFAULT_EXCLUDES: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
    ".cache",
)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when config content is invalid."""


class ScanSettings(BaseModel):
    """Traversal settings shared by the tree and flat scanners.

    Attributes:
        default_depth: maxDepth used when a request does not give one.
        deep_depth: maxDepth used for deep tree scans.
        max_depth_ceiling: Hard upper bound on any requested depth.
        fan_out: Maximum concurrent stat calls during one scan.
        exclude: Directory names skipped without being stat'd.
        stat_cache_capacity: Entries kept by the shallow-size cache.
        allowed_roots: Roots that resolved paths must stay under (empty = any).
    """

    model_config = ConfigDict(extra="forbid")

    default_depth: Annotated[int, Field(ge=0, description="Default scan depth")] = 2
    deep_depth: Annotated[int, Field(ge=0, description="Deep scan depth")] = 8
    max_depth_ceiling: Annotated[int, Field(ge=0, description="Hard depth limit")] = 64
    fan_out: Annotated[int, Field(ge=1, le=64, description="Concurrent stat calls")] = 8
    exclude: Annotated[
        list[str],
        Field(default_factory=lambda: list(DEFAULT_EXCLUDES), description="Skipped names"),
    ]
    stat_cache_capacity: Annotated[int, Field(ge=0, description="Stat cache size")] = 4096
    allowed_roots: Annotated[
        list[Path],
        Field(default_factory=list, description="Permitted roots"),
    ]

    @model_validator(mode="after")
    def validate_depths(self) -> "ScanSettings":
        """Validate that configured depths respect the ceiling."""
        if self.default_depth > self.max_depth_ceiling:
            msg = "default_depth cannot exceed max_depth_ceiling"
            raise ValueError(msg)
        if self.deep_depth > self.max_depth_ceiling:
            msg = "deep_depth cannot exceed max_depth_ceiling"
            raise ValueError(msg)
        return self


class SchedulerSettings(BaseModel):
    """Scan scheduler settings."""

    model_config = ConfigDict(extra="forbid")

    debounce_ms: Annotated[int, Field(ge=0, description="Quiet window in ms")] = 250
    max_concurrent_scans: Annotated[int, Field(ge=1, description="Parallel scans")] = 4


class WatchSettings(BaseModel):
    """Directory watch settings."""

    model_config = ConfigDict(extra="forbid")

    poll_interval_ms: Annotated[int, Field(ge=10, description="Poll interval in ms")] = 500


class TrashSettings(BaseModel):
    """Trash storage locations. None means the XDG default."""

    model_config = ConfigDict(extra="forbid")

    storage_dir: Annotated[Path | None, Field(description="Stored copies directory")] = None
    journal_path: Annotated[Path | None, Field(description="Journal file")] = None

    def resolved_storage_dir(self) -> Path:
        """Return the effective storage directory."""
        return self.storage_dir.expanduser() if self.storage_dir else get_trash_storage_dir()

    def resolved_journal_path(self) -> Path:
        """Return the effective journal path."""
        return self.journal_path.expanduser() if self.journal_path else get_journal_path()


class Settings(BaseModel):
    """Top-level treesweep configuration."""

    model_config = ConfigDict(extra="forbid")

    scan: ScanSettings = Field(default_factory=ScanSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    trash: TrashSettings = Field(default_factory=TrashSettings)


def load_config(path: Path | None = None) -> Settings:
    """Load and validate settings from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default location.

    Returns:
        Validated Settings; defaults if the file does not exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return Settings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def save_config(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        settings: The Settings object to save.
        path: Destination path. If None, uses the default location.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings to a TOML-serializable dictionary.

    TOML has no null, so unset optional paths are omitted.
    """
    data = settings.model_dump(mode="json")
    data["trash"] = {key: value for key, value in data["trash"].items() if value is not None}
    return data
