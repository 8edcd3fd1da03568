"""Protected filesystem paths that must never be trashed or renamed.

Patterns starting with ~ are expanded to the user's home directory
before matching; treesweep's own directories are always protected.
"""

import fnmatch
from pathlib import Path

from treesweep.core.paths import get_config_dir, get_data_dir, get_state_dir

_SYSTEM_TREES = ("/etc", "/usr", "/bin", "/sbin", "/lib", "/boot", "/proc", "/sys", "/dev")

# Glob-style patterns matched with fnmatch against absolute paths.
PROTECTED_PATH_PATTERNS: list[str] = [
    # Filesystem root and the home directory itself
    "/",
    "~",
    # SSH and security
    "~/.ssh",
    "~/.ssh/*",
    "~/.gnupg",
    "~/.gnupg/*",
    # System trees and everything below them
    *(pattern for tree in _SYSTEM_TREES for pattern in (tree, f"{tree}/*")),
]


def _own_dirs() -> list[Path]:
    return [get_config_dir(), get_state_dir(), get_data_dir()]


def is_protected_path(path: str) -> bool:
    """Check if a path must not be trashed or renamed.

    Args:
        path: Absolute filesystem path to check.

    Returns:
        True if the path matches a protected pattern or lies within
        one of treesweep's own config/state/data directories.
    """
    home = str(Path.home())
    normalized = path.rstrip("/") or "/"

    for pattern in PROTECTED_PATH_PATTERNS:
        expanded = home + pattern[1:] if pattern.startswith("~") else pattern
        if fnmatch.fnmatch(normalized, expanded):
            return True

    candidate = Path(normalized)
    return any(candidate == own or candidate.is_relative_to(own) for own in _own_dirs())
