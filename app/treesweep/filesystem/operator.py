"""Filesystem mutation primitives.

Provides the rename operation exposed to callers plus the move, remove
and measure helpers the trash manager builds on. Moves never leave a
half-written destination: same-filesystem moves are a single rename,
cross-filesystem moves copy into a temporary sibling and atomically
replace it into place before the source is removed.
"""

import errno
import logging
import os
import shutil
import stat
import uuid
from dataclasses import dataclass
from pathlib import Path

from treesweep.core.errors import (
    InvalidPathError,
    NotFoundError,
    PermissionDeniedError,
    RestoreConflictError,
    TreesweepError,
    error_from_os,
    retry_on_exhaustion,
)
from treesweep.filesystem.protected import is_protected_path
from treesweep.filesystem.resolver import resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilesystemActionResult:
    """Result of a single filesystem operation.

    Attributes:
        path: Path that was operated on.
        success: Whether the operation completed successfully.
        error: Error message if the operation failed, None otherwise.
        dry_run: Whether this was a dry-run (nothing changed).
        target: Destination path for renames and moves.
    """

    path: str
    success: bool
    error: str | None = None
    dry_run: bool = False
    target: str | None = None


def lexists(path: Path) -> bool:
    """Return True if anything (including a dangling symlink) is at path."""
    return os.path.lexists(path)


def move_path(source: Path, destination: Path) -> None:
    """Move a file, directory or symlink to a new location.

    The destination must not exist; callers check for conflicts first.

    Args:
        source: Existing path.
        destination: New path, whose parent directory must exist.

    Raises:
        TreesweepError: Subclass matching the underlying OS failure.
    """
    try:
        retry_on_exhaustion(lambda: os.rename(source, destination))
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise error_from_os(e, str(source)) from e

    logger.debug("Cross-device move %s -> %s", source, destination)
    staging = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.partial")
    try:
        if source.is_dir() and not source.is_symlink():
            shutil.copytree(source, staging, symlinks=True)
        else:
            shutil.copy2(source, staging, follow_symlinks=False)
        os.replace(staging, destination)
    except OSError as e:
        remove_path(staging)
        raise error_from_os(e, str(source)) from e

    try:
        remove_path(source)
    except TreesweepError:
        logger.warning("Copied %s to %s but could not remove the source", source, destination)
        raise


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree.

    Returns:
        True if something was removed, False if nothing was there.

    Raises:
        TreesweepError: If the removal fails.
    """
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise error_from_os(e, str(path)) from e

    try:
        if stat.S_ISDIR(st.st_mode):
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise error_from_os(e, str(path)) from e
    return True


def path_size(path: Path) -> int:
    """Total lstat size of a path, recursing into directories.

    Symlinks are counted by their own size and never followed.
    Unreadable descendants are skipped.
    """
    try:
        st = os.lstat(path)
    except OSError:
        return 0
    if not stat.S_ISDIR(st.st_mode):
        return st.st_size

    total = 0
    stack = [str(path)]
    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    try:
                        entry_st = entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
                    if stat.S_ISDIR(entry_st.st_mode):
                        stack.append(entry.path)
                    else:
                        total += entry_st.st_size
        except OSError as e:
            logger.debug("Cannot measure %s: %s", directory, e)
    return total


class FilesystemOperator:
    """Handles user-directed renames.

    Supports dry-run mode and protected path rejection.

    Attributes:
        _dry_run: If True, simulate renames without modifying the filesystem.
    """

    def __init__(self, dry_run: bool = False, allowed_roots: tuple[Path, ...] = ()) -> None:
        self._dry_run = dry_run
        self._allowed_roots = allowed_roots

    def rename(self, old_path: str, new_path: str) -> FilesystemActionResult:
        """Rename an entry atomically without overwriting.

        Failures are reported in the result rather than raised.

        Args:
            old_path: Existing path.
            new_path: Destination path; must not exist.

        Returns:
            FilesystemActionResult describing the outcome.
        """
        try:
            source = resolve(old_path, self._allowed_roots, follow_final=False)
            destination = resolve(new_path, self._allowed_roots, follow_final=False)
            self._check_rename(source, destination)
        except TreesweepError as e:
            return FilesystemActionResult(
                path=old_path, success=False, error=str(e), target=new_path
            )

        if self._dry_run:
            logger.info("Dry-run: would rename %s -> %s", source, destination)
            return FilesystemActionResult(
                path=str(source), success=True, dry_run=True, target=str(destination)
            )

        try:
            move_path(source, destination)
        except TreesweepError as e:
            return FilesystemActionResult(
                path=str(source), success=False, error=str(e), target=str(destination)
            )

        logger.info("Renamed %s -> %s", source, destination)
        return FilesystemActionResult(path=str(source), success=True, target=str(destination))

    @staticmethod
    def _check_rename(source: Path, destination: Path) -> None:
        if is_protected_path(str(source)):
            msg = f"Protected path cannot be renamed: {source}"
            raise PermissionDeniedError(msg, path=str(source))
        if not lexists(source):
            msg = f"Path does not exist: {source}"
            raise NotFoundError(msg, path=str(source))
        if source == destination:
            msg = f"Source and destination are the same: {source}"
            raise InvalidPathError(msg, path=str(source))
        if destination.is_relative_to(source):
            msg = f"Cannot move a directory into itself: {destination}"
            raise InvalidPathError(msg, path=str(destination))
        if lexists(destination):
            msg = f"Destination already exists: {destination}"
            raise RestoreConflictError(msg, path=str(destination))
