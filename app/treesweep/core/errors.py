"""Error kinds surfaced by scanning and trash operations.

Every exception raised to callers derives from TreesweepError and carries
an ErrorKind, so a presentation layer can branch on ``exc.kind`` without
knowing the concrete class.
"""

import errno
import time
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

T = TypeVar("T")

# errno values that indicate descriptor/handle or memory exhaustion
_EXHAUSTION_ERRNOS = frozenset({errno.EMFILE, errno.ENFILE, errno.ENOMEM})

RETRY_ATTEMPTS = 4
RETRY_BASE_DELAY = 0.05


class ErrorKind(str, Enum):
    """Classification of a failed filesystem or trash operation.

    Attributes:
        INVALID_PATH: Path is syntactically invalid or escapes allowed roots.
        PERMISSION_DENIED: The OS refused access, or the path is protected.
        NOT_FOUND: Path or trash item does not exist.
        NOT_A_DIRECTORY: A directory was expected.
        DESTINATION_UNAVAILABLE: Restore target's parent directory is gone.
        RESTORE_CONFLICT: Something already occupies the restore target.
        RESOURCE_EXHAUSTED: Descriptor or handle limits were hit.
        IO_FAILURE: Any other I/O error.
    """

    INVALID_PATH = "invalid_path"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    NOT_A_DIRECTORY = "not_a_directory"
    DESTINATION_UNAVAILABLE = "destination_unavailable"
    RESTORE_CONFLICT = "restore_conflict"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    IO_FAILURE = "io_failure"


class TreesweepError(Exception):
    """Base exception for treesweep operations."""

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InvalidPathError(TreesweepError):
    """Raised when a path is malformed or outside the permitted roots."""

    kind = ErrorKind.INVALID_PATH


class PermissionDeniedError(TreesweepError):
    """Raised when access is refused by the OS or by protection rules."""

    kind = ErrorKind.PERMISSION_DENIED


class NotFoundError(TreesweepError):
    """Raised when a path or trash item does not exist."""

    kind = ErrorKind.NOT_FOUND


class NotADirectoryPathError(TreesweepError):
    """Raised when a directory operation targets a non-directory."""

    kind = ErrorKind.NOT_A_DIRECTORY


class DestinationUnavailableError(TreesweepError):
    """Raised when a restore target's parent directory no longer exists."""

    kind = ErrorKind.DESTINATION_UNAVAILABLE


class RestoreConflictError(TreesweepError):
    """Raised when the restore target is already occupied."""

    kind = ErrorKind.RESTORE_CONFLICT


class ResourceExhaustedError(TreesweepError):
    """Raised when descriptor limits persist after retrying."""

    kind = ErrorKind.RESOURCE_EXHAUSTED


class IOFailureError(TreesweepError):
    """Raised for any other I/O failure."""

    kind = ErrorKind.IO_FAILURE


_ERRNO_MAP: dict[int, type[TreesweepError]] = {
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
    errno.ENOENT: NotFoundError,
    errno.ENOTDIR: NotADirectoryPathError,
    errno.ENAMETOOLONG: InvalidPathError,
    errno.EMFILE: ResourceExhaustedError,
    errno.ENFILE: ResourceExhaustedError,
    errno.ENOMEM: ResourceExhaustedError,
}


def error_from_os(exc: OSError, path: str | None = None) -> TreesweepError:
    """Translate an OSError into the matching TreesweepError subclass.

    The caller is expected to ``raise error_from_os(e, path) from e``.

    Args:
        exc: The OS-level exception.
        path: Path the failed operation was acting on.

    Returns:
        A TreesweepError instance (not raised).
    """
    cls = _ERRNO_MAP.get(exc.errno or 0, IOFailureError)
    target = path if path is not None else exc.filename
    message = exc.strerror or str(exc)
    if target is not None:
        message = f"{message}: {target}"
    return cls(message, path=str(target) if target is not None else None)


def is_exhaustion(exc: OSError) -> bool:
    """Return True if the error signals descriptor or memory exhaustion."""
    return exc.errno in _EXHAUSTION_ERRNOS


def retry_on_exhaustion(
    operation: Callable[[], T],
    *,
    attempts: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY,
) -> T:
    """Run an operation, backing off and retrying on EMFILE/ENFILE/ENOMEM.

    Only the single operation is retried; any other OSError propagates
    immediately. The last exhaustion error propagates unchanged once the
    attempts are used up.

    Args:
        operation: Zero-argument callable performing one filesystem call.
        attempts: Total number of tries.
        base_delay: First backoff delay in seconds, doubled each retry.

    Returns:
        Whatever the operation returns.
    """
    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except OSError as e:
            if not is_exhaustion(e) or attempt == attempts:
                raise
            time.sleep(delay)
            delay *= 2
    msg = "attempts must be at least 1"
    raise ValueError(msg)
