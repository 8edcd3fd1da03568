"""Path canonicalization and validation.

Resolution is purely syntactic plus symlink resolution: existence and
permissions are left to the caller so that "invalid path" and
"inaccessible path" stay distinguishable.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from treesweep.core.errors import InvalidPathError

# Characters the host filesystem refuses in a path
_FORBIDDEN_CHARS: frozenset[str] = frozenset({"\x00"})


def resolve(
    raw_path: str | os.PathLike[str],
    allowed_roots: Iterable[Path] = (),
    *,
    follow_final: bool = True,
) -> Path:
    """Canonicalize a path and check it against the permitted roots.

    ``~`` is expanded, relative paths are anchored at the working
    directory, ``.``/``..`` segments are collapsed and symlinks are
    resolved to their real target (non-strict: missing tails are kept).

    Args:
        raw_path: Path as supplied by the caller.
        allowed_roots: Roots the result must lie under. Empty means any.
        follow_final: If False, the last component is kept as-is so that
            operations on a symlink act on the link, not its target.

    Returns:
        Absolute canonical path.

    Raises:
        InvalidPathError: If the path is empty, contains forbidden
            characters, cannot be resolved, or escapes every allowed root.
    """
    text = os.fspath(raw_path)
    if not text:
        msg = "Path cannot be empty"
        raise InvalidPathError(msg, path=text)
    if any(ch in _FORBIDDEN_CHARS for ch in text):
        msg = f"Path contains forbidden characters: {text!r}"
        raise InvalidPathError(msg, path=text)

    try:
        if follow_final:
            canonical = Path(text).expanduser().resolve(strict=False)
        else:
            absolute = Path(os.path.abspath(Path(text).expanduser()))
            canonical = absolute.parent.resolve(strict=False) / absolute.name
    except (OSError, RuntimeError) as e:
        # RuntimeError: symlink loop on older interpreters
        raise InvalidPathError(f"Cannot resolve path {text}: {e}", path=text) from e

    roots = [root.expanduser().resolve(strict=False) for root in allowed_roots]
    if roots and not any(canonical.is_relative_to(root) for root in roots):
        msg = f"Path is outside the allowed roots: {canonical}"
        raise InvalidPathError(msg, path=str(canonical))

    return canonical
