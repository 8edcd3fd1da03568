"""Entry classification by extension and kind.

Both scanners call categorize() so tree and flat views always agree.
"""

from treesweep.filesystem.models import EntryKind

CATEGORY_DIRECTORY = "directory"
CATEGORY_SYMLINK = "symlink"
CATEGORY_OTHER = "other"

CATEGORY_EXTENSIONS: dict[str, frozenset[str]] = {
    "image": frozenset(
        {"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg", "tif", "tiff", "heic", "ico", "raw"}
    ),
    "video": frozenset({"mp4", "mov", "avi", "mkv", "webm", "m4v", "wmv", "flv"}),
    "audio": frozenset({"mp3", "wav", "flac", "aac", "ogg", "m4a", "opus", "wma"}),
    "document": frozenset({"pdf", "doc", "docx", "txt", "md", "rtf", "odt", "epub", "pages"}),
    "spreadsheet": frozenset({"xls", "xlsx", "csv", "ods", "numbers", "tsv"}),
    "presentation": frozenset({"ppt", "pptx", "odp", "key"}),
    "archive": frozenset(
        {"zip", "tar", "gz", "tgz", "bz2", "xz", "7z", "rar", "zst", "dmg", "iso"}
    ),
    "code": frozenset(
        {
            "py", "js", "ts", "tsx", "jsx", "java", "c", "h", "cpp", "hpp", "cs", "go", "rs",
            "rb", "php", "swift", "kt", "sh", "json", "toml", "yaml", "yml", "html", "css", "sql",
        }
    ),
}  # fmt: skip

# Reverse index built once: extension -> category
_EXTENSION_INDEX: dict[str, str] = {
    ext: category for category, extensions in CATEGORY_EXTENSIONS.items() for ext in extensions
}


def extension_of(name: str) -> str:
    """Return the lower-cased extension of a filename without the dot.

    Dotfiles without a further suffix (".bashrc") have no extension.
    """
    stem, dot, suffix = name.rpartition(".")
    if not dot or not stem:
        return ""
    return suffix.lower()


def categorize(name: str, kind: EntryKind) -> str:
    """Classify an entry.

    Args:
        name: Entry basename.
        kind: Entry kind.

    Returns:
        Category tag such as "image", "code", "directory" or "other".
    """
    if kind == EntryKind.DIRECTORY:
        return CATEGORY_DIRECTORY
    if kind == EntryKind.SYMLINK:
        return CATEGORY_SYMLINK
    if kind == EntryKind.OTHER:
        return CATEGORY_OTHER
    return _EXTENSION_INDEX.get(extension_of(name), CATEGORY_OTHER)
