"""Filesystem scanning module.

This module provides path resolution, the depth-bounded tree and flat
scanners, the debounced scan scheduler, directory watches, and the
rename/move primitives.
"""

from treesweep.filesystem.cache import StatCache
from treesweep.filesystem.categories import categorize, extension_of
from treesweep.filesystem.models import (
    Entry,
    EntryKind,
    FlatScanResult,
    ScanMode,
    ScanRequest,
    TreeNode,
)
from treesweep.filesystem.operator import FilesystemActionResult, FilesystemOperator
from treesweep.filesystem.protected import PROTECTED_PATH_PATTERNS, is_protected_path
from treesweep.filesystem.resolver import resolve
from treesweep.filesystem.scanner import DirectoryScanner, check_access
from treesweep.filesystem.scheduler import ScanScheduler
from treesweep.filesystem.watch import ChangeEvent, Subscription, WatchBridge, watch

__all__ = [
    "PROTECTED_PATH_PATTERNS",
    "ChangeEvent",
    "DirectoryScanner",
    "Entry",
    "EntryKind",
    "FilesystemActionResult",
    "FilesystemOperator",
    "FlatScanResult",
    "ScanMode",
    "ScanRequest",
    "ScanScheduler",
    "StatCache",
    "Subscription",
    "TreeNode",
    "WatchBridge",
    "categorize",
    "check_access",
    "extension_of",
    "is_protected_path",
    "resolve",
    "watch",
]
