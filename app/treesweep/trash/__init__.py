"""Journaled soft-delete (trash) module."""

from treesweep.trash.journal import TrashJournal
from treesweep.trash.manager import RecoveryReport, TrashManager
from treesweep.trash.models import TrashItem, TrashState, create_trash_item

__all__ = [
    "RecoveryReport",
    "TrashItem",
    "TrashJournal",
    "TrashManager",
    "TrashState",
    "create_trash_item",
]
