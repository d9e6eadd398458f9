"""Draft/history model behind the map editor.

Edits happen in a working set, are snapshotted for undo/redo, are diffed
against the last server baseline and go back to the server in one batch.
"""

from .baseline import BaselineStore
from .dirty import DirtySet, recompute, temporary_ids
from .history import HistoryStack, Snapshot
from .save import BatchSaveCoordinator
from .session import EditorSession
from .working_set import WorkingSet

__all__ = [
    "BaselineStore",
    "BatchSaveCoordinator",
    "DirtySet",
    "EditorSession",
    "HistoryStack",
    "Snapshot",
    "WorkingSet",
    "recompute",
    "temporary_ids",
]
