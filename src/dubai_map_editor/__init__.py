"""Package initializer for `dubai_map_editor`."""

from .editor import EditorSession
from .save_result import SaveResult

__all__ = ["EditorSession", "SaveResult"]
