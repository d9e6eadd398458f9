from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

from dubai_map_editor.schema import AreaRecord, LandmarkRecord


@dataclass(frozen=True)
class Snapshot:
    """Full copy of the working set at one point in time."""

    areas: Tuple[AreaRecord, ...] = ()
    landmarks: Tuple[LandmarkRecord, ...] = ()

    @classmethod
    def capture(
        cls, areas: Iterable[AreaRecord], landmarks: Iterable[LandmarkRecord]
    ) -> "Snapshot":
        return cls(
            areas=tuple(a.model_copy(deep=True) for a in areas),
            landmarks=tuple(lm.model_copy(deep=True) for lm in landmarks),
        )

    def remap_ids(self, mapping: Mapping[str, str]) -> "Snapshot":
        if not mapping:
            return self

        def _swap(record):
            new_id = mapping.get(record.id or "")
            if new_id is None:
                return record
            return record.model_copy(update={"id": new_id})

        return Snapshot(
            areas=tuple(_swap(a) for a in self.areas),
            landmarks=tuple(_swap(lm) for lm in self.landmarks),
        )


class HistoryStack:
    """Linear undo/redo history of snapshots.

    Pushing after an undo discards the redoable entries. When more than
    `cap` entries are held the oldest is evicted and the cursor shifts with it.
    """

    def __init__(self, initial: Snapshot, cap: int = 50) -> None:
        if cap < 1:
            raise ValueError("history cap must be at least 1")
        self.cap = cap
        self._entries: List[Snapshot] = [initial]
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Snapshot:
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> Tuple[Snapshot, ...]:
        return tuple(self._entries)

    def push(self, snapshot: Snapshot) -> None:
        del self._entries[self._cursor + 1 :]
        self._entries.append(snapshot)
        self._cursor += 1
        while len(self._entries) > self.cap:
            self._entries.pop(0)
            self._cursor -= 1

    def undo(self) -> Optional[Snapshot]:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Optional[Snapshot]:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def reset(self, initial: Snapshot) -> None:
        self._entries = [initial]
        self._cursor = 0

    def replace_current(self, snapshot: Snapshot) -> None:
        self._entries[self._cursor] = snapshot

    def remap_ids(self, mapping: Mapping[str, str]) -> None:
        """Rewrite temporary identities to server identities in every entry."""

        if mapping:
            self._entries = [s.remap_ids(mapping) for s in self._entries]
