from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List

from dubai_map_editor.schema import comparable

from .baseline import BaselineStore
from .working_set import WorkingSet


@dataclass(frozen=True)
class DirtySet:
    """Identities of persisted records modified since the baseline."""

    areas: FrozenSet[str] = frozenset()
    landmarks: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.areas and not self.landmarks

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.areas or record_id in self.landmarks

    def __len__(self) -> int:
        return len(self.areas) + len(self.landmarks)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"areas": sorted(self.areas), "landmarks": sorted(self.landmarks)}


EMPTY = DirtySet()


def recompute(working: WorkingSet, baseline: BaselineStore) -> DirtySet:
    """Diff the working set against the baseline by value.

    Temporary records are skipped. A persisted record missing from the
    baseline counts as dirty.
    """

    areas = set()
    for area in working.areas:
        if working.is_temporary(area.id):
            continue
        base = baseline.get_area(area.id)
        if base is None or comparable(base) != comparable(area):
            areas.add(area.id)
    landmarks = set()
    for landmark in working.landmarks:
        if working.is_temporary(landmark.id):
            continue
        base = baseline.get_landmark(landmark.id)
        if base is None or comparable(base) != comparable(landmark):
            landmarks.add(landmark.id)
    return DirtySet(areas=frozenset(areas), landmarks=frozenset(landmarks))


def temporary_ids(working: WorkingSet) -> Dict[str, List[str]]:
    return {
        "areas": [a.id for a in working.areas if working.is_temporary(a.id)],
        "landmarks": [lm.id for lm in working.landmarks if working.is_temporary(lm.id)],
    }
