from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from dubai_map_editor.schema import AreaRecord, LandmarkRecord


class BaselineStore:
    """Last server-synced copy of areas and landmarks.

    `load` only fetches; the caller decides when to `reset`. Errors from the
    client propagate unchanged.
    """

    def __init__(self, client=None) -> None:
        self.client = client
        self._areas: Tuple[AreaRecord, ...] = ()
        self._landmarks: Tuple[LandmarkRecord, ...] = ()
        self._area_index: Dict[str, AreaRecord] = {}
        self._landmark_index: Dict[str, LandmarkRecord] = {}

    def load(self, refresh: bool = False) -> Tuple[Tuple[AreaRecord, ...], Tuple[LandmarkRecord, ...]]:
        if self.client is None:
            raise RuntimeError("baseline store has no API client")
        areas = self.client.fetch_areas(use_cache=not refresh)
        landmarks = self.client.fetch_landmarks(use_cache=not refresh)
        return tuple(areas), tuple(landmarks)

    def reset(self, areas: Iterable[AreaRecord], landmarks: Iterable[LandmarkRecord]) -> None:
        self._areas = tuple(a.model_copy(deep=True) for a in areas)
        self._landmarks = tuple(lm.model_copy(deep=True) for lm in landmarks)
        self._area_index = {a.id: a for a in self._areas if a.id}
        self._landmark_index = {lm.id: lm for lm in self._landmarks if lm.id}

    def absorb_created(
        self,
        areas: Iterable[AreaRecord] = (),
        landmarks: Iterable[LandmarkRecord] = (),
    ) -> None:
        """Add records the server just created without touching the rest."""

        self.reset(self._areas + tuple(areas), self._landmarks + tuple(landmarks))

    def forget_area(self, area_id: str) -> None:
        self.reset([a for a in self._areas if a.id != area_id], self._landmarks)

    def forget_landmark(self, landmark_id: str) -> None:
        self.reset(self._areas, [lm for lm in self._landmarks if lm.id != landmark_id])

    @property
    def areas(self) -> Tuple[AreaRecord, ...]:
        return self._areas

    @property
    def landmarks(self) -> Tuple[LandmarkRecord, ...]:
        return self._landmarks

    def get_area(self, area_id: str) -> Optional[AreaRecord]:
        return self._area_index.get(area_id)

    def get_landmark(self, landmark_id: str) -> Optional[LandmarkRecord]:
        return self._landmark_index.get(landmark_id)
