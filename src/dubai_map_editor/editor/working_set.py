from __future__ import annotations

import uuid
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from dubai_map_editor.errors import UnknownRecordError
from dubai_map_editor.schema import AreaRecord, LandmarkRecord, LatLng, Polygon, merge
from dubai_map_editor.schema.records import Record

from .history import Snapshot


def _default_id_factory() -> str:
    return uuid.uuid4().hex[:12]


class WorkingSet:
    """Live, editable areas and landmarks.

    Every mutation replaces the whole tuple, so earlier snapshots never see
    later edits.
    """

    def __init__(
        self,
        areas: Iterable[AreaRecord] = (),
        landmarks: Iterable[LandmarkRecord] = (),
        temp_prefix: str = "temp-",
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.temp_prefix = temp_prefix
        self._id_factory = id_factory or _default_id_factory
        self.areas: Tuple[AreaRecord, ...] = tuple(areas)
        self.landmarks: Tuple[LandmarkRecord, ...] = tuple(landmarks)

    def is_temporary(self, record_id: Optional[str]) -> bool:
        return bool(record_id) and str(record_id).startswith(self.temp_prefix)

    def new_temp_id(self) -> str:
        existing = {r.id for r in self.areas + self.landmarks}
        while True:
            candidate = f"{self.temp_prefix}{self._id_factory()}"
            if candidate not in existing:
                return candidate

    def snapshot(self) -> Snapshot:
        return Snapshot.capture(self.areas, self.landmarks)

    def restore(self, snapshot: Snapshot) -> None:
        self.areas = tuple(snapshot.areas)
        self.landmarks = tuple(snapshot.landmarks)

    def get_area(self, area_id: str) -> Optional[AreaRecord]:
        return next((a for a in self.areas if a.id == area_id), None)

    def get_landmark(self, landmark_id: str) -> Optional[LandmarkRecord]:
        return next((lm for lm in self.landmarks if lm.id == landmark_id), None)

    def get(self, record_id: str) -> Optional[Record]:
        return self.get_area(record_id) or self.get_landmark(record_id)

    @staticmethod
    def _replace(records, kind: str, record_id: str, fn):
        found = False
        out = []
        for record in records:
            if record.id == record_id:
                record = fn(record)
                found = True
            out.append(record)
        if not found:
            raise UnknownRecordError(kind, record_id)
        return tuple(out)

    def add_area(self, area: AreaRecord) -> AreaRecord:
        added = area.model_copy(update={"id": self.new_temp_id()})
        self.areas = self.areas + (added,)
        return added

    def add_landmark(self, landmark: LandmarkRecord) -> LandmarkRecord:
        added = landmark.model_copy(update={"id": self.new_temp_id()})
        self.landmarks = self.landmarks + (added,)
        return added

    def remove_area(self, area_id: str) -> AreaRecord:
        area = self.get_area(area_id)
        if area is None:
            raise UnknownRecordError("area", area_id)
        self.areas = tuple(a for a in self.areas if a.id != area_id)
        return area

    def remove_landmark(self, landmark_id: str) -> LandmarkRecord:
        landmark = self.get_landmark(landmark_id)
        if landmark is None:
            raise UnknownRecordError("landmark", landmark_id)
        self.landmarks = tuple(lm for lm in self.landmarks if lm.id != landmark_id)
        return landmark

    def update_area(self, area_id: str, fields: Mapping[str, Any]) -> AreaRecord:
        self.areas = self._replace(self.areas, "area", area_id, lambda a: merge(a, fields))
        return self.get_area(area_id)

    def update_landmark(self, landmark_id: str, fields: Mapping[str, Any]) -> LandmarkRecord:
        self.landmarks = self._replace(
            self.landmarks, "landmark", landmark_id, lambda lm: merge(lm, fields)
        )
        return self.get_landmark(landmark_id)

    def replace_area_boundary(self, area_id: str, boundary: Polygon) -> AreaRecord:
        if not isinstance(boundary, Polygon):
            boundary = Polygon.model_validate(boundary)
        self.areas = self._replace(
            self.areas,
            "area",
            area_id,
            lambda a: a.model_copy(update={"boundary": boundary}),
        )
        return self.get_area(area_id)

    def replace_landmark_location(self, landmark_id: str, lat: float, lng: float) -> LandmarkRecord:
        location = LatLng(lat=lat, lng=lng)
        self.landmarks = self._replace(
            self.landmarks,
            "landmark",
            landmark_id,
            lambda lm: lm.model_copy(update={"location": location}),
        )
        return self.get_landmark(landmark_id)

    def replace_identity(self, temp_id: str, record: Record) -> None:
        """Swap a temporary record for the one the server created."""

        if isinstance(record, AreaRecord):
            self.areas = self._replace(self.areas, "area", temp_id, lambda _: record)
        else:
            self.landmarks = self._replace(self.landmarks, "landmark", temp_id, lambda _: record)
