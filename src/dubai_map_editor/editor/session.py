from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from dubai_map_editor.cache import ResponseCache
from dubai_map_editor.client import DubaiApiClient, RetryConfig
from dubai_map_editor.config import EditorSettings, get_settings
from dubai_map_editor.errors import UnknownRecordError
from dubai_map_editor.save_result import SaveResult
from dubai_map_editor.schema import (
    NEW_AREA_DEFAULTS,
    NEW_LANDMARK_DEFAULTS,
    AreaRecord,
    LandmarkRecord,
    Polygon,
    normalize_fields,
    to_featurecollection,
)
from dubai_map_editor.schema.records import Record

from .baseline import BaselineStore
from .dirty import EMPTY, DirtySet, recompute, temporary_ids
from .history import HistoryStack, Snapshot
from .save import BatchSaveCoordinator
from .working_set import WorkingSet

logger = logging.getLogger("dme.session")


def _as_polygon(boundary: Any) -> Polygon:
    if isinstance(boundary, Polygon):
        return boundary
    if isinstance(boundary, dict):
        return Polygon.model_validate(boundary)
    return Polygon.from_ring(boundary)


class EditorSession:
    """One open map-editor session.

    The map surface calls the mutation methods below; each one commits a
    history snapshot and recomputes the dirty set. The session owns its
    cache and, unless one is injected, its API client.
    """

    def __init__(
        self,
        client=None,
        settings: Optional[EditorSettings] = None,
        cache: Optional[ResponseCache] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        if cache is None:
            cache = ResponseCache(
                ttl=self.settings.cache_ttl, enabled=self.settings.cache_enabled
            )
        self.cache = cache
        self._owns_client = client is None
        if client is None:
            client = DubaiApiClient(
                base_url=self.settings.api_url,
                timeout=self.settings.http_timeout,
                retry_config=RetryConfig(retries=self.settings.http_retries),
                cache=self.cache,
            )
        self.client = client
        self.baseline = BaselineStore(client)
        self.working = WorkingSet(temp_prefix=self.settings.temp_prefix, id_factory=id_factory)
        self.history = HistoryStack(self.working.snapshot(), cap=self.settings.history_cap)
        self.saver = BatchSaveCoordinator(client, self.baseline)
        self.dirty: DirtySet = EMPTY
        self.selected: Optional[str] = None
        self.saving = False

    def __enter__(self) -> "EditorSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
        self.cache.clear()

    # Loading

    def load(self, refresh: bool = False) -> None:
        try:
            areas, landmarks = self.baseline.load(refresh=refresh)
        except Exception:
            logger.warning("loading areas/landmarks failed")
            self._start_from(Snapshot())
            raise
        self._start_from(Snapshot.capture(areas, landmarks))
        logger.info("loaded %d areas, %d landmarks", len(areas), len(landmarks))

    def _start_from(self, snapshot: Snapshot) -> None:
        self.baseline.reset(snapshot.areas, snapshot.landmarks)
        self.working.restore(snapshot)
        self.history.reset(self.working.snapshot())
        self.dirty = EMPTY
        self.selected = None

    def discard_changes(self) -> None:
        self._start_from(Snapshot.capture(self.baseline.areas, self.baseline.landmarks))

    # State

    @property
    def areas(self):
        return self.working.areas

    @property
    def landmarks(self):
        return self.working.landmarks

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    @property
    def has_unsaved_changes(self) -> bool:
        pending = temporary_ids(self.working)
        return not self.dirty.is_empty or bool(pending["areas"] or pending["landmarks"])

    @property
    def selected_record(self) -> Optional[Record]:
        if self.selected is None:
            return None
        return self.working.get(self.selected)

    def select(self, record_id: Optional[str]) -> None:
        if record_id is not None and self.working.get(record_id) is None:
            raise UnknownRecordError("record", record_id)
        self.selected = record_id

    def feature_collection(self) -> dict:
        return to_featurecollection(self.working.areas, self.working.landmarks)

    def _refresh_dirty(self) -> None:
        self.dirty = recompute(self.working, self.baseline)
        if self.selected is not None and self.working.get(self.selected) is None:
            self.selected = None

    def _commit(self) -> None:
        self.history.push(self.working.snapshot())
        self._refresh_dirty()

    # Map surface events

    def add_area(self, boundary: Any, **fields) -> AreaRecord:
        data = dict(NEW_AREA_DEFAULTS)
        data.update(normalize_fields(AreaRecord, fields))
        data["boundary"] = _as_polygon(boundary)
        area = self.working.add_area(AreaRecord.model_validate(data))
        self.selected = area.id
        self._commit()
        return area

    def add_landmark(self, lat: float, lng: float, **fields) -> LandmarkRecord:
        data = dict(NEW_LANDMARK_DEFAULTS)
        data.update(normalize_fields(LandmarkRecord, fields))
        data["location"] = {"lat": lat, "lng": lng}
        landmark = self.working.add_landmark(LandmarkRecord.model_validate(data))
        self.selected = landmark.id
        self._commit()
        return landmark

    def update_area(self, area_id: str, **fields) -> AreaRecord:
        area = self.working.update_area(area_id, fields)
        self._commit()
        return area

    def update_landmark(self, landmark_id: str, **fields) -> LandmarkRecord:
        landmark = self.working.update_landmark(landmark_id, fields)
        self._commit()
        return landmark

    def set_area_boundary(self, area_id: str, boundary: Any) -> AreaRecord:
        area = self.working.replace_area_boundary(area_id, _as_polygon(boundary))
        self._commit()
        return area

    def move_vertex(self, area_id: str, index: int, lng: float, lat: float) -> AreaRecord:
        area = self.working.get_area(area_id)
        if area is None:
            raise UnknownRecordError("area", area_id)
        return self.set_area_boundary(area_id, area.boundary.move_vertex(index, lng, lat))

    def translate_area(self, area_id: str, dlng: float, dlat: float) -> AreaRecord:
        area = self.working.get_area(area_id)
        if area is None:
            raise UnknownRecordError("area", area_id)
        return self.set_area_boundary(area_id, area.boundary.translate(dlng, dlat))

    def move_landmark(self, landmark_id: str, lat: float, lng: float) -> LandmarkRecord:
        landmark = self.working.replace_landmark_location(landmark_id, lat, lng)
        self._commit()
        return landmark

    def delete_area(self, area_id: str) -> None:
        if self.working.get_area(area_id) is None:
            raise UnknownRecordError("area", area_id)
        # Deletes go to the server right away, they are not staged. A record
        # missing from the baseline is already gone there (undone delete).
        if self.baseline.get_area(area_id) is not None:
            self.client.delete_area(area_id)
            self.baseline.forget_area(area_id)
            logger.info("deleted area %s", area_id)
        self.working.remove_area(area_id)
        self._commit()

    def delete_landmark(self, landmark_id: str) -> None:
        if self.working.get_landmark(landmark_id) is None:
            raise UnknownRecordError("landmark", landmark_id)
        if self.baseline.get_landmark(landmark_id) is not None:
            self.client.delete_landmark(landmark_id)
            self.baseline.forget_landmark(landmark_id)
            logger.info("deleted landmark %s", landmark_id)
        self.working.remove_landmark(landmark_id)
        self._commit()

    # History

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.working.restore(snapshot)
        self._refresh_dirty()
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.working.restore(snapshot)
        self._refresh_dirty()
        return True

    # Saving

    def save(self) -> SaveResult:
        self.saving = True
        try:
            result = self.saver.save(self.working, self.dirty)
        finally:
            self.saving = False
        if result.created:
            self.history.remap_ids(result.created)
            if self.selected in result.created:
                self.selected = result.created[self.selected]
        self.history.replace_current(self.working.snapshot())
        if result.ok:
            self.dirty = EMPTY
        else:
            self._refresh_dirty()
        return result
