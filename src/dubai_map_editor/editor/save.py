from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from dubai_map_editor.errors import EditorError
from dubai_map_editor.save_result import SaveResult
from dubai_map_editor.schema import AreaRecord, LandmarkRecord

from .baseline import BaselineStore
from .dirty import DirtySet
from .working_set import WorkingSet

logger = logging.getLogger("dme.save")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BatchSaveCoordinator:
    """Push the working set to the server in one user-triggered batch.

    Temporary records are created one call each (areas first), then every
    dirty record goes out in a single batch-update call. The first failing
    call stops the batch. Creates that already went through stay applied:
    their server records replace the temporary ones in the working set and
    are folded into the baseline, so a retry only sends what is left.
    """

    def __init__(self, client, baseline: BaselineStore) -> None:
        self.client = client
        self.baseline = baseline

    def save(self, working: WorkingSet, dirty: DirtySet) -> SaveResult:
        result = SaveResult(ok=False, started_at=_now_iso())
        created_areas: List[AreaRecord] = []
        created_landmarks: List[LandmarkRecord] = []
        try:
            for area in [a for a in working.areas if working.is_temporary(a.id)]:
                created = self.client.create_area(area)
                working.replace_identity(area.id, created)
                result.created[area.id] = created.id
                created_areas.append(created)
                logger.info("created area %s -> %s", area.id, created.id)
            for landmark in [lm for lm in working.landmarks if working.is_temporary(lm.id)]:
                created = self.client.create_landmark(landmark)
                working.replace_identity(landmark.id, created)
                result.created[landmark.id] = created.id
                created_landmarks.append(created)
                logger.info("created landmark %s -> %s", landmark.id, created.id)

            areas = [a for a in working.areas if a.id in dirty.areas]
            landmarks = [lm for lm in working.landmarks if lm.id in dirty.landmarks]
            if areas or landmarks:
                self.client.batch_update(areas, landmarks)
                result.updated_areas = [a.id for a in areas]
                result.updated_landmarks = [lm.id for lm in landmarks]
                logger.info(
                    "batch updated %d areas, %d landmarks", len(areas), len(landmarks)
                )
        except (EditorError, ValueError) as exc:
            result.errors.append(f"Failed to save changes: {exc}")
            result.finished_at = _now_iso()
            logger.warning(
                "save aborted after %d creates: %s", len(result.created), exc
            )
            self.baseline.absorb_created(created_areas, created_landmarks)
            return result

        self.baseline.reset(working.areas, working.landmarks)
        result.ok = True
        result.finished_at = _now_iso()
        return result
