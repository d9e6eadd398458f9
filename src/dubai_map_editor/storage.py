from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from dubai_map_editor.schema import AreaRecord, LandmarkRecord, merge, to_payload
from dubai_map_editor.schema.records import R


_TABLES: Dict[Type[Any], str] = {
    AreaRecord: "dubai_areas",
    LandmarkRecord: "dubai_landmarks",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DubaiSQLiteStore:
    """SQLite persistence for map areas and landmarks.

    Each row keeps the sortable columns next to the full record JSON
    (camelCase, without identity and timestamps).
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _init_schema(self) -> None:
        for table in _TABLES.values():
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    visible INTEGER NOT NULL DEFAULT 1,
                    display_order INTEGER NOT NULL DEFAULT 0,
                    record_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self.conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_order ON {table}(display_order, name)"
            )
        self.conn.commit()

    @staticmethod
    def _row_to_record(model: Type[R], row: sqlite3.Row) -> R:
        data = json.loads(row["record_json"])
        data["id"] = row["id"]
        data["createdAt"] = row["created_at"]
        data["updatedAt"] = row["updated_at"]
        return model.model_validate(data)

    def _list(self, model: Type[R], include_hidden: bool) -> List[R]:
        table = _TABLES[model]
        sql = f"SELECT * FROM {table}"
        if not include_hidden:
            sql += " WHERE visible = 1"
        sql += " ORDER BY display_order ASC, name ASC"
        return [self._row_to_record(model, row) for row in self.conn.execute(sql)]

    def _get(self, model: Type[R], record_id: str) -> Optional[R]:
        row = self.conn.execute(
            f"SELECT * FROM {_TABLES[model]} WHERE id = ?", (record_id,)
        ).fetchone()
        if not row:
            return None
        return self._row_to_record(model, row)

    def _write(self, record: R, created_at: str, updated_at: str) -> None:
        self.conn.execute(
            f"""
            INSERT INTO {_TABLES[type(record)]}
                (id, name, visible, display_order, record_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name=excluded.name,
                visible=excluded.visible,
                display_order=excluded.display_order,
                record_json=excluded.record_json,
                updated_at=excluded.updated_at
            """,
            (
                record.id,
                record.name,
                1 if record.visible else 0,
                int(record.display_order),
                json.dumps(to_payload(record), sort_keys=True),
                created_at,
                updated_at,
            ),
        )

    def _create(self, record: R) -> R:
        now = _now_iso()
        stored = record.model_copy(
            update={"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        )
        self._write(stored, now, now)
        self.conn.commit()
        return stored

    def _update(self, model: Type[R], record_id: str, fields: Mapping[str, Any]) -> Optional[R]:
        current = self._get(model, record_id)
        if current is None:
            return None
        now = _now_iso()
        updated = merge(current, fields).model_copy(update={"updated_at": now})
        self._write(updated, updated.created_at or now, now)
        self.conn.commit()
        return updated

    def _delete(self, model: Type[R], record_id: str) -> bool:
        cur = self.conn.execute(
            f"DELETE FROM {_TABLES[model]} WHERE id = ?", (record_id,)
        )
        self.conn.commit()
        return cur.rowcount > 0

    def list_areas(self, include_hidden: bool = False) -> List[AreaRecord]:
        return self._list(AreaRecord, include_hidden)

    def get_area(self, area_id: str) -> Optional[AreaRecord]:
        return self._get(AreaRecord, area_id)

    def create_area(self, area: AreaRecord) -> AreaRecord:
        return self._create(area)

    def update_area(self, area_id: str, fields: Mapping[str, Any]) -> Optional[AreaRecord]:
        return self._update(AreaRecord, area_id, fields)

    def delete_area(self, area_id: str) -> bool:
        return self._delete(AreaRecord, area_id)

    def list_landmarks(self, include_hidden: bool = False) -> List[LandmarkRecord]:
        return self._list(LandmarkRecord, include_hidden)

    def get_landmark(self, landmark_id: str) -> Optional[LandmarkRecord]:
        return self._get(LandmarkRecord, landmark_id)

    def create_landmark(self, landmark: LandmarkRecord) -> LandmarkRecord:
        return self._create(landmark)

    def update_landmark(
        self, landmark_id: str, fields: Mapping[str, Any]
    ) -> Optional[LandmarkRecord]:
        return self._update(LandmarkRecord, landmark_id, fields)

    def delete_landmark(self, landmark_id: str) -> bool:
        return self._delete(LandmarkRecord, landmark_id)

    def batch_upsert(
        self,
        areas: Iterable[AreaRecord],
        landmarks: Iterable[LandmarkRecord],
    ) -> Tuple[int, int]:
        """Write full records keyed by identity in one transaction."""

        areas = list(areas)
        landmarks = list(landmarks)
        for record in areas + landmarks:
            if not record.id:
                raise ValueError("batch update records need an id")
        now = _now_iso()
        with self.conn:
            for record in areas + landmarks:
                existing = self._get(type(record), record.id)
                created_at = (existing.created_at if existing else None) or now
                self._write(record, created_at, now)
        return len(areas), len(landmarks)
