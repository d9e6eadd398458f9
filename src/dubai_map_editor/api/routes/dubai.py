from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from dubai_map_editor.config import get_settings
from dubai_map_editor.schema import AreaRecord, LandmarkRecord
from dubai_map_editor.storage import DubaiSQLiteStore

router = APIRouter(tags=["dubai"])
logger = logging.getLogger("dme.api")

_SERVER_KEYS = {"id", "createdAt", "updatedAt", "created_at", "updated_at"}


def _get_db_path() -> str:
    return os.getenv("DME_DB_PATH") or get_settings().db_path


def _out(record) -> Dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


def _patch_fields(body: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in (body or {}).items() if k not in _SERVER_KEYS}
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return fields


class BatchUpdateBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    areas: List[AreaRecord] = Field(default_factory=list)
    landmarks: List[LandmarkRecord] = Field(default_factory=list)


@router.get("/areas")
def list_areas() -> List[Dict[str, Any]]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        return [_out(a) for a in store.list_areas()]
    finally:
        store.close()


@router.get("/areas/{area_id}")
def get_area(area_id: str) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        area = store.get_area(area_id)
        if area is None:
            raise HTTPException(status_code=404, detail="Area not found")
        return _out(area)
    finally:
        store.close()


@router.post("/areas", status_code=201)
def create_area(body: AreaRecord) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        created = store.create_area(body)
        logger.info("created area %s (%s)", created.id, created.name)
        return _out(created)
    finally:
        store.close()


@router.put("/areas/{area_id}")
def update_area(area_id: str, body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    fields = _patch_fields(body)
    store = DubaiSQLiteStore(_get_db_path())
    try:
        try:
            updated = store.update_area(area_id, fields)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if updated is None:
            raise HTTPException(status_code=404, detail="Area not found")
        return _out(updated)
    finally:
        store.close()


@router.delete("/areas/{area_id}")
def delete_area(area_id: str) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        if not store.delete_area(area_id):
            raise HTTPException(status_code=404, detail="Area not found")
        logger.info("deleted area %s", area_id)
        return {"success": True, "id": area_id}
    finally:
        store.close()


@router.get("/landmarks")
def list_landmarks() -> List[Dict[str, Any]]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        return [_out(lm) for lm in store.list_landmarks()]
    finally:
        store.close()


@router.get("/landmarks/{landmark_id}")
def get_landmark(landmark_id: str) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        landmark = store.get_landmark(landmark_id)
        if landmark is None:
            raise HTTPException(status_code=404, detail="Landmark not found")
        return _out(landmark)
    finally:
        store.close()


@router.post("/landmarks", status_code=201)
def create_landmark(body: LandmarkRecord) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        created = store.create_landmark(body)
        logger.info("created landmark %s (%s)", created.id, created.name)
        return _out(created)
    finally:
        store.close()


@router.put("/landmarks/{landmark_id}")
def update_landmark(landmark_id: str, body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    fields = _patch_fields(body)
    store = DubaiSQLiteStore(_get_db_path())
    try:
        try:
            updated = store.update_landmark(landmark_id, fields)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if updated is None:
            raise HTTPException(status_code=404, detail="Landmark not found")
        return _out(updated)
    finally:
        store.close()


@router.delete("/landmarks/{landmark_id}")
def delete_landmark(landmark_id: str) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        if not store.delete_landmark(landmark_id):
            raise HTTPException(status_code=404, detail="Landmark not found")
        logger.info("deleted landmark %s", landmark_id)
        return {"success": True, "id": landmark_id}
    finally:
        store.close()


@router.put("/batch-update")
def batch_update(body: BatchUpdateBody) -> Dict[str, Any]:
    store = DubaiSQLiteStore(_get_db_path())
    try:
        try:
            n_areas, n_landmarks = store.batch_upsert(body.areas, body.landmarks)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.info("batch update: %d areas, %d landmarks", n_areas, n_landmarks)
        return {"success": True, "areas": n_areas, "landmarks": n_landmarks}
    finally:
        store.close()
