import logging
import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dubai_map_editor.config import EditorSettings  # noqa: E402
from dubai_map_editor.errors import ApiError  # noqa: E402
from dubai_map_editor.schema import AreaRecord, LandmarkRecord, Polygon  # noqa: E402


SQUARE = [
    (55.10, 25.10),
    (55.20, 25.10),
    (55.20, 25.20),
    (55.10, 25.20),
    (55.10, 25.10),
]


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def reset_dme_logger():
    yield
    logger = logging.getLogger("dme")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


class FakeClient:
    """In-memory stand-in for DubaiApiClient that records every call."""

    def __init__(self, areas=(), landmarks=(), server_ids=None):
        self.areas = list(areas)
        self.landmarks = list(landmarks)
        self.calls = []
        self.server_ids = list(server_ids or [])
        self.fail_fetch = False
        self.fail_batch = False
        self.fail_create_after = None
        self._counter = 0

    def _next_id(self):
        if self.server_ids:
            return self.server_ids.pop(0)
        self._counter += 1
        return f"srv-{self._counter}"

    def fetch_areas(self, use_cache=True):
        self.calls.append(("fetch_areas",))
        if self.fail_fetch:
            raise ApiError("GET /areas failed", status=500)
        return list(self.areas)

    def fetch_landmarks(self, use_cache=True):
        self.calls.append(("fetch_landmarks",))
        if self.fail_fetch:
            raise ApiError("GET /landmarks failed", status=500)
        return list(self.landmarks)

    def _create(self, kind, record, bucket):
        done = sum(1 for c in self.calls if c[0].startswith("create_"))
        self.calls.append((f"create_{kind}", record.id))
        if self.fail_create_after is not None and done >= self.fail_create_after:
            raise ApiError(f"POST /{kind}s failed", status=500)
        created = record.model_copy(
            update={"id": self._next_id(), "created_at": "2026-01-01T00:00:00+00:00"}
        )
        bucket.append(created)
        return created

    def create_area(self, area):
        return self._create("area", area, self.areas)

    def create_landmark(self, landmark):
        return self._create("landmark", landmark, self.landmarks)

    def batch_update(self, areas=(), landmarks=()):
        self.calls.append(
            ("batch_update", [a.id for a in areas], [lm.id for lm in landmarks])
        )
        if self.fail_batch:
            raise ApiError("PUT /batch-update failed", status=500)
        for record in areas:
            self.areas = [a for a in self.areas if a.id != record.id] + [record]
        for record in landmarks:
            self.landmarks = [lm for lm in self.landmarks if lm.id != record.id] + [record]
        return {"success": True, "areas": len(areas), "landmarks": len(landmarks)}

    def delete_area(self, area_id):
        self.calls.append(("delete_area", area_id))
        if not any(a.id == area_id for a in self.areas):
            raise ApiError(f"DELETE /areas/{area_id} failed: Area not found", status=404)
        self.areas = [a for a in self.areas if a.id != area_id]
        return True

    def delete_landmark(self, landmark_id):
        self.calls.append(("delete_landmark", landmark_id))
        if not any(lm.id == landmark_id for lm in self.landmarks):
            raise ApiError(
                f"DELETE /landmarks/{landmark_id} failed: Landmark not found", status=404
            )
        self.landmarks = [lm for lm in self.landmarks if lm.id != landmark_id]
        return True

    def close(self):
        self.calls.append(("close",))

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


@pytest.fixture
def make_area():
    def _make(area_id="a1", ring=None, **fields):
        fields.setdefault("name", f"Area {area_id}")
        return AreaRecord(
            id=area_id, boundary=Polygon.from_ring(ring or SQUARE), **fields
        )

    return _make


@pytest.fixture
def make_landmark():
    def _make(landmark_id="l1", lat=25.197, lng=55.274, **fields):
        fields.setdefault("name", f"Landmark {landmark_id}")
        return LandmarkRecord(
            id=landmark_id, location={"lat": lat, "lng": lng}, **fields
        )

    return _make


@pytest.fixture
def settings():
    return EditorSettings(
        api_url="http://testserver",
        http_timeout=5.0,
        http_retries=0,
        history_cap=50,
        temp_prefix="temp-",
        cache_enabled=True,
        cache_ttl=120.0,
        db_path=":memory:",
    )


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def api(tmp_path, monkeypatch):
    from fastapi.testclient import TestClient

    from dubai_map_editor.api.app import app

    monkeypatch.setenv("DME_DB_PATH", str(tmp_path / "dubai.sqlite"))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def fake_client_cls():
    return FakeClient
