import logging
import random
import time

import httpx
from pydantic import BaseModel, ValidationError

from dubai_map_editor.config import get_settings
from dubai_map_editor.errors import ApiError
from dubai_map_editor.schema import AreaRecord, LandmarkRecord, to_payload
from dubai_map_editor.schema.records import field_name

logger = logging.getLogger("dme.client")

RETRY_STATUS = {429, 500, 502, 503, 504}


class RetryConfig:
    """Backoff policy for GET loads; writes are sent once and never retried."""

    def __init__(self, retries=2, base_delay=0.2, factor=2.0, jitter=0.1):
        self.retries = retries
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter


def compute_backoff_delays(
    retries, base_delay=0.2, factor=2.0, jitter=0.1, rand_fn=None
):
    """Sleep before each GET retry: exponential from `base_delay`, +/- `jitter`."""

    delays = []
    current = base_delay
    rand_fn = rand_fn or random.random
    for _ in range(retries):
        noise = (rand_fn() * 2 - 1) * jitter
        delays.append(max(0.0, current + noise))
        current *= factor
    return delays


def _wire_fields(model, fields):
    out = {}
    for key, value in (fields or {}).items():
        name = field_name(model, key)
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", by_alias=True)
        out[model.model_fields[name].alias or name] = value
    return out


class DubaiApiClient:
    """Client for the `/api/dubai` endpoints.

    GET requests are retried on 429/5xx and transport errors; writes are sent
    once. Any `httpx.Client` can be injected, including FastAPI's TestClient.
    """

    def __init__(
        self,
        base_url=None,
        timeout=None,
        retry_config=None,
        cache=None,
        http=None,
        sleep_fn=time.sleep,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.retry_config = retry_config or RetryConfig(retries=settings.http_retries)
        self.cache = cache
        self._sleep = sleep_fn
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=self.timeout)

    def close(self):
        if self._owns_http and self._http is not None:
            self._http.close()
        self._http = None

    def _url(self, path):
        return f"{self.base_url}/api/dubai{path}"

    @staticmethod
    def _error_message(response, method, path):
        detail = None
        try:
            body = response.json()
            if isinstance(body, dict):
                detail = body.get("error") or body.get("detail")
        except ValueError:
            pass
        message = f"{method} {path} failed"
        if detail:
            message = f"{message}: {detail}"
        return message

    def _send(self, method, path, payload=None):
        if method == "GET":
            delays = compute_backoff_delays(
                self.retry_config.retries,
                self.retry_config.base_delay,
                self.retry_config.factor,
                self.retry_config.jitter,
            )
        else:
            delays = []
        url = self._url(path)
        for attempt in range(len(delays) + 1):
            try:
                response = self._http.request(method, url, json=payload)
            except httpx.HTTPError as exc:
                if attempt < len(delays):
                    logger.warning("%s %s failed (%s), retrying", method, path, exc)
                    self._sleep(delays[attempt])
                    continue
                raise ApiError(f"{method} {path} failed: {exc}") from exc
            status = response.status_code
            if status in RETRY_STATUS and attempt < len(delays):
                logger.warning("%s %s returned %s, retrying", method, path, status)
                self._sleep(delays[attempt])
                continue
            if status >= 400:
                raise ApiError(self._error_message(response, method, path), status=status)
            try:
                return response.json()
            except ValueError as exc:
                raise ApiError(f"{method} {path}: response is not JSON", status=status) from exc
        raise ApiError(f"{method} {path} failed")  # pragma: no cover

    @staticmethod
    def _parse(model, data, what):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ApiError(f"malformed {what} in response: {exc}") from exc

    def _parse_list(self, model, data, what):
        if not isinstance(data, list):
            raise ApiError(f"expected a list of {what}s")
        return [self._parse(model, item, what) for item in data]

    def _invalidate(self):
        if self.cache is not None:
            self.cache.invalidate()

    def _cached_list(self, key, path, model, use_cache):
        if use_cache and self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return list(cached)
        records = self._parse_list(model, self._send("GET", path), key.rstrip("s"))
        if self.cache is not None:
            self.cache.set(key, tuple(records))
        return records

    def fetch_areas(self, use_cache=True):
        return self._cached_list("areas", "/areas", AreaRecord, use_cache)

    def fetch_landmarks(self, use_cache=True):
        return self._cached_list("landmarks", "/landmarks", LandmarkRecord, use_cache)

    def get_area(self, area_id):
        return self._parse(AreaRecord, self._send("GET", f"/areas/{area_id}"), "area")

    def get_landmark(self, landmark_id):
        return self._parse(
            LandmarkRecord, self._send("GET", f"/landmarks/{landmark_id}"), "landmark"
        )

    def create_area(self, area):
        data = self._send("POST", "/areas", to_payload(area))
        self._invalidate()
        return self._parse(AreaRecord, data, "area")

    def create_landmark(self, landmark):
        data = self._send("POST", "/landmarks", to_payload(landmark))
        self._invalidate()
        return self._parse(LandmarkRecord, data, "landmark")

    def update_area(self, area_id, fields):
        data = self._send("PUT", f"/areas/{area_id}", _wire_fields(AreaRecord, fields))
        self._invalidate()
        return self._parse(AreaRecord, data, "area")

    def update_landmark(self, landmark_id, fields):
        data = self._send(
            "PUT", f"/landmarks/{landmark_id}", _wire_fields(LandmarkRecord, fields)
        )
        self._invalidate()
        return self._parse(LandmarkRecord, data, "landmark")

    def delete_area(self, area_id):
        self._send("DELETE", f"/areas/{area_id}")
        self._invalidate()
        return True

    def delete_landmark(self, landmark_id):
        self._send("DELETE", f"/landmarks/{landmark_id}")
        self._invalidate()
        return True

    def batch_update(self, areas=(), landmarks=()):
        payload = {
            "areas": [to_payload(a, include_id=True) for a in areas],
            "landmarks": [to_payload(lm, include_id=True) for lm in landmarks],
        }
        data = self._send("PUT", "/batch-update", payload)
        self._invalidate()
        if not isinstance(data, dict) or not data.get("success"):
            raise ApiError("batch update was not accepted")
        return data
