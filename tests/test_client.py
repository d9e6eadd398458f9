import httpx
import pytest

from dubai_map_editor.cache import ResponseCache
from dubai_map_editor.client import DubaiApiClient, RetryConfig, compute_backoff_delays
from dubai_map_editor.errors import ApiError


def _client(http, **kwargs):
    return DubaiApiClient(base_url="http://testserver", http=http, **kwargs)


def _mock(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_backoff_delays_grow():
    delays = compute_backoff_delays(3, base_delay=0.1, factor=2.0, jitter=0.0)
    assert delays == [0.1, 0.2, 0.4]
    assert compute_backoff_delays(0) == []


def test_round_trip_against_app(api, make_area, make_landmark):
    client = _client(api)
    area = client.create_area(make_area(area_id=None, name="Jumeirah"))
    landmark = client.create_landmark(make_landmark(landmark_id=None))
    assert area.id and landmark.id

    assert [a.id for a in client.fetch_areas()] == [area.id]
    updated = client.update_area(area.id, {"nameAr": "جميرا", "opacity": 0.6})
    assert updated.name_ar == "جميرا"
    assert client.get_area(area.id).opacity == 0.6

    moved = landmark.model_copy(update={"name": "Frame"})
    assert client.batch_update([updated], [moved])["landmarks"] == 1
    assert client.get_landmark(landmark.id).name == "Frame"

    assert client.delete_area(area.id) is True
    with pytest.raises(ApiError) as excinfo:
        client.get_area(area.id)
    assert excinfo.value.status == 404
    assert "Area not found" in str(excinfo.value)
    assert "(HTTP 404)" in str(excinfo.value)


def test_fetch_uses_cache_until_write(api, make_area):
    cache = ResponseCache()
    client = _client(api, cache=cache)
    client.create_area(make_area(area_id=None))
    assert len(client.fetch_areas()) == 1
    assert len(client.fetch_areas()) == 1
    assert cache.stats()["hits"] == 1

    client.create_area(make_area(area_id=None))
    assert len(cache) == 0
    assert len(client.fetch_areas()) == 2
    assert len(client.fetch_areas(use_cache=False)) == 2


def test_get_retries_on_server_error():
    calls = []

    def handler(request):
        calls.append(request.method)
        if len(calls) < 3:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json=[])

    sleeps = []
    client = _client(
        _mock(handler),
        retry_config=RetryConfig(retries=2, jitter=0.0),
        sleep_fn=sleeps.append,
    )
    assert client.fetch_areas() == []
    assert calls == ["GET", "GET", "GET"]
    assert sleeps == [0.2, 0.4]


def test_get_gives_up_after_retries():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    client = _client(_mock(handler), retry_config=RetryConfig(retries=1), sleep_fn=lambda s: None)
    with pytest.raises(ApiError) as excinfo:
        client.fetch_landmarks()
    assert excinfo.value.status == 500
    assert "boom" in str(excinfo.value)


def test_writes_are_not_retried(make_area):
    calls = []

    def handler(request):
        calls.append(request.method)
        return httpx.Response(503)

    client = _client(_mock(handler), retry_config=RetryConfig(retries=3), sleep_fn=lambda s: None)
    with pytest.raises(ApiError):
        client.create_area(make_area(area_id=None))
    assert calls == ["POST"]


def test_transport_error_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(_mock(handler), retry_config=RetryConfig(retries=0))
    with pytest.raises(ApiError) as excinfo:
        client.fetch_areas()
    assert excinfo.value.status is None


def test_malformed_response_is_rejected():
    def handler(request):
        if request.url.path.endswith("/areas"):
            return httpx.Response(200, json=[{"name": "no boundary"}])
        return httpx.Response(200, text="<html>")

    client = _client(_mock(handler), retry_config=RetryConfig(retries=0))
    with pytest.raises(ApiError, match="malformed area"):
        client.fetch_areas()
    with pytest.raises(ApiError, match="not JSON"):
        client.fetch_landmarks()


def test_batch_update_must_be_accepted(make_area):
    def handler(request):
        return httpx.Response(200, json={"success": False})

    client = _client(_mock(handler))
    with pytest.raises(ApiError, match="not accepted"):
        client.batch_update([make_area("a1")])
