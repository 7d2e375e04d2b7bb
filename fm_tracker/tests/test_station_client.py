"""Tests for the station API client."""

import json

import httpx
import pytest

from fm_tracker.services.station_client import (
    INVALID_RESPONSE_CODE,
    StationApiClient,
    StationApiError,
)
from fm_tracker.services.station_codec import INSPECTED_LABEL, NOT_SUBMITTED_LABEL
from fm_tracker.services.station_store import StationStore
from fm_tracker.services.station_types import InspectionStatus, SubmitRequest


def _client(handler, **kwargs) -> StationApiClient:
    return StationApiClient(
        base_url="http://stations.test",
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_list_stations_decodes_rows(sample_rows):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/stations"
        return httpx.Response(200, json={"stations": sample_rows[:2], "count": 2})

    stations = await _client(handler).list_stations()

    assert [station.name for station in stations] == ["Radio Thailand", "Cool Fahrenheit"]
    assert stations[0].inspection.is_inspected


@pytest.mark.asyncio
async def test_server_error_is_retried(sample_rows):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            return httpx.Response(503, json={"error": "warming up"})
        return httpx.Response(200, json={"stations": sample_rows[:1]})

    stations = await _client(handler).list_stations()

    assert len(attempts) == 2
    assert len(stations) == 1


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(401, json={"error": "Invalid API key", "code": "UNAUTHORIZED"})

    with pytest.raises(StationApiError) as excinfo:
        await _client(handler).list_stations()

    assert len(attempts) == 1
    assert excinfo.value.status_code == 401
    assert excinfo.value.user_message == "Invalid API key (UNAUTHORIZED)"


@pytest.mark.asyncio
async def test_get_station_missing_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Station not found", "code": "NOT_FOUND"})

    assert await _client(handler).get_station("999") is None


@pytest.mark.asyncio
async def test_patch_sends_camel_case_body_and_api_key(sample_rows):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["key"] = request.headers.get("X-API-Key")
        return httpx.Response(200, json={"success": True, "data": sample_rows[0]})

    row = await _client(handler, api_key="secret").patch_station(
        1, {"on_air": False, "inspection": InspectionStatus.inspected()}
    )

    assert seen == {
        "method": "PATCH",
        "path": "/api/stations/1",
        "body": {"onAir": False, "inspection68": INSPECTED_LABEL},
        "key": "secret",
    }
    assert row["id_fm"] == 1


@pytest.mark.asyncio
async def test_patch_error_carries_structured_fields():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(
            500,
            json={"error": "duplicate key", "code": "23505", "details": "id_fm", "hint": "retry later"},
        )

    with pytest.raises(StationApiError) as excinfo:
        await _client(handler).patch_station(1, {"on_air": True})

    error = excinfo.value
    assert len(attempts) == 1
    assert (error.status_code, error.code, error.details, error.hint) == (500, "23505", "id_fm", "retry later")
    assert not error.is_network_error
    assert error.user_message == "duplicate key (23505)"


@pytest.mark.asyncio
async def test_network_failure_uses_generic_message():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StationApiError) as excinfo:
        await _client(handler).patch_station(1, {"on_air": True})

    assert excinfo.value.is_network_error
    assert excinfo.value.user_message == "Network error, please try again"


@pytest.mark.asyncio
async def test_patch_without_data_is_an_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": None})

    with pytest.raises(StationApiError):
        await _client(handler).patch_station(1, {"on_air": True})


@pytest.mark.asyncio
async def test_non_json_success_is_invalid_response():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(200, text="<html>proxy error</html>")

    with pytest.raises(StationApiError) as excinfo:
        await _client(handler).recently_changed(10)

    assert len(attempts) == 1
    assert excinfo.value.code == INVALID_RESPONSE_CODE
    assert excinfo.value.status_code == 200
    assert not excinfo.value.is_network_error


@pytest.mark.asyncio
async def test_recent_entry_without_id_is_invalid_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"updated": [{"onAir": False}], "count": 1})

    with pytest.raises(StationApiError) as excinfo:
        await _client(handler).recently_changed(10)

    assert excinfo.value.code == INVALID_RESPONSE_CODE


@pytest.mark.asyncio
async def test_patch_with_unreadable_body_is_invalid_response(sample_rows):
    bodies = ["not json", json.dumps({"data": [1, 2]}),
              json.dumps({"data": dict(sample_rows[0], date_inspected="soon")})]

    for body in bodies:
        def handler(request: httpx.Request, body=body) -> httpx.Response:
            return httpx.Response(200, text=body)

        with pytest.raises(StationApiError) as excinfo:
            await _client(handler).patch_station(1, {"on_air": True})

        assert excinfo.value.code == INVALID_RESPONSE_CODE
        assert excinfo.value.status_code == 200


@pytest.mark.asyncio
async def test_recently_changed_decodes_entries():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["seconds"] == "10"
        return httpx.Response(
            200,
            json={
                "updated": [{"id": 4, "onAir": False, "inspection68": INSPECTED_LABEL,
                             "unwanted": "true", "submitRequest": NOT_SUBMITTED_LABEL}],
                "count": 1,
            },
        )

    (entry,) = await _client(handler).recently_changed(10)

    assert entry == {
        "id": 4,
        "on_air": False,
        "inspection": InspectionStatus.inspected(),
        "unwanted": True,
        "submit_request": SubmitRequest.NOT_SUBMITTED,
    }


@pytest.mark.asyncio
async def test_on_air_round_trip_through_api(app, seeded):
    """Toggle on-air locally, persist it, reload from the server."""
    api = StationApiClient(base_url="http://test", transport=httpx.ASGITransport(app=app))
    store = StationStore(api)
    await store.load()
    before = store.get(1).on_air

    pending = store.toggle_on_air(1)
    await pending.wait()

    reloaded = {station.id: station for station in await api.list_stations()}
    assert reloaded[1].on_air is (not before)
    assert store.get(1).on_air is (not before)
