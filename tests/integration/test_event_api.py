"""Integration tests for the event REST API over aiohttp."""

import warnings
from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from recurcal.api.middleware import correlation_id_middleware, error_middleware, get_request_id
from recurcal.api.server import SERVICE_KEY, make_app
from recurcal.core.config_loader import Config
from recurcal.domain.service import CalendarService
from recurcal.storage import InMemoryEventStore, JsonFileEventStore

STANDUP = {
    "title": "Standup",
    "startDate": "2024-03-04T09:00:00",
    "endDate": "2024-03-04T09:15:00",
    "isRecurring": True,
    "recurringPattern": "weekly",
    "recurringWeeks": "indefinite",
}

RANGE = "/api/events/range?startDate=2024-03-01T00:00:00&endDate=2024-03-22T00:00:00"


@pytest.fixture
def service():
    return CalendarService(InMemoryEventStore(), Config())


@pytest.fixture
async def client(service):
    async with TestClient(TestServer(make_app(service))) as test_client:
        yield test_client


async def _create_standup(client) -> dict:
    resp = await client.post("/api/events", json=STANDUP)
    assert resp.status == 201
    return await resp.json()


@pytest.mark.integration
class TestEventApi:
    """Round trips through the HTTP layer."""

    async def test_health_when_called_then_ok_with_count(self, client):
        await _create_standup(client)

        resp = await client.get("/api/health")

        assert resp.status == 200
        assert await resp.json() == {"status": "ok", "eventCount": 1}

    async def test_create_when_valid_then_camel_case_record(self, client):
        created = await _create_standup(client)

        assert created["title"] == "Standup"
        assert created["isRecurring"] is True
        assert created["recurringWeeks"] == "indefinite"
        assert created["parentEventId"] is None
        assert created["id"]

    async def test_create_when_invalid_then_400_with_message(self, client):
        resp = await client.post("/api/events", json={**STANDUP, "recurringPattern": None})

        assert resp.status == 400
        assert "recurring_pattern" in (await resp.json())["message"]

    async def test_create_when_body_not_json_then_400(self, client):
        resp = await client.post("/api/events", data="not json", headers={"Content-Type": "application/json"})
        assert resp.status == 400

    async def test_range_when_created_with_utc_offset_then_listed_as_local(self, client):
        resp = await client.post(
            "/api/events",
            json={**STANDUP, "startDate": "2024-03-04T09:00:00.000Z", "endDate": "2024-03-04T09:15:00Z"},
        )
        assert resp.status == 201

        resp = await client.get(RANGE)
        body = await resp.json()

        local_start = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert resp.status == 200
        assert len(body) == 3
        assert body[0]["startDate"] == local_start.isoformat()

    async def test_range_when_series_then_generated_occurrences(self, client):
        created = await _create_standup(client)

        resp = await client.get(RANGE)
        body = await resp.json()

        assert resp.status == 200
        assert [o["startDate"] for o in body] == [
            "2024-03-04T09:00:00",
            "2024-03-11T09:00:00",
            "2024-03-18T09:00:00",
        ]
        assert body[1]["id"] == f"{created['id']}-recur-20240311T090000"
        assert body[1]["isGenerated"] is True

    @pytest.mark.parametrize(
        "query",
        ["", "?startDate=2024-03-01", "?startDate=2024-03-01&endDate=soon", "?startDate=2024-04-01&endDate=2024-03-01"],
    )
    async def test_range_when_bounds_bad_then_400(self, client, query):
        resp = await client.get("/api/events/range" + query)
        assert resp.status == 400

    async def test_list_when_single_event_in_past_then_included(self, client):
        await client.post("/api/events", json={"title": "Old", "startDate": "2001-01-01T10:00:00"})

        resp = await client.get("/api/events")
        body = await resp.json()

        assert resp.status == 200
        assert [o["title"] for o in body] == ["Old"]

    async def test_get_when_instance_id_then_series_record(self, client):
        created = await _create_standup(client)

        resp = await client.get(f"/api/events/{created['id']}-recur-20240311T090000")

        assert resp.status == 200
        assert (await resp.json())["id"] == created["id"]

    async def test_get_when_missing_then_404(self, client):
        resp = await client.get("/api/events/missing")

        assert resp.status == 404
        assert "missing" in (await resp.json())["message"]

    async def test_put_when_valid_then_series_updated(self, client):
        created = await _create_standup(client)

        resp = await client.put(f"/api/events/{created['id']}", json={"title": "Sync"})

        assert resp.status == 200
        assert (await resp.json())["title"] == "Sync"
        titles = {o["title"] for o in await (await client.get(RANGE)).json()}
        assert titles == {"Sync"}

    async def test_delete_when_instance_date_then_one_occurrence_removed(self, client):
        created = await _create_standup(client)

        resp = await client.delete(f"/api/events/{created['id']}?instanceDate=2024-03-11T09:00:00")
        assert resp.status == 204

        body = await (await client.get(RANGE)).json()
        assert [o["startDate"][:10] for o in body] == ["2024-03-04", "2024-03-18"]

    async def test_delete_when_instance_id_then_one_occurrence_removed(self, client):
        created = await _create_standup(client)

        resp = await client.delete(f"/api/events/{created['id']}-recur-20240318T090000")
        assert resp.status == 204

        body = await (await client.get(RANGE)).json()
        assert len(body) == 2

    async def test_delete_when_plain_id_then_series_gone(self, client):
        created = await _create_standup(client)

        assert (await client.delete(f"/api/events/{created['id']}")).status == 204
        assert (await client.get(f"/api/events/{created['id']}")).status == 404
        assert (await client.delete(f"/api/events/{created['id']}")).status == 404

    async def test_patch_instance_when_edited_then_replaces_occurrence(self, client):
        created = await _create_standup(client)

        resp = await client.patch(
            f"/api/events/{created['id']}/instance",
            json={
                "instanceDate": "2024-03-11T09:00:00",
                "title": "Standup (moved)",
                "startDate": "2024-03-12T14:00:00",
            },
        )
        edited = await resp.json()

        assert resp.status == 200
        assert edited["parentEventId"] == created["id"]
        assert edited["originalDate"] == "2024-03-11T09:00:00"

        body = await (await client.get(RANGE)).json()
        assert [(o["title"], o["startDate"]) for o in body] == [
            ("Standup", "2024-03-04T09:00:00"),
            ("Standup (moved)", "2024-03-12T14:00:00"),
            ("Standup", "2024-03-18T09:00:00"),
        ]

    async def test_patch_instance_when_deleted_occurrence_then_404(self, client):
        created = await _create_standup(client)
        await client.delete(f"/api/events/{created['id']}?instanceDate=2024-03-11")

        resp = await client.patch(
            f"/api/events/{created['id']}/instance",
            json={"instanceDate": "2024-03-11T09:00:00", "title": "Nope"},
        )
        assert resp.status == 404

    async def test_patch_instance_when_no_date_then_400(self, client):
        created = await _create_standup(client)

        resp = await client.patch(f"/api/events/{created['id']}/instance", json={"title": "x"})
        assert resp.status == 400

    async def test_response_when_request_id_sent_then_echoed(self, client):
        resp = await client.get("/api/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    async def test_response_when_error_then_request_id_still_set(self, client):
        resp = await client.get("/api/events/missing")
        assert resp.status == 404
        assert resp.headers.get("X-Request-ID")

    async def test_app_when_built_then_service_registered(self, client, service):
        assert client.server.app[SERVICE_KEY] is service


@pytest.mark.integration
async def test_json_store_when_server_restarted_then_events_survive(tmp_path):
    path = tmp_path / "events.json"

    async with TestClient(TestServer(make_app(CalendarService(JsonFileEventStore(path))))) as first:
        created = await _create_standup(first)
        await first.delete(f"/api/events/{created['id']}?instanceDate=2024-03-11")

    async with TestClient(TestServer(make_app(CalendarService(JsonFileEventStore(path))))) as second:
        body = await (await second.get(RANGE)).json()

    assert [o["startDate"][:10] for o in body] == ["2024-03-04", "2024-03-18"]


@pytest.mark.integration
async def test_handler_when_request_id_sent_then_visible_without_key_warnings():
    async def echo(request: web.Request) -> web.Response:
        return web.json_response({"requestId": get_request_id()})

    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])
    app.router.add_get("/echo", echo)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        async with TestClient(TestServer(app)) as test_client:
            first = await (await test_client.get("/echo", headers={"X-Correlation-ID": "corr-7"})).json()
            second = await (await test_client.get("/echo")).json()

    assert first == {"requestId": "corr-7"}
    assert second["requestId"] not in ("corr-7", "no-request-id")
    assert [w for w in caught if w.category.__name__ == "NotAppKeyWarning"] == []
