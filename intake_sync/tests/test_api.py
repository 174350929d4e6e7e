"""API tests for the sync service."""

from __future__ import annotations

import json

import httpx
import pytest
from httpx import AsyncClient

from intake_sync.relay.client import HttpRelay
from intake_sync.routers.settings import get_config_saver
from intake_sync.routers.sync import get_relay_factory
from intake_sync.services.config_svc import ConfigStore, DebouncedConfigSaver


def _use_upstream(handler):
    from intake_sync.app import app

    app.dependency_overrides[get_relay_factory] = (
        lambda: (lambda: HttpRelay(transport=httpx.MockTransport(handler)))
    )


def _fake_upstream(calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if request.url.host == "intakeq.com" and path.endswith("/clients"):
            return httpx.Response(200, json=[
                {"ClientId": 7, "Name": "Jane Doe", "Email": "jane@example.com"},
            ])
        if path.endswith("/contacts/search/duplicate"):
            return httpx.Response(200, json={"contact": None})
        if request.method == "POST" and path.endswith("/contacts/"):
            body = json.loads(request.content)
            return httpx.Response(201, json={"contact": {"id": "c-new", **body}})
        return httpx.Response(404, json={"message": "unexpected call"})

    return handler


@pytest.mark.asyncio
async def test_health_endpoint(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_ready_reports_missing_setup(client: AsyncClient):
    resp = await client.get("/ready")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "unconfigured"
    assert data["config"] is False
    assert data["missing_credentials"] == ["GoHighLevel", "IntakeQ"]

    await client.put("/sync/config", json={"sync_direction": "bidirectional"})
    await client.put("/sync/credentials", json={"ghl_api_key": "g", "intakeq_api_key": "i"})
    resp = await client.get("/ready")
    assert resp.json()["status"] == "ready"
    assert resp.json()["sync_running"] is False


@pytest.mark.asyncio
async def test_config_round_trip(client: AsyncClient):
    assert (await client.get("/sync/config")).status_code == 404

    resp = await client.put("/sync/config", json={
        "sync_direction": "one_way_intakeq_to_ghl",
        "intakeq_filters": '{"contactIds": ["a@x.com"]}',
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["direction"] == "source_to_target"
    assert data["source_filters"]["ids"] == ["a@x.com"]

    resp = await client.get("/sync/config")
    assert resp.json()["field_mapping"]["contact"]["keyField"] == "email"


@pytest.mark.asyncio
async def test_config_rejects_bad_json(client: AsyncClient):
    resp = await client.put("/sync/config", json={"field_mapping": "{nope"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_deferred_config_save(client: AsyncClient, session_factory):
    from intake_sync.app import app

    saver = DebouncedConfigSaver(ConfigStore(session_factory), delay=60)
    app.dependency_overrides[get_config_saver] = lambda: saver

    resp = await client.put("/sync/config?defer=true", json={"is_sync_enabled": True})
    assert resp.json() == {"status": "pending", "fields": ["is_sync_enabled"]}
    await saver.aclose()

    resp = await client.get("/sync/config")
    assert resp.json()["is_sync_enabled"] is True


@pytest.mark.asyncio
async def test_deferred_config_save_rejects_bad_mapping(client: AsyncClient, session_factory):
    from intake_sync.app import app

    saver = DebouncedConfigSaver(ConfigStore(session_factory), delay=60)
    app.dependency_overrides[get_config_saver] = lambda: saver

    resp = await client.put("/sync/config?defer=true", json={"field_mapping": "{nope"})
    assert resp.status_code == 422
    assert not saver.has_pending
    await saver.aclose()


@pytest.mark.asyncio
async def test_key_field_toggle(client: AsyncClient):
    await client.put("/sync/config", json={"sync_direction": "bidirectional"})

    resp = await client.post("/sync/config/key-field", json={"category": "contact", "field": "phone"})
    assert resp.status_code == 200
    contact = resp.json()["field_mapping"]["contact"]
    assert contact["keyField"] == "phone"
    flagged = [name for name, spec in contact["fields"].items() if spec["isKeyField"]]
    assert flagged == ["phone"]

    resp = await client.post("/sync/config/key-field", json={"category": "contact", "field": "nickname"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_credentials_status(client: AsyncClient):
    resp = await client.put("/sync/credentials", json={"ghl_api_key": "g", "ghl_location_id": "loc-1"})
    assert resp.json() == {"ghl_configured": True, "intakeq_configured": False, "ghl_location_id": "loc-1"}

    resp = await client.put("/sync/credentials", json={"intakeq_api_key": "i"})
    assert resp.json()["intakeq_configured"] is True
    status = (await client.get("/sync/credentials")).json()
    assert status["ghl_location_id"] == "loc-1"
    assert not any("api_key" in key for key in status)


@pytest.mark.asyncio
async def test_credentials_test_without_key(client: AsyncClient):
    resp = await client.post("/sync/credentials/test", json={"system": "intakeq"})
    assert resp.json()["success"] is False
    assert resp.json()["message"] == "No IntakeQ API key configured"

    resp = await client.post("/sync/credentials/test", json={"system": "zoho"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_credentials_test_with_key(client: AsyncClient):
    calls: list[httpx.Request] = []
    _use_upstream(lambda request: calls.append(request) or httpx.Response(200, json={"Clients": []}))

    resp = await client.post("/sync/credentials/test", json={"system": "intakeq", "api_key": "iq"})

    assert resp.json()["success"] is True
    assert calls[0].headers["X-Auth-Key"] == "iq"


@pytest.mark.asyncio
async def test_run_without_credentials(client: AsyncClient):
    calls: list[httpx.Request] = []
    _use_upstream(_fake_upstream(calls))
    await client.put("/sync/config", json={"sync_direction": "bidirectional"})

    resp = await client.post("/sync/run")

    data = resp.json()
    assert data["state"] == "aborted"
    assert data["notifications"][-1]["level"] == "error"
    assert calls == []
    activity = (await client.get("/sync/activity")).json()
    assert [a["detail"] for a in activity] == ["Missing API keys for: GoHighLevel, IntakeQ"]
    errors = (await client.get("/sync/activity", params={"status": "error"})).json()
    assert len(errors) == 1
    assert (await client.get("/sync/activity", params={"status": "done"})).status_code == 422


@pytest.mark.asyncio
async def test_run_creates_contact(client: AsyncClient):
    calls: list[httpx.Request] = []
    _use_upstream(_fake_upstream(calls))
    await client.put("/sync/config", json={"sync_direction": "one_way_intakeq_to_ghl"})
    await client.put("/sync/credentials", json={
        "ghl_api_key": "g", "ghl_location_id": "loc-1", "intakeq_api_key": "i",
    })

    resp = await client.post("/sync/run")

    data = resp.json()
    assert data["state"] == "completed"
    assert data["created"] == 1
    assert data["outcomes"][0]["key_value"] == "jane@example.com"
    create = next(c for c in calls if c.method == "POST")
    assert json.loads(create.content) == {
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane@example.com",
        "locationId": "loc-1",
    }

    activity = (await client.get("/sync/activity", params={"limit": 10})).json()
    creation = next(a for a in activity if a["type"] == "Contact Creation")
    assert creation["status"] == "success"
    assert creation["changes"][0] == {"field": "Email", "old_value": "", "new_value": "jane@example.com"}
