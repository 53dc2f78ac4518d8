"""
HTTP surface tests. The app runs in-process over httpx's ASGI transport with
the store, feed, runner and DB dependencies pointed at the test database.
"""
import json
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from consultancy.core import dependencies
from consultancy.core.errors import StoreConfigurationError, StoreError
from consultancy.core.flags import FeatureFlags
from consultancy.factory import create_app
from consultancy.orchestrator.orchestrator import WorkflowRunner


@pytest.fixture
def app(session_factory, store, feed, llm):
    app = create_app()

    async def _db():
        async with session_factory() as db:
            yield db
            await db.commit()

    app.dependency_overrides[dependencies.get_db] = _db
    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_feed] = lambda: feed
    app.dependency_overrides[dependencies.get_runner] = lambda: WorkflowRunner(store=store, llm=llm)
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _open_session(client) -> dict:
    identity = (await client.post("/v1/identity/anonymous")).json()
    resp = await client.post("/v1/sessions", json={"user_id": identity["user_id"]})
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_anonymous_identity_opens_session(client):
    session = await _open_session(client)

    assert session["current_state"] == "WAITING_FOR_INFO"
    assert session["chat_history"] == []
    assert session["status_text"] == "Esperando información..."


@pytest.mark.asyncio
async def test_unregistered_identity_is_conflict(client):
    flags = FeatureFlags(FF_USE_ANONYMOUS_AUTH=False)
    with patch("consultancy.api.identity.get_flags", return_value=flags):
        identity = (await client.post("/v1/identity/anonymous")).json()
    assert identity["registered"] is False

    resp = await client.post("/v1/sessions", json={"user_id": identity["user_id"]})

    assert resp.status_code == 409
    assert resp.json()["error"]["kind"] == "constraint_violation"


@pytest.mark.asyncio
async def test_message_runs_consultancy(client):
    session = await _open_session(client)

    resp = await client.post(f"/v1/sessions/{session['id']}/messages", json={"message": "Vendemos café"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["current_state"] == "FINISHED"
    assert [m["role"] for m in body["chat_history"]] == ["user", "pedro", "pedro", "juan"]
    assert body["report_final"] == "reporte final"

    again = await client.get(f"/v1/sessions/{session['id']}")
    assert again.json() == body


@pytest.mark.asyncio
async def test_message_to_finished_session_is_conflict(client):
    session = await _open_session(client)
    url = f"/v1/sessions/{session['id']}/messages"
    await client.post(url, json={"message": "Vendemos café"})

    resp = await client.post(url, json={"message": "otra vez"})

    assert resp.status_code == 409
    assert resp.json()["error"]["kind"] == "session_finished"


@pytest.mark.asyncio
async def test_agent_failure_is_bad_gateway(client, llm):
    llm.fail_on = {1}
    session = await _open_session(client)

    resp = await client.post(f"/v1/sessions/{session['id']}/messages", json={"message": "Vendemos café"})

    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["kind"] == "agent_call_failed"
    assert error["session_id"] == session["id"]


@pytest.mark.asyncio
async def test_empty_message_is_unprocessable(client):
    session = await _open_session(client)
    resp = await client.post(f"/v1/sessions/{session['id']}/messages", json={"message": " "})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_session_is_not_found(client):
    assert (await client.get("/v1/sessions/nope")).status_code == 404
    resp = await client.post("/v1/sessions/nope/messages", json={"message": "hola"})
    assert resp.status_code == 404
    assert (await client.get("/v1/sessions/nope/events")).status_code == 404


@pytest.mark.asyncio
async def test_events_on_finished_session_sends_snapshot_and_closes(client, feed):
    session = await _open_session(client)
    await client.post(f"/v1/sessions/{session['id']}/messages", json={"message": "Vendemos café"})

    resp = await client.get(f"/v1/sessions/{session['id']}/events")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = [json.loads(line[len("data: "):]) for line in resp.text.splitlines() if line.startswith("data: ")]
    assert len(events) == 1
    assert events[0]["current_state"] == "FINISHED"
    assert feed.subscriber_count(session["id"]) == 0


class UnreachableStore:
    def __init__(self, error: StoreError):
        self.error = error

    async def get(self, session_id):
        raise self.error


@pytest.mark.asyncio
async def test_events_store_failure_releases_subscription(app, client, feed):
    app.dependency_overrides[dependencies.get_store] = lambda: UnreachableStore(StoreError("connection refused"))

    resp = await client.get("/v1/sessions/abc/events")

    assert resp.status_code == 500
    assert feed.subscriber_count("abc") == 0


@pytest.mark.asyncio
async def test_unconfigured_database_is_service_unavailable(app, client, feed):
    app.dependency_overrides[dependencies.get_store] = lambda: UnreachableStore(
        StoreConfigurationError("Database is not configured")
    )

    assert (await client.get("/v1/sessions/abc")).status_code == 503
    assert (await client.get("/v1/sessions/abc/events")).status_code == 503
    assert feed.subscriber_count("abc") == 0
