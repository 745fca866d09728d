"""Integration tests for FastAPI server endpoints.

Uses httpx.AsyncClient with ASGITransport to test the REST API
without starting a real server. Redis is patched to use fakeredis.
"""

import pytest
from datetime import date, datetime, timezone
from unittest.mock import patch
from httpx import AsyncClient, ASGITransport

from memory_engine.models.profile import EmotionalState, MemoryProfile
from memory_engine.models.task import FocusRecord, Location


# ── Patch Redis before importing the server ──────────────────────────────

@pytest.fixture
def patched_app(r):
    """Import and patch the FastAPI app to use fakeredis everywhere."""
    with (
        patch("memory_engine.server._get_redis", return_value=r),
        patch("memory_engine.server.get_domino_analyzer", side_effect=lambda: None),
    ):
        from memory_engine.server import app
        yield app


@pytest.fixture
async def client(patched_app):
    transport = ASGITransport(app=patched_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ── Health ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["redis"] is True


# ── Suggestions ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_suggestions_shape(client, task_store, companion, make_task):
    task_store.add_task("u1", make_task(task_id="rent", title="Pay rent"))
    companion.set_state("u1", emotional_state=EmotionalState(joy=60), name="Mochi")

    resp = await client.get("/api/users/u1/suggestions", params={"companion_mood": "simple"})

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"message", "suggestedTasks", "context"}
    assert body["suggestedTasks"] == [{"id": "rent", "title": "Pay rent", "category": "today"}]
    assert body["context"]["companionMood"] == "simple"
    assert body["context"]["emotionalState"]["joy"] == 60


@pytest.mark.asyncio
async def test_suggestions_with_location(client, task_store, make_task):
    task_store.add_task("u1", make_task(task_id="plants", title="Water plants", location=Location(1.0, 1.0)))
    resp = await client.get(
        "/api/users/u1/suggestions",
        params={"lat": 1.001, "lng": 1.0, "context": "home"},
    )
    assert resp.status_code == 200
    assert resp.json()["context"]["contextReason"] == "location_home"


@pytest.mark.asyncio
async def test_suggestions_rejects_unknown_mood(client):
    resp = await client.get("/api/users/u1/suggestions", params={"companion_mood": "chaotic"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_suggestions_needs_both_coordinates(client):
    resp = await client.get("/api/users/u1/suggestions", params={"lat": 1.0})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_suggestions_error_is_500(client):
    with patch(
        "memory_engine.engine.selector.ContextualSelector.select", side_effect=RuntimeError("boom")
    ):
        resp = await client.get("/api/users/u1/suggestions")
    assert resp.status_code == 500
    assert resp.json() == {"error": "boom"}


# ── Profiles ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_profile_not_found(client):
    resp = await client.get("/api/users/ghost/profile")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_profile_found(client, profile_store):
    profile_store.upsert_profile("u1", MemoryProfile(writing_style="casual"))
    resp = await client.get("/api/users/u1/profile")
    assert resp.status_code == 200
    body = resp.json()
    assert body["memory_profile"]["writing_style"] == "casual"
    assert body["focus_preferences"] == {}


@pytest.mark.asyncio
async def test_aggregate_all_users(client, task_store, r, make_task):
    now = datetime.now(timezone.utc)
    task_store.add_task("alice", make_task(created_at=now, completed=True, completed_at=now))
    r.sadd("users", "bob")
    r.zadd("user:bob:tasks", {"broken": now.timestamp()})
    r.hset("task:bob:broken", mapping={"task_id": "broken", "title": "x", "created_at": "bad"})

    resp = await client.post("/api/profiles/aggregate", json={})

    assert resp.status_code == 200
    body = resp.json()
    assert body["processed"] == 1
    assert body["errors"] == 1
    assert body["results"][0] == {"userId": "alice", "success": True}
    assert body["results"][1]["success"] is False

    profile = (await client.get("/api/users/alice/profile")).json()["memory_profile"]
    assert profile["category_preferences"] == {"today": 0.05}


@pytest.mark.asyncio
async def test_aggregate_selected_users(client, task_store, make_task):
    task_store.add_task("alice", make_task())
    task_store.add_task("carol", make_task())

    resp = await client.post("/api/profiles/aggregate", json={"user_ids": ["carol"]})

    assert [r["userId"] for r in resp.json()["results"]] == ["carol"]


@pytest.mark.asyncio
async def test_aggregate_without_body(client):
    resp = await client.post("/api/profiles/aggregate")
    assert resp.status_code == 200
    assert resp.json() == {"processed": 0, "errors": 0, "results": []}


@pytest.mark.asyncio
async def test_seasonal_weight(client, task_store):
    for day in (date(2026, 2, 2), date(2026, 2, 9), date(2026, 2, 16)):
        task_store.add_focus_record("u1", FocusRecord(day, "Inbox", "admin"))

    resp = await client.post("/api/users/u1/seasonal-weight")

    body = resp.json()
    assert body["updated"] is True
    assert body["seasonal_weight"]["monday_reset"]["category"] == "admin"


@pytest.mark.asyncio
async def test_seasonal_weight_nothing_found(client):
    resp = await client.post("/api/users/u1/seasonal-weight")
    assert resp.json() == {"user_id": "u1", "updated": False, "seasonal_weight": {}}
