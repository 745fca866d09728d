"""Shared test fixtures for the memory engine test suite."""

import pytest
import fakeredis
from datetime import datetime, timedelta, timezone

from memory_engine.engine.companion_state import RedisCompanionStateProvider
from memory_engine.engine.profile_store import RedisProfileStore
from memory_engine.engine.task_store import RedisTaskStore
from memory_engine.models.task import Task


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def task_store(r):
    return RedisTaskStore(r)


@pytest.fixture
def profile_store(r):
    return RedisProfileStore(r)


@pytest.fixture
def companion(r):
    return RedisCompanionStateProvider(r)


# ── Time Freezing ───────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Return a fixed 'now' datetime for deterministic tests.

    Default: 2026-02-16T09:00:00Z (Monday morning, UTC).
    """
    return datetime(2026, 2, 16, 9, 0, 0, tzinfo=timezone.utc)


# ── Task Factories ──────────────────────────────────────────────────────

@pytest.fixture
def make_task(frozen_now):
    """Factory fixture that creates Task instances with sensible defaults.

    Usage:
        task = make_task(title="Write report", category="today")
    """
    _counter = 0

    def _factory(**overrides):
        nonlocal _counter
        _counter += 1
        defaults = {
            "task_id": f"test-task-{_counter}",
            "title": f"Test task {_counter}",
            "created_at": frozen_now - timedelta(days=1),
            "category": "today",
        }
        defaults.update(overrides)
        return Task(**defaults)

    return _factory
