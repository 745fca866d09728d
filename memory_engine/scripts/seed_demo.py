"""Seed Redis with a week of behavior for a demo user.

Run: python -m memory_engine.scripts.seed_demo [user_id]
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta, timezone

import redis

from memory_engine.engine.companion_state import COMPANION_PREFIX, RedisCompanionStateProvider
from memory_engine.engine.profile_store import PROFILE_PREFIX
from memory_engine.engine.task_store import TASK_PREFIX, USER_PREFIX, RedisTaskStore, _get_redis
from memory_engine.models.profile import EmotionalState
from memory_engine.models.task import (
    CompanionEvent,
    CompanionEventType,
    Correction,
    DailySession,
    FocusRecord,
    JournalEntry,
    JournalMood,
    Location,
    Task,
)

logger = logging.getLogger("seed_demo")

DEMO_USER = "demo-user"
HOME = Location(lat=37.4275, lng=-122.1697)


def clear_user(r: redis.Redis, user_id: str) -> None:
    """Remove every key belonging to ``user_id``."""
    for pattern in (f"{TASK_PREFIX}{user_id}:*", f"{USER_PREFIX}{user_id}:*"):
        for key in r.scan_iter(pattern):
            r.delete(key)
    r.delete(f"{PROFILE_PREFIX}{user_id}", f"{COMPANION_PREFIX}{user_id}")


def demo_tasks(now: datetime) -> list[Task]:
    day = timedelta(days=1)
    return [
        Task("t-1", "Pay rent", now - 6 * day, category="today",
             completed=True, completed_at=now - 6 * day + timedelta(hours=2), is_tiny_task=True),
        Task("t-2", "Draft the quarterly planning document for the team", now - 5 * day,
             category="today", completed=True, completed_at=now - 5 * day + timedelta(hours=5)),
        Task("t-3", "Call mom", now - 4 * day, category="today",
             completed=True, completed_at=now - 4 * day + timedelta(hours=1), is_tiny_task=True),
        Task("t-4", "Research flights for the trip", now - 3 * day, category="upcoming",
             keywords=["travel", "flights"]),
        Task("t-5", "Plan trip itinerary after flights are booked", now - 3 * day,
             category="upcoming", keywords=["travel", "itinerary"]),
        Task("t-6", "Water plants", now - 2 * day, category="today",
             location=HOME, is_tiny_task=True),
        Task("t-7", "Setup the new laptop", now - 2 * day, category="today",
             keywords=["laptop"]),
        Task("t-8", "Configure laptop backups", now - 1 * day, category="today",
             keywords=["laptop", "backups"], reminder_time=now - timedelta(hours=3)),
        Task("t-9", "Review pull requests from the weekend", now - timedelta(hours=20),
             category="today", scheduled_bucket="should"),
        Task("t-10", "Fold laundry", now - timedelta(minutes=10), category="today",
             location=HOME, is_tiny_task=True),
    ]


def seed(user_id: str = DEMO_USER, r: redis.Redis | None = None) -> None:
    r = r or _get_redis()
    clear_user(r, user_id)
    now = datetime.now(timezone.utc)
    store = RedisTaskStore(r)

    tasks = demo_tasks(now)
    for task in tasks:
        store.add_task(user_id, task)

    # ── Corrections ─────────────────────────────────────────────────────
    store.add_correction(user_id, Correction(now - timedelta(days=4), category="today", priority="must"))
    store.add_correction(user_id, Correction(now - timedelta(days=2), category="today", priority="should"))
    store.add_correction(user_id, Correction(now - timedelta(days=1), category="upcoming"))

    # ── Daily sessions / journal / companion events ─────────────────────
    for offset in range(1, 6):
        store.add_daily_session(user_id, DailySession(
            date=(now - timedelta(days=offset)).date(),
            top_focus="Ship the planning doc" if offset % 2 else "",
            reflection_wins="Finished early" if offset % 2 == 0 else "",
        ))

    for offset, mood in enumerate(["happy", "stressed", "neutral", "excited", "overwhelmed", "sleepy"]):
        store.add_journal_entry(user_id, JournalEntry(
            mood=JournalMood.parse(mood),
            created_at=now - timedelta(days=offset, hours=2),
            raw_mood=mood,
        ))

    for offset, event_type in enumerate(["task_completed", "streak_achieved", "interaction"]):
        store.add_companion_event(user_id, CompanionEvent(
            event_type=CompanionEventType.parse(event_type),
            created_at=now - timedelta(days=offset, hours=1),
            raw_type=event_type,
        ))

    # ── Focus history (eight weeks, Mondays lean on admin work) ─────────
    for offset in range(56):
        day = (now - timedelta(days=offset)).date()
        label = "admin" if day.weekday() == 0 else ("family" if day.weekday() >= 5 else "work")
        store.add_focus_record(user_id, FocusRecord(date=day, focus_task=f"{label} focus", cluster_label=label))

    RedisCompanionStateProvider(r).set_state(
        user_id,
        emotional_state=EmotionalState(joy=62, stress=45, fatigue=74, affection=80),
        mood="medium",
        name="Mochi",
    )

    logger.info("Seeded %s with %d tasks", user_id, len(tasks))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-7s  %(message)s")
    seed(sys.argv[1] if len(sys.argv) > 1 else DEMO_USER)
