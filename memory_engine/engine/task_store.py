"""Redis-backed task store.

Serves the five behavioral streams the aggregator reads plus the live task
list the selector reads. Layout:

  task:{user}:{id}          hash per task (Task.to_dict)
  user:{user}:tasks         sorted set of task ids, score = created_at epoch
  user:{user}:{stream}      sorted set of JSON rows, score = event epoch
  users                     set of every user id with data
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Iterator, Optional, TypeVar

import redis

from memory_engine.config.settings import REDIS_SOCKET_TIMEOUT, REDIS_URL
from memory_engine.errors import MalformedRecordError, StoreUnavailableError
from memory_engine.models.task import (
    CompanionEvent,
    Correction,
    DailySession,
    FocusRecord,
    JournalEntry,
    Task,
)

logger = logging.getLogger(__name__)

TASK_PREFIX = "task:"
USER_PREFIX = "user:"
USERS_KEY = "users"

STREAM_CORRECTIONS = "corrections"
STREAM_DAILY_SESSIONS = "daily_sessions"
STREAM_MOOD_JOURNAL = "mood_journal"
STREAM_COMPANION_EVENTS = "companion_events"
STREAM_FOCUS_HISTORY = "focus_history"

T = TypeVar("T")


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(
        REDIS_URL, decode_responses=True, socket_timeout=REDIS_SOCKET_TIMEOUT
    )


@contextmanager
def _redis_errors() -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        raise StoreUnavailableError(str(exc))


def _day_score(d: date) -> float:
    return datetime.combine(d, time.min, tzinfo=timezone.utc).timestamp()


@dataclass
class TaskFilters:
    """Query options for ``fetch_tasks``.

    ``active_since`` keeps tasks created *or* completed at/after the cutoff,
    so a long-open task finished inside the window is still seen.
    ``skip_malformed`` drops unparsable rows with a warning instead of raising.
    """
    completed: Optional[bool] = None
    active_since: Optional[datetime] = None
    limit: Optional[int] = None
    newest_first: bool = False
    skip_malformed: bool = False

    def matches(self, task: Task) -> bool:
        if self.completed is not None and task.completed != self.completed:
            return False
        if self.active_since is not None:
            created_in = task.created_at >= self.active_since
            completed_in = task.completed_at is not None and task.completed_at >= self.active_since
            if not (created_in or completed_in):
                return False
        return True


class RedisTaskStore:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    # -- Keys --

    @staticmethod
    def _task_key(user_id: str, task_id: str) -> str:
        return f"{TASK_PREFIX}{user_id}:{task_id}"

    @staticmethod
    def _stream_key(user_id: str, stream: str) -> str:
        return f"{USER_PREFIX}{user_id}:{stream}"

    # -- Writes --

    def add_task(self, user_id: str, task: Task) -> None:
        with _redis_errors():
            pipe = self.r.pipeline(transaction=False)
            pipe.hset(self._task_key(user_id, task.task_id), mapping=task.to_dict())
            pipe.zadd(self._stream_key(user_id, "tasks"), {task.task_id: task.created_at.timestamp()})
            pipe.sadd(USERS_KEY, user_id)
            pipe.execute()

    def _add_row(self, user_id: str, stream: str, row: dict, score: float) -> None:
        with _redis_errors():
            self.r.zadd(self._stream_key(user_id, stream), {json.dumps(row, sort_keys=True): score})
            self.r.sadd(USERS_KEY, user_id)

    def add_correction(self, user_id: str, correction: Correction) -> None:
        self._add_row(user_id, STREAM_CORRECTIONS, correction.to_dict(), correction.created_at.timestamp())

    def add_daily_session(self, user_id: str, session: DailySession) -> None:
        self._add_row(user_id, STREAM_DAILY_SESSIONS, session.to_dict(), _day_score(session.date))

    def add_journal_entry(self, user_id: str, entry: JournalEntry) -> None:
        self._add_row(user_id, STREAM_MOOD_JOURNAL, entry.to_dict(), entry.created_at.timestamp())

    def add_companion_event(self, user_id: str, event: CompanionEvent) -> None:
        self._add_row(user_id, STREAM_COMPANION_EVENTS, event.to_dict(), event.created_at.timestamp())

    def add_focus_record(self, user_id: str, record: FocusRecord) -> None:
        self._add_row(user_id, STREAM_FOCUS_HISTORY, record.to_dict(), _day_score(record.date))

    # -- Reads --

    def list_users(self) -> list[str]:
        with _redis_errors():
            return sorted(self.r.smembers(USERS_KEY))

    def fetch_tasks(self, user_id: str, filters: TaskFilters | None = None) -> list[Task]:
        """Return the user's tasks ordered by created_at (oldest first by default)."""
        filters = filters or TaskFilters()
        index_key = self._stream_key(user_id, "tasks")
        with _redis_errors():
            if filters.newest_first:
                task_ids = self.r.zrevrange(index_key, 0, -1)
            else:
                task_ids = self.r.zrange(index_key, 0, -1)

            tasks: list[Task] = []
            for tid in task_ids:
                data = self.r.hgetall(self._task_key(user_id, tid))
                if not data:
                    logger.debug("Task index for %s references missing task %s", user_id, tid)
                    continue
                try:
                    task = Task.from_dict(data)
                except MalformedRecordError as exc:
                    if not filters.skip_malformed:
                        raise
                    logger.warning("Skipping malformed task %s for %s: %s", tid, user_id, exc)
                    continue
                if not filters.matches(task):
                    continue
                tasks.append(task)
                if filters.limit is not None and len(tasks) >= filters.limit:
                    break
        return tasks

    def _fetch_rows(
        self,
        user_id: str,
        stream: str,
        since: datetime | None,
        parse: Callable[[dict], T],
    ) -> list[T]:
        min_score = since.timestamp() if since else "-inf"
        with _redis_errors():
            members = self.r.zrangebyscore(self._stream_key(user_id, stream), min_score, "+inf")
        rows: list[T] = []
        for member in members:
            try:
                data = json.loads(member)
            except json.JSONDecodeError:
                raise MalformedRecordError(stream, f"invalid JSON row for user {user_id}")
            if not isinstance(data, dict):
                raise MalformedRecordError(stream, f"row is not an object for user {user_id}")
            rows.append(parse(data))
        return rows

    def fetch_corrections(self, user_id: str, since: datetime | None = None) -> list[Correction]:
        return self._fetch_rows(user_id, STREAM_CORRECTIONS, since, Correction.from_dict)

    def fetch_daily_sessions(self, user_id: str, since: datetime | None = None) -> list[DailySession]:
        # Sessions are scored at midnight, so compare against the cutoff's day
        day_since = (
            datetime.combine(since.date(), time.min, tzinfo=timezone.utc) if since else None
        )
        return self._fetch_rows(user_id, STREAM_DAILY_SESSIONS, day_since, DailySession.from_dict)

    def fetch_mood_journal(self, user_id: str, since: datetime | None = None) -> list[JournalEntry]:
        return self._fetch_rows(user_id, STREAM_MOOD_JOURNAL, since, JournalEntry.from_dict)

    def fetch_companion_events(self, user_id: str, since: datetime | None = None) -> list[CompanionEvent]:
        return self._fetch_rows(user_id, STREAM_COMPANION_EVENTS, since, CompanionEvent.from_dict)

    def fetch_focus_history(self, user_id: str, limit: int = 90) -> list[FocusRecord]:
        """Most recent ``limit`` focus records, newest first."""
        with _redis_errors():
            members = self.r.zrevrange(self._stream_key(user_id, STREAM_FOCUS_HISTORY), 0, limit - 1)
        records = []
        for member in members:
            try:
                data = json.loads(member)
            except json.JSONDecodeError:
                raise MalformedRecordError(STREAM_FOCUS_HISTORY, f"invalid JSON row for user {user_id}")
            if not isinstance(data, dict):
                raise MalformedRecordError(STREAM_FOCUS_HISTORY, f"row is not an object for user {user_id}")
            records.append(FocusRecord.from_dict(data))
        return records
