"""Input records read by the memory engine.

Tasks, corrections, daily sessions, mood-journal entries, companion events
and focus-history rows are owned by external collaborators. The engine only
reads them, so every model here is built with ``from_dict`` from a stored
row and rejects rows it cannot interpret with ``MalformedRecordError``.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from memory_engine.errors import MalformedRecordError

UNCATEGORIZED = "uncategorized"


def parse_timestamp(value: Any, record_type: str, field_name: str) -> datetime:
    """Parse an ISO 8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise MalformedRecordError(record_type, f"bad {field_name}: {value!r}")
    else:
        raise MalformedRecordError(record_type, f"missing {field_name}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_timestamp(value: Any, record_type: str, field_name: str) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return parse_timestamp(value, record_type, field_name)


def _parse_bool(value: Any) -> bool:
    # Redis hashes hand booleans back as strings
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _iso(dt: Optional[datetime]) -> str:
    return dt.isoformat() if dt else ""


@dataclass
class Location:
    lat: float
    lng: float

    def distance_to(self, lat: float, lng: float) -> float:
        """Euclidean distance in degrees (a coarse proximity proxy, not geodesic)."""
        return math.sqrt((self.lat - lat) ** 2 + (self.lng - lng) ** 2)

    @classmethod
    def from_value(cls, value: Any) -> Optional[Location]:
        if value in (None, "", "null"):
            return None
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                raise MalformedRecordError("task", f"bad location: {value!r}")
        if not isinstance(value, dict):
            raise MalformedRecordError("task", "location must be an object")
        try:
            return cls(lat=float(value["lat"]), lng=float(value["lng"]))
        except (KeyError, TypeError, ValueError):
            raise MalformedRecordError("task", f"bad location: {value!r}")


@dataclass
class Task:
    task_id: str
    title: str
    created_at: datetime
    category: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    is_tiny_task: bool = False
    scheduled_bucket: Optional[str] = None   # must | should | could
    location: Optional[Location] = None
    keywords: list = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.title.split())

    def to_dict(self) -> dict:
        """Flat, string-valued mapping suitable for a Redis hash."""
        return {
            "task_id": self.task_id,
            "title": self.title,
            "category": self.category or "",
            "completed": "1" if self.completed else "0",
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
            "reminder_time": _iso(self.reminder_time),
            "is_tiny_task": "1" if self.is_tiny_task else "0",
            "scheduled_bucket": self.scheduled_bucket or "",
            "location": json.dumps(
                {"lat": self.location.lat, "lng": self.location.lng}
            ) if self.location else "",
            "keywords": json.dumps(self.keywords),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        task_id = data.get("task_id") or data.get("id")
        if not task_id:
            raise MalformedRecordError("task", "missing task_id")

        keywords = data.get("keywords") or []
        if isinstance(keywords, str):
            try:
                keywords = json.loads(keywords)
            except json.JSONDecodeError:
                raise MalformedRecordError("task", f"bad keywords on {task_id}")

        return cls(
            task_id=str(task_id),
            title=data.get("title") or "",
            category=data.get("category") or None,
            completed=_parse_bool(data.get("completed", False)),
            created_at=parse_timestamp(data.get("created_at"), "task", "created_at"),
            completed_at=parse_optional_timestamp(data.get("completed_at"), "task", "completed_at"),
            reminder_time=parse_optional_timestamp(data.get("reminder_time"), "task", "reminder_time"),
            is_tiny_task=_parse_bool(data.get("is_tiny_task", False)),
            scheduled_bucket=data.get("scheduled_bucket") or None,
            location=Location.from_value(data.get("location")),
            keywords=list(keywords),
        )


@dataclass
class Correction:
    """A user override of an automatic categorization or prioritization."""
    created_at: datetime
    category: Optional[str] = None
    priority: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "corrected_output": {"category": self.category, "priority": self.priority},
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Correction:
        output = data.get("corrected_output") or {}
        if not isinstance(output, dict):
            raise MalformedRecordError("correction", "corrected_output must be an object")
        return cls(
            created_at=parse_timestamp(data.get("created_at"), "correction", "created_at"),
            category=output.get("category") or None,
            priority=output.get("priority") or None,
        )


@dataclass
class DailySession:
    date: date
    top_focus: str = ""
    reflection_wins: str = ""
    reflection_improve: str = ""

    @property
    def is_reflected(self) -> bool:
        return bool(self.reflection_wins.strip() or self.top_focus.strip())

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "top_focus": self.top_focus,
            "reflection_wins": self.reflection_wins,
            "reflection_improve": self.reflection_improve,
        }

    @classmethod
    def from_dict(cls, data: dict) -> DailySession:
        raw = data.get("date")
        try:
            session_date = date.fromisoformat(str(raw)[:10])
        except (TypeError, ValueError):
            raise MalformedRecordError("daily_session", f"bad date: {raw!r}")
        return cls(
            date=session_date,
            top_focus=data.get("top_focus") or "",
            reflection_wins=data.get("reflection_wins") or "",
            reflection_improve=data.get("reflection_improve") or "",
        )


class JournalMood(str, Enum):
    HAPPY = "happy"
    EXCITED = "excited"
    STRESSED = "stressed"
    OVERWHELMED = "overwhelmed"
    NEUTRAL = "neutral"
    SAD = "sad"
    WORRIED = "worried"
    CONCERNED = "concerned"
    SLEEPY = "sleepy"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> JournalMood:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class JournalEntry:
    mood: JournalMood
    created_at: datetime
    raw_mood: str = ""

    def to_dict(self) -> dict:
        return {"mood": self.raw_mood or self.mood.value, "created_at": _iso(self.created_at)}

    @classmethod
    def from_dict(cls, data: dict) -> JournalEntry:
        raw = data.get("mood") or ""
        return cls(
            mood=JournalMood.parse(raw),
            created_at=parse_timestamp(
                data.get("created_at") or data.get("timestamp"), "journal_entry", "created_at"
            ),
            raw_mood=str(raw),
        )


class CompanionEventType(str, Enum):
    TASK_COMPLETED = "task_completed"
    STREAK_ACHIEVED = "streak_achieved"
    TASK_CREATED = "task_created"
    INTERACTION = "interaction"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> CompanionEventType:
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class CompanionEvent:
    event_type: CompanionEventType
    created_at: datetime
    raw_type: str = ""
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "event_type": self.raw_type or self.event_type.value,
            "created_at": _iso(self.created_at),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CompanionEvent:
        raw = data.get("event_type") or ""
        return cls(
            event_type=CompanionEventType.parse(raw),
            created_at=parse_timestamp(data.get("created_at"), "companion_event", "created_at"),
            raw_type=str(raw),
            metadata=data.get("metadata") or {},
        )


@dataclass
class FocusRecord:
    """One day's chosen focus task, used to mine seasonal rules."""
    date: date
    focus_task: str = ""
    cluster_label: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "focus_task": self.focus_task,
            "cluster_label": self.cluster_label,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FocusRecord:
        raw = data.get("date")
        try:
            record_date = date.fromisoformat(str(raw)[:10])
        except (TypeError, ValueError):
            raise MalformedRecordError("focus_record", f"bad date: {raw!r}")
        return cls(
            date=record_date,
            focus_task=data.get("focus_task") or "",
            cluster_label=data.get("cluster_label") or None,
        )
