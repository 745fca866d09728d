"""Memory Profile model: the per-user behavioral snapshot.

A profile is rebuilt from scratch on every aggregation run and persisted as
one JSON document, so ``to_dict``/``from_dict`` cover the whole object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

PRIORITY_BUCKETS = ("must", "should", "could")
ENERGY_BUCKETS = ("morning", "afternoon", "night")
WRITING_STYLES = ("formal", "casual", "neutral")

DEFAULT_PRIORITY_BIAS = 0.5
DEFAULT_TINY_TASK_THRESHOLD = 5
DEFAULT_EMOTION_LEVEL = 50

MAX_PROCRASTINATION_TRIGGERS = 10
MAX_EMOTIONAL_TRIGGERS = 15
MAX_POSITIVE_REINFORCERS = 20
MAX_STREAK_HISTORY = 50

STREAK_DAILY_SESSION = "daily_session"
STREAK_COMPLETION = "completion_streak"


def _default_priority_bias() -> dict[str, float]:
    return {bucket: DEFAULT_PRIORITY_BIAS for bucket in PRIORITY_BUCKETS}


def _default_energy_pattern() -> dict[str, float]:
    return {bucket: 0.0 for bucket in ENERGY_BUCKETS}


@dataclass
class StreakEntry:
    date: str       # YYYY-MM-DD
    type: str       # daily_session | completion_streak
    value: int

    def to_dict(self) -> dict:
        return {"date": self.date, "type": self.type, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> StreakEntry:
        return cls(date=data["date"], type=data["type"], value=int(data["value"]))


@dataclass
class MemoryProfile:
    category_preferences: dict[str, float] = field(default_factory=dict)
    priority_bias: dict[str, float] = field(default_factory=_default_priority_bias)
    writing_style: Optional[str] = None
    tiny_task_threshold: int = DEFAULT_TINY_TASK_THRESHOLD
    energy_pattern: dict[str, float] = field(default_factory=_default_energy_pattern)
    procrastination_triggers: list[str] = field(default_factory=list)
    emotional_triggers: list[str] = field(default_factory=list)
    positive_reinforcers: list[str] = field(default_factory=list)
    streak_history: list[StreakEntry] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_preferences": dict(self.category_preferences),
            "priority_bias": dict(self.priority_bias),
            "writing_style": self.writing_style,
            "tiny_task_threshold": self.tiny_task_threshold,
            "energy_pattern": dict(self.energy_pattern),
            "procrastination_triggers": list(self.procrastination_triggers),
            "emotional_triggers": list(self.emotional_triggers),
            "positive_reinforcers": list(self.positive_reinforcers),
            "streak_history": [s.to_dict() for s in self.streak_history],
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MemoryProfile:
        last_updated = data.get("last_updated")
        return cls(
            category_preferences=dict(data.get("category_preferences") or {}),
            priority_bias=dict(data.get("priority_bias") or _default_priority_bias()),
            writing_style=data.get("writing_style"),
            tiny_task_threshold=int(data.get("tiny_task_threshold", DEFAULT_TINY_TASK_THRESHOLD)),
            energy_pattern=dict(data.get("energy_pattern") or _default_energy_pattern()),
            procrastination_triggers=list(data.get("procrastination_triggers") or []),
            emotional_triggers=list(data.get("emotional_triggers") or []),
            positive_reinforcers=list(data.get("positive_reinforcers") or []),
            streak_history=[StreakEntry.from_dict(s) for s in data.get("streak_history") or []],
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        )

    def content_dict(self) -> dict[str, Any]:
        """Profile contents without the computation timestamp."""
        d = self.to_dict()
        d.pop("last_updated")
        return d


@dataclass
class EmotionalState:
    joy: int = DEFAULT_EMOTION_LEVEL
    stress: int = DEFAULT_EMOTION_LEVEL
    fatigue: int = DEFAULT_EMOTION_LEVEL
    affection: int = DEFAULT_EMOTION_LEVEL

    @classmethod
    def from_dict(cls, data: dict | None) -> EmotionalState:
        """Build from a possibly partial mapping; absent or bad values default to 50."""
        data = data or {}
        values = {}
        for name in ("joy", "stress", "fatigue", "affection"):
            try:
                level = int(float(data.get(name, DEFAULT_EMOTION_LEVEL)))
            except (TypeError, ValueError):
                level = DEFAULT_EMOTION_LEVEL
            values[name] = max(0, min(100, level))
        return cls(**values)

    def to_dict(self) -> dict[str, int]:
        return {
            "joy": self.joy,
            "stress": self.stress,
            "fatigue": self.fatigue,
            "affection": self.affection,
        }
