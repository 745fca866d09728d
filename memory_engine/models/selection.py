"""Result shapes produced by the selector and the batch driver.

``to_dict`` emits the wire field names consumed by the companion frontend
(camelCase), which is why they differ from the attribute names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from memory_engine.models.task import Task


@dataclass
class LocationHint:
    lat: float
    lng: float
    context: Optional[str] = None   # e.g. "home", "office"


@dataclass
class SuggestedTask:
    id: str
    title: str
    category: Optional[str]

    @classmethod
    def from_task(cls, task: Task) -> SuggestedTask:
        return cls(id=task.task_id, title=task.title, category=task.category)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "category": self.category}


@dataclass
class SelectionContext:
    time_of_day: str
    day_of_week: int            # 0 = Sunday
    emotional_state: dict       # {fatigue, joy, stress}
    cognitive_load: int         # 0-100
    companion_mood: str
    context_reason: str

    def to_dict(self) -> dict:
        return {
            "timeOfDay": self.time_of_day,
            "dayOfWeek": self.day_of_week,
            "emotionalState": dict(self.emotional_state),
            "cognitiveLoad": self.cognitive_load,
            "companionMood": self.companion_mood,
            "contextReason": self.context_reason,
        }


@dataclass
class SelectionResult:
    message: str
    suggested_tasks: list[SuggestedTask]
    context: SelectionContext

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "suggestedTasks": [t.to_dict() for t in self.suggested_tasks],
            "context": self.context.to_dict(),
        }


@dataclass
class AggregationOutcome:
    user_id: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"userId": self.user_id, "success": self.success}
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class BatchReport:
    results: list[AggregationOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "errors": self.errors,
            "results": [r.to_dict() for r in self.results],
        }
