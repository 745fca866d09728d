"""Contextual Selector: pick what to surface right now.

Combines the live emotional snapshot, time of day, location hint and the
companion's mood with fresh open tasks, then walks a fixed rule cascade
(first match wins):

  a. morning + high fatigue         → tiny tasks
  b. early afternoon + high joy     → progress tasks
  c. elevated cognitive load        → tasks that unlock the most others
  d. location hint                  → tasks near the user
  e. default                        → today's tasks by seasonal + mood boost

Collaborator outages degrade to empty inputs; they never fail the request.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

from memory_engine.config.settings import (
    DEFAULT_COMPANION_NAME,
    DOMINO_BATCH_SIZE,
    SELECTOR_TASK_LIMIT,
)
from memory_engine.engine.companion_state import COMPANION_MOODS, DEFAULT_COMPANION_MOOD
from memory_engine.engine.domino import DominoAnalyzer, KeywordDominoAnalyzer
from memory_engine.engine.task_store import TaskFilters
from memory_engine.engine.templates import MessageContext, compose_message
from memory_engine.errors import MalformedRecordError, StoreUnavailableError
from memory_engine.models.profile import EmotionalState
from memory_engine.models.selection import (
    LocationHint,
    SelectionContext,
    SelectionResult,
    SuggestedTask,
)
from memory_engine.models.task import Task

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
EMOTION_EXTREME = 70
ELEVATED_LOAD = 60
RECENT_WINDOW = timedelta(minutes=30)
LOCATION_RADIUS_DEGREES = 0.05

MOOD_BOOST = 0.1
SEASONAL_BOOST = 0.2

TODAY = "today"
UPCOMING = "upcoming"

REASON_MORNING_FATIGUE = "morning_high_fatigue"
REASON_AFTERNOON_JOY = "afternoon_high_joy"
REASON_COGNITIVE_LOAD = "high_cognitive_load"
REASON_DEFAULT = "default_with_seasonal_and_mood"


def classify_time_of_day(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 15:
        return "earlyAfternoon"
    if 15 <= hour < 17:
        return "lateAfternoon"
    if 17 <= hour < 22:
        return "evening"
    return "other"


def day_of_week(now: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return now.isoweekday() % 7


def in_mood_band(task: Task, mood: str) -> bool:
    words = task.word_count
    if mood == "ambitious":
        return words > 8 and task.category == TODAY
    if mood == "medium":
        return 5 <= words <= 10
    if mood == "simple":
        return words <= 6
    if mood == "low-cognitive":
        return words <= 5
    return False


def cognitive_load_score(
    emotional_state: EmotionalState, overdue_count: int, recent_count: int
) -> float:
    high_fatigue = emotional_state.fatigue >= EMOTION_EXTREME
    score = (
        emotional_state.stress * 0.4
        + overdue_count * 5
        + recent_count * 3
        + (20 if high_fatigue else 0)
    )
    return min(score, 100)


def seasonal_boost(task: Task, seasonal_weight: dict[str, Any], dow: int) -> float:
    boost = 0.0
    monday = seasonal_weight.get("monday_reset")
    if dow == 1 and isinstance(monday, dict) and monday.get("category") == task.category:
        boost += SEASONAL_BOOST
    weekend = seasonal_weight.get("weekend_family")
    if dow in (0, 6) and isinstance(weekend, dict) and weekend.get("category") == task.category:
        boost += SEASONAL_BOOST
    return boost


@dataclass
class TaskPools:
    today: list[Task] = field(default_factory=list)
    upcoming: list[Task] = field(default_factory=list)
    tiny: list[Task] = field(default_factory=list)
    progress: list[Task] = field(default_factory=list)
    location: list[Task] = field(default_factory=list)

    @classmethod
    def partition(cls, tasks: list[Task], hint: Optional[LocationHint]) -> TaskPools:
        pools = cls()
        for task in tasks:
            words = task.word_count
            if task.category == TODAY:
                pools.today.append(task)
            elif task.category == UPCOMING:
                pools.upcoming.append(task)
            if words <= 5:
                pools.tiny.append(task)
            if task.category == TODAY and 5 < words <= 10:
                pools.progress.append(task)
            if (
                hint is not None
                and task.location is not None
                and task.location.distance_to(hint.lat, hint.lng) < LOCATION_RADIUS_DEGREES
            ):
                pools.location.append(task)
        return pools


class TaskSource(Protocol):
    def fetch_tasks(self, user_id: str, filters: TaskFilters | None = None) -> list[Task]: ...


class FocusPreferenceSource(Protocol):
    def get_focus_preferences(self, user_id: str) -> dict[str, Any]: ...


class CompanionStateSource(Protocol):
    def get_emotional_state(self, user_id: str) -> EmotionalState: ...
    def get_companion_mood(self, user_id: str) -> Optional[str]: ...
    def get_companion_name(self, user_id: str) -> str: ...


class ContextualSelector:
    def __init__(
        self,
        task_store: TaskSource,
        profile_store: FocusPreferenceSource,
        companion_state: CompanionStateSource,
        domino_analyzer: DominoAnalyzer | None = None,
        task_limit: int = SELECTOR_TASK_LIMIT,
        domino_batch_size: int = DOMINO_BATCH_SIZE,
    ):
        self.task_store = task_store
        self.profile_store = profile_store
        self.companion_state = companion_state
        self.domino_analyzer = domino_analyzer or KeywordDominoAnalyzer()
        self.task_limit = task_limit
        self.domino_batch_size = domino_batch_size

    # -- Inputs (missing or failing collaborators → defaults) --

    def _load_seasonal_weight(self, user_id: str) -> dict[str, Any]:
        try:
            preferences = self.profile_store.get_focus_preferences(user_id)
        except (StoreUnavailableError, MalformedRecordError) as exc:
            logger.warning("Focus preferences unavailable for %s: %s", user_id, exc)
            return {}
        weights = preferences.get("seasonal_weight") if preferences else None
        return weights if isinstance(weights, dict) else {}

    def _load_emotional_state(self, user_id: str) -> EmotionalState:
        try:
            return self.companion_state.get_emotional_state(user_id)
        except StoreUnavailableError as exc:
            logger.warning("Emotional state unavailable for %s: %s", user_id, exc)
            return EmotionalState()

    def _load_companion_name(self, user_id: str) -> str:
        try:
            return self.companion_state.get_companion_name(user_id)
        except StoreUnavailableError as exc:
            logger.warning("Companion name unavailable for %s: %s", user_id, exc)
            return DEFAULT_COMPANION_NAME

    def _resolve_mood(self, user_id: str, companion_mood: Optional[str]) -> str:
        if companion_mood is None:
            try:
                companion_mood = self.companion_state.get_companion_mood(user_id)
            except StoreUnavailableError as exc:
                logger.warning("Companion mood unavailable for %s: %s", user_id, exc)
        mood = companion_mood or DEFAULT_COMPANION_MOOD
        if mood not in COMPANION_MOODS:
            raise ValueError(f"unknown companion mood: {mood!r}")
        return mood

    def _load_open_tasks(self, user_id: str) -> list[Task]:
        filters = TaskFilters(
            completed=False, limit=self.task_limit, newest_first=True, skip_malformed=True
        )
        try:
            return self.task_store.fetch_tasks(user_id, filters)
        except (StoreUnavailableError, MalformedRecordError) as exc:
            logger.warning("Task store unavailable for %s: %s", user_id, exc)
            return []

    # -- Ranking --

    def rank_by_unlocks(self, tasks: list[Task]) -> list[Task]:
        """The analyzed batch, most unlocks first. Empty on any failure."""
        batch = tasks[: self.domino_batch_size]
        if not batch:
            return []
        try:
            unlocks = self.domino_analyzer.rank_unlocks(batch)
        except Exception as exc:
            logger.warning("Domino analysis failed, continuing without it: %s", exc)
            return []
        # stable: ties keep newest-first order
        return sorted(batch, key=lambda t: -unlocks.get(t.task_id, 0))

    @staticmethod
    def _by_boost(pool: list[Task], boosts: dict[str, float]) -> list[Task]:
        return sorted(pool, key=lambda t: -boosts.get(t.task_id, 0.0))

    # -- Selection --

    def select(
        self,
        user_id: str,
        companion_mood: Optional[str] = None,
        location: Optional[LocationHint] = None,
        now: Optional[datetime] = None,
    ) -> SelectionResult:
        now = now or datetime.now(timezone.utc)
        mood = self._resolve_mood(user_id, companion_mood)

        seasonal_weight = self._load_seasonal_weight(user_id)
        emotional_state = self._load_emotional_state(user_id)

        time_of_day = classify_time_of_day(now.hour)
        dow = day_of_week(now)
        high_fatigue = emotional_state.fatigue >= EMOTION_EXTREME
        high_joy = emotional_state.joy >= EMOTION_EXTREME

        tasks = self._load_open_tasks(user_id)
        overdue_count = sum(1 for t in tasks if t.reminder_time is not None and t.reminder_time < now)
        recent_count = sum(1 for t in tasks if t.created_at >= now - RECENT_WINDOW)

        load = cognitive_load_score(emotional_state, overdue_count, recent_count)
        elevated = load >= ELEVATED_LOAD

        pools = TaskPools.partition(tasks, location)
        domino_ranked = self.rank_by_unlocks(tasks) if elevated else []
        mood_boost = {t.task_id: MOOD_BOOST if in_mood_band(t, mood) else 0.0 for t in tasks}

        logger.debug(
            "Selecting for %s: %s, load=%.1f, pools today=%d upcoming=%d tiny=%d progress=%d location=%d",
            user_id, time_of_day, load, len(pools.today), len(pools.upcoming),
            len(pools.tiny), len(pools.progress), len(pools.location),
        )

        if time_of_day == "morning" and high_fatigue and pools.tiny:
            chosen = self._by_boost(pools.tiny, mood_boost)
            reason = REASON_MORNING_FATIGUE
        elif time_of_day == "earlyAfternoon" and high_joy and pools.progress:
            chosen = self._by_boost(pools.progress, mood_boost)
            reason = REASON_AFTERNOON_JOY
        elif elevated and domino_ranked:
            chosen = domino_ranked
            reason = REASON_COGNITIVE_LOAD
        elif location is not None and pools.location:
            chosen = self._by_boost(pools.location, mood_boost)
            reason = f"location_{location.context or 'nearby'}"
        else:
            total_boost = {
                t.task_id: seasonal_boost(t, seasonal_weight, dow) + mood_boost[t.task_id]
                for t in tasks
            }
            chosen = self._by_boost(pools.today or pools.upcoming, total_boost)
            reason = REASON_DEFAULT

        suggestions = [SuggestedTask.from_task(t) for t in chosen[:MAX_SUGGESTIONS]]
        message = compose_message(MessageContext(
            reason=reason,
            time_of_day=time_of_day,
            companion_name=self._load_companion_name(user_id),
            suggestion_count=len(suggestions),
            tiny_count=len(pools.tiny),
            progress_count=len(pools.progress),
            overdue_count=overdue_count,
            location_context=(location.context if location and location.context else "nearby"),
        ))

        return SelectionResult(
            message=message,
            suggested_tasks=suggestions,
            context=SelectionContext(
                time_of_day=time_of_day,
                day_of_week=dow,
                emotional_state={
                    "fatigue": emotional_state.fatigue,
                    "joy": emotional_state.joy,
                    "stress": emotional_state.stress,
                },
                cognitive_load=int(math.floor(load + 0.5)),
                companion_mood=mood,
                context_reason=reason,
            ),
        )

    def suggest(
        self,
        user_id: str,
        companion_mood: Optional[str] = None,
        location: Optional[LocationHint] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """``select`` as a wire dict; unexpected failures become ``{"error": ...}``."""
        try:
            return self.select(user_id, companion_mood, location, now).to_dict()
        except Exception as exc:
            logger.exception("Suggestion request failed for %s", user_id)
            return {"error": str(exc)}
