"""Profile Aggregator: Behavioral Memory Engine.

Turns a rolling window of five behavioral streams into one MemoryProfile:

1. Corrections          → category preferences, priority bias
2. Tasks                → category preferences, priority bias, writing style,
                          tiny-task threshold, energy pattern,
                          procrastination triggers, completion streaks
3. Daily sessions       → daily-session streak entries
4. Mood journal         → emotional triggers, positive reinforcers
5. Companion events     → positive reinforcers

Every run is a full recomputation. Given the same inputs the result is
identical apart from ``last_updated``.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol

from memory_engine.config.settings import AGGREGATION_WINDOW_DAYS
from memory_engine.engine.task_store import TaskFilters
from memory_engine.models.profile import (
    DEFAULT_PRIORITY_BIAS,
    DEFAULT_TINY_TASK_THRESHOLD,
    ENERGY_BUCKETS,
    MAX_EMOTIONAL_TRIGGERS,
    MAX_POSITIVE_REINFORCERS,
    MAX_PROCRASTINATION_TRIGGERS,
    MAX_STREAK_HISTORY,
    PRIORITY_BUCKETS,
    STREAK_COMPLETION,
    STREAK_DAILY_SESSION,
    MemoryProfile,
    StreakEntry,
)
from memory_engine.models.task import (
    UNCATEGORIZED,
    CompanionEvent,
    CompanionEventType,
    Correction,
    DailySession,
    JournalEntry,
    JournalMood,
    Task,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Weights and thresholds
# ═══════════════════════════════════════════════════════════════════════════

CORRECTION_CATEGORY_WEIGHT = 0.15
COMPLETED_TASK_CATEGORY_WEIGHT = 0.05
CORRECTION_PRIORITY_WEIGHT = 0.08
COMPLETION_RATE_ADJUSTMENT = 0.2
DEFAULT_COMPLETION_RATE = 0.5

ENERGY_COMPLETED_WEIGHT = 0.1
ENERGY_INCOMPLETE_WEIGHT = 0.03

PROCRASTINATION_DELAY = timedelta(days=7)
MIN_COMPLETION_STREAK = 3
STYLE_DOMINANCE_RATIO = 1.5

CASUAL_MARKERS = re.compile(r"\b(?:like|just|maybe|kinda|sorta|gonna|wanna)\b", re.IGNORECASE)
FORMAL_MARKERS = re.compile(
    r"\b(?:please|kindly|would\s+appreciate|regarding|pursuant)\b", re.IGNORECASE
)

TRIGGER_MOODS = (JournalMood.STRESSED, JournalMood.OVERWHELMED)
REINFORCER_MOODS = (JournalMood.HAPPY, JournalMood.EXCITED)
EVENT_REINFORCERS = {
    CompanionEventType.TASK_COMPLETED: "task_completion",
    CompanionEventType.STREAK_ACHIEVED: "streak_milestone",
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _append_unique(items: list[str], value: str, cap: int) -> None:
    """Append ``value`` once; the list keeps its first ``cap`` distinct entries."""
    if value not in items and len(items) < cap:
        items.append(value)


def energy_bucket(hour: int) -> str:
    if 6 <= hour <= 11:
        return "morning"
    if 12 <= hour <= 17:
        return "afternoon"
    return "night"


# ═══════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class AggregationInputs:
    corrections: list[Correction] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    daily_sessions: list[DailySession] = field(default_factory=list)
    journal_entries: list[JournalEntry] = field(default_factory=list)
    companion_events: list[CompanionEvent] = field(default_factory=list)


class BehaviorSource(Protocol):
    def fetch_tasks(self, user_id: str, filters: TaskFilters | None = None) -> list[Task]: ...
    def fetch_corrections(self, user_id: str, since: datetime | None = None) -> list[Correction]: ...
    def fetch_daily_sessions(self, user_id: str, since: datetime | None = None) -> list[DailySession]: ...
    def fetch_mood_journal(self, user_id: str, since: datetime | None = None) -> list[JournalEntry]: ...
    def fetch_companion_events(self, user_id: str, since: datetime | None = None) -> list[CompanionEvent]: ...


# ═══════════════════════════════════════════════════════════════════════════
# Aggregator
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ProfileAggregator:
    """Computes a MemoryProfile from one user's behavioral window."""

    window_days: int = AGGREGATION_WINDOW_DAYS

    # -- Fetch --

    def collect(self, source: BehaviorSource, user_id: str, now: datetime) -> AggregationInputs:
        """Read the five streams for ``user_id`` over the lookback window."""
        since = now - timedelta(days=self.window_days)
        return AggregationInputs(
            corrections=source.fetch_corrections(user_id, since),
            tasks=source.fetch_tasks(user_id, TaskFilters(active_since=since)),
            daily_sessions=source.fetch_daily_sessions(user_id, since),
            journal_entries=source.fetch_mood_journal(user_id, since),
            companion_events=source.fetch_companion_events(user_id, since),
        )

    def aggregate_user(
        self,
        source: BehaviorSource,
        user_id: str,
        now: datetime | None = None,
    ) -> MemoryProfile:
        now = now or datetime.now(timezone.utc)
        inputs = self.collect(source, user_id, now)
        logger.debug(
            "Aggregating %s: %d corrections, %d tasks, %d sessions, %d journal, %d events",
            user_id,
            len(inputs.corrections),
            len(inputs.tasks),
            len(inputs.daily_sessions),
            len(inputs.journal_entries),
            len(inputs.companion_events),
        )
        return self.build_profile(inputs, now)

    # -- Feature 1: Category Preferences --

    def compute_category_preferences(
        self, corrections: list[Correction], tasks: list[Task]
    ) -> dict[str, float]:
        raw: dict[str, float] = {}
        for correction in corrections:
            if correction.category:
                raw[correction.category] = raw.get(correction.category, 0.0) + CORRECTION_CATEGORY_WEIGHT
        for task in tasks:
            if task.completed and task.category:
                raw[task.category] = raw.get(task.category, 0.0) + COMPLETED_TASK_CATEGORY_WEIGHT

        if not raw:
            return {}
        # Floor of 1: small totals are kept as-is rather than stretched to 1.0
        divisor = max(max(raw.values()), 1.0)
        return {k: round(_clamp(v / divisor), 4) for k, v in raw.items()}

    # -- Feature 2: Priority Bias --

    def compute_completion_rates(self, tasks: list[Task]) -> dict[str, float]:
        totals = {bucket: 0 for bucket in PRIORITY_BUCKETS}
        done = {bucket: 0 for bucket in PRIORITY_BUCKETS}
        for task in tasks:
            bucket = (task.scheduled_bucket or "").lower()
            if bucket in totals:
                totals[bucket] += 1
                if task.completed:
                    done[bucket] += 1
        return {
            bucket: done[bucket] / totals[bucket] if totals[bucket] else DEFAULT_COMPLETION_RATE
            for bucket in PRIORITY_BUCKETS
        }

    def compute_priority_bias(
        self, corrections: list[Correction], tasks: list[Task]
    ) -> dict[str, float]:
        bias = {bucket: DEFAULT_PRIORITY_BIAS for bucket in PRIORITY_BUCKETS}
        for correction in corrections:
            priority = (correction.priority or "").lower()
            if priority in bias:
                bias[priority] += CORRECTION_PRIORITY_WEIGHT

        rates = self.compute_completion_rates(tasks)
        return {
            bucket: round(
                _clamp(bias[bucket] + (rates[bucket] - DEFAULT_COMPLETION_RATE) * COMPLETION_RATE_ADJUSTMENT),
                4,
            )
            for bucket in PRIORITY_BUCKETS
        }

    # -- Feature 3: Writing Style --

    def compute_writing_style(self, tasks: list[Task]) -> Optional[str]:
        titles = [t.title for t in tasks if t.title.strip()]
        if not titles:
            return None

        casual = sum(len(CASUAL_MARKERS.findall(title)) for title in titles)
        formal = sum(len(FORMAL_MARKERS.findall(title)) for title in titles)

        if formal > casual * STYLE_DOMINANCE_RATIO:
            return "formal"
        if casual > formal * STYLE_DOMINANCE_RATIO:
            return "casual"
        return "neutral"

    # -- Feature 4: Tiny-Task Threshold --

    def compute_tiny_task_threshold(self, tasks: list[Task]) -> int:
        lengths = [len(t.title) for t in tasks if t.is_tiny_task]
        if not lengths:
            return DEFAULT_TINY_TASK_THRESHOLD
        return _round_half_up(sum(lengths) / len(lengths))

    # -- Feature 5: Energy Pattern --

    def compute_energy_pattern(self, tasks: list[Task]) -> dict[str, float]:
        raw = {bucket: 0.0 for bucket in ENERGY_BUCKETS}
        for task in tasks:
            bucket = energy_bucket(task.created_at.hour)
            raw[bucket] += ENERGY_COMPLETED_WEIGHT if task.completed else ENERGY_INCOMPLETE_WEIGHT

        peak = max(raw.values())
        if peak <= 0:
            return raw
        return {k: round(_clamp(v / peak), 4) for k, v in raw.items()}

    # -- Feature 6: Procrastination Triggers --

    def compute_procrastination_triggers(self, tasks: list[Task]) -> list[str]:
        triggers: list[str] = []
        for task in tasks:
            if not task.completed or task.completed_at is None:
                continue
            if task.completed_at - task.created_at > PROCRASTINATION_DELAY:
                _append_unique(triggers, task.category or UNCATEGORIZED, MAX_PROCRASTINATION_TRIGGERS)
        return triggers

    # -- Feature 7: Emotional Triggers / Positive Reinforcers --

    def compute_emotional_tags(
        self,
        journal_entries: list[JournalEntry],
        companion_events: list[CompanionEvent],
    ) -> tuple[list[str], list[str], int]:
        """Return (emotional_triggers, positive_reinforcers, unknown_count)."""
        triggers: list[str] = []
        reinforcers: list[str] = []
        unknown = 0

        for entry in journal_entries:
            if entry.mood in TRIGGER_MOODS:
                _append_unique(triggers, f"{entry.mood.value}_day", MAX_EMOTIONAL_TRIGGERS)
            elif entry.mood in REINFORCER_MOODS:
                _append_unique(reinforcers, f"{entry.mood.value}_moment", MAX_POSITIVE_REINFORCERS)
            elif entry.mood is JournalMood.UNKNOWN:
                unknown += 1
                logger.debug("Unknown journal mood %r", entry.raw_mood)

        for event in companion_events:
            tag = EVENT_REINFORCERS.get(event.event_type)
            if tag:
                _append_unique(reinforcers, tag, MAX_POSITIVE_REINFORCERS)
            elif event.event_type is CompanionEventType.UNKNOWN:
                unknown += 1
                logger.debug("Unknown companion event type %r", event.raw_type)

        return triggers, reinforcers, unknown

    # -- Feature 8: Streak History --

    def compute_completion_streaks(self, tasks: list[Task]) -> list[StreakEntry]:
        days: list[date] = sorted({
            t.completed_at.date() for t in tasks if t.completed and t.completed_at is not None
        })
        streaks: list[StreakEntry] = []
        if not days:
            return streaks

        run = 1
        for prev, curr in zip(days, days[1:]):
            if (curr - prev).days == 1:
                run += 1
                continue
            if run >= MIN_COMPLETION_STREAK:
                streaks.append(StreakEntry(prev.isoformat(), STREAK_COMPLETION, run))
            run = 1
        if run >= MIN_COMPLETION_STREAK:
            streaks.append(StreakEntry(days[-1].isoformat(), STREAK_COMPLETION, run))
        return streaks

    def compute_streak_history(
        self, daily_sessions: list[DailySession], tasks: list[Task]
    ) -> list[StreakEntry]:
        history = [
            StreakEntry(s.date.isoformat(), STREAK_DAILY_SESSION, 1)
            for s in daily_sessions
            if s.is_reflected
        ]
        history.extend(self.compute_completion_streaks(tasks))
        return history[-MAX_STREAK_HISTORY:]

    # -- Aggregate: compute full profile --

    def build_profile(self, inputs: AggregationInputs, now: datetime) -> MemoryProfile:
        """Compute every profile feature from already-fetched inputs."""
        triggers, reinforcers, unknown = self.compute_emotional_tags(
            inputs.journal_entries, inputs.companion_events
        )
        if unknown:
            logger.info("Skipped %d journal/event row(s) with unrecognized type", unknown)

        return MemoryProfile(
            category_preferences=self.compute_category_preferences(inputs.corrections, inputs.tasks),
            priority_bias=self.compute_priority_bias(inputs.corrections, inputs.tasks),
            writing_style=self.compute_writing_style(inputs.tasks),
            tiny_task_threshold=self.compute_tiny_task_threshold(inputs.tasks),
            energy_pattern=self.compute_energy_pattern(inputs.tasks),
            procrastination_triggers=self.compute_procrastination_triggers(inputs.tasks),
            emotional_triggers=triggers,
            positive_reinforcers=reinforcers,
            streak_history=self.compute_streak_history(inputs.daily_sessions, inputs.tasks),
            last_updated=now,
        )
