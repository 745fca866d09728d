"""Tests for input records, the Memory Profile model and selector result shapes."""

import pytest
from datetime import date, datetime, timezone

from memory_engine.errors import DominoAnalyzerError, MalformedRecordError
from memory_engine.models.profile import EmotionalState, MemoryProfile, StreakEntry
from memory_engine.models.selection import (
    AggregationOutcome,
    BatchReport,
    SelectionContext,
    SelectionResult,
    SuggestedTask,
)
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
    parse_timestamp,
)


# ═══════════════════════════════════════════════════════════════════════════
# Timestamps
# ═══════════════════════════════════════════════════════════════════════════


class TestParseTimestamp:
    def test_zulu_suffix(self):
        dt = parse_timestamp("2026-02-16T09:00:00Z", "task", "created_at")
        assert dt == datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc)

    def test_naive_is_treated_as_utc(self):
        dt = parse_timestamp("2026-02-16T09:00:00", "task", "created_at")
        assert dt.tzinfo is not None
        assert dt.hour == 9

    def test_offset_is_normalized_to_utc(self):
        dt = parse_timestamp("2026-02-16T10:00:00+01:00", "task", "created_at")
        assert dt.hour == 9

    def test_missing_raises(self):
        with pytest.raises(MalformedRecordError, match="missing created_at"):
            parse_timestamp(None, "task", "created_at")

    def test_garbage_raises(self):
        with pytest.raises(MalformedRecordError) as exc_info:
            parse_timestamp("yesterday-ish", "correction", "created_at")
        assert exc_info.value.record_type == "correction"


# ═══════════════════════════════════════════════════════════════════════════
# Task
# ═══════════════════════════════════════════════════════════════════════════


class TestTask:
    def test_word_count(self, make_task):
        assert make_task(title="Call the dentist today").word_count == 4
        assert make_task(title="   ").word_count == 0

    def test_redis_hash_is_flat_strings(self, make_task):
        task = make_task(
            completed=True,
            completed_at=datetime(2026, 2, 16, 8, 0, tzinfo=timezone.utc),
            location=Location(1.0, 2.0),
            keywords=["a", "b"],
        )
        data = task.to_dict()
        assert all(isinstance(v, str) for v in data.values())
        assert data["completed"] == "1"
        assert data["reminder_time"] == ""

    def test_from_redis_hash(self, make_task):
        task = make_task(
            scheduled_bucket="must",
            reminder_time=datetime(2026, 2, 16, 8, 0, tzinfo=timezone.utc),
            location=Location(37.1, -122.2),
            keywords=["laptop"],
        )
        restored = Task.from_dict(task.to_dict())
        assert restored == task

    def test_from_dict_accepts_id_alias(self):
        task = Task.from_dict({"id": "abc", "title": "x", "created_at": "2026-02-16T09:00:00Z"})
        assert task.task_id == "abc"
        assert task.category is None
        assert task.completed is False

    def test_missing_id_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            Task.from_dict({"title": "x", "created_at": "2026-02-16T09:00:00Z"})

    def test_bad_location_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            Task.from_dict({
                "task_id": "t", "title": "x", "created_at": "2026-02-16T09:00:00Z",
                "location": "{not json",
            })

    def test_boolean_strings(self):
        task = Task.from_dict({
            "task_id": "t", "title": "x", "created_at": "2026-02-16T09:00:00Z",
            "completed": "true", "is_tiny_task": "0",
        })
        assert task.completed is True
        assert task.is_tiny_task is False


class TestLocation:
    def test_distance_is_euclidean_degrees(self):
        assert Location(0.0, 0.0).distance_to(0.03, 0.04) == pytest.approx(0.05)

    def test_from_empty_value(self):
        assert Location.from_value("") is None
        assert Location.from_value(None) is None

    def test_from_dict_value(self):
        assert Location.from_value({"lat": "1.5", "lng": 2}) == Location(1.5, 2.0)


# ═══════════════════════════════════════════════════════════════════════════
# Behavioral streams
# ═══════════════════════════════════════════════════════════════════════════


class TestStreams:
    def test_correction_reads_corrected_output(self):
        c = Correction.from_dict({
            "created_at": "2026-02-15T10:00:00Z",
            "corrected_output": {"category": "today", "priority": "must"},
        })
        assert c.category == "today"
        assert c.priority == "must"

    def test_correction_output_must_be_object(self):
        with pytest.raises(MalformedRecordError):
            Correction.from_dict({"created_at": "2026-02-15T10:00:00Z", "corrected_output": "today"})

    def test_daily_session_reflected(self):
        assert DailySession(date(2026, 2, 15), top_focus="Ship it").is_reflected
        assert DailySession(date(2026, 2, 15), reflection_wins="Ran 5k").is_reflected
        assert not DailySession(date(2026, 2, 15), reflection_improve="Sleep").is_reflected

    def test_daily_session_bad_date(self):
        with pytest.raises(MalformedRecordError):
            DailySession.from_dict({"date": "someday"})

    def test_journal_mood_known_and_unknown(self):
        assert JournalMood.parse("Stressed") is JournalMood.STRESSED
        assert JournalMood.parse("grumpy") is JournalMood.UNKNOWN

    def test_journal_entry_falls_back_to_timestamp(self):
        entry = JournalEntry.from_dict({"mood": "grumpy", "timestamp": "2026-02-15T10:00:00Z"})
        assert entry.mood is JournalMood.UNKNOWN
        assert entry.raw_mood == "grumpy"

    def test_companion_event_unknown_type(self):
        event = CompanionEvent.from_dict({"event_type": "hug", "created_at": "2026-02-15T10:00:00Z"})
        assert event.event_type is CompanionEventType.UNKNOWN
        assert event.raw_type == "hug"

    def test_focus_record_round_trip(self):
        record = FocusRecord(date(2026, 2, 16), "Inbox zero", "admin")
        assert FocusRecord.from_dict(record.to_dict()) == record


# ═══════════════════════════════════════════════════════════════════════════
# Memory Profile / Emotional State
# ═══════════════════════════════════════════════════════════════════════════


class TestMemoryProfile:
    def test_defaults(self):
        profile = MemoryProfile()
        assert profile.tiny_task_threshold == 5
        assert profile.writing_style is None
        assert profile.category_preferences == {}
        assert profile.priority_bias == {"must": 0.5, "should": 0.5, "could": 0.5}
        assert set(profile.energy_pattern.values()) == {0.0}

    def test_json_document_round_trip(self, frozen_now):
        profile = MemoryProfile(
            category_preferences={"today": 1.0},
            writing_style="casual",
            streak_history=[StreakEntry("2026-02-15", "daily_session", 1)],
            last_updated=frozen_now,
        )
        assert MemoryProfile.from_dict(profile.to_dict()) == profile

    def test_content_dict_drops_timestamp(self, frozen_now):
        assert "last_updated" not in MemoryProfile(last_updated=frozen_now).content_dict()


class TestEmotionalState:
    def test_absent_defaults_to_fifty(self):
        assert EmotionalState.from_dict(None) == EmotionalState(50, 50, 50, 50)

    def test_partial_and_string_values(self):
        state = EmotionalState.from_dict({"joy": "80", "stress": "oops"})
        assert state.joy == 80
        assert state.stress == 50

    def test_values_are_clamped(self):
        state = EmotionalState.from_dict({"fatigue": 140, "affection": -3})
        assert state.fatigue == 100
        assert state.affection == 0


# ═══════════════════════════════════════════════════════════════════════════
# Result shapes
# ═══════════════════════════════════════════════════════════════════════════


class TestResultShapes:
    def test_selection_result_wire_names(self):
        result = SelectionResult(
            message="hi",
            suggested_tasks=[SuggestedTask("t1", "Pay rent", "today")],
            context=SelectionContext("morning", 1, {"fatigue": 1, "joy": 2, "stress": 3}, 40, "medium", "r"),
        )
        d = result.to_dict()
        assert set(d) == {"message", "suggestedTasks", "context"}
        assert d["suggestedTasks"] == [{"id": "t1", "title": "Pay rent", "category": "today"}]
        assert set(d["context"]) == {
            "timeOfDay", "dayOfWeek", "emotionalState", "cognitiveLoad", "companionMood", "contextReason",
        }

    def test_outcome_omits_error_on_success(self):
        assert AggregationOutcome("u1", True).to_dict() == {"userId": "u1", "success": True}
        assert AggregationOutcome("u2", False, "boom").to_dict()["error"] == "boom"

    def test_batch_report_counts(self):
        report = BatchReport([AggregationOutcome("a", True), AggregationOutcome("b", False, "x")])
        assert report.to_dict()["processed"] == 1
        assert report.errors == 1


class TestErrors:
    def test_domino_error_message(self):
        assert str(DominoAnalyzerError("timeout")) == "Domino analysis failed: timeout"

    def test_malformed_is_value_error(self):
        assert isinstance(MalformedRecordError("task", "x"), ValueError)
