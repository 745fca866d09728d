"""Tests for seasonal focus-pattern detection."""

import pytest
from datetime import date, timedelta

from memory_engine.engine.seasonal import detect_seasonal_weight, refresh_seasonal_weight
from memory_engine.models.task import FocusRecord


def _records(start: date, labels: list):
    return [FocusRecord(start + timedelta(days=7 * i), "focus", label) for i, label in enumerate(labels)]


MONDAY = date(2026, 2, 2)
SATURDAY = date(2026, 2, 7)


class TestDetectSeasonalWeight:
    def test_monday_rule(self):
        weights = detect_seasonal_weight(_records(MONDAY, ["admin", "admin", "admin", "work"]))
        assert weights["monday_reset"] == {"category": "admin", "confidence": 0.75, "weight": 0.1}

    def test_needs_three_occurrences(self):
        assert "monday_reset" not in detect_seasonal_weight(_records(MONDAY, ["admin", "admin"]))

    def test_top_category_needs_two_hits(self):
        weights = detect_seasonal_weight(_records(MONDAY, ["a", "b", "c"]))
        assert "monday_reset" not in weights

    def test_weekend_rule(self):
        weights = detect_seasonal_weight(_records(SATURDAY, ["family", "family", "errands"]))
        assert weights["weekend_family"]["category"] == "family"
        assert weights["weekend_family"]["confidence"] == pytest.approx(0.6667)

    def test_missing_label_is_uncategorized(self):
        weights = detect_seasonal_weight(_records(MONDAY, [None, None, "work"]))
        assert weights["monday_reset"]["category"] == "uncategorized"

    def test_month_boundaries(self):
        records = [
            FocusRecord(date(2026, m, 3), "f", "bills") for m in (1, 2, 3)
        ] + [
            FocusRecord(date(2026, m, 28), "f", "budget") for m in (1, 2, 3)
        ]
        weights = detect_seasonal_weight(records)
        assert weights["month_start_admin"]["category"] == "bills"
        assert weights["month_end_financial"]["category"] == "budget"

    def test_no_history(self):
        assert detect_seasonal_weight([]) == {}


class TestRefreshSeasonalWeight:
    def test_persists_rules(self, task_store, profile_store):
        for record in _records(MONDAY, ["admin"] * 3):
            task_store.add_focus_record("u1", record)

        weights = refresh_seasonal_weight("u1", task_store, profile_store)

        assert weights["monday_reset"]["confidence"] == 1.0
        assert profile_store.get_focus_preferences("u1")["seasonal_weight"] == weights

    def test_nothing_found_keeps_existing_rules(self, task_store, profile_store):
        existing = {"weekend_family": {"category": "family", "confidence": 1.0, "weight": 0.1}}
        profile_store.set_seasonal_weight("u1", existing)

        assert refresh_seasonal_weight("u1", task_store, profile_store) is None
        assert profile_store.get_focus_preferences("u1")["seasonal_weight"] == existing

    def test_history_limit(self, task_store, profile_store):
        # only the newest two Mondays fall inside the limit
        for record in _records(MONDAY, ["admin"] * 3):
            task_store.add_focus_record("u1", record)
        assert refresh_seasonal_weight("u1", task_store, profile_store, limit=2) is None
