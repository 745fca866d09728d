"""Tests for the aggregator agent's uAgents messages."""

import pytest
from datetime import datetime, timezone

from memory_engine.agents.aggregator_agent import report_message
from memory_engine.models.messages import AggregationReport, AggregationRequest
from memory_engine.models.selection import AggregationOutcome, BatchReport


class TestAggregationRequest:
    def test_roundtrip(self):
        req = AggregationRequest(user_ids=["alice", "bob"], requested_at="2026-02-16T09:00:00Z")
        restored = AggregationRequest.parse_raw(req.json())
        assert restored.user_ids == ["alice", "bob"]
        assert restored.requested_at == "2026-02-16T09:00:00Z"

    def test_empty_means_all_users(self):
        req = AggregationRequest(user_ids=[], requested_at="2026-02-16T09:00:00Z")
        assert req.user_ids == []


class TestAggregationReport:
    def test_from_batch_report(self):
        report = BatchReport([
            AggregationOutcome("alice", True),
            AggregationOutcome("bob", False, "Malformed task: missing task_id"),
        ])
        finished = datetime(2026, 2, 16, 9, 5, tzinfo=timezone.utc)

        msg = report_message(report, finished)

        assert msg.processed == 1
        assert msg.errors == 1
        assert msg.results[1] == {
            "userId": "bob", "success": False, "error": "Malformed task: missing task_id",
        }
        assert msg.finished_at == "2026-02-16T09:05:00+00:00"

    def test_roundtrip(self):
        msg = AggregationReport(processed=0, errors=0, results=[], finished_at="2026-02-16T09:05:00Z")
        restored = AggregationReport.parse_raw(msg.json())
        assert restored.processed == 0
        assert restored.results == []
