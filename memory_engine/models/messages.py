"""Typed message models for the aggregator agent.

All messages are uAgents Model subclasses providing schema validation
and serialization across the Fetch.ai ecosystem.
"""

from uagents import Model


class AggregationRequest(Model):
    """On-demand request to rebuild Memory Profiles."""
    user_ids: list           # empty list = every known user
    requested_at: str        # ISO 8601


class AggregationReport(Model):
    """Returned by the aggregator agent after a batch run."""
    processed: int           # users whose profile was rebuilt
    errors: int              # users whose aggregation failed
    results: list            # [{userId, success, error?}]
    finished_at: str         # ISO 8601
