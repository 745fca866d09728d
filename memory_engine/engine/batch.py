"""Batch driver: rebuild Memory Profiles for a list of users.

Each user is aggregated and upserted independently. A failure for one user
(malformed row, store outage) is recorded in that user's outcome and the
batch moves on.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from memory_engine.config.settings import AGGREGATION_MAX_WORKERS
from memory_engine.engine.aggregator import BehaviorSource, ProfileAggregator
from memory_engine.engine.seasonal import refresh_seasonal_weight
from memory_engine.engine.task_store import RedisTaskStore
from memory_engine.errors import MalformedRecordError, StoreUnavailableError
from memory_engine.models.profile import MemoryProfile
from memory_engine.models.selection import AggregationOutcome, BatchReport

logger = logging.getLogger(__name__)


class ProfileSink(Protocol):
    def upsert_profile(self, user_id: str, profile: MemoryProfile) -> MemoryProfile: ...


class UserDirectory(Protocol):
    def list_users(self) -> list[str]: ...


def aggregate_one(
    user_id: str,
    source: BehaviorSource,
    profile_store: ProfileSink,
    aggregator: ProfileAggregator,
    now: datetime,
) -> AggregationOutcome:
    try:
        profile = aggregator.aggregate_user(source, user_id, now=now)
        profile_store.upsert_profile(user_id, profile)
    except Exception as exc:
        logger.error("Aggregation failed for user %s: %s", user_id, exc)
        return AggregationOutcome(user_id=user_id, success=False, error=str(exc))
    return AggregationOutcome(user_id=user_id, success=True)


def aggregate_users(
    user_ids: Iterable[str],
    source: BehaviorSource,
    profile_store: ProfileSink,
    aggregator: Optional[ProfileAggregator] = None,
    now: Optional[datetime] = None,
    max_workers: int = AGGREGATION_MAX_WORKERS,
) -> BatchReport:
    """Aggregate every user in ``user_ids``; results keep the input order."""
    aggregator = aggregator or ProfileAggregator()
    now = now or datetime.now(timezone.utc)
    user_ids = list(user_ids)

    def _run(user_id: str) -> AggregationOutcome:
        return aggregate_one(user_id, source, profile_store, aggregator, now)

    if max_workers > 1 and len(user_ids) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(_run, user_ids))
    else:
        results = [_run(uid) for uid in user_ids]

    report = BatchReport(results=results)
    logger.info(
        "Aggregation batch finished: %d processed, %d errors", report.processed, report.errors
    )
    return report


def aggregate_all_users(
    directory: UserDirectory,
    source: BehaviorSource,
    profile_store: ProfileSink,
    aggregator: Optional[ProfileAggregator] = None,
    now: Optional[datetime] = None,
    max_workers: int = AGGREGATION_MAX_WORKERS,
) -> BatchReport:
    user_ids = directory.list_users()
    logger.info("Starting aggregation batch for %d user(s)", len(user_ids))
    return aggregate_users(user_ids, source, profile_store, aggregator, now, max_workers)


class SeasonalProfileSink(ProfileSink, Protocol):
    def set_seasonal_weight(self, user_id: str, seasonal_weight: dict) -> dict: ...


def run_aggregation_cycle(
    task_store: RedisTaskStore,
    profile_store: SeasonalProfileSink,
    user_ids: Optional[Iterable[str]] = None,
    aggregator: Optional[ProfileAggregator] = None,
    now: Optional[datetime] = None,
    max_workers: int = AGGREGATION_MAX_WORKERS,
) -> BatchReport:
    """One full pass: rebuild profiles, then refresh seasonal rules for the users that succeeded.

    ``user_ids`` of None or empty means every known user. Seasonal refresh
    failures are logged and do not change the batch outcome.
    """
    if user_ids:
        report = aggregate_users(user_ids, task_store, profile_store, aggregator, now, max_workers)
    else:
        report = aggregate_all_users(task_store, task_store, profile_store, aggregator, now, max_workers)

    for outcome in report.results:
        if not outcome.success:
            continue
        try:
            refresh_seasonal_weight(outcome.user_id, task_store, profile_store)
        except (StoreUnavailableError, MalformedRecordError) as exc:
            logger.warning("Seasonal refresh skipped for %s: %s", outcome.user_id, exc)
    return report
