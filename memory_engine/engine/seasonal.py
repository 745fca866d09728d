"""Seasonal pattern detection over daily focus history.

Looks for categories the user reliably focuses on at recurring points in the
week or month and turns them into ``seasonal_weight`` rules the selector can
boost on matching days.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Callable, Optional, Protocol

from memory_engine.config.settings import SEASONAL_HISTORY_LIMIT
from memory_engine.models.task import UNCATEGORIZED, FocusRecord

logger = logging.getLogger(__name__)

MIN_PATTERN_OCCURRENCES = 3
MIN_CATEGORY_OCCURRENCES = 2
RULE_WEIGHT = 0.1

# pattern name → predicate on the record's date
SEASONAL_PATTERNS: dict[str, Callable[[date], bool]] = {
    "monday_reset": lambda d: d.weekday() == 0,
    "weekend_family": lambda d: d.weekday() >= 5,
    "month_start_admin": lambda d: 1 <= d.day <= 7,
    "month_end_financial": lambda d: d.day >= 24,
}


def detect_seasonal_weight(records: list[FocusRecord]) -> dict[str, dict[str, Any]]:
    """Return ``{pattern: {category, confidence, weight}}`` for established patterns."""
    categories: dict[str, list[str]] = {name: [] for name in SEASONAL_PATTERNS}
    for record in records:
        category = record.cluster_label or UNCATEGORIZED
        for name, matches in SEASONAL_PATTERNS.items():
            if matches(record.date):
                categories[name].append(category)

    weights: dict[str, dict[str, Any]] = {}
    for name, seen in categories.items():
        if len(seen) < MIN_PATTERN_OCCURRENCES:
            continue
        # most_common keeps first-seen order on ties
        top_category, top_count = Counter(seen).most_common(1)[0]
        if top_count < MIN_CATEGORY_OCCURRENCES:
            continue
        weights[name] = {
            "category": top_category,
            "confidence": round(top_count / len(seen), 4),
            "weight": RULE_WEIGHT,
        }
    return weights


class FocusHistorySource(Protocol):
    def fetch_focus_history(self, user_id: str, limit: int = 90) -> list[FocusRecord]: ...


class SeasonalWeightSink(Protocol):
    def set_seasonal_weight(self, user_id: str, seasonal_weight: dict[str, Any]) -> dict[str, Any]: ...


def refresh_seasonal_weight(
    user_id: str,
    source: FocusHistorySource,
    profile_store: SeasonalWeightSink,
    limit: int = SEASONAL_HISTORY_LIMIT,
) -> Optional[dict[str, dict[str, Any]]]:
    """Detect and persist seasonal rules. Returns None when no rule was found."""
    records = source.fetch_focus_history(user_id, limit=limit)
    weights = detect_seasonal_weight(records)
    if not weights:
        logger.debug("No seasonal pattern for %s across %d record(s)", user_id, len(records))
        return None
    profile_store.set_seasonal_weight(user_id, weights)
    return weights
