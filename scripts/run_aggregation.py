#!/usr/bin/env python3
"""Run one Memory Profile aggregation batch and print the report.

Usage:
    python scripts/run_aggregation.py                 # every known user
    python scripts/run_aggregation.py alice bob       # just these users
    python scripts/run_aggregation.py --window-days 14 --workers 4

Exit status is 1 when any user failed to aggregate.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure the project root is on sys.path so `from memory_engine.…` imports work
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from memory_engine.config.settings import (
    AGGREGATION_MAX_WORKERS,
    AGGREGATION_WINDOW_DAYS,
    LOG_LEVEL,
)
from memory_engine.engine.aggregator import ProfileAggregator
from memory_engine.engine.batch import run_aggregation_cycle
from memory_engine.engine.profile_store import RedisProfileStore
from memory_engine.engine.task_store import RedisTaskStore, _get_redis
from memory_engine.errors import StoreUnavailableError

logger = logging.getLogger("run_aggregation")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild Memory Profiles once.")
    parser.add_argument("user_ids", nargs="*", help="users to aggregate (default: all known users)")
    parser.add_argument("--window-days", type=int, default=AGGREGATION_WINDOW_DAYS,
                        help="look-back window in days (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=AGGREGATION_MAX_WORKERS,
                        help="users aggregated in parallel (default: %(default)s)")
    parser.add_argument("--log-level", default=LOG_LEVEL)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s  %(levelname)-7s  %(name)-22s  %(message)s",
        datefmt="%H:%M:%S",
    )

    r = _get_redis()
    try:
        report = run_aggregation_cycle(
            RedisTaskStore(r),
            RedisProfileStore(r),
            user_ids=args.user_ids,
            aggregator=ProfileAggregator(window_days=args.window_days),
            max_workers=args.workers,
        )
    except StoreUnavailableError as exc:
        logger.error("Redis unavailable: %s", exc)
        return 2

    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
