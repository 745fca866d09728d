"""Aggregator Agent: scheduled Memory Profile rebuilds.

Every AGGREGATION_INTERVAL seconds the agent rebuilds the Memory Profile of
every known user and refreshes their seasonal focus rules. Other agents can
request an immediate run for specific users with AggregationRequest and get
an AggregationReport back.

Usage:
    from memory_engine.agents.aggregator_agent import create_aggregator_agent
    agent = create_aggregator_agent(port=8006)
    agent.run()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis
from uagents import Agent, Context

from memory_engine.config.settings import (
    AGENT_DEPLOY_MODE,
    AGENT_ENDPOINT_BASE,
    AGGREGATION_INTERVAL,
    AGGREGATOR_AGENT_PORT,
    AGGREGATOR_AGENT_SEED,
)
from memory_engine.engine.batch import run_aggregation_cycle
from memory_engine.engine.profile_store import RedisProfileStore
from memory_engine.engine.task_store import RedisTaskStore, _get_redis
from memory_engine.models.messages import AggregationReport, AggregationRequest
from memory_engine.models.selection import BatchReport

logger = logging.getLogger(__name__)

LAST_RUN_KEY = "aggregator:last_run"


def report_message(report: BatchReport, finished_at: datetime) -> AggregationReport:
    return AggregationReport(
        processed=report.processed,
        errors=report.errors,
        results=[r.to_dict() for r in report.results],
        finished_at=finished_at.isoformat(),
    )


def create_aggregator_agent(
    port: int = AGGREGATOR_AGENT_PORT,
    r: Optional[redis.Redis] = None,
) -> Agent:
    """Create and configure the Aggregator agent."""
    agent = Agent(
        name="memory_aggregator",
        seed=AGGREGATOR_AGENT_SEED,
        port=port,
        endpoint=[f"{AGENT_ENDPOINT_BASE}:{port}/submit"] if AGENT_DEPLOY_MODE == "local" else [],
        mailbox=AGENT_DEPLOY_MODE == "agentverse",
    )

    # Lazy-initialized dependencies
    _state: Dict[str, Any] = {"redis": r}

    def _get_redis_client() -> redis.Redis:
        if _state["redis"] is None:
            _state["redis"] = _get_redis()
        return _state["redis"]

    def _run(user_ids: Optional[list[str]]) -> BatchReport:
        client = _get_redis_client()
        report = run_aggregation_cycle(
            RedisTaskStore(client), RedisProfileStore(client), user_ids=user_ids
        )
        client.set(LAST_RUN_KEY, datetime.now(timezone.utc).isoformat())
        return report

    # ── Startup ──────────────────────────────────────────────────────────

    @agent.on_event("startup")
    async def on_startup(ctx: Context):
        logger.info("Aggregator agent starting, address: %s", agent.address)
        ctx.storage.set("run_count", "0")
        logger.info("Aggregating Memory Profiles every %ds", AGGREGATION_INTERVAL)

    # ── Scheduled batch ──────────────────────────────────────────────────

    @agent.on_interval(period=AGGREGATION_INTERVAL)
    async def scheduled_aggregation(ctx: Context):
        run_count = int(ctx.storage.get("run_count") or "0") + 1
        ctx.storage.set("run_count", str(run_count))
        try:
            report = await asyncio.to_thread(_run, None)
        except Exception as exc:
            logger.error("Aggregation run %d failed: %s", run_count, exc)
            return
        logger.info(
            "Aggregation run %d: %d processed, %d error(s)",
            run_count, report.processed, report.errors,
        )

    # ── On-demand requests ───────────────────────────────────────────────

    @agent.on_message(AggregationRequest, replies=AggregationReport)
    async def handle_aggregation_request(ctx: Context, sender: str, msg: AggregationRequest):
        logger.info(
            "AggregationRequest from %s for %s",
            sender, f"{len(msg.user_ids)} user(s)" if msg.user_ids else "all users",
        )
        try:
            report = await asyncio.to_thread(_run, [str(u) for u in msg.user_ids])
        except Exception as exc:
            logger.error("On-demand aggregation failed: %s", exc)
            report = BatchReport()
        await ctx.send(sender, report_message(report, datetime.now(timezone.utc)))

    return agent


if __name__ == "__main__":
    create_aggregator_agent().run()
