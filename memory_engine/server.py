"""FastAPI server exposing the memory engine to the companion frontend.

REST endpoints for contextual task suggestions, Memory Profile lookups and
on-demand aggregation runs. The scheduled batch lives in the aggregator
agent; these endpoints run the same code paths synchronously.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal, Optional

import redis
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from memory_engine.config.settings import REDIS_SOCKET_TIMEOUT, REDIS_URL
from memory_engine.engine.batch import run_aggregation_cycle
from memory_engine.engine.companion_state import RedisCompanionStateProvider
from memory_engine.engine.domino import get_domino_analyzer
from memory_engine.engine.profile_store import RedisProfileStore
from memory_engine.engine.seasonal import refresh_seasonal_weight
from memory_engine.engine.selector import ContextualSelector
from memory_engine.engine.task_store import RedisTaskStore
from memory_engine.errors import MalformedRecordError, StoreUnavailableError
from memory_engine.models.selection import LocationHint

logger = logging.getLogger(__name__)

app = FastAPI(title="Memory Engine", description="Behavioral memory and contextual task selection")

CompanionMood = Literal["ambitious", "medium", "simple", "low-cognitive"]


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(
        REDIS_URL, decode_responses=True, socket_timeout=REDIS_SOCKET_TIMEOUT
    )


def _build_selector(r: redis.Redis) -> ContextualSelector:
    return ContextualSelector(
        task_store=RedisTaskStore(r),
        profile_store=RedisProfileStore(r),
        companion_state=RedisCompanionStateProvider(r),
        domino_analyzer=get_domino_analyzer(),
    )


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════


@app.get("/api/health")
async def health():
    r = _get_redis()
    try:
        r.ping()
        redis_ok = True
    except redis.RedisError:
        redis_ok = False

    return {
        "status": "ok",
        "redis": redis_ok,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ══════════════════════════════════════════════════════════════════════════
# Contextual Selection
# ══════════════════════════════════════════════════════════════════════════


@app.get("/api/users/{user_id}/suggestions")
def get_suggestions(
    user_id: str,
    companion_mood: Optional[CompanionMood] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    context: Optional[str] = Query(None, description="Location label, e.g. home or office"),
):
    """Up to three tasks to surface right now, with a companion message.

    A location hint needs both ``lat`` and ``lng``; one without the other is
    rejected.
    """
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat and lng must be given together")
    location = LocationHint(lat=lat, lng=lng, context=context) if lat is not None else None

    result = _build_selector(_get_redis()).suggest(user_id, companion_mood, location)
    if "error" in result:
        return JSONResponse(status_code=500, content=result)
    return result


# ══════════════════════════════════════════════════════════════════════════
# Memory Profiles
# ══════════════════════════════════════════════════════════════════════════


@app.get("/api/users/{user_id}/profile")
def get_profile(user_id: str):
    store = RedisProfileStore(_get_redis())
    try:
        profile = store.get_profile(user_id)
        preferences = store.get_focus_preferences(user_id)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except MalformedRecordError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    if profile is None:
        raise HTTPException(status_code=404, detail=f"No memory profile for user {user_id}")
    return {"user_id": user_id, "memory_profile": profile.to_dict(), "focus_preferences": preferences}


class AggregateRequest(BaseModel):
    user_ids: list[str] = []    # empty = every known user


@app.post("/api/profiles/aggregate")
def aggregate_profiles(req: Optional[AggregateRequest] = None):
    """Rebuild Memory Profiles now. Per-user failures are reported, not raised."""
    r = _get_redis()
    user_ids = req.user_ids if req else []
    try:
        report = run_aggregation_cycle(
            RedisTaskStore(r), RedisProfileStore(r), user_ids=user_ids
        )
    except StoreUnavailableError as exc:
        # only reachable when listing users fails
        raise HTTPException(status_code=503, detail=str(exc))
    return report.to_dict()


@app.post("/api/users/{user_id}/seasonal-weight")
def recompute_seasonal_weight(user_id: str):
    r = _get_redis()
    try:
        weights = refresh_seasonal_weight(user_id, RedisTaskStore(r), RedisProfileStore(r))
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except MalformedRecordError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"user_id": user_id, "updated": weights is not None, "seasonal_weight": weights or {}}
