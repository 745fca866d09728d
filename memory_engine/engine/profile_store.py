"""Redis-backed profile store.

One hash per user holds the whole Memory Profile as a JSON document plus the
user's focus preferences (seasonal rules live there). Upserts replace the
``memory_profile`` field wholesale: profiles are full recomputations, so the
latest write always wins and nothing is merged field by field.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis

from memory_engine.engine.task_store import USERS_KEY, _get_redis, _redis_errors
from memory_engine.errors import MalformedRecordError
from memory_engine.models.profile import MemoryProfile

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "profile:"
MEMORY_PROFILE_FIELD = "memory_profile"
FOCUS_PREFERENCES_FIELD = "focus_preferences"


class RedisProfileStore:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{PROFILE_PREFIX}{user_id}"

    def _load_json(self, user_id: str, field_name: str) -> Optional[dict]:
        with _redis_errors():
            raw = self.r.hget(self._key(user_id), field_name)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise MalformedRecordError(field_name, f"invalid JSON for user {user_id}")
        if not isinstance(data, dict):
            raise MalformedRecordError(field_name, f"not an object for user {user_id}")
        return data

    def upsert_profile(self, user_id: str, profile: MemoryProfile) -> MemoryProfile:
        with _redis_errors():
            self.r.hset(self._key(user_id), MEMORY_PROFILE_FIELD, json.dumps(profile.to_dict()))
            self.r.sadd(USERS_KEY, user_id)
        logger.debug("Upserted memory profile for %s", user_id)
        return profile

    def get_profile(self, user_id: str) -> Optional[MemoryProfile]:
        data = self._load_json(user_id, MEMORY_PROFILE_FIELD)
        return MemoryProfile.from_dict(data) if data is not None else None

    def get_focus_preferences(self, user_id: str) -> dict[str, Any]:
        return self._load_json(user_id, FOCUS_PREFERENCES_FIELD) or {}

    def set_seasonal_weight(self, user_id: str, seasonal_weight: dict[str, Any]) -> dict[str, Any]:
        """Replace ``focus_preferences.seasonal_weight``; other preference keys are kept."""
        preferences = self.get_focus_preferences(user_id)
        preferences["seasonal_weight"] = seasonal_weight
        with _redis_errors():
            self.r.hset(self._key(user_id), FOCUS_PREFERENCES_FIELD, json.dumps(preferences))
        logger.info("Stored %d seasonal rule(s) for %s", len(seasonal_weight), user_id)
        return preferences
