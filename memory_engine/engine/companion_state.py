"""Companion state provider backed by a Redis hash per user.

  companion:{user}   joy | stress | fatigue | affection | mood | name
"""

from __future__ import annotations

import logging
from typing import Optional

import redis

from memory_engine.config.settings import DEFAULT_COMPANION_NAME
from memory_engine.engine.task_store import _get_redis, _redis_errors
from memory_engine.models.profile import EmotionalState

logger = logging.getLogger(__name__)

COMPANION_PREFIX = "companion:"

COMPANION_MOODS = ("ambitious", "medium", "simple", "low-cognitive")
DEFAULT_COMPANION_MOOD = "medium"


class RedisCompanionStateProvider:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{COMPANION_PREFIX}{user_id}"

    def set_state(
        self,
        user_id: str,
        emotional_state: EmotionalState | None = None,
        mood: str | None = None,
        name: str | None = None,
    ) -> None:
        mapping: dict[str, str] = {}
        if emotional_state is not None:
            mapping.update({k: str(v) for k, v in emotional_state.to_dict().items()})
        if mood is not None:
            mapping["mood"] = mood
        if name is not None:
            mapping["name"] = name
        if mapping:
            with _redis_errors():
                self.r.hset(self._key(user_id), mapping=mapping)

    def get_emotional_state(self, user_id: str) -> EmotionalState:
        with _redis_errors():
            data = self.r.hgetall(self._key(user_id))
        return EmotionalState.from_dict(data)

    def get_companion_mood(self, user_id: str) -> Optional[str]:
        with _redis_errors():
            mood = self.r.hget(self._key(user_id), "mood")
        if mood and mood not in COMPANION_MOODS:
            logger.debug("Ignoring unknown companion mood %r for %s", mood, user_id)
            return None
        return mood or None

    def get_companion_name(self, user_id: str) -> str:
        with _redis_errors():
            name = self.r.hget(self._key(user_id), "name")
        return name or DEFAULT_COMPANION_NAME
