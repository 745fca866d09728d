"""Domino analyzers: estimate how many other tasks each task unlocks.

Two implementations share the ``rank_unlocks(tasks) -> {task_id: count}``
interface:

- KeywordDominoAnalyzer: in-process, title/keyword heuristics.
- HttpDominoAnalyzer: delegates to a remote analysis service.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from memory_engine.config.settings import DOMINO_ANALYZER_URL, DOMINO_TIMEOUT_SECONDS
from memory_engine.errors import DominoAnalyzerError
from memory_engine.models.task import Task

logger = logging.getLogger(__name__)

BLOCKING_VERBS = (
    "create", "build", "design", "develop", "write", "draft", "prepare",
    "setup", "configure", "install", "research", "analyze", "plan",
)
DEPENDENCY_PHRASES = ("after", "once", "when", "following", "depends on")
STOP_WORDS = re.compile(r"^(the|and|or|but|for|with|from|to|in|on|at|by)$", re.IGNORECASE)

# prerequisite verb → verbs of tasks that typically follow it
PREREQUISITE_PATTERNS: dict[str, tuple[str, ...]] = {
    "setup": ("configure", "use", "run", "test"),
    "create": ("edit", "update", "modify", "review", "share"),
    "design": ("implement", "build", "develop"),
    "research": ("decide", "plan", "choose"),
    "write": ("review", "edit", "publish", "send"),
    "plan": ("execute", "implement", "start"),
}

KEYWORD_OVERLAP_THRESHOLD = 0.4
SAME_CATEGORY_CONFIDENCE = 0.5
RELATED_UNLOCK_CONFIDENCE = 0.5


class DominoAnalyzer(Protocol):
    def rank_unlocks(self, tasks: list[Task]) -> dict[str, int]: ...


@dataclass
class Relationship:
    kind: Optional[str]     # blocker | prerequisite | related | None
    confidence: float

    @property
    def unlocks(self) -> bool:
        if self.kind in ("blocker", "prerequisite"):
            return True
        return self.kind == "related" and self.confidence > RELATED_UNLOCK_CONFIDENCE


def _title_components(title: str) -> tuple[list[str], list[str]]:
    """Split a title into (blocking verbs present, candidate nouns)."""
    lower = title.lower()
    verbs = [verb for verb in BLOCKING_VERBS if verb in lower]
    nouns = [
        word for word in title.split()
        if len(word) > 3 and word.lower() not in BLOCKING_VERBS and not STOP_WORDS.match(word)
    ]
    return verbs, nouns


def keyword_overlap(first: list[str], second: list[str]) -> float:
    """Jaccard overlap of two keyword lists, case-insensitive."""
    if not first or not second:
        return 0.0
    a = {k.lower() for k in first}
    b = {k.lower() for k in second}
    return len(a & b) / len(a | b)


def detect_relationship(task: Task, other: Task) -> Relationship:
    """How ``other`` depends on ``task``."""
    other_lower = other.title.lower()

    if any(phrase in other_lower for phrase in DEPENDENCY_PHRASES):
        if any(len(word) > 3 and word in other_lower for word in task.title.lower().split()):
            return Relationship("blocker", 0.9)

    verbs, nouns = _title_components(task.title)
    other_verbs, other_nouns = _title_components(other.title)
    for prereq, followups in PREREQUISITE_PATTERNS.items():
        if prereq in verbs and any(v in followups for v in other_verbs):
            shared = [
                n for n in nouns
                if any(n.lower() in m.lower() or m.lower() in n.lower() for m in other_nouns)
            ]
            if shared:
                return Relationship("prerequisite", 0.8)

    if task.keywords and other.keywords:
        overlap = keyword_overlap(task.keywords, other.keywords)
        if overlap > KEYWORD_OVERLAP_THRESHOLD:
            return Relationship("related", overlap)

    if task.category and other.category and task.category == other.category:
        return Relationship("related", SAME_CATEGORY_CONFIDENCE)

    return Relationship(None, 0.0)


class KeywordDominoAnalyzer:
    """Counts, within the batch, the tasks each task blocks or is a prerequisite for."""

    def rank_unlocks(self, tasks: list[Task]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for task in tasks:
            unlocked = {
                other.task_id
                for other in tasks
                if other.task_id != task.task_id and detect_relationship(task, other).unlocks
            }
            counts[task.task_id] = len(unlocked)
        return counts


class HttpDominoAnalyzer:
    """Remote analyzer: POST {"tasks": [...]} → {"unlocks": {id: count}}."""

    def __init__(
        self,
        url: str,
        timeout: float = DOMINO_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    def _payload(self, tasks: list[Task]) -> dict:
        return {
            "tasks": [
                {
                    "id": t.task_id,
                    "title": t.title,
                    "category": t.category,
                    "keywords": list(t.keywords),
                }
                for t in tasks
            ]
        }

    def rank_unlocks(self, tasks: list[Task]) -> dict[str, int]:
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            resp = client.post(self.url, json=self._payload(tasks))
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise DominoAnalyzerError(f"{type(exc).__name__}: {exc}")
        except ValueError:
            raise DominoAnalyzerError("response body is not JSON")
        finally:
            if self._client is None:
                client.close()

        unlocks = body.get("unlocks") if isinstance(body, dict) else None
        if not isinstance(unlocks, dict):
            raise DominoAnalyzerError("response is missing 'unlocks'")
        try:
            return {str(task_id): int(count) for task_id, count in unlocks.items()}
        except (TypeError, ValueError):
            raise DominoAnalyzerError("unlock counts must be integers")


def get_domino_analyzer(url: str = DOMINO_ANALYZER_URL) -> DominoAnalyzer:
    if url:
        logger.info("Using remote domino analyzer at %s", url)
        return HttpDominoAnalyzer(url)
    return KeywordDominoAnalyzer()
