"""Read-only access to a user's stored emotion and recommendation events.

The analytics engine only needs two range queries.  ``EventStore`` names
that interface; ``InMemoryEventStore`` serves a list of history entries
and ``JsonFileEventStore`` serves a JSON export of them from disk.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from events import (
    EmotionEvent,
    RecommendationEvent,
    parse_emotion_event,
    parse_recommendation_event,
)

logger = logging.getLogger(__name__)


class EventStoreError(Exception):
    """The event store could not be read."""


class EventStore(Protocol):
    def fetch_emotion_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[EmotionEvent]: ...

    def fetch_recommendation_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[RecommendationEvent]: ...

    def list_entries(self, user_id: str) -> list[dict]: ...


def _in_range(ts: datetime | None, start: datetime, end: datetime) -> bool:
    return ts is not None and start <= ts <= end


class InMemoryEventStore:
    """Serve range queries over a fixed list of raw history entries.

    Entries look like ``{id, userId, type, data, createdAt}``.  They are
    parsed on every read and the list itself is never modified.
    """

    def __init__(self, entries: list[dict] | None = None) -> None:
        self._entries: tuple[dict, ...] = tuple(entries or ())

    def __len__(self) -> int:
        return len(self._entries)

    def user_ids(self) -> list[str]:
        """Distinct user ids present in the store, sorted."""
        return sorted(
            {str(e.get("userId", "")) for e in self._entries if isinstance(e, dict)}
        )

    def list_entries(self, user_id: str) -> list[dict]:
        """Return the raw history entries owned by *user_id*."""
        return [
            e for e in self._entries
            if isinstance(e, dict) and str(e.get("userId", "")) == user_id
        ]

    def _entries_of_type(self, user_id: str, entry_type: str) -> list[dict]:
        return [e for e in self.list_entries(user_id) if e.get("type") == entry_type]

    def fetch_emotion_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[EmotionEvent]:
        """Emotion events of *user_id* with ``start <= occurred_at <= end``."""
        events = []
        for raw in self._entries_of_type(user_id, "emotion"):
            event = parse_emotion_event(raw)
            if event is not None and _in_range(event.occurred_at, start, end):
                events.append(event)
        return events

    def fetch_recommendation_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[RecommendationEvent]:
        """Recommendation events of *user_id* with ``start <= occurred_at <= end``."""
        events = []
        for raw in self._entries_of_type(user_id, "recommendation"):
            event = parse_recommendation_event(raw)
            if event is not None and _in_range(event.occurred_at, start, end):
                events.append(event)
        return events


def load_history_entries(path: str | Path) -> list[dict]:
    """Load a JSON array of history entries from *path*.

    Raises:
        EventStoreError: If the file is missing, unreadable, not valid
            JSON, or not a JSON array.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Any = json.load(f)
    except FileNotFoundError as exc:
        raise EventStoreError(f"History file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise EventStoreError(f"Invalid JSON in history file {path}: {exc}") from exc
    except OSError as exc:
        raise EventStoreError(f"Cannot read history file {path}: {exc}") from exc

    if not isinstance(data, list):
        raise EventStoreError(f"History file {path} must contain a JSON array")

    logger.info("Loaded %d history entries from %s", len(data), path)
    return data


class JsonFileEventStore(InMemoryEventStore):
    """An ``InMemoryEventStore`` populated from a history export file.

    The file is read once, on construction.

    Raises:
        EventStoreError: See ``load_history_entries``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(load_history_entries(self.path))
