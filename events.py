"""Strict event records and the parsers that build them.

Upstream producers (the expression classifier and the recommendation
service) persist loosely-typed history entries.  Everything downstream of
this module works on the frozen records defined here, so the analytics
code can assume well-typed input.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

# Canonical order; also the tie-break order for "most common" selections.
EMOTIONS: tuple[str, ...] = (
    "happy",
    "sad",
    "angry",
    "surprised",
    "neutral",
    "fear",
    "disgust",
)


@dataclass(frozen=True)
class EmotionEvent:
    """One completed facial-expression classification."""

    id: str
    user_id: str
    emotion: str
    confidence: float | None
    occurred_at: datetime | None


@dataclass(frozen=True)
class Track:
    """A recommended track.  ``name`` + ``artist`` identify it for ranking."""

    name: str
    artist: str
    id: str | None = None
    album: str | None = None


@dataclass(frozen=True)
class RecommendationEvent:
    """One completed recommendation generation."""

    id: str
    user_id: str
    emotion: str
    tracks: tuple[Track, ...]
    occurred_at: datetime | None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an upstream timestamp into an aware UTC datetime.

    Args:
        value: A ``datetime`` (naive values are read as UTC), an ISO-8601
            string (a trailing ``Z`` is accepted), or a Unix epoch number.

    Returns:
        The instant as a timezone-aware UTC datetime, or None if *value*
        is missing or cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (ValueError, OSError, OverflowError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    try:
        return ts.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # offset pushes the instant past datetime.min / datetime.max
        return None


def _parse_confidence(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return None
    return confidence if math.isfinite(confidence) else None


def _entry_fields(raw: dict) -> tuple[dict, Any]:
    """Split a history entry into its payload dict and its timestamp.

    History entries wrap the payload in ``data``; flat records carry the
    same keys at top level.
    """
    data = raw.get("data")
    if not isinstance(data, dict):
        data = raw
    occurred = raw.get("createdAt")
    if occurred is None:
        occurred = raw.get("created_at")
    if occurred is None:
        occurred = data.get("timestamp")
    return data, occurred


def _normalize_emotion(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    emotion = value.strip().lower()
    return emotion if emotion in EMOTIONS else None


def _parse_track(raw: Any) -> Track | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    artist = raw.get("artist")
    if not isinstance(name, str) or not isinstance(artist, str):
        return None
    if not name or not artist:
        return None
    track_id = raw.get("id")
    album = raw.get("album")
    return Track(
        name=name,
        artist=artist,
        id=str(track_id) if track_id is not None else None,
        album=album if isinstance(album, str) else None,
    )


def parse_emotion_event(raw: Any) -> EmotionEvent | None:
    """Build an ``EmotionEvent`` from a history entry or flat record.

    Args:
        raw: A dict shaped like ``{id, userId, type, data: {emotion,
            confidence}, createdAt}`` or with those keys at top level.

    Returns:
        The parsed event, or None when *raw* is not a dict or its emotion
        is missing or not one of ``EMOTIONS``.  A missing or unparseable
        timestamp does not drop the record; ``occurred_at`` is None.
    """
    if not isinstance(raw, dict):
        logger.warning("Dropping emotion record that is not an object: %r", type(raw).__name__)
        return None

    data, occurred = _entry_fields(raw)
    emotion = _normalize_emotion(data.get("emotion"))
    if emotion is None:
        logger.warning(
            "Dropping emotion record %s with unknown emotion %r",
            raw.get("id"), data.get("emotion"),
        )
        return None

    occurred_at = parse_timestamp(occurred)
    if occurred_at is None:
        logger.warning("Emotion record %s has no usable timestamp", raw.get("id"))

    return EmotionEvent(
        id=str(raw.get("id", "")),
        user_id=str(raw.get("userId", data.get("userId", ""))),
        emotion=emotion,
        confidence=_parse_confidence(data.get("confidence")),
        occurred_at=occurred_at,
    )


def parse_recommendation_event(raw: Any) -> RecommendationEvent | None:
    """Build a ``RecommendationEvent`` from a history entry or flat record.

    Tracks missing a ``name`` or ``artist`` are skipped; the rest keep
    their upstream order.

    Returns:
        The parsed event, or None when *raw* is not a dict or its emotion
        is missing or unknown.
    """
    if not isinstance(raw, dict):
        logger.warning(
            "Dropping recommendation record that is not an object: %r", type(raw).__name__
        )
        return None

    data, occurred = _entry_fields(raw)
    emotion = _normalize_emotion(data.get("emotion"))
    if emotion is None:
        logger.warning(
            "Dropping recommendation record %s with unknown emotion %r",
            raw.get("id"), data.get("emotion"),
        )
        return None

    raw_tracks = data.get("tracks")
    tracks: list[Track] = []
    if isinstance(raw_tracks, list):
        for item in raw_tracks:
            track = _parse_track(item)
            if track is not None:
                tracks.append(track)

    occurred_at = parse_timestamp(occurred)
    if occurred_at is None:
        logger.warning("Recommendation record %s has no usable timestamp", raw.get("id"))

    return RecommendationEvent(
        id=str(raw.get("id", "")),
        user_id=str(raw.get("userId", data.get("userId", ""))),
        emotion=emotion,
        tracks=tuple(tracks),
        occurred_at=occurred_at,
    )


def parse_history_entry(raw: Any) -> EmotionEvent | RecommendationEvent | None:
    """Dispatch a history entry to the parser matching its ``type``."""
    entry_type = raw.get("type") if isinstance(raw, dict) else None
    if entry_type == "emotion":
        return parse_emotion_event(raw)
    if entry_type == "recommendation":
        return parse_recommendation_event(raw)
    logger.warning("Dropping history entry with unknown type %r", entry_type)
    return None
