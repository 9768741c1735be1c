"""Shared test helpers for mood analytics tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from datetime import datetime, timezone

from events import EmotionEvent, RecommendationEvent, Track

FIXED_NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)  # a Saturday


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_emotion_entry(
    entry_id: str,
    emotion: str,
    created_at: str | None,
    user_id: str = "user-1",
    confidence: float = 0.9,
) -> dict:
    """Build a raw emotion history entry as the capture flow stores it."""
    return {
        "id": entry_id,
        "userId": user_id,
        "type": "emotion",
        "data": {"emotion": emotion, "confidence": confidence},
        "createdAt": created_at,
    }


def make_recommendation_entry(
    entry_id: str,
    emotion: str,
    tracks: list[tuple[str, str]],
    created_at: str | None,
    user_id: str = "user-1",
) -> dict:
    """Build a raw recommendation history entry from (name, artist) pairs."""
    return {
        "id": entry_id,
        "userId": user_id,
        "type": "recommendation",
        "data": {
            "emotion": emotion,
            "tracks": [
                {"id": f"t-{i}", "name": name, "artist": artist, "album": "Album"}
                for i, (name, artist) in enumerate(tracks)
            ],
        },
        "createdAt": created_at,
    }


def emotion_event(
    emotion: str,
    occurred_at: datetime | None,
    event_id: str = "e",
    confidence: float | None = 0.9,
) -> EmotionEvent:
    return EmotionEvent(
        id=event_id,
        user_id="user-1",
        emotion=emotion,
        confidence=confidence,
        occurred_at=occurred_at,
    )


def emotion_events_from_counts(
    counts: dict[str, int],
    occurred_at: datetime | None = None,
) -> list[EmotionEvent]:
    """Expand ``{emotion: n}`` into n events each, all at *occurred_at*."""
    when = occurred_at or utc(2024, 1, 15, 10, 0)
    events = []
    for emotion, n in counts.items():
        for i in range(n):
            events.append(emotion_event(emotion, when, event_id=f"{emotion}-{i}"))
    return events


def recommendation_event(
    tracks: list[tuple[str, str]],
    occurred_at: datetime | None = None,
    emotion: str = "happy",
    event_id: str = "r",
) -> RecommendationEvent:
    return RecommendationEvent(
        id=event_id,
        user_id="user-1",
        emotion=emotion,
        tracks=tuple(Track(name=n, artist=a) for n, a in tracks),
        occurred_at=occurred_at,
    )
