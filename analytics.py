"""Emotion analytics aggregation for the mood dashboard.

Turns a user's emotion-detection and music-recommendation events into one
analytics snapshot: distribution, sentiment, daily and weekly trends,
activity patterns and track rankings.  Used by both the CLI
(mood_summary.py) and the web API (app.py).

Every bucketing step (day keys, week keys, hour of day, day of week) uses
UTC.  All functions here are pure; nothing is cached between calls.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Any, Iterable

from events import EMOTIONS, EmotionEvent, RecommendationEvent

if TYPE_CHECKING:
    from event_store import EventStore

logger = logging.getLogger(__name__)

DEFAULT_TIME_RANGE_DAYS = 30
POPULAR_TRACKS_LIMIT = 10

POSITIVE_EMOTIONS = frozenset({"happy", "surprised"})
NEGATIVE_EMOTIONS = frozenset({"sad", "angry", "fear", "disgust"})

# Index 0 is Sunday, matching dayOfWeekDistribution.
DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


# ---------------------------------------------------------------------------
# Time window
# ---------------------------------------------------------------------------

def normalize_time_range(value: Any, default: int = DEFAULT_TIME_RANGE_DAYS) -> int:
    """Coerce a caller-supplied window size into a positive day count.

    Args:
        value: The raw ``timeRange`` parameter: an int, a numeric string,
            or anything else.
        default: Value used when *value* is missing, non-numeric, or not
            positive.

    Returns:
        A positive number of days.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        days = int(str(value).strip())
    except (TypeError, ValueError):
        logger.warning("Invalid time range %r, using %d days", value, default)
        return default
    if days < 1:
        logger.warning("Non-positive time range %d, using %d days", days, default)
        return default
    return days


def resolve_time_window(
    window_days: int,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Turn a day count into an inclusive ``[start, end]`` UTC range.

    The range covers whole calendar days: *end* is the last microsecond of
    today and *start* is midnight ``window_days - 1`` days earlier, so a
    window of 1 means "today".  The count is not validated; zero or a
    negative number yields an inverted range, which simply selects no
    events.

    Args:
        window_days: Number of calendar days to cover.
        now: The current instant.  Defaults to ``datetime.now(timezone.utc)``;
            pass a fixed value for deterministic results.

    Returns:
        A (start, end) tuple of timezone-aware UTC datetimes.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(timezone.utc).date()
    end = datetime.combine(today, time.max, tzinfo=timezone.utc)
    start = datetime.combine(
        today - timedelta(days=window_days - 1), time.min, tzinfo=timezone.utc
    )
    return start, end


# ---------------------------------------------------------------------------
# Date bucketing
# ---------------------------------------------------------------------------

def _utc(ts: datetime) -> datetime | None:
    """Return *ts* in UTC, or None when the conversion leaves the datetime range."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    try:
        return ts.astimezone(timezone.utc)
    except OverflowError:
        return None


def _sunday_of(d: date) -> date | None:
    # date.weekday(): Monday=0 .. Sunday=6
    try:
        return d - timedelta(days=(d.weekday() + 1) % 7)
    except OverflowError:
        # the first days of year 1 have no representable Sunday before them
        return None


def day_key(ts: datetime | None) -> str | None:
    """Return the UTC calendar day of *ts* as ``YYYY-MM-DD``, or None."""
    utc_ts = _utc(ts) if ts is not None else None
    if utc_ts is None:
        return None
    return utc_ts.date().isoformat()


def week_key(ts: datetime | None) -> str | None:
    """Return the Sunday that starts the UTC week of *ts*, or None."""
    utc_ts = _utc(ts) if ts is not None else None
    if utc_ts is None:
        return None
    sunday = _sunday_of(utc_ts.date())
    return sunday.isoformat() if sunday is not None else None


def _day_of_week(ts: datetime) -> int:
    """0=Sunday .. 6=Saturday.  *ts* must already be in UTC."""
    return (ts.weekday() + 1) % 7


# ---------------------------------------------------------------------------
# Distribution and sentiment
# ---------------------------------------------------------------------------

def _empty_distribution() -> dict[str, int]:
    return {emotion: 0 for emotion in EMOTIONS}


def compute_emotion_distribution(events: Iterable[EmotionEvent]) -> dict[str, int]:
    """Count events per emotion.

    Args:
        events: Emotion events.  Records whose emotion is not one of the
            seven categories are ignored.

    Returns:
        Dict with all seven emotion keys in canonical order, zero-filled.
    """
    distribution = _empty_distribution()
    for event in events:
        if event.emotion in distribution:
            distribution[event.emotion] += 1
    return distribution


def most_common_emotion(distribution: dict[str, int]) -> str:
    """Pick the arg-max of a distribution with a canonical-order tie-break.

    Keys are scanned in ``EMOTIONS`` order and a later key replaces the
    current pick only when its count is strictly greater, so ties go to
    the earlier emotion.

    Returns:
        The winning emotion, or "neutral" when every count is zero.
    """
    best = "neutral"
    best_count = 0
    for emotion in EMOTIONS:
        count = distribution.get(emotion, 0)
        if count > best_count:
            best = emotion
            best_count = count
    return best


def compute_sentiment_analysis(events: list[EmotionEvent]) -> dict[str, int]:
    """Share of positive, negative and neutral events as whole percentages.

    Each percentage is rounded on its own, so the three may sum to 99 or
    101.  With no events the denominator is 1 and all three are 0.

    Returns:
        Dict with keys positive, negative, neutral.
    """
    positive = 0
    negative = 0
    neutral = 0
    for event in events:
        if event.emotion in POSITIVE_EMOTIONS:
            positive += 1
        elif event.emotion in NEGATIVE_EMOTIONS:
            negative += 1
        else:
            neutral += 1

    total = len(events) or 1
    return {
        "positive": round(positive / total * 100),
        "negative": round(negative / total * 100),
        "neutral": round(neutral / total * 100),
    }


def compute_average_confidence(events: Iterable[EmotionEvent]) -> float:
    """Mean classifier confidence, rounded to 2dp; 0 when nothing is a finite number."""
    values = [
        e.confidence for e in events
        if e.confidence is not None and math.isfinite(e.confidence)
    ]
    if not values:
        return 0
    return round(sum(values) / len(values), 2)


# ---------------------------------------------------------------------------
# Trend bucketing
# ---------------------------------------------------------------------------

def _bucket_by(
    events: Iterable[EmotionEvent],
    key_fn,
) -> dict[str, dict[str, Any]]:
    """Group events into ``{key: {count, emotions}}`` buckets.

    Events for which *key_fn* returns None are skipped.
    """
    buckets: dict[str, dict[str, Any]] = {}
    for event in events:
        key = key_fn(event.occurred_at)
        if key is None:
            continue
        if key not in buckets:
            buckets[key] = {"count": 0, "emotions": _empty_distribution()}
        buckets[key]["count"] += 1
        if event.emotion in buckets[key]["emotions"]:
            buckets[key]["emotions"][event.emotion] += 1
    return buckets


def compute_daily_trends(events: Iterable[EmotionEvent]) -> list[dict[str, Any]]:
    """Aggregate emotion events per UTC calendar day.

    Args:
        events: Emotion events in any order.  Events without a timestamp
            are left out.

    Returns:
        List of dicts (date, count, primaryEmotion), one per day with at
        least one event, sorted ascending by date.
    """
    buckets = _bucket_by(events, day_key)
    return [
        {
            "date": key,
            "count": buckets[key]["count"],
            "primaryEmotion": most_common_emotion(buckets[key]["emotions"]),
        }
        for key in sorted(buckets)
    ]


def compute_weekly_data(events: Iterable[EmotionEvent]) -> list[dict[str, Any]]:
    """Aggregate emotion events per Sunday-anchored UTC week.

    Returns:
        List of dicts (week, count, emotions, primaryEmotion) sorted
        ascending by the week's starting Sunday.  ``emotions`` always
        holds all seven keys.
    """
    buckets = _bucket_by(events, week_key)
    return [
        {
            "week": key,
            "count": buckets[key]["count"],
            "emotions": buckets[key]["emotions"],
            "primaryEmotion": most_common_emotion(buckets[key]["emotions"]),
        }
        for key in sorted(buckets)
    ]


def count_active_days(events: Iterable[EmotionEvent]) -> int:
    """Number of distinct UTC days with at least one timestamped event."""
    return len({key for key in (day_key(e.occurred_at) for e in events) if key})


# ---------------------------------------------------------------------------
# Activity patterns
# ---------------------------------------------------------------------------

def compute_activity_patterns(
    timestamps: Iterable[datetime | None],
) -> dict[str, Any]:
    """Cross-tabulate activity by UTC hour of day and day of week.

    Args:
        timestamps: Event instants of any kind.  None entries are skipped.

    Returns:
        Dict with keys:
            - hourlyDistribution: 24 ints, index = hour.
            - dayOfWeekDistribution: 7 ints, index 0 = Sunday.
            - peakActivityHour: index of the first maximum (0 when empty).
            - peakActivityDay: name of the first maximum day ("Sunday"
              when empty).
    """
    hourly = [0] * 24
    weekday = [0] * 7

    for ts in timestamps:
        utc_ts = _utc(ts) if ts is not None else None
        if utc_ts is None:
            continue
        hourly[utc_ts.hour] += 1
        weekday[_day_of_week(utc_ts)] += 1

    return {
        "hourlyDistribution": hourly,
        "dayOfWeekDistribution": weekday,
        "peakActivityHour": hourly.index(max(hourly)),
        "peakActivityDay": DAY_NAMES[weekday.index(max(weekday))],
    }


# ---------------------------------------------------------------------------
# Music preferences
# ---------------------------------------------------------------------------

def compute_music_preferences(
    events: Iterable[RecommendationEvent],
    limit: int = POPULAR_TRACKS_LIMIT,
) -> dict[str, Any]:
    """Rank recommended tracks by how often they were recommended.

    Tracks are keyed by ``name-artist``.  Sorting is stable, so equal
    counts keep the order in which the tracks were first seen.

    Args:
        events: Recommendation events.
        limit: Number of tracks to return.

    Returns:
        Dict with keys:
            - genresByEmotion: all seven emotions mapped to an empty list
              (no genre metadata is tracked).
            - popularTracks: up to *limit* dicts (name, artist, playCount),
              descending by playCount.
    """
    counts: dict[str, dict[str, Any]] = {}
    for event in events:
        for track in event.tracks:
            key = f"{track.name}-{track.artist}"
            if key not in counts:
                counts[key] = {"name": track.name, "artist": track.artist, "playCount": 0}
            counts[key]["playCount"] += 1

    ranked = sorted(counts.values(), key=lambda t: t["playCount"], reverse=True)
    return {
        "genresByEmotion": {emotion: [] for emotion in EMOTIONS},
        "popularTracks": ranked[:limit],
    }


# ---------------------------------------------------------------------------
# Snapshot assembly
# ---------------------------------------------------------------------------

def build_analytics_snapshot(
    emotion_events: list[EmotionEvent],
    recommendation_events: list[RecommendationEvent],
    time_range_days: int = DEFAULT_TIME_RANGE_DAYS,
) -> dict[str, Any]:
    """Compose the full analytics snapshot from already-fetched events.

    Pure: the same inputs always give an identical result, and the input
    lists are not modified.

    Args:
        emotion_events: Emotion events inside the window, any order.
        recommendation_events: Recommendation events inside the window.
        time_range_days: Requested window length, used for the per-day
            average.  Normalized with ``normalize_time_range``.

    Returns:
        Dict with keys totalAnalyses, totalRecommendations,
        averageAnalysesPerDay, averagePerRequestedWindowDay,
        averagePerActiveDay, averageConfidence, timeRangeDays,
        emotionDistribution, mostCommonEmotion, sentimentAnalysis,
        weeklyData, dailyTrends, musicPreferences, activityPatterns.
    """
    days = normalize_time_range(time_range_days)
    total_analyses = len(emotion_events)
    distribution = compute_emotion_distribution(emotion_events)
    active_days = count_active_days(emotion_events)

    per_window_day = round(total_analyses / days, 2)
    per_active_day = round(total_analyses / active_days, 2) if active_days else 0

    all_timestamps = [e.occurred_at for e in emotion_events]
    all_timestamps.extend(r.occurred_at for r in recommendation_events)

    return {
        "totalAnalyses": total_analyses,
        "totalRecommendations": len(recommendation_events),
        "averageAnalysesPerDay": per_window_day,
        "averagePerRequestedWindowDay": per_window_day,
        "averagePerActiveDay": per_active_day,
        "averageConfidence": compute_average_confidence(emotion_events),
        "timeRangeDays": days,
        "emotionDistribution": distribution,
        "mostCommonEmotion": most_common_emotion(distribution),
        "sentimentAnalysis": compute_sentiment_analysis(emotion_events),
        "weeklyData": compute_weekly_data(emotion_events),
        "dailyTrends": compute_daily_trends(emotion_events),
        "musicPreferences": compute_music_preferences(recommendation_events),
        "activityPatterns": compute_activity_patterns(all_timestamps),
    }


def build_user_analytics(
    store: EventStore,
    user_id: str,
    time_range: Any = DEFAULT_TIME_RANGE_DAYS,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One-call entry point: resolve the window, fetch events, build the snapshot.

    Args:
        store: An event store exposing ``fetch_emotion_events`` and
            ``fetch_recommendation_events`` (see event_store.py).
        user_id: Opaque identifier scoping the query.
        time_range: Raw window size; invalid values fall back to 30 days.
        now: Fixed "now" for deterministic windows.

    Returns:
        The snapshot dict from ``build_analytics_snapshot``.

    Raises:
        event_store.EventStoreError: If the store cannot be read.
    """
    days = normalize_time_range(time_range)
    start, end = resolve_time_window(days, now=now)
    emotion_events = list(store.fetch_emotion_events(user_id, start, end))
    recommendation_events = list(store.fetch_recommendation_events(user_id, start, end))
    logger.info(
        "Building analytics for user %s over %d days: %d analyses, %d recommendations",
        user_id, days, len(emotion_events), len(recommendation_events),
    )
    return build_analytics_snapshot(emotion_events, recommendation_events, days)


# ---------------------------------------------------------------------------
# CLI helpers (used by mood_summary.py)
# ---------------------------------------------------------------------------

def save_analytics_files(
    snapshot: dict[str, Any],
    output_dir: str = "mood_analytics",
) -> None:
    """Write the snapshot as JSON plus CSV tables to *output_dir*.

    Creates the output directory if it doesn't exist and writes
    snapshot.json, daily_trends.csv, weekly_data.csv (one column per
    emotion) and popular_tracks.csv.

    Args:
        snapshot: Dict returned by ``build_analytics_snapshot``.
        output_dir: Directory path for output files.  Defaults to
            "mood_analytics".
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/snapshot.json", "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2)

    with open(f"{output_dir}/daily_trends.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["date", "count", "primaryEmotion"])
        writer.writeheader()
        writer.writerows(snapshot["dailyTrends"])

    with open(f"{output_dir}/weekly_data.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(
            f, fieldnames=["week", "count", "primaryEmotion", *EMOTIONS]
        )
        writer.writeheader()
        for row in snapshot["weeklyData"]:
            writer.writerow(
                {
                    "week": row["week"],
                    "count": row["count"],
                    "primaryEmotion": row["primaryEmotion"],
                    **row["emotions"],
                }
            )

    with open(f"{output_dir}/popular_tracks.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["name", "artist", "playCount"])
        writer.writeheader()
        writer.writerows(snapshot["musicPreferences"]["popularTracks"])


def print_summary_report(snapshot: dict[str, Any]) -> None:
    """Print a human-readable summary of a snapshot to stdout."""
    print(f"\n{'=' * 60}")
    print("Mood Analytics Summary")
    print(f"{'=' * 60}")
    print(f"Window: last {snapshot['timeRangeDays']} days")
    print(f"Total Analyses: {snapshot['totalAnalyses']:,}")
    print(f"Total Recommendations: {snapshot['totalRecommendations']:,}")
    print(f"Avg per Requested Day: {snapshot['averagePerRequestedWindowDay']:.2f}")
    print(f"Avg per Active Day: {snapshot['averagePerActiveDay']:.2f}")
    print(f"Average Confidence: {snapshot['averageConfidence']:.2f}")
    print(f"Most Common Emotion: {snapshot['mostCommonEmotion']}")

    sentiment = snapshot["sentimentAnalysis"]
    print(
        f"Sentiment: {sentiment['positive']}% positive, "
        f"{sentiment['negative']}% negative, {sentiment['neutral']}% neutral"
    )

    print("\nEmotion Distribution:")
    for emotion, count in snapshot["emotionDistribution"].items():
        print(f"  {emotion:<10} {count:,}")

    activity = snapshot["activityPatterns"]
    print(
        f"\nPeak Activity: {activity['peakActivityDay']} "
        f"at {activity['peakActivityHour']:02d}:00 UTC"
    )

    tracks = snapshot["musicPreferences"]["popularTracks"]
    if tracks:
        print("\nTop Tracks:")
        for i, track in enumerate(tracks, 1):
            print(f"  {i:>2}. {track['name']} - {track['artist']} ({track['playCount']})")

    print(f"{'=' * 60}")
