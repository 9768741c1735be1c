"""Browse, summarize and export a user's raw history entries.

History entries are the records the capture and recommendation flows
persist: ``{id, userId, type, data, createdAt}`` where ``type`` is
"emotion" or "recommendation".
"""

from __future__ import annotations

import csv
import io
import json
import math
from datetime import datetime, timezone
from typing import Any, Iterable

from analytics import compute_average_confidence, compute_emotion_distribution
from events import EmotionEvent, parse_timestamp

DEFAULT_PAGE_SIZE = 20

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _entry_time(entry: dict) -> datetime | None:
    return parse_timestamp(entry.get("createdAt"))


def _entry_emotion(entry: dict) -> str | None:
    data = entry.get("data")
    if isinstance(data, dict):
        return data.get("emotion")
    return None


def filter_history(
    entries: Iterable[dict],
    entry_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    emotion: str | None = None,
) -> list[dict]:
    """Filter history entries by type, date range and emotion.

    Args:
        entries: Raw history entry dicts.
        entry_type: "emotion", "recommendation", or None/"all" for both.
        start: Inclusive lower bound on ``createdAt``.
        end: Inclusive upper bound on ``createdAt``.
        emotion: Keep only entries whose ``data.emotion`` matches.

    Returns:
        The matching entries in their original order.  When a date bound
        is given, entries without a parseable ``createdAt`` are excluded.
    """
    start = parse_timestamp(start) if start is not None else None
    end = parse_timestamp(end) if end is not None else None

    result = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if entry_type and entry_type != "all" and entry.get("type") != entry_type:
            continue
        if emotion and _entry_emotion(entry) != emotion:
            continue
        if start is not None or end is not None:
            ts = _entry_time(entry)
            if ts is None:
                continue
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue
        result.append(entry)
    return result


def sort_history(entries: Iterable[dict]) -> list[dict]:
    """Return entries newest-first; entries without a usable timestamp go last."""
    return sorted(entries, key=lambda e: _entry_time(e) or _OLDEST, reverse=True)


def paginate_history(
    entries: list[dict],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict[str, Any]:
    """Sort entries newest-first and cut out one page.

    Args:
        entries: History entries, already filtered.
        page: 1-based page number; values below 1 become 1.
        limit: Page size; values below 1 become ``DEFAULT_PAGE_SIZE``.

    Returns:
        Dict with keys history (the page) and pagination (total, page,
        limit, hasMore, totalPages).
    """
    page = page if page >= 1 else 1
    limit = limit if limit >= 1 else DEFAULT_PAGE_SIZE

    ordered = sort_history(entries)
    total = len(ordered)
    start_index = (page - 1) * limit
    return {
        "history": ordered[start_index:start_index + limit],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "hasMore": start_index + limit < total,
            "totalPages": math.ceil(total / limit),
        },
    }


def compute_emotion_stats(events: list[EmotionEvent]) -> dict[str, Any]:
    """Summarize detections for a period: count, per-emotion breakdown, mean confidence."""
    return {
        "totalDetections": len(events),
        "emotionBreakdown": compute_emotion_distribution(events),
        "averageConfidence": compute_average_confidence(events),
    }


def _csv_row(entry: dict) -> list[Any]:
    data = entry.get("data") if isinstance(entry.get("data"), dict) else {}
    ts = _entry_time(entry)
    date_str = ts.isoformat() if ts else ""
    if entry.get("type") == "recommendation":
        tracks = data.get("tracks") or []
        names = ";".join(
            str(t.get("name", "")) for t in tracks if isinstance(t, dict)
        )
        return [entry.get("id", ""), "recommendation", date_str, data.get("emotion", ""), "", names]
    return [
        entry.get("id", ""),
        entry.get("type", ""),
        date_str,
        data.get("emotion", ""),
        data.get("confidence", ""),
        "",
    ]


def export_history(entries: list[dict], fmt: str = "json") -> str:
    """Serialize history entries for download.

    Args:
        entries: History entries to export.
        fmt: "json" (pretty-printed array) or "csv" (header
            ``ID,Type,Date,Emotion,Confidence,Tracks``; track names of a
            recommendation are joined with ";").

    Returns:
        The serialized text.

    Raises:
        ValueError: If *fmt* is not "json" or "csv".
    """
    if fmt == "json":
        return json.dumps(entries, indent=2, default=str)
    if fmt != "csv":
        raise ValueError(f"Unsupported export format: {fmt!r}")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["ID", "Type", "Date", "Emotion", "Confidence", "Tracks"])
    for entry in entries:
        if isinstance(entry, dict):
            writer.writerow(_csv_row(entry))
    return buffer.getvalue()
