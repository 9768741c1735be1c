"""FastAPI service for the mood analytics dashboard.

Serves the analytics snapshot and the raw history of a user from a
history export file.  The loaded store is cached (1-hour TTL); snapshots
are recomputed on every request.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import PlainTextResponse

from analytics import DEFAULT_TIME_RANGE_DAYS, build_user_analytics, resolve_time_window
from event_store import EventStoreError, JsonFileEventStore
from events import parse_timestamp
from history import (
    compute_emotion_stats,
    export_history,
    filter_history,
    paginate_history,
    sort_history,
)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
HISTORY_PATH = Path(
    os.environ.get("MOODIFY_HISTORY_PATH", Path(__file__).parent / "history.json")
)
CACHE_TTL_SECONDS = 3600  # 1 hour

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Mood Analytics Dashboard")

# ---------------------------------------------------------------------------
# Thread-safe store cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "store": None,
    "built_at": 0.0,
}


def _load_store() -> JsonFileEventStore:
    """Read the history file, mapping store failures to HTTP errors."""
    try:
        return JsonFileEventStore(HISTORY_PATH)
    except EventStoreError as exc:
        if isinstance(exc.__cause__, FileNotFoundError):
            raise HTTPException(status_code=503, detail="History file not found") from exc
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _get_store(force_refresh: bool = False) -> JsonFileEventStore:
    """Return the cached event store, reloading if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["store"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["store"]

    store = _load_store()

    with _cache_lock:
        _cache["store"] = store
        _cache["built_at"] = time.monotonic()

    return store


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def _parse_date_param(name: str, value: str | None):
    if value is None:
        return None
    ts = parse_timestamp(value)
    if ts is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value!r}")
    return ts


def _parse_int_param(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/analytics")
def api_analytics(
    timeRange: str | None = None,
    x_user_id: str | None = Header(default=None),
):
    """Return the analytics snapshot for the calling user.

    ``timeRange`` is taken as a raw string so that invalid values fall
    back to the default window instead of failing validation.
    """
    user_id = _require_user(x_user_id)
    store = _get_store()
    return build_user_analytics(
        store,
        user_id,
        timeRange if timeRange is not None else DEFAULT_TIME_RANGE_DAYS,
        now=_now(),
    )


@app.get("/api/history")
def api_history(
    type: str | None = None,
    emotion: str | None = None,
    startDate: str | None = None,
    endDate: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    x_user_id: str | None = Header(default=None),
):
    """Return one page of the calling user's history, newest first."""
    user_id = _require_user(x_user_id)
    start = _parse_date_param("startDate", startDate)
    end = _parse_date_param("endDate", endDate)
    entries = filter_history(
        _get_store().list_entries(user_id),
        entry_type=type,
        start=start,
        end=end,
        emotion=emotion,
    )
    return paginate_history(
        entries,
        page=_parse_int_param(page, 1),
        limit=_parse_int_param(limit, 20),
    )


@app.get("/api/history/export")
def api_history_export(
    format: str = "json",
    x_user_id: str | None = Header(default=None),
):
    """Download the calling user's full history as JSON or CSV."""
    user_id = _require_user(x_user_id)
    entries = sort_history(_get_store().list_entries(user_id))
    try:
        body = export_history(entries, format)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    media_type = "text/csv" if format == "csv" else "application/json"
    return PlainTextResponse(content=body, media_type=media_type)


@app.get("/api/history/stats")
def api_history_stats(
    startDate: str | None = None,
    endDate: str | None = None,
    x_user_id: str | None = Header(default=None),
):
    """Detection count, per-emotion breakdown and mean confidence for a period.

    Missing bounds default to the last ``DEFAULT_TIME_RANGE_DAYS`` days.
    """
    user_id = _require_user(x_user_id)
    default_start, default_end = resolve_time_window(DEFAULT_TIME_RANGE_DAYS, now=_now())
    start = _parse_date_param("startDate", startDate) or default_start
    end = _parse_date_param("endDate", endDate) or default_end
    events = _get_store().fetch_emotion_events(user_id, start, end)
    return compute_emotion_stats(events)


@app.get("/api/refresh")
def api_refresh():
    """Force the history file to be re-read."""
    store = _get_store(force_refresh=True)
    return {
        "status": "refreshed",
        "entries": len(store),
    }
