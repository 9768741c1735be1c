"""Shared fixtures for mood analytics tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from event_store import InMemoryEventStore
from helpers import make_emotion_entry, make_recommendation_entry


def _sample_entries() -> list[dict]:
    """A small history for two users spread over three January days."""
    return [
        make_emotion_entry("e1", "happy", "2024-01-15T10:30:00Z", confidence=0.85),
        make_emotion_entry("e2", "sad", "2024-01-14T15:20:00Z", confidence=0.78),
        make_emotion_entry("e3", "angry", "2024-01-13T09:45:00Z", confidence=0.82),
        make_emotion_entry("e4", "happy", "2024-01-15T18:00:00Z", confidence=0.91),
        make_recommendation_entry(
            "r1", "happy", [("Song A", "Artist 1"), ("Song B", "Artist 2")],
            "2024-01-15T10:31:00Z",
        ),
        make_recommendation_entry(
            "r2", "sad", [("Song A", "Artist 1")], "2024-01-14T15:21:00Z",
        ),
        make_emotion_entry("x1", "neutral", "2024-01-15T11:00:00Z", user_id="user-2"),
    ]


@pytest.fixture()
def sample_entries():
    """Return the raw sample history entries."""
    return _sample_entries()


@pytest.fixture()
def sample_store(sample_entries):
    """An in-memory store over the sample history."""
    return InMemoryEventStore(sample_entries)


@pytest.fixture()
def client(sample_store):
    """TestClient for app.py backed by the sample store.

    Patches the file loader so no history.json is needed and resets the
    module-level cache between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"store": None, "built_at": 0.0}
    ):
        with patch("app._load_store", return_value=sample_store):
            with TestClient(app_module.app) as tc:
                yield tc
