"""Tests for mood_summary.py::main() and the mood_viz.py chart CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from event_store import EventStoreError, InMemoryEventStore
from helpers import make_emotion_entry


MODULE = "mood_summary"


class TestMainErrorHandling:
    """Verify main() exits with code 1 when the history can't be used."""

    def test_missing_file_exits_1(self, tmp_path):
        from mood_summary import main

        with pytest.raises(SystemExit) as exc_info:
            main(str(tmp_path / "nonexistent.json"), user_id="user-1")
        assert exc_info.value.code == 1

    def test_store_error_exits_1(self):
        with patch(
            f"{MODULE}.JsonFileEventStore",
            side_effect=EventStoreError("Invalid JSON in history file"),
        ):
            with pytest.raises(SystemExit) as exc_info:
                from mood_summary import main

                main("corrupt.json", user_id="user-1")
            assert exc_info.value.code == 1

    def test_ambiguous_user_exits_1(self, sample_store):
        with patch(f"{MODULE}.JsonFileEventStore", return_value=sample_store):
            with pytest.raises(SystemExit) as exc_info:
                from mood_summary import main

                main("history.json")
            assert exc_info.value.code == 1


class TestMainSuccessfulRun:
    """Verify main() completes without error when the store loads."""

    def test_successful_run(self, sample_store):
        with (
            patch(f"{MODULE}.JsonFileEventStore", return_value=sample_store),
            patch(f"{MODULE}.save_analytics_files") as mock_save,
            patch(f"{MODULE}.print_summary_report") as mock_print,
        ):
            from mood_summary import main

            main("history.json", user_id="user-1", days="9999")
            snapshot = mock_save.call_args.args[0]
            assert snapshot["totalAnalyses"] == 4
            mock_print.assert_called_once_with(snapshot)

    def test_single_user_picked_automatically(self, tmp_path):
        store = InMemoryEventStore(
            [make_emotion_entry("e1", "happy", "2024-01-15T10:00:00Z", user_id="solo")]
        )
        with (
            patch(f"{MODULE}.JsonFileEventStore", return_value=store),
            patch(f"{MODULE}.build_user_analytics", return_value={}) as mock_build,
            patch(f"{MODULE}.save_analytics_files"),
            patch(f"{MODULE}.print_summary_report"),
        ):
            from mood_summary import main

            main("history.json")
            assert mock_build.call_args.args[1] == "solo"

    def test_writes_files_end_to_end(self, tmp_path, sample_entries, capsys):
        history = tmp_path / "history.json"
        history.write_text(json.dumps(sample_entries), encoding="utf-8")
        out = tmp_path / "out"

        from mood_summary import main

        main(str(history), user_id="user-2", days=9999, output_dir=str(out))
        saved = json.loads((out / "snapshot.json").read_text(encoding="utf-8"))
        assert saved["totalAnalyses"] == 1
        assert "Mood Analytics Summary" in capsys.readouterr().out


class TestLoggingSetup:
    def test_main_configures_logging(self, sample_store):
        with (
            patch(f"{MODULE}.logging.basicConfig") as mock_config,
            patch(f"{MODULE}.JsonFileEventStore", return_value=sample_store),
            patch(f"{MODULE}.save_analytics_files"),
            patch(f"{MODULE}.print_summary_report"),
        ):
            from mood_summary import main

            main("history.json", user_id="user-1")
            mock_config.assert_called_once()


class TestParseArgs:
    def test_defaults(self):
        from mood_summary import _parse_args

        args = _parse_args([])
        assert args.json_file == "history.json"
        assert args.user_id is None
        assert args.days == "30"
        assert args.output == "mood_analytics"

    def test_flags(self):
        from mood_summary import _parse_args

        args = _parse_args(["h.json", "-u", "abc", "-d", "7", "-o", "dir"])
        assert (args.json_file, args.user_id, args.days, args.output) == (
            "h.json", "abc", "7", "dir",
        )


class TestMoodViz:
    """Render charts from the files mood_summary.py writes."""

    def test_renders_pngs(self, tmp_path, sample_entries):
        history = tmp_path / "history.json"
        history.write_text(json.dumps(sample_entries), encoding="utf-8")

        from mood_summary import main as summarize
        from mood_viz import main as render

        summarize(str(history), user_id="user-1", days=9999, output_dir=str(tmp_path))
        render(str(tmp_path))
        for name in ("daily_trends.png", "weekly_emotions.png", "emotion_heatmap.png"):
            assert (tmp_path / name).exists(), name

    def test_missing_files_exit_1(self, tmp_path):
        from mood_viz import main as render

        with pytest.raises(SystemExit) as exc_info:
            render(str(tmp_path))
        assert exc_info.value.code == 1

    def test_rolling_average_column(self, tmp_path):
        (tmp_path / "daily_trends.csv").write_text(
            "date,count,primaryEmotion\n2024-01-14,2,sad\n2024-01-15,4,happy\n",
            encoding="utf-8",
        )
        from mood_viz import load_daily_trends

        df = load_daily_trends(tmp_path)
        assert list(df["count_7_day_avg"]) == [2.0, 3.0]
