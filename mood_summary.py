"""mood_summary.py

Compute the analytics snapshot for one user from a history export file,
print a summary report and save JSON/CSV files for charting.

Usage: python mood_summary.py history.json --user USER_ID [--days 30]
"""

from __future__ import annotations

import argparse
import logging
import sys

from analytics import (
    DEFAULT_TIME_RANGE_DAYS,
    build_user_analytics,
    print_summary_report,
    save_analytics_files,
)
from event_store import EventStoreError, JsonFileEventStore

logger = logging.getLogger(__name__)


def main(
    path: str = "history.json",
    user_id: str | None = None,
    days: str | int = DEFAULT_TIME_RANGE_DAYS,
    output_dir: str = "mood_analytics",
) -> None:
    """Build, print and save the snapshot.  Exits with code 1 if the file can't be read."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        store = JsonFileEventStore(path)
    except EventStoreError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    if user_id is None:
        user_ids = store.user_ids()
        if len(user_ids) != 1:
            logger.error("History holds %d users; pass --user to pick one", len(user_ids))
            sys.exit(1)
        user_id = user_ids[0]

    snapshot = build_user_analytics(store, user_id, days)
    save_analytics_files(snapshot, output_dir)
    print_summary_report(snapshot)
    print(f"\nAnalytics data has been saved to the '{output_dir}' directory:")
    print("1. snapshot.json - Full analytics snapshot")
    print("2. daily_trends.csv / weekly_data.csv - Trend tables")
    print("3. popular_tracks.csv - Most recommended tracks")
    print("\nRun 'python mood_viz.py' to create visualizations.")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize mood analytics from a history export")
    parser.add_argument("json_file", nargs="?", default="history.json",
                        help="Path to the history JSON file (default: history.json)")
    parser.add_argument("--user", "-u", dest="user_id",
                        help="User id to analyse (required when the file holds several users)")
    parser.add_argument("--days", "-d", default=str(DEFAULT_TIME_RANGE_DAYS),
                        help="Trailing window in days (default: 30)")
    parser.add_argument("--output", "-o", default="mood_analytics",
                        help="Directory for output files (default: mood_analytics)")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = _parse_args()
    main(args.json_file, args.user_id, args.days, args.output)
