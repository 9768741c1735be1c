"""mood_viz.py

Render the CSV files written by mood_summary.py as PNG charts.

Usage: python mood_viz.py [analytics_dir]
"""

from __future__ import annotations

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from events import EMOTIONS

EMOTION_COLORS = {
    "happy": "#facc15",
    "sad": "#3b82f6",
    "angry": "#ef4444",
    "surprised": "#a855f7",
    "neutral": "#9ca3af",
    "fear": "#6366f1",
    "disgust": "#22c55e",
}


def load_daily_trends(analytics_dir: Path) -> pd.DataFrame:
    """Read daily_trends.csv, sorted by date, with a 7-day rolling mean."""
    df = pd.read_csv(analytics_dir / "daily_trends.csv")
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values("date")
    df["count_7_day_avg"] = df["count"].rolling(window=7, min_periods=1).mean()
    return df


def load_weekly_data(analytics_dir: Path) -> pd.DataFrame:
    """Read weekly_data.csv, sorted by week start."""
    df = pd.read_csv(analytics_dir / "weekly_data.csv")
    df["week"] = pd.to_datetime(df["week"])
    return df.sort_values("week")


def plot_daily_trends(df: pd.DataFrame, out_path: Path) -> None:
    plt.figure(figsize=(15, 8))
    colors = [EMOTION_COLORS.get(e, "#9ca3af") for e in df["primaryEmotion"]]
    plt.bar(df["date"], df["count"], alpha=0.6, color=colors, label="Daily Analyses")
    plt.plot(df["date"], df["count_7_day_avg"], color="black", linewidth=2, label="7-day Average")
    plt.title("Daily Analyses (bar colour = primary emotion)", fontsize=14, pad=20)
    plt.xlabel("Date (UTC)", fontsize=12)
    plt.ylabel("Number of Analyses", fontsize=12)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.xticks(rotation=45)
    plt.tight_layout()
    plt.savefig(out_path, dpi=300, bbox_inches="tight")
    plt.close()


def plot_weekly_emotions(df: pd.DataFrame, out_path: Path) -> None:
    """Stacked bars of emotion counts per week."""
    weekly = df.set_index(df["week"].dt.strftime("%Y-%m-%d"))[list(EMOTIONS)]
    ax = weekly.plot(
        kind="bar",
        stacked=True,
        figsize=(15, 8),
        color=[EMOTION_COLORS[e] for e in EMOTIONS],
    )
    ax.set_title("Weekly Emotion Mix", fontsize=14, pad=20)
    ax.set_xlabel("Week starting (Sunday, UTC)", fontsize=12)
    ax.set_ylabel("Number of Analyses", fontsize=12)
    plt.xticks(rotation=45)
    plt.tight_layout()
    plt.savefig(out_path, dpi=300, bbox_inches="tight")
    plt.close()


def plot_emotion_heatmap(df: pd.DataFrame, out_path: Path) -> None:
    """Heatmap of weekly emotion share (rows = emotions, columns = weeks)."""
    counts = df.set_index(df["week"].dt.strftime("%Y-%m-%d"))[list(EMOTIONS)]
    totals = counts.sum(axis=1).replace(0, 1)
    shares = counts.div(totals, axis=0).mul(100).T
    plt.figure(figsize=(15, 6))
    sns.heatmap(shares, cmap="magma", annot=True, fmt=".0f", cbar_kws={"label": "% of week"})
    plt.title("Emotion Share per Week", fontsize=14, pad=20)
    plt.xlabel("Week starting", fontsize=12)
    plt.ylabel("")
    plt.tight_layout()
    plt.savefig(out_path, dpi=300, bbox_inches="tight")
    plt.close()


def main(analytics_dir: str = "mood_analytics") -> None:
    base = Path(analytics_dir)
    try:
        daily = load_daily_trends(base)
        weekly = load_weekly_data(base)
    except FileNotFoundError as exc:
        print(f"Error: {exc}. Run 'python mood_summary.py' first.")
        sys.exit(1)

    if daily.empty:
        print("No analyses in the selected window; nothing to plot.")
        return

    plot_daily_trends(daily, base / "daily_trends.png")
    plot_weekly_emotions(weekly, base / "weekly_emotions.png")
    plot_emotion_heatmap(weekly, base / "emotion_heatmap.png")
    print(
        "Visualizations have been saved as 'daily_trends.png', 'weekly_emotions.png', "
        f"and 'emotion_heatmap.png' in the {analytics_dir} directory"
    )


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "mood_analytics")
