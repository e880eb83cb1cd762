"""Analytics for the Stempeluhr time tracker.

Summarises recorded sessions with pandas (hours per day, this week's total,
overtime against the expected workday) and draws a bar chart of daily
hours with matplotlib.  The figure is built without a GUI backend; the
detail window embeds it through ``FigureCanvasTkAgg``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

import matplotlib
# Use a non-interactive backend; the window embeds the figure itself
matplotlib.use("Agg")
import pandas as pd  # type: ignore[import-not-found]
from matplotlib.figure import Figure

from stempeluhr.config import HOURS_PER_WORKDAY
from stempeluhr.models import Session
from stempeluhr.utils import MS_PER_HOUR, session_date


@dataclass
class Summary:
    today_ms: int = 0
    week_ms: int = 0
    total_ms: int = 0
    workdays: int = 0
    overtime_ms: int = 0


def sessions_dataframe(sessions: Iterable[Session]) -> pd.DataFrame:
    """One row per session with its local start date and worked milliseconds."""
    records = [
        {
            "date": session_date(s),
            "start": s.start,
            "end": s.end,
            "duration": s.duration,
            "pauses": len(s.pauses),
        }
        for s in sessions
    ]
    return pd.DataFrame(records, columns=["date", "start", "end", "duration", "pauses"])


def hours_per_day(sessions: Iterable[Session]) -> pd.Series:
    """Worked hours indexed by local calendar date, oldest first."""
    df = sessions_dataframe(sessions)
    if df.empty:
        return pd.Series(dtype=float)
    return df.groupby("date")["duration"].sum().sort_index() / MS_PER_HOUR


def summarize(
    sessions: Iterable[Session],
    today: Optional[date] = None,
    hours_per_workday: float = HOURS_PER_WORKDAY,
) -> Summary:
    df = sessions_dataframe(sessions)
    if df.empty:
        return Summary()
    today = today or date.today()
    week_start = today - timedelta(days=today.weekday())
    per_day = df.groupby("date")["duration"].sum()
    total = int(per_day.sum())
    days = int(len(per_day))
    return Summary(
        today_ms=int(per_day.get(today, 0)),
        week_ms=int(per_day.loc[[d for d in per_day.index if week_start <= d <= today]].sum()),
        total_ms=total,
        workdays=days,
        overtime_ms=total - int(days * hours_per_workday * MS_PER_HOUR),
    )


def hours_figure(sessions: Iterable[Session], last_days: int = 30) -> Figure:
    """Bar chart of the hours worked on each of the most recent ``last_days`` days."""
    series = hours_per_day(sessions).tail(last_days)
    fig = Figure(figsize=(6, 3))
    ax = fig.add_subplot(111)
    if series.empty:
        ax.text(0.5, 0.5, "Keine Daten", ha="center", va="center")
        ax.set_axis_off()
    else:
        labels = [d.strftime("%d.%m.") for d in series.index]
        ax.bar(labels, series.values, color="#1f6aa5")
        ax.axhline(HOURS_PER_WORKDAY, color="#c72626", linestyle="--", linewidth=1)
        ax.set_ylabel("Stunden")
        ax.tick_params(axis="x", labelrotation=60, labelsize=7)
    ax.set_title("Arbeitszeit pro Tag")
    fig.tight_layout()
    return fig

