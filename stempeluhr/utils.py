"""
Utility functions for the Stempeluhr time tracker.

Small helpers shared by the tray menu and the detail window: turning
milliseconds into display strings and adding up today's work.
They operate on plain session lists and are cheap enough to run on every
one-second tray refresh; the heavier statistics live in
``stempeluhr.analytics``.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from stempeluhr.models import CurrentSession, Pause, Session


MS_PER_HOUR = 3_600_000


def format_duration(ms: int) -> str:
    """Format milliseconds as ``"{h}h {m}m {s}s"``."""
    seconds = max(0, int(ms)) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    return f"{hours}h {minutes % 60}m {seconds % 60}s"


def format_hours(ms: int) -> str:
    """Hours with two decimals, e.g. ``"7.50"``."""
    return f"{ms / MS_PER_HOUR:.2f}"


def local_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000)


def session_date(session: Session) -> date:
    """Local calendar date on which a session started."""
    return local_datetime(session.start).date()


def sessions_on(sessions: Iterable[Session], day: date) -> list[Session]:
    return [s for s in sessions if session_date(s) == day]


def today_total(sessions: Iterable[Session], active_ms: int = 0, today: Optional[date] = None) -> int:
    """Milliseconds worked today, including the running session's ``active_ms``."""
    day = today or date.today()
    return sum(s.duration for s in sessions_on(sessions, day)) + active_ms


def format_signed_duration(ms: int) -> str:
    sign = "-" if ms < 0 else "+"
    return f"{sign}{format_duration(abs(ms))}"


# --- Tray texts ---
def status_label(current: CurrentSession) -> str:
    if not current.active:
        return "⏱️ Nicht gestartet"
    if current.is_paused:
        return f"⏸️ Pausiert: {format_duration(current.duration)}"
    return f"⏱️ Läuft: {format_duration(current.duration)}"


def today_label(total_ms: int) -> str:
    return f"📊 Heute gesamt: {format_duration(total_ms)}"


def tooltip_text(current: CurrentSession) -> str:
    if not current.active:
        return "Stempeluhr - Bereit"
    return f"Stempeluhr - {format_duration(current.duration)}"


# --- Manual corrections ---
def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_local(day: str, clock_time: str) -> datetime:
    """Parse ``DD.MM.YYYY`` and ``HH:MM`` (or ``HH:MM:SS``) into a local datetime."""
    fmt = "%d.%m.%Y %H:%M:%S" if clock_time.count(":") == 2 else "%d.%m.%Y %H:%M"
    return datetime.strptime(f"{day.strip()} {clock_time.strip()}", fmt)


def parse_span(day: str, start_time: str, end_time: str) -> tuple[datetime, datetime]:
    """
    Parse start and end of a session entered for ``day``.

    An end at or before the start belongs to the next day, so sessions that
    run past midnight can be entered and edited.
    """
    start = parse_local(day, start_time)
    end = parse_local(day, end_time)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def manual_session(
    start: datetime,
    end: datetime,
    pause_minutes: float = 0,
    pauses: Optional[list[Pause]] = None,
) -> Session:
    """
    Build a session from hand-entered bounds.

    Existing ``pauses`` are kept when they still fit inside the new bounds and
    add up to ``pause_minutes``; otherwise a single pause of that length is
    placed in the middle of the session.
    """
    if not math.isfinite(pause_minutes):
        raise ValueError("Pause muss eine Zahl sein")
    start_ms, end_ms = to_ms(start), to_ms(end)
    if end_ms <= start_ms:
        raise ValueError("Ende muss nach dem Start liegen")
    pause_ms = int(round(pause_minutes * 60_000))
    if pause_ms < 0 or pause_ms > end_ms - start_ms:
        raise ValueError("Pause passt nicht in die Arbeitszeit")
    if pauses and sum(p.duration for p in pauses) == pause_ms and all(
        start_ms <= p.start and p.end <= end_ms for p in pauses
    ):
        kept = list(pauses)
    elif pause_ms:
        pause_start = start_ms + (end_ms - start_ms - pause_ms) // 2
        kept = [Pause.between(pause_start, pause_start + pause_ms)]
    else:
        kept = []
    return Session(start=start_ms, end=end_ms, duration=end_ms - start_ms - pause_ms, pauses=kept)
