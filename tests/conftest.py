"""Shared fixtures for the Stempeluhr tests."""

from datetime import datetime

import pytest

from stempeluhr.data import SessionStore
from stempeluhr.models import Pause, Session
from stempeluhr.utils import to_ms


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def set(self, now: int) -> None:
        self.now = now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def today():
    # Noon keeps every test session on the same local calendar day
    return datetime.now().replace(hour=12, minute=0, second=0, microsecond=0)


@pytest.fixture
def store(tmp_path, today):
    return SessionStore(tmp_path / "data" / "timetracker.json", clock=lambda: today)


def make_session(start: datetime, hours: float, pause_minutes: int = 0) -> Session:
    """A session starting at ``start`` lasting ``hours`` of wall time."""
    start_ms = to_ms(start)
    end_ms = start_ms + int(hours * 3_600_000)
    pauses = []
    if pause_minutes:
        pauses.append(Pause.between(start_ms + 60_000, start_ms + 60_000 + pause_minutes * 60_000))
    return Session(
        start=start_ms,
        end=end_ms,
        duration=end_ms - start_ms - sum(p.duration for p in pauses),
        pauses=pauses,
    )
