"""Session state machine for the Stempeluhr time tracker.

The ``SessionTracker`` keeps the single in-progress work session in memory
and knows nothing about storage.  When a session is stopped it is turned
into a :class:`~stempeluhr.models.Session` and handed back to the caller,
which is responsible for persisting it (see ``stempeluhr.service``).
"""
from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable, Optional

from stempeluhr.models import ActiveSession, CurrentSession, Pause, Session


logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class SessionTracker:
    """
    Tracks one work session through the Idle, Running and Paused states.

    Every operation is total: calling it in a state where it does not apply
    leaves the tracker untouched.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self.clock = clock
        self.active: Optional[ActiveSession] = None
        # tray callbacks arrive on the pystray thread, UI ticks on the tk thread
        self.lock = Lock()

    @property
    def is_running(self) -> bool:
        return self.active is not None and not self.active.is_paused

    @property
    def is_paused(self) -> bool:
        return self.active is not None and self.active.is_paused

    def start(self) -> bool:
        """Begin a new session.  Returns ``False`` if one is already active."""
        with self.lock:
            if self.active is not None:
                return False
            self.active = ActiveSession(start=self.clock())
            logger.debug("Session started at %d", self.active.start)
            return True

    def pause(self) -> bool:
        with self.lock:
            if self.active is None or self.active.is_paused:
                return False
            self.active.is_paused = True
            self.active.pause_start = self.clock()
            logger.debug("Session paused at %d", self.active.pause_start)
            return True

    def resume(self) -> bool:
        with self.lock:
            return self._resume(self.clock())

    def stop(self) -> Optional[Session]:
        """
        Finalise the active session and return it, or ``None`` when idle.

        An open pause is closed first so it is part of the result.  Start,
        end and duration are all computed from a single clock reading.
        """
        with self.lock:
            if self.active is None:
                return None
            now = self.clock()
            self._resume(now)
            session = Session(
                start=self.active.start,
                end=now,
                duration=self._duration_at(now),
                pauses=list(self.active.pauses),
            )
            self.active = None
            logger.debug("Session stopped: %d ms worked", session.duration)
            return session

    def current_duration(self) -> int:
        """Milliseconds worked in the active session so far, 0 when idle."""
        with self.lock:
            return self._duration_at(self.clock())

    def snapshot(self) -> CurrentSession:
        with self.lock:
            if self.active is None:
                return CurrentSession(active=False)
            return CurrentSession(
                active=True,
                is_paused=self.active.is_paused,
                duration=self._duration_at(self.clock()),
                start=self.active.start,
            )

    def _resume(self, now: int) -> bool:
        active = self.active
        if active is None or not active.is_paused or active.pause_start is None:
            return False
        pause = Pause.between(active.pause_start, now)
        active.pauses.append(pause)
        active.total_pause_time += pause.duration
        active.is_paused = False
        active.pause_start = None
        logger.debug("Session resumed after %d ms pause", pause.duration)
        return True

    def _duration_at(self, now: int) -> int:
        active = self.active
        if active is None:
            return 0
        elapsed = now - active.start - active.total_pause_time
        if active.is_paused and active.pause_start is not None:
            elapsed -= now - active.pause_start
        # a backwards clock jump must never yield a negative duration
        return max(0, elapsed)
