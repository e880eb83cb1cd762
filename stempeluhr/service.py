"""High-level API of the Stempeluhr time tracker.

``TimeTracker`` is what the tray menu and the detail window talk to.  It
owns one :class:`SessionTracker` and one :class:`SessionStore` and joins
them: stopping work hands the finished session to the store.  Manual
corrections go straight to the store and bypass the tracker.
"""
from __future__ import annotations

import logging
from typing import Optional

from stempeluhr.data import SessionStore, StorageResult
from stempeluhr.models import CurrentSession, Session, Store
from stempeluhr.session_tracker import SessionTracker


logger = logging.getLogger(__name__)


class TimeTracker:
    """Core operations exposed to the host application."""

    def __init__(self, store: SessionStore, tracker: Optional[SessionTracker] = None):
        self.store = store
        self.tracker = tracker or SessionTracker()

    # --- State transitions ---
    def start_work(self) -> bool:
        return self.tracker.start()

    def pause_work(self) -> bool:
        return self.tracker.pause()

    def resume_work(self) -> bool:
        return self.tracker.resume()

    def stop_work(self) -> Optional[Session]:
        """Finish the active session and persist it; ``None`` when idle."""
        session = self.tracker.stop()
        if session is None:
            return None
        self.store.append(session)
        logger.info("Recorded session of %d ms with %d pauses", session.duration, len(session.pauses))
        return session

    # --- Queries ---
    def get_current_session(self) -> CurrentSession:
        return self.tracker.snapshot()

    def get_sessions(self) -> Store:
        return self.store.load()

    # --- Manual corrections ---
    def add_session(self, session: Session) -> Store:
        return self.store.append(session)

    def update_session(self, index: int, session: Session) -> Store:
        return self.store.replace_at(index, session)

    def delete_session(self, index: int) -> Optional[Session]:
        return self.store.delete_at(index)

    def set_notify_on_hour(self, enabled: bool) -> Store:
        return self.store.update_settings(notifyOnHour=bool(enabled))

    def backup(self) -> StorageResult:
        return self.store.create_backup()

    def shutdown(self) -> Optional[Session]:
        """Persist a still-running session before the process exits."""
        return self.stop_work()
