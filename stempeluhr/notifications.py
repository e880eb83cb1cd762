from __future__ import annotations

import logging
from typing import Callable, Optional

from stempeluhr.data import StorageErrorKind, StorageResult
from stempeluhr.models import CurrentSession
from stempeluhr.utils import MS_PER_HOUR


logger = logging.getLogger(__name__)

APP_TITLE = "Stempeluhr"


class HourNotifier:
    """Sends one reminder each time the running session passes a full hour."""

    def __init__(self, send: Callable[[str, str], None], enabled: bool = True):
        self.send = send
        self.enabled = enabled
        self._last_hour = 0

    def update(self, current: CurrentSession) -> Optional[int]:
        """Check the session snapshot; returns the hour announced, if any."""
        if not current.active:
            self._last_hour = 0
            return None
        hours = current.duration // MS_PER_HOUR
        if hours <= self._last_hour:
            return None
        self._last_hour = hours
        if not self.enabled or current.is_paused:
            return None
        label = "Stunde" if hours == 1 else "Stunden"
        self._send(APP_TITLE, f"Du arbeitest seit {hours} {label}.")
        return hours

    def toggle(self) -> bool:
        """Toggle reminders on/off. Returns new state."""
        self.enabled = not self.enabled
        return self.enabled

    def _send(self, title: str, message: str) -> None:
        try:
            self.send(title, message)
        except Exception as exc:
            # Notification delivery is best effort on every platform
            logger.warning("Could not show notification: %s", exc)


def storage_alert(result: StorageResult) -> Optional[tuple[str, str]]:
    """Title and message for a storage failure the user must see, else ``None``."""
    if result.ok or result.kind is not StorageErrorKind.WRITE_FAILURE:
        return None
    return (
        "Speichern fehlgeschlagen",
        f"Die Arbeitszeiten konnten nicht gespeichert werden:\n{result.path}\n\n{result.error}",
    )
