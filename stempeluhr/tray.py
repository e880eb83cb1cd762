"""System tray icon for the Stempeluhr time tracker.

The tray runs pystray's own loop on a background thread.  Menu clicks are
forwarded to the tkinter thread through ``dispatch`` so that every change
to the tracker and the data file happens on one thread.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

import pystray  # type: ignore[import-not-found]
from PIL import Image, ImageDraw  # type: ignore[import-not-found]

from stempeluhr.models import CurrentSession
from stempeluhr.service import TimeTracker
from stempeluhr.utils import status_label, today_label, today_total, tooltip_text


logger = logging.getLogger(__name__)

STATE_COLORS = {
    "idle": "#7a7a7a",
    "running": "#2e9e44",
    "paused": "#e0a526",
}


def create_icon_image(state: str = "idle", size: int = 64) -> Image.Image:
    """Draw a simple stopwatch face tinted by tracking state."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    pad = size // 8
    draw.ellipse((pad, pad, size - pad, size - pad), fill=STATE_COLORS.get(state, STATE_COLORS["idle"]), outline="white", width=max(2, size // 16))
    cx = cy = size // 2
    # Crown and hands
    draw.rectangle((cx - size // 16, 0, cx + size // 16, pad), fill="white")
    draw.line((cx, cy, cx, pad + size // 8), fill="white", width=max(2, size // 20))
    draw.line((cx, cy, size - pad - size // 6, cy), fill="white", width=max(2, size // 20))
    return img


def state_of(current: CurrentSession) -> str:
    if not current.active:
        return "idle"
    return "paused" if current.is_paused else "running"


class TrayIcon:
    """Tray icon whose menu mirrors the tracker state."""

    def __init__(
        self,
        service: TimeTracker,
        dispatch: Callable[[Callable[[], None]], None],
        on_show: Callable[[], None],
        on_quit: Callable[[], None],
    ) -> None:
        self.service = service
        self.dispatch = dispatch
        self.on_show = on_show
        self.on_quit = on_quit
        self._state = "idle"
        self.icon = pystray.Icon("stempeluhr", create_icon_image(), "Stempeluhr", self._build_menu())

    def _build_menu(self) -> pystray.Menu:
        # Labels and visibility are callables so update_menu() re-evaluates them
        return pystray.Menu(
            pystray.MenuItem(lambda item: status_label(self._current()), None, enabled=False),
            pystray.MenuItem(lambda item: today_label(self._today_ms()), None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("▶️ Arbeit starten", self._on(self.service.start_work),
                             visible=lambda item: not self._current().active),
            pystray.MenuItem("⏸️ Pause", self._on(self.service.pause_work),
                             visible=lambda item: state_of(self._current()) == "running"),
            pystray.MenuItem("▶️ Pause beenden", self._on(self.service.resume_work),
                             visible=lambda item: self._current().is_paused),
            pystray.MenuItem("⏹️ Arbeit beenden", self._on(self.service.stop_work),
                             visible=lambda item: self._current().active),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("📋 Zeiten anzeigen", lambda icon, item: self.dispatch(self.on_show), default=True),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("🚪 Beenden", lambda icon, item: self.dispatch(self.on_quit)),
        )

    def _on(self, action: Callable[[], object]) -> Callable[[pystray.Icon, pystray.MenuItem], None]:
        def handler(icon, item) -> None:
            def run() -> None:
                action()
                self.refresh()
            self.dispatch(run)
        return handler

    def _current(self) -> CurrentSession:
        return self.service.get_current_session()

    def _today_ms(self) -> int:
        current = self._current()
        return today_total(self.service.get_sessions().sessions, current.duration)

    def run_detached(self) -> None:
        threading.Thread(target=self.icon.run, name="stempeluhr-tray", daemon=True).start()

    def refresh(self) -> None:
        """Update tooltip, icon colour and menu texts."""
        current = self._current()
        state = state_of(current)
        try:
            self.icon.title = tooltip_text(current)
            if state != self._state:
                self.icon.icon = create_icon_image(state)
                self._state = state
            self.icon.update_menu()
        except Exception as exc:
            # Backends that cannot update a live menu just keep the old one
            logger.debug("Tray refresh failed: %s", exc)

    def notify(self, title: str, message: str) -> None:
        self.icon.notify(message, title)

    def stop(self) -> None:
        self.icon.stop()
