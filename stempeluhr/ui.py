"""Host application for the Stempeluhr time tracker.

The customtkinter root window stays hidden; the app lives in the system
tray.  ``StempeluhrApp`` owns the tracker, the data store, the tray icon
and the two repeating tasks (one-second display refresh, one-minute
midnight backup check) and tears them all down together on quit.
"""
from __future__ import annotations

import logging
from pathlib import Path
from tkinter import messagebox
from typing import Callable, Optional

import customtkinter as ctk

from stempeluhr import config
from stempeluhr.data import SessionStore, StorageResult
from stempeluhr.editor import SessionWindow
from stempeluhr.notifications import HourNotifier, storage_alert
from stempeluhr.scheduler import DailyCheck, TaskGroup
from stempeluhr.service import TimeTracker
from stempeluhr.tray import TrayIcon


logger = logging.getLogger(__name__)


class StempeluhrApp(ctk.CTk):
    """Hidden root window that hosts the tray icon and the session window."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        super().__init__()
        self.title(config.APP_NAME)
        self.withdraw()
        ctk.set_appearance_mode("system")

        data_dir = data_dir or config.default_data_dir()
        self.store = SessionStore(
            config.data_file(data_dir),
            config.backup_dir(data_dir),
            on_error=self._on_storage_error,
        )
        self.service = TimeTracker(self.store)
        self.window: Optional[SessionWindow] = None

        self.tray = TrayIcon(self.service, self.dispatch, self.show_window, self.quit_app)
        self.notifier = HourNotifier(self.tray.notify, enabled=self.service.get_sessions().notify_on_hour)

        # Start-up backup; the daily check handles every later date change
        self.service.backup()
        self.tasks = TaskGroup(self)
        self.tasks.every(config.DISPLAY_TICK_MS, self._tick, name="display")
        self.tasks.every(config.BACKUP_TICK_MS, DailyCheck(self.service.backup), name="backup")

        self.protocol("WM_DELETE_WINDOW", self.quit_app)
        self.tray.run_detached()
        logger.info("Stempeluhr started, data file %s", self.store.path)

    def dispatch(self, fn: Callable[[], None]) -> None:
        """Run ``fn`` on the tkinter thread (called from the tray thread)."""
        self.after(0, fn)

    def _tick(self) -> None:
        current = self.service.get_current_session()
        self.notifier.update(current)
        if not current.active or current.is_paused:
            return
        self.tray.refresh()
        if self.window is not None and self.window.winfo_exists():
            self.window.refresh_current()

    def _on_settings_changed(self) -> None:
        self.notifier.enabled = self.service.get_sessions().notify_on_hour
        self.tray.refresh()

    def _on_storage_error(self, result: StorageResult) -> None:
        alert = storage_alert(result)
        if alert is None:
            return
        title, message = alert
        try:
            messagebox.showerror(title, message)
        except Exception as exc:
            # The alert is best effort; the failure is already logged
            logger.debug("Could not show storage alert: %s", exc)

    def show_window(self) -> None:
        """Open the session window or bring the existing one to front."""
        if self.window is None or not self.window.winfo_exists():
            self.window = SessionWindow(self, self.service, on_change=self._on_settings_changed)
        else:
            self.window.refresh_sessions()
        try:
            self.window.deiconify()
            self.window.focus()
            self.window.lift()
        except Exception:
            pass

    def quit_app(self) -> None:
        """Persist a running session, stop timers and the tray, then exit."""
        self.tasks.cancel_all()
        session = self.service.shutdown()
        if session is not None:
            logger.info("Saved running session on exit")
        try:
            self.tray.stop()
        except Exception as exc:
            logger.debug("Tray stop failed: %s", exc)
        self.destroy()
