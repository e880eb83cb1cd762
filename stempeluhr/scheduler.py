"""Repeating tasks driven by the tkinter event loop.

The host window owns a :class:`TaskGroup`; each :class:`RepeatingTask`
re-arms itself with ``widget.after`` after its callback returns, so a tick
always completes before the next one is scheduled.  Cancelling the group
on shutdown guarantees no callback runs against a destroyed window.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class RepeatingTask:
    """Call ``callback`` every ``interval_ms`` on ``widget``'s event loop."""

    def __init__(self, widget: Any, interval_ms: int, callback: Callable[[], None], name: str = ""):
        self.widget = widget
        self.interval_ms = interval_ms
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "task")
        self._after_id: Optional[str] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._after_id is not None

    def start(self) -> None:
        self._cancelled = False
        if self._after_id is None:
            self._after_id = self.widget.after(self.interval_ms, self._run)

    def cancel(self) -> None:
        self._cancelled = True
        if self._after_id is not None:
            self.widget.after_cancel(self._after_id)
            self._after_id = None

    def _run(self) -> None:
        self._after_id = None
        try:
            self.callback()
        except Exception:
            # A failing tick must not stop the timer for good
            logger.exception("Repeating task %s failed", self.name)
        if not self._cancelled:
            self._after_id = self.widget.after(self.interval_ms, self._run)


class TaskGroup:
    """A set of repeating tasks started and cancelled together."""

    def __init__(self, widget: Any):
        self.widget = widget
        self.tasks: List[RepeatingTask] = []

    def every(self, interval_ms: int, callback: Callable[[], None], name: str = "") -> RepeatingTask:
        task = RepeatingTask(self.widget, interval_ms, callback, name)
        self.tasks.append(task)
        task.start()
        return task

    def cancel_all(self) -> None:
        for task in self.tasks:
            task.cancel()
        logger.debug("Cancelled %d repeating tasks", len(self.tasks))
        self.tasks.clear()


class DailyCheck:
    """
    Run ``action`` when the local calendar date changes.

    Meant to be ticked once a minute; the first tick after midnight fires
    the action.  ``last_day`` starts as the day the check was created, so
    the host runs the start-up backup itself.
    """

    def __init__(self, action: Callable[[], Any], clock: Callable[[], datetime] = datetime.now):
        self.action = action
        self.clock = clock
        self.last_day: date = clock().date()

    def __call__(self) -> bool:
        today = self.clock().date()
        if today == self.last_day:
            return False
        self.last_day = today
        logger.info("Date changed to %s", today.isoformat())
        self.action()
        return True
