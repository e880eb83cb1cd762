"""Tests for the repeating tasks and the daily backup check."""

from datetime import datetime, timedelta

from stempeluhr.scheduler import DailyCheck, RepeatingTask, TaskGroup


class FakeWidget:
    """Stands in for a tk widget: records ``after`` calls and runs them on demand."""

    def __init__(self):
        self.pending = {}
        self._next = 0

    def after(self, ms, fn):
        self._next += 1
        after_id = f"after#{self._next}"
        self.pending[after_id] = (ms, fn)
        return after_id

    def after_cancel(self, after_id):
        self.pending.pop(after_id, None)

    def run_pending(self):
        current, self.pending = self.pending, {}
        for _, fn in current.values():
            fn()


def test_task_rearms_after_each_tick():
    widget = FakeWidget()
    calls = []
    task = RepeatingTask(widget, 1000, lambda: calls.append(1))

    task.start()
    for _ in range(3):
        widget.run_pending()

    assert len(calls) == 3
    assert task.active
    assert [ms for ms, _ in widget.pending.values()] == [1000]


def test_failing_tick_keeps_task_alive():
    widget = FakeWidget()

    def boom():
        raise RuntimeError("tick failed")

    task = RepeatingTask(widget, 500, boom)
    task.start()
    widget.run_pending()

    assert task.active


def test_cancel_all_stops_every_task():
    widget = FakeWidget()
    calls = []
    group = TaskGroup(widget)
    group.every(1000, lambda: calls.append("display"))
    group.every(60000, lambda: calls.append("backup"))

    group.cancel_all()
    widget.run_pending()

    assert calls == []
    assert widget.pending == {}
    assert group.tasks == []


def test_cancel_inside_callback_prevents_rearm():
    widget = FakeWidget()
    task = RepeatingTask(widget, 1000, lambda: task.cancel())

    task.start()
    widget.run_pending()

    assert not task.active
    assert widget.pending == {}


def test_daily_check_fires_once_per_date_change():
    now = [datetime(2026, 10, 19, 23, 58)]
    fired = []
    check = DailyCheck(lambda: fired.append(now[0].date()), clock=lambda: now[0])

    assert not check()
    now[0] += timedelta(minutes=1)
    assert not check()
    now[0] += timedelta(minutes=2)
    assert check()
    now[0] += timedelta(minutes=1)
    assert not check()

    assert fired == [datetime(2026, 10, 20).date()]
