"""Tests for SessionStore persistence, recovery and backups."""

import builtins
import json
import os
import shutil
from datetime import datetime, timedelta
from pathlib import Path

from conftest import make_session

from stempeluhr.data import SessionStore, StorageErrorKind, serialize
from stempeluhr.models import Pause, Session, Store


def test_load_missing_file_returns_default(store):
    loaded = store.load()

    assert loaded.sessions == []
    assert loaded.settings == {"notifyOnHour": True}
    assert store.last_result.ok
    assert not store.path.exists()


def test_load_corrupt_file_recovers_and_keeps_copy(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{ this is not json", encoding="utf-8")

    loaded, result = store.read()

    assert loaded.sessions == []
    assert loaded.settings == {"notifyOnHour": True}
    assert result.kind is StorageErrorKind.READ_CORRUPT
    assert store.corrupt_backup_path.name == "timetracker.json.backup"
    assert store.corrupt_backup_path.read_text(encoding="utf-8") == "{ this is not json"


def test_load_wrong_shape_is_treated_as_corrupt(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"sessions": [{"start": 1}]}), encoding="utf-8")

    assert store.load().sessions == []
    assert store.last_result.kind is StorageErrorKind.READ_CORRUPT
    assert store.corrupt_backup_path.exists()


def test_save_creates_directory_and_leaves_no_temp_file(store, today):
    data = Store(sessions=[make_session(today, 2, pause_minutes=15)])

    result = store.save(data)

    assert result.ok
    assert store.path.exists()
    assert not store.temp_path.exists()
    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert list(on_disk) == ["sessions", "settings"]
    assert list(on_disk["sessions"][0]) == ["start", "end", "duration", "pauses"]
    assert on_disk["sessions"][0]["pauses"][0]["duration"] == 15 * 60_000


def test_save_failure_is_reported_not_raised(tmp_path):
    target = tmp_path / "timetracker.json"
    target.mkdir()
    errors = []
    store = SessionStore(target, on_error=errors.append)

    result = store.save(Store())

    assert not result.ok
    assert result.kind is StorageErrorKind.WRITE_FAILURE
    assert errors == [result]
    assert not store.temp_path.exists()


def test_save_load_roundtrip_is_stable(store, today):
    data = Store(
        sessions=[make_session(today, 1), make_session(today + timedelta(hours=2), 3, pause_minutes=30)],
        settings={"notifyOnHour": False, "theme": "dark"},
    )
    store.save(data)
    first = store.path.read_bytes()

    reloaded = store.load()
    store.save(reloaded)

    assert store.path.read_bytes() == first
    assert reloaded == data
    assert serialize(reloaded) == first.decode("utf-8")


def test_missing_settings_get_defaults(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"sessions": []}), encoding="utf-8")

    assert store.load().settings == {"notifyOnHour": True}


def test_append_keeps_order(store, today):
    first = make_session(today, 1)
    second = make_session(today + timedelta(hours=3), 2)

    store.append(first)
    result = store.append(second)

    assert result.sessions == [first, second]
    assert store.load().sessions == [first, second]


def test_delete_at_removes_and_returns_element(store, today):
    sessions = [make_session(today + timedelta(hours=i), 0.5) for i in range(3)]
    store.save(Store(sessions=list(sessions)))

    removed = store.delete_at(1)

    assert removed == sessions[1]
    assert store.load().sessions == [sessions[0], sessions[2]]


def test_delete_at_invalid_index_changes_nothing(store, today):
    store.save(Store(sessions=[make_session(today, 1)]))
    before = store.path.read_bytes()

    assert store.delete_at(5) is None
    assert store.delete_at(-1) is None
    assert store.path.read_bytes() == before


def test_replace_at(store, today):
    store.save(Store(sessions=[make_session(today, 1), make_session(today, 2)]))
    replacement = Session(start=1, end=2, duration=1, pauses=[])

    result = store.replace_at(0, replacement)

    assert result.sessions[0] == replacement
    assert store.load().sessions[0] == replacement
    assert store.replace_at(9, replacement).sessions == result.sessions


def test_update_settings_preserves_sessions(store, today):
    store.append(make_session(today, 1))

    store.update_settings(notifyOnHour=False)

    loaded = store.load()
    assert not loaded.notify_on_hour
    assert len(loaded.sessions) == 1


def test_create_backup_once_per_day(store, today):
    store.append(make_session(today, 1))

    first = store.create_backup()
    store.append(make_session(today, 2))
    second = store.create_backup()

    files = list(store.backup_dir.iterdir())
    assert [f.name for f in files] == [f"backup-{today:%Y-%m-%d}.json"]
    assert first.ok and second.ok
    # the day's first snapshot is kept
    backed_up = Store.from_dict(json.loads(files[0].read_text(encoding="utf-8")))
    assert len(backed_up.sessions) == 1


def test_prune_removes_only_expired_backups(store, today):
    store.backup_dir.mkdir(parents=True)
    old = store.backup_dir / "backup-2026-09-18.json"
    recent = store.backup_dir / "backup-2026-09-20.json"
    for path, days in ((old, 31), (recent, 29)):
        path.write_text("{}", encoding="utf-8")
        stamp = (today - timedelta(days=days)).timestamp()
        os.utime(path, (stamp, stamp))

    removed = store.prune_backups_older_than(timedelta(days=30))

    assert removed == [old]
    assert not old.exists()
    assert recent.exists()


def test_prune_without_backup_dir(store):
    assert store.prune_backups_older_than(timedelta(days=30)) == []


def test_create_backup_failure_is_reported(tmp_path, today):
    blocker = tmp_path / "backups"
    blocker.write_text("not a directory", encoding="utf-8")
    errors = []
    store = SessionStore(tmp_path / "timetracker.json", backup_dir=blocker, clock=lambda: today, on_error=errors.append)

    result = store.create_backup()

    assert result.kind is StorageErrorKind.BACKUP_IO_FAILURE
    assert errors == [result]


def test_pause_roundtrip_through_dict():
    session = Session(start=0, end=10, duration=7, pauses=[Pause(start=2, end=5, duration=3)])

    assert Session.from_dict(session.to_dict()) == session


def test_backup_name_uses_local_date(tmp_path):
    store = SessionStore(tmp_path / "t.json", clock=lambda: datetime(2026, 1, 2, 23, 59))

    assert store.backup_path_for(store.clock()).name == "backup-2026-01-02.json"


def _deny_reading(monkeypatch, path):
    """Make ``open`` in the data module refuse to read ``path``."""
    real_open = builtins.open

    def fake_open(file, mode="r", *args, **kwargs):
        if Path(file) == path and "r" in mode:
            raise PermissionError(13, "Permission denied", str(file))
        return real_open(file, mode, *args, **kwargs)

    monkeypatch.setattr("stempeluhr.data.open", fake_open, raising=False)


def _fail_copy(src, dst, *args, **kwargs):
    raise PermissionError(13, "Permission denied", str(dst))


def test_unreadable_file_is_not_overwritten(store, today, monkeypatch):
    errors = []
    store.on_error = errors.append
    original = [make_session(today, 1), make_session(today + timedelta(hours=2), 2)]
    store.save(Store(sessions=list(original)))
    before = store.path.read_bytes()
    _deny_reading(monkeypatch, store.path)
    monkeypatch.setattr(shutil, "copyfile", _fail_copy)

    store.append(make_session(today + timedelta(hours=5), 1))
    store.replace_at(0, make_session(today, 3))
    store.update_settings(notifyOnHour=False)
    assert store.delete_at(0) is None

    kinds = [e.kind for e in errors]
    assert StorageErrorKind.READ_FAILURE in kinds
    assert StorageErrorKind.WRITE_FAILURE in kinds
    assert store.last_result.kind is StorageErrorKind.WRITE_FAILURE
    monkeypatch.undo()
    assert store.path.read_bytes() == before
    assert store.load().sessions == original


def test_read_failure_does_not_copy_file_aside(store, today, monkeypatch):
    store.save(Store(sessions=[make_session(today, 1)]))
    _deny_reading(monkeypatch, store.path)

    loaded, result = store.read()

    assert loaded.sessions == []
    assert result.kind is StorageErrorKind.READ_FAILURE
    assert result.backup is None
    assert not store.corrupt_backup_path.exists()


def test_corrupt_file_copied_aside_can_be_replaced(store, today):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("[1, 2", encoding="utf-8")
    session = make_session(today, 1)

    result = store.append(session)

    assert result.sessions == [session]
    assert store.load().sessions == [session]
    assert store.corrupt_backup_path.read_text(encoding="utf-8") == "[1, 2"


def test_failed_corrupt_copy_is_swallowed_and_file_kept(store, today, monkeypatch):
    errors = []
    store.on_error = errors.append
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{ broken", encoding="utf-8")
    monkeypatch.setattr(shutil, "copyfile", _fail_copy)

    loaded, result = store.read()

    assert loaded.sessions == []
    assert loaded.settings == {"notifyOnHour": True}
    assert result.kind is StorageErrorKind.READ_CORRUPT
    assert result.backup is None
    assert not store.corrupt_backup_path.exists()

    store.append(make_session(today, 1))

    assert store.last_result.kind is StorageErrorKind.WRITE_FAILURE
    assert store.path.read_text(encoding="utf-8") == "{ broken"


def test_create_backup_skipped_while_file_unreadable(store, today, monkeypatch):
    store.save(Store(sessions=[make_session(today, 1)]))
    _deny_reading(monkeypatch, store.path)

    result = store.create_backup()

    assert result.kind is StorageErrorKind.BACKUP_IO_FAILURE
    assert not store.backup_path_for(today).exists()

    monkeypatch.undo()
    assert store.create_backup().ok
    backed_up = Store.from_dict(json.loads(store.backup_path_for(today).read_text(encoding="utf-8")))
    assert len(backed_up.sessions) == 1


def test_prune_skips_backup_it_cannot_delete(store, today, monkeypatch):
    store.backup_dir.mkdir(parents=True)
    locked = store.backup_dir / "backup-2026-08-01.json"
    other = store.backup_dir / "backup-2026-08-02.json"
    for path in (locked, other):
        path.write_text("{}", encoding="utf-8")
        stamp = (today - timedelta(days=60)).timestamp()
        os.utime(path, (stamp, stamp))
    real_unlink = Path.unlink

    def fake_unlink(self, *args, **kwargs):
        if self == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return real_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", fake_unlink)

    removed = store.prune_backups_older_than(timedelta(days=30))

    assert removed == [other]
    assert locked.exists()
    assert not other.exists()


def test_unknown_keys_survive_roundtrip(store):
    document = {
        "sessions": [
            {
                "start": 0,
                "end": 10_000,
                "duration": 7_000,
                "pauses": [{"start": 2_000, "end": 5_000, "duration": 3_000, "reason": "Mittag"}],
                "project": "Intern",
                "tags": ["remote"],
            }
        ],
        "settings": {"notifyOnHour": True},
    }
    store.path.parent.mkdir(parents=True)
    text = json.dumps(document, indent=2, ensure_ascii=False)
    store.path.write_text(text, encoding="utf-8")

    loaded = store.load()
    store.save(loaded)

    session = loaded.sessions[0]
    assert session.extra == {"project": "Intern", "tags": ["remote"]}
    assert session.pauses[0].extra == {"reason": "Mittag"}
    assert session.pause_time == 3_000
    assert store.path.read_text(encoding="utf-8") == text
