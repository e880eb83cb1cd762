"""
Data layer for the Stempeluhr time tracker.

This module persists finished sessions and settings to a single JSON
document (``timetracker.json``) and keeps dated backup copies of it next to
the data file.  Storage must never take the application down: every I/O
failure is caught where it happens, logged, and reported back as a
:class:`StorageResult` instead of an exception.

- a corrupt data file is copied aside to ``<file>.backup`` and an empty
  store is returned in its place;
- a data file that exists but cannot be opened, or a corrupt one that
  could not be copied aside, is never overwritten by the
  read-modify-write helpers;
- a failed write leaves the previous file intact (temp file + rename) and
  is reported through ``on_error`` so the host can alert the user;
- backup and prune failures are logged and skipped.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from stempeluhr import config
from stempeluhr.models import Session, Store


logger = logging.getLogger(__name__)

# Exceptions that mean "the file is not a valid store document".
_PARSE_ERRORS = (ValueError, KeyError, TypeError)


class StorageErrorKind(Enum):
    READ_CORRUPT = "storage_read_corrupt"
    READ_FAILURE = "storage_read_failure"
    WRITE_FAILURE = "storage_write_failure"
    BACKUP_IO_FAILURE = "backup_io_failure"


@dataclass
class StorageResult:
    """Outcome of a storage operation; ``kind`` is set only on failure."""

    ok: bool = True
    kind: Optional[StorageErrorKind] = None
    path: Optional[Path] = None
    error: Optional[BaseException] = None
    # where an unreadable data file was copied to, if it was
    backup: Optional[Path] = None

    @classmethod
    def failure(cls, kind: StorageErrorKind, path: Path, error: BaseException) -> "StorageResult":
        return cls(ok=False, kind=kind, path=path, error=error)


def serialize(store: Store) -> str:
    """Render a store exactly as it is written to disk."""
    return json.dumps(store.to_dict(), indent=2, ensure_ascii=False)


class SessionStore:
    """
    Durable log of completed sessions plus settings.

    ``path`` is the data file; backups go to ``backup_dir`` (defaults to the
    ``backups`` folder beside it).  ``clock`` supplies the local date/time
    used to name daily backups and to age them.  ``on_error`` is called with
    every failed :class:`StorageResult`.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        backup_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
        on_error: Optional[Callable[[StorageResult], None]] = None,
    ) -> None:
        self.path = Path(path) if path is not None else config.data_file()
        self.backup_dir = (
            Path(backup_dir) if backup_dir is not None else self.path.parent / config.BACKUP_DIR_NAME
        )
        self.clock = clock
        self.on_error = on_error
        self.last_result = StorageResult()

    @property
    def corrupt_backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".backup")

    @property
    def temp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    def backup_path_for(self, day: datetime) -> Path:
        return self.backup_dir / f"backup-{day.strftime('%Y-%m-%d')}.json"

    # --- Reading and writing ---
    def read(self) -> Tuple[Store, StorageResult]:
        """Load the store and report whether the file had to be recovered."""
        if not self.path.exists():
            return Store(), self._record(StorageResult(path=self.path))
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                store = Store.from_dict(json.load(f))
            return store, self._record(StorageResult(path=self.path))
        except OSError as exc:
            # the file is still there, it just cannot be opened right now
            logger.warning("Could not read %s: %s", self.path, exc)
            result = StorageResult.failure(StorageErrorKind.READ_FAILURE, self.path, exc)
        except _PARSE_ERRORS as exc:
            logger.warning("Data file %s is corrupt: %s", self.path, exc)
            result = StorageResult.failure(StorageErrorKind.READ_CORRUPT, self.path, exc)
            result.backup = self._preserve_corrupt_file()
        return Store(), self._record(result)

    def load(self) -> Store:
        """Return the persisted store, or an empty default one.  Never raises."""
        store, _ = self.read()
        return store

    def save(self, store: Store) -> StorageResult:
        """Write ``store`` through a temporary file and rename it into place."""
        try:
            self._write_atomic(self.path, serialize(store))
        except OSError as exc:
            logger.error("Could not save %s: %s", self.path, exc)
            self._discard(self.temp_path)
            return self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILURE, self.path, exc))
        return self._record(StorageResult(path=self.path))

    # --- Read-modify-write helpers ---
    def append(self, session: Session) -> Store:
        store, safe = self._load_for_update()
        if not safe:
            return store
        store.sessions.append(session)
        self.save(store)
        return store

    def delete_at(self, index: int) -> Optional[Session]:
        """Remove and return the session at ``index`` of the current file."""
        store, safe = self._load_for_update()
        if not safe:
            return None
        if not 0 <= index < len(store.sessions):
            logger.warning("No session at index %d (have %d)", index, len(store.sessions))
            return None
        removed = store.sessions.pop(index)
        self.save(store)
        return removed

    def replace_at(self, index: int, session: Session) -> Store:
        store, safe = self._load_for_update()
        if not safe:
            return store
        if not 0 <= index < len(store.sessions):
            logger.warning("No session at index %d (have %d)", index, len(store.sessions))
            return store
        store.sessions[index] = session
        self.save(store)
        return store

    def update_settings(self, **settings) -> Store:
        store, safe = self._load_for_update()
        if not safe:
            return store
        store.settings.update(settings)
        self.save(store)
        return store

    # --- Backups ---
    def create_backup(self, retention: timedelta = config.BACKUP_RETENTION) -> StorageResult:
        """
        Write today's backup if it does not exist yet, then prune old ones.

        Calling this several times a day leaves exactly one file for the day.
        """
        target = self.backup_path_for(self.clock())
        result = StorageResult(path=target)
        store, read_result = self.read() if not target.exists() else (None, None)
        if read_result is not None and not read_result.ok:
            # no empty snapshot; the next tick tries again
            logger.warning("Skipping backup %s, data file could not be read", target)
            result = StorageResult.failure(StorageErrorKind.BACKUP_IO_FAILURE, target, read_result.error)
        elif store is not None:
            try:
                self._write_atomic(target, serialize(store))
                logger.info("Created backup %s", target)
            except OSError as exc:
                logger.warning("Could not create backup %s: %s", target, exc)
                self._discard(target.with_name(target.name + ".tmp"))
                result = StorageResult.failure(StorageErrorKind.BACKUP_IO_FAILURE, target, exc)
        self.prune_backups_older_than(retention)
        return self._record(result)

    def prune_backups_older_than(self, retention: timedelta) -> List[Path]:
        """Delete backup files last modified before ``now - retention``."""
        cutoff = self.clock().timestamp() - retention.total_seconds()
        removed: List[Path] = []
        try:
            entries = list(self.backup_dir.iterdir())
        except FileNotFoundError:
            return removed
        except OSError as exc:
            logger.warning("Could not list backups in %s: %s", self.backup_dir, exc)
            return removed
        for entry in entries:
            try:
                if not entry.is_file() or entry.stat().st_mtime >= cutoff:
                    continue
                entry.unlink()
                removed.append(entry)
                logger.info("Removed old backup %s", entry)
            except OSError as exc:
                logger.warning("Could not remove old backup %s: %s", entry, exc)
        return removed

    # --- Internals ---
    def _write_atomic(self, target: Path, text: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)

    def _load_for_update(self) -> Tuple[Store, bool]:
        """
        Load the store for a read-modify-write call.

        Writing is only safe when the file was read, was missing, or was
        corrupt and has been copied aside.  Otherwise the write is refused
        and reported as a write failure so the file on disk stays as it is.
        """
        store, result = self.read()
        if result.ok or (result.kind is StorageErrorKind.READ_CORRUPT and result.backup is not None):
            return store, True
        logger.error("Not writing %s: its current content could not be read or preserved", self.path)
        self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILURE, self.path, result.error))
        return store, False

    def _preserve_corrupt_file(self) -> Optional[Path]:
        try:
            shutil.copyfile(self.path, self.corrupt_backup_path)
        except OSError as exc:
            logger.warning("Could not copy unreadable data file aside: %s", exc)
            return None
        logger.warning("Unreadable data file copied to %s", self.corrupt_backup_path)
        return self.corrupt_backup_path

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Could not remove %s: %s", path, exc)

    def _record(self, result: StorageResult) -> StorageResult:
        self.last_result = result
        if not result.ok and self.on_error is not None:
            self.on_error(result)
        return result

