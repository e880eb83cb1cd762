"""
Paths and policy constants for the Stempeluhr time tracker.

The data directory follows the per-user application data location of the
host platform and can be overridden with ``STEMPELUHR_DATA_DIR``, which is
also how the tests and portable installs point the app at another folder.
"""
from __future__ import annotations

import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional


APP_NAME = "Stempeluhr"

DATA_DIR_ENV = "STEMPELUHR_DATA_DIR"
DATA_FILE_NAME = "timetracker.json"
BACKUP_DIR_NAME = "backups"

# Backups older than this are removed by the daily prune pass.
BACKUP_RETENTION = timedelta(days=30)

# Baseline used for the overtime figure.
HOURS_PER_WORKDAY = 8

# Timer intervals (milliseconds) for the host's repeating tasks.
DISPLAY_TICK_MS = 1000
BACKUP_TICK_MS = 60_000


def default_data_dir() -> Path:
    """Return the directory holding ``timetracker.json`` and ``backups/``."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


def data_file(data_dir: Optional[Path] = None) -> Path:
    return (data_dir or default_data_dir()) / DATA_FILE_NAME


def backup_dir(data_dir: Optional[Path] = None) -> Path:
    return (data_dir or default_data_dir()) / BACKUP_DIR_NAME
