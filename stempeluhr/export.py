"""CSV export of recorded sessions.

One row per session with the local date, start and end time, worked hours
and the number of pauses.  Column names are the German headings used by
the rest of the application.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd  # type: ignore[import-not-found]

from stempeluhr.models import Session
from stempeluhr.utils import format_hours, local_datetime


logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Datum", "Start", "Ende", "Dauer (Stunden)", "Pausen"]


def sessions_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """Build the export table; every cell is already a display string."""
    rows = []
    for s in sessions:
        start = local_datetime(s.start)
        end = local_datetime(s.end)
        rows.append(
            {
                "Datum": start.strftime("%d.%m.%Y"),
                "Start": start.strftime("%H:%M:%S"),
                "Ende": end.strftime("%H:%M:%S"),
                "Dauer (Stunden)": format_hours(s.duration),
                "Pausen": len(s.pauses),
            }
        )
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def sessions_to_csv(sessions: Iterable[Session]) -> str:
    return sessions_frame(sessions).to_csv(index=False, lineterminator="\n")


def export_csv(sessions: Iterable[Session], path: Path) -> Optional[Path]:
    """Write the CSV to ``path``; returns ``None`` if the file could not be written."""
    path = Path(path)
    try:
        path.write_text(sessions_to_csv(sessions), encoding="utf-8")
    except OSError as exc:
        logger.error("CSV export to %s failed: %s", path, exc)
        return None
    logger.info("Exported sessions to %s", path)
    return path
