"""
Data model for the Stempeluhr time tracker.

Timestamps are integer milliseconds since the epoch and durations are
integer milliseconds, matching the layout of ``timetracker.json``.  Each
persisted type knows how to turn itself into the plain dictionary written
to disk and back again; key order in ``to_dict`` is the on-disk key order.
Keys this version does not know about are kept in ``extra`` and written
back after the known ones, so a file touched by a newer build survives a
load/save cycle here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_SETTINGS: Dict[str, Any] = {"notifyOnHour": True}

_PAUSE_KEYS = ("start", "end", "duration")
_SESSION_KEYS = ("start", "end", "duration", "pauses")


def _unknown_keys(raw: Dict[str, Any], known) -> Dict[str, Any]:
    return {k: v for k, v in raw.items() if k not in known}


@dataclass
class Pause:
    start: int
    end: int
    duration: int
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def between(cls, start: int, end: int) -> "Pause":
        """Build a pause from its bounds; ``end`` never precedes ``start``."""
        end = max(start, end)
        return cls(start=start, end=end, duration=end - start)

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "duration": self.duration, **self.extra}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Pause":
        return cls(
            start=int(raw["start"]),
            end=int(raw["end"]),
            duration=int(raw["duration"]),
            extra=_unknown_keys(raw, _PAUSE_KEYS),
        )


@dataclass
class Session:
    start: int
    end: int
    duration: int
    pauses: List[Pause] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def pause_time(self) -> int:
        return sum(p.duration for p in self.pauses)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "pauses": [p.to_dict() for p in self.pauses],
            **self.extra,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Session":
        return cls(
            start=int(raw["start"]),
            end=int(raw["end"]),
            duration=int(raw["duration"]),
            pauses=[Pause.from_dict(p) for p in raw.get("pauses") or []],
            extra=_unknown_keys(raw, _SESSION_KEYS),
        )


@dataclass
class Store:
    """The whole persisted document: sessions in append order plus settings."""

    sessions: List[Session] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SETTINGS))

    @property
    def notify_on_hour(self) -> bool:
        return bool(self.settings.get("notifyOnHour", True))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessions": [s.to_dict() for s in self.sessions],
            "settings": dict(self.settings),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Store":
        if not isinstance(raw, dict):
            raise TypeError(f"Store document must be an object, got {type(raw).__name__}")
        settings = dict(DEFAULT_SETTINGS)
        # Keep any unknown settings so they survive a load/save cycle.
        settings.update(raw.get("settings") or {})
        return cls(
            sessions=[Session.from_dict(s) for s in raw.get("sessions") or []],
            settings=settings,
        )


@dataclass
class ActiveSession:
    """Working state of the session currently being tracked (never persisted)."""

    start: int
    pauses: List[Pause] = field(default_factory=list)
    is_paused: bool = False
    pause_start: Optional[int] = None
    total_pause_time: int = 0


@dataclass
class CurrentSession:
    """Snapshot returned to the host for display."""

    active: bool
    is_paused: bool = False
    duration: int = 0
    start: Optional[int] = None
