"""
TaskPulse Time Ranges — Symbolic range keys resolved into concrete windows.

    resolve_time_range("7d")  →  TimeRange(start=now-7d, end=now)

Unknown keys fall back to the default 7-day window. Resolution is pure: the
same key and the same ``now`` always give the same window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Dict, List, Optional

logger = logging.getLogger("taskpulse.analytics.time_range")

DEFAULT_RANGE_KEY = "7d"

RANGE_DURATIONS: Dict[str, timedelta] = {
    "1d": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}

RANGE_DISPLAY_NAMES: Dict[str, str] = {
    "1d": "Last 24 Hours",
    "7d": "Last 7 Days",
    "30d": "Last 30 Days",
    "90d": "Last 90 Days",
    "1y": "Last Year",
}


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeRange:
    """A concrete [start, end] window. Both endpoints are inclusive."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"TimeRange start {self.start} is after end {self.end}")

    @property
    def days(self) -> int:
        """Calendar-day span; a 7-day window touches 8 calendar days."""
        return (self.end.date() - self.start.date()).days

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def day_starts(self) -> List[datetime]:
        """Midnight of every calendar day from start.date() to end.date() inclusive."""
        first = datetime.combine(self.start.date(), time.min, tzinfo=self.start.tzinfo)
        return [first + timedelta(days=i) for i in range(self.days + 1)]

    def contains(self, ts: Optional[datetime]) -> bool:
        if ts is None:
            return False
        return self.start <= ensure_utc(ts) <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def normalize_range_key(range_key: Optional[str]) -> str:
    """Return range_key when it is known, otherwise the default key."""
    if range_key in RANGE_DURATIONS:
        return range_key
    logger.debug(f"Unknown range key {range_key!r}, falling back to {DEFAULT_RANGE_KEY}")
    return DEFAULT_RANGE_KEY


def resolve_time_range(range_key: Optional[str], now: Optional[datetime] = None) -> TimeRange:
    """
    Resolve a range key to a concrete window ending at ``now``.

    Args:
        range_key: One of 1d / 7d / 30d / 90d / 1y. Anything else means 7d.
        now: Anchor time. Defaults to the current UTC time; naive values are UTC.

    Returns:
        TimeRange(start=now - duration, end=now).
    """
    end = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    duration = RANGE_DURATIONS[normalize_range_key(range_key)]
    return TimeRange(start=end - duration, end=end)


def display_name(range_key: Optional[str]) -> str:
    """Dashboard label for a range key ("Last 7 Days", ...)."""
    return RANGE_DISPLAY_NAMES[normalize_range_key(range_key)]


def available_ranges() -> List[str]:
    return list(RANGE_DURATIONS)
