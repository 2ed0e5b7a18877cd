"""Half-open time interval helpers.

``overlaps`` is the only overlap predicate in the code base; services must not
compare interval endpoints themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .errors import ValidationError


def ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class TimeInterval:
    """``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if not self.start < self.end:
            raise ValidationError("End time must be after start time")

    @classmethod
    def of(cls, obj) -> "TimeInterval":
        """Build from any row exposing ``starts_at``/``ends_at``."""
        return cls(obj.starts_at, obj.ends_at)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def contains(interval: TimeInterval, point: datetime) -> bool:
    point = ensure_utc(point)
    return interval.start <= point < interval.end


def covers(outer: TimeInterval, inner: TimeInterval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def parse_clock(value: str) -> time:
    """Parse ``HH:MM`` (or ``HH:MM:SS``) wall-clock strings."""
    try:
        return time.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM") from exc


def local_interval(day: date, start: time, end: time, tz: str) -> TimeInterval:
    zone = ZoneInfo(tz)
    return TimeInterval(
        datetime.combine(day, start, tzinfo=zone),
        datetime.combine(day, end, tzinfo=zone),
    )


def day_window(day: date, tz: str) -> TimeInterval:
    zone = ZoneInfo(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return TimeInterval(start, end)


def local_day(moment: datetime, tz: str) -> date:
    return ensure_utc(moment).astimezone(ZoneInfo(tz)).date()


def local_clock(moment: datetime, tz: str) -> time:
    return ensure_utc(moment).astimezone(ZoneInfo(tz)).time()


__all__ = [
    "TimeInterval",
    "overlaps",
    "contains",
    "covers",
    "ensure_utc",
    "parse_clock",
    "local_interval",
    "day_window",
    "local_day",
    "local_clock",
]
