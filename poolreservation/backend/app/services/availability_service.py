from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.intervals import TimeInterval, ensure_utc, local_clock, local_interval, overlaps, parse_clock
from .busy_periods import APPROVED, BLOCKED, LESSON, PENDING, busy_periods_for, of_source
from .capacity_policy import CapacityPolicy
from .settings_service import load_capacity_policy


@dataclass(slots=True)
class SlotStatus:
    time: str
    end_time: str
    starts_at: datetime
    ends_at: datetime
    current_guests: int
    lesson_participants: int
    total_occupancy: int
    max_capacity: int
    available_spots: int
    is_full: bool
    is_blocked: bool
    block_reason: str | None
    has_user_reservation: bool
    user_reservation_status: str | None
    available: bool


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def operating_hours(day: date, settings: Settings) -> TimeInterval:
    return local_interval(
        day,
        parse_clock(settings.pool_open),
        parse_clock(settings.pool_close),
        settings.timezone,
    )


def interval_for(day: date, start: str | time, end: str | time, settings: Settings) -> TimeInterval:
    """Absolute interval for ``start``-``end`` wall-clock times on the local ``day``."""
    if isinstance(start, str):
        start = parse_clock(start)
    if isinstance(end, str):
        end = parse_clock(end)
    return local_interval(day, start, end, settings.timezone)


def iter_slots(day: date, settings: Settings) -> Iterator[TimeInterval]:
    """Candidate slots from open to close; a trailing partial slot is dropped."""
    hours = operating_hours(day, settings)
    step = timedelta(minutes=settings.slot_duration_min)
    current = hours.start
    while current + step <= hours.end:
        yield TimeInterval(current, current + step)
        current += step


def capacity_windows(day: date, settings: Settings) -> Iterator[TimeInterval]:
    """Slots capacity is checked against, including any trailing partial slot before close."""
    hours = operating_hours(day, settings)
    current = hours.start
    for slot in iter_slots(day, settings):
        yield slot
        current = slot.end
    if current < hours.end:
        yield TimeInterval(current, hours.end)


def availability_for(
    db: Session,
    day: date,
    *,
    policy: CapacityPolicy | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
    user_id: int | None = None,
) -> list[SlotStatus]:
    settings = settings or get_settings()
    policy = policy or load_capacity_policy(db, settings)
    earliest = (ensure_utc(now) if now else _utc_now()) + timedelta(
        minutes=settings.booking_lead_time_min
    )

    periods = busy_periods_for(db, day, tz=settings.timezone, include_pending=True)
    blocks = of_source(periods, BLOCKED)
    lessons = of_source(periods, LESSON)
    approved = of_source(periods, APPROVED)
    own = [
        period
        for period in of_source(periods, APPROVED, PENDING)
        if user_id is not None and period.user_id == user_id
    ]

    statuses: list[SlotStatus] = []
    for slot in iter_slots(day, settings):
        block = next((period for period in blocks if overlaps(period.interval, slot)), None)
        lesson_participants = policy.occupancy_of(lessons, slot)
        current_guests = policy.occupancy_of(approved, slot)
        # request_reservation rejects any overlap with an approved reservation
        booked = any(overlaps(period.interval, slot) for period in approved)
        max_capacity = policy.max_occupancy_for(slot.start)
        total = current_guests + lesson_participants
        is_full = total >= max_capacity
        mine = next((period for period in own if overlaps(period.interval, slot)), None)
        statuses.append(
            SlotStatus(
                time=local_clock(slot.start, settings.timezone).strftime("%H:%M"),
                end_time=local_clock(slot.end, settings.timezone).strftime("%H:%M"),
                starts_at=slot.start,
                ends_at=slot.end,
                current_guests=current_guests,
                lesson_participants=lesson_participants,
                total_occupancy=total,
                max_capacity=max_capacity,
                available_spots=max(0, max_capacity - total),
                is_full=is_full,
                is_blocked=block is not None,
                block_reason=block.reason if block else None,
                has_user_reservation=mine is not None,
                user_reservation_status=mine.source if mine else None,
                available=block is None and not is_full and not booked and slot.start >= earliest,
            )
        )
    return statuses


__all__ = [
    "SlotStatus",
    "availability_for",
    "interval_for",
    "capacity_windows",
    "iter_slots",
    "operating_hours",
]
