from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.intervals import TimeInterval, day_window
from ..db import models

APPROVED = "approved"
PENDING = "pending"
BLOCKED = "blocked"
LESSON = "lesson"


@dataclass(frozen=True, slots=True)
class BusyPeriod:
    interval: TimeInterval
    source: str
    ref_id: int
    count: int = 0
    reason: str | None = None
    user_id: int | None = None

    def describe(self) -> str:
        if self.source == BLOCKED:
            return f"blocked period #{self.ref_id} ({self.reason})"
        if self.source == LESSON:
            return f"lesson #{self.ref_id}"
        return f"{self.source} reservation #{self.ref_id}"


def _overlapping(stmt, model, window: TimeInterval):
    # Coarse SQL prefilter; callers decide overlap with intervals.overlaps.
    return stmt.where(model.starts_at < window.end, model.ends_at > window.start)


def busy_periods_for(
    db: Session,
    day: date,
    *,
    tz: str,
    include_pending: bool = False,
    exclude_reservation_id: int | None = None,
) -> list[BusyPeriod]:
    """Snapshot every claim on the pool overlapping the local ``day``, sorted by start."""
    window = day_window(day, tz)
    statuses = [models.ReservationStatus.approved]
    if include_pending:
        statuses.append(models.ReservationStatus.pending)

    reservation_stmt = _overlapping(
        select(models.Reservation), models.Reservation, window
    ).where(models.Reservation.status.in_(statuses))
    if exclude_reservation_id is not None:
        reservation_stmt = reservation_stmt.where(models.Reservation.id != exclude_reservation_id)
    block_stmt = _overlapping(
        select(models.BlockedPeriod), models.BlockedPeriod, window
    ).where(models.BlockedPeriod.removed_at.is_(None))
    lesson_stmt = _overlapping(select(models.Lesson), models.Lesson, window)

    periods: list[BusyPeriod] = []
    for reservation in db.execute(reservation_stmt).scalars():
        periods.append(
            BusyPeriod(
                interval=TimeInterval.of(reservation),
                source=APPROVED if reservation.status == models.ReservationStatus.approved else PENDING,
                ref_id=reservation.id,
                count=reservation.guest_count,
                user_id=reservation.user_id,
            )
        )
    for block in db.execute(block_stmt).scalars():
        periods.append(
            BusyPeriod(
                interval=TimeInterval.of(block),
                source=BLOCKED,
                ref_id=block.id,
                reason=block.reason,
            )
        )
    for lesson in db.execute(lesson_stmt).scalars():
        periods.append(
            BusyPeriod(
                interval=TimeInterval.of(lesson),
                source=LESSON,
                ref_id=lesson.id,
                count=lesson.participant_count,
            )
        )
    periods.sort(key=lambda period: (period.interval.start, period.ref_id))
    return periods


def of_source(periods: list[BusyPeriod], *sources: str) -> list[BusyPeriod]:
    return [period for period in periods if period.source in sources]


__all__ = [
    "APPROVED",
    "PENDING",
    "BLOCKED",
    "LESSON",
    "BusyPeriod",
    "busy_periods_for",
    "of_source",
]
