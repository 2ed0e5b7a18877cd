from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.errors import NotFoundError, ValidationError
from ..core.intervals import TimeInterval, local_clock, local_day, overlaps
from ..db import models
from . import audit_service
from .availability_service import capacity_windows
from .busy_periods import APPROVED, LESSON, PENDING, busy_periods_for, of_source
from .settings_service import load_capacity_policy

logger = logging.getLogger(__name__)


def _capacity_warnings(
    db: Session,
    interval: TimeInterval,
    participant_count: int,
    settings: Settings,
) -> list[str]:
    """Slots the new lesson would push over their configured maximum.

    Lessons are never rejected for capacity; the admin is told instead.
    """
    policy = load_capacity_policy(db, settings)
    day = local_day(interval.start, settings.timezone)
    claims = of_source(
        busy_periods_for(db, day, tz=settings.timezone, include_pending=True),
        APPROVED,
        PENDING,
        LESSON,
    )
    warnings: list[str] = []
    for slot in capacity_windows(day, settings):
        if not overlaps(slot, interval):
            continue
        limit = policy.max_occupancy_for(slot.start)
        label = local_clock(slot.start, settings.timezone).strftime("%H:%M")
        if participant_count > limit:
            warnings.append(
                f"{label}: lesson alone ({participant_count}) exceeds capacity {limit}"
            )
            continue
        occupied = policy.occupancy_of(claims, slot)
        if occupied + participant_count > limit:
            warnings.append(
                f"{label}: {occupied} already claimed plus {participant_count} participants "
                f"exceeds capacity {limit}"
            )
    return warnings


def create_lesson(
    db: Session,
    interval: TimeInterval,
    participant_count: int,
    instructor_name: str | None = None,
    notes: str | None = None,
    admin_id: int | None = None,
    *,
    settings: Settings | None = None,
) -> tuple[models.Lesson, list[str]]:
    settings = settings or get_settings()
    if participant_count < 1:
        raise ValidationError("Participant count must be at least 1")
    day = local_day(interval.start, settings.timezone)
    if local_day(interval.end - timedelta(microseconds=1), settings.timezone) != day:
        raise ValidationError("A lesson must start and end on the same day")

    warnings = _capacity_warnings(db, interval, participant_count, settings)
    lesson = models.Lesson(
        starts_at=interval.start,
        ends_at=interval.end,
        participant_count=participant_count,
        instructor_name=instructor_name,
        notes=notes,
        created_by=admin_id,
    )
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    for warning in warnings:
        logger.warning("Lesson %s over capacity at %s", lesson.id, warning)
    audit_service.record(
        db,
        actor_id=admin_id,
        action=(
            f"created swimming lesson (ID: {lesson.id}) for {participant_count} participant(s)"
            + (f" with instructor {instructor_name}" if instructor_name else "")
        ),
        payload={"lesson_id": lesson.id, "warnings": warnings},
    )
    return lesson, warnings


def delete_lesson(db: Session, lesson_id: int, admin_id: int | None = None) -> None:
    lesson = db.get(models.Lesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    db.delete(lesson)
    db.commit()
    logger.info("Lesson deleted", extra={"lesson_id": lesson_id})
    audit_service.record(
        db,
        actor_id=admin_id,
        action=f"deleted swimming lesson (ID: {lesson_id})",
        payload={"lesson_id": lesson_id},
    )


def list_lessons(db: Session) -> list[models.Lesson]:
    return db.query(models.Lesson).order_by(models.Lesson.starts_at.asc()).all()


__all__ = ["create_lesson", "delete_lesson", "list_lessons"]
