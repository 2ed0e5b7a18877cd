from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.intervals import TimeInterval, local_day, overlaps
from ..db import models
from . import audit_service, locks
from .busy_periods import APPROVED, busy_periods_for, of_source

logger = logging.getLogger(__name__)


def create_block(
    db: Session,
    interval: TimeInterval,
    reason: str,
    admin_id: int,
    *,
    settings: Settings | None = None,
) -> models.BlockedPeriod:
    settings = settings or get_settings()
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to block a time period")
    day = local_day(interval.start, settings.timezone)
    # End is exclusive, so a block ending at local midnight still belongs to `day`.
    if local_day(interval.end - timedelta(microseconds=1), settings.timezone) != day:
        raise ValidationError("A blocked period must start and end on the same day")

    with locks.schedule_guard(db, day):
        periods = busy_periods_for(db, day, tz=settings.timezone)
        for period in of_source(periods, APPROVED):
            if overlaps(period.interval, interval):
                raise ConflictError(
                    "Cannot block this time. It overlaps with an existing approved reservation "
                    f"(#{period.ref_id})",
                    source=APPROVED,
                    claim_id=period.ref_id,
                )
        block = models.BlockedPeriod(
            starts_at=interval.start,
            ends_at=interval.end,
            reason=reason,
            created_by_admin_id=admin_id,
        )
        db.add(block)
    db.refresh(block)
    logger.info("Blocked period created", extra={"block_id": block.id, "admin_id": admin_id})
    audit_service.record(
        db,
        actor_id=admin_id,
        action=(
            f"blocked time from {interval.start.isoformat()} to {interval.end.isoformat()}. "
            f"Reason: {reason}"
        ),
        payload={"block_id": block.id},
    )
    return block


def remove_block(db: Session, block_id: int, admin_id: int | None = None) -> models.BlockedPeriod:
    block = db.get(models.BlockedPeriod, block_id)
    if block is None:
        raise NotFoundError("Blocked period not found")
    if block.removed_at is not None:
        return block
    block.removed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(block)
    logger.info("Blocked period removed", extra={"block_id": block.id})
    audit_service.record(
        db,
        actor_id=admin_id,
        action=f"removed blocked period (ID: {block.id})",
        payload={"block_id": block.id},
    )
    return block


def list_blocks(db: Session, *, include_removed: bool = False) -> list[models.BlockedPeriod]:
    query = db.query(models.BlockedPeriod)
    if not include_removed:
        query = query.filter(models.BlockedPeriod.removed_at.is_(None))
    return query.order_by(models.BlockedPeriod.starts_at.asc()).all()


__all__ = ["create_block", "remove_block", "list_blocks"]
