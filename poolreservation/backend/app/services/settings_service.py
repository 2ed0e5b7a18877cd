from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.constants import DEFAULT_CAPACITY_BANDS
from ..core.errors import ValidationError
from ..db import models
from . import audit_service
from .capacity_policy import Band, CapacityPolicy

logger = logging.getLogger(__name__)


def get_capacity_bands(db: Session) -> list[models.CapacityBand]:
    return (
        db.query(models.CapacityBand)
        .order_by(models.CapacityBand.starts_at.asc())
        .all()
    )


def load_capacity_policy(db: Session, settings: Settings | None = None) -> CapacityPolicy:
    settings = settings or get_settings()
    return CapacityPolicy.from_rows(get_capacity_bands(db), settings.timezone)


def _validate_bands(bands: Sequence[Band]) -> list[Band]:
    if not bands:
        raise ValidationError("At least one capacity band is required")
    ordered = sorted(bands, key=lambda band: band.starts_at)
    for band in ordered:
        if band.max_occupancy < 1:
            raise ValidationError("All capacity slots must be positive integers")
        if not band.starts_at < band.ends_at:
            raise ValidationError(
                f"Capacity band {band.starts_at:%H:%M}-{band.ends_at:%H:%M} must end after it starts"
            )
    for previous, current in zip(ordered, ordered[1:]):
        if current.starts_at < previous.ends_at:
            raise ValidationError(
                f"Capacity bands {previous.starts_at:%H:%M}-{previous.ends_at:%H:%M} and "
                f"{current.starts_at:%H:%M}-{current.ends_at:%H:%M} overlap"
            )
    return ordered


def replace_capacity_bands(
    db: Session,
    bands: Iterable[Band],
    *,
    admin_id: int | None = None,
) -> list[models.CapacityBand]:
    ordered = _validate_bands(list(bands))
    db.query(models.CapacityBand).delete()
    for position, band in enumerate(ordered, start=1):
        db.add(
            models.CapacityBand(
                position=position,
                starts_at=band.starts_at,
                ends_at=band.ends_at,
                max_occupancy=band.max_occupancy,
            )
        )
    db.commit()
    summary = ", ".join(
        f"{band.starts_at:%H:%M}-{band.ends_at:%H:%M}={band.max_occupancy}" for band in ordered
    )
    logger.info("Capacity bands replaced: %s", summary)
    audit_service.record(
        db,
        actor_id=admin_id,
        action=f"Updated pool capacity settings to: {summary}.",
    )
    return get_capacity_bands(db)


def ensure_default_capacity_bands(db: Session, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    if db.query(models.CapacityBand).count():
        logger.info("Capacity bands already configured")
        return
    for position, (starts_at, ends_at) in enumerate(DEFAULT_CAPACITY_BANDS, start=1):
        db.add(
            models.CapacityBand(
                position=position,
                starts_at=starts_at,
                ends_at=ends_at,
                max_occupancy=settings.default_capacity,
            )
        )
    db.commit()
    logger.info("Seeded default capacity bands with capacity %s", settings.default_capacity)


__all__ = [
    "get_capacity_bands",
    "load_capacity_policy",
    "replace_capacity_bands",
    "ensure_default_capacity_bands",
]
