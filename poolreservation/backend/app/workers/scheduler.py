from datetime import datetime, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.constants import REMINDER_LEAD, REMINDER_WINDOW
from ..core.intervals import ensure_utc
from ..db import models
from ..db.session import SessionLocal
from ..services import notification_service, reservation_service
from ..services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


def remind_upcoming(
    db: Session,
    now: datetime,
    *,
    settings: Settings | None = None,
    notifier: NotificationDispatcher | None = None,
) -> list[models.Reservation]:
    """Remind renters of approved reservations starting 23 to 24 hours from ``now``."""
    settings = settings or get_settings()
    now = ensure_utc(now)
    window_end = now + REMINDER_LEAD
    window_start = window_end - REMINDER_WINDOW
    upcoming = (
        db.query(models.Reservation)
        .filter(models.Reservation.status == models.ReservationStatus.approved)
        .filter(models.Reservation.starts_at > window_start)
        .filter(models.Reservation.starts_at <= window_end)
        .all()
    )
    dispatcher = notifier or notification_service.get_dispatcher(settings)
    for reservation in upcoming:
        logger.info("Reminder for reservation", extra={"reservation_id": reservation.id})
        notification_service.notify_renter(
            db,
            dispatcher,
            reservation,
            reservation.user,
            models.NotificationKind.reminder,
            settings,
        )
    return upcoming


def expire_pending(
    db: Session,
    now: datetime,
    *,
    settings: Settings | None = None,
) -> list[models.Reservation]:
    """Cancel pending requests nobody decided on before they started."""
    settings = settings or get_settings()
    now = ensure_utc(now)
    stale = (
        db.query(models.Reservation)
        .filter(models.Reservation.status == models.ReservationStatus.pending)
        .filter(models.Reservation.starts_at <= now)
        .all()
    )
    expired = [
        reservation
        for reservation in stale
        if reservation_service.expire_request(db, reservation, now, settings=settings)
    ]
    for reservation in expired:
        notification_service.record_in_app(
            db,
            reservation.user_id,
            models.NotificationKind.reservation_cancelled,
            "Your reservation request expired before an administrator reviewed it.",
        )
    return expired


def send_reminders() -> None:
    with SessionLocal() as db:
        remind_upcoming(db, datetime.now(timezone.utc))


def expire_stale_requests() -> None:
    with SessionLocal() as db:
        expire_pending(db, datetime.now(timezone.utc))


def get_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(send_reminders, "interval", hours=1)
    scheduler.add_job(expire_stale_requests, "interval", minutes=5)
    return scheduler
