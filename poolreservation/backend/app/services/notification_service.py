from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.intervals import ensure_utc
from ..db import models

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


@dataclass(slots=True)
class SendResult:
    success: bool
    error: str | None = None


class NotificationDispatcher(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> SendResult:
        ...


class BrevoDispatcher:
    """Transactional e-mail through the Brevo HTTP API."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, recipient: str, subject: str, body: str) -> SendResult:
        if not self.settings.brevo_api_key:
            logger.warning("Brevo API key is not configured; skipping e-mail notification")
            return SendResult(success=False, error="not configured")
        if not recipient:
            return SendResult(success=False, error="missing recipient")
        try:
            with httpx.Client(timeout=10) as client:
                response = client.post(
                    BREVO_API_URL,
                    headers={"api-key": self.settings.brevo_api_key, "accept": "application/json"},
                    json={
                        "sender": {
                            "email": self.settings.brevo_sender_email,
                            "name": self.settings.brevo_sender_name,
                        },
                        "to": [{"email": recipient}],
                        "subject": subject,
                        "htmlContent": body,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.exception(
                "Failed to send e-mail notification",
                extra={"recipient": recipient},
            )
            return SendResult(success=False, error=str(exc))
        logger.info("Notification sent to %s for: %s", recipient, subject)
        return SendResult(success=True)


def get_dispatcher(settings: Settings | None = None) -> NotificationDispatcher:
    return BrevoDispatcher(settings or get_settings())


def deliver(
    dispatcher: NotificationDispatcher, recipient: str | None, subject: str, body: str
) -> SendResult:
    """Fire-and-forget send: never raises, failures are only logged."""
    if not recipient:
        logger.warning("No recipient for notification %r; skipping", subject)
        return SendResult(success=False, error="missing recipient")
    try:
        result = dispatcher.send(recipient, subject, body)
    except Exception as exc:
        logger.exception("Notification dispatcher failed", extra={"recipient": recipient})
        return SendResult(success=False, error=str(exc))
    if not result.success:
        logger.warning("Notification to %s not delivered: %s", recipient, result.error)
    return result


def record_in_app(
    db: Session, user_id: int, kind: models.NotificationKind, message: str
) -> None:
    try:
        db.add(models.Notification(user_id=user_id, kind=kind, message=message))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store in-app notification", extra={"user_id": user_id})


def format_local(moment: datetime, settings: Settings, pattern: str = "%b %d, %Y %I:%M %p") -> str:
    return moment.astimezone(ZoneInfo(settings.timezone)).strftime(pattern)


def _describe(reservation: models.Reservation, settings: Settings) -> str:
    starts_at = format_local(ensure_utc(reservation.starts_at), settings, "%A, %B %d, %Y %I:%M %p")
    ends_at = format_local(ensure_utc(reservation.ends_at), settings, "%I:%M %p")
    return f"{starts_at} - {ends_at}"


def notify_admin_of_request(
    db: Session,
    dispatcher: NotificationDispatcher,
    reservation: models.Reservation,
    renter: models.User,
    settings: Settings,
) -> None:
    when = _describe(reservation, settings)
    deliver(
        dispatcher,
        settings.admin_notification_email,
        f"[NEW REQUEST] Pool Booking from {renter.full_name}",
        (
            "<h1>New Reservation Request</h1>"
            f"<p>A new reservation request has been submitted by {renter.full_name} "
            f"(User ID: {renter.id}).</p>"
            f"<p><strong>Time:</strong> {when}</p>"
            f"<p><strong>Guests:</strong> {reservation.guest_count}</p>"
            "<p>Please review and approve or reject this request.</p>"
        ),
    )
    record_in_app(
        db,
        renter.id,
        models.NotificationKind.reservation_pending,
        f"Your reservation request for {when} has been submitted and is pending admin approval.",
    )


def notify_renter(
    db: Session,
    dispatcher: NotificationDispatcher,
    reservation: models.Reservation,
    renter: models.User,
    kind: models.NotificationKind,
    settings: Settings,
    *,
    reason: str | None = None,
) -> None:
    when = _describe(reservation, settings)
    greeting = f"<p>Dear {renter.first_name or renter.full_name},</p>"
    reason_block = f"<p><strong>Reason:</strong> {reason}</p>" if reason else ""
    if kind == models.NotificationKind.reservation_approved:
        if reservation.source == models.ReservationSource.admin:
            subject = "[CONFIRMED] Your Pool Reservation"
            headline = "A pool reservation has been created and confirmed for you by our admin team."
        else:
            subject = "Your Pool Reservation Has Been Approved"
            headline = "Great news! Your pool reservation has been approved."
        message = f"Your reservation for {when} has been approved. We look forward to seeing you!"
    elif kind == models.NotificationKind.reservation_rejected:
        subject = "Your Pool Reservation Has Been Declined"
        headline = "We regret to inform you that your pool reservation has been declined."
        message = f"Your reservation for {when} has been rejected. Please try booking a different time slot."
    elif kind == models.NotificationKind.reservation_cancelled:
        subject = "Your Pool Reservation Has Been Cancelled"
        headline = "Your pool reservation has been cancelled."
        message = f"Your reservation for {when} has been cancelled."
    else:
        subject = "Upcoming Pool Reservation"
        headline = "This is a reminder of your upcoming pool reservation."
        message = f"Reminder: your reservation for {when} is coming up."
    if reason:
        message = f"{message} Reason: {reason}"

    deliver(
        dispatcher,
        renter.email,
        subject,
        (
            f"{greeting}<p>{headline}</p>"
            f"<p><strong>Date &amp; Time:</strong> {when}</p>"
            f"<p><strong>Guests:</strong> {reservation.guest_count}</p>"
            f"{reason_block}"
        ),
    )
    record_in_app(db, renter.id, kind, message)


def list_for_user(db: Session, user_id: int, *, page: int = 1, limit: int = 10) -> tuple[int, list[models.Notification]]:
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    total = query.count()
    items = (
        query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return total, items


def mark_read(db: Session, user_id: int, notification_id: int) -> models.Notification | None:
    notification = db.get(models.Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
