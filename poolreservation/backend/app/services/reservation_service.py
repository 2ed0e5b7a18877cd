from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.constants import REQUEST_EXPIRED_REASON, SYSTEM_ACTOR
from ..core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PendingConflictError,
    ValidationError,
)
from ..core.intervals import TimeInterval, covers, ensure_utc, local_day, overlaps
from ..core.security import IdentityContext
from ..db import models
from ..db.models.reservation import ReservationSource, ReservationStatus
from . import audit_service, locks, notification_service
from .availability_service import capacity_windows, operating_hours
from .busy_periods import APPROVED, BLOCKED, LESSON, PENDING, BusyPeriod, busy_periods_for, of_source
from .capacity_policy import CapacityPolicy
from .notification_service import NotificationDispatcher
from .settings_service import load_capacity_policy

logger = logging.getLogger(__name__)

# Terminal states never leave; approved may only become cancelled.
TRANSITIONS = {
    ReservationStatus.pending: {
        ReservationStatus.approved,
        ReservationStatus.rejected,
        ReservationStatus.cancelled,
    },
    ReservationStatus.approved: {ReservationStatus.cancelled},
    ReservationStatus.rejected: set(),
    ReservationStatus.cancelled: set(),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _transition(reservation: models.Reservation, target: ReservationStatus) -> None:
    if target not in TRANSITIONS[reservation.status]:
        raise InvalidStateError(f"Reservation is already {reservation.status.value}")
    reservation.status = target


def _get_reservation(db: Session, reservation_id: int) -> models.Reservation:
    reservation = db.get(models.Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    return reservation


def _validate_window(interval: TimeInterval, settings: Settings, now: datetime) -> None:
    if interval.start < now:
        raise ValidationError("Cannot book a reservation in the past")
    if interval.start < now + timedelta(minutes=settings.booking_lead_time_min):
        raise ValidationError(
            f"Reservations must be made at least {settings.booking_lead_time_min} minutes in advance"
        )
    hours = operating_hours(local_day(interval.start, settings.timezone), settings)
    if not covers(hours, interval):
        raise ValidationError(
            f"Reservations must fall within pool hours {settings.pool_open}-{settings.pool_close}"
        )


def _ensure_no_pending_duplicate(
    periods: list[BusyPeriod], renter_id: int, interval: TimeInterval
) -> None:
    for period in of_source(periods, PENDING):
        if period.user_id == renter_id and overlaps(period.interval, interval):
            raise PendingConflictError(
                "You already have a pending reservation request for this time slot. "
                "Please wait for admin approval.",
                source=PENDING,
                claim_id=period.ref_id,
            )


def _ensure_bookable(
    periods: list[BusyPeriod],
    interval: TimeInterval,
    guest_count: int,
    policy: CapacityPolicy,
    settings: Settings,
) -> None:
    """Overlap and capacity gate shared by request, approval and admin creation."""
    for period in of_source(periods, APPROVED, BLOCKED):
        if not overlaps(period.interval, interval):
            continue
        if period.source == BLOCKED:
            message = f"This time slot is blocked by the administrator: {period.reason}"
        else:
            message = f"Conflict detected. This time slot overlaps {period.describe()}"
        raise ConflictError(message, source=period.source, claim_id=period.ref_id)

    day = local_day(interval.start, settings.timezone)
    policy.ensure_fits(
        capacity_windows(day, settings),
        of_source(periods, APPROVED, PENDING, LESSON),
        interval,
        guest_count,
    )


def request_reservation(
    db: Session,
    renter_id: int,
    interval: TimeInterval,
    guest_count: int,
    *,
    settings: Settings | None = None,
    policy: CapacityPolicy | None = None,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> models.Reservation:
    settings = settings or get_settings()
    now = ensure_utc(now) if now else _utc_now()

    renter = db.get(models.User, renter_id)
    if renter is None:
        raise NotFoundError("User not found")
    if renter.role != models.UserRole.renter:
        raise ForbiddenError("Only renters can request reservations")
    if guest_count < 1:
        raise ValidationError("Guest count must be at least 1")
    guest_cap = renter.max_guests if renter.max_guests is not None else settings.default_max_guests
    if guest_count > guest_cap:
        raise ValidationError(
            f"You are limited to a maximum of {guest_cap} guest(s) per reservation"
        )
    _validate_window(interval, settings, now)

    day = local_day(interval.start, settings.timezone)
    with locks.schedule_guard(db, day):
        capacity = policy or load_capacity_policy(db, settings)
        periods = busy_periods_for(db, day, tz=settings.timezone, include_pending=True)
        _ensure_no_pending_duplicate(periods, renter.id, interval)
        _ensure_bookable(periods, interval, guest_count, capacity, settings)
        reservation = models.Reservation(
            user_id=renter.id,
            starts_at=interval.start,
            ends_at=interval.end,
            guest_count=guest_count,
            status=ReservationStatus.pending,
            source=ReservationSource.renter,
        )
        db.add(reservation)
    db.refresh(reservation)
    logger.info(
        "Reservation requested",
        extra={"reservation_id": reservation.id, "user_id": renter.id},
    )

    notification_service.notify_admin_of_request(
        db, notifier or notification_service.get_dispatcher(settings), reservation, renter, settings
    )
    return reservation


def decide(
    db: Session,
    reservation_id: int,
    admin_id: int,
    outcome: ReservationStatus | str,
    reason: str | None = None,
    *,
    settings: Settings | None = None,
    policy: CapacityPolicy | None = None,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> models.Reservation:
    settings = settings or get_settings()
    now = ensure_utc(now) if now else _utc_now()
    try:
        outcome = ReservationStatus(outcome)
    except ValueError as exc:
        raise ValidationError("Invalid status provided") from exc
    if outcome not in (ReservationStatus.approved, ReservationStatus.rejected):
        raise ValidationError("Invalid status provided")

    reservation = _get_reservation(db, reservation_id)
    interval = TimeInterval.of(reservation)
    day = local_day(interval.start, settings.timezone)
    with locks.schedule_guard(db, day):
        db.refresh(reservation)
        if reservation.status != ReservationStatus.pending:
            raise InvalidStateError(f"Reservation is already {reservation.status.value}")
        if outcome == ReservationStatus.approved:
            if ensure_utc(reservation.starts_at) <= now:
                raise InvalidStateError("Cannot approve a reservation that has already started")
            capacity = policy or load_capacity_policy(db, settings)
            periods = busy_periods_for(
                db,
                day,
                tz=settings.timezone,
                include_pending=True,
                exclude_reservation_id=reservation.id,
            )
            _ensure_bookable(periods, interval, reservation.guest_count, capacity, settings)
        else:
            reservation.rejection_reason = reason
        _transition(reservation, outcome)
        reservation.decided_at = now
        reservation.decided_by = admin_id
    db.refresh(reservation)
    logger.info(
        "Reservation %s %s by admin %s", reservation.id, outcome.value, admin_id
    )

    kind = (
        models.NotificationKind.reservation_approved
        if outcome == ReservationStatus.approved
        else models.NotificationKind.reservation_rejected
    )
    notification_service.notify_renter(
        db,
        notifier or notification_service.get_dispatcher(settings),
        reservation,
        reservation.user,
        kind,
        settings,
        reason=reason if outcome == ReservationStatus.rejected else None,
    )
    audit_service.record(
        db,
        actor_id=admin_id,
        action=f"{outcome.value} reservation {reservation.id} for user {reservation.user_id}.",
        payload={"reservation_id": reservation.id, "reason": reason},
    )
    return reservation


def cancel(
    db: Session,
    reservation_id: int,
    identity: IdentityContext,
    reason: str | None = None,
    *,
    settings: Settings | None = None,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> models.Reservation:
    settings = settings or get_settings()
    now = ensure_utc(now) if now else _utc_now()
    reason = reason.strip() if reason else None

    reservation = _get_reservation(db, reservation_id)
    if identity.is_admin:
        if not reason:
            raise ValidationError("Cancellation reason is required")
    elif identity.role == models.UserRole.renter.value:
        if reservation.user_id != identity.user_id:
            raise ForbiddenError("You can only cancel your own reservations")
    else:
        raise ForbiddenError("Forbidden")

    day = local_day(reservation.starts_at, settings.timezone)
    with locks.schedule_guard(db, day):
        db.refresh(reservation)
        if identity.is_admin:
            if reservation.status != ReservationStatus.approved:
                raise InvalidStateError(
                    "Only approved reservations can be cancelled. "
                    f"This reservation is {reservation.status.value}"
                )
        else:
            if reservation.status not in (ReservationStatus.pending, ReservationStatus.approved):
                raise InvalidStateError(
                    f"Cannot cancel a reservation that is already {reservation.status.value}"
                )
            if ensure_utc(reservation.starts_at) <= now:
                raise InvalidStateError("Cannot cancel a reservation that has already started")
        _transition(reservation, ReservationStatus.cancelled)
        reservation.canceled_at = now
        reservation.canceled_by = identity.role
        reservation.cancellation_reason = reason
    db.refresh(reservation)
    logger.info(
        "Reservation cancelled",
        extra={"reservation_id": reservation.id, "actor": identity.role},
    )

    if identity.is_admin:
        notification_service.notify_renter(
            db,
            notifier or notification_service.get_dispatcher(settings),
            reservation,
            reservation.user,
            models.NotificationKind.reservation_cancelled,
            settings,
            reason=reason,
        )
        audit_service.record(
            db,
            actor_id=identity.user_id,
            action=(
                f"Cancelled approved reservation {reservation.id} for user "
                f"{reservation.user.full_name}. Reason: {reason}"
            ),
            payload={"reservation_id": reservation.id, "reason": reason},
        )
    else:
        notification_service.record_in_app(
            db,
            reservation.user_id,
            models.NotificationKind.reservation_cancelled,
            f"Your reservation for {notification_service.format_local(ensure_utc(reservation.starts_at), settings)} "
            "has been cancelled.",
        )
    return reservation


def expire_request(
    db: Session,
    reservation: models.Reservation,
    now: datetime,
    *,
    settings: Settings | None = None,
) -> bool:
    """Cancel a pending request whose start has passed without a decision.

    Returns False when the request was decided or cancelled in the meantime.
    """
    settings = settings or get_settings()
    now = ensure_utc(now)
    day = local_day(reservation.starts_at, settings.timezone)
    with locks.schedule_guard(db, day):
        db.refresh(reservation)
        if reservation.status != ReservationStatus.pending:
            return False
        if ensure_utc(reservation.starts_at) > now:
            return False
        _transition(reservation, ReservationStatus.cancelled)
        reservation.canceled_at = now
        reservation.canceled_by = SYSTEM_ACTOR
        reservation.cancellation_reason = REQUEST_EXPIRED_REASON
    logger.info("Expired pending reservation", extra={"reservation_id": reservation.id})
    return True


def admin_create_reservation(
    db: Session,
    admin_id: int,
    renter_id: int,
    interval: TimeInterval,
    guest_count: int,
    *,
    settings: Settings | None = None,
    policy: CapacityPolicy | None = None,
    notifier: NotificationDispatcher | None = None,
    now: datetime | None = None,
) -> models.Reservation:
    """Book on behalf of a renter; the reservation skips review and is approved at once."""
    settings = settings or get_settings()
    now = ensure_utc(now) if now else _utc_now()

    renter = db.get(models.User, renter_id)
    if renter is None:
        raise NotFoundError("User not found")
    if renter.role != models.UserRole.renter:
        raise ValidationError("Can only create reservations for renter accounts")
    if guest_count < 1:
        raise ValidationError("Guest count must be at least 1")
    _validate_window(interval, settings, now)

    day = local_day(interval.start, settings.timezone)
    with locks.schedule_guard(db, day):
        capacity = policy or load_capacity_policy(db, settings)
        periods = busy_periods_for(db, day, tz=settings.timezone, include_pending=True)
        _ensure_bookable(periods, interval, guest_count, capacity, settings)
        reservation = models.Reservation(
            user_id=renter.id,
            starts_at=interval.start,
            ends_at=interval.end,
            guest_count=guest_count,
            status=ReservationStatus.approved,
            source=ReservationSource.admin,
            decided_at=now,
            decided_by=admin_id,
        )
        db.add(reservation)
    db.refresh(reservation)

    notification_service.notify_renter(
        db,
        notifier or notification_service.get_dispatcher(settings),
        reservation,
        renter,
        models.NotificationKind.reservation_approved,
        settings,
    )
    audit_service.record(
        db,
        actor_id=admin_id,
        action=(
            f"created reservation (ID: {reservation.id}) on behalf of user "
            f"{renter.full_name} (ID: {renter.id})"
        ),
        payload={"reservation_id": reservation.id, "guest_count": guest_count},
    )
    return reservation


def list_user_reservations(db: Session, user_id: int) -> list[models.Reservation]:
    return (
        db.query(models.Reservation)
        .filter(models.Reservation.user_id == user_id)
        .order_by(models.Reservation.starts_at.desc())
        .all()
    )


def list_pending(db: Session) -> list[models.Reservation]:
    return (
        db.query(models.Reservation)
        .filter(models.Reservation.status == ReservationStatus.pending)
        .order_by(models.Reservation.created_at.asc(), models.Reservation.id.asc())
        .all()
    )


def list_reservations(
    db: Session, status: ReservationStatus | None = None
) -> list[models.Reservation]:
    query = db.query(models.Reservation)
    if status is not None:
        query = query.filter(models.Reservation.status == status)
    return query.order_by(models.Reservation.starts_at.desc()).all()
