from datetime import timedelta

import pytest

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PendingConflictError,
    ValidationError,
)
from app.core.security import IdentityContext
from app.db import models
from app.services import lesson_service, reservation_service


@pytest.fixture()
def book(pool, settings, notifier, now):
    def request(user, interval, guests):
        return reservation_service.request_reservation(
            pool, user.id, interval, guests, settings=settings, notifier=notifier, now=now
        )

    return request


@pytest.fixture()
def approve(pool, settings, notifier, now, admin):
    def decide(reservation):
        return reservation_service.decide(
            pool,
            reservation.id,
            admin.id,
            models.ReservationStatus.approved,
            settings=settings,
            notifier=notifier,
            now=now,
        )

    return decide


def test_scenario_overlap_with_approved_is_rejected(book, approve, window, renter, other_renter):
    first = book(renter, window("10:00", "11:00"), 4)
    assert first.status == models.ReservationStatus.pending

    approved = approve(first)
    assert approved.status == models.ReservationStatus.approved

    with pytest.raises(ConflictError) as exc_info:
        book(other_renter, window("10:30", "11:30"), 3)
    assert exc_info.value.source == "approved"
    assert exc_info.value.claim_id == first.id


def test_touching_reservation_is_accepted(book, approve, window, renter, other_renter):
    approve(book(renter, window("10:00", "11:00"), 4))
    follow_up = book(other_renter, window("11:00", "12:00"), 4)
    assert follow_up.status == models.ReservationStatus.pending


def test_request_notifies_admin_and_renter(pool, book, notifier, window, renter):
    reservation = book(renter, window("10:00", "11:00"), 2)
    assert [recipient for recipient, _, _ in notifier.sent] == ["admin@pool.test"]
    assert "Ann Lee" in notifier.sent[0][1]
    notification = pool.query(models.Notification).filter_by(user_id=renter.id).one()
    assert notification.kind == models.NotificationKind.reservation_pending
    assert reservation.source == models.ReservationSource.renter


@pytest.mark.parametrize(
    "start, end, guests, message",
    [
        ("10:00", "11:00", 0, "at least 1"),
        ("10:00", "11:00", 11, "maximum of 10"),
        ("07:00", "08:30", 2, "pool hours"),
        ("19:30", "20:30", 2, "pool hours"),
    ],
)
def test_request_validation(book, window, renter, start, end, guests, message):
    with pytest.raises(ValidationError, match=message):
        book(renter, window(start, end), guests)


def test_request_respects_lead_time(pool, settings, notifier, window, renter, day):
    interval = window("10:00", "11:00")
    with pytest.raises(ValidationError, match="in advance"):
        reservation_service.request_reservation(
            pool, renter.id, interval, 2,
            settings=settings, notifier=notifier, now=interval.start - timedelta(minutes=10),
        )
    with pytest.raises(ValidationError, match="past"):
        reservation_service.request_reservation(
            pool, renter.id, interval, 2,
            settings=settings, notifier=notifier, now=interval.start + timedelta(minutes=1),
        )


def test_renter_guest_cap_overrides_default(pool, book, window, renter):
    renter.max_guests = 2
    pool.commit()
    with pytest.raises(ValidationError, match="maximum of 2"):
        book(renter, window("10:00", "11:00"), 3)
    assert book(renter, window("10:00", "11:00"), 2).guest_count == 2


def test_only_renters_request(book, window, admin):
    with pytest.raises(ForbiddenError):
        book(admin, window("10:00", "11:00"), 1)


def test_unknown_renter(pool, settings, window):
    with pytest.raises(NotFoundError):
        reservation_service.request_reservation(pool, 999, window("10:00", "11:00"), 1, settings=settings)


def test_duplicate_pending_request_is_rejected(book, window, renter):
    book(renter, window("10:00", "11:00"), 2)
    with pytest.raises(PendingConflictError):
        book(renter, window("10:30", "11:30"), 2)


def test_pending_requests_hold_capacity(book, window, renter, other_renter):
    book(renter, window("10:00", "11:00"), 6)
    with pytest.raises(ConflictError, match="Only 4 spot"):
        book(other_renter, window("10:00", "11:00"), 5)
    assert book(other_renter, window("10:00", "11:00"), 4).guest_count == 4


def test_blocked_period_rejects_request(pool, book, window, renter, admin):
    interval = window("14:00", "16:00")
    pool.add(
        models.BlockedPeriod(
            starts_at=interval.start,
            ends_at=interval.end,
            reason="maintenance",
            created_by_admin_id=admin.id,
        )
    )
    pool.commit()
    with pytest.raises(ConflictError, match="maintenance") as exc_info:
        book(renter, window("15:00", "15:30"), 1)
    assert exc_info.value.source == "blocked"


def test_approval_rechecks_against_fresh_snapshot(pool, book, approve, window, renter, other_renter):
    pending = book(renter, window("10:00", "11:00"), 3)
    interval = window("10:30", "11:30")
    interim = models.Reservation(
        user_id=other_renter.id,
        starts_at=interval.start,
        ends_at=interval.end,
        guest_count=2,
        status=models.ReservationStatus.approved,
    )
    pool.add(interim)
    pool.commit()

    with pytest.raises(ConflictError) as exc_info:
        approve(pending)
    assert exc_info.value.claim_id == interim.id
    pool.expire_all()
    assert pool.get(models.Reservation, pending.id).status == models.ReservationStatus.pending


def test_approval_rechecks_capacity(pool, book, approve, settings, window, renter, admin):
    pending = book(renter, window("08:00", "09:00"), 5)
    lesson, warnings = lesson_service.create_lesson(
        pool, window("08:00", "09:00"), 6, "Coach Kim", admin_id=admin.id, settings=settings
    )
    assert warnings

    with pytest.raises(ConflictError, match="Only 4 spot") as exc_info:
        approve(pending)
    assert exc_info.value.source == "capacity"
    pool.expire_all()
    assert pool.get(models.Reservation, pending.id).status == models.ReservationStatus.pending


def test_started_reservation_cannot_be_approved(pool, book, settings, notifier, window, renter, admin):
    reservation = book(renter, window("10:00", "11:00"), 2)
    with pytest.raises(InvalidStateError, match="already started"):
        reservation_service.decide(
            pool, reservation.id, admin.id, "approved",
            settings=settings, notifier=notifier, now=window("10:05", "10:30").start,
        )
    pool.expire_all()
    assert pool.get(models.Reservation, reservation.id).status == models.ReservationStatus.pending


def test_decide_twice_fails_without_renotifying(pool, book, approve, notifier, window, renter):
    reservation = book(renter, window("10:00", "11:00"), 2)
    approve(reservation)
    sent = len(notifier.sent)
    notifications = pool.query(models.Notification).count()

    with pytest.raises(InvalidStateError):
        approve(reservation)
    assert len(notifier.sent) == sent
    assert pool.query(models.Notification).count() == notifications


def test_reject_records_reason(pool, book, settings, notifier, now, window, renter, admin):
    reservation = book(renter, window("10:00", "11:00"), 2)
    rejected = reservation_service.decide(
        pool, reservation.id, admin.id, "rejected", "pool closed for event",
        settings=settings, notifier=notifier, now=now,
    )
    assert rejected.status == models.ReservationStatus.rejected
    assert rejected.rejection_reason == "pool closed for event"
    assert rejected.decided_by == admin.id
    assert notifier.sent[-1][0] == renter.email
    assert "Declined" in notifier.sent[-1][1]
    entry = pool.query(models.AuditLog).one()
    assert entry.actor_id == admin.id


def test_decide_rejects_unknown_outcome(pool, book, settings, window, renter, admin):
    reservation = book(renter, window("10:00", "11:00"), 2)
    with pytest.raises(ValidationError):
        reservation_service.decide(pool, reservation.id, admin.id, "cancelled", settings=settings)
    with pytest.raises(NotFoundError):
        reservation_service.decide(pool, 999, admin.id, "approved", settings=settings)


def test_notifier_failure_keeps_transition(pool, settings, failing_notifier, now, window, renter, admin):
    reservation = reservation_service.request_reservation(
        pool, renter.id, window("10:00", "11:00"), 2,
        settings=settings, notifier=failing_notifier, now=now,
    )
    reservation_service.decide(
        pool, reservation.id, admin.id, "approved",
        settings=settings, notifier=failing_notifier, now=now,
    )
    assert failing_notifier.calls == 2
    pool.expire_all()
    assert pool.get(models.Reservation, reservation.id).status == models.ReservationStatus.approved


def test_renter_cancels_own_reservation(pool, book, settings, notifier, now, window, renter, other_renter):
    reservation = book(renter, window("10:00", "11:00"), 2)
    stranger = IdentityContext(user_id=other_renter.id, role="renter")
    with pytest.raises(ForbiddenError):
        reservation_service.cancel(pool, reservation.id, stranger, settings=settings, now=now)

    owner = IdentityContext(user_id=renter.id, role="renter")
    cancelled = reservation_service.cancel(pool, reservation.id, owner, settings=settings, now=now)
    assert cancelled.status == models.ReservationStatus.cancelled
    assert cancelled.canceled_by == "renter"

    with pytest.raises(InvalidStateError):
        reservation_service.cancel(pool, reservation.id, owner, settings=settings, now=now)


def test_renter_cannot_cancel_started_reservation(pool, book, approve, settings, window, renter):
    reservation = approve(book(renter, window("10:00", "11:00"), 2))
    owner = IdentityContext(user_id=renter.id, role="renter")
    with pytest.raises(InvalidStateError, match="already started"):
        reservation_service.cancel(
            pool, reservation.id, owner, settings=settings,
            now=window("10:15", "10:30").start,
        )


def test_admin_cancel_requires_reason_and_approval(
    pool, book, approve, settings, notifier, now, window, renter, admin
):
    identity = IdentityContext(user_id=admin.id, role="admin")
    pending = book(renter, window("09:00", "10:00"), 2)
    with pytest.raises(ValidationError, match="reason is required"):
        reservation_service.cancel(pool, pending.id, identity, "  ", settings=settings, now=now)
    with pytest.raises(InvalidStateError, match="Only approved"):
        reservation_service.cancel(pool, pending.id, identity, "storm", settings=settings, now=now)

    approved = approve(book(renter, window("12:00", "13:00"), 2))
    cancelled = reservation_service.cancel(
        pool, approved.id, identity, "storm warning",
        settings=settings, notifier=notifier, now=now,
    )
    assert cancelled.status == models.ReservationStatus.cancelled
    assert cancelled.cancellation_reason == "storm warning"
    assert "storm warning" in notifier.sent[-1][2]
    assert pool.query(models.AuditLog).filter(models.AuditLog.action.contains("storm warning")).count() == 1


def test_cancelled_reservation_frees_slot(pool, book, approve, settings, now, window, renter, other_renter, admin):
    approved = approve(book(renter, window("10:00", "11:00"), 2))
    reservation_service.cancel(
        pool, approved.id, IdentityContext(user_id=admin.id, role="admin"), "closed",
        settings=settings, now=now,
    )
    assert book(other_renter, window("10:00", "11:00"), 8).status == models.ReservationStatus.pending


def test_admin_creates_approved_reservation(pool, settings, notifier, now, window, renter, admin):
    reservation = reservation_service.admin_create_reservation(
        pool, admin.id, renter.id, window("16:00", "17:00"), 3,
        settings=settings, notifier=notifier, now=now,
    )
    assert reservation.status == models.ReservationStatus.approved
    assert reservation.source == models.ReservationSource.admin
    assert notifier.sent[-1][1] == "[CONFIRMED] Your Pool Reservation"

    with pytest.raises(ConflictError):
        reservation_service.admin_create_reservation(
            pool, admin.id, renter.id, window("16:30", "17:30"), 1,
            settings=settings, notifier=notifier, now=now,
        )
    with pytest.raises(ValidationError):
        reservation_service.admin_create_reservation(
            pool, admin.id, admin.id, window("18:00", "19:00"), 1,
            settings=settings, notifier=notifier, now=now,
        )


def test_listings(pool, book, approve, window, renter, other_renter):
    first = book(renter, window("09:00", "10:00"), 1)
    second = book(other_renter, window("12:00", "13:00"), 1)
    approve(second)

    assert [item.id for item in reservation_service.list_pending(pool)] == [first.id]
    assert [item.id for item in reservation_service.list_user_reservations(pool, renter.id)] == [first.id]
    approved = reservation_service.list_reservations(pool, status=models.ReservationStatus.approved)
    assert [item.id for item in approved] == [second.id]
    assert len(reservation_service.list_reservations(pool)) == 2
