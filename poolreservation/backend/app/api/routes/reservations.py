from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api import deps
from ...config import get_settings
from ...core.errors import ReservationError
from ...core.security import IdentityContext
from ...db import models, schemas
from ...db.session import get_db
from ...services import reservation_service
from ...services.availability_service import interval_for

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _to_schema(reservation: models.Reservation) -> schemas.Reservation:
    item = schemas.Reservation.model_validate(reservation)
    if reservation.user is not None:
        item.user_full_name = reservation.user.full_name
    return item


def _interval(window: schemas.ReservationWindow):
    return interval_for(window.date, window.start_time, window.end_time, get_settings())


@router.post("", response_model=schemas.Reservation, status_code=status.HTTP_201_CREATED)
def request_reservation(
    payload: schemas.ReservationCreate,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(deps.require_roles("renter")),
):
    try:
        reservation = reservation_service.request_reservation(
            db, identity.user_id, _interval(payload), payload.guest_count
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)


@router.get("/mine", response_model=list[schemas.Reservation])
def my_reservations(
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(deps.require_roles("renter")),
):
    return [
        _to_schema(item)
        for item in reservation_service.list_user_reservations(db, identity.user_id)
    ]


@router.put("/{reservation_id}/cancel", response_model=schemas.Reservation)
def cancel_own_reservation(
    reservation_id: int,
    payload: schemas.ReservationCancel | None = None,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(deps.require_roles("renter")),
):
    try:
        reservation = reservation_service.cancel(
            db, reservation_id, identity, payload.reason if payload else None
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)


@router.get("/admin/pending", response_model=list[schemas.Reservation])
def pending_reservations(
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.require_roles("admin")),
):
    return [_to_schema(item) for item in reservation_service.list_pending(db)]


@router.get("/admin/all", response_model=list[schemas.Reservation])
def all_reservations(
    status_filter: models.ReservationStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.require_roles("admin")),
):
    return [
        _to_schema(item)
        for item in reservation_service.list_reservations(db, status=status_filter)
    ]


@router.post("/admin", response_model=schemas.Reservation, status_code=status.HTTP_201_CREATED)
def create_on_behalf(
    payload: schemas.AdminReservationCreate,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        reservation = reservation_service.admin_create_reservation(
            db, admin.user_id, payload.user_id, _interval(payload), payload.guest_count
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)


@router.put("/admin/{reservation_id}/approve", response_model=schemas.Reservation)
def approve_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        reservation = reservation_service.decide(
            db, reservation_id, admin.user_id, models.ReservationStatus.approved
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)


@router.put("/admin/{reservation_id}/reject", response_model=schemas.Reservation)
def reject_reservation(
    reservation_id: int,
    payload: schemas.ReservationDecision | None = None,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        reservation = reservation_service.decide(
            db,
            reservation_id,
            admin.user_id,
            models.ReservationStatus.rejected,
            payload.reason if payload else None,
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)


@router.put("/admin/{reservation_id}/cancel", response_model=schemas.Reservation)
def admin_cancel_reservation(
    reservation_id: int,
    payload: schemas.ReservationCancel,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        reservation = reservation_service.cancel(db, reservation_id, admin, payload.reason)
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return _to_schema(reservation)
