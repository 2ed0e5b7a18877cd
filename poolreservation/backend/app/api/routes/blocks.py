from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...api import deps
from ...config import get_settings
from ...core.errors import ReservationError
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import block_service
from ...services.availability_service import interval_for

router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.get("", response_model=list[schemas.BlockedPeriod])
def list_blocks(
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.require_roles("admin")),
):
    return block_service.list_blocks(db)


@router.post("", response_model=schemas.BlockedPeriod, status_code=status.HTTP_201_CREATED)
def create_block(
    payload: schemas.BlockedPeriodCreate,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        interval = interval_for(payload.date, payload.start_time, payload.end_time, get_settings())
        return block_service.create_block(db, interval, payload.reason, admin.user_id)
    except ReservationError as exc:
        raise deps.http_error(exc) from exc


@router.delete("/{block_id}", response_model=schemas.BlockedPeriod)
def remove_block(
    block_id: int,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        return block_service.remove_block(db, block_id, admin.user_id)
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
