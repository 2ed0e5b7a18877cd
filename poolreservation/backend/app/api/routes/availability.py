from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api import deps
from ...core.errors import ReservationError
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import availability_service

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/{day}", response_model=schemas.DayAvailability)
def get_availability(
    day: date,
    db: Session = Depends(get_db),
    identity: IdentityContext | None = Depends(deps.get_optional_identity),
):
    try:
        slots = availability_service.availability_for(
            db, day, user_id=identity.user_id if identity else None
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return schemas.DayAvailability(
        date=day,
        slots=[schemas.SlotStatus.model_validate(slot) for slot in slots],
    )
