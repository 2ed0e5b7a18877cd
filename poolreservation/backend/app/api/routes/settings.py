from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api import deps
from ...core.errors import ReservationError
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import settings_service
from ...services.capacity_policy import Band

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/capacity-bands", response_model=list[schemas.CapacityBand])
def get_capacity_bands(
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.get_identity),
):
    return settings_service.get_capacity_bands(db)


@router.put("/capacity-bands", response_model=list[schemas.CapacityBand])
def update_capacity_bands(
    payload: schemas.CapacityBandsUpdate,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        return settings_service.replace_capacity_bands(
            db,
            [Band(band.starts_at, band.ends_at, band.max_occupancy) for band in payload.bands],
            admin_id=admin.user_id,
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
