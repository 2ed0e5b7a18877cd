from datetime import datetime
from pydantic import BaseModel

from .reservation import ReservationWindow


class BlockedPeriodCreate(ReservationWindow):
    reason: str


class BlockedPeriod(BaseModel):
    id: int
    starts_at: datetime
    ends_at: datetime
    reason: str
    created_by_admin_id: int | None = None
    created_at: datetime | None = None
    removed_at: datetime | None = None

    class Config:
        from_attributes = True
