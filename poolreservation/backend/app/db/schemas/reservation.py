import datetime as dt
from pydantic import BaseModel, Field


class ReservationWindow(BaseModel):
    """Local wall-clock window on a pool day, e.g. ``10:00``-``11:00``."""

    date: dt.date
    start_time: str = Field(examples=["10:00"])
    end_time: str = Field(examples=["11:00"])


class ReservationCreate(ReservationWindow):
    guest_count: int = Field(default=1, ge=1)


class AdminReservationCreate(ReservationCreate):
    user_id: int


class ReservationDecision(BaseModel):
    reason: str | None = None


class ReservationCancel(BaseModel):
    reason: str | None = None


class Reservation(BaseModel):
    id: int
    user_id: int
    starts_at: dt.datetime
    ends_at: dt.datetime
    guest_count: int
    status: str
    source: str
    created_at: dt.datetime | None = None
    decided_at: dt.datetime | None = None
    decided_by: int | None = None
    rejection_reason: str | None = None
    canceled_at: dt.datetime | None = None
    canceled_by: str | None = None
    cancellation_reason: str | None = None
    user_full_name: str | None = None

    class Config:
        from_attributes = True
