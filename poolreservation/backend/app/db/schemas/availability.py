import datetime as dt
from pydantic import BaseModel


class SlotStatus(BaseModel):
    time: str
    end_time: str
    starts_at: dt.datetime
    ends_at: dt.datetime
    current_guests: int
    lesson_participants: int
    total_occupancy: int
    max_capacity: int
    available_spots: int
    is_full: bool
    is_blocked: bool
    block_reason: str | None = None
    has_user_reservation: bool = False
    user_reservation_status: str | None = None
    available: bool

    class Config:
        from_attributes = True


class DayAvailability(BaseModel):
    date: dt.date
    slots: list[SlotStatus]
