from datetime import datetime
from pydantic import BaseModel, Field

from .reservation import ReservationWindow


class LessonCreate(ReservationWindow):
    participant_count: int = Field(ge=1)
    instructor_name: str | None = None
    notes: str | None = None


class Lesson(BaseModel):
    id: int
    starts_at: datetime
    ends_at: datetime
    participant_count: int
    instructor_name: str | None = None
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class LessonCreated(BaseModel):
    lesson: Lesson
    warnings: list[str] = Field(default_factory=list)
