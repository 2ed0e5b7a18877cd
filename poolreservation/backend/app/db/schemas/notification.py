from datetime import datetime
from pydantic import BaseModel


class Notification(BaseModel):
    id: int
    kind: str
    message: str
    is_read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class NotificationPage(BaseModel):
    total: int
    page: int
    limit: int
    items: list[Notification]
