from datetime import datetime
from typing import Any
from pydantic import BaseModel


class AuditLog(BaseModel):
    id: int
    actor_type: str
    actor_id: int | None = None
    action: str
    payload: dict[str, Any] | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
