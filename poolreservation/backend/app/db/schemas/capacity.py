from __future__ import annotations

from datetime import time

from pydantic import BaseModel, Field


class CapacityBand(BaseModel):
    starts_at: time
    ends_at: time
    max_occupancy: int = Field(ge=1)

    class Config:
        from_attributes = True


class CapacityBandsUpdate(BaseModel):
    bands: list[CapacityBand]
