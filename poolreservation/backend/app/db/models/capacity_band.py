from __future__ import annotations

from datetime import datetime, time

from sqlalchemy import CheckConstraint, DateTime, Integer, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from ..session import Base


class CapacityBand(Base):
    __tablename__ = "capacity_bands"
    __table_args__ = (
        CheckConstraint("max_occupancy >= 1", name="ck_capacity_band_max_positive"),
        CheckConstraint("starts_at < ends_at", name="ck_capacity_band_interval"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # local wall-clock time of day in the pool time zone
    starts_at: Mapped[time] = mapped_column(Time, nullable=False)
    ends_at: Mapped[time] = mapped_column(Time, nullable=False)
    max_occupancy: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
