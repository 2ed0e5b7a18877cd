from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Iterable, Protocol, Sequence

from ..core.errors import ConfigurationError, ConflictError
from ..core.intervals import TimeInterval, contains, local_day, local_interval, overlaps


class Claim(Protocol):
    interval: TimeInterval
    count: int
    source: str


@dataclass(frozen=True, slots=True)
class Band:
    starts_at: time
    ends_at: time
    max_occupancy: int


class CapacityPolicy:
    """Per-slot maximum occupancy resolved from the configured bands.

    Bands are local wall-clock ranges in ``tz``; a moment belongs to the band
    whose range contains its local time of day.
    """

    def __init__(self, bands: Sequence[Band], tz: str) -> None:
        self.bands = tuple(sorted(bands, key=lambda band: band.starts_at))
        self.tz = tz

    @classmethod
    def from_rows(cls, rows: Iterable, tz: str) -> "CapacityPolicy":
        return cls(
            [Band(row.starts_at, row.ends_at, row.max_occupancy) for row in rows],
            tz,
        )

    def max_occupancy_for(self, moment: datetime) -> int:
        day = local_day(moment, self.tz)
        for band in self.bands:
            if contains(local_interval(day, band.starts_at, band.ends_at, self.tz), moment):
                return band.max_occupancy
        raise ConfigurationError(
            f"No capacity band covers {moment.isoformat()}; check the pool capacity settings"
        )

    @staticmethod
    def occupancy_of(claims: Iterable[Claim], slot: TimeInterval) -> int:
        return sum(claim.count for claim in claims if overlaps(claim.interval, slot))

    def is_full(self, claims: Iterable[Claim], slot: TimeInterval) -> bool:
        return self.occupancy_of(claims, slot) >= self.max_occupancy_for(slot.start)

    def ensure_fits(
        self,
        slots: Iterable[TimeInterval],
        claims: Sequence[Claim],
        requested: TimeInterval,
        extra: int,
    ) -> None:
        """Raise ``ConflictError`` if adding ``extra`` to any slot touched by ``requested`` overflows it."""
        for slot in slots:
            if not overlaps(slot, requested):
                continue
            occupied = self.occupancy_of(claims, slot)
            limit = self.max_occupancy_for(slot.start)
            if occupied + extra <= limit:
                continue
            remaining = limit - occupied
            if remaining <= 0:
                lessons = self.occupancy_of(
                    [claim for claim in claims if claim.source == "lesson"], slot
                )
                message = (
                    "This time slot is fully booked due to swimming lessons"
                    if lessons
                    else "This time slot is fully booked"
                )
            else:
                message = (
                    f"Only {remaining} spot(s) available for this time slot. "
                    f"You requested {extra} guest(s)"
                )
            raise ConflictError(message, source="capacity")


__all__ = ["Band", "CapacityPolicy", "Claim"]
