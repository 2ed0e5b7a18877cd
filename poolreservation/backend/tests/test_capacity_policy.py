from dataclasses import dataclass
from datetime import datetime, time, timezone

import pytest

from app.core.errors import ConfigurationError, ConflictError
from app.core.intervals import TimeInterval
from app.services.capacity_policy import Band, CapacityPolicy


@dataclass(frozen=True)
class FakeClaim:
    interval: TimeInterval
    count: int
    source: str = "approved"


def _slot(hour, minutes=60):
    start = datetime(2030, 6, 3, hour, tzinfo=timezone.utc)
    return TimeInterval(start, start.replace(hour=hour + minutes // 60, minute=minutes % 60))


@pytest.fixture()
def policy():
    return CapacityPolicy(
        [
            Band(time(11), time(14), 6),
            Band(time(8), time(11), 10),
        ],
        "UTC",
    )


def test_max_occupancy_uses_covering_band(policy):
    assert policy.max_occupancy_for(_slot(8).start) == 10
    assert policy.max_occupancy_for(_slot(10).start) == 10
    assert policy.max_occupancy_for(_slot(11).start) == 6


def test_uncovered_time_is_configuration_error(policy):
    with pytest.raises(ConfigurationError):
        policy.max_occupancy_for(_slot(15).start)


def test_occupancy_counts_only_overlapping_claims(policy):
    claims = [
        FakeClaim(_slot(9), 3),
        FakeClaim(TimeInterval(_slot(9).start, _slot(11).end), 2),
        FakeClaim(_slot(10), 4),
    ]
    assert policy.occupancy_of(claims, _slot(9)) == 5
    assert policy.occupancy_of(claims, _slot(10)) == 6
    assert not policy.is_full(claims, _slot(9))
    assert policy.is_full(claims, _slot(11)) is False


def test_ensure_fits_reports_remaining_spots(policy):
    claims = [FakeClaim(_slot(9), 7)]
    policy.ensure_fits([_slot(9)], claims, _slot(9), 3)
    with pytest.raises(ConflictError) as exc_info:
        policy.ensure_fits([_slot(9)], claims, _slot(9), 4)
    assert "Only 3 spot(s) available" in str(exc_info.value)
    assert exc_info.value.source == "capacity"


def test_ensure_fits_names_lessons_when_full(policy):
    claims = [FakeClaim(_slot(12), 6, source="lesson")]
    with pytest.raises(ConflictError, match="fully booked due to swimming lessons"):
        policy.ensure_fits([_slot(11), _slot(12)], claims, _slot(12), 1)


def test_ensure_fits_checks_every_touched_slot(policy):
    claims = [FakeClaim(_slot(11), 5)]
    request = TimeInterval(_slot(10, 30).start, _slot(11).start.replace(minute=30))
    with pytest.raises(ConflictError):
        policy.ensure_fits([_slot(10), _slot(11)], claims, request, 2)
