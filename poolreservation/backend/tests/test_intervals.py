from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.core.errors import ValidationError
from app.core.intervals import (
    TimeInterval,
    contains,
    covers,
    day_window,
    local_day,
    local_interval,
    overlaps,
    parse_clock,
)


def _at(hour, minute=0):
    return datetime(2030, 6, 3, hour, minute, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ((9, 10), (9, 10), True),
        ((9, 11), (10, 12), True),
        ((9, 12), (10, 11), True),
        ((9, 10), (10, 11), False),
        ((9, 10), (11, 12), False),
    ],
)
def test_overlaps_is_symmetric(a, b, expected):
    first = TimeInterval(_at(a[0]), _at(a[1]))
    second = TimeInterval(_at(b[0]), _at(b[1]))
    assert overlaps(first, second) is expected
    assert overlaps(second, first) is expected


def test_touching_intervals_never_overlap():
    morning = TimeInterval(_at(8), _at(9))
    later = TimeInterval(_at(9), _at(9, 30))
    assert not overlaps(morning, later)
    assert not overlaps(later, morning)


def test_interval_requires_start_before_end():
    with pytest.raises(ValidationError):
        TimeInterval(_at(10), _at(10))
    with pytest.raises(ValidationError):
        TimeInterval(_at(11), _at(10))


def test_naive_datetimes_are_treated_as_utc():
    interval = TimeInterval(datetime(2030, 6, 3, 9), datetime(2030, 6, 3, 10))
    assert interval.start == _at(9)
    assert interval.duration == timedelta(hours=1)


def test_contains_is_half_open():
    interval = TimeInterval(_at(9), _at(10))
    assert contains(interval, _at(9))
    assert contains(interval, _at(9, 59))
    assert not contains(interval, _at(10))


def test_covers():
    hours = TimeInterval(_at(8), _at(20))
    assert covers(hours, TimeInterval(_at(8), _at(20)))
    assert not covers(hours, TimeInterval(_at(19), _at(21)))


def test_local_interval_converts_to_utc():
    interval = local_interval(date(2030, 6, 3), time(8), time(9), "Europe/Berlin")
    assert interval.start == _at(6)
    assert interval.end == _at(7)
    assert local_day(interval.start, "Europe/Berlin") == date(2030, 6, 3)


def test_day_window_spans_local_day():
    window = day_window(date(2030, 6, 3), "Europe/Berlin")
    assert window.start == datetime(2030, 6, 2, 22, tzinfo=timezone.utc)
    assert window.duration == timedelta(hours=24)


def test_parse_clock_rejects_garbage():
    assert parse_clock("08:30") == time(8, 30)
    with pytest.raises(ValidationError):
        parse_clock("half past eight")
