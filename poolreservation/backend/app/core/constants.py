"""Common application-wide constants."""

from datetime import time, timedelta

# Default capacity bands covering the operating day, as (start, end) local times
DEFAULT_CAPACITY_BANDS = (
    (time(8, 0), time(11, 0)),
    (time(11, 0), time(14, 0)),
    (time(14, 0), time(17, 0)),
    (time(17, 0), time(20, 0)),
)

# Metadata for system-driven reservation cancellations
REQUEST_EXPIRED_REASON = "request_expired"
SYSTEM_ACTOR = "system"

# Window ahead of a reservation start in which renters get a reminder
REMINDER_LEAD = timedelta(hours=24)
REMINDER_WINDOW = timedelta(hours=1)


__all__ = [
    "DEFAULT_CAPACITY_BANDS",
    "REQUEST_EXPIRED_REASON",
    "SYSTEM_ACTOR",
    "REMINDER_LEAD",
    "REMINDER_WINDOW",
]
