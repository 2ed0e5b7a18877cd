from . import (
    availability,
    reservations,
    blocks,
    lessons,
    settings,
    notifications,
    misc,
)

__all__ = [
    "availability",
    "reservations",
    "blocks",
    "lessons",
    "settings",
    "notifications",
    "misc",
]
