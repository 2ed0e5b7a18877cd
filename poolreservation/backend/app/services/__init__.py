from . import (
    audit_service,
    availability_service,
    block_service,
    lesson_service,
    notification_service,
    reservation_service,
    settings_service,
)
__all__ = [
    "audit_service",
    "availability_service",
    "block_service",
    "lesson_service",
    "notification_service",
    "reservation_service",
    "settings_service",
]
