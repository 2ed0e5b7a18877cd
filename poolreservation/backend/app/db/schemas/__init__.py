from .reservation import (
    AdminReservationCreate,
    Reservation,
    ReservationCancel,
    ReservationCreate,
    ReservationDecision,
    ReservationWindow,
)
from .block import BlockedPeriod, BlockedPeriodCreate
from .lesson import Lesson, LessonCreate, LessonCreated
from .capacity import CapacityBand, CapacityBandsUpdate
from .availability import DayAvailability, SlotStatus
from .notification import Notification, NotificationPage
from .audit_log import AuditLog
