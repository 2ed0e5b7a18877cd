from .user import User, UserRole
from .reservation import Reservation, ReservationStatus, ReservationSource
from .blocked_period import BlockedPeriod
from .lesson import Lesson
from .capacity_band import CapacityBand
from .notification import Notification, NotificationKind
from .audit_log import AuditLog, ActorType
