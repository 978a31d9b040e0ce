from database import Base
from app.models.base import GUID_LENGTH, GUID_TYPE, default_uuid, utcnow
from app.models.enums import BookingStatus, UserRole
from app.models.user import User
from app.models.schedule import WeeklyScheduleSlot
from app.models.booking import Booking

__all__ = [
    "Base",
    "GUID_TYPE",
    "GUID_LENGTH",
    "default_uuid",
    "utcnow",
    "BookingStatus",
    "UserRole",
    "User",
    "WeeklyScheduleSlot",
    "Booking",
]
