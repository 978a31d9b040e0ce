"""
Top-level `models` import used by main.py, alembic and the tests.
Domain models live in `app.models.*`.
"""
from app.models import (  # noqa: F401,F403
    Booking,
    BookingStatus,
    GUID_LENGTH,
    GUID_TYPE,
    User,
    UserRole,
    WeeklyScheduleSlot,
    default_uuid,
    utcnow,
)
from database import Base  # noqa: F401

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
