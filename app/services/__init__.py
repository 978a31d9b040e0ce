from . import (
    accounts,
    availability,
    booking_guard,
    msk_time,
    notifications,
    reminders,
    schedule_store,
    telegram_bot,
)

__all__ = [
    "accounts",
    "availability",
    "booking_guard",
    "msk_time",
    "notifications",
    "reminders",
    "schedule_store",
    "telegram_bot",
]
