# FastAPI routers grouped under app.api.*
from . import bookings, schedule, specialists, telegram

__all__ = [
    "bookings",
    "schedule",
    "specialists",
    "telegram",
]
