from __future__ import annotations


class SchedulingError(Exception):
    """Base class for errors surfaced to API callers as ``{"detail": ...}``."""

    status_code = 500
    default_detail = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(SchedulingError):
    status_code = 400
    default_detail = "Missing required fields"


class ForbiddenError(SchedulingError):
    status_code = 403
    default_detail = "Unauthorized"


class NotFoundError(SchedulingError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(SchedulingError):
    # Same message whether the pre-check or the unique constraint caught it.
    status_code = 409
    default_detail = "Slot already booked"


class PersistenceError(SchedulingError):
    status_code = 500
    default_detail = "Server error"


__all__ = [
    "SchedulingError",
    "ValidationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
]
