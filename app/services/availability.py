from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.services import msk_time, schedule_store

SLOT_MINUTES = 60


@dataclass(frozen=True)
class WorkWindow:
    """Active working window of one weekday, in Moscow wall-clock time."""

    weekday: int
    start: time
    end: time

    @classmethod
    def from_row(cls, row) -> "WorkWindow":
        return cls(weekday=row.day_of_week, start=row.start_time, end=row.end_time)

    def slot_offsets(self) -> Iterator[int]:
        """Minutes since local midnight of every slot that fits entirely in the window."""
        current = msk_time.minutes_of(self.start)
        end = msk_time.minutes_of(self.end)
        while current + SLOT_MINUTES <= end:
            yield current
            current += SLOT_MINUTES

    @property
    def capacity(self) -> int:
        span = msk_time.minutes_of(self.end) - msk_time.minutes_of(self.start)
        return max(span, 0) // SLOT_MINUTES


def day_slots(
    day: date,
    window: Optional[WorkWindow],
    booked_starts: Iterable[datetime],
    now: datetime,
) -> List[datetime]:
    """Open one-hour slots of ``day`` as ascending UTC instants.

    A slot is dropped when a booking starts exactly at it or when it does not
    start strictly after ``now``.
    """
    if window is None:
        return []

    booked = {msk_time.as_utc(instant) for instant in booked_starts}
    now_utc = msk_time.as_utc(now)
    slots = []
    for offset in window.slot_offsets():
        instant = msk_time.from_moscow(day, minute=offset)
        if instant in booked or instant <= now_utc:
            continue
        slots.append(instant)
    return slots


def month_full_days(
    year: int,
    month: int,
    windows: Mapping[int, WorkWindow],
    booked_starts: Iterable[datetime],
) -> List[date]:
    """Days of the month with nothing left to book.

    A day is full when its weekday has no active window, or when the number of
    bookings on that Moscow date reaches the window capacity. Which hours are
    taken is not checked, only how many.
    """
    booked_per_day = Counter(msk_time.moscow_date(instant) for instant in booked_starts)
    first = date(year, month, 1)
    full_days = []
    for offset in range(calendar.monthrange(year, month)[1]):
        day = first + timedelta(days=offset)
        window = windows.get(msk_time.weekday_index(day))
        if window is None or booked_per_day[day] >= window.capacity:
            full_days.append(day)
    return full_days


def get_day_slots(db: Session, specialist_id: str, day: date, now: datetime | None = None) -> List[datetime]:
    schedule_store.get_specialist(db, specialist_id)
    row = schedule_store.get_active_schedule_for_weekday(db, specialist_id, msk_time.weekday_index(day))
    if row is None:
        return []

    start, end = msk_time.moscow_day_bounds(day)
    bookings = schedule_store.get_non_cancelled_bookings(db, specialist_id, start, end)
    return day_slots(
        day,
        WorkWindow.from_row(row),
        [booking.start_time for booking in bookings],
        now or msk_time.utcnow(),
    )


def get_month_full_days(db: Session, specialist_id: str, year: int, month: int) -> List[date]:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 1900 <= year <= 9998:
        raise ValidationError("Year is out of range")

    schedule_store.get_specialist(db, specialist_id)
    windows = {
        row.day_of_week: WorkWindow.from_row(row)
        for row in schedule_store.get_all_active_schedule(db, specialist_id)
    }
    start, end = msk_time.moscow_month_bounds(year, month)
    bookings = schedule_store.get_non_cancelled_bookings(db, specialist_id, start, end)
    return month_full_days(year, month, windows, [booking.start_time for booking in bookings])


__all__ = [
    "SLOT_MINUTES",
    "WorkWindow",
    "day_slots",
    "month_full_days",
    "get_day_slots",
    "get_month_full_days",
]
