"""Moscow civil-time helpers.

The platform runs on a single civil timezone, Moscow (UTC+3), which has no
daylight-saving transitions. Every conversion below applies the constant offset
explicitly to UTC values, so the result never depends on the timezone of the
host process.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone

from app.core.errors import ValidationError

MSK_OFFSET = timedelta(hours=3)
SLOT_LENGTH = timedelta(hours=1)

# Genitive month names, as used in "5 марта в 14:00".
_MONTHS_RU = (
    "января",
    "февраля",
    "марта",
    "апреля",
    "мая",
    "июня",
    "июля",
    "августа",
    "сентября",
    "октября",
    "ноября",
    "декабря",
)


def utcnow() -> datetime:
    """Return the current instant as an aware UTC datetime. Patched in tests."""
    return datetime.now(timezone.utc)


def as_utc(instant: datetime) -> datetime:
    """Normalize an instant to aware UTC; naive values are taken to be UTC already."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def as_naive_utc(instant: datetime) -> datetime:
    """Storage form of an instant (DateTime columns hold naive UTC)."""
    return as_utc(instant).replace(tzinfo=None)


def to_moscow(instant: datetime) -> datetime:
    """Moscow wall-clock time for ``instant`` as a naive datetime."""
    return as_naive_utc(instant) + MSK_OFFSET


def from_moscow(day: date, hour: int = 0, minute: int = 0) -> datetime:
    """Absolute UTC instant for the Moscow wall-clock ``day hour:minute``."""
    local = datetime(day.year, day.month, day.day, tzinfo=timezone.utc) + timedelta(hours=hour, minutes=minute)
    return local - MSK_OFFSET


def moscow_date(instant: datetime) -> date:
    return to_moscow(instant).date()


def moscow_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC range covering the Moscow calendar day."""
    return from_moscow(day), from_moscow(day + timedelta(days=1))


def moscow_month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Half-open UTC range covering the Moscow calendar month."""
    first = date(year, month, 1)
    days_in_month = calendar.monthrange(year, month)[1]
    return from_moscow(first), from_moscow(first + timedelta(days=days_in_month))


def moscow_today(now: datetime | None = None) -> date:
    return moscow_date(now or utcnow())


def _calendar_day(value: date | datetime) -> date:
    # A datetime is an instant and is mapped onto the Moscow calendar first.
    if isinstance(value, datetime):
        return moscow_date(value)
    return value


def is_today(value: date | datetime, now: datetime | None = None) -> bool:
    return _calendar_day(value) == moscow_today(now)


def is_past(value: date | datetime, now: datetime | None = None) -> bool:
    return _calendar_day(value) < moscow_today(now)


def weekday_index(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def parse_local_date(raw: str) -> date:
    """Parse a ``YYYY-MM-DD`` Moscow calendar date without any timezone handling."""
    parts = (raw or "").strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts) or len(parts[0]) != 4:
        raise ValidationError("Date must be in YYYY-MM-DD format")
    try:
        parsed = date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {raw}") from exc
    if not 1900 <= parsed.year <= 9998:
        raise ValidationError(f"Invalid date: {raw}")
    return parsed


def parse_local_time(raw: str) -> time:
    """Parse ``HH:MM`` (seconds are tolerated and dropped)."""
    parts = (raw or "").strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValidationError(f"Invalid time: {raw}")
    try:
        return time(int(parts[0]), int(parts[1]))
    except ValueError as exc:
        raise ValidationError(f"Invalid time: {raw}") from exc


def isoformat_utc(instant: datetime) -> str:
    """ISO-8601 with a ``Z`` designator, e.g. ``2025-03-05T06:00:00.000Z``."""
    value = as_naive_utc(instant)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_moscow_time(instant: datetime) -> str:
    return to_moscow(instant).strftime("%H:%M")


def format_moscow_day(value: date | datetime) -> str:
    day = _calendar_day(value)
    return f"{day.day} {_MONTHS_RU[day.month - 1]}"


def format_moscow_datetime(instant: datetime) -> str:
    return f"{format_moscow_day(instant)} в {format_moscow_time(instant)}"


__all__ = [
    "MSK_OFFSET",
    "SLOT_LENGTH",
    "utcnow",
    "as_utc",
    "as_naive_utc",
    "to_moscow",
    "from_moscow",
    "moscow_date",
    "moscow_day_bounds",
    "moscow_month_bounds",
    "moscow_today",
    "is_today",
    "is_past",
    "weekday_index",
    "minutes_of",
    "parse_local_date",
    "parse_local_time",
    "isoformat_utc",
    "format_moscow_time",
    "format_moscow_day",
    "format_moscow_datetime",
]
