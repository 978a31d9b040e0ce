from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, PersistenceError
from app.models import Booking, BookingStatus, User, UserRole, WeeklyScheduleSlot
from app.services.msk_time import as_naive_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleEntry:
    """One row of a weekly template as submitted for replacement."""

    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True


def get_specialist(db: Session, specialist_id: str) -> User:
    specialist = (
        db.query(User)
        .filter(
            User.id == specialist_id,
            User.role == UserRole.SPECIALIST.value,
            User.deleted_at.is_(None),
        )
        .first()
    )
    if not specialist:
        raise NotFoundError("Specialist not found")
    return specialist


def list_specialists(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == UserRole.SPECIALIST.value, User.deleted_at.is_(None))
        .order_by(User.name.asc())
        .all()
    )


def get_weekly_schedule(db: Session, specialist_id: str) -> List[WeeklyScheduleSlot]:
    return (
        db.query(WeeklyScheduleSlot)
        .filter(WeeklyScheduleSlot.specialist_id == specialist_id)
        .order_by(WeeklyScheduleSlot.day_of_week.asc())
        .all()
    )


def get_active_schedule_for_weekday(db: Session, specialist_id: str, weekday: int) -> Optional[WeeklyScheduleSlot]:
    return (
        db.query(WeeklyScheduleSlot)
        .filter(
            WeeklyScheduleSlot.specialist_id == specialist_id,
            WeeklyScheduleSlot.day_of_week == weekday,
            WeeklyScheduleSlot.is_active.is_(True),
        )
        .first()
    )


def get_all_active_schedule(db: Session, specialist_id: str) -> List[WeeklyScheduleSlot]:
    return (
        db.query(WeeklyScheduleSlot)
        .filter(
            WeeklyScheduleSlot.specialist_id == specialist_id,
            WeeklyScheduleSlot.is_active.is_(True),
        )
        .order_by(WeeklyScheduleSlot.day_of_week.asc())
        .all()
    )


def get_non_cancelled_bookings(db: Session, specialist_id: str, start: datetime, end: datetime) -> List[Booking]:
    """Bookings with ``start <= start_time < end`` that are not cancelled."""
    return (
        db.query(Booking)
        .filter(
            Booking.specialist_id == specialist_id,
            Booking.start_time >= as_naive_utc(start),
            Booking.start_time < as_naive_utc(end),
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.start_time.asc())
        .all()
    )


def replace_weekly_schedule(db: Session, specialist_id: str, entries: Iterable[ScheduleEntry]) -> List[WeeklyScheduleSlot]:
    """Swap the whole weekly template in one transaction.

    Any storage error rolls the transaction back so readers keep seeing the
    previous template.
    """
    try:
        db.query(WeeklyScheduleSlot).filter(WeeklyScheduleSlot.specialist_id == specialist_id).delete(
            synchronize_session=False
        )
        db.add_all(
            [
                WeeklyScheduleSlot(
                    specialist_id=specialist_id,
                    day_of_week=entry.day_of_week,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                    is_active=entry.is_active,
                )
                for entry in entries
            ]
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to replace schedule for specialist %s: %s", specialist_id, exc)
        raise PersistenceError() from exc

    db.expire_all()
    return get_weekly_schedule(db, specialist_id)


__all__ = [
    "ScheduleEntry",
    "get_specialist",
    "list_specialists",
    "get_weekly_schedule",
    "get_active_schedule_for_weekday",
    "get_all_active_schedule",
    "get_non_cancelled_bookings",
    "replace_weekly_schedule",
]
