from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, PersistenceError, ValidationError
from app.core.security import CurrentUser
from app.models import Booking, BookingStatus, utcnow
from app.schemas.booking import BookingCreateRequest
from app.services import schedule_store
from app.services.msk_time import SLOT_LENGTH, as_naive_utc

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def find_active_booking(db: Session, specialist_id: str, start_time) -> Optional[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.specialist_id == specialist_id,
            Booking.start_time == as_naive_utc(start_time),
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .first()
    )


def create_booking(db: Session, payload: BookingCreateRequest) -> Booking:
    """Reserve one slot for a client.

    The pre-check gives a clean 409 in the common case; the unique constraint
    on ``(specialist_id, active_start_time)`` catches requests that race past it.
    """
    specialist_id = _clean(payload.specialist_id)
    client_name = _clean(payload.client_name)
    client_contact = _clean(payload.client_contact)
    if not specialist_id or not client_name or not client_contact or payload.start_time is None:
        raise ValidationError("Missing required fields")

    schedule_store.get_specialist(db, specialist_id)

    start = as_naive_utc(payload.start_time)
    if find_active_booking(db, specialist_id, start):
        raise ConflictError()

    booking = Booking(
        specialist_id=specialist_id,
        client_name=client_name,
        client_contact=client_contact,
        start_time=start,
        end_time=start + SLOT_LENGTH,
        active_start_time=start,
        status=BookingStatus.CONFIRMED.value,
        notes=_clean(payload.notes),
        created_at=utcnow(),
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Slot %s for specialist %s was taken concurrently", start, specialist_id)
        raise ConflictError()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create booking for specialist %s: %s", specialist_id, exc)
        raise PersistenceError() from exc
    db.refresh(booking)
    logger.info("Booking %s created for specialist %s at %s", booking.id, specialist_id, start)
    return booking


def update_booking_status(db: Session, booking_id: str, status: str, actor: CurrentUser) -> Booking:
    try:
        new_status = BookingStatus(status)
    except ValueError:
        raise ValidationError("Invalid status")

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found")
    if not actor.is_admin and booking.specialist_id != actor.id:
        raise ForbiddenError()

    booking.set_status(new_status)
    try:
        db.commit()
    except IntegrityError:
        # Re-confirming a cancelled booking whose slot has been taken since.
        db.rollback()
        raise ConflictError()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to update booking %s: %s", booking_id, exc)
        raise PersistenceError() from exc
    db.refresh(booking)
    return booking


def list_specialist_bookings(db: Session, specialist_id: str) -> List[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.specialist))
        .filter(Booking.specialist_id == specialist_id)
        .order_by(Booking.start_time.asc())
        .all()
    )


def list_all_bookings(db: Session) -> List[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.specialist))
        .order_by(Booking.start_time.desc())
        .all()
    )


__all__ = [
    "find_active_booking",
    "create_booking",
    "update_booking_status",
    "list_specialist_bookings",
    "list_all_bookings",
]
