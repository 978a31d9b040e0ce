"""User accounts: admin management of specialists and Telegram linking."""
from __future__ import annotations

import logging
import secrets
import string
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from app.models import User, UserRole, WeeklyScheduleSlot, utcnow
from app.schemas.specialist import SpecialistCreateRequest, SpecialistUpdateRequest
from app.services import schedule_store

logger = logging.getLogger(__name__)

LINK_CODE_ALPHABET = string.ascii_uppercase + string.digits
LINK_CODE_LENGTH = 6
_LINK_CODE_ATTEMPTS = 3


def generate_link_code() -> str:
    return "".join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(LINK_CODE_LENGTH))


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to %s: %s", what, exc)
        raise PersistenceError() from exc


def create_specialist(db: Session, payload: SpecialistCreateRequest) -> User:
    email = _clean(payload.email)
    name = _clean(payload.name)
    if not email or not name:
        raise ValidationError("Missing required fields")
    email = email.lower()

    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email already registered")

    specialist = User(
        email=email,
        role=UserRole.SPECIALIST.value,
        name=name,
        bio=_clean(payload.bio),
        photo_url=_clean(payload.photo_url),
        tg_link_code=generate_link_code(),
    )
    db.add(specialist)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered")
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create specialist %s: %s", email, exc)
        raise PersistenceError() from exc
    db.refresh(specialist)
    logger.info("Specialist %s created (%s)", specialist.id, email)
    return specialist


def update_specialist(db: Session, specialist_id: str, payload: SpecialistUpdateRequest) -> User:
    """Apply the fields that were sent; omitted fields keep their value."""
    specialist = schedule_store.get_specialist(db, specialist_id)
    if payload.name is not None:
        name = _clean(payload.name)
        if not name:
            raise ValidationError("Name cannot be empty")
        specialist.name = name
    if payload.bio is not None:
        specialist.bio = _clean(payload.bio)
    if payload.photo_url is not None:
        specialist.photo_url = _clean(payload.photo_url)
    _commit(db, f"update specialist {specialist_id}")
    db.refresh(specialist)
    return specialist


def delete_specialist(db: Session, specialist_id: str) -> None:
    """Remove a specialist from the catalogue.

    The user row is kept and marked deleted because bookings are never deleted
    and still reference it. The weekly schedule and Telegram link are dropped.
    """
    specialist = schedule_store.get_specialist(db, specialist_id)
    db.query(WeeklyScheduleSlot).filter(WeeklyScheduleSlot.specialist_id == specialist.id).delete(
        synchronize_session=False
    )
    specialist.deleted_at = utcnow()
    specialist.tg_link_code = None
    specialist.telegram_chat_id = None
    _commit(db, f"delete specialist {specialist_id}")
    db.expire_all()
    logger.info("Specialist %s deleted", specialist_id)


def get_active_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def _assign_link_code(db: Session, user: User, unlink: bool) -> User:
    for _ in range(_LINK_CODE_ATTEMPTS):
        user.tg_link_code = generate_link_code()
        if unlink:
            user.telegram_chat_id = None
        try:
            db.commit()
        except IntegrityError:
            # Another user already holds this code.
            db.rollback()
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to store link code for user %s: %s", user.id, exc)
            raise PersistenceError() from exc
        db.refresh(user)
        return user
    raise PersistenceError()


def get_telegram_link(db: Session, user_id: str) -> User:
    """Return the user, issuing a link code first if they have none."""
    user = get_active_user(db, user_id)
    if not user.tg_link_code:
        user = _assign_link_code(db, user, unlink=False)
    return user


def regenerate_link_code(db: Session, user_id: str) -> User:
    """Issue a fresh code and drop the current chat link."""
    return _assign_link_code(db, get_active_user(db, user_id), unlink=True)


def redeem_link_code(db: Session, code: str, chat_id: str | int) -> Optional[User]:
    """Link ``chat_id`` to the user holding ``code``; None when the code is unknown."""
    code = (code or "").strip().upper()
    if not code:
        return None
    user = db.query(User).filter(User.tg_link_code == code, User.deleted_at.is_(None)).first()
    if user is None:
        return None
    user.telegram_chat_id = str(chat_id)
    _commit(db, f"link Telegram chat for user {user.id}")
    db.refresh(user)
    logger.info("Telegram chat linked for user %s", user.id)
    return user


__all__ = [
    "LINK_CODE_ALPHABET",
    "LINK_CODE_LENGTH",
    "generate_link_code",
    "create_specialist",
    "update_specialist",
    "delete_specialist",
    "get_active_user",
    "get_telegram_link",
    "regenerate_link_code",
    "redeem_link_code",
]
