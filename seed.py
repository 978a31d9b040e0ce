import logging
import os
from datetime import time

from sqlalchemy.exc import ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import Base, SessionLocal, engine
from app.models import User, UserRole, WeeklyScheduleSlot
from app.services.accounts import generate_link_code

logger = logging.getLogger(__name__)

DEMO_ADMIN_EMAIL = os.getenv("DEMO_ADMIN_EMAIL", "admin@example.com")
DEMO_SPECIALIST_EMAIL = os.getenv("DEMO_SPECIALIST_EMAIL", "jane@example.com")


def get_or_create_user(session: Session, email: str, role: UserRole, name: str, bio: str | None = None) -> User:
    """
    Fetch a user by e-mail; create tables and the row if missing.
    """
    try:
        user = session.query(User).filter(User.email == email).first()
    except ProgrammingError:
        Base.metadata.create_all(bind=engine)
        session.rollback()
        user = session.query(User).filter(User.email == email).first()

    if user is None:
        user = User(email=email, role=role.value, name=name, bio=bio, tg_link_code=generate_link_code())
        session.add(user)
        session.commit()
        session.refresh(user)
        logger.info("Created %s %s (Telegram link code: %s)", role.value, email, user.tg_link_code)
    return user


def seed_demo_data() -> None:
    """
    Seed an admin and one specialist working Monday to Friday, 09:00-17:00 MSK.
    """
    if os.getenv("DISABLE_DEMO_SEED"):
        logger.info("DISABLE_DEMO_SEED is set; skipping demo seed")
        return

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        logger.warning("Skipping demo seed; failed to create tables: %s", exc)
        return

    try:
        with SessionLocal() as db:
            get_or_create_user(db, DEMO_ADMIN_EMAIL, UserRole.ADMIN, "Super Admin", "System Administrator")
            specialist = get_or_create_user(
                db,
                DEMO_SPECIALIST_EMAIL,
                UserRole.SPECIALIST,
                "Jane Doe",
                "Senior React Developer and Mentor",
            )

            has_schedule = (
                db.query(WeeklyScheduleSlot).filter(WeeklyScheduleSlot.specialist_id == specialist.id).count() > 0
            )
            if not has_schedule:
                # 1 = Monday ... 5 = Friday
                db.add_all(
                    [
                        WeeklyScheduleSlot(
                            specialist_id=specialist.id,
                            day_of_week=day,
                            start_time=time(9, 0),
                            end_time=time(17, 0),
                            is_active=True,
                        )
                        for day in range(1, 6)
                    ]
                )
                db.commit()
                logger.info("Seeded weekday schedule for %s", specialist.email)
    except SQLAlchemyError as exc:
        logger.warning("Skipping demo seed due to database error: %s", exc)
