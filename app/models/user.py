from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from database import Base
from app.models.base import GUID_TYPE, default_uuid, utcnow
from app.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=UserRole.SPECIALIST.value)
    name = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    photo_url = Column(String(512), nullable=True)
    telegram_chat_id = Column(String(64), nullable=True)
    # Code a user sends to the bot as "/start <code>" to link telegram_chat_id.
    tg_link_code = Column(String(16), nullable=True, unique=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    # Set when an admin removes a specialist; the row stays so bookings keep their owner.
    deleted_at = Column(DateTime, nullable=True)

    schedules = relationship(
        "WeeklyScheduleSlot",
        back_populates="specialist",
        cascade="all, delete-orphan",
        order_by="WeeklyScheduleSlot.day_of_week",
    )
    bookings = relationship("Booking", back_populates="specialist")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


__all__ = ["User"]
