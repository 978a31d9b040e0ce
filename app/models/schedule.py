from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from app.models.base import GUID_TYPE, default_uuid


class WeeklyScheduleSlot(Base):
    """One working window of the weekly template, in Moscow wall-clock time."""

    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("specialist_id", "day_of_week", name="uq_schedule_specialist_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_schedule_window_order"),
    )

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    specialist_id = Column(GUID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # 0 = Sunday ... 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    specialist = relationship("User", back_populates="schedules")


__all__ = ["WeeklyScheduleSlot"]
