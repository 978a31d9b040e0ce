from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from app.models.base import GUID_TYPE, default_uuid, utcnow
from app.models.enums import BookingStatus


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # active_start_time is NULL for cancelled rows, and NULLs never collide,
        # so this only constrains non-cancelled bookings.
        UniqueConstraint("specialist_id", "active_start_time", name="uq_booking_active_slot"),
    )

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    specialist_id = Column(GUID_TYPE, ForeignKey("users.id"), nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    client_contact = Column(String(255), nullable=False)
    # Naive UTC instants.
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    active_start_time = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    notes = Column(Text, nullable=True)
    reminder_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    specialist = relationship("User", back_populates="bookings")

    def set_status(self, status: BookingStatus) -> None:
        self.status = status.value
        self.active_start_time = None if status == BookingStatus.CANCELLED else self.start_time


__all__ = ["Booking"]
