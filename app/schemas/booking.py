from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import BookingStatus


class BookingCreateRequest(BaseModel):
    # Presence is checked by the booking guard so a missing field is a 400, not a 422.
    specialist_id: Optional[str] = None
    client_name: Optional[str] = None
    client_contact: Optional[str] = Field(None, description="E-mail, phone or messenger handle")
    start_time: Optional[datetime] = Field(None, description="Slot start, ISO-8601 UTC instant")
    notes: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    specialist_id: str
    specialist_name: Optional[str] = None
    client_name: str
    client_contact: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def _mark_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Stored values are naive UTC; tag them so they serialize with a "Z".
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class BookingStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="confirmed/cancelled/completed")
