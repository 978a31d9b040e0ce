from typing import List

from pydantic import BaseModel, Field, field_validator


class ScheduleSlot(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., description="HH:MM, Moscow time")
    end_time: str = Field(..., description="HH:MM, Moscow time")
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        parts = value.strip().split(":")
        if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
            raise ValueError("time must be HH:MM")
        return value.strip()


class ScheduleUpdateRequest(BaseModel):
    schedules: List[ScheduleSlot]


class ScheduleResponse(BaseModel):
    specialist_id: str
    schedules: List[ScheduleSlot]
