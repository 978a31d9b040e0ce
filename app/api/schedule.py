from datetime import time
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, ValidationError
from app.core.security import CurrentUser, get_current_user, require_admin
from app.models import UserRole, WeeklyScheduleSlot
from app.schemas.schedule import ScheduleResponse, ScheduleSlot, ScheduleUpdateRequest
from app.services import schedule_store
from app.services.msk_time import parse_local_time
from database import get_db

router = APIRouter()


def _format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _to_response(specialist_id: str, rows: List[WeeklyScheduleSlot]) -> ScheduleResponse:
    return ScheduleResponse(
        specialist_id=specialist_id,
        schedules=[
            ScheduleSlot(
                day_of_week=row.day_of_week,
                start_time=_format_time(row.start_time),
                end_time=_format_time(row.end_time),
                is_active=row.is_active,
            )
            for row in rows
        ],
    )


def _to_entries(payload: ScheduleUpdateRequest) -> List[schedule_store.ScheduleEntry]:
    entries = []
    seen_days = set()
    for slot in payload.schedules:
        if slot.day_of_week in seen_days:
            raise ValidationError(f"Duplicate day_of_week {slot.day_of_week}")
        seen_days.add(slot.day_of_week)
        start = parse_local_time(slot.start_time)
        end = parse_local_time(slot.end_time)
        if start >= end:
            raise ValidationError(f"Start time must be before end time (day {slot.day_of_week})")
        entries.append(
            schedule_store.ScheduleEntry(
                day_of_week=slot.day_of_week,
                start_time=start,
                end_time=end,
                is_active=slot.is_active,
            )
        )
    return entries


@router.get("/my/schedule", response_model=ScheduleResponse)
def get_my_schedule(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ScheduleResponse:
    return _to_response(user.id, schedule_store.get_weekly_schedule(db, user.id))


@router.put("/my/schedule", response_model=ScheduleResponse)
def update_my_schedule(
    payload: ScheduleUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ScheduleResponse:
    if user.role != UserRole.SPECIALIST:
        raise ForbiddenError("Only specialists have a schedule")
    schedule_store.get_specialist(db, user.id)
    rows = schedule_store.replace_weekly_schedule(db, user.id, _to_entries(payload))
    return _to_response(user.id, rows)


@router.get("/admin/specialists/{specialist_id}/schedule", response_model=ScheduleResponse)
def get_specialist_schedule(
    specialist_id: str,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ScheduleResponse:
    schedule_store.get_specialist(db, specialist_id)
    return _to_response(specialist_id, schedule_store.get_weekly_schedule(db, specialist_id))


@router.put("/admin/specialists/{specialist_id}/schedule", response_model=ScheduleResponse)
def update_specialist_schedule(
    specialist_id: str,
    payload: ScheduleUpdateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ScheduleResponse:
    schedule_store.get_specialist(db, specialist_id)
    rows = schedule_store.replace_weekly_schedule(db, specialist_id, _to_entries(payload))
    return _to_response(specialist_id, rows)
