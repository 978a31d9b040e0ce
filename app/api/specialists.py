from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.security import CurrentUser, require_admin
from app.schemas.specialist import (
    SpecialistAdminResponse,
    SpecialistCreateRequest,
    SpecialistDeletedResponse,
    SpecialistResponse,
    SpecialistUpdateRequest,
)
from app.services import accounts, availability, schedule_store
from app.services.msk_time import isoformat_utc, parse_local_date
from database import get_db

router = APIRouter()


@router.get("/specialists", response_model=List[SpecialistResponse])
def list_specialists(db: Session = Depends(get_db)) -> List[SpecialistResponse]:
    return [SpecialistResponse.model_validate(user) for user in schedule_store.list_specialists(db)]


@router.get("/specialists/{specialist_id}", response_model=SpecialistResponse)
def get_specialist(specialist_id: str, db: Session = Depends(get_db)) -> SpecialistResponse:
    return SpecialistResponse.model_validate(schedule_store.get_specialist(db, specialist_id))


@router.get("/specialists/{specialist_id}/availability", response_model=List[str])
def get_day_availability(
    specialist_id: str,
    date: str | None = Query(None, description="Moscow calendar date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
) -> List[str]:
    """Open slot start instants for one Moscow day, as ISO-8601 UTC strings."""
    if not date:
        raise ValidationError("Date required")
    day = parse_local_date(date)
    return [isoformat_utc(slot) for slot in availability.get_day_slots(db, specialist_id, day)]


@router.get("/specialists/{specialist_id}/month-availability", response_model=List[str])
def get_month_availability(
    specialist_id: str,
    year: int | None = Query(None),
    month: int | None = Query(None),
    db: Session = Depends(get_db),
) -> List[str]:
    """Dates (YYYY-MM-DD) of the month that have nothing left to book."""
    if year is None or month is None:
        raise ValidationError("Month and year required")
    full_days = availability.get_month_full_days(db, specialist_id, year, month)
    return [day.isoformat() for day in full_days]


@router.post("/admin/specialists", response_model=SpecialistAdminResponse, status_code=201)
def create_specialist(
    payload: SpecialistCreateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SpecialistAdminResponse:
    return SpecialistAdminResponse.model_validate(accounts.create_specialist(db, payload))


@router.put("/admin/specialists/{specialist_id}", response_model=SpecialistAdminResponse)
def update_specialist(
    specialist_id: str,
    payload: SpecialistUpdateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SpecialistAdminResponse:
    return SpecialistAdminResponse.model_validate(accounts.update_specialist(db, specialist_id, payload))


@router.delete("/admin/specialists/{specialist_id}", response_model=SpecialistDeletedResponse)
def delete_specialist(
    specialist_id: str,
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SpecialistDeletedResponse:
    accounts.delete_specialist(db, specialist_id)
    return SpecialistDeletedResponse(message="Specialist deleted")
