from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.core.security import CurrentUser, get_current_user, require_admin
from app.models import Booking
from app.schemas.booking import BookingCreateRequest, BookingResponse, BookingStatusUpdateRequest
from app.services import booking_guard
from app.services.notifications import BookingNotice, TelegramNotifier, notify_new_booking
from database import get_db

router = APIRouter()


def get_notifier(request: Request) -> TelegramNotifier:
    return request.app.state.notifier


def _to_response(booking: Booking) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    if booking.specialist is not None:
        response.specialist_name = booking.specialist.name
    return response


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(
    payload: BookingCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
) -> BookingResponse:
    booking = booking_guard.create_booking(db, payload)
    # Delivery happens after the response; its failures never reach the client.
    background_tasks.add_task(notify_new_booking, notifier, BookingNotice.from_booking(booking, booking.specialist))
    return _to_response(booking)


@router.get("/my/bookings", response_model=List[BookingResponse])
def list_my_bookings(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[BookingResponse]:
    return [_to_response(booking) for booking in booking_guard.list_specialist_bookings(db, user.id)]


@router.get("/admin/bookings", response_model=List[BookingResponse])
def list_all_bookings(
    _admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[BookingResponse]:
    return [_to_response(booking) for booking in booking_guard.list_all_bookings(db)]


@router.put("/bookings/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookingResponse:
    booking = booking_guard.update_booking_status(db, booking_id, payload.status, user)
    return _to_response(booking)
