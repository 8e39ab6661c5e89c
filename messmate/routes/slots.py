import datetime as dt
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import List

from messmate.core.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    MessMateError,
    NotFoundError,
    ValidationError
)
from messmate.db.mongo import get_db
from messmate.models.reservation import CancelledBy
from messmate.schemas.reservation import (
    ApiResponse,
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate
)
from messmate.services.reservation_service import ReservationService
from messmate.utils.mapping import to_reservation_response

router = APIRouter(prefix="/slot", tags=["slots"])


def get_reservation_service(request: Request, db = Depends(get_db)) -> ReservationService:
    """Service bound to the app-wide slot lock registry."""
    return ReservationService(db, locks=request.app.state.slot_locks)


def _to_http_exception(exc: MessMateError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidStateTransitionError, CapacityExceededError)):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=exc.message)


@router.post("/book", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_slot(
    payload: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service)
):
    """Request a meal slot. Starts PENDING and notifies the mess owner."""
    try:
        reservation = await service.create(payload)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.get("/check-availability", response_model=bool)
async def check_slot_availability(
    date: dt.date,
    time_slot: str = Query(..., alias="timeSlot"),
    mess_email: str = Query(..., alias="messEmail"),
    service: ReservationService = Depends(get_reservation_service)
):
    """Whether the slot still has room for another approved booking."""
    return await service.check_availability(date, time_slot, mess_email)


@router.get("/user/{user_email}", response_model=List[ReservationResponse])
async def get_booking_slots_by_user_email(
    user_email: str,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_by_user_email(user_email)
    return [to_reservation_response(r) for r in reservations]


@router.get("/user/{user_email}/status/{slot_status}", response_model=List[ReservationResponse])
async def get_booking_slots_by_user_email_and_status(
    user_email: str,
    slot_status: str,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservations = await service.list_by_user_email_and_status(user_email, slot_status)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return [to_reservation_response(r) for r in reservations]


@router.get("/mess/{mess_email}", response_model=List[ReservationResponse])
async def get_booking_slots_by_mess_email(
    mess_email: str,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_by_mess_email(mess_email)
    return [to_reservation_response(r) for r in reservations]


@router.get("/pending/mess/{mess_email}", response_model=List[ReservationResponse])
async def get_pending_booking_slots_by_mess_email(
    mess_email: str,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_pending_by_mess_email(mess_email)
    return [to_reservation_response(r) for r in reservations]


@router.get("/confirmed/mess/{mess_email}", response_model=List[ReservationResponse])
async def get_confirmed_booking_slots_by_mess_email(
    mess_email: str,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_confirmed_by_mess_email(mess_email)
    return [to_reservation_response(r) for r in reservations]


@router.get("/date/{date}", response_model=List[ReservationResponse])
async def get_booking_slots_by_date(
    date: dt.date,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_by_date(date)
    return [to_reservation_response(r) for r in reservations]


@router.get("/date/{date}/mess/{mess_email}", response_model=List[ReservationResponse])
async def get_booking_slots_by_date_and_mess_email(
    date: dt.date,
    mess_email: str,
    service: ReservationService = Depends(get_reservation_service)
):
    reservations = await service.list_by_date_and_mess_email(date, mess_email)
    return [to_reservation_response(r) for r in reservations]


@router.put("/approve/{slot_id}", response_model=ReservationResponse)
async def approve_booking_slot(
    slot_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    """Mess owner approves a PENDING request; the user is asked to pay."""
    try:
        reservation = await service.approve(slot_id)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.put("/confirm/{slot_id}", response_model=ReservationResponse)
async def confirm_booking_slot(
    slot_id: str,
    payment_id: str = Query(..., alias="paymentId"),
    service: ReservationService = Depends(get_reservation_service)
):
    """Confirm a booking after payment."""
    try:
        reservation = await service.confirm(slot_id, payment_id)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.put("/cancel/{slot_id}", response_model=ReservationResponse)
async def cancel_booking_slot(
    slot_id: str,
    cancelled_by: CancelledBy = Query(CancelledBy.USER, alias="cancelledBy"),
    service: ReservationService = Depends(get_reservation_service)
):
    """Cancel a PENDING or APPROVED booking. cancelledBy decides who is notified."""
    try:
        reservation = await service.cancel(slot_id, cancelled_by)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.get("/{slot_id}", response_model=ReservationResponse)
async def get_booking_slot(
    slot_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.get(slot_id)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.put("/{slot_id}", response_model=ReservationResponse)
async def update_booking_slot(
    slot_id: str,
    payload: ReservationUpdate,
    service: ReservationService = Depends(get_reservation_service)
):
    """Change date, time slot or amount. Omitted fields stay as they are."""
    try:
        reservation = await service.update(slot_id, payload)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return to_reservation_response(reservation)


@router.delete("/{slot_id}", response_model=ApiResponse)
async def delete_booking_slot(
    slot_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        await service.delete(slot_id)
    except MessMateError as exc:
        raise _to_http_exception(exc)
    return ApiResponse(message="Booking slot deleted successfully", success=True)
