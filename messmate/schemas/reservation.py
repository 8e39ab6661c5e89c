import datetime as dt
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from messmate.models.reservation import ReservationStatus, CancelledBy


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReservationCreate(CamelModel):
    """Booking request. Presence of identity fields is checked by the service."""
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    mess_id: Optional[str] = None
    mess_email: Optional[str] = None
    mess_name: Optional[str] = None
    date: Optional[dt.date] = None
    time_slot: Optional[str] = None
    amount: Optional[float] = None


class ReservationUpdate(CamelModel):
    """Partial update - only date, time slot and amount can change."""
    date: Optional[dt.date] = None
    time_slot: Optional[str] = None
    amount: Optional[float] = None


class ReservationResponse(CamelModel):
    id: str
    user_email: str
    user_name: Optional[str] = None
    mess_id: str
    mess_email: str
    mess_name: Optional[str] = None
    date: dt.date
    time_slot: str
    status: ReservationStatus
    is_paid: bool
    payment_id: Optional[str] = None
    amount: Optional[float] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    approved_at: Optional[dt.datetime] = None
    confirmed_at: Optional[dt.datetime] = None
    cancelled_at: Optional[dt.datetime] = None
    cancelled_by: Optional[CancelledBy] = None


class ApiResponse(BaseModel):
    message: str
    success: bool
