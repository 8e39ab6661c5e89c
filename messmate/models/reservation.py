"""
Reservation model - one requested extra meal slot.

Lifecycle:
- PENDING -> APPROVED -> CONFIRMED -> COMPLETED
- CANCELLED reachable from PENDING or APPROVED
- CONFIRMED, COMPLETED and CANCELLED are terminal (only hard delete remains)

Invariants:
- is_paid implies payment_id is set and status is CONFIRMED or COMPLETED
- status == CANCELLED implies cancelled_at is set
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class CancelledBy(str, Enum):
    USER = "USER"
    OWNER = "OWNER"


# Statuses that occupy a place in a slot
ACTIVE_STATUSES = (ReservationStatus.APPROVED, ReservationStatus.CONFIRMED)

# Allowed prior statuses per transition
APPROVABLE_FROM = (ReservationStatus.PENDING,)
CONFIRMABLE_FROM = (ReservationStatus.PENDING, ReservationStatus.APPROVED)
CANCELLABLE_FROM = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


class Reservation(BaseModel):
    id: Optional[str] = None

    # User details
    user_email: str
    user_name: Optional[str] = None

    # Mess details
    mess_id: str
    mess_email: str
    mess_name: Optional[str] = None

    # Booking details
    date: dt.date
    time_slot: str  # e.g. "7:00 AM - 8:00 AM"
    status: ReservationStatus = ReservationStatus.PENDING

    # Payment details
    is_paid: bool = False
    payment_id: Optional[str] = None
    amount: Optional[float] = None

    # Timestamps
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    approved_at: Optional[dt.datetime] = None
    confirmed_at: Optional[dt.datetime] = None
    cancelled_at: Optional[dt.datetime] = None
    cancelled_by: Optional[CancelledBy] = None

    def is_active(self) -> bool:
        """Whether this reservation counts against slot capacity."""
        return self.status in ACTIVE_STATUSES
