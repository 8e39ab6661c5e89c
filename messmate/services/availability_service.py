import datetime as dt
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.core.config import settings
from messmate.repositories.reservation_repo import ReservationRepository


class AvailabilityChecker:
    """
    Answers whether a slot can take another booking.

    Only APPROVED and CONFIRMED reservations hold a place; PENDING,
    CANCELLED and COMPLETED do not. Checking does not reserve anything.
    """

    def __init__(self, db: AsyncIOMotorDatabase, capacity: Optional[int] = None):
        self.repo = ReservationRepository(db)
        self.capacity = capacity if capacity is not None else settings.SLOT_CAPACITY

    async def active_count(self, date: dt.date, time_slot: str, mess_email: str) -> int:
        return await self.repo.count_active(date, time_slot, mess_email)

    async def is_available(self, date: dt.date, time_slot: str, mess_email: str) -> bool:
        return await self.active_count(date, time_slot, mess_email) < self.capacity
