"""
ReservationRepository - booking slot documents.

Status transitions are compare-and-swap updates: the filter carries the
allowed prior statuses, so the precondition check and the write happen in
one single-document operation.
"""

import datetime as dt
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from messmate.models.base import parse_object_id
from messmate.models.reservation import ACTIVE_STATUSES, Reservation, ReservationStatus
from messmate.utils.mapping import date_to_doc, reservation_from_doc, reservation_to_doc


class ReservationRepository:
    """Repository for booking slots."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["booking_slots"]

    async def insert(self, reservation: Reservation) -> Reservation:
        doc = reservation_to_doc(reservation)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return reservation_from_doc(doc)

    async def get(self, reservation_id: str) -> Optional[Reservation]:
        oid = parse_object_id(reservation_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        if doc:
            return reservation_from_doc(doc)
        return None

    async def transition(
        self,
        reservation_id: str,
        allowed_from: Iterable[ReservationStatus],
        updates: Dict[str, Any]
    ) -> Optional[Reservation]:
        """
        Apply updates only if the current status is one of allowed_from.

        Returns the updated reservation, or None when the id is unknown or
        the status did not match.
        """
        oid = parse_object_id(reservation_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {
                "_id": oid,
                "status": {"$in": [status.value for status in allowed_from]}
            },
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return reservation_from_doc(doc)
        return None

    async def update_fields(
        self,
        reservation_id: str,
        expected_status: ReservationStatus,
        updates: Dict[str, Any],
        require_unpaid: bool = False
    ) -> Optional[Reservation]:
        """
        Apply updates only if the status is still expected_status (and the
        booking is unpaid when require_unpaid is set).

        Returns None when the id is unknown or the precondition failed.
        """
        oid = parse_object_id(reservation_id)
        if oid is None:
            return None
        query: Dict[str, Any] = {"_id": oid, "status": expected_status.value}
        if require_unpaid:
            query["is_paid"] = False
        doc = await self.collection.find_one_and_update(
            query,
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return reservation_from_doc(doc)
        return None

    async def delete(self, reservation_id: str) -> bool:
        oid = parse_object_id(reservation_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def count_active(self, date: dt.date, time_slot: str, mess_email: str) -> int:
        """Count APPROVED/CONFIRMED reservations holding a place in the slot."""
        return await self.collection.count_documents({
            "date": date_to_doc(date),
            "time_slot": time_slot,
            "mess_email": mess_email,
            "status": {"$in": [status.value for status in ACTIVE_STATUSES]}
        })

    # ===== QUERIES =====

    async def list_by_user_email(self, user_email: str) -> List[Reservation]:
        return await self._find({"user_email": user_email})

    async def list_by_mess_email(self, mess_email: str) -> List[Reservation]:
        return await self._find({"mess_email": mess_email})

    async def list_by_mess_email_and_status(
        self, mess_email: str, status: ReservationStatus
    ) -> List[Reservation]:
        return await self._find({"mess_email": mess_email, "status": status.value})

    async def list_by_user_email_and_status(
        self, user_email: str, status: ReservationStatus
    ) -> List[Reservation]:
        return await self._find({"user_email": user_email, "status": status.value})

    async def list_by_date(self, date: dt.date) -> List[Reservation]:
        return await self._find({"date": date_to_doc(date)})

    async def list_by_date_and_mess_email(self, date: dt.date, mess_email: str) -> List[Reservation]:
        return await self._find({"date": date_to_doc(date), "mess_email": mess_email})

    async def _find(self, query: Dict[str, Any]) -> List[Reservation]:
        cursor = self.collection.find(query).sort("created_at", -1)
        docs = await cursor.to_list(None)
        return [reservation_from_doc(doc) for doc in docs]
