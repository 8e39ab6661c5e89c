"""
LedgerRepository - append-only payment records.

Balance rules:
1. Outstanding dues for (user, mess) = remaining_dues of the newest entry
2. Total outstanding for a mess = sum over users of their newest entry's
   remaining_dues
3. Newest means payment_date descending, _id descending on ties
"""

from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.models.ledger import LedgerEntry
from messmate.utils.mapping import ledger_entry_from_doc, ledger_entry_to_doc

NEWEST_FIRST = [("payment_date", -1), ("_id", -1)]


class LedgerRepository:
    """Repository for ledger entries (payments)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["payments"]

    async def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        """Append one entry. Entries are never updated afterwards."""
        doc = ledger_entry_to_doc(entry)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return ledger_entry_from_doc(doc)

    async def get_latest_entry(self, user_email: str, mess_id: str) -> Optional[LedgerEntry]:
        """Newest entry for a (user, mess) pair, or None if the user never paid."""
        docs = await self.collection.find({
            "user_email": user_email,
            "mess_id": mess_id
        }).sort(NEWEST_FIRST).limit(1).to_list(1)
        if docs:
            return ledger_entry_from_doc(docs[0])
        return None

    async def get_total_remaining_for_mess(self, mess_id: str) -> float:
        """
        Sum of each user's latest remaining_dues in a mess.

        Returns 0.0 for a mess without payments.
        """
        result = await self.collection.aggregate([
            {"$match": {"mess_id": mess_id}},
            {"$sort": {"payment_date": -1, "_id": -1}},
            {
                "$group": {
                    "_id": "$user_email",
                    "remaining_dues": {"$first": "$remaining_dues"}
                }
            },
            {
                "$group": {
                    "_id": None,
                    "total": {"$sum": "$remaining_dues"}
                }
            }
        ]).to_list(None)

        return float(result[0]["total"]) if result else 0.0

    # ===== QUERIES =====

    async def list_by_user_email(self, user_email: str) -> List[LedgerEntry]:
        return await self._find({"user_email": user_email})

    async def list_by_mess_id(self, mess_id: str) -> List[LedgerEntry]:
        return await self._find({"mess_id": mess_id})

    async def list_by_user_email_and_mess_id(self, user_email: str, mess_id: str) -> List[LedgerEntry]:
        return await self._find({"user_email": user_email, "mess_id": mess_id})

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[LedgerEntry]:
        """Entries with start <= payment_date <= end."""
        return await self._find({"payment_date": {"$gte": start, "$lte": end}})

    async def page_by_mess_id(self, mess_id: str, page: int, size: int) -> Tuple[List[LedgerEntry], int]:
        """One page of a mess's entries plus the total entry count."""
        query = {"mess_id": mess_id}
        total = await self.collection.count_documents(query)
        docs = await self.collection.find(query).sort(NEWEST_FIRST).skip(page * size).limit(size).to_list(None)
        return [ledger_entry_from_doc(doc) for doc in docs], total

    async def _find(self, query: Dict[str, Any]) -> List[LedgerEntry]:
        docs = await self.collection.find(query).sort(NEWEST_FIRST).to_list(None)
        return [ledger_entry_from_doc(doc) for doc in docs]
