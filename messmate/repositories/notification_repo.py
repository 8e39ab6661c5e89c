from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from messmate.models.base import parse_object_id
from messmate.models.notification import Notification
from messmate.utils.mapping import notification_from_doc, notification_to_doc


class NotificationRepository:
    """Notification database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["notifications"]

    async def insert(self, notification: Notification) -> Notification:
        doc = notification_to_doc(notification)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return notification_from_doc(doc)

    async def list_for_recipient(self, recipient_email: str, unread_only: bool = False) -> List[Notification]:
        """Notifications for a recipient, newest first."""
        query = {"recipient_email": recipient_email}
        if unread_only:
            query["is_read"] = False
        docs = await self.collection.find(query).sort([("created_at", -1), ("_id", -1)]).to_list(None)
        return [notification_from_doc(doc) for doc in docs]

    async def count_unread(self, recipient_email: str) -> int:
        return await self.collection.count_documents({
            "recipient_email": recipient_email,
            "is_read": False
        })

    async def mark_read(self, notification_id: str, recipient_email: str) -> Optional[Notification]:
        """Mark one notification read. Only the recipient may do this."""
        oid = parse_object_id(notification_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid, "recipient_email": recipient_email},
            {"$set": {"is_read": True}},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return notification_from_doc(doc)
        return None

    async def mark_all_read(self, recipient_email: str) -> int:
        result = await self.collection.update_many(
            {"recipient_email": recipient_email, "is_read": False},
            {"$set": {"is_read": True}}
        )
        return result.modified_count

    async def delete(self, notification_id: str, recipient_email: str) -> bool:
        oid = parse_object_id(notification_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid, "recipient_email": recipient_email})
        return result.deleted_count > 0
