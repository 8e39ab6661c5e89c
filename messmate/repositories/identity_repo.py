from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.models.base import parse_object_id
from messmate.models.identity import MessIdentity, UserIdentity
from messmate.utils.mapping import mess_identity_from_doc, user_identity_from_doc


class IdentityRepository:
    """Read-only lookups of users and messes. Profile CRUD lives elsewhere."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.users = db["users"]
        self.messes = db["mess_owners"]

    async def get_user_by_email(self, email: str) -> Optional[UserIdentity]:
        doc = await self.users.find_one({"email": email})
        if doc:
            return user_identity_from_doc(doc)
        return None

    async def get_mess_by_id(self, mess_id: str) -> Optional[MessIdentity]:
        # Mess ids are ObjectIds when valid hex, plain strings otherwise
        oid = parse_object_id(mess_id)
        doc = await self.messes.find_one({"_id": oid if oid is not None else mess_id})
        if doc:
            return mess_identity_from_doc(doc)
        return None
