import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from messmate.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    # Create indexes
    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Identity lookups
    await db["users"].create_index("email", unique=True)
    await db["mess_owners"].create_index("email")

    # Booking slot indexes
    await db["booking_slots"].create_index("user_email")
    await db["booking_slots"].create_index([("mess_email", 1), ("status", 1)])
    await db["booking_slots"].create_index([("date", 1), ("time_slot", 1), ("mess_email", 1)])

    # Payment ledger indexes
    await db["payments"].create_index([("user_email", 1), ("mess_id", 1), ("payment_date", -1)])
    await db["payments"].create_index([("mess_id", 1), ("payment_date", -1)])

    # Notification indexes
    await db["notifications"].create_index([("recipient_email", 1), ("created_at", -1)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
