from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB hands back on reads."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for a valid hex string, None otherwise."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None
