from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from messmate.models.base import utcnow


class NotificationType(str, Enum):
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_APPROVED = "BOOKING_APPROVED"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"


class Notification(BaseModel):
    id: Optional[str] = None
    recipient_email: str
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    title: str
    message: str
    notification_type: str
    related_entity_id: Optional[str] = None  # booking slot, payment or mess id
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
