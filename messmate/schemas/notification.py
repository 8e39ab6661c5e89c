from datetime import datetime
from typing import Optional

from messmate.schemas.reservation import CamelModel


class NotificationResponse(CamelModel):
    id: str
    recipient_email: str
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    title: str
    message: str
    notification_type: str
    related_entity_id: Optional[str] = None
    is_read: bool
    created_at: datetime


class CountResponse(CamelModel):
    count: int
