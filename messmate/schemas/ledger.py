from datetime import datetime
from typing import Optional

from messmate.schemas.reservation import CamelModel


class LedgerEntryResponse(CamelModel):
    """Payment record as returned to clients, with display names resolved."""
    id: str
    user_email: str
    owner_email: str
    mess_id: str
    total_dues: float
    amount_paid: float
    remaining_dues: float
    payment_date: datetime
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    status: str
    notes: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    user_name: Optional[str] = None
    mess_name: Optional[str] = None


class PendingDuesResponse(CamelModel):
    user_email: str
    mess_id: str
    pending_dues: float


class TotalPendingDuesResponse(CamelModel):
    mess_id: str
    total_pending_dues: float
