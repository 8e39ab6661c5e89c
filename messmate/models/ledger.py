"""
Ledger model - one payment transaction between a user and a mess.

Design principles:
- Append-only: entries are never updated or deleted
- total_dues == amount_paid + remaining_dues at creation
- Current balance for (user, mess) is remaining_dues of the newest entry,
  not a running sum
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from messmate.models.base import utcnow


PAYMENT_STATUS_COMPLETED = "COMPLETED"


class LedgerEntry(BaseModel):
    id: Optional[str] = None

    # References
    user_email: str
    owner_email: str
    mess_id: str

    # Financial
    total_dues: float       # Dues known at payment time
    amount_paid: float      # Paid in this transaction
    remaining_dues: float   # Left after this transaction

    # Tracking (opaque to the ledger)
    payment_date: datetime = Field(default_factory=utcnow)
    payment_method: Optional[str] = None   # CASH | ONLINE | UPI ...
    transaction_id: Optional[str] = None
    status: str = PAYMENT_STATUS_COMPLETED
    notes: Optional[str] = None

    # Billing period
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
