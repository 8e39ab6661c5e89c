import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.core.exceptions import NotFoundError, ValidationError
from messmate.models.base import to_naive_utc, utcnow
from messmate.models.ledger import PAYMENT_STATUS_COMPLETED, LedgerEntry
from messmate.repositories.identity_repo import IdentityRepository
from messmate.repositories.ledger_repo import LedgerRepository
from messmate.schemas.ledger import LedgerEntryResponse
from messmate.schemas.pagination import Page, paginate
from messmate.utils.mapping import to_ledger_entry_response

logger = logging.getLogger(__name__)

# Subscription plans above this are a flat monthly fee, otherwise a day count
FLAT_FEE_THRESHOLD = 100


def default_subscription_dues(price_per_meal: Optional[float], subscription_plan: Optional[int]) -> float:
    """
    Dues a member owes before their first payment.

    - subscription_plan > 100: flat fee, dues = subscription_plan
    - otherwise: day count, dues = price_per_meal * subscription_plan
    - missing fields: 0
    """
    if subscription_plan is None:
        return 0.0
    if subscription_plan > FLAT_FEE_THRESHOLD:
        return float(subscription_plan)
    if price_per_meal is None:
        return 0.0
    return float(price_per_meal) * float(subscription_plan)


class LedgerService:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.repo = LedgerRepository(db)
        self.identities = IdentityRepository(db)

    async def record_payment(
        self,
        user_email: str,
        owner_email: str,
        mess_id: str,
        amount_paid: float,
        remaining_dues: float,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None
    ) -> LedgerEntry:
        """Append a COMPLETED payment; total_dues = amount_paid + remaining_dues."""
        if amount_paid < 0 or remaining_dues < 0:
            raise ValidationError("Payment amounts must not be negative")

        user = await self.identities.get_user_by_email(user_email)
        mess = await self.identities.get_mess_by_id(mess_id)
        if user is None or mess is None:
            raise NotFoundError("User or Mess not found")

        entry = await self.repo.insert_entry(LedgerEntry(
            user_email=user_email,
            owner_email=owner_email,
            mess_id=mess_id,
            total_dues=amount_paid + remaining_dues,
            amount_paid=amount_paid,
            remaining_dues=remaining_dues,
            payment_date=utcnow(),
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=PAYMENT_STATUS_COMPLETED,
            notes=notes,
            period_start=to_naive_utc(period_start),
            period_end=to_naive_utc(period_end)
        ))
        logger.info(
            "Recorded payment %s: %s paid %.2f to mess %s, %.2f remaining",
            entry.id, user_email, amount_paid, mess_id, remaining_dues
        )
        return entry

    async def get_outstanding_dues(self, user_email: str, mess_id: str) -> float:
        """Remaining dues of the newest payment, else the mess's default subscription dues."""
        latest = await self.repo.get_latest_entry(user_email, mess_id)
        if latest is not None:
            return latest.remaining_dues

        try:
            mess = await self.identities.get_mess_by_id(mess_id)
            if mess is None:
                return 0.0
            return default_subscription_dues(mess.price_per_meal, mess.subscription_plan)
        except Exception:
            logger.exception("Error calculating default dues for mess %s", mess_id)
            return 0.0

    async def get_total_outstanding_for_mess(self, mess_id: str) -> float:
        return await self.repo.get_total_remaining_for_mess(mess_id)

    # ===== QUERIES =====

    async def list_user_payments(self, user_email: str) -> List[LedgerEntryResponse]:
        return await self.with_display_names(await self.repo.list_by_user_email(user_email))

    async def list_mess_payments(self, mess_id: str) -> List[LedgerEntryResponse]:
        return await self.with_display_names(await self.repo.list_by_mess_id(mess_id))

    async def list_user_mess_payments(self, user_email: str, mess_id: str) -> List[LedgerEntryResponse]:
        entries = await self.repo.list_by_user_email_and_mess_id(user_email, mess_id)
        return await self.with_display_names(entries)

    async def list_payments_by_date_range(self, start: datetime, end: datetime) -> List[LedgerEntryResponse]:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if start > end:
            raise ValidationError("startDate must not be after endDate")
        return await self.with_display_names(await self.repo.list_by_date_range(start, end))

    async def page_mess_payments(self, mess_id: str, page: int, size: int) -> Page[LedgerEntryResponse]:
        if page < 0 or size < 1:
            raise ValidationError("page must be >= 0 and size >= 1")
        entries, total = await self.repo.page_by_mess_id(mess_id, page, size)
        user_names, mess_names = await self._display_names(entries)
        return paginate(
            entries,
            total,
            page,
            size,
            lambda entry: to_ledger_entry_response(
                entry,
                user_name=user_names[entry.user_email],
                mess_name=mess_names[entry.mess_id]
            )
        )

    async def with_display_names(self, entries: List[LedgerEntry]) -> List[LedgerEntryResponse]:
        """Attach user and mess display names to each entry."""
        user_names, mess_names = await self._display_names(entries)
        return [
            to_ledger_entry_response(
                entry,
                user_name=user_names[entry.user_email],
                mess_name=mess_names[entry.mess_id]
            )
            for entry in entries
        ]

    async def _display_names(
        self, entries: List[LedgerEntry]
    ) -> Tuple[Dict[str, Optional[str]], Dict[str, Optional[str]]]:
        """Look each distinct user and mess up once."""
        user_names: Dict[str, Optional[str]] = {}
        mess_names: Dict[str, Optional[str]] = {}
        for entry in entries:
            if entry.user_email not in user_names:
                user = await self.identities.get_user_by_email(entry.user_email)
                user_names[entry.user_email] = user.name if user else None
            if entry.mess_id not in mess_names:
                mess = await self.identities.get_mess_by_id(entry.mess_id)
                mess_names[entry.mess_id] = mess.mess_name if mess else None
        return user_names, mess_names
