import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional

from messmate.db.mongo import get_db
from messmate.schemas.ledger import (
    LedgerEntryResponse,
    PendingDuesResponse,
    TotalPendingDuesResponse
)
from messmate.schemas.pagination import Page
from messmate.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payments"])


def get_ledger_service(db = Depends(get_db)) -> LedgerService:
    return LedgerService(db)


def _server_error(action: str, exc: Exception) -> HTTPException:
    """Payment endpoints report every failure as 500 with the raw message."""
    logger.warning("Error %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Error {action}: {exc}"
    )


@router.post("/record", response_model=LedgerEntryResponse)
async def record_payment(
    user_email: str = Query(..., alias="userEmail"),
    owner_email: str = Query(..., alias="ownerEmail"),
    mess_id: str = Query(..., alias="messId"),
    amount_paid: float = Query(..., alias="amountPaid"),
    remaining_dues: float = Query(..., alias="remainingDues"),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    transaction_id: Optional[str] = Query(None, alias="transactionId"),
    notes: Optional[str] = Query(None),
    service: LedgerService = Depends(get_ledger_service)
):
    """Append a payment. The user and the mess must both exist."""
    try:
        entry = await service.record_payment(
            user_email,
            owner_email,
            mess_id,
            amount_paid,
            remaining_dues,
            payment_method=payment_method,
            transaction_id=transaction_id,
            notes=notes
        )
        described = await service.with_display_names([entry])
    except Exception as exc:
        raise _server_error("recording payment", exc)
    return described[0]


@router.get("/pending/user/{user_email}/mess/{mess_id}", response_model=PendingDuesResponse)
async def get_pending_dues_by_user_email(
    user_email: str,
    mess_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    """Outstanding dues for a user in a mess."""
    try:
        pending_dues = await service.get_outstanding_dues(user_email, mess_id)
    except Exception as exc:
        raise _server_error("fetching pending dues", exc)
    return PendingDuesResponse(user_email=user_email, mess_id=mess_id, pending_dues=pending_dues)


@router.get("/total-pending/mess/{mess_id}", response_model=TotalPendingDuesResponse)
async def get_total_pending_dues_for_mess(
    mess_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    """Sum of every member's latest remaining dues."""
    try:
        total = await service.get_total_outstanding_for_mess(mess_id)
    except Exception as exc:
        raise _server_error("fetching total pending dues", exc)
    return TotalPendingDuesResponse(mess_id=mess_id, total_pending_dues=total)


@router.get("/user/{user_email}", response_model=List[LedgerEntryResponse])
async def get_user_payments(
    user_email: str,
    service: LedgerService = Depends(get_ledger_service)
):
    try:
        return await service.list_user_payments(user_email)
    except Exception as exc:
        raise _server_error("fetching payments", exc)


@router.get("/user/{user_email}/mess/{mess_id}", response_model=List[LedgerEntryResponse])
async def get_user_mess_payments(
    user_email: str,
    mess_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    try:
        return await service.list_user_mess_payments(user_email, mess_id)
    except Exception as exc:
        raise _server_error("fetching payments", exc)


@router.get("/mess/{mess_id}", response_model=List[LedgerEntryResponse])
async def get_mess_payments(
    mess_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    try:
        return await service.list_mess_payments(mess_id)
    except Exception as exc:
        raise _server_error("fetching payments", exc)


@router.get("/mess/{mess_id}/page", response_model=Page[LedgerEntryResponse])
async def get_mess_payments_page(
    mess_id: str,
    page: int = 0,
    size: int = 20,
    service: LedgerService = Depends(get_ledger_service)
):
    """Newest-first page of a mess's payments."""
    try:
        return await service.page_mess_payments(mess_id, page, size)
    except Exception as exc:
        raise _server_error("fetching payments", exc)


@router.get("/date-range", response_model=List[LedgerEntryResponse])
async def get_payments_by_date_range(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    service: LedgerService = Depends(get_ledger_service)
):
    try:
        return await service.list_payments_by_date_range(start_date, end_date)
    except Exception as exc:
        raise _server_error("fetching payments by date range", exc)
