"""
Explicit field mappings between stored documents, domain models and
response schemas.

Every pair has its own function so a renamed or missing field fails
loudly instead of silently becoming None.
"""

import datetime as dt
from typing import Any, Dict, Optional

from messmate.models.identity import MessIdentity, UserIdentity
from messmate.models.ledger import LedgerEntry
from messmate.models.notification import Notification
from messmate.models.reservation import CancelledBy, Reservation, ReservationStatus
from messmate.schemas.ledger import LedgerEntryResponse
from messmate.schemas.notification import NotificationResponse
from messmate.schemas.reservation import ReservationResponse


def date_to_doc(value: dt.date) -> str:
    """Calendar dates are stored as ISO strings (BSON has no date-only type)."""
    return value.isoformat()


def date_from_doc(value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(value)


# ===== RESERVATION =====

def reservation_to_doc(reservation: Reservation) -> Dict[str, Any]:
    return {
        "user_email": reservation.user_email,
        "user_name": reservation.user_name,
        "mess_id": reservation.mess_id,
        "mess_email": reservation.mess_email,
        "mess_name": reservation.mess_name,
        "date": date_to_doc(reservation.date),
        "time_slot": reservation.time_slot,
        "status": reservation.status.value,
        "is_paid": reservation.is_paid,
        "payment_id": reservation.payment_id,
        "amount": reservation.amount,
        "created_at": reservation.created_at,
        "updated_at": reservation.updated_at,
        "approved_at": reservation.approved_at,
        "confirmed_at": reservation.confirmed_at,
        "cancelled_at": reservation.cancelled_at,
        "cancelled_by": reservation.cancelled_by.value if reservation.cancelled_by else None
    }


def reservation_from_doc(doc: Dict[str, Any]) -> Reservation:
    cancelled_by = doc.get("cancelled_by")
    return Reservation(
        id=str(doc["_id"]),
        user_email=doc["user_email"],
        user_name=doc.get("user_name"),
        mess_id=doc["mess_id"],
        mess_email=doc["mess_email"],
        mess_name=doc.get("mess_name"),
        date=date_from_doc(doc["date"]),
        time_slot=doc["time_slot"],
        status=ReservationStatus(doc["status"]),
        is_paid=doc.get("is_paid", False),
        payment_id=doc.get("payment_id"),
        amount=doc.get("amount"),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
        approved_at=doc.get("approved_at"),
        confirmed_at=doc.get("confirmed_at"),
        cancelled_at=doc.get("cancelled_at"),
        cancelled_by=CancelledBy(cancelled_by) if cancelled_by else None
    )


def to_reservation_response(reservation: Reservation) -> ReservationResponse:
    return ReservationResponse(
        id=reservation.id,
        user_email=reservation.user_email,
        user_name=reservation.user_name,
        mess_id=reservation.mess_id,
        mess_email=reservation.mess_email,
        mess_name=reservation.mess_name,
        date=reservation.date,
        time_slot=reservation.time_slot,
        status=reservation.status,
        is_paid=reservation.is_paid,
        payment_id=reservation.payment_id,
        amount=reservation.amount,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
        approved_at=reservation.approved_at,
        confirmed_at=reservation.confirmed_at,
        cancelled_at=reservation.cancelled_at,
        cancelled_by=reservation.cancelled_by
    )


# ===== LEDGER =====

def ledger_entry_to_doc(entry: LedgerEntry) -> Dict[str, Any]:
    return {
        "user_email": entry.user_email,
        "owner_email": entry.owner_email,
        "mess_id": entry.mess_id,
        "total_dues": entry.total_dues,
        "amount_paid": entry.amount_paid,
        "remaining_dues": entry.remaining_dues,
        "payment_date": entry.payment_date,
        "payment_method": entry.payment_method,
        "transaction_id": entry.transaction_id,
        "status": entry.status,
        "notes": entry.notes,
        "period_start": entry.period_start,
        "period_end": entry.period_end
    }


def ledger_entry_from_doc(doc: Dict[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        id=str(doc["_id"]),
        user_email=doc["user_email"],
        owner_email=doc["owner_email"],
        mess_id=doc["mess_id"],
        total_dues=doc["total_dues"],
        amount_paid=doc["amount_paid"],
        remaining_dues=doc["remaining_dues"],
        payment_date=doc["payment_date"],
        payment_method=doc.get("payment_method"),
        transaction_id=doc.get("transaction_id"),
        status=doc["status"],
        notes=doc.get("notes"),
        period_start=doc.get("period_start"),
        period_end=doc.get("period_end")
    )


def to_ledger_entry_response(
    entry: LedgerEntry,
    user_name: Optional[str] = None,
    mess_name: Optional[str] = None
) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=entry.id,
        user_email=entry.user_email,
        owner_email=entry.owner_email,
        mess_id=entry.mess_id,
        total_dues=entry.total_dues,
        amount_paid=entry.amount_paid,
        remaining_dues=entry.remaining_dues,
        payment_date=entry.payment_date,
        payment_method=entry.payment_method,
        transaction_id=entry.transaction_id,
        status=entry.status,
        notes=entry.notes,
        period_start=entry.period_start,
        period_end=entry.period_end,
        user_name=user_name,
        mess_name=mess_name
    )


# ===== NOTIFICATION =====

def notification_to_doc(notification: Notification) -> Dict[str, Any]:
    return {
        "recipient_email": notification.recipient_email,
        "sender_email": notification.sender_email,
        "sender_name": notification.sender_name,
        "title": notification.title,
        "message": notification.message,
        "notification_type": notification.notification_type,
        "related_entity_id": notification.related_entity_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at
    }


def notification_from_doc(doc: Dict[str, Any]) -> Notification:
    return Notification(
        id=str(doc["_id"]),
        recipient_email=doc["recipient_email"],
        sender_email=doc.get("sender_email"),
        sender_name=doc.get("sender_name"),
        title=doc["title"],
        message=doc["message"],
        notification_type=doc["notification_type"],
        related_entity_id=doc.get("related_entity_id"),
        is_read=doc.get("is_read", False),
        created_at=doc["created_at"]
    )


def to_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        recipient_email=notification.recipient_email,
        sender_email=notification.sender_email,
        sender_name=notification.sender_name,
        title=notification.title,
        message=notification.message,
        notification_type=notification.notification_type,
        related_entity_id=notification.related_entity_id,
        is_read=notification.is_read,
        created_at=notification.created_at
    )


# ===== IDENTITY =====

def user_identity_from_doc(doc: Dict[str, Any]) -> UserIdentity:
    return UserIdentity(
        id=str(doc["_id"]),
        email=doc["email"],
        name=doc.get("name")
    )


def mess_identity_from_doc(doc: Dict[str, Any]) -> MessIdentity:
    return MessIdentity(
        id=str(doc["_id"]),
        email=doc.get("email"),
        name=doc.get("name"),
        mess_name=doc.get("mess_name"),
        price_per_meal=doc.get("price_per_meal"),
        subscription_plan=doc.get("subscription_plan")
    )
