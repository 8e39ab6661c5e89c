"""
ReservationService - the booking slot state machine.

Transitions:
- create:  -> PENDING (capacity checked under the slot lock)
- approve: PENDING -> APPROVED
- confirm: APPROVED -> CONFIRMED, or PENDING -> CONFIRMED (pay without approval)
- cancel:  PENDING | APPROVED -> CANCELLED
- update:  date / time slot / amount; not on CANCELLED, and never the amount
           of a paid booking
- delete:  hard delete

Every transition notifies the counterparty through the dispatcher; a
notification failure never undoes the transition.
"""

import datetime as dt
import logging
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.core.config import settings
from messmate.core.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError
)
from messmate.core.slot_lock import SlotLockRegistry
from messmate.models.base import utcnow
from messmate.models.notification import NotificationType
from messmate.models.reservation import (
    APPROVABLE_FROM,
    CANCELLABLE_FROM,
    CONFIRMABLE_FROM,
    CancelledBy,
    Reservation,
    ReservationStatus
)
from messmate.repositories.reservation_repo import ReservationRepository
from messmate.schemas.reservation import ReservationCreate, ReservationUpdate
from messmate.services.availability_service import AvailabilityChecker
from messmate.services.notification_service import NotificationDispatcher, NotificationService
from messmate.utils.mapping import date_to_doc

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Booking slot not found"


class ReservationService:

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        dispatcher: Optional[NotificationDispatcher] = None,
        locks: Optional[SlotLockRegistry] = None,
        capacity: Optional[int] = None
    ):
        self.repo = ReservationRepository(db)
        self.availability = AvailabilityChecker(
            db, capacity if capacity is not None else settings.SLOT_CAPACITY
        )
        self.dispatcher = dispatcher or NotificationDispatcher(NotificationService(db))
        self.locks = locks if locks is not None else SlotLockRegistry()

    # ===== TRANSITIONS =====

    async def create(self, request: ReservationCreate) -> Reservation:
        """Persist a PENDING booking if the slot still has room."""
        missing = [
            name
            for name, value in (
                ("userEmail", request.user_email),
                ("messId", request.mess_id),
                ("messEmail", request.mess_email),
                ("date", request.date),
                ("timeSlot", request.time_slot)
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if request.amount is not None and request.amount < 0:
            raise ValidationError("Amount must not be negative")

        async with self.locks.hold(request.mess_email, request.date, request.time_slot):
            if not await self.availability.is_available(request.date, request.time_slot, request.mess_email):
                raise CapacityExceededError(
                    f"Slot {request.time_slot} on {request.date.isoformat()} is fully booked"
                )

            now = utcnow()
            reservation = await self.repo.insert(Reservation(
                user_email=request.user_email,
                user_name=request.user_name,
                mess_id=request.mess_id,
                mess_email=request.mess_email,
                mess_name=request.mess_name,
                date=request.date,
                time_slot=request.time_slot,
                status=ReservationStatus.PENDING,
                is_paid=False,
                amount=request.amount,
                created_at=now,
                updated_at=now
            ))

        logger.info("Booking slot %s requested by %s", reservation.id, reservation.user_email)
        await self.dispatcher.notify(
            reservation.mess_email,
            reservation.user_email,
            "New Booking Request",
            f"You have received a new booking request for {reservation.date.isoformat()} "
            f"at {reservation.time_slot} from {reservation.user_name}",
            NotificationType.BOOKING_REQUEST.value,
            reservation.id
        )
        return reservation

    async def approve(self, reservation_id: str) -> Reservation:
        now = utcnow()
        reservation = await self._transition(
            reservation_id,
            APPROVABLE_FROM,
            {
                "status": ReservationStatus.APPROVED.value,
                "approved_at": now,
                "updated_at": now
            },
            "approve"
        )

        await self.dispatcher.notify(
            reservation.user_email,
            reservation.mess_email,
            "Booking Request Approved",
            f"Your booking request for {reservation.date.isoformat()} at {reservation.time_slot} "
            "has been approved. Please proceed with payment to confirm.",
            NotificationType.BOOKING_APPROVED.value,
            reservation.id
        )
        return reservation

    async def confirm(self, reservation_id: str, payment_id: str) -> Reservation:
        """Record the payment reference and confirm the booking."""
        if not payment_id or not payment_id.strip():
            raise ValidationError("paymentId is required to confirm a booking")

        now = utcnow()
        reservation = await self._transition(
            reservation_id,
            CONFIRMABLE_FROM,
            {
                "status": ReservationStatus.CONFIRMED.value,
                "is_paid": True,
                "payment_id": payment_id,
                "confirmed_at": now,
                "updated_at": now
            },
            "confirm"
        )

        await self.dispatcher.notify(
            reservation.user_email,
            reservation.mess_email,
            "Booking Confirmed",
            f"Your booking for {reservation.date.isoformat()} at {reservation.time_slot} has been confirmed.",
            NotificationType.BOOKING_CONFIRMED.value,
            reservation.id
        )
        await self.dispatcher.notify(
            reservation.mess_email,
            reservation.user_email,
            "Booking Confirmed",
            f"A booking for {reservation.date.isoformat()} at {reservation.time_slot} "
            f"has been confirmed by {reservation.user_name}",
            NotificationType.BOOKING_CONFIRMED.value,
            reservation.id
        )
        return reservation

    async def cancel(self, reservation_id: str, cancelled_by: CancelledBy = CancelledBy.USER) -> Reservation:
        """Cancel a booking that is not yet confirmed and tell the other side."""
        now = utcnow()
        reservation = await self._transition(
            reservation_id,
            CANCELLABLE_FROM,
            {
                "status": ReservationStatus.CANCELLED.value,
                "cancelled_at": now,
                "cancelled_by": cancelled_by.value,
                "updated_at": now
            },
            "cancel"
        )

        when = f"{reservation.date.isoformat()} at {reservation.time_slot}"
        if cancelled_by == CancelledBy.USER:
            await self.dispatcher.notify(
                reservation.mess_email,
                reservation.user_email,
                "Booking Cancelled",
                f"A booking for {when} has been cancelled by {reservation.user_name}",
                NotificationType.BOOKING_CANCELLED.value,
                reservation.id
            )
        else:
            await self.dispatcher.notify(
                reservation.user_email,
                reservation.mess_email,
                "Booking Cancelled",
                f"Your booking for {when} has been cancelled by the mess owner.",
                NotificationType.BOOKING_CANCELLED.value,
                reservation.id
            )
        return reservation

    async def update(self, reservation_id: str, patch: ReservationUpdate) -> Reservation:
        """
        Partial update of date, time slot and amount. Status is untouched.

        Moving an APPROVED or CONFIRMED booking takes a place in the target
        slot, so that slot is checked under its lock.
        """
        updates: Dict[str, Any] = {}
        if patch.date is not None:
            updates["date"] = date_to_doc(patch.date)
        if patch.time_slot is not None:
            if not patch.time_slot.strip():
                raise ValidationError("timeSlot must not be blank")
            updates["time_slot"] = patch.time_slot
        if patch.amount is not None:
            if patch.amount < 0:
                raise ValidationError("Amount must not be negative")
            updates["amount"] = patch.amount

        current = await self.get(reservation_id)
        if current.status == ReservationStatus.CANCELLED:
            raise InvalidStateTransitionError(current.status.value, "update")
        if "amount" in updates and current.is_paid:
            raise InvalidStateTransitionError(current.status.value, "change the amount of")

        # Always refresh the updated timestamp
        updates["updated_at"] = utcnow()

        target_date = patch.date if patch.date is not None else current.date
        target_slot = patch.time_slot if patch.time_slot is not None else current.time_slot
        moved = (target_date, target_slot) != (current.date, current.time_slot)
        if not (moved and current.is_active()):
            return await self._apply_update(current, updates)

        # An active booking takes a place in the slot it moves to
        async with self.locks.hold(current.mess_email, target_date, target_slot):
            if not await self.availability.is_available(target_date, target_slot, current.mess_email):
                raise CapacityExceededError(
                    f"Slot {target_slot} on {target_date.isoformat()} is fully booked"
                )
            return await self._apply_update(current, updates)

    async def delete(self, reservation_id: str) -> None:
        if not await self.repo.delete(reservation_id):
            raise NotFoundError(NOT_FOUND_MESSAGE)
        logger.info("Booking slot %s deleted", reservation_id)

    # ===== QUERIES =====

    async def get(self, reservation_id: str) -> Reservation:
        reservation = await self.repo.get(reservation_id)
        if reservation is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return reservation

    async def list_by_user_email(self, user_email: str) -> List[Reservation]:
        return await self.repo.list_by_user_email(user_email)

    async def list_by_mess_email(self, mess_email: str) -> List[Reservation]:
        return await self.repo.list_by_mess_email(mess_email)

    async def list_pending_by_mess_email(self, mess_email: str) -> List[Reservation]:
        return await self.repo.list_by_mess_email_and_status(mess_email, ReservationStatus.PENDING)

    async def list_confirmed_by_mess_email(self, mess_email: str) -> List[Reservation]:
        return await self.repo.list_by_mess_email_and_status(mess_email, ReservationStatus.CONFIRMED)

    async def list_by_date(self, date: dt.date) -> List[Reservation]:
        return await self.repo.list_by_date(date)

    async def list_by_date_and_mess_email(self, date: dt.date, mess_email: str) -> List[Reservation]:
        return await self.repo.list_by_date_and_mess_email(date, mess_email)

    async def list_by_user_email_and_status(self, user_email: str, status: str) -> List[Reservation]:
        try:
            parsed = ReservationStatus(status.upper())
        except ValueError:
            raise ValidationError(f"Unknown booking status: {status}")
        return await self.repo.list_by_user_email_and_status(user_email, parsed)

    async def check_availability(self, date: dt.date, time_slot: str, mess_email: str) -> bool:
        return await self.availability.is_available(date, time_slot, mess_email)

    # ===== PRIVATE HELPERS =====

    async def _apply_update(self, current: Reservation, updates: Dict[str, Any]) -> Reservation:
        # Compare-and-swap against the status (and paid flag) read above
        reservation = await self.repo.update_fields(
            current.id,
            current.status,
            updates,
            require_unpaid="amount" in updates
        )
        if reservation is not None:
            return reservation

        latest = await self.repo.get(current.id)
        if latest is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        raise InvalidStateTransitionError(latest.status.value, "update")

    async def _transition(
        self,
        reservation_id: str,
        allowed_from: Iterable[ReservationStatus],
        updates: Dict[str, Any],
        action: str
    ) -> Reservation:
        reservation = await self.repo.transition(reservation_id, allowed_from, updates)
        if reservation is not None:
            logger.info("Booking slot %s: %s -> %s", reservation_id, action, reservation.status.value)
            return reservation

        # Nothing matched: either the id is unknown or the status forbids it
        current = await self.repo.get(reservation_id)
        if current is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        raise InvalidStateTransitionError(current.status.value, action)
