import asyncio
from unittest.mock import ANY, AsyncMock

import pytest
from bson import ObjectId

from conftest import DINNER, LUNCH, OTHER_USER_EMAIL, OWNER_EMAIL, SLOT_DATE, USER_EMAIL
from messmate.core.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError
)
from messmate.models.reservation import CancelledBy, ReservationStatus
from messmate.schemas.reservation import ReservationUpdate
from messmate.services.notification_service import NotificationDispatcher
from messmate.services.reservation_service import ReservationService


@pytest.fixture
def sink():
    return AsyncMock()


@pytest.fixture
def service(test_db, sink):
    return ReservationService(
        test_db,
        dispatcher=NotificationDispatcher(sink, timeout_seconds=0.5),
        capacity=5
    )


async def _approved(service, booking_request, **overrides):
    reservation = await service.create(booking_request(**overrides))
    return await service.approve(reservation.id)


# ===== CREATE =====

@pytest.mark.asyncio
async def test_create_starts_pending_and_notifies_owner(service, sink, booking_request):
    reservation = await service.create(booking_request())

    assert reservation.id is not None
    assert reservation.status == ReservationStatus.PENDING
    assert reservation.is_paid is False
    assert reservation.payment_id is None
    assert reservation.created_at is not None
    assert reservation.approved_at is None

    sink.create_notification.assert_awaited_once_with(
        OWNER_EMAIL,
        USER_EMAIL,
        "New Booking Request",
        ANY,
        "BOOKING_REQUEST",
        reservation.id
    )


@pytest.mark.asyncio
async def test_create_missing_fields_rejected(service, test_db, booking_request):
    with pytest.raises(ValidationError) as exc_info:
        await service.create(booking_request(mess_email=None, time_slot="  "))

    assert "messEmail" in exc_info.value.message
    assert "timeSlot" in exc_info.value.message
    assert await test_db["booking_slots"].count_documents({}) == 0


@pytest.mark.asyncio
async def test_create_negative_amount_rejected(service, booking_request):
    with pytest.raises(ValidationError):
        await service.create(booking_request(amount=-1.0))


# ===== APPROVE =====

@pytest.mark.asyncio
async def test_approve_pending(service, sink, booking_request):
    reservation = await service.create(booking_request())

    approved = await service.approve(reservation.id)

    assert approved.status == ReservationStatus.APPROVED
    assert approved.approved_at is not None
    recipient, sender = sink.create_notification.await_args.args[:2]
    assert recipient == USER_EMAIL
    assert sender == OWNER_EMAIL


@pytest.mark.asyncio
async def test_approve_twice_fails(service, booking_request):
    approved = await _approved(service, booking_request)

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await service.approve(approved.id)

    assert exc_info.value.current == "APPROVED"
    stored = await service.get(approved.id)
    assert stored.status == ReservationStatus.APPROVED


@pytest.mark.asyncio
async def test_approve_unknown_id(service):
    with pytest.raises(NotFoundError):
        await service.approve(str(ObjectId()))

    with pytest.raises(NotFoundError):
        await service.approve("unknown-slot-id")


# ===== CONFIRM =====

@pytest.mark.asyncio
async def test_confirm_approved(service, sink, booking_request):
    approved = await _approved(service, booking_request)
    sink.create_notification.reset_mock()

    confirmed = await service.confirm(approved.id, "pay_123")

    assert confirmed.status == ReservationStatus.CONFIRMED
    assert confirmed.is_paid is True
    assert confirmed.payment_id == "pay_123"
    assert confirmed.confirmed_at is not None

    # Both sides hear about the confirmation
    recipients = [call.args[0] for call in sink.create_notification.await_args_list]
    assert recipients == [USER_EMAIL, OWNER_EMAIL]


@pytest.mark.asyncio
async def test_confirm_twice_fails(service, booking_request):
    approved = await _approved(service, booking_request)
    await service.confirm(approved.id, "pay_123")

    with pytest.raises(InvalidStateTransitionError):
        await service.confirm(approved.id, "pay_456")

    stored = await service.get(approved.id)
    assert stored.payment_id == "pay_123"


@pytest.mark.asyncio
async def test_confirm_pending_skips_approval(service, booking_request):
    reservation = await service.create(booking_request())

    confirmed = await service.confirm(reservation.id, "pay_123")

    assert confirmed.status == ReservationStatus.CONFIRMED
    assert confirmed.approved_at is None
    assert confirmed.confirmed_at is not None


@pytest.mark.asyncio
async def test_confirm_requires_payment_id(service, booking_request):
    reservation = await service.create(booking_request())

    with pytest.raises(ValidationError):
        await service.confirm(reservation.id, " ")

    stored = await service.get(reservation.id)
    assert stored.status == ReservationStatus.PENDING


# ===== CANCEL =====

@pytest.mark.asyncio
async def test_cancel_by_user_notifies_owner(service, sink, booking_request):
    reservation = await service.create(booking_request())

    cancelled = await service.cancel(reservation.id)

    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.cancelled_by == CancelledBy.USER
    assert cancelled.cancelled_at is not None
    assert sink.create_notification.await_args.args[0] == OWNER_EMAIL


@pytest.mark.asyncio
async def test_cancel_by_owner_notifies_user(service, sink, booking_request):
    approved = await _approved(service, booking_request)

    cancelled = await service.cancel(approved.id, CancelledBy.OWNER)

    assert cancelled.cancelled_by == CancelledBy.OWNER
    assert sink.create_notification.await_args.args[0] == USER_EMAIL
    assert sink.create_notification.await_args.args[4] == "BOOKING_CANCELLED"


@pytest.mark.asyncio
async def test_cancel_confirmed_fails(service, booking_request):
    approved = await _approved(service, booking_request)
    await service.confirm(approved.id, "pay_123")

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await service.cancel(approved.id)

    assert exc_info.value.message == "Cannot cancel booking slot in status CONFIRMED"


@pytest.mark.asyncio
async def test_cancel_twice_fails(service, booking_request):
    reservation = await service.create(booking_request())
    await service.cancel(reservation.id)

    with pytest.raises(InvalidStateTransitionError):
        await service.cancel(reservation.id)


# ===== UPDATE / DELETE =====

@pytest.mark.asyncio
async def test_update_changes_only_given_fields(service, booking_request):
    reservation = await service.create(booking_request())
    before = await service.get(reservation.id)

    updated = await service.update(reservation.id, ReservationUpdate(time_slot=DINNER))

    assert updated.time_slot == DINNER
    assert updated.date == SLOT_DATE
    assert updated.amount == 80.0
    assert updated.status == ReservationStatus.PENDING
    assert updated.updated_at >= before.updated_at


@pytest.mark.asyncio
async def test_update_unknown_id(service):
    with pytest.raises(NotFoundError):
        await service.update(str(ObjectId()), ReservationUpdate(amount=10.0))


@pytest.mark.asyncio
async def test_update_cancelled_rejected(service, booking_request):
    reservation = await service.create(booking_request())
    await service.cancel(reservation.id)

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await service.update(reservation.id, ReservationUpdate(amount=999.0))

    assert exc_info.value.current == "CANCELLED"
    stored = await service.get(reservation.id)
    assert stored.status == ReservationStatus.CANCELLED
    assert stored.amount == 80.0


@pytest.mark.asyncio
async def test_update_amount_of_paid_booking_rejected(service, booking_request):
    approved = await _approved(service, booking_request)
    await service.confirm(approved.id, "pay_123")

    with pytest.raises(InvalidStateTransitionError):
        await service.update(approved.id, ReservationUpdate(amount=10.0))

    stored = await service.get(approved.id)
    assert stored.amount == 80.0
    assert stored.is_paid is True


@pytest.mark.asyncio
async def test_update_paid_booking_can_move_to_free_slot(service, booking_request):
    approved = await _approved(service, booking_request)
    await service.confirm(approved.id, "pay_123")

    moved = await service.update(approved.id, ReservationUpdate(time_slot=DINNER))

    assert moved.time_slot == DINNER
    assert moved.status == ReservationStatus.CONFIRMED
    assert moved.amount == 80.0


@pytest.mark.asyncio
async def test_update_active_booking_into_full_slot_rejected(service, booking_request):
    for _ in range(5):
        await _approved(service, booking_request)
    other = await _approved(service, booking_request, time_slot=DINNER)

    with pytest.raises(CapacityExceededError):
        await service.update(other.id, ReservationUpdate(time_slot=LUNCH))

    assert await service.availability.active_count(SLOT_DATE, LUNCH, OWNER_EMAIL) == 5
    stored = await service.get(other.id)
    assert stored.time_slot == DINNER


@pytest.mark.asyncio
async def test_update_pending_booking_into_full_slot_allowed(service, booking_request):
    for _ in range(5):
        await _approved(service, booking_request)
    pending = await service.create(booking_request(time_slot=DINNER))

    moved = await service.update(pending.id, ReservationUpdate(time_slot=LUNCH))

    assert moved.time_slot == LUNCH
    assert moved.status == ReservationStatus.PENDING
    assert await service.availability.active_count(SLOT_DATE, LUNCH, OWNER_EMAIL) == 5


@pytest.mark.asyncio
async def test_delete_removes_record(service, booking_request):
    reservation = await service.create(booking_request())

    await service.delete(reservation.id)

    with pytest.raises(NotFoundError):
        await service.get(reservation.id)


@pytest.mark.asyncio
async def test_delete_unknown_id_leaves_store_unchanged(service, test_db, booking_request):
    await service.create(booking_request())

    with pytest.raises(NotFoundError):
        await service.delete(str(ObjectId()))

    assert await test_db["booking_slots"].count_documents({}) == 1


# ===== AVAILABILITY =====

@pytest.mark.asyncio
async def test_pending_and_cancelled_do_not_take_capacity(service, booking_request):
    for _ in range(5):
        await service.create(booking_request())
    cancelled = await _approved(service, booking_request)
    await service.cancel(cancelled.id)

    assert await service.check_availability(SLOT_DATE, LUNCH, OWNER_EMAIL) is True


@pytest.mark.asyncio
async def test_full_slot_rejects_new_booking(service, booking_request):
    for _ in range(4):
        await _approved(service, booking_request)
    last = await _approved(service, booking_request, user_email=OTHER_USER_EMAIL)
    await service.confirm(last.id, "pay_999")

    assert await service.check_availability(SLOT_DATE, LUNCH, OWNER_EMAIL) is False
    with pytest.raises(CapacityExceededError):
        await service.create(booking_request())

    # Other slots of the same mess are unaffected
    assert await service.check_availability(SLOT_DATE, DINNER, OWNER_EMAIL) is True


@pytest.mark.asyncio
async def test_concurrent_creates_release_slot_locks(service, booking_request):
    results = await asyncio.gather(*(service.create(booking_request()) for _ in range(6)))

    assert {r.status for r in results} == {ReservationStatus.PENDING}
    assert len(service.locks) == 0


@pytest.mark.asyncio
async def test_concurrent_moves_take_only_the_last_place(service, booking_request):
    for _ in range(4):
        await _approved(service, booking_request)
    movers = [await _approved(service, booking_request, time_slot=DINNER) for _ in range(3)]

    results = await asyncio.gather(
        *(service.update(m.id, ReservationUpdate(time_slot=LUNCH)) for m in movers),
        return_exceptions=True
    )

    moved = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, CapacityExceededError)]
    assert len(moved) == 1
    assert len(rejected) == 2
    assert await service.availability.active_count(SLOT_DATE, LUNCH, OWNER_EMAIL) == 5
    assert await service.availability.active_count(SLOT_DATE, DINNER, OWNER_EMAIL) == 2
    assert len(service.locks) == 0


# ===== QUERIES =====

@pytest.mark.asyncio
async def test_list_queries(service, booking_request):
    pending = await service.create(booking_request())
    confirmed = await _approved(service, booking_request, user_email=OTHER_USER_EMAIL)
    await service.confirm(confirmed.id, "pay_1")

    assert [r.id for r in await service.list_pending_by_mess_email(OWNER_EMAIL)] == [pending.id]
    assert [r.id for r in await service.list_confirmed_by_mess_email(OWNER_EMAIL)] == [confirmed.id]
    assert len(await service.list_by_mess_email(OWNER_EMAIL)) == 2
    assert len(await service.list_by_date(SLOT_DATE)) == 2
    assert len(await service.list_by_date_and_mess_email(SLOT_DATE, "someone@else.in")) == 0
    assert [r.id for r in await service.list_by_user_email(USER_EMAIL)] == [pending.id]
    assert [r.id for r in await service.list_by_user_email_and_status(OTHER_USER_EMAIL, "confirmed")] == [confirmed.id]


@pytest.mark.asyncio
async def test_list_by_unknown_status_rejected(service):
    with pytest.raises(ValidationError):
        await service.list_by_user_email_and_status(USER_EMAIL, "LOST")


# ===== END TO END =====

@pytest.mark.asyncio
async def test_full_lifecycle_timestamps(service, booking_request):
    reservation = await service.create(booking_request())
    approved = await service.approve(reservation.id)
    confirmed = await service.confirm(reservation.id, "pay_123")

    assert confirmed.created_at <= approved.approved_at <= confirmed.confirmed_at
    assert confirmed.approved_at == approved.approved_at
    assert confirmed.updated_at == confirmed.confirmed_at
    assert confirmed.is_paid is True
    assert confirmed.cancelled_at is None
    assert confirmed.cancelled_by is None


# ===== NOTIFICATION FAILURES =====

@pytest.mark.asyncio
async def test_failing_sink_does_not_block_transitions(service, sink, booking_request):
    sink.create_notification.side_effect = RuntimeError("notification store down")

    reservation = await service.create(booking_request())
    approved = await service.approve(reservation.id)
    confirmed = await service.confirm(reservation.id, "pay_123")

    assert approved.status == ReservationStatus.APPROVED
    assert confirmed.status == ReservationStatus.CONFIRMED
    assert sink.create_notification.await_count == 4


@pytest.mark.asyncio
async def test_hanging_sink_times_out(test_db, booking_request):
    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    sink = AsyncMock()
    sink.create_notification.side_effect = hang
    service = ReservationService(
        test_db,
        dispatcher=NotificationDispatcher(sink, timeout_seconds=0.05)
    )

    reservation = await asyncio.wait_for(service.create(booking_request()), timeout=2)

    assert reservation.status == ReservationStatus.PENDING
    stored = await service.get(reservation.id)
    assert stored.id == reservation.id
