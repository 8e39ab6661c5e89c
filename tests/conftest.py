import datetime as dt
import uuid

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from messmate.core.slot_lock import SlotLockRegistry
from messmate.db.mongo import get_db
from messmate.main import app
from messmate.schemas.reservation import ReservationCreate

# Seeded identities
USER_EMAIL = "ravi@example.com"
USER_NAME = "Ravi Kumar"
OTHER_USER_EMAIL = "asha@example.com"
OTHER_USER_NAME = "Asha Menon"
OWNER_EMAIL = "owner@annapurna.in"
MESS_ID = "65f1c2a9e4b0a1b2c3d4e5f6"
MESS_NAME = "Annapurna Mess"
FLAT_FEE_MESS_ID = "65f1c2a9e4b0a1b2c3d4e5f7"
UNKNOWN_MESS_ID = "65f1c2a9e4b0a1b2c3d4e5ff"

SLOT_DATE = dt.date(2024, 6, 1)
LUNCH = "12:00-13:00"
DINNER = "19:00-20:00"


@pytest_asyncio.fixture
async def test_db():
    """Fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    db = client[f"mymess_test_{uuid.uuid4().hex}"]

    await db["users"].insert_many([
        {"email": USER_EMAIL, "name": USER_NAME},
        {"email": OTHER_USER_EMAIL, "name": OTHER_USER_NAME}
    ])
    await db["mess_owners"].insert_many([
        {
            "_id": ObjectId(MESS_ID),
            "email": OWNER_EMAIL,
            "name": "Suresh",
            "mess_name": MESS_NAME,
            "price_per_meal": 100.0,
            "subscription_plan": 30
        },
        {
            "_id": ObjectId(FLAT_FEE_MESS_ID),
            "email": "owner@tiffinbox.in",
            "name": "Lakshmi",
            "mess_name": "Tiffin Box",
            "subscription_plan": 1500
        }
    ])

    yield db


@pytest_asyncio.fixture
async def client(test_db):
    """HTTP client against the app, wired to the in-memory database."""
    app.dependency_overrides[get_db] = lambda: test_db
    app.state.slot_locks = SlotLockRegistry()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def booking_request():
    """Factory for a complete booking request; keyword overrides win."""
    def _make(**overrides) -> ReservationCreate:
        fields = {
            "user_email": USER_EMAIL,
            "user_name": USER_NAME,
            "mess_id": MESS_ID,
            "mess_email": OWNER_EMAIL,
            "mess_name": MESS_NAME,
            "date": SLOT_DATE,
            "time_slot": LUNCH,
            "amount": 80.0
        }
        fields.update(overrides)
        return ReservationCreate(**fields)
    return _make


@pytest.fixture
def booking_payload():
    """Camel-cased JSON body for POST /slot/book."""
    return {
        "userEmail": USER_EMAIL,
        "userName": USER_NAME,
        "messId": MESS_ID,
        "messEmail": OWNER_EMAIL,
        "messName": MESS_NAME,
        "date": SLOT_DATE.isoformat(),
        "timeSlot": LUNCH,
        "amount": 80.0
    }
