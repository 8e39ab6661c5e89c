import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from messmate.core.config import settings
from messmate.core.slot_lock import SlotLockRegistry
from messmate.db.mongo import connect_to_mongo, close_mongo_connection
from messmate.routes import notifications, payments, slots

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    yield
    await close_mongo_connection()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

# Booking locks live with the app instance
app.state.slot_locks = SlotLockRegistry()

@app.get("/")
async def root():
    return {"message": "Welcome to MessMate API"}

app.include_router(slots.router)
app.include_router(payments.router)
app.include_router(notifications.router)
