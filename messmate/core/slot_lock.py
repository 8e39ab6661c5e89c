import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Tuple
import datetime as dt

SlotKey = Tuple[str, str, str]


class SlotLockRegistry:
    """
    In-process mutex per (mess email, date, time slot).

    Held across the availability count and the insert of a new booking so
    two concurrent requests cannot both take the last place. Entries are
    dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: Dict[SlotKey, List] = {}  # key -> [lock, holders]

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, mess_email: str, date: dt.date, time_slot: str) -> AsyncIterator[None]:
        key = (mess_email, date.isoformat(), time_slot)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._locks.pop(key, None)
