import asyncio
import datetime as dt

import pytest

from messmate.core.slot_lock import SlotLockRegistry

DAY = dt.date(2024, 6, 1)


@pytest.mark.asyncio
async def test_same_slot_is_serialized():
    locks = SlotLockRegistry()
    events = []

    async def worker(name):
        async with locks.hold("owner@annapurna.in", DAY, "12:00-13:00"):
            events.append(f"{name} in")
            await asyncio.sleep(0.01)
            events.append(f"{name} out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a in", "a out", "b in", "b out"]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_different_slots_do_not_block():
    locks = SlotLockRegistry()

    async with locks.hold("owner@annapurna.in", DAY, "12:00-13:00"):
        await asyncio.wait_for(_enter(locks, "19:00-20:00"), timeout=0.5)
        assert len(locks) == 1


@pytest.mark.asyncio
async def test_entry_released_after_error():
    locks = SlotLockRegistry()

    with pytest.raises(RuntimeError):
        async with locks.hold("owner@annapurna.in", DAY, "12:00-13:00"):
            raise RuntimeError("insert failed")

    assert len(locks) == 0
    await asyncio.wait_for(_enter(locks, "12:00-13:00"), timeout=0.5)


async def _enter(locks, time_slot):
    async with locks.hold("owner@annapurna.in", DAY, time_slot):
        pass
