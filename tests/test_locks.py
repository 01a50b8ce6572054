from __future__ import annotations

import asyncio

import pytest

from carebridge.utils.locks import KeyedLocks


def test_same_key_is_serialized_and_released():
    locks = KeyedLocks()
    trace = []

    async def worker(name):
        async with locks.hold("med-1"):
            trace.append(f"{name}:in")
            await asyncio.sleep(0)
            trace.append(f"{name}:out")

    async def main():
        await asyncio.gather(worker("a"), worker("b"), worker("c"))

    asyncio.run(main())

    assert trace == ["a:in", "a:out", "b:in", "b:out", "c:in", "c:out"]
    assert len(locks) == 0


def test_different_keys_do_not_contend():
    locks = KeyedLocks()
    trace = []

    async def worker(key):
        async with locks.hold(key):
            trace.append(f"{key}:in")
            await asyncio.sleep(0)
            trace.append(f"{key}:out")

    async def main():
        await asyncio.gather(worker("med-1"), worker("med-2"))

    asyncio.run(main())

    assert trace[:2] == ["med-1:in", "med-2:in"]
    assert len(locks) == 0


def test_entry_kept_while_waiters_remain():
    locks = KeyedLocks()
    seen = []

    async def first():
        async with locks.hold("k"):
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            seen.append("k" in locks)

    async def second():
        async with locks.hold("k"):
            seen.append("k" in locks)

    async def main():
        await asyncio.gather(first(), second())

    asyncio.run(main())

    assert seen == [True, True]
    assert "k" not in locks


def test_entry_released_after_error():
    locks = KeyedLocks()

    async def failing():
        async with locks.hold("k"):
            raise ValueError("boom")

    with pytest.raises(ValueError):
        asyncio.run(failing())

    assert len(locks) == 0
