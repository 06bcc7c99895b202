"""Tests for the per-key lock table."""
import asyncio

from core.locks import KeyedLock


def test_same_key_is_serialized():
    locks = KeyedLock()
    active = {"count": 0, "max": 0}

    async def worker():
        async with locks.hold("abc"):
            active["count"] += 1
            active["max"] = max(active["max"], active["count"])
            await asyncio.sleep(0.01)
            active["count"] -= 1

    async def main():
        await asyncio.gather(*(worker() for _ in range(5)))

    asyncio.run(main())
    assert active["max"] == 1
    assert len(locks) == 0


def test_different_keys_run_in_parallel():
    locks = KeyedLock()

    async def main():
        inside = asyncio.Event()
        release = asyncio.Event()

        async def first():
            async with locks.hold("a"):
                inside.set()
                await release.wait()

        async def second():
            await inside.wait()
            async with locks.hold("b"):
                assert locks.locked("a")
                release.set()

        await asyncio.wait_for(asyncio.gather(first(), second()), timeout=2)

    asyncio.run(main())
    assert len(locks) == 0


def test_entry_released_after_error():
    locks = KeyedLock()

    async def main():
        try:
            async with locks.hold("abc"):
                raise ValueError("boom")
        except ValueError:
            pass
        assert not locks.locked("abc")

    asyncio.run(main())
    assert len(locks) == 0
