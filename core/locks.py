"""
Per-key asyncio locks
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """
    Mutual exclusion per key, with independent keys never blocking each other.

    Entries are created on first use and dropped as soon as no task holds or
    waits for them, so the table only ever contains keys that are in use.
    Must be used from a single event loop.
    """

    def __init__(self):
        self._entries: Dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
