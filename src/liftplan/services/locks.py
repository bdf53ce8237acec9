"""Per-user write serialization."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class UserLocks:
    """One asyncio lock per user.

    Every mutating training operation for a user runs under that user's
    lock, so two progression triggers can never read the same current
    max and both apply a delta to it. Operations for different users
    proceed independently.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._guard = asyncio.Lock()

    async def get(self, user_id: str) -> asyncio.Lock:
        """Get (or create) the lock for a user."""
        async with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[user_id] = lock
            return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        """Hold a user's lock for the duration of the block."""
        lock = await self.get(user_id)
        async with lock:
            yield

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()
