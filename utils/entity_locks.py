"""
Per-entity operation locks
Serializes domain operations that touch the same wallet / phone / lot / invite key
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One asyncio.Lock per entity key, kept only while someone holds or waits for it"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        self._users[key] -= 1
        if self._users[key] == 0:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """
        Hold the locks of all keys for the duration of the block.

        Keys are acquired in sorted order so two operations sharing keys
        cannot deadlock. asyncio.Lock is not reentrant: an operation must not
        ask for a key it already holds.
        """
        ordered = sorted(set(keys))
        checked_out = []
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                if lock.locked():
                    logger.debug(f"⏳ Waiting for entity lock {key}")
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)

    def __len__(self) -> int:
        return len(self._locks)
