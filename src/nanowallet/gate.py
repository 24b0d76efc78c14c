"""Per-account serialization.

Every operation that reads an account's frontier and then publishes a block
on top of it must run alone for that account, otherwise two blocks end up
claiming the same previous hash and the ledger forks the chain. The gate
keeps one FIFO lock per address and a process-wide ceiling on how many
operations may be queued behind those locks.
"""
import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import nanowallet.constants as C
from nanowallet.errors import CapacityError

log = logging.getLogger("nanowallet.gate")

T = TypeVar("T")


class AccountGate:
    def __init__(self, max_pending: int = C.MAX_PENDING) -> None:
        self.max_pending = max_pending
        self._locks: dict[str, asyncio.Lock] = {}
        # holders + waiters per key; the lock is dropped when it reaches zero
        self._users: dict[str, int] = {}
        self._waiting = 0

    @property
    def pending(self) -> int:
        """Operations admitted but still waiting for their key."""
        return self._waiting

    def is_busy(self, key: str) -> bool:
        return self._users.get(key, 0) > 0

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        must_wait = self.is_busy(key)
        if must_wait and self._waiting >= self.max_pending:
            raise CapacityError(f"Too many pending operations ({self._waiting})")

        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1

        try:
            if must_wait:
                self._waiting += 1
                log.debug("Queued behind %s (%d pending)", key, self._waiting)
                try:
                    await lock.acquire()
                finally:
                    self._waiting -= 1
            else:
                await lock.acquire()

            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        async with self.hold(key):
            return await operation()
