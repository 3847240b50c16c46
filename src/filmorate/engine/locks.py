"""Keyed asyncio locks for serializing ledger mutations on overlapping keys.

Every mutation names the ledger keys it touches: a left key ``(kind, left)``
and/or a right key ``(kind, right)``. Keys are acquired in one global order
(all left keys before all right keys, each group sorted), which rules out
lock-order deadlocks between operations.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator

from filmorate.models.enums import RelationKind

LockKey = tuple[str, str, int]


def left_key(kind: RelationKind, entity_id: int) -> LockKey:
    return ("L", kind.value, entity_id)


def right_key(kind: RelationKind, entity_id: int) -> LockKey:
    return ("R", kind.value, entity_id)


class KeyedLocks:
    """A registry of asyncio locks created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._locks: dict[LockKey, asyncio.Lock] = {}
        self._users: dict[LockKey, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, *keys: LockKey) -> AsyncIterator[None]:
        """Hold every lock in ``keys`` for the duration of the block."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._one(key))
            yield

    @asynccontextmanager
    async def _one(self, key: LockKey) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def is_locked(self, key: LockKey) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def holders(self, key: LockKey) -> int:
        """Number of tasks holding or queued for ``key``."""
        return self._users.get(key, 0)

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every session in the process
EDGE_LOCKS = KeyedLocks()
