"""Tests for keyed lock ordering and mutual exclusion."""

from __future__ import annotations

import asyncio

import pytest

from filmorate.engine.locks import KeyedLocks, left_key, right_key
from filmorate.models.enums import RelationKind


class TestKeyedLocks:
    @pytest.mark.asyncio
    async def test_hold_and_release(self):
        locks = KeyedLocks()
        key = left_key(RelationKind.LIKE, 1)
        async with locks.hold(key):
            assert locks.is_locked(key)
            assert len(locks) == 1
        assert not locks.is_locked(key)
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_duplicate_keys_are_acquired_once(self):
        locks = KeyedLocks()
        key = right_key(RelationKind.GENRE, 3)
        async with locks.hold(key, key):
            assert len(locks) == 1

    def test_left_keys_sort_before_right_keys(self):
        keys = sorted([right_key(RelationKind.LIKE, 1), left_key(RelationKind.LIKE, 9)])
        assert keys[0][0] == "L"

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        key = left_key(RelationKind.FRIENDSHIP, 1)
        inside = 0
        peak = 0

        async def worker():
            nonlocal inside, peak
            async with locks.hold(key):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(worker() for _ in range(5)))
        assert peak == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_disjoint_keys_run_concurrently(self):
        locks = KeyedLocks()
        started = asyncio.Event()
        release = asyncio.Event()

        async def first():
            async with locks.hold(left_key(RelationKind.LIKE, 1)):
                started.set()
                await release.wait()

        task = asyncio.create_task(first())
        await started.wait()
        # would hang if the key of another person were blocked
        async with locks.hold(left_key(RelationKind.LIKE, 2)):
            pass
        release.set()
        await task

    @pytest.mark.asyncio
    async def test_opposite_order_requests_do_not_deadlock(self):
        locks = KeyedLocks()
        a = left_key(RelationKind.LIKE, 1)
        b = right_key(RelationKind.LIKE, 2)

        async def take(*keys):
            async with locks.hold(*keys):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(asyncio.gather(take(a, b), take(b, a)), timeout=2)

    @pytest.mark.asyncio
    async def test_holders_counts_queued_tasks(self):
        locks = KeyedLocks()
        key = right_key(RelationKind.LIKE, 4)
        assert locks.holders(key) == 0

        async def waiter():
            async with locks.hold(key):
                pass

        async with locks.hold(key):
            task = asyncio.create_task(waiter())
            await asyncio.sleep(0)
            assert locks.holders(key) == 2
        await task
        assert locks.holders(key) == 0
