"""Relation Ledger – one parameterized store for every many-to-many association.

Each edge is a row ``(kind, left_id, right_id, payload)``. Adds and removes are
idempotent and report whether they changed anything. The ledger does not check
that the ids it stores point at live entities; callers resolve ids first.
"""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.errors import StorageFailure
from filmorate.logging import get_logger
from filmorate.models.entities import Edge
from filmorate.models.enums import RelationKind, Side
from filmorate.stores.tables import EdgeRow

log = get_logger("ledger")


def _key(kind: RelationKind, left: int, right: int):
    return and_(
        EdgeRow.kind == kind.value,
        EdgeRow.left_id == left,
        EdgeRow.right_id == right,
    )


class RelationLedger:
    """Generic edge storage keyed by relation kind."""

    def __init__(self, session: AsyncSession):
        self._session = session

    # ── Point operations ────────────────────────────────
    async def has_edge(self, kind: RelationKind, left: int, right: int) -> bool:
        stmt = select(EdgeRow.id).where(_key(kind, left, right))
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def payload_of(self, kind: RelationKind, left: int, right: int) -> int | None:
        """Return the payload of an edge, or None when the edge is absent."""
        stmt = select(EdgeRow.payload).where(_key(kind, left, right))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_edge(
        self, kind: RelationKind, left: int, right: int, payload: int | None = None,
    ) -> bool:
        """Insert ``left → right`` if absent. Returns True when a row was inserted."""
        if await self.has_edge(kind, left, right):
            return False
        self._session.add(EdgeRow(kind=kind.value, left_id=left, right_id=right, payload=payload))
        await self._session.flush()
        log.debug("edge_added", kind=kind.value, left=left, right=right, payload=payload)
        return True

    async def remove_edge(self, kind: RelationKind, left: int, right: int) -> bool:
        """Delete ``left → right`` if present. Returns True when a row was deleted."""
        if not await self.has_edge(kind, left, right):
            return False
        result = await self._session.execute(delete(EdgeRow).where(_key(kind, left, right)))
        if result.rowcount != 1:
            raise StorageFailure(
                f"expected to delete one {kind.value} edge {left}->{right}, deleted {result.rowcount}"
            )
        log.debug("edge_removed", kind=kind.value, left=left, right=right)
        return True

    # ── Traversal ───────────────────────────────────────
    async def edges_from(self, kind: RelationKind, left: int) -> AsyncIterator[tuple[int, int | None]]:
        """Yield ``(right, payload)`` for every edge leaving ``left``."""
        stmt = (
            select(EdgeRow.right_id, EdgeRow.payload)
            .where(EdgeRow.kind == kind.value, EdgeRow.left_id == left)
            .order_by(EdgeRow.right_id)
        )
        result = await self._session.execute(stmt)
        for right, payload in result.all():
            yield right, payload

    async def edges_to(self, kind: RelationKind, right: int) -> AsyncIterator[tuple[int, int | None]]:
        """Yield ``(left, payload)`` for every edge arriving at ``right``."""
        stmt = (
            select(EdgeRow.left_id, EdgeRow.payload)
            .where(EdgeRow.kind == kind.value, EdgeRow.right_id == right)
            .order_by(EdgeRow.left_id)
        )
        result = await self._session.execute(stmt)
        for left, payload in result.all():
            yield left, payload

    async def targets(self, kind: RelationKind, left: int) -> set[int]:
        """Right-hand ids reachable from ``left``."""
        return {right async for right, _ in self.edges_from(kind, left)}

    async def sources(self, kind: RelationKind, right: int) -> set[int]:
        """Left-hand ids pointing at ``right``."""
        return {left async for left, _ in self.edges_to(kind, right)}

    async def edges(self, kind: RelationKind, entity_id: int, side: Side) -> list[Edge]:
        """All edges of ``kind`` whose ``side`` equals ``entity_id``."""
        column = EdgeRow.left_id if side is Side.LEFT else EdgeRow.right_id
        stmt = select(EdgeRow).where(EdgeRow.kind == kind.value, column == entity_id)
        result = await self._session.execute(stmt)
        return [
            Edge(kind, row.left_id, row.right_id, row.payload)
            for row in result.scalars().all()
        ]

    async def count_to(self, kind: RelationKind, right: int) -> int:
        stmt = (
            select(func.count())
            .select_from(EdgeRow)
            .where(EdgeRow.kind == kind.value, EdgeRow.right_id == right)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    # ── Bulk sweeps (cascade) ───────────────────────────
    async def remove_all(self, kind: RelationKind, entity_id: int, side: Side) -> int:
        """Delete every edge of ``kind`` whose ``side`` equals ``entity_id``."""
        column = EdgeRow.left_id if side is Side.LEFT else EdgeRow.right_id
        result = await self._session.execute(
            delete(EdgeRow).where(EdgeRow.kind == kind.value, column == entity_id)
        )
        if result.rowcount:
            log.debug("edges_swept", kind=kind.value, side=side.value, entity_id=entity_id, count=result.rowcount)
        return result.rowcount
