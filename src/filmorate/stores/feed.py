"""Activity feed – an append-only trail of what each person did.

Events: LIKE / REVIEW / FRIEND crossed with ADD / REMOVE / UPDATE.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.models.entities import FeedEvent
from filmorate.models.enums import FeedEventType, FeedOperation
from filmorate.stores.tables import FeedRow


class FeedStore:
    """Append-only per-person event log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        person_id: int,
        entity_id: int,
        event_type: FeedEventType,
        operation: FeedOperation,
        *,
        timestamp: datetime | None = None,
    ) -> int:
        """Append an event. Returns the feed event id."""
        row = FeedRow(
            person_id=person_id,
            entity_id=entity_id,
            event_type=event_type.value,
            operation=operation.value,
            timestamp=timestamp or datetime.now(tz=timezone.utc),
        )
        self._session.add(row)
        await self._session.flush()
        return row.id

    async def for_person(self, person_id: int) -> list[FeedEvent]:
        """Events of one person, oldest first."""
        stmt = (
            select(FeedRow)
            .where(FeedRow.person_id == person_id)
            .order_by(FeedRow.timestamp, FeedRow.id)
        )
        result = await self._session.execute(stmt)
        return [
            FeedEvent(
                event_id=r.id,
                user_id=r.person_id,
                entity_id=r.entity_id,
                event_type=FeedEventType(r.event_type),
                operation=FeedOperation(r.operation),
                timestamp=r.timestamp,
            )
            for r in result.scalars().all()
        ]

    async def purge_person(self, person_id: int) -> int:
        """Drop the trail of a deleted person."""
        result = await self._session.execute(delete(FeedRow).where(FeedRow.person_id == person_id))
        return result.rowcount
