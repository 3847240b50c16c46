"""Entity store – canonical rows for people, films, tags and reviews."""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.errors import StorageFailure
from filmorate.models.enums import EntityKind
from filmorate.stores.tables import (
    Base,
    ClassificationRow,
    DirectorRow,
    FilmRow,
    GenreRow,
    PersonRow,
    ReviewRow,
)

ROW_TYPES: dict[EntityKind, type[Base]] = {
    EntityKind.PERSON: PersonRow,
    EntityKind.FILM: FilmRow,
    EntityKind.GENRE: GenreRow,
    EntityKind.CLASSIFICATION: ClassificationRow,
    EntityKind.DIRECTOR: DirectorRow,
    EntityKind.REVIEW: ReviewRow,
}

# Columns a caller may write for each kind; ``id`` is always store-assigned
_WRITABLE: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.PERSON: ("email", "login", "name", "birthday"),
    EntityKind.FILM: ("name", "description", "release_date", "duration"),
    EntityKind.GENRE: ("name",),
    EntityKind.CLASSIFICATION: ("name",),
    EntityKind.DIRECTOR: ("name",),
    EntityKind.REVIEW: ("person_id", "film_id", "content", "is_positive"),
}


class EntityStore:
    """Create / read / update / delete for every entity kind.

    Ids are integers assigned by the database on insert and never reused.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # ── Read ────────────────────────────────────────────
    async def get(self, kind: EntityKind, entity_id: int) -> Any | None:
        return await self._session.get(ROW_TYPES[kind], entity_id)

    async def exists(self, kind: EntityKind, entity_id: int) -> bool:
        row_type = ROW_TYPES[kind]
        stmt = select(row_type.id).where(row_type.id == entity_id)  # type: ignore[attr-defined]
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def missing(self, kind: EntityKind, ids: Iterable[int]) -> set[int]:
        """Return the subset of ``ids`` that do not resolve to a row."""
        wanted = set(ids)
        if not wanted:
            return set()
        row_type = ROW_TYPES[kind]
        stmt = select(row_type.id).where(row_type.id.in_(wanted))  # type: ignore[attr-defined]
        result = await self._session.execute(stmt)
        return wanted - set(result.scalars().all())

    async def page(self, kind: EntityKind, *, offset: int = 0, limit: int | None = None) -> list[Any]:
        row_type = ROW_TYPES[kind]
        stmt = select(row_type).order_by(row_type.id).offset(offset)  # type: ignore[attr-defined]
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def by_ids(self, kind: EntityKind, ids: Iterable[int]) -> list[Any]:
        """Rows for ``ids`` ordered by id; unknown ids are skipped."""
        wanted = set(ids)
        if not wanted:
            return []
        row_type = ROW_TYPES[kind]
        stmt = (
            select(row_type)
            .where(row_type.id.in_(wanted))  # type: ignore[attr-defined]
            .order_by(row_type.id)  # type: ignore[attr-defined]
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def ids(self, kind: EntityKind) -> list[int]:
        row_type = ROW_TYPES[kind]
        stmt = select(row_type.id).order_by(row_type.id)  # type: ignore[attr-defined]
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # ── Write ───────────────────────────────────────────
    async def create(self, kind: EntityKind, **fields: Any) -> Any:
        row = ROW_TYPES[kind](**self._writable(kind, fields))
        self._session.add(row)
        await self._session.flush()
        return row

    async def update(self, kind: EntityKind, entity_id: int, **fields: Any) -> Any | None:
        """Apply ``fields`` to an existing row. Returns None if the row is gone."""
        row = await self.get(kind, entity_id)
        if row is None:
            return None
        for name, value in self._writable(kind, fields).items():
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, kind: EntityKind, entity_id: int) -> bool:
        """Remove a row. Edges must already have been swept by the caller."""
        row_type = ROW_TYPES[kind]
        if not await self.exists(kind, entity_id):
            return False
        result = await self._session.execute(
            delete(row_type).where(row_type.id == entity_id)  # type: ignore[attr-defined]
        )
        if result.rowcount != 1:
            raise StorageFailure(f"expected to delete {kind.value} {entity_id}, deleted {result.rowcount}")
        return True

    @staticmethod
    def _writable(kind: EntityKind, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(_WRITABLE[kind])
        if unknown:
            raise ValueError(f"not writable on {kind.value}: {sorted(unknown)}")
        return fields

    # ── People lookups ──────────────────────────────────
    async def person_with(self, field: str, value: str, *, exclude_id: int | None = None) -> PersonRow | None:
        """Find a person whose ``email`` or ``login`` matches case-insensitively."""
        column = {"email": PersonRow.email, "login": PersonRow.login}[field]
        stmt = select(PersonRow).where(func.upper(column) == value.upper())
        if exclude_id is not None:
            stmt = stmt.where(PersonRow.id != exclude_id)
        result = await self._session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    # ── Review lookups ──────────────────────────────────
    async def review_ids_for_film(self, film_id: int) -> list[int]:
        stmt = select(ReviewRow.id).where(ReviewRow.film_id == film_id).order_by(ReviewRow.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def review_ids_by_person(self, person_id: int) -> list[int]:
        stmt = select(ReviewRow.id).where(ReviewRow.person_id == person_id).order_by(ReviewRow.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
