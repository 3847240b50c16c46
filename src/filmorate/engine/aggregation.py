"""Aggregation engine – rankings and intersections computed from the ledger.

Nothing here is cached or denormalized: every call reads the current ledger,
so results always reflect the last committed mutation.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple

from sqlalchemy import and_, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from filmorate.errors import ValidationError
from filmorate.logging import get_logger
from filmorate.models.enums import RelationKind
from filmorate.stores.ledger import RelationLedger
from filmorate.stores.tables import EdgeRow, FilmRow, ReviewRow

log = get_logger("aggregation")


class Ranked(NamedTuple):
    """An entity id with the score it was ranked by."""
    id: int
    score: int


def _require_positive(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")
    return value


class AggregationEngine:
    """Read-only derived queries: popularity, common sets, usefulness."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.ledger = RelationLedger(session)

    # ── Popularity ──────────────────────────────────────
    async def popular(
        self,
        limit: int,
        genre_id: int | None = None,
        year: int | None = None,
    ) -> list[Ranked]:
        """Films ranked by like count, ties broken by ascending film id.

        Films without likes are ranked too (count 0). ``genre_id`` keeps only
        films carrying that genre; ``year`` keeps only films released that year.
        """
        _require_positive("limit", limit)

        likes = func.count(EdgeRow.id)
        stmt = (
            select(FilmRow.id, likes.label("likes"))
            .outerjoin(
                EdgeRow,
                and_(EdgeRow.kind == RelationKind.LIKE.value, EdgeRow.right_id == FilmRow.id),
            )
            .group_by(FilmRow.id)
        )
        if genre_id is not None:
            genre_edge = aliased(EdgeRow)
            stmt = stmt.where(
                FilmRow.id.in_(
                    select(genre_edge.left_id).where(
                        genre_edge.kind == RelationKind.GENRE.value,
                        genre_edge.right_id == genre_id,
                    )
                )
            )
        if year is not None:
            stmt = stmt.where(extract("year", FilmRow.release_date) == year)
        stmt = stmt.order_by(likes.desc(), FilmRow.id.asc()).limit(limit)

        result = await self._session.execute(stmt)
        ranked = [Ranked(film_id, count) for film_id, count in result.all()]
        log.debug("popular_computed", limit=limit, genre_id=genre_id, year=year, returned=len(ranked))
        return ranked

    async def like_counts(self, film_ids: Iterable[int]) -> dict[int, int]:
        """Like count per film; films without likes map to 0."""
        wanted = set(film_ids)
        if not wanted:
            return {}
        stmt = (
            select(EdgeRow.right_id, func.count(EdgeRow.id))
            .where(EdgeRow.kind == RelationKind.LIKE.value, EdgeRow.right_id.in_(wanted))
            .group_by(EdgeRow.right_id)
        )
        result = await self._session.execute(stmt)
        counts = dict.fromkeys(wanted, 0)
        counts.update({film_id: count for film_id, count in result.all()})
        return counts

    # ── Intersections ───────────────────────────────────
    async def common_friends(self, person_a: int, person_b: int) -> set[int]:
        """People both ``person_a`` and ``person_b`` list as friends."""
        friends_a = await self.ledger.targets(RelationKind.FRIENDSHIP, person_a)
        friends_b = await self.ledger.targets(RelationKind.FRIENDSHIP, person_b)
        return friends_a & friends_b

    async def common_films(self, person_a: int, person_b: int) -> set[int]:
        """Films liked by both people."""
        films_a = await self.ledger.targets(RelationKind.LIKE, person_a)
        films_b = await self.ledger.targets(RelationKind.LIKE, person_b)
        return films_a & films_b

    # ── Review usefulness ───────────────────────────────
    async def usefulness(self, review_id: int) -> int:
        """Net vote score of a review; 0 when nobody voted."""
        stmt = select(func.coalesce(func.sum(EdgeRow.payload), 0)).where(
            EdgeRow.kind == RelationKind.REVIEW_VOTE.value,
            EdgeRow.right_id == review_id,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def usefulness_many(self, review_ids: Iterable[int]) -> dict[int, int]:
        wanted = set(review_ids)
        if not wanted:
            return {}
        stmt = (
            select(EdgeRow.right_id, func.sum(EdgeRow.payload))
            .where(EdgeRow.kind == RelationKind.REVIEW_VOTE.value, EdgeRow.right_id.in_(wanted))
            .group_by(EdgeRow.right_id)
        )
        result = await self._session.execute(stmt)
        scores = dict.fromkeys(wanted, 0)
        scores.update({review_id: int(total or 0) for review_id, total in result.all()})
        return scores

    async def top_reviews(
        self,
        limit: int,
        film_id: int | None = None,
        offset: int = 0,
    ) -> list[Ranked]:
        """Reviews by usefulness descending, newer review (higher id) first on ties."""
        _require_positive("limit", limit)
        if offset < 0:
            raise ValidationError(f"offset must not be negative, got {offset}")

        useful = func.coalesce(func.sum(EdgeRow.payload), 0)
        stmt = (
            select(ReviewRow.id, useful.label("useful"))
            .outerjoin(
                EdgeRow,
                and_(EdgeRow.kind == RelationKind.REVIEW_VOTE.value, EdgeRow.right_id == ReviewRow.id),
            )
            .group_by(ReviewRow.id)
        )
        if film_id is not None:
            stmt = stmt.where(ReviewRow.film_id == film_id)
        stmt = stmt.order_by(useful.desc(), ReviewRow.id.desc()).offset(offset).limit(limit)

        result = await self._session.execute(stmt)
        return [Ranked(review_id, int(score)) for review_id, score in result.all()]

    # ── Neighbourhood reads ─────────────────────────────
    async def friends_of(self, person_id: int) -> list[int]:
        return sorted(await self.ledger.targets(RelationKind.FRIENDSHIP, person_id))

    async def likers_of(self, film_id: int) -> list[int]:
        return sorted(await self.ledger.sources(RelationKind.LIKE, film_id))

    async def tags_of(self, film_id: int, kind: RelationKind) -> list[int]:
        """Genre, director or classification ids attached to a film."""
        return sorted(await self.ledger.targets(kind, film_id))
