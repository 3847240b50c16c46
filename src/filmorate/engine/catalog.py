"""Catalog – the service layer the HTTP API talks to.

Resolves ids (raising NotFoundError), validates payloads, records activity
feed events and assembles domain models. Every relation mutation goes through
the ConsistencyEngine and every derived query through the AggregationEngine.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.config import Settings, get_settings
from filmorate.engine.aggregation import AggregationEngine
from filmorate.engine.consistency import CascadeReport, ConsistencyEngine
from filmorate.engine.locks import KeyedLocks
from filmorate.errors import NotFoundError, ValidationError
from filmorate.logging import get_logger
from filmorate.models.entities import (
    Classification,
    Director,
    FeedEvent,
    Film,
    Genre,
    Person,
    Review,
    Tag,
)
from filmorate.models.enums import (
    EntityKind,
    FeedEventType,
    FeedOperation,
    RelationKind,
    VotePolarity,
)
from filmorate.stores.database import unit_of_work
from filmorate.stores.tables import FilmRow, PersonRow, ReviewRow

log = get_logger("catalog")

EARLIEST_RELEASE = date(1895, 12, 28)
MAX_DESCRIPTION = 200

TAG_MODELS: dict[EntityKind, type[Tag]] = {
    EntityKind.GENRE: Genre,
    EntityKind.CLASSIFICATION: Classification,
    EntityKind.DIRECTOR: Director,
}

def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class Catalog:
    """Entity CRUD plus relation mutations and derived queries."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        locks: KeyedLocks | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.consistency = ConsistencyEngine(session, locks)
        self.aggregation = AggregationEngine(session)
        self.entities = self.consistency.entities
        self.feed = self.consistency.feed

    # ── Shared helpers ──────────────────────────────────
    async def _require(self, kind: EntityKind, entity_id: int) -> Any:
        row = await self.entities.get(kind, entity_id)
        if row is None:
            raise NotFoundError(kind.value.capitalize(), entity_id)
        return row

    async def _require_all(self, kind: EntityKind, ids: Iterable[int]) -> None:
        missing = await self.entities.missing(kind, ids)
        if missing:
            raise NotFoundError(kind.value.capitalize(), min(missing))

    def _page(self, size: int | None, offset: int) -> int:
        size = self.settings.default_page_size if size is None else size
        if size <= 0:
            raise ValidationError(f"size must be positive, got {size}")
        if offset < 0:
            raise ValidationError(f"from must not be negative, got {offset}")
        return size

    # ── People ──────────────────────────────────────────
    @staticmethod
    def _person(row: PersonRow) -> Person:
        return Person(
            id=row.id,
            email=row.email,
            login=row.login,
            name=row.name or row.login,
            birthday=row.birthday,
        )

    async def _validate_person(
        self, email: str, login: str, birthday: date | None, *, person_id: int | None = None,
    ) -> None:
        if _blank(email) or "@" not in email:
            raise ValidationError("email must be a valid address")
        if _blank(login) or any(ch.isspace() for ch in login):
            raise ValidationError("login must be non-blank and contain no whitespace")
        if birthday is not None and birthday > date.today():
            raise ValidationError("birthday cannot be in the future")
        if await self.entities.person_with("email", email, exclude_id=person_id):
            raise ValidationError(f"email {email} is already in use")
        if await self.entities.person_with("login", login, exclude_id=person_id):
            raise ValidationError(f"login {login} is already in use")

    async def list_people(self, size: int | None = None, offset: int = 0) -> list[Person]:
        limit = self._page(size, offset)
        rows = await self.entities.page(EntityKind.PERSON, offset=offset, limit=limit)
        return [self._person(r) for r in rows]

    async def get_person(self, person_id: int) -> Person:
        return self._person(await self._require(EntityKind.PERSON, person_id))

    async def create_person(
        self, email: str, login: str, name: str | None = None, birthday: date | None = None,
    ) -> Person:
        await self._validate_person(email, login, birthday)
        async with unit_of_work(self.session, "create_person"):
            row = await self.entities.create(
                EntityKind.PERSON,
                email=email.strip(),
                login=login,
                name=login if _blank(name) else name,
                birthday=birthday,
            )
        log.info("person_created", person_id=row.id)
        return self._person(row)

    async def update_person(
        self,
        person_id: int,
        email: str,
        login: str,
        name: str | None = None,
        birthday: date | None = None,
    ) -> Person:
        await self._require(EntityKind.PERSON, person_id)
        await self._validate_person(email, login, birthday, person_id=person_id)
        async with unit_of_work(self.session, "update_person"):
            row = await self.entities.update(
                EntityKind.PERSON,
                person_id,
                email=email.strip(),
                login=login,
                name=login if _blank(name) else name,
                birthday=birthday,
            )
            if row is None:
                raise NotFoundError("Person", person_id)
        return self._person(row)

    async def delete_person(self, person_id: int) -> CascadeReport:
        await self._require(EntityKind.PERSON, person_id)
        return await self.consistency.cascade_delete(EntityKind.PERSON, person_id)

    # ── Friendship ──────────────────────────────────────
    async def _friend_pair(self, person_id: int, friend_id: int) -> None:
        if person_id == friend_id:
            raise ValidationError("a person cannot befriend themselves")
        await self._require(EntityKind.PERSON, person_id)
        await self._require(EntityKind.PERSON, friend_id)

    async def add_friend(self, person_id: int, friend_id: int) -> bool:
        await self._friend_pair(person_id, friend_id)
        return await self.consistency.set_friendship(
            person_id, friend_id, True,
            also=lambda: self.feed.record(person_id, friend_id, FeedEventType.FRIEND, FeedOperation.ADD),
        )

    async def remove_friend(self, person_id: int, friend_id: int) -> bool:
        await self._friend_pair(person_id, friend_id)
        return await self.consistency.set_friendship(
            person_id, friend_id, False,
            also=lambda: self.feed.record(person_id, friend_id, FeedEventType.FRIEND, FeedOperation.REMOVE),
        )

    async def friends(self, person_id: int) -> list[Person]:
        await self._require(EntityKind.PERSON, person_id)
        ids = await self.aggregation.friends_of(person_id)
        return [self._person(r) for r in await self.entities.by_ids(EntityKind.PERSON, ids)]

    async def common_friends(self, person_id: int, other_id: int) -> list[Person]:
        await self._require(EntityKind.PERSON, person_id)
        await self._require(EntityKind.PERSON, other_id)
        ids = await self.aggregation.common_friends(person_id, other_id)
        return [self._person(r) for r in await self.entities.by_ids(EntityKind.PERSON, ids)]

    async def person_feed(self, person_id: int) -> list[FeedEvent]:
        await self._require(EntityKind.PERSON, person_id)
        return await self.feed.for_person(person_id)

    # ── Tags (genres, classifications, directors) ──────
    @staticmethod
    def _check_tag_kind(kind: EntityKind) -> type[Tag]:
        if kind not in TAG_MODELS:
            raise ValueError(f"{kind.value} is not a tag entity")
        return TAG_MODELS[kind]

    async def list_tags(self, kind: EntityKind, size: int | None = None, offset: int = 0) -> list[Tag]:
        model = self._check_tag_kind(kind)
        limit = self._page(size, offset)
        rows = await self.entities.page(kind, offset=offset, limit=limit)
        return [model.model_validate(r) for r in rows]

    async def get_tag(self, kind: EntityKind, tag_id: int) -> Tag:
        model = self._check_tag_kind(kind)
        return model.model_validate(await self._require(kind, tag_id))

    async def create_tag(self, kind: EntityKind, name: str) -> Tag:
        model = self._check_tag_kind(kind)
        if _blank(name):
            raise ValidationError(f"{kind.value} name must not be blank")
        async with unit_of_work(self.session, "create_tag"):
            row = await self.entities.create(kind, name=name.strip())
        log.info("tag_created", kind=kind.value, tag_id=row.id)
        return model.model_validate(row)

    async def update_tag(self, kind: EntityKind, tag_id: int, name: str) -> Tag:
        model = self._check_tag_kind(kind)
        if _blank(name):
            raise ValidationError(f"{kind.value} name must not be blank")
        await self._require(kind, tag_id)
        async with unit_of_work(self.session, "update_tag"):
            row = await self.entities.update(kind, tag_id, name=name.strip())
            if row is None:
                raise NotFoundError(kind.value.capitalize(), tag_id)
        return model.model_validate(row)

    async def delete_tag(self, kind: EntityKind, tag_id: int) -> CascadeReport:
        self._check_tag_kind(kind)
        await self._require(kind, tag_id)
        return await self.consistency.cascade_delete(kind, tag_id)

    async def clear_tags(self, kind: EntityKind) -> list[CascadeReport]:
        """Delete every tag of ``kind``, unlinking it from all films."""
        self._check_tag_kind(kind)
        return await self.consistency.cascade_clear(kind)

    # ── Films ───────────────────────────────────────────
    @staticmethod
    def _validate_film(
        name: str, description: str, release_date: date | None, duration: int | None,
    ) -> None:
        if _blank(name):
            raise ValidationError("film name must not be blank")
        if len(description or "") > MAX_DESCRIPTION:
            raise ValidationError(f"description is limited to {MAX_DESCRIPTION} characters")
        if release_date is not None and release_date < EARLIEST_RELEASE:
            raise ValidationError(f"release date cannot precede {EARLIEST_RELEASE.isoformat()}")
        if duration is not None and duration <= 0:
            raise ValidationError("duration must be positive")

    @staticmethod
    def _film_fields(
        name: str, description: str, release_date: date | None, duration: int | None,
    ) -> dict[str, Any]:
        return {
            "name": name.strip(),
            "description": description or "",
            "release_date": release_date,
            "duration": duration,
        }

    async def _resolve_film_tags(
        self, mpa_id: int | None, genre_ids: Iterable[int], director_ids: Iterable[int],
    ) -> dict[RelationKind, set[int]]:
        declared = {
            RelationKind.CLASSIFICATION: set() if mpa_id is None else {mpa_id},
            RelationKind.GENRE: set(genre_ids),
            RelationKind.DIRECTOR: set(director_ids),
        }
        await self._require_all(EntityKind.CLASSIFICATION, declared[RelationKind.CLASSIFICATION])
        await self._require_all(EntityKind.GENRE, declared[RelationKind.GENRE])
        await self._require_all(EntityKind.DIRECTOR, declared[RelationKind.DIRECTOR])
        return declared

    async def _films(self, rows: list[FilmRow]) -> list[Film]:
        likes = await self.aggregation.like_counts(r.id for r in rows)
        films = []
        for row in rows:
            genre_ids = await self.aggregation.tags_of(row.id, RelationKind.GENRE)
            director_ids = await self.aggregation.tags_of(row.id, RelationKind.DIRECTOR)
            mpa_ids = await self.aggregation.tags_of(row.id, RelationKind.CLASSIFICATION)
            mpa_rows = await self.entities.by_ids(EntityKind.CLASSIFICATION, mpa_ids)
            films.append(Film(
                id=row.id,
                name=row.name,
                description=row.description,
                release_date=row.release_date,
                duration=row.duration,
                mpa=Classification.model_validate(mpa_rows[0]) if mpa_rows else None,
                genres=[Genre.model_validate(g) for g in await self.entities.by_ids(EntityKind.GENRE, genre_ids)],
                directors=[
                    Director.model_validate(d)
                    for d in await self.entities.by_ids(EntityKind.DIRECTOR, director_ids)
                ],
                likes=likes.get(row.id, 0),
            ))
        return films

    async def _films_by_ids(self, ids: Iterable[int]) -> list[Film]:
        """Films in the order of ``ids``."""
        ordered = list(ids)
        rows = {r.id: r for r in await self.entities.by_ids(EntityKind.FILM, ordered)}
        return await self._films([rows[i] for i in ordered if i in rows])

    async def list_films(self, size: int | None = None, offset: int = 0) -> list[Film]:
        limit = self._page(size, offset)
        return await self._films(await self.entities.page(EntityKind.FILM, offset=offset, limit=limit))

    async def get_film(self, film_id: int) -> Film:
        row = await self._require(EntityKind.FILM, film_id)
        return (await self._films([row]))[0]

    async def create_film(
        self,
        name: str,
        description: str = "",
        release_date: date | None = None,
        duration: int | None = None,
        *,
        mpa_id: int | None = None,
        genre_ids: Iterable[int] = (),
        director_ids: Iterable[int] = (),
    ) -> Film:
        self._validate_film(name, description, release_date, duration)
        declared = await self._resolve_film_tags(mpa_id, genre_ids, director_ids)
        fields = self._film_fields(name, description, release_date, duration)
        row, _ = await self.consistency.insert_film(fields, declared)
        log.info("film_created", film_id=row.id)
        return await self.get_film(row.id)

    async def update_film(
        self,
        film_id: int,
        name: str,
        description: str = "",
        release_date: date | None = None,
        duration: int | None = None,
        *,
        mpa_id: int | None = None,
        genre_ids: Iterable[int] = (),
        director_ids: Iterable[int] = (),
    ) -> Film:
        """Replace a film's fields and association sets; omitted sets are cleared."""
        await self._require(EntityKind.FILM, film_id)
        self._validate_film(name, description, release_date, duration)
        declared = await self._resolve_film_tags(mpa_id, genre_ids, director_ids)
        fields = self._film_fields(name, description, release_date, duration)
        await self.consistency.reconcile_film(film_id, declared, fields=fields)
        return await self.get_film(film_id)

    async def delete_film(self, film_id: int) -> CascadeReport:
        await self._require(EntityKind.FILM, film_id)
        return await self.consistency.cascade_delete(EntityKind.FILM, film_id)

    # ── Likes ───────────────────────────────────────────
    async def add_like(self, film_id: int, person_id: int) -> bool:
        await self._require(EntityKind.FILM, film_id)
        await self._require(EntityKind.PERSON, person_id)
        return await self.consistency.set_like(
            person_id, film_id, True,
            also=lambda: self.feed.record(person_id, film_id, FeedEventType.LIKE, FeedOperation.ADD),
        )

    async def remove_like(self, film_id: int, person_id: int) -> bool:
        await self._require(EntityKind.FILM, film_id)
        await self._require(EntityKind.PERSON, person_id)
        return await self.consistency.set_like(
            person_id, film_id, False,
            also=lambda: self.feed.record(person_id, film_id, FeedEventType.LIKE, FeedOperation.REMOVE),
        )

    async def popular(
        self, count: int | None = None, genre_id: int | None = None, year: int | None = None,
    ) -> list[Film]:
        count = self.settings.default_popular_count if count is None else count
        if count <= 0:
            raise ValidationError(f"count must be positive, got {count}")
        if genre_id is not None:
            await self._require(EntityKind.GENRE, genre_id)
        if year is not None and not EARLIEST_RELEASE.year <= year <= date.today().year:
            raise ValidationError(f"year {year} is out of range")
        ranked = await self.aggregation.popular(count, genre_id=genre_id, year=year)
        return await self._films_by_ids(r.id for r in ranked)

    async def common_films(self, person_id: int, other_id: int) -> list[Film]:
        await self._require(EntityKind.PERSON, person_id)
        await self._require(EntityKind.PERSON, other_id)
        common = await self.aggregation.common_films(person_id, other_id)
        films = await self._films_by_ids(sorted(common))
        # most liked first, like the popular list
        return sorted(films, key=lambda f: (-f.likes, f.id))

    # ── Reviews ─────────────────────────────────────────
    @staticmethod
    def _review(row: ReviewRow, useful: int) -> Review:
        return Review(
            review_id=row.id,
            content=row.content,
            is_positive=row.is_positive,
            user_id=row.person_id,
            film_id=row.film_id,
            useful=useful,
        )

    async def _reviews_by_rank(self, ranked) -> list[Review]:
        rows = {r.id: r for r in await self.entities.by_ids(EntityKind.REVIEW, [x.id for x in ranked])}
        return [self._review(rows[x.id], x.score) for x in ranked if x.id in rows]

    async def list_reviews(self, film_id: int | None = None, count: int | None = None) -> list[Review]:
        """Most useful reviews, optionally restricted to one film."""
        count = self.settings.default_review_count if count is None else count
        if count <= 0:
            raise ValidationError(f"count must be positive, got {count}")
        if film_id is not None:
            await self._require(EntityKind.FILM, film_id)
        ranked = await self.aggregation.top_reviews(count, film_id=film_id)
        return await self._reviews_by_rank(ranked)

    async def get_review(self, review_id: int) -> Review:
        row = await self._require(EntityKind.REVIEW, review_id)
        return self._review(row, await self.aggregation.usefulness(review_id))

    async def create_review(self, person_id: int, film_id: int, content: str, is_positive: bool) -> Review:
        if _blank(content):
            raise ValidationError("review content must not be blank")
        await self._require(EntityKind.PERSON, person_id)
        await self._require(EntityKind.FILM, film_id)
        async with unit_of_work(self.session, "create_review"):
            row = await self.entities.create(
                EntityKind.REVIEW,
                person_id=person_id,
                film_id=film_id,
                content=content,
                is_positive=is_positive,
            )
            await self.feed.record(person_id, row.id, FeedEventType.REVIEW, FeedOperation.ADD)
        log.info("review_created", review_id=row.id, film_id=film_id)
        return self._review(row, 0)

    async def update_review(self, review_id: int, content: str, is_positive: bool) -> Review:
        """Change the text and verdict of a review; author and film stay fixed."""
        if _blank(content):
            raise ValidationError("review content must not be blank")
        row = await self._require(EntityKind.REVIEW, review_id)
        async with unit_of_work(self.session, "update_review"):
            await self.entities.update(EntityKind.REVIEW, review_id, content=content, is_positive=is_positive)
            await self.feed.record(row.person_id, review_id, FeedEventType.REVIEW, FeedOperation.UPDATE)
        return await self.get_review(review_id)

    async def delete_review(self, review_id: int) -> CascadeReport:
        row = await self._require(EntityKind.REVIEW, review_id)
        author = row.person_id
        return await self.consistency.cascade_delete(
            EntityKind.REVIEW, review_id,
            also=lambda: self.feed.record(author, review_id, FeedEventType.REVIEW, FeedOperation.REMOVE),
        )

    async def clear_reviews(self) -> list[CascadeReport]:
        """Delete every review together with its votes. No feed events are recorded."""
        return await self.consistency.cascade_clear(EntityKind.REVIEW)

    async def vote(self, review_id: int, person_id: int, polarity: VotePolarity) -> bool:
        """Cast (LIKE / DISLIKE) or clear (NONE) a person's vote on a review."""
        await self._require(EntityKind.REVIEW, review_id)
        await self._require(EntityKind.PERSON, person_id)
        return await self.consistency.set_vote(person_id, review_id, polarity)
