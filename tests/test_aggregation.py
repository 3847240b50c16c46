"""Tests for popularity ranking, common sets and review usefulness."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from filmorate.engine.aggregation import AggregationEngine, Ranked
from filmorate.engine.consistency import ConsistencyEngine
from filmorate.errors import ValidationError
from filmorate.models.enums import EntityKind, RelationKind, VotePolarity


@pytest.fixture
def aggregation(db_session: AsyncSession) -> AggregationEngine:
    return AggregationEngine(db_session)


class TestPopular:
    @pytest.mark.asyncio
    async def test_ranked_by_likes_then_id(self, consistency: ConsistencyEngine, aggregation, seed):
        p1, p2 = await seed.person(), await seed.person()
        f1, f2, f3 = await seed.film("F1"), await seed.film("F2"), await seed.film("F3")
        await consistency.set_like(p1, f1, True)
        await consistency.set_like(p1, f2, True)
        await consistency.set_like(p2, f2, True)
        await consistency.set_like(p2, f3, True)

        assert await aggregation.popular(3) == [Ranked(f2, 2), Ranked(f1, 1), Ranked(f3, 1)]
        assert [r.id for r in await aggregation.popular(2)] == [f2, f1]

    @pytest.mark.asyncio
    async def test_films_without_likes_are_ranked_last(self, consistency: ConsistencyEngine, aggregation, seed):
        p = await seed.person()
        quiet, loved = await seed.film("Quiet"), await seed.film("Loved")
        await consistency.set_like(p, loved, True)
        assert await aggregation.popular(10) == [Ranked(loved, 1), Ranked(quiet, 0)]

    @pytest.mark.asyncio
    async def test_unlike_lowers_rank(self, consistency: ConsistencyEngine, aggregation, seed):
        p = await seed.person()
        f1, f2 = await seed.film(), await seed.film()
        await consistency.set_like(p, f2, True)
        assert (await aggregation.popular(1))[0].id == f2
        await consistency.set_like(p, f2, False)
        assert (await aggregation.popular(1))[0].id == f1

    @pytest.mark.asyncio
    async def test_genre_filter(self, consistency: ConsistencyEngine, aggregation, seed):
        comedy = await seed.tag(EntityKind.GENRE, "Comedy")
        f1, f2 = await seed.film(), await seed.film()
        await consistency.reconcile_associations(f2, RelationKind.GENRE, [comedy])
        assert [r.id for r in await aggregation.popular(10, genre_id=comedy)] == [f2]

    @pytest.mark.asyncio
    async def test_year_filter(self, aggregation, seed):
        old = await seed.film("Old", release=date(1999, 5, 1))
        await seed.film("New", release=date(2021, 5, 1))
        assert [r.id for r in await aggregation.popular(10, year=1999)] == [old]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3, True, "5"])
    async def test_invalid_limit(self, aggregation, limit):
        with pytest.raises(ValidationError):
            await aggregation.popular(limit)

    @pytest.mark.asyncio
    async def test_like_counts(self, consistency: ConsistencyEngine, aggregation, seed):
        p = await seed.person()
        f1, f2 = await seed.film(), await seed.film()
        await consistency.set_like(p, f1, True)
        assert await aggregation.like_counts([f1, f2]) == {f1: 1, f2: 0}
        assert await aggregation.like_counts([]) == {}


class TestCommonSets:
    @pytest.mark.asyncio
    async def test_common_friends(self, consistency: ConsistencyEngine, aggregation, seed):
        a, b, c, d = [await seed.person() for _ in range(4)]
        await consistency.set_friendship(a, c, True)
        await consistency.set_friendship(a, d, True)
        await consistency.set_friendship(b, c, True)
        assert await aggregation.common_friends(a, b) == {c}
        assert await aggregation.common_friends(a, c) == set()

    @pytest.mark.asyncio
    async def test_common_films(self, consistency: ConsistencyEngine, aggregation, seed):
        p1, p2 = await seed.person(), await seed.person()
        f1, f2, f3 = await seed.film(), await seed.film(), await seed.film()
        for film in (f1, f2):
            await consistency.set_like(p1, film, True)
        for film in (f2, f3):
            await consistency.set_like(p2, film, True)
        assert await aggregation.common_films(p1, p2) == {f2}

    @pytest.mark.asyncio
    async def test_neighbourhoods(self, consistency: ConsistencyEngine, aggregation, seed):
        a, b = await seed.person(), await seed.person()
        f = await seed.film()
        await consistency.set_friendship(a, b, True)
        await consistency.set_like(b, f, True)
        await consistency.set_like(a, f, True)
        assert await aggregation.friends_of(a) == [b]
        assert await aggregation.likers_of(f) == [a, b]


class TestUsefulness:
    @pytest.mark.asyncio
    async def test_votes_sum(self, consistency: ConsistencyEngine, aggregation, seed):
        author, p1, p2 = await seed.person(), await seed.person(), await seed.person()
        film = await seed.film()
        review = await seed.review(author, film)
        assert await aggregation.usefulness(review) == 0

        await consistency.set_vote(p1, review, VotePolarity.LIKE)
        assert await aggregation.usefulness(review) == 1
        await consistency.set_vote(p2, review, VotePolarity.LIKE)
        assert await aggregation.usefulness(review) == 2
        await consistency.set_vote(p1, review, VotePolarity.DISLIKE)
        assert await aggregation.usefulness(review) == 0
        await consistency.set_vote(p1, review, VotePolarity.NONE)
        assert await aggregation.usefulness(review) == 1

    @pytest.mark.asyncio
    async def test_clearing_a_dislike_raises_score(self, consistency: ConsistencyEngine, aggregation, seed):
        p1, p2, p3 = [await seed.person() for _ in range(3)]
        review = await seed.review(p1, await seed.film())
        await consistency.set_vote(p1, review, VotePolarity.LIKE)
        await consistency.set_vote(p2, review, VotePolarity.LIKE)
        await consistency.set_vote(p3, review, VotePolarity.DISLIKE)
        assert await aggregation.usefulness(review) == 1

        await consistency.set_vote(p3, review, VotePolarity.NONE)
        assert await aggregation.usefulness(review) == 2

    @pytest.mark.asyncio
    async def test_top_reviews_order(self, consistency: ConsistencyEngine, aggregation, seed):
        p1, p2 = await seed.person(), await seed.person()
        film, other = await seed.film(), await seed.film()
        r1 = await seed.review(p1, film)
        r2 = await seed.review(p2, film)
        r3 = await seed.review(p1, film)
        r4 = await seed.review(p1, other)
        await consistency.set_vote(p2, r1, VotePolarity.LIKE)
        await consistency.set_vote(p1, r2, VotePolarity.DISLIKE)

        ranked = await aggregation.top_reviews(10, film_id=film)
        assert ranked == [Ranked(r1, 1), Ranked(r3, 0), Ranked(r2, -1)]
        assert [r.id for r in await aggregation.top_reviews(2)] == [r1, r4]
        assert await aggregation.usefulness_many([r1, r2, r3]) == {r1: 1, r2: -1, r3: 0}

    @pytest.mark.asyncio
    async def test_top_reviews_offset(self, aggregation, seed):
        p = await seed.person()
        film = await seed.film()
        ids = [await seed.review(p, film) for _ in range(3)]
        assert [r.id for r in await aggregation.top_reviews(1, offset=1)] == [ids[1]]
        with pytest.raises(ValidationError):
            await aggregation.top_reviews(1, offset=-1)
