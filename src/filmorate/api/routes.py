"""API routes – the REST surface of the film-rating service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from filmorate import __version__
from filmorate.api.deps import get_catalog
from filmorate.api.schemas import FilmRequest, HealthResponse, PersonRequest, ReviewRequest, TagRequest
from filmorate.engine.catalog import Catalog
from filmorate.errors import ValidationError
from filmorate.models.entities import (
    Classification,
    Director,
    FeedEvent,
    Film,
    Genre,
    Person,
    Review,
)
from filmorate.models.enums import EntityKind, VotePolarity

router = APIRouter()


def _require_id(value: int | None, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    return value


# ── Health ──────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", version=__version__)


# ── Users ───────────────────────────────────────────────
@router.get("/users", response_model=list[Person])
async def list_users(
    size: int | None = Query(default=None),
    offset: int = Query(default=0, alias="from"),
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.list_people(size, offset)


@router.post("/users", response_model=Person)
async def create_user(req: PersonRequest, catalog: Catalog = Depends(get_catalog)):
    return await catalog.create_person(req.email, req.login, req.name, req.birthday)


@router.put("/users", response_model=Person)
async def update_user(req: PersonRequest, catalog: Catalog = Depends(get_catalog)):
    person_id = _require_id(req.id, "id")
    return await catalog.update_person(person_id, req.email, req.login, req.name, req.birthday)


@router.get("/users/{user_id}", response_model=Person)
async def get_user(user_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.get_person(user_id)


@router.delete("/users/{user_id}")
async def delete_user(user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.delete_person(user_id)


@router.put("/users/{user_id}/friends/{friend_id}")
async def add_friend(user_id: int, friend_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.add_friend(user_id, friend_id)


@router.delete("/users/{user_id}/friends/{friend_id}")
async def remove_friend(user_id: int, friend_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.remove_friend(user_id, friend_id)


@router.get("/users/{user_id}/friends", response_model=list[Person])
async def list_friends(user_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.friends(user_id)


@router.get("/users/{user_id}/friends/common/{other_id}", response_model=list[Person])
async def common_friends(user_id: int, other_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.common_friends(user_id, other_id)


@router.get("/users/{user_id}/feed", response_model=list[FeedEvent])
async def user_feed(user_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.person_feed(user_id)


# ── Films ───────────────────────────────────────────────
# Fixed paths come before /films/{film_id} so they are not parsed as ids.
@router.get("/films/popular", response_model=list[Film])
async def popular_films(
    count: int | None = Query(default=None),
    genre_id: int | None = Query(default=None, alias="genreId"),
    year: int | None = Query(default=None),
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.popular(count, genre_id=genre_id, year=year)


@router.get("/films/common", response_model=list[Film])
async def common_films(
    user_id: int = Query(alias="userId"),
    friend_id: int = Query(alias="friendId"),
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.common_films(user_id, friend_id)


@router.get("/films", response_model=list[Film])
async def list_films(
    size: int | None = Query(default=None),
    offset: int = Query(default=0, alias="from"),
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.list_films(size, offset)


@router.post("/films", response_model=Film)
async def create_film(req: FilmRequest, catalog: Catalog = Depends(get_catalog)):
    return await catalog.create_film(
        req.name,
        req.description,
        req.release_date,
        req.duration,
        mpa_id=req.mpa_id,
        genre_ids=req.genre_ids,
        director_ids=req.director_ids,
    )


@router.put("/films", response_model=Film)
async def update_film(req: FilmRequest, catalog: Catalog = Depends(get_catalog)):
    film_id = _require_id(req.id, "id")
    return await catalog.update_film(
        film_id,
        req.name,
        req.description,
        req.release_date,
        req.duration,
        mpa_id=req.mpa_id,
        genre_ids=req.genre_ids,
        director_ids=req.director_ids,
    )


@router.get("/films/{film_id}", response_model=Film)
async def get_film(film_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.get_film(film_id)


@router.delete("/films/{film_id}")
async def delete_film(film_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.delete_film(film_id)


@router.put("/films/{film_id}/like/{user_id}")
async def like_film(film_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.add_like(film_id, user_id)


@router.delete("/films/{film_id}/like/{user_id}")
async def unlike_film(film_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.remove_like(film_id, user_id)


# ── Genres / MPA / Directors ────────────────────────────
def _tag_routes(prefix: str, kind: EntityKind, model: type) -> None:
    """Register list / get / create / update / delete / clear for one tag kind."""

    async def list_tags(
        size: int | None = Query(default=None),
        offset: int = Query(default=0, alias="from"),
        catalog: Catalog = Depends(get_catalog),
    ):
        return await catalog.list_tags(kind, size, offset)

    async def get_tag(tag_id: int, catalog: Catalog = Depends(get_catalog)):
        return await catalog.get_tag(kind, tag_id)

    async def create_tag(req: TagRequest, catalog: Catalog = Depends(get_catalog)):
        return await catalog.create_tag(kind, req.name)

    async def update_tag(req: TagRequest, catalog: Catalog = Depends(get_catalog)):
        return await catalog.update_tag(kind, _require_id(req.id, "id"), req.name)

    async def delete_tag(tag_id: int, catalog: Catalog = Depends(get_catalog)):
        await catalog.delete_tag(kind, tag_id)

    async def clear_tags(catalog: Catalog = Depends(get_catalog)):
        await catalog.clear_tags(kind)

    name = kind.value
    router.add_api_route(prefix, list_tags, methods=["GET"], response_model=list[model], name=f"list_{name}")
    router.add_api_route(prefix, create_tag, methods=["POST"], response_model=model, name=f"create_{name}")
    router.add_api_route(prefix, update_tag, methods=["PUT"], response_model=model, name=f"update_{name}")
    router.add_api_route(prefix, clear_tags, methods=["DELETE"], name=f"clear_{name}")
    router.add_api_route(f"{prefix}/{{tag_id}}", get_tag, methods=["GET"], response_model=model, name=f"get_{name}")
    router.add_api_route(f"{prefix}/{{tag_id}}", delete_tag, methods=["DELETE"], name=f"delete_{name}")


_tag_routes("/genres", EntityKind.GENRE, Genre)
_tag_routes("/mpa", EntityKind.CLASSIFICATION, Classification)
_tag_routes("/directors", EntityKind.DIRECTOR, Director)


# ── Reviews ─────────────────────────────────────────────
@router.get("/reviews", response_model=list[Review])
async def list_reviews(
    film_id: int | None = Query(default=None, alias="filmId"),
    count: int | None = Query(default=None),
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.list_reviews(film_id, count)


@router.post("/reviews", response_model=Review)
async def create_review(req: ReviewRequest, catalog: Catalog = Depends(get_catalog)):
    return await catalog.create_review(
        _require_id(req.user_id, "userId"),
        _require_id(req.film_id, "filmId"),
        req.content,
        req.is_positive,
    )


@router.put("/reviews", response_model=Review)
async def update_review(req: ReviewRequest, catalog: Catalog = Depends(get_catalog)):
    review_id = _require_id(req.review_id, "reviewId")
    return await catalog.update_review(review_id, req.content, req.is_positive)


@router.delete("/reviews")
async def clear_reviews(catalog: Catalog = Depends(get_catalog)):
    await catalog.clear_reviews()


@router.get("/reviews/{review_id}", response_model=Review)
async def get_review(review_id: int, catalog: Catalog = Depends(get_catalog)):
    return await catalog.get_review(review_id)


@router.delete("/reviews/{review_id}")
async def delete_review(review_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.delete_review(review_id)


@router.put("/reviews/{review_id}/like/{user_id}")
async def like_review(review_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.vote(review_id, user_id, VotePolarity.LIKE)


@router.put("/reviews/{review_id}/dislike/{user_id}")
async def dislike_review(review_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.vote(review_id, user_id, VotePolarity.DISLIKE)


@router.delete("/reviews/{review_id}/like/{user_id}")
async def remove_review_like(review_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.vote(review_id, user_id, VotePolarity.NONE)


@router.delete("/reviews/{review_id}/dislike/{user_id}")
async def remove_review_dislike(review_id: int, user_id: int, catalog: Catalog = Depends(get_catalog)):
    await catalog.vote(review_id, user_id, VotePolarity.NONE)
