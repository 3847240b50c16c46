"""API request/response schemas."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IdRef(BaseModel):
    """``{"id": 3}`` – how films reference their MPA rating, genres and directors."""
    id: int
    name: str | None = None


# ── People ──────────────────────────────────────────────
class PersonRequest(_Body):
    id: int | None = None           # required on update, ignored on create
    email: str
    login: str
    name: str | None = None
    birthday: date | None = None


# ── Films ───────────────────────────────────────────────
class FilmRequest(_Body):
    id: int | None = None
    name: str
    description: str = ""
    release_date: date | None = None
    duration: int | None = None
    mpa: IdRef | None = None
    genres: list[IdRef] = Field(default_factory=list)
    directors: list[IdRef] = Field(default_factory=list)

    @property
    def mpa_id(self) -> int | None:
        return self.mpa.id if self.mpa else None

    @property
    def genre_ids(self) -> list[int]:
        return [g.id for g in self.genres]

    @property
    def director_ids(self) -> list[int]:
        return [d.id for d in self.directors]


# ── Tags ────────────────────────────────────────────────
class TagRequest(_Body):
    id: int | None = None
    name: str


# ── Reviews ─────────────────────────────────────────────
class ReviewRequest(_Body):
    review_id: int | None = None
    content: str
    is_positive: bool
    user_id: int | None = None
    film_id: int | None = None


# ── Misc ────────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str
    version: str
