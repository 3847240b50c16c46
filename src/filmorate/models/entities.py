"""Domain models for the catalog entities and ledger edges.

These are the objects the catalog service hands to the API layer. Field names
are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from .enums import FeedEventType, FeedOperation, RelationKind


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Tag entities ────────────────────────────────────────
class Tag(_Wire):
    """Common shape of Genre, Classification and Director."""
    id: int
    name: str


class Genre(Tag):
    pass


class Classification(Tag):
    """An MPA rating such as G, PG-13 or R."""


class Director(Tag):
    pass


# ── Person ──────────────────────────────────────────────
class Person(_Wire):
    id: int
    email: str
    login: str
    name: str
    birthday: date | None = None


# ── Film ────────────────────────────────────────────────
class Film(_Wire):
    id: int
    name: str
    description: str = ""
    release_date: date | None = None
    duration: int | None = None
    mpa: Classification | None = None
    genres: list[Genre] = Field(default_factory=list)
    directors: list[Director] = Field(default_factory=list)
    likes: int = 0


# ── Review ──────────────────────────────────────────────
class Review(_Wire):
    review_id: int
    content: str
    is_positive: bool
    user_id: int
    film_id: int
    useful: int = 0      # derived from votes, never stored


# ── Activity feed ───────────────────────────────────────
class FeedEvent(_Wire):
    event_id: int
    user_id: int
    entity_id: int
    event_type: FeedEventType
    operation: FeedOperation
    timestamp: datetime

    @field_serializer("timestamp")
    def _epoch_millis(self, value: datetime) -> int:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)


# ── Ledger edge ─────────────────────────────────────────
class Edge(NamedTuple):
    """One row of the Relation Ledger."""
    kind: RelationKind
    left: int
    right: int
    payload: int | None = None
