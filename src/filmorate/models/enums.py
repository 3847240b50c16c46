"""Shared enumerations used across the entire system."""

from __future__ import annotations

from enum import Enum


# ── Entities ─────────────────────────────────────────────
class EntityKind(str, Enum):
    PERSON = "person"
    FILM = "film"
    GENRE = "genre"
    CLASSIFICATION = "classification"   # MPA rating
    DIRECTOR = "director"
    REVIEW = "review"


# ── Relation Ledger kinds ───────────────────────────────
class RelationKind(str, Enum):
    """Every edge in the ledger belongs to exactly one kind.

    Orientation (left → right):
      FRIENDSHIP       person → person (directed; mutual = two rows)
      LIKE             person → film
      GENRE            film   → genre
      CLASSIFICATION   film   → classification (at most one per film)
      DIRECTOR         film   → director
      REVIEW_VOTE      person → review, payload ±1
    """
    FRIENDSHIP = "friendship"
    LIKE = "like"
    GENRE = "genre"
    CLASSIFICATION = "classification"
    DIRECTOR = "director"
    REVIEW_VOTE = "review_vote"


# Entity kinds on the left and right of each relation kind
ENDPOINTS: dict[RelationKind, tuple[EntityKind, EntityKind]] = {
    RelationKind.FRIENDSHIP: (EntityKind.PERSON, EntityKind.PERSON),
    RelationKind.LIKE: (EntityKind.PERSON, EntityKind.FILM),
    RelationKind.GENRE: (EntityKind.FILM, EntityKind.GENRE),
    RelationKind.CLASSIFICATION: (EntityKind.FILM, EntityKind.CLASSIFICATION),
    RelationKind.DIRECTOR: (EntityKind.FILM, EntityKind.DIRECTOR),
    RelationKind.REVIEW_VOTE: (EntityKind.PERSON, EntityKind.REVIEW),
}

TAG_KINDS: frozenset[RelationKind] = frozenset(
    {RelationKind.GENRE, RelationKind.CLASSIFICATION, RelationKind.DIRECTOR}
)

# Tag kinds where a film may carry at most one right-hand id
SINGLE_VALUED_KINDS: frozenset[RelationKind] = frozenset({RelationKind.CLASSIFICATION})


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


# ── Review votes ────────────────────────────────────────
class VotePolarity(int, Enum):
    LIKE = 1
    DISLIKE = -1
    NONE = 0          # absence of a row, never stored


# ── Activity feed ───────────────────────────────────────
class FeedEventType(str, Enum):
    LIKE = "LIKE"
    REVIEW = "REVIEW"
    FRIEND = "FRIEND"


class FeedOperation(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    UPDATE = "UPDATE"
