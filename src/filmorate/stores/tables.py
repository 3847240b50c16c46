"""SQLAlchemy ORM tables for entities, the relation ledger and the feed."""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# AUTOINCREMENT keeps SQLite from handing out the id of a deleted last row again
_NO_ID_REUSE = {"sqlite_autoincrement": True}


# ── People ──────────────────────────────────────────────
class PersonRow(Base):
    __tablename__ = "people"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(254), index=True)
    login: Mapped[str] = mapped_column(String(100), index=True)
    name: Mapped[str] = mapped_column(String(200), default="")
    birthday: Mapped[date | None] = mapped_column(Date, nullable=True)


# ── Tag entities ────────────────────────────────────────
class GenreRow(Base):
    __tablename__ = "genres"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))


class ClassificationRow(Base):
    __tablename__ = "classifications"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))


class DirectorRow(Base):
    __tablename__ = "directors"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))


# ── Films ───────────────────────────────────────────────
class FilmRow(Base):
    __tablename__ = "films"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(String(200), default="")
    release_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)


# ── Reviews ─────────────────────────────────────────────
class ReviewRow(Base):
    __tablename__ = "reviews"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, ForeignKey("people.id"), index=True)
    film_id: Mapped[int] = mapped_column(Integer, ForeignKey("films.id"), index=True)
    content: Mapped[str] = mapped_column(Text)
    is_positive: Mapped[bool] = mapped_column(Boolean, default=False)


# ── Relation Ledger ─────────────────────────────────────
class EdgeRow(Base):
    """A single directed association ``left → right`` of one relation kind.

    Ids are not foreign keys: the ledger is shared by every kind, so
    referential soundness is kept by the consistency engine's cascades.
    """
    __tablename__ = "edges"
    __table_args__ = (
        UniqueConstraint("kind", "left_id", "right_id", name="uq_edges_kind_left_right"),
        Index("ix_edges_kind_right", "kind", "right_id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(30))
    left_id: Mapped[int] = mapped_column(Integer)
    right_id: Mapped[int] = mapped_column(Integer)
    payload: Mapped[int | None] = mapped_column(Integer, nullable=True)


# ── Activity Feed ───────────────────────────────────────
class FeedRow(Base):
    __tablename__ = "feed"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, index=True)
    entity_id: Mapped[int] = mapped_column(Integer)
    event_type: Mapped[str] = mapped_column(String(20))       # LIKE | REVIEW | FRIEND
    operation: Mapped[str] = mapped_column(String(20))        # ADD | REMOVE | UPDATE
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(tz=timezone.utc))
