"""Create entity tables, the relation ledger and the activity feed

Revision ID: 3f9c1e7a2b40
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f9c1e7a2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TAG_TABLES = (("genres", 100), ("classifications", 100), ("directors", 200))


def upgrade() -> None:
    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("login", sa.String(100), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("birthday", sa.Date(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_people_email", "people", ["email"])
    op.create_index("ix_people_login", "people", ["login"])

    for table, width in _TAG_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(width), nullable=False),
            sqlite_autoincrement=True,
        )

    op.create_table(
        "films",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(200), nullable=False),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_films_release_date", "films", ["release_date"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("film_id", sa.Integer(), sa.ForeignKey("films.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_positive", sa.Boolean(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_reviews_person_id", "reviews", ["person_id"])
    op.create_index("ix_reviews_film_id", "reviews", ["film_id"])

    op.create_table(
        "edges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("left_id", sa.Integer(), nullable=False),
        sa.Column("right_id", sa.Integer(), nullable=False),
        sa.Column("payload", sa.Integer(), nullable=True),
        sa.UniqueConstraint("kind", "left_id", "right_id", name="uq_edges_kind_left_right"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_edges_kind_right", "edges", ["kind", "right_id"])

    op.create_table(
        "feed",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("person_id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("operation", sa.String(20), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_feed_person_id", "feed", ["person_id"])


def downgrade() -> None:
    for table in ("feed", "edges", "reviews", "films", "directors", "classifications", "genres", "people"):
        op.drop_table(table)
