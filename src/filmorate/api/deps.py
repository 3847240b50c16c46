"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from typing import AsyncGenerator

from filmorate.engine.catalog import Catalog
from filmorate.stores.database import get_session_factory


async def get_catalog() -> AsyncGenerator[Catalog, None]:
    """FastAPI dependency: yields a Catalog bound to a fresh DB session."""
    factory = get_session_factory()
    async with factory() as session:
        yield Catalog(session)
