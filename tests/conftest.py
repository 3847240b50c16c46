"""Test fixtures and configuration."""

from __future__ import annotations

from datetime import date
from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filmorate.config import Settings
from filmorate.engine.catalog import Catalog
from filmorate.engine.consistency import ConsistencyEngine
from filmorate.engine.locks import KeyedLocks
from filmorate.models.enums import EntityKind
from filmorate.stores.entity_store import EntityStore
from filmorate.stores.tables import Base


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an in-memory SQLite session for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def consistency(db_session: AsyncSession) -> ConsistencyEngine:
    return ConsistencyEngine(db_session, KeyedLocks())


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession) -> Catalog:
    return Catalog(db_session, locks=KeyedLocks(), settings=Settings(_env_file=None))


class Seed:
    """Shortcut for inserting rows directly through the entity store."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = EntityStore(session)
        self._n = 0

    async def person(self, login: str | None = None) -> int:
        self._n += 1
        login = login or f"user{self._n}"
        row = await self.store.create(
            EntityKind.PERSON, email=f"{login}@example.com", login=login, name=login, birthday=None,
        )
        await self.session.commit()
        return row.id

    async def film(self, name: str = "Film", release: date | None = date(2000, 1, 1)) -> int:
        row = await self.store.create(
            EntityKind.FILM, name=name, description="", release_date=release, duration=100,
        )
        await self.session.commit()
        return row.id

    async def tag(self, kind: EntityKind, name: str) -> int:
        row = await self.store.create(kind, name=name)
        await self.session.commit()
        return row.id

    async def review(self, person_id: int, film_id: int, content: str = "Fine", positive: bool = True) -> int:
        row = await self.store.create(
            EntityKind.REVIEW, person_id=person_id, film_id=film_id, content=content, is_positive=positive,
        )
        await self.session.commit()
        return row.id


@pytest_asyncio.fixture
async def seed(db_session: AsyncSession) -> Seed:
    return Seed(db_session)
