"""Tests for settings loading, the CLI parser and the schema bootstrap."""

from __future__ import annotations

import pytest
from sqlalchemy import inspect

from filmorate.cli import build_parser
from filmorate.config import LogLevel, Settings, get_settings, reset_settings
from filmorate.stores.database import build_engine, create_schema


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("FILMORATE_PORT", "9001")
        monkeypatch.setenv("FILMORATE_LOG_LEVEL", "DEBUG")
        settings = Settings(_env_file=None)
        assert settings.port == 9001
        assert settings.log_level is LogLevel.DEBUG

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.default_popular_count == 10
        assert settings.database_url.startswith("sqlite+aiosqlite://")

    def test_singleton_reset(self):
        reset_settings()
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first
        reset_settings()


class TestCli:
    def test_serve_arguments(self):
        args = build_parser().parse_args(["serve", "--port", "8000"])
        assert args.port == 8000
        assert args.reload is False

    def test_init_db_command(self):
        args = build_parser().parse_args(["init-db"])
        assert args.func.__name__ == "cmd_init_db"


@pytest.mark.asyncio
async def test_create_schema_builds_all_tables(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'schema.db'}")
    await create_schema(engine)
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
    await engine.dispose()
    assert {"people", "films", "genres", "classifications", "directors", "reviews", "edges", "feed"} <= set(tables)
