"""Tests for engine construction, pool gauges and the session dependency."""

from __future__ import annotations

import sqlite3

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from roadmap import database
from roadmap.config import settings


class TestEngineKwargs:
    def test_sqlite_uses_default_pool(self):
        assert database._engine_kwargs("sqlite+aiosqlite:///roadmap.db") == {}

    def test_postgres_gets_pool_sizing(self, monkeypatch):
        monkeypatch.setattr(settings, "DB_POOL_SIZE", 7)
        monkeypatch.setattr(settings, "DB_MAX_OVERFLOW", 3)

        kwargs = database._engine_kwargs("postgresql+asyncpg://u:p@db:5432/roadmap")

        assert kwargs["pool_size"] == 7
        assert kwargs["max_overflow"] == 3
        assert kwargs["pool_pre_ping"] is True


class TestPoolMetrics:
    def test_queue_pool_is_reported(self):
        pool = QueuePool(lambda: sqlite3.connect(":memory:"), pool_size=4, max_overflow=2)
        conn = pool.connect()
        try:
            database._update_pool_metrics(pool)
            assert REGISTRY.get_sample_value("db_pool_size") == 4
            assert REGISTRY.get_sample_value("db_pool_checked_out") == 1
        finally:
            conn.close()
            pool.dispose()

    def test_other_pools_are_ignored(self):
        database._update_pool_metrics(QueuePool(lambda: sqlite3.connect(":memory:"), pool_size=9))
        before = REGISTRY.get_sample_value("db_pool_size")

        database._update_pool_metrics(StaticPool(lambda: sqlite3.connect(":memory:")))

        assert REGISTRY.get_sample_value("db_pool_size") == before

    async def test_built_engine_connects(self, tmp_path):
        engine = database.build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}")
        try:
            async with engine.connect() as conn:
                assert (await conn.exec_driver_sql("SELECT 1")).scalar() == 1
        finally:
            await engine.dispose()


class TestGetDb:
    async def test_yields_session_from_factory(self, test_engine, monkeypatch):
        factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
        monkeypatch.setattr(database, "async_session", factory)

        sessions = [s async for s in database.get_db()]

        assert len(sessions) == 1
        assert isinstance(sessions[0], AsyncSession)


@pytest.mark.parametrize("url", ["sqlite+aiosqlite:///:memory:", "sqlite:///x.db"])
def test_any_sqlite_driver_skips_pool_sizing(url):
    assert database._engine_kwargs(url) == {}
