"""Async engine, session factory and the request-scoped session dependency.

The pool gauges in ``roadmap.core.metrics`` are refreshed on every checkout
and checkin. SQLite (tests, local runs) keeps SQLAlchemy's default pool,
which takes none of the sizing options and reports no gauges.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import Pool, QueuePool

from roadmap.config import settings
from roadmap.core.metrics import db_pool_checked_in, db_pool_checked_out, db_pool_overflow, db_pool_size


def _engine_kwargs(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def _update_pool_metrics(pool: Pool) -> None:
    if not isinstance(pool, QueuePool):
        return
    db_pool_size.set(pool.size())
    db_pool_checked_in.set(pool.checkedin())
    db_pool_checked_out.set(pool.checkedout())
    db_pool_overflow.set(pool.overflow())


def instrument_pool(async_engine: AsyncEngine) -> None:
    """Keep the pool gauges current for *async_engine*."""
    sync_engine = async_engine.sync_engine

    def _refresh(*_args) -> None:
        _update_pool_metrics(sync_engine.pool)

    event.listen(sync_engine, "checkout", _refresh)
    event.listen(sync_engine, "checkin", _refresh)


def build_engine(url: str) -> AsyncEngine:
    async_engine = create_async_engine(url, echo=False, **_engine_kwargs(url))
    instrument_pool(async_engine)
    return async_engine


engine = build_engine(settings.database_url)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, closed afterwards."""
    async with async_session() as session:
        yield session
