"""Shared test fixtures for the roadmap backend.

Provides:
- A fresh SQLite database per test (file-backed, so the background reschedule
  task can open its own connection to the same data)
- The reschedule session factory pointed at that database
- FastAPI test client with overridden DB dependency
- Factory helpers for products, versions, milestones and dependencies
"""

from __future__ import annotations

import os
import uuid
from datetime import date

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("RESCHEDULE_MODE", "preserve")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from roadmap import database
from roadmap.core.security import create_access_token
from roadmap.models.base import Base
from roadmap.services import rescheduling_engine
from roadmap.services.event_bus import event_bus

# ---------------------------------------------------------------------------
# Database engine
# ---------------------------------------------------------------------------


@pytest.fixture
async def test_engine(tmp_path):
    """Create all tables in a throwaway database; drop them at teardown.

    ``TEST_DATABASE_URL`` points the suite at another server (e.g. PostgreSQL
    via asyncpg) instead of the default SQLite file.
    """
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'roadmap_test.db'}"
    engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Propagation tasks may still hold connections
    await rescheduling_engine.drain_pending()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine, monkeypatch):
    """Session factory shared by the test session and background tasks."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session", factory)
    return factory


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(db):
    """Test app with ``get_db`` overridden to use the test session."""
    from roadmap.main import create_app

    test_app = create_app()

    async def _override_get_db():
        yield db

    test_app.dependency_overrides[database.get_db] = _override_get_db
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


# ---------------------------------------------------------------------------
# Global state cleanup (autouse)
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_event_bus():
    """Ensure no handler or subscriber leaks between tests."""
    event_bus.clear_handlers()
    event_bus._subscribers.clear()
    yield
    event_bus.clear_handlers()
    event_bus._subscribers.clear()


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


async def create_product(
    db,
    *,
    name="Test Product",
    owner_id=None,
    lifecycle_status="active",
    status="approved",
):
    """Insert a product into the test database."""
    from roadmap.models.product import Product

    product = Product(
        name=name,
        owner_id=owner_id,
        lifecycle_status=lifecycle_status,
        status=status,
    )
    db.add(product)
    await db.commit()
    return product


async def create_version(db, *, product_id, version="1.0"):
    """Insert a product version into the test database."""
    from roadmap.models.product import ProductVersion

    pv = ProductVersion(product_id=product_id, version=version)
    db.add(pv)
    await db.commit()
    return pv


async def create_milestone(
    db,
    *,
    product_id,
    label="Beta",
    start_date=date(2024, 1, 1),
    end_date=None,
    product_version_id=None,
    **kwargs,
):
    """Insert a milestone directly, bypassing the mutation rules."""
    from roadmap.models.milestone import Milestone

    ms = Milestone(
        product_id=product_id,
        product_version_id=product_version_id,
        label=label,
        start_date=start_date,
        end_date=end_date,
        type=kwargs.get("type", ""),
        color=kwargs.get("color", ""),
        extra=kwargs.get("extra"),
    )
    db.add(ms)
    await db.commit()
    return ms


async def create_dependency(db, *, source_id, target_id, type="FS"):
    """Insert a dependency edge into the test database."""
    from roadmap.models.dependency import Dependency, DependencyType

    dep = Dependency(
        type=DependencyType(type),
        source_milestone_id=source_id,
        target_milestone_id=target_id,
    )
    db.add(dep)
    await db.commit()
    return dep


def auth_headers(caller_id: uuid.UUID, role: str = "admin") -> dict[str, str]:
    """Generate Bearer token headers for a test caller."""
    token = create_access_token(caller_id, role)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Convenience fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
async def product(db, owner_id):
    return await create_product(db, name="Widget", owner_id=owner_id)
