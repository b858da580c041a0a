from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.responses import Response

from roadmap.api.v1.router import api_router
from roadmap.config import APP_VERSION, _DEFAULT_SECRET_KEYS, settings
from roadmap.core.exceptions import RoadmapError
from roadmap.core.logging_config import configure_logging
from roadmap.core.metrics import app_info, roadmap_errors_total
from roadmap.database import engine
from roadmap.middleware.prometheus import PrometheusMiddleware
from roadmap.models import Base
from roadmap.services import rescheduling_engine
from roadmap.services.rescheduling_engine import RescheduleMode

logger = logging.getLogger(__name__)

# alembic.ini sits next to the roadmap package
_ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def _run_alembic_stamp(alembic_cfg, revision):
    """Run alembic stamp in a thread-safe way."""
    from alembic import command
    command.stamp(alembic_cfg, revision)


def _run_alembic_upgrade(alembic_cfg, revision):
    """Run alembic upgrade in a thread-safe way."""
    from alembic import command
    command.upgrade(alembic_cfg, revision)


def _alembic_config(url: str):
    from alembic.config import Config

    alembic_cfg = Config(str(_ALEMBIC_INI))
    # ConfigParser interpolation needs a literal % doubled
    alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return alembic_cfg


def _check_settings() -> None:
    """Reject unusable settings at startup."""
    if settings.SECRET_KEY in _DEFAULT_SECRET_KEYS:
        if settings.ENVIRONMENT != "development":
            raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")
        logger.warning("Using the default SECRET_KEY; acceptable for development only.")

    try:
        RescheduleMode(settings.RESCHEDULE_MODE)
    except ValueError:
        allowed = ", ".join(m.value for m in RescheduleMode)
        raise RuntimeError(
            f"RESCHEDULE_MODE must be one of: {allowed} (got {settings.RESCHEDULE_MODE!r})"
        ) from None


async def prepare_schema(bind: AsyncEngine) -> None:
    """Create or migrate the schema behind *bind*.

    A fresh database (or one created before Alembic was introduced) gets
    ``create_all`` and is stamped at head. A database with a recorded
    revision is upgraded to head first; ``create_all`` then only adds tables
    no migration covers yet.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text

    alembic_cfg = _alembic_config(bind.url.render_as_string(hide_password=False))

    async with bind.connect() as conn:
        has_alembic = await conn.run_sync(
            lambda sync_conn: sa_inspect(sync_conn).has_table("alembic_version")
        )
        alembic_version = None
        if has_alembic:
            row = await conn.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
            first = row.first()
            alembic_version = first[0] if first else None

    if alembic_version is None:
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await asyncio.to_thread(_run_alembic_stamp, alembic_cfg, "head")
        logger.info("Created schema and stamped it at head")
        return

    try:
        await asyncio.to_thread(_run_alembic_upgrade, alembic_cfg, "head")
    except Exception:
        logger.exception("Alembic migration failed")
        raise
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    app_info.info({"version": APP_VERSION, "reschedule_mode": settings.RESCHEDULE_MODE})

    _check_settings()
    await prepare_schema(engine)

    yield

    # Let in-flight propagation finish before the pool goes away
    if rescheduling_engine.pending_count():
        logger.info("Waiting for %d reschedule task(s)", rescheduling_engine.pending_count())
    await rescheduling_engine.drain_pending()
    await engine.dispose()


async def roadmap_error_handler(request: Request, exc: RoadmapError) -> JSONResponse:
    roadmap_errors_total.labels(error=type(exc).__name__, status=str(exc.status_code)).inc()
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
    )
    app.add_middleware(PrometheusMiddleware)
    app.add_exception_handler(RoadmapError, roadmap_error_handler)
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "version": APP_VERSION}

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
