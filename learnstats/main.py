from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from learnstats.api.analytics import router as analytics_router
from learnstats.api.dashboards import router as dashboards_router
from learnstats.api.health import router as health_router
from learnstats.api.progress import router as progress_router
from learnstats.core.config import SETTINGS, Settings
from learnstats.core.logging import setup_logging
from learnstats.db.redis import create_redis_client, lifespan_redis
from learnstats.middleware.metrics import MetricsMiddleware
from learnstats.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from learnstats.repos.documents import load_records_file
from learnstats.repos.record_store import InMemoryRecordStore, RecordStore
from learnstats.services.cache import build_cache_service
from learnstats.services.dashboards import build_services
from learnstats.services.errors import (
    ActorNotFound,
    AggregationFailed,
    CourseNotFound,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis(app.state.redis):
        yield


async def _not_found(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _aggregation_failed(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


def _default_store(settings: Settings) -> RecordStore:
    if settings.records_file:
        return load_records_file(settings.records_file)
    logger.info("No RECORDS_FILE configured; starting with an empty record store")
    return InMemoryRecordStore()


def create_app(
    settings: Settings | None = None,
    store: RecordStore | None = None,
) -> FastAPI:
    settings = settings or SETTINGS
    setup_logging(settings.log_level, json_format=settings.log_json)
    install_log_filter()

    redis_client = create_redis_client(settings.redis_url)
    store = store if store is not None else _default_store(settings)

    app = FastAPI(
        title="learnstats",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.state.redis = redis_client
    app.state.services = build_services(
        settings, store, dashboard_cache=build_cache_service(redis_client)
    )

    # Last added runs first: RequestContext (outermost) -> Metrics -> route
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(ActorNotFound, _not_found)
    app.add_exception_handler(CourseNotFound, _not_found)
    app.add_exception_handler(AggregationFailed, _aggregation_failed)

    app.include_router(health_router)
    app.include_router(dashboards_router)
    app.include_router(analytics_router)
    app.include_router(progress_router)

    logger.info(
        "learnstats started  env=%s log_level=%s port=%d provider=%s redis=%s",
        settings.app_env,
        settings.log_level,
        settings.port,
        settings.dashboard_provider,
        "on" if redis_client is not None else "off",
    )
    return app


app = create_app()
