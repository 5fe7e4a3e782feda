"""Liveness, readiness and Prometheus exposition.

/health  always 200; ``status`` is "degraded" when a dependency check fails.
/ready   503 until the record store answers, 200 afterwards.  Redis is
         optional (a failing cache is bypassed and dashboards are
         computed directly) and does not gate readiness.
/metrics Prometheus text format.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError

from learnstats.repos.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _check_store(store: RecordStore) -> str:
    try:
        store.count_users_by_role()
    except Exception:
        logger.exception("Record store check failed")
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    redis_client = request.app.state.redis
    if redis_client is not None:
        try:
            await redis_client.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except RedisError:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    checks["record_store"] = _check_store(request.app.state.services.store)
    if checks["record_store"] != "ok":
        overall = "degraded"

    return {
        "status": overall,
        "checks": checks,
        "dashboardProvider": request.app.state.settings.dashboard_provider,
    }


@router.get("/ready")
async def ready(request: Request) -> Response:
    if _check_store(request.app.state.services.store) != "ok":
        return Response(status_code=503)
    return Response(status_code=200)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
