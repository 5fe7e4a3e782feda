"""Progress update endpoint.

POST /v1/progress/{student_id}/courses/{course_id}
  -> ProgressEngine.apply_update
  -> on success, drop the student's cached dashboard
  -> {success, data} or {success: false, error} with a mapped status

The body is taken as a raw JSON object and parsed by the engine, so an
unknown ``type`` is reported as INVALID_UPDATE_TYPE rather than a
generic 422.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from learnstats.api.dependencies import ActorDep, ServicesDep, ensure_self_or_role
from learnstats.models.dashboard import ProgressUpdateResult
from learnstats.services.cache import invalidate, student_dashboard_key

router = APIRouter(prefix="/v1/progress", tags=["progress"])

_UPDATERS = {"teacher", "admin"}

_FAILURE_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "not_enrolled": status.HTTP_409_CONFLICT,
    "invalid_input": status.HTTP_400_BAD_REQUEST,
}


@router.post(
    "/{student_id}/courses/{course_id}",
    response_model=ProgressUpdateResult,
)
async def update_progress(
    student_id: str,
    course_id: str,
    actor: ActorDep,
    services: ServicesDep,
    payload: Any = Body(...),
) -> JSONResponse:
    ensure_self_or_role(actor, student_id, _UPDATERS)

    result = await run_in_threadpool(
        services.progress.apply_update, student_id, course_id, payload
    )
    body = result.model_dump(mode="json", by_alias=True, exclude_none=True)

    if result.error is not None:
        return JSONResponse(status_code=_FAILURE_STATUS[result.error.kind], content=body)

    await invalidate(services.dashboard_cache, student_dashboard_key(student_id))
    return JSONResponse(status_code=status.HTTP_200_OK, content=body)
