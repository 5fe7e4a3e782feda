"""Role dashboards.

GET /v1/dashboard/student/{user_id}  read-through cached per student; the
                                     aggregation runs in the threadpool
GET /v1/dashboard/me                 the caller's own student dashboard
GET /v1/dashboard/teacher/{teacher_id}
GET /v1/dashboard/admin
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from learnstats.api.dependencies import (
    STAFF_ROLES,
    ActorDep,
    ServicesDep,
    ensure_any_role,
    ensure_self_or_role,
    require_any_role,
)
from learnstats.models.actor import Actor
from learnstats.models.dashboard import AdminDashboard, TeacherDashboard
from learnstats.services.cache import read_through, student_dashboard_key
from learnstats.services.dashboards import StatsServices

router = APIRouter(prefix="/v1/dashboard", tags=["dashboards"])

_STUDENT_VIEWERS = {"teacher", *STAFF_ROLES}


async def _student_dashboard_response(services: StatsServices, user_id: str) -> Response:
    def compute() -> str:
        dashboard = services.dashboards.get_student_dashboard(user_id)
        return dashboard.model_dump_json(by_alias=True)

    body = await read_through(
        services.dashboard_cache,
        student_dashboard_key(user_id),
        services.dashboard_cache_ttl,
        compute,
    )
    return Response(content=body, media_type="application/json")


@router.get("/student/{user_id}")
async def get_student_dashboard(
    user_id: str, actor: ActorDep, services: ServicesDep
) -> Response:
    ensure_self_or_role(actor, user_id, _STUDENT_VIEWERS)
    return await _student_dashboard_response(services, user_id)


@router.get("/me")
async def get_my_dashboard(actor: ActorDep, services: ServicesDep) -> Response:
    return await _student_dashboard_response(services, actor.user_id)


@router.get("/teacher/{teacher_id}", response_model=TeacherDashboard)
def get_teacher_dashboard(
    teacher_id: str, actor: ActorDep, services: ServicesDep
) -> TeacherDashboard:
    if not (actor.role == "teacher" and actor.is_self(teacher_id)):
        ensure_any_role(actor, STAFF_ROLES, target=teacher_id)
    return services.dashboards.get_teacher_dashboard(teacher_id)


@router.get("/admin", response_model=AdminDashboard)
def get_admin_dashboard(
    _actor: Annotated[Actor, Depends(require_any_role(STAFF_ROLES))],
    services: ServicesDep,
) -> AdminDashboard:
    return services.dashboards.get_admin_dashboard()
