from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from learnstats.api.dependencies import STAFF_ROLES, ServicesDep, require_any_role
from learnstats.models.actor import Actor
from learnstats.models.dashboard import CourseAnalytics, PlatformCourseMetrics

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get("/courses/{course_id}", response_model=CourseAnalytics)
def get_course_analytics(
    course_id: str,
    _actor: Annotated[Actor, Depends(require_any_role({"teacher", *STAFF_ROLES}))],
    services: ServicesDep,
) -> CourseAnalytics:
    return services.dashboards.get_course_analytics(course_id)


@router.get("/platform/courses", response_model=PlatformCourseMetrics)
def get_platform_course_metrics(
    _actor: Annotated[Actor, Depends(require_any_role(STAFF_ROLES))],
    services: ServicesDep,
) -> PlatformCourseMetrics:
    """Most popular and top performing courses across the platform."""
    return services.dashboards.get_platform_course_metrics()
