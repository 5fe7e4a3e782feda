"""Dashboard providers and the per-app service container.

Two DashboardProvider variants exist:

  RealAggregator        computes every payload from the record store,
                        bounded by the Query Guard.
  PlaceholderAggregator returns deterministic zero payloads marked
                        ``source="placeholder"`` without reading the store;
                        useful for front-end work against an empty stack.

DASHBOARD_PROVIDER picks one at startup (see build_dashboard_provider).
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from learnstats.core.config import Settings
from learnstats.models.dashboard import (
    AdminDashboard,
    CourseAnalytics,
    PlatformCourseMetrics,
    StudentDashboard,
    TeacherDashboard,
)
from learnstats.repos.record_store import RecordStore
from learnstats.services import fallbacks
from learnstats.services.admin_dashboard import AdminDashboardAggregator
from learnstats.services.cache import CacheService, InMemoryCacheService
from learnstats.services.course_analytics import CourseAnalyticsAggregator
from learnstats.services.errors import AggregationFailed, StatsError
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.progress_engine import ProgressEngine
from learnstats.services.query_guard import QueryGuard
from learnstats.services.student_dashboard import StudentDashboardAggregator
from learnstats.services.teacher_dashboard import TeacherDashboardAggregator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class DashboardProvider(Protocol):
    def get_student_dashboard(self, user_id: str) -> StudentDashboard: ...
    def get_teacher_dashboard(self, teacher_id: str) -> TeacherDashboard: ...
    def get_admin_dashboard(self) -> AdminDashboard: ...
    def get_platform_course_metrics(self) -> PlatformCourseMetrics: ...
    def get_course_analytics(self, course_id: str) -> CourseAnalytics: ...


class RealAggregator:
    """Store-backed provider.

    ActorNotFound and CourseNotFound propagate unchanged.  Any other
    exception raised while aggregating is logged and re-raised as
    AggregationFailed so the HTTP layer can map it to one status.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        guard: QueryGuard | None = None,
        content_index: CourseContentIndex | None = None,
        weekly_goal: int = 300,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        guard = guard or QueryGuard()
        content_index = content_index or CourseContentIndex(store)
        self._student = StudentDashboardAggregator(
            store, guard, content_index, weekly_goal=weekly_goal, clock=clock
        )
        self._teacher = TeacherDashboardAggregator(store, guard, content_index)
        self._admin = AdminDashboardAggregator(store, guard, content_index, clock=clock)
        self._analytics = CourseAnalyticsAggregator(store, guard, clock=clock)

    def get_student_dashboard(self, user_id: str) -> StudentDashboard:
        return _aggregate("student dashboard", self._student.build, user_id)

    def get_teacher_dashboard(self, teacher_id: str) -> TeacherDashboard:
        return _aggregate("teacher dashboard", self._teacher.build, teacher_id)

    def get_admin_dashboard(self) -> AdminDashboard:
        return _aggregate("admin dashboard", self._admin.build)

    def get_platform_course_metrics(self) -> PlatformCourseMetrics:
        return _aggregate("platform course metrics", self._admin.course_metrics)

    def get_course_analytics(self, course_id: str) -> CourseAnalytics:
        return _aggregate("course analytics", self._analytics.build, course_id)


def _aggregate(operation: str, build: Callable[..., T], *args: str) -> T:
    try:
        return build(*args)
    except StatsError:
        raise
    except Exception as e:
        logger.exception("Failed to get %s", operation)
        raise AggregationFailed(f"Failed to get {operation}: {e}") from e


class PlaceholderAggregator:
    """Fixed zero payloads; never touches a store."""

    def __init__(self, *, weekly_goal: int = 300) -> None:
        self._weekly_goal = weekly_goal

    def get_student_dashboard(self, user_id: str) -> StudentDashboard:
        return fallbacks.empty_student_dashboard(self._weekly_goal, source="placeholder")

    def get_teacher_dashboard(self, teacher_id: str) -> TeacherDashboard:
        return fallbacks.empty_teacher_dashboard(source="placeholder")

    def get_admin_dashboard(self) -> AdminDashboard:
        return fallbacks.placeholder_admin_dashboard()

    def get_platform_course_metrics(self) -> PlatformCourseMetrics:
        return PlatformCourseMetrics(source="placeholder")

    def get_course_analytics(self, course_id: str) -> CourseAnalytics:
        return fallbacks.empty_course_analytics(
            course_id, fallbacks.FALLBACK_COURSE_TITLE, source="placeholder"
        )


def build_dashboard_provider(
    settings: Settings,
    store: RecordStore,
    *,
    content_index: CourseContentIndex | None = None,
) -> DashboardProvider:
    if settings.dashboard_provider == "placeholder":
        logger.warning("Serving placeholder dashboards; no statistics are computed")
        return PlaceholderAggregator(weekly_goal=settings.weekly_goal_minutes)
    return RealAggregator(
        store,
        guard=QueryGuard(settings.guard),
        content_index=content_index,
        weekly_goal=settings.weekly_goal_minutes,
    )


@dataclass
class StatsServices:
    """Everything the HTTP layer needs, built once per app instance."""

    store: RecordStore
    dashboards: DashboardProvider
    progress: ProgressEngine
    dashboard_cache: CacheService
    content_index: CourseContentIndex
    dashboard_cache_ttl: int = 60


def build_services(
    settings: Settings,
    store: RecordStore,
    *,
    dashboard_cache: CacheService | None = None,
) -> StatsServices:
    content_index = CourseContentIndex(store)
    return StatsServices(
        store=store,
        dashboards=build_dashboard_provider(settings, store, content_index=content_index),
        progress=ProgressEngine(
            store, fallback_sections_per_course=settings.fallback_sections_per_course
        ),
        dashboard_cache=dashboard_cache or InMemoryCacheService(),
        content_index=content_index,
        dashboard_cache_ttl=settings.dashboard_cache_ttl,
    )
