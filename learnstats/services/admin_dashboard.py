from __future__ import annotations

import datetime
import logging
from collections import Counter, defaultdict
from collections.abc import Callable, Sequence

from learnstats.models.course import Course
from learnstats.models.dashboard import (
    AdminDashboard,
    PlatformCourseMetrics,
    PlatformStats,
    PopularCourse,
    TopPerformingCourse,
    UserBreakdown,
)
from learnstats.models.progress import CourseProgress, PromotionProgress
from learnstats.repos.record_store import RecordStore
from learnstats.services import fallbacks
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.numbers import mean_rounded, percentage
from learnstats.services.query_guard import PLATFORM_PROGRESS_RECORDS, QueryGuard

logger = logging.getLogger(__name__)

ACTIVE_USER_WINDOW = datetime.timedelta(days=30)
TOP_COURSES_LIMIT = 5
# Submissions sampled per course for its average score
SCORE_SAMPLE_LIMIT = 50


class AdminDashboardAggregator:
    def __init__(
        self,
        store: RecordStore,
        guard: QueryGuard,
        content_index: CourseContentIndex,
        *,
        clock: Callable[[], datetime.datetime],
    ) -> None:
        self._store = store
        self._guard = guard
        self._content = content_index
        self._clock = clock

    def build(self) -> AdminDashboard:
        now = self._clock()
        by_role = self._store.count_users_by_role()
        total_users = sum(by_role.values())
        active_users = self._store.count_active_users(now - ACTIVE_USER_WINDOW)
        logger.debug("Admin dashboard  users=%d active=%d", total_users, active_users)

        return AdminDashboard(
            platform_stats=PlatformStats(
                total_users=total_users,
                active_users=active_users,
                total_courses=self._store.count_courses(),
                total_promotions=self._store.count_promotions(),
                total_progress_records=self._store.count_progress_records(),
                total_submissions=self._store.count_submissions(),
                platform_engagement=percentage(active_users, total_users),
            ),
            user_breakdown=UserBreakdown(
                students=by_role.get("student", 0),
                teachers=by_role.get("teacher", 0),
                staff=by_role.get("staff", 0),
                admins=by_role.get("admin", 0),
            ),
            course_metrics=self.course_metrics(),
            system_health=fallbacks.static_system_health(),
        )

    def course_metrics(self) -> PlatformCourseMetrics:
        records = self._store.list_progress_records(
            limit=self._guard.fetch_cap(PLATFORM_PROGRESS_RECORDS)
        )
        if self._guard.exceeds(PLATFORM_PROGRESS_RECORDS, records):
            return fallbacks.fallback_platform_course_metrics()

        courses: dict[str, Course | None] = {}

        def course(course_id: str) -> Course | None:
            if course_id not in courses:
                courses[course_id] = self._store.find_course_by_id(course_id)
            return courses[course_id]

        return PlatformCourseMetrics(
            most_popular_courses=self._most_popular(course),
            top_performing_courses=self._top_performing(records, course),
        )

    def _most_popular(
        self, course: Callable[[str], Course | None]
    ) -> list[PopularCourse]:
        """Courses ranked by the summed roster size of the promotions carrying them."""
        enrollments: Counter[str] = Counter()
        for promotion in self._store.list_promotions():
            for course_id in promotion.course_ids:
                enrollments[course_id] += len(promotion.student_ids)

        ranked = []
        for course_id, count in enrollments.items():
            found = course(course_id)
            if found is None:
                continue
            ranked.append(
                PopularCourse(course_id=course_id, title=found.title, enrollments=count)
            )
        ranked.sort(key=lambda c: (-c.enrollments, c.title))
        return ranked[:TOP_COURSES_LIMIT]

    def _top_performing(
        self,
        records: Sequence[PromotionProgress],
        course: Callable[[str], Course | None],
    ) -> list[TopPerformingCourse]:
        """Courses ranked by completion rate over their progress entries."""
        entries: dict[str, list[CourseProgress]] = defaultdict(list)
        for record in records:
            for entry in record.courses_progress:
                entries[entry.course_id].append(entry)

        rates = []
        for course_id, course_entries in entries.items():
            found = course(course_id)
            if found is None:
                continue
            completed = sum(1 for e in course_entries if e.is_completed)
            rates.append((percentage(completed, len(course_entries)), found))
        rates.sort(key=lambda pair: (-pair[0], pair[1].title))

        return [
            TopPerformingCourse(
                course_id=found.id,
                title=found.title,
                completion_rate=rate,
                average_score=self._average_score(found.id),
            )
            for rate, found in rates[:TOP_COURSES_LIMIT]
        ]

    def _average_score(self, course_id: str) -> int:
        exercise_ids = self._content.exercise_ids_for_course(course_id)
        submissions = self._store.find_submissions_by_exercise_ids(
            exercise_ids, limit=SCORE_SAMPLE_LIMIT
        )
        return mean_rounded(s.score for s in submissions if s.score is not None)
