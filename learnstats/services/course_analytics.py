"""Per-course analytics over every progress entry recorded for a course.

Entries are gathered through the promotions that carry the course, so a
student counts once per promotion they follow it in.  Status counts use
``CourseProgress.enrollment_status`` (completed wins over dropped), which
keeps active + completed + dropped equal to the total.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterable, Sequence

from learnstats.models.dashboard import (
    CourseAnalytics,
    CourseOverview,
    EngagementMetric,
    EnrollmentStats,
    ProgressBucket,
)
from learnstats.models.progress import CourseProgress
from learnstats.repos.record_store import RecordStore
from learnstats.services import fallbacks
from learnstats.services.errors import CourseNotFound
from learnstats.services.numbers import mean_rounded, percentage
from learnstats.services.query_guard import COURSE_ENROLLMENTS, QueryGuard
from learnstats.services.trends import performance_metrics

logger = logging.getLogger(__name__)

ENGAGEMENT_WINDOW = datetime.timedelta(days=7)

# Inclusive upper bound of each bucket in PROGRESS_RANGES
_BUCKET_UPPER_BOUNDS = (25, 50, 75, 100)


def bucket_index(progress: int) -> int:
    for index, upper in enumerate(_BUCKET_UPPER_BOUNDS):
        if progress <= upper:
            return index
    return len(_BUCKET_UPPER_BOUNDS) - 1


def progress_distribution(values: Iterable[int]) -> list[ProgressBucket]:
    """Count ``values`` into the 0-25 / 26-50 / 51-75 / 76-100 buckets."""
    counts = [0] * len(fallbacks.PROGRESS_RANGES)
    for value in values:
        counts[bucket_index(value)] += 1
    return [
        ProgressBucket(range=label, count=count)
        for label, count in zip(fallbacks.PROGRESS_RANGES, counts, strict=True)
    ]


class CourseAnalyticsAggregator:
    def __init__(
        self,
        store: RecordStore,
        guard: QueryGuard,
        *,
        clock: Callable[[], datetime.datetime],
    ) -> None:
        self._store = store
        self._guard = guard
        self._clock = clock

    def build(self, course_id: str) -> CourseAnalytics:
        course = self._store.find_course_by_id(course_id)
        if course is None:
            raise CourseNotFound(course_id)

        entries = self._entries(course_id)
        if self._guard.exceeds(COURSE_ENROLLMENTS, entries):
            return fallbacks.fallback_course_analytics(course.id, course.title, course.status)
        if not entries:
            return fallbacks.empty_course_analytics(course.id, course.title, course.status)

        return self._analytics(course.id, course.title, course.status, entries)

    def _entries(self, course_id: str) -> list[CourseProgress]:
        cap = self._guard.fetch_cap(COURSE_ENROLLMENTS)
        entries: list[CourseProgress] = []
        for promotion in self._store.find_promotions_containing_course(course_id):
            for record in self._store.find_progress_by_promotion(promotion.id):
                entry = record.course(course_id)
                if entry is None:
                    continue
                entries.append(entry)
                if len(entries) >= cap:
                    return entries
        return entries

    def _analytics(
        self,
        course_id: str,
        title: str,
        status: str,
        entries: Sequence[CourseProgress],
    ) -> CourseAnalytics:
        total = len(entries)
        statuses = [e.enrollment_status for e in entries]
        active = statuses.count("active")
        completed = statuses.count("completed")
        dropped = statuses.count("dropped")

        average_progress = mean_rounded(e.progress_percentage for e in entries)
        completion_rate = percentage(completed, total)
        dropout_rate = percentage(dropped, total)
        total_time = sum(e.time_spent for e in entries)
        average_time = mean_rounded(e.time_spent for e in entries)
        average_score = mean_rounded(
            e.average_score for e in entries if e.average_score is not None
        )

        since = self._clock() - ENGAGEMENT_WINDOW
        recently_active = sum(
            1
            for e in entries
            if e.last_activity_at is not None and e.last_activity_at >= since
        )

        logger.debug(
            "Course analytics  course=%s enrollments=%d completion=%d%% dropout=%d%%",
            course_id,
            total,
            completion_rate,
            dropout_rate,
        )
        return CourseAnalytics(
            overview=CourseOverview(
                course_id=course_id,
                course_title=title,
                status=status,
                total_students=total,
                active_students=active,
                completed_students=completed,
                dropped_students=dropped,
                average_progress=average_progress,
                completion_rate=completion_rate,
                dropout_rate=dropout_rate,
                average_time_spent=average_time,
                total_time_spent=total_time,
            ),
            enrollment_stats=EnrollmentStats(
                total_enrollments=total,
                active_enrollments=active,
                completed_enrollments=completed,
                dropped_enrollments=dropped,
                dropout_rate=dropout_rate,
            ),
            progress_distribution=progress_distribution(
                e.progress_percentage for e in entries
            ),
            performance_metrics=performance_metrics(
                average_progress=average_progress,
                completion_rate=completion_rate,
                average_score=average_score,
                dropout_rate=dropout_rate,
                has_students=True,
            ),
            engagement_metrics=[
                EngagementMetric(metric="Active Students (7d)", value=recently_active),
                EngagementMetric(metric="Average Time Spent (min)", value=average_time),
                EngagementMetric(metric="Total Time Spent (min)", value=total_time),
            ],
        )
