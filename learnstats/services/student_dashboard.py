from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Callable, Sequence

from learnstats.models.course import Course
from learnstats.models.dashboard import (
    ActivityItem,
    CourseProgressRow,
    LearningStats,
    StudentDashboard,
)
from learnstats.models.progress import CourseProgress
from learnstats.models.submission import ExerciseSubmission
from learnstats.repos.record_store import RecordStore
from learnstats.services import fallbacks
from learnstats.services.achievements import evaluate_achievements
from learnstats.services.errors import StudentNotFound
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.numbers import mean_rounded, round_half_up
from learnstats.services.query_guard import STUDENT_ENROLLMENTS, QueryGuard

logger = logging.getLogger(__name__)

# Most recent submissions considered for exercise statistics
SUBMISSIONS_LIMIT = 20
RECENT_ACTIVITY_LIMIT = 10

# Share of total minutes credited to the current week (estimate)
WEEKLY_SHARE = 0.3
# Streak days credited per hour of study, capped (estimate)
STREAK_CAP_DAYS = 3
# Study pace used for estimated completion dates
STUDY_HOURS_PER_WEEK = 5
DEFAULT_COURSE_HOURS = 60

UNKNOWN_COURSE_TITLE = "Unknown Course"


class StudentDashboardAggregator:
    def __init__(
        self,
        store: RecordStore,
        guard: QueryGuard,
        content_index: CourseContentIndex,
        *,
        weekly_goal: int,
        clock: Callable[[], datetime.datetime],
    ) -> None:
        self._store = store
        self._guard = guard
        self._content = content_index
        self._weekly_goal = weekly_goal
        self._clock = clock

    def build(self, user_id: str) -> StudentDashboard:
        student = self._store.find_user_by_id(user_id)
        if student is None:
            raise StudentNotFound(user_id)

        if not student.current_promotion_id:
            logger.info("Student %s has no promotion; returning empty dashboard", user_id)
            return fallbacks.empty_student_dashboard(self._weekly_goal)

        record = self._store.find_or_create_progress(student.current_promotion_id, user_id)
        entries = record.courses_progress
        if self._guard.exceeds(STUDENT_ENROLLMENTS, entries):
            return fallbacks.fallback_student_dashboard(self._weekly_goal)
        if not entries:
            return fallbacks.empty_student_dashboard(self._weekly_goal)

        now = self._clock()
        courses = {e.course_id: self._store.find_course_by_id(e.course_id) for e in entries}
        submissions = self._store.find_submissions_by_student(
            user_id, limit=SUBMISSIONS_LIMIT
        )

        stats = self._learning_stats(entries, submissions)
        return StudentDashboard(
            learning_stats=stats,
            course_progress=[
                _course_row(entry, courses.get(entry.course_id), now) for entry in entries
            ],
            recent_activity=self._recent_activity(entries, courses, submissions),
            achievements=evaluate_achievements(stats, now),
        )

    # ------------------------------------------------------------------

    def _learning_stats(
        self,
        entries: Sequence[CourseProgress],
        submissions: Sequence[ExerciseSubmission],
    ) -> LearningStats:
        total_time = sum(e.time_spent for e in entries)

        attempted = {s.exercise_id for s in submissions}
        completed = {s.exercise_id for s in submissions if s.result and s.result.is_correct}
        for entry in entries:
            attempted |= entry.completed_exercises
            completed |= entry.completed_exercises

        scores = [s.score for s in submissions if s.score is not None]
        if not scores:
            scores = [e.average_score for e in entries if e.average_score is not None]

        return LearningStats(
            total_courses=len(entries),
            active_courses=sum(1 for e in entries if e.is_in_progress),
            completed_courses=sum(1 for e in entries if e.is_completed),
            total_time_spent=total_time,
            average_progress=mean_rounded(e.progress_percentage for e in entries),
            weekly_goal=self._weekly_goal,
            weekly_progress=min(round_half_up(WEEKLY_SHARE * total_time), self._weekly_goal),
            current_streak=min(total_time // 60, STREAK_CAP_DAYS),
            total_exercises=len(attempted),
            completed_exercises=len(completed),
            average_score=mean_rounded(scores),
        )

    def _recent_activity(
        self,
        entries: Sequence[CourseProgress],
        courses: dict[str, Course | None],
        submissions: Sequence[ExerciseSubmission],
    ) -> list[ActivityItem]:
        items: list[ActivityItem] = []
        for submission in submissions[:RECENT_ACTIVITY_LIMIT]:
            exercise = self._content.find_exercise(
                submission.exercise_id, submission.course_id
            )
            course_id = submission.course_id or exercise.course_id
            course = courses.get(course_id) if course_id else None
            if course is None and course_id:
                course = self._store.find_course_by_id(course_id)
            items.append(
                ActivityItem(
                    id=submission.id,
                    type="exercise",
                    course_title=course.title if course else UNKNOWN_COURSE_TITLE,
                    activity_title=exercise.title,
                    completed_at=submission.submitted_at,
                    score=submission.score,
                )
            )

        for entry in entries:
            if entry.completed_at is None:
                continue
            course = courses.get(entry.course_id)
            title = course.title if course else UNKNOWN_COURSE_TITLE
            items.append(
                ActivityItem(
                    id=f"{entry.course_id}:complete",
                    type="course_complete",
                    course_title=title,
                    activity_title=f"Completed {title}",
                    completed_at=entry.completed_at,
                )
            )

        items.sort(key=_activity_time, reverse=True)
        return items[:RECENT_ACTIVITY_LIMIT]


_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.UTC)


def _activity_time(item: ActivityItem) -> datetime.datetime:
    return item.completed_at or _EPOCH


def _course_row(
    entry: CourseProgress, course: Course | None, now: datetime.datetime
) -> CourseProgressRow:
    hours = course.estimated_duration_hours if course else DEFAULT_COURSE_HOURS
    remaining_hours = hours * (100 - entry.progress_percentage) / 100
    weeks_remaining = math.ceil(remaining_hours / STUDY_HOURS_PER_WEEK)
    return CourseProgressRow(
        course_id=entry.course_id,
        course_title=course.title if course else UNKNOWN_COURSE_TITLE,
        progress=entry.progress_percentage,
        time_spent=entry.time_spent,
        last_accessed=entry.last_activity_at or entry.started_at,
        enrollment_status=entry.enrollment_status,  # type: ignore[arg-type]
        instructor=(course.instructor_name or "Unknown") if course else "Unknown",
        estimated_completion=(now + datetime.timedelta(weeks=weeks_remaining)).date(),
    )
