from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from learnstats.models.course import Course
from learnstats.models.dashboard import (
    CourseMetricRow,
    StudentProgressRow,
    SubmissionActivity,
    TeacherDashboard,
    TeachingStats,
)
from learnstats.models.progress import CourseProgress
from learnstats.models.submission import ExerciseSubmission
from learnstats.repos.record_store import RecordStore
from learnstats.services import fallbacks
from learnstats.services.errors import TeacherNotFound
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.numbers import mean_rounded
from learnstats.services.query_guard import (
    TEACHER_COURSES,
    TEACHER_ENROLLMENTS,
    QueryGuard,
)

logger = logging.getLogger(__name__)

# Exercise id collection for submission lookups
EXERCISE_COURSES_LIMIT = 5
EXERCISES_PER_COURSE_LIMIT = 10
EXERCISES_TOTAL_LIMIT = 30

SUBMISSIONS_LIMIT = 50
RECENT_SUBMISSIONS_LIMIT = 20
STUDENT_PROGRESS_LIMIT = 20

UNKNOWN_STUDENT_NAME = "Unknown Student"

_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.UTC)


@dataclass(frozen=True, slots=True)
class _Enrollment:
    """One student's progress entry on one of the teacher's courses."""

    student_id: str
    entry: CourseProgress


class TeacherDashboardAggregator:
    def __init__(
        self,
        store: RecordStore,
        guard: QueryGuard,
        content_index: CourseContentIndex,
    ) -> None:
        self._store = store
        self._guard = guard
        self._content = content_index

    def build(self, teacher_id: str) -> TeacherDashboard:
        teacher = self._store.find_user_by_id(teacher_id)
        if teacher is None:
            raise TeacherNotFound(teacher_id)

        courses = self._store.find_courses_by_instructor_or_collaborator(
            teacher_id, limit=self._guard.fetch_cap(TEACHER_COURSES)
        )
        if self._guard.exceeds(TEACHER_COURSES, courses):
            return fallbacks.fallback_teacher_dashboard()
        if not courses:
            logger.info("Teacher %s has no courses; returning empty dashboard", teacher_id)
            return fallbacks.empty_teacher_dashboard()

        enrollments, roster = self._enrollments(courses)
        if self._guard.exceeds(TEACHER_ENROLLMENTS, enrollments):
            return fallbacks.fallback_teacher_dashboard()

        exercise_courses = self._exercise_courses(courses)
        submissions = self._store.find_submissions_by_exercise_ids(
            exercise_courses.keys(), limit=SUBMISSIONS_LIMIT
        )
        names = _NameCache(self._store)

        by_course: dict[str, list[CourseProgress]] = {c.id: [] for c in courses}
        for enrollment in enrollments:
            by_course[enrollment.entry.course_id].append(enrollment.entry)

        active_students = {
            e.student_id for e in enrollments if e.entry.enrollment_status == "active"
        }

        return TeacherDashboard(
            teaching_stats=TeachingStats(
                total_courses=len(courses),
                active_courses=sum(1 for c in courses if c.status == "published"),
                draft_courses=sum(1 for c in courses if c.status == "draft"),
                total_students=len(roster | {e.student_id for e in enrollments}),
                active_students=len(active_students),
                average_progress=mean_rounded(
                    e.entry.progress_percentage for e in enrollments
                ),
                total_submissions=len(submissions),
                pending_grading=sum(1 for s in submissions if s.needs_grading),
            ),
            course_metrics=[
                _course_metric(
                    course,
                    by_course[course.id],
                    [
                        s
                        for s in submissions
                        if exercise_courses.get(s.exercise_id) == course.id
                    ],
                )
                for course in courses
            ],
            recent_activity=self._recent_submissions(
                submissions, exercise_courses, courses, names
            ),
            student_progress=_student_progress(enrollments, courses, names),
        )

    # ------------------------------------------------------------------

    def _enrollments(
        self, courses: Sequence[Course]
    ) -> tuple[list[_Enrollment], set[str]]:
        """Progress entries on ``courses`` plus the students of their promotions.

        Stops collecting one past the enrollment threshold.
        """
        cap = self._guard.fetch_cap(TEACHER_ENROLLMENTS)
        course_ids = {c.id for c in courses}
        seen_promotions: set[str] = set()
        roster: set[str] = set()
        enrollments: list[_Enrollment] = []

        for course in courses:
            for promotion in self._store.find_promotions_containing_course(course.id):
                if promotion.id in seen_promotions:
                    continue
                seen_promotions.add(promotion.id)
                roster.update(
                    u.id for u in self._store.find_users_by_promotion(promotion.id)
                )
                for record in self._store.find_progress_by_promotion(promotion.id):
                    for entry in record.courses_progress:
                        if entry.course_id not in course_ids:
                            continue
                        enrollments.append(_Enrollment(record.student_id, entry))
                        if len(enrollments) >= cap:
                            return enrollments, roster
        return enrollments, roster

    def _exercise_courses(self, courses: Sequence[Course]) -> dict[str, str]:
        """Exercise id → course id for the first few courses, capped in total."""
        found: dict[str, str] = {}
        for course in courses[:EXERCISE_COURSES_LIMIT]:
            ids = self._content.exercise_ids_for_course(course.id)
            for exercise_id in ids[:EXERCISES_PER_COURSE_LIMIT]:
                found.setdefault(exercise_id, course.id)
                if len(found) >= EXERCISES_TOTAL_LIMIT:
                    return found
        return found

    def _recent_submissions(
        self,
        submissions: Sequence[ExerciseSubmission],
        exercise_courses: dict[str, str],
        courses: Sequence[Course],
        names: _NameCache,
    ) -> list[SubmissionActivity]:
        titles = {c.id: c.title for c in courses}
        activity = []
        for submission in submissions[:RECENT_SUBMISSIONS_LIMIT]:
            course_id = exercise_courses.get(submission.exercise_id, submission.course_id)
            exercise = self._content.find_exercise(submission.exercise_id, course_id)
            activity.append(
                SubmissionActivity(
                    submission_id=submission.id,
                    student_id=submission.student_id,
                    student_name=names.get(submission.student_id),
                    course_title=titles.get(course_id or "", "Unknown Course"),
                    exercise_title=exercise.title,
                    submitted_at=submission.submitted_at,
                    needs_grading=submission.needs_grading,
                )
            )
        return activity


class _NameCache:
    """Per-request memo of student display names."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._names: dict[str, str] = {}

    def get(self, user_id: str) -> str:
        if user_id not in self._names:
            user = self._store.find_user_by_id(user_id)
            self._names[user_id] = user.name if user and user.name else UNKNOWN_STUDENT_NAME
        return self._names[user_id]


def _course_metric(
    course: Course,
    entries: Sequence[CourseProgress],
    submissions: Sequence[ExerciseSubmission],
) -> CourseMetricRow:
    activity = [e.last_activity_at or e.started_at for e in entries]
    known = [t for t in activity if t is not None]
    return CourseMetricRow(
        course_id=course.id,
        course_title=course.title,
        enrolled_students=len(entries),
        completed_students=sum(1 for e in entries if e.is_completed),
        average_progress=mean_rounded(e.progress_percentage for e in entries),
        average_score=mean_rounded(s.score for s in submissions if s.score is not None),
        last_activity=max(known) if known else course.updated_at,
    )


def _student_progress(
    enrollments: Sequence[_Enrollment],
    courses: Sequence[Course],
    names: _NameCache,
) -> list[StudentProgressRow]:
    titles = {c.id: c.title for c in courses}
    ordered = sorted(
        enrollments,
        key=lambda e: e.entry.last_activity_at or _EPOCH,
        reverse=True,
    )
    return [
        StudentProgressRow(
            student_id=e.student_id,
            student_name=names.get(e.student_id),
            course_id=e.entry.course_id,
            course_title=titles[e.entry.course_id],
            progress=e.entry.progress_percentage,
            last_activity_at=e.entry.last_activity_at,
        )
        for e in ordered[:STUDENT_PROGRESS_LIMIT]
    ]
