"""Fixed payloads used instead of a real computation.

Fallbacks are what the Query Guard substitutes on overflow: a minimal,
internally consistent result (one course, one activity, one
achievement).  Empty payloads are the zero-state for actors with no
activity.  Placeholder payloads back the PlaceholderAggregator.

Nothing here reads the record store or uses randomness.
"""

from __future__ import annotations

import datetime

from learnstats.models.dashboard import (
    Achievement,
    ActivityItem,
    AdminDashboard,
    CourseAnalytics,
    CourseMetricRow,
    CourseOverview,
    CourseProgressRow,
    EngagementMetric,
    EnrollmentStats,
    LearningStats,
    PayloadSource,
    PlatformCourseMetrics,
    PlatformStats,
    ProgressBucket,
    ServiceHealth,
    StudentDashboard,
    StudentProgressRow,
    SubmissionActivity,
    SystemHealth,
    TeacherDashboard,
    TeachingStats,
    UserBreakdown,
)
from learnstats.services.trends import performance_metrics

FALLBACK_COURSE_ID = "fallback-course"
FALLBACK_COURSE_TITLE = "Sample Course"

PROGRESS_RANGES = ("0-25%", "26-50%", "51-75%", "76-100%")

KNOWN_SERVICES = (
    "auth-service",
    "user-service",
    "course-service",
    "news-service",
    "planning-service",
    "statistics-service",
)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def empty_distribution() -> list[ProgressBucket]:
    return [ProgressBucket(range=r, count=0) for r in PROGRESS_RANGES]


def static_system_health() -> SystemHealth:
    return SystemHealth(
        database="healthy",
        services=[ServiceHealth(name=name, status="healthy") for name in KNOWN_SERVICES],
    )


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------


def empty_student_dashboard(
    weekly_goal: int, source: PayloadSource = "empty"
) -> StudentDashboard:
    return StudentDashboard(
        learning_stats=LearningStats(weekly_goal=weekly_goal),
        source=source,
    )


def fallback_student_dashboard(weekly_goal: int) -> StudentDashboard:
    now = _now()
    return StudentDashboard(
        learning_stats=LearningStats(
            total_courses=1,
            active_courses=1,
            completed_courses=0,
            total_time_spent=30,
            average_progress=50,
            weekly_goal=weekly_goal,
            weekly_progress=min(100, weekly_goal),
            current_streak=1,
            total_exercises=1,
            completed_exercises=1,
            average_score=75,
        ),
        course_progress=[
            CourseProgressRow(
                course_id=FALLBACK_COURSE_ID,
                course_title=FALLBACK_COURSE_TITLE,
                progress=50,
                time_spent=30,
                last_accessed=now,
                enrollment_status="active",
                instructor="Unknown",
                estimated_completion=(now + datetime.timedelta(days=7)).date(),
            )
        ],
        recent_activity=[
            ActivityItem(
                id="fallback-activity",
                type="exercise",
                course_title=FALLBACK_COURSE_TITLE,
                activity_title="Sample Exercise",
                completed_at=now,
                score=75,
            )
        ],
        achievements=[
            Achievement(
                id="fallback-achievement",
                title="Getting Started",
                description="Started learning journey",
                icon_name="trophy",
                category="progress",
                unlocked_at=now,
            )
        ],
        source="fallback",
    )


# ---------------------------------------------------------------------------
# Teacher
# ---------------------------------------------------------------------------


def empty_teacher_dashboard(source: PayloadSource = "empty") -> TeacherDashboard:
    return TeacherDashboard(teaching_stats=TeachingStats(), source=source)


def fallback_teacher_dashboard() -> TeacherDashboard:
    now = _now()
    return TeacherDashboard(
        teaching_stats=TeachingStats(
            total_courses=1,
            active_courses=1,
            draft_courses=0,
            total_students=1,
            active_students=1,
            average_progress=50,
            total_submissions=1,
            pending_grading=0,
        ),
        course_metrics=[
            CourseMetricRow(
                course_id=FALLBACK_COURSE_ID,
                course_title=FALLBACK_COURSE_TITLE,
                enrolled_students=1,
                completed_students=0,
                average_progress=50,
                average_score=75,
                last_activity=now,
            )
        ],
        recent_activity=[
            SubmissionActivity(
                submission_id="fallback-submission",
                student_id="fallback-student",
                student_name="Sample Student",
                course_title=FALLBACK_COURSE_TITLE,
                exercise_title="Sample Exercise",
                submitted_at=now,
                needs_grading=False,
            )
        ],
        student_progress=[
            StudentProgressRow(
                student_id="fallback-student",
                student_name="Sample Student",
                course_id=FALLBACK_COURSE_ID,
                course_title=FALLBACK_COURSE_TITLE,
                progress=50,
                last_activity_at=now,
            )
        ],
        source="fallback",
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def fallback_platform_course_metrics() -> PlatformCourseMetrics:
    return PlatformCourseMetrics(source="fallback")


def placeholder_admin_dashboard() -> AdminDashboard:
    return AdminDashboard(
        platform_stats=PlatformStats(),
        user_breakdown=UserBreakdown(),
        course_metrics=PlatformCourseMetrics(source="placeholder"),
        system_health=static_system_health(),
        source="placeholder",
    )


# ---------------------------------------------------------------------------
# Course analytics
# ---------------------------------------------------------------------------


def empty_course_analytics(
    course_id: str,
    course_title: str,
    status: str = "draft",
    source: PayloadSource = "computed",
) -> CourseAnalytics:
    return CourseAnalytics(
        overview=CourseOverview(
            course_id=course_id, course_title=course_title, status=status
        ),
        enrollment_stats=EnrollmentStats(),
        progress_distribution=empty_distribution(),
        performance_metrics=performance_metrics(
            average_progress=0,
            completion_rate=0,
            average_score=0,
            dropout_rate=0,
            has_students=False,
        ),
        engagement_metrics=[
            EngagementMetric(metric="Active Students (7d)", value=0),
            EngagementMetric(metric="Average Time Spent (min)", value=0),
            EngagementMetric(metric="Total Time Spent (min)", value=0),
        ],
        source=source,
    )


def fallback_course_analytics(
    course_id: str, course_title: str, status: str = "draft"
) -> CourseAnalytics:
    """One active student at 50%; distribution and totals agree."""
    distribution = empty_distribution()
    distribution[1] = ProgressBucket(range=PROGRESS_RANGES[1], count=1)
    return CourseAnalytics(
        overview=CourseOverview(
            course_id=course_id,
            course_title=course_title,
            status=status,
            total_students=1,
            active_students=1,
            average_progress=50,
            average_time_spent=30,
            total_time_spent=30,
        ),
        enrollment_stats=EnrollmentStats(total_enrollments=1, active_enrollments=1),
        progress_distribution=distribution,
        performance_metrics=performance_metrics(
            average_progress=50,
            completion_rate=0,
            average_score=75,
            dropout_rate=0,
            has_students=True,
        ),
        engagement_metrics=[
            EngagementMetric(metric="Active Students (7d)", value=1),
            EngagementMetric(metric="Average Time Spent (min)", value=30),
            EngagementMetric(metric="Total Time Spent (min)", value=30),
        ],
        source="fallback",
    )
