"""Result value objects returned by the dashboard and analytics engine.

Built fresh per request and never persisted. Field names are snake_case
in Python and serialise with camelCase aliases (``learningStats``,
``courseProgress``...), which is the contract the HTTP layer returns.

``source`` tells the caller how a payload was produced:
  computed    aggregated from the record store
  empty       zero-state for an actor with no activity
  fallback    Query Guard substitution; the numbers are fixed values
  placeholder PlaceholderAggregator output; no store was consulted
"""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

PayloadSource = Literal["computed", "empty", "fallback", "placeholder"]


class _Out(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------


class LearningStats(_Out):
    total_courses: int = 0
    active_courses: int = 0
    completed_courses: int = 0
    total_time_spent: int = 0  # minutes
    average_progress: int = 0
    weekly_goal: int = 0  # minutes
    weekly_progress: int = 0  # minutes, estimated
    current_streak: int = 0  # days, estimated
    total_exercises: int = 0
    completed_exercises: int = 0
    average_score: int = 0
    # Fields above derived from coarse heuristics rather than measurements
    estimated_fields: list[str] = ["weeklyProgress", "currentStreak"]


class CourseProgressRow(_Out):
    course_id: str
    course_title: str
    progress: int
    time_spent: int
    last_accessed: datetime.datetime | None = None
    enrollment_status: Literal["active", "completed", "dropped"] = "active"
    instructor: str = "Unknown"
    estimated_completion: datetime.date | None = None


class ActivityItem(_Out):
    id: str
    type: Literal["exercise", "section", "course_complete"]
    course_title: str
    activity_title: str
    completed_at: datetime.datetime | None = None
    score: float | None = None


class Achievement(_Out):
    id: str
    title: str
    description: str
    icon_name: str
    category: Literal["progress", "streak", "score", "completion"]
    # Synthesised when the dashboard is read, not when the badge was earned
    unlocked_at: datetime.datetime


class StudentDashboard(_Out):
    learning_stats: LearningStats
    course_progress: list[CourseProgressRow] = []
    recent_activity: list[ActivityItem] = []
    achievements: list[Achievement] = []
    source: PayloadSource = "computed"


# ---------------------------------------------------------------------------
# Teacher
# ---------------------------------------------------------------------------


class TeachingStats(_Out):
    total_courses: int = 0
    active_courses: int = 0
    draft_courses: int = 0
    total_students: int = 0
    active_students: int = 0
    average_progress: int = 0
    total_submissions: int = 0
    pending_grading: int = 0


class CourseMetricRow(_Out):
    course_id: str
    course_title: str
    enrolled_students: int = 0
    completed_students: int = 0
    average_progress: int = 0
    average_score: int = 0
    last_activity: datetime.datetime | None = None


class SubmissionActivity(_Out):
    submission_id: str
    student_id: str
    student_name: str
    course_title: str
    exercise_title: str
    submitted_at: datetime.datetime
    needs_grading: bool


class StudentProgressRow(_Out):
    student_id: str
    student_name: str
    course_id: str
    course_title: str
    progress: int
    last_activity_at: datetime.datetime | None = None


class TeacherDashboard(_Out):
    teaching_stats: TeachingStats
    course_metrics: list[CourseMetricRow] = []
    recent_activity: list[SubmissionActivity] = []
    student_progress: list[StudentProgressRow] = []
    source: PayloadSource = "computed"


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class PlatformStats(_Out):
    total_users: int = 0
    active_users: int = 0
    total_courses: int = 0
    total_promotions: int = 0
    total_progress_records: int = 0
    total_submissions: int = 0
    platform_engagement: int = 0


class UserBreakdown(_Out):
    students: int = 0
    teachers: int = 0
    staff: int = 0
    admins: int = 0


class PopularCourse(_Out):
    course_id: str
    title: str
    enrollments: int


class TopPerformingCourse(_Out):
    course_id: str
    title: str
    completion_rate: int
    average_score: int


class PlatformCourseMetrics(_Out):
    most_popular_courses: list[PopularCourse] = []
    top_performing_courses: list[TopPerformingCourse] = []
    source: PayloadSource = "computed"


class ServiceHealth(_Out):
    name: str
    status: Literal["healthy", "warning", "error"]


class SystemHealth(_Out):
    database: Literal["healthy", "warning", "error"] = "healthy"
    services: list[ServiceHealth] = []
    # No probing happens; these entries are a fixed listing
    static: bool = True


class AdminDashboard(_Out):
    platform_stats: PlatformStats
    user_breakdown: UserBreakdown
    course_metrics: PlatformCourseMetrics
    system_health: SystemHealth
    source: PayloadSource = "computed"


# ---------------------------------------------------------------------------
# Course analytics
# ---------------------------------------------------------------------------


class CourseOverview(_Out):
    course_id: str
    course_title: str
    status: str = "draft"
    total_students: int = 0
    active_students: int = 0
    completed_students: int = 0
    dropped_students: int = 0
    average_progress: int = 0
    completion_rate: int = 0
    dropout_rate: int = 0
    average_time_spent: int = 0
    total_time_spent: int = 0


class EnrollmentStats(_Out):
    total_enrollments: int = 0
    active_enrollments: int = 0
    completed_enrollments: int = 0
    dropped_enrollments: int = 0
    dropout_rate: int = 0


class ProgressBucket(_Out):
    range: str
    count: int = 0


class PerformanceMetric(_Out):
    metric: str
    value: int
    trend: Literal["up", "down", "stable"]
    # Trend compares against a fixed target; it is not a time series
    estimated: bool = True


class EngagementMetric(_Out):
    metric: str
    value: int


class CourseAnalytics(_Out):
    overview: CourseOverview
    enrollment_stats: EnrollmentStats
    progress_distribution: list[ProgressBucket]
    performance_metrics: list[PerformanceMetric] = []
    engagement_metrics: list[EngagementMetric] = []
    source: PayloadSource = "computed"


# ---------------------------------------------------------------------------
# Progress updates
# ---------------------------------------------------------------------------


class ProgressSnapshot(_Out):
    progress_percentage: int
    time_spent: int
    completed_sections: int
    completed_exercises: int
    last_activity_at: datetime.datetime


class ProgressUpdateError(_Out):
    code: str
    kind: Literal["not_found", "not_enrolled", "invalid_input"]
    message: str


class ProgressUpdateResult(_Out):
    success: bool
    data: ProgressSnapshot | None = None
    error: ProgressUpdateError | None = None
