from __future__ import annotations

import datetime

import pytest

from learnstats.core.config import GuardThresholds
from learnstats.repos.record_store import InMemoryRecordStore
from learnstats.services.errors import TeacherNotFound
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.query_guard import QueryGuard
from learnstats.services.teacher_dashboard import TeacherDashboardAggregator
from tests.conftest import (
    add_course,
    add_promotion,
    add_submission,
    add_user,
    set_progress,
    utcnow,
)


def _aggregator(
    store: InMemoryRecordStore, thresholds: GuardThresholds | None = None
) -> TeacherDashboardAggregator:
    return TeacherDashboardAggregator(
        store, QueryGuard(thresholds), CourseContentIndex(store)
    )


@pytest.fixture
def classroom(store: InMemoryRecordStore) -> InMemoryRecordStore:
    """t1 teaches c1 (published) and co-teaches c2 (draft)."""
    now = utcnow()
    add_user(store, "t1", "teacher", name="Grace")
    add_course(
        store, "c1", title="Python", instructor_id="t1", exercises=("e1", "e2")
    )
    add_course(
        store, "c2", title="SQL", status="draft", instructor_id="t9",
        collaborator_ids=("t1",),
    )
    add_course(store, "other", instructor_id="t9")

    add_promotion(store, "p1", ("c1",), ("s1", "s2"))
    add_promotion(store, "p2", ("c2",), ("s3",))
    add_user(store, "s1", name="Alice", promotion_id="p1")
    add_user(store, "s2", name="Bob", promotion_id="p1")
    add_user(store, "s3", name="Carol", promotion_id="p2")

    set_progress(
        store, "p1", "s1", "c1", 100,
        last_activity_at=now - datetime.timedelta(days=2),
    )
    set_progress(
        store, "p1", "s2", "c1", 50,
        last_activity_at=now - datetime.timedelta(hours=1),
    )

    add_submission(store, "s1", "e1", "c1", score=80, is_correct=True)
    add_submission(store, "s2", "e2", "c1", graded=False)
    return store


def test_teaching_stats(classroom: InMemoryRecordStore) -> None:
    dashboard = _aggregator(classroom).build("t1")
    stats = dashboard.teaching_stats

    assert dashboard.source == "computed"
    assert stats.total_courses == 2
    assert stats.active_courses == 1
    assert stats.draft_courses == 1
    # Roster of every promotion holding one of the courses
    assert stats.total_students == 3
    # s1 has completed; s2 is still going
    assert stats.active_students == 1
    assert stats.average_progress == 75
    assert stats.total_submissions == 2
    assert stats.pending_grading == 1


def test_course_metrics(classroom: InMemoryRecordStore) -> None:
    metrics = {m.course_id: m for m in _aggregator(classroom).build("t1").course_metrics}

    python = metrics["c1"]
    assert python.enrolled_students == 2
    assert python.completed_students == 1
    assert python.average_progress == 75
    assert python.average_score == 80

    sql = metrics["c2"]
    assert sql.enrolled_students == 0
    assert sql.average_progress == 0
    assert sql.last_activity is not None


def test_recent_activity_names_students_and_exercises(
    classroom: InMemoryRecordStore,
) -> None:
    activity = _aggregator(classroom).build("t1").recent_activity
    by_student = {a.student_name: a for a in activity}

    assert set(by_student) == {"Alice", "Bob"}
    assert by_student["Alice"].exercise_title == "Exercise e1"
    assert by_student["Alice"].course_title == "Python"
    assert by_student["Alice"].needs_grading is False
    assert by_student["Bob"].needs_grading is True


def test_student_progress_most_recent_first(classroom: InMemoryRecordStore) -> None:
    rows = _aggregator(classroom).build("t1").student_progress
    assert [r.student_name for r in rows] == ["Bob", "Alice"]
    assert rows[0].course_title == "Python"
    assert rows[0].progress == 50


def test_unknown_student_name(classroom: InMemoryRecordStore) -> None:
    set_progress(classroom, "p1", "nobody", "c1", 10)
    rows = _aggregator(classroom).build("t1").student_progress
    names = {r.student_id: r.student_name for r in rows}
    assert names["nobody"] == "Unknown Student"


def test_teacher_without_courses_gets_empty_dashboard(
    store: InMemoryRecordStore,
) -> None:
    add_user(store, "t1", "teacher")
    dashboard = _aggregator(store).build("t1")
    assert dashboard.source == "empty"
    assert dashboard.teaching_stats.total_courses == 0
    assert dashboard.course_metrics == []


def test_too_many_courses_returns_fallback(classroom: InMemoryRecordStore) -> None:
    dashboard = _aggregator(classroom, GuardThresholds(teacher_courses=1)).build("t1")
    assert dashboard.source == "fallback"
    assert dashboard.teaching_stats.total_courses == 1


def test_too_many_enrollments_returns_fallback(classroom: InMemoryRecordStore) -> None:
    dashboard = _aggregator(classroom, GuardThresholds(teacher_enrollments=1)).build("t1")
    assert dashboard.source == "fallback"


def test_unknown_teacher_raises(store: InMemoryRecordStore) -> None:
    with pytest.raises(TeacherNotFound):
        _aggregator(store).build("ghost")
