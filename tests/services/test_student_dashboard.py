from __future__ import annotations

import datetime

import pytest

from learnstats.repos.record_store import InMemoryRecordStore
from learnstats.services.errors import StudentNotFound
from learnstats.services.lookup_cache import CourseContentIndex
from learnstats.services.query_guard import QueryGuard
from learnstats.services.student_dashboard import StudentDashboardAggregator
from tests.conftest import add_course, add_promotion, add_submission, add_user, set_progress

NOW = datetime.datetime(2025, 5, 20, 8, 0, tzinfo=datetime.UTC)


def _aggregator(store: InMemoryRecordStore) -> StudentDashboardAggregator:
    return StudentDashboardAggregator(
        store,
        QueryGuard(),
        CourseContentIndex(store),
        weekly_goal=300,
        clock=lambda: NOW,
    )


@pytest.fixture
def two_courses(store: InMemoryRecordStore) -> InMemoryRecordStore:
    add_course(store, "c1", title="Python", instructor_name="Ada", exercises=("e1", "e2"))
    add_course(store, "c2", title="SQL")
    add_promotion(store, "p1", ("c1", "c2"), ("s1",))
    add_user(store, "s1", promotion_id="p1")
    set_progress(store, "p1", "s1", "c1", 80, time_spent=120)
    set_progress(
        store,
        "p1",
        "s1",
        "c2",
        100,
        time_spent=60,
        completed_at=NOW - datetime.timedelta(days=1),
    )
    return store


def test_learning_stats_from_entries(two_courses: InMemoryRecordStore) -> None:
    dashboard = _aggregator(two_courses).build("s1")
    stats = dashboard.learning_stats

    assert dashboard.source == "computed"
    assert stats.total_courses == 2
    assert stats.active_courses == 1
    assert stats.completed_courses == 1
    assert stats.average_progress == 90
    assert stats.total_time_spent == 180
    assert stats.weekly_goal == 300
    assert stats.weekly_progress == 54
    assert stats.current_streak == 3


def test_single_completion_unlocks_course_completer(
    two_courses: InMemoryRecordStore,
) -> None:
    titles = [a.title for a in _aggregator(two_courses).build("s1").achievements]
    assert "Course Completer" in titles
    assert "Learning Enthusiast" not in titles


def test_exercise_stats_union_submissions_and_entries(
    two_courses: InMemoryRecordStore,
) -> None:
    add_submission(two_courses, "s1", "e1", "c1", score=80, is_correct=True)
    add_submission(two_courses, "s1", "e2", "c1", score=40, is_correct=False)
    set_progress(
        two_courses, "p1", "s1", "c1", 80, completed_exercises=frozenset({"e3"})
    )

    stats = _aggregator(two_courses).build("s1").learning_stats
    assert stats.total_exercises == 3
    assert stats.completed_exercises == 2
    assert stats.average_score == 60


def test_average_score_falls_back_to_entries(two_courses: InMemoryRecordStore) -> None:
    set_progress(two_courses, "p1", "s1", "c1", 80, average_score=70.0)
    set_progress(
        two_courses,
        "p1",
        "s1",
        "c2",
        100,
        average_score=95.0,
        completed_at=NOW - datetime.timedelta(days=1),
    )
    assert _aggregator(two_courses).build("s1").learning_stats.average_score == 83


def test_course_rows(two_courses: InMemoryRecordStore) -> None:
    rows = {r.course_id: r for r in _aggregator(two_courses).build("s1").course_progress}

    python = rows["c1"]
    assert python.course_title == "Python"
    assert python.instructor == "Ada"
    assert python.enrollment_status == "active"
    # 60h course at 80%: 12h left at 5h/week
    assert python.estimated_completion == (NOW + datetime.timedelta(weeks=3)).date()

    sql = rows["c2"]
    assert sql.instructor == "Unknown"
    assert sql.enrollment_status == "completed"
    assert sql.estimated_completion == NOW.date()


def test_course_missing_from_store_is_unknown(store: InMemoryRecordStore) -> None:
    add_promotion(store, "p1", ("gone",))
    add_user(store, "s1", promotion_id="p1")
    (row,) = _aggregator(store).build("s1").course_progress
    assert row.course_title == "Unknown Course"


def test_recent_activity_newest_first(two_courses: InMemoryRecordStore) -> None:
    add_submission(
        two_courses,
        "s1",
        "e1",
        "c1",
        score=90,
        is_correct=True,
        submitted_at=NOW - datetime.timedelta(hours=1),
    )
    add_submission(
        two_courses,
        "s1",
        "e2",
        "c1",
        score=50,
        submitted_at=NOW - datetime.timedelta(days=3),
    )

    activity = _aggregator(two_courses).build("s1").recent_activity
    assert [a.type for a in activity] == ["exercise", "course_complete", "exercise"]
    assert activity[0].activity_title == "Exercise e1"
    assert activity[0].course_title == "Python"
    assert activity[0].score == 90
    assert activity[1].id == "c2:complete"
    assert activity[1].activity_title == "Completed SQL"


def test_recent_activity_is_capped(two_courses: InMemoryRecordStore) -> None:
    for n in range(15):
        add_submission(
            two_courses,
            "s1",
            "e1",
            "c1",
            submitted_at=NOW - datetime.timedelta(minutes=n),
        )
    assert len(_aggregator(two_courses).build("s1").recent_activity) == 10


def test_student_without_promotion_gets_empty_dashboard(
    store: InMemoryRecordStore,
) -> None:
    add_user(store, "s1")
    dashboard = _aggregator(store).build("s1")

    assert dashboard.source == "empty"
    assert dashboard.learning_stats.total_courses == 0
    assert dashboard.learning_stats.weekly_goal == 300
    assert dashboard.course_progress == []
    assert dashboard.achievements == []


def test_promotion_without_courses_gets_empty_dashboard(
    store: InMemoryRecordStore,
) -> None:
    add_promotion(store, "p1", ())
    add_user(store, "s1", promotion_id="p1")
    assert _aggregator(store).build("s1").source == "empty"


def test_too_many_enrollments_returns_fallback(store: InMemoryRecordStore) -> None:
    add_promotion(store, "big", tuple(f"c{n}" for n in range(25)))
    add_user(store, "s1", promotion_id="big")

    dashboard = _aggregator(store).build("s1")
    assert dashboard.source == "fallback"
    assert dashboard.learning_stats.total_courses == 1
    assert len(dashboard.course_progress) == 1
    assert len(dashboard.achievements) == 1


def test_unknown_student_raises(store: InMemoryRecordStore) -> None:
    with pytest.raises(StudentNotFound, match="student not found: ghost"):
        _aggregator(store).build("ghost")
