from __future__ import annotations

import datetime

import pytest

from learnstats.models.progress import CourseProgress
from learnstats.repos.record_store import InMemoryRecordStore
from tests.conftest import (
    add_course,
    add_promotion,
    add_submission,
    add_user,
    utcnow,
)


def test_duplicate_ids_rejected(store: InMemoryRecordStore) -> None:
    add_user(store, "u1")
    with pytest.raises(ValueError, match="user id already exists"):
        add_user(store, "u1")


def test_count_users_by_role(store: InMemoryRecordStore) -> None:
    add_user(store, "s1")
    add_user(store, "s2")
    add_user(store, "t1", "teacher")
    assert store.count_users_by_role() == {"student": 2, "teacher": 1}


def test_count_active_users(store: InMemoryRecordStore) -> None:
    now = utcnow()
    add_user(store, "s1", last_login_at=now)
    add_user(store, "s2", last_login_at=now - datetime.timedelta(days=40))
    add_user(store, "s3")
    assert store.count_active_users(now - datetime.timedelta(days=30)) == 1


def test_find_users_by_promotion_uses_roster_and_pointer(
    store: InMemoryRecordStore,
) -> None:
    add_promotion(store, "p1", ("c1",), ("s1",))
    add_user(store, "s1")
    add_user(store, "s2", promotion_id="p1")
    add_user(store, "t1", "teacher", promotion_id="p1")
    add_user(store, "s3")

    ids = {u.id for u in store.find_users_by_promotion("p1")}
    assert ids == {"s1", "s2"}


def test_courses_by_instructor_or_collaborator_newest_first(
    store: InMemoryRecordStore,
) -> None:
    now = utcnow()
    week_ago = now - datetime.timedelta(days=5)
    add_course(store, "old", instructor_id="t1", updated_at=week_ago)
    add_course(store, "new", collaborator_ids=("t1",), updated_at=now)
    add_course(store, "theirs", instructor_id="t2")

    courses = store.find_courses_by_instructor_or_collaborator("t1")
    assert [c.id for c in courses] == ["new", "old"]
    assert len(store.find_courses_by_instructor_or_collaborator("t1", limit=1)) == 1


def test_find_or_create_progress_seeds_promotion_courses(
    store: InMemoryRecordStore,
) -> None:
    add_course(store, "c1", chapters=3)
    add_promotion(store, "p1", ("c1", "missing"))

    record = store.find_or_create_progress("p1", "s1")
    assert [e.course_id for e in record.courses_progress] == ["c1", "missing"]
    assert record.course("c1").total_chapters == 3
    assert record.course("missing").total_chapters == 0
    assert store.find_or_create_progress("p1", "s1") is record
    assert store.count_progress_records() == 1


def test_save_progress_replaces_record(store: InMemoryRecordStore) -> None:
    add_promotion(store, "p1", ("c1",))
    record = store.find_or_create_progress("p1", "s1")
    store.save_progress(record.with_course(CourseProgress(course_id="c1", time_spent=5)))

    stored = store.find_progress_by_promotion("p1")
    assert len(stored) == 1
    assert stored[0].course("c1").time_spent == 5


def test_with_course_appends_unknown_entry(store: InMemoryRecordStore) -> None:
    add_promotion(store, "p1", ("c1",))
    record = store.find_or_create_progress("p1", "s1")
    updated = record.with_course(CourseProgress(course_id="c2"))
    assert [e.course_id for e in updated.courses_progress] == ["c1", "c2"]


def test_submissions_newest_first_with_limit(store: InMemoryRecordStore) -> None:
    now = utcnow()
    for n in range(3):
        add_submission(
            store, "s1", f"e{n}", submitted_at=now - datetime.timedelta(minutes=n)
        )
    add_submission(store, "s2", "e0")

    latest = store.find_submissions_by_student("s1", limit=2)
    assert [s.exercise_id for s in latest] == ["e0", "e1"]

    by_exercise = store.find_submissions_by_exercise_ids(["e0", "e2"])
    assert len(by_exercise) == 3
    assert store.find_submissions_by_exercise_ids([]) == []


def test_progress_percentage_out_of_range_rejected() -> None:
    with pytest.raises(ValueError, match="progress_percentage"):
        CourseProgress(course_id="c1", progress_percentage=101)
