from __future__ import annotations

import datetime
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

# Ensure repo root is on sys.path so `import learnstats` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from learnstats.core.config import GuardThresholds, Settings  # noqa: E402
from learnstats.main import create_app  # noqa: E402
from learnstats.models.course import Chapter, ContentItem, Course, Section  # noqa: E402
from learnstats.models.progress import (  # noqa: E402
    CourseProgress,
    Promotion,
    PromotionProgress,
)
from learnstats.models.submission import (  # noqa: E402
    ExerciseSubmission,
    SubmissionResult,
)
from learnstats.models.user import User  # noqa: E402
from learnstats.repos.record_store import InMemoryRecordStore  # noqa: E402


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def make_settings(**overrides) -> Settings:
    base = Settings(
        app_env="test",
        log_level="warning",
        port=8000,
        redis_url=None,
        guard=GuardThresholds(),
    )
    return replace(base, **overrides)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> InMemoryRecordStore:
    """A fresh store per test; nothing is shared between tests."""
    return InMemoryRecordStore()


@pytest.fixture
def client(settings: Settings, store: InMemoryRecordStore) -> TestClient:
    return TestClient(create_app(settings, store))


def identity(user_id: str, role: str = "student") -> dict[str, str]:
    """Gateway identity headers."""
    return {"X-User-Id": user_id, "X-User-Role": role}


class DownRedis:
    """A redis.asyncio client whose server is unreachable."""

    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("connection refused")

    async def setex(self, key: str, ttl: int, value: str) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys: str) -> None:
        raise RedisConnectionError("connection refused")


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def add_user(
    store: InMemoryRecordStore,
    user_id: str,
    role: str = "student",
    *,
    name: str | None = None,
    promotion_id: str | None = None,
    last_login_at: datetime.datetime | None = None,
) -> User:
    user = User(
        id=user_id,
        name=name if name is not None else user_id.title(),
        role=role,
        current_promotion_id=promotion_id,
        last_login_at=last_login_at,
    )
    store.add_user(user)
    return user


def add_course(
    store: InMemoryRecordStore,
    course_id: str,
    *,
    title: str | None = None,
    status: str = "published",
    instructor_id: str | None = None,
    instructor_name: str = "",
    collaborator_ids: tuple[str, ...] = (),
    chapters: int = 2,
    sections_per_chapter: int = 2,
    exercises: tuple[str, ...] = (),
    estimated_duration_hours: int = 60,
    updated_at: datetime.datetime | None = None,
) -> Course:
    """Course with ``chapters`` x ``sections_per_chapter`` sections.

    Section ids are ``{course_id}-c{chapter}s{section}``; exercises are
    placed in the first section.
    """
    built = []
    for c in range(1, chapters + 1):
        sections = []
        for s in range(1, sections_per_chapter + 1):
            content: tuple[ContentItem, ...] = ()
            if c == 1 and s == 1:
                content = tuple(
                    ContentItem(
                        id=f"item-{e}",
                        type="exercise",
                        title=f"Exercise {e}",
                        exercise_id=e,
                    )
                    for e in exercises
                )
            sections.append(
                Section(id=f"{course_id}-c{c}s{s}", title=f"Section {s}", content=content)
            )
        built.append(
            Chapter(id=f"{course_id}-c{c}", title=f"Chapter {c}", sections=tuple(sections))
        )

    course = Course(
        id=course_id,
        title=title or course_id.title(),
        status=status,
        instructor_id=instructor_id,
        instructor_name=instructor_name,
        collaborator_ids=collaborator_ids,
        chapters=tuple(built),
        estimated_duration_hours=estimated_duration_hours,
        created_at=utcnow(),
        updated_at=updated_at or utcnow(),
    )
    store.add_course(course)
    return course


def add_promotion(
    store: InMemoryRecordStore,
    promotion_id: str,
    course_ids: tuple[str, ...],
    student_ids: tuple[str, ...] = (),
) -> Promotion:
    promotion = Promotion(
        id=promotion_id,
        title=promotion_id.title(),
        course_ids=course_ids,
        student_ids=student_ids,
    )
    store.add_promotion(promotion)
    return promotion


def set_progress(
    store: InMemoryRecordStore,
    promotion_id: str,
    student_id: str,
    course_id: str,
    percentage: int,
    **fields,
) -> PromotionProgress:
    """Write one course entry of a student's promotion progress record."""
    record = store.find_or_create_progress(promotion_id, student_id)
    entry = record.course(course_id) or CourseProgress(course_id=course_id)
    updated = record.with_course(replace(entry, progress_percentage=percentage, **fields))
    store.save_progress(updated)
    return updated


def add_submission(
    store: InMemoryRecordStore,
    student_id: str,
    exercise_id: str,
    course_id: str | None = None,
    *,
    score: float | None = None,
    is_correct: bool = False,
    graded: bool = True,
    submitted_at: datetime.datetime | None = None,
) -> ExerciseSubmission:
    result = SubmissionResult(score=score, is_correct=is_correct) if graded else None
    submission = ExerciseSubmission.new(
        student_id=student_id,
        exercise_id=exercise_id,
        course_id=course_id,
        submitted_at=submitted_at,
        result=result,
        graded_at=utcnow() if graded else None,
    )
    store.add_submission(submission)
    return submission
