from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Promotion:
    """A cohort: a fixed list of courses shared by a roster of students."""

    id: str
    title: str
    course_ids: tuple[str, ...] = ()
    student_ids: tuple[str, ...] = ()

    @staticmethod
    def new(
        *,
        title: str,
        course_ids: tuple[str, ...] = (),
        student_ids: tuple[str, ...] = (),
    ) -> Promotion:
        return Promotion(
            id=uuid4().hex, title=title, course_ids=course_ids, student_ids=student_ids
        )


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One student's completion state for one course of their promotion."""

    course_id: str
    progress_percentage: int = 0  # 0-100
    chapters_completed: int = 0
    total_chapters: int = 0
    completed_sections: frozenset[str] = frozenset()
    completed_exercises: frozenset[str] = frozenset()
    time_spent: int = 0  # minutes, never decreases
    average_score: float | None = None
    # Exercises whose score is folded into average_score
    scored_exercises: int = 0
    status: str = "active"  # active|dropped
    started_at: datetime.datetime | None = None
    completed_at: datetime.datetime | None = None
    last_activity_at: datetime.datetime | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.progress_percentage <= 100:
            raise ValueError(
                f"progress_percentage must be within [0, 100] "
                f"(got {self.progress_percentage})"
            )
        if self.time_spent < 0:
            raise ValueError(f"time_spent must be >= 0 (got {self.time_spent})")

    @property
    def is_completed(self) -> bool:
        return self.progress_percentage >= 100

    @property
    def is_dropped(self) -> bool:
        return self.status == "dropped"

    @property
    def is_in_progress(self) -> bool:
        return 0 < self.progress_percentage < 100

    @property
    def enrollment_status(self) -> str:
        if self.is_completed:
            return "completed"
        if self.is_dropped:
            return "dropped"
        return "active"


@dataclass(frozen=True, slots=True)
class PromotionProgress:
    """Per (student, promotion) record holding one CourseProgress per course."""

    id: str
    promotion_id: str
    student_id: str
    courses_progress: tuple[CourseProgress, ...] = ()
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        promotion_id: str,
        student_id: str,
        courses_progress: tuple[CourseProgress, ...] = (),
    ) -> PromotionProgress:
        now = datetime.datetime.now(datetime.UTC)
        return PromotionProgress(
            id=uuid4().hex,
            promotion_id=promotion_id,
            student_id=student_id,
            courses_progress=courses_progress,
            created_at=now,
            updated_at=now,
        )

    def course(self, course_id: str) -> CourseProgress | None:
        for entry in self.courses_progress:
            if entry.course_id == course_id:
                return entry
        return None

    def with_course(self, entry: CourseProgress) -> PromotionProgress:
        """Return a copy with ``entry`` replacing the entry for its course."""
        updated = tuple(
            entry if cp.course_id == entry.course_id else cp
            for cp in self.courses_progress
        )
        if entry.course_id not in {cp.course_id for cp in self.courses_progress}:
            updated = (*updated, entry)
        return replace(
            self,
            courses_progress=updated,
            updated_at=datetime.datetime.now(datetime.UTC),
        )
