from __future__ import annotations

import datetime
from collections import Counter
from collections.abc import Iterable
from typing import Protocol

from learnstats.models.course import Course
from learnstats.models.progress import CourseProgress, Promotion, PromotionProgress
from learnstats.models.submission import ExerciseSubmission
from learnstats.models.user import User


class RecordStore(Protocol):
    # --- users ---
    def find_user_by_id(self, user_id: str) -> User | None: ...
    def count_users_by_role(self) -> dict[str, int]: ...
    def count_active_users(self, since: datetime.datetime) -> int: ...
    def find_users_by_promotion(
        self, promotion_id: str, role: str = "student"
    ) -> list[User]: ...

    # --- courses ---
    def find_course_by_id(self, course_id: str) -> Course | None: ...
    def find_courses_by_instructor_or_collaborator(
        self, user_id: str, limit: int | None = None
    ) -> list[Course]: ...
    def count_courses(self) -> int: ...

    # --- promotions and progress ---
    def find_promotions_containing_course(self, course_id: str) -> list[Promotion]: ...
    def list_promotions(self) -> list[Promotion]: ...
    def count_promotions(self) -> int: ...
    def find_or_create_progress(
        self, promotion_id: str, student_id: str
    ) -> PromotionProgress: ...
    def find_progress_by_promotion(self, promotion_id: str) -> list[PromotionProgress]: ...
    def list_progress_records(self, limit: int | None = None) -> list[PromotionProgress]: ...
    def count_progress_records(self) -> int: ...
    def save_progress(self, record: PromotionProgress) -> None: ...

    # --- submissions ---
    def find_submissions_by_student(
        self, student_id: str, limit: int | None = None
    ) -> list[ExerciseSubmission]: ...
    def find_submissions_by_exercise_ids(
        self, exercise_ids: Iterable[str], limit: int | None = None
    ) -> list[ExerciseSubmission]: ...
    def count_submissions(self) -> int: ...


def _newest_first(
    submissions: Iterable[ExerciseSubmission], limit: int | None
) -> list[ExerciseSubmission]:
    ordered = sorted(submissions, key=lambda s: s.submitted_at, reverse=True)
    return ordered if limit is None else ordered[:limit]


_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.UTC)


class InMemoryRecordStore:
    """Dict-backed RecordStore.

    Each instance owns its collections, so tests and app instances never
    share state.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._courses: dict[str, Course] = {}
        self._promotions: dict[str, Promotion] = {}
        self._progress: dict[tuple[str, str], PromotionProgress] = {}
        self._submissions: dict[str, ExerciseSubmission] = {}

    # --- writes used by seeding and tests ---

    def add_user(self, user: User) -> None:
        if user.id in self._users:
            raise ValueError("user id already exists")
        self._users[user.id] = user

    def add_course(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course id already exists")
        self._courses[course.id] = course

    def add_promotion(self, promotion: Promotion) -> None:
        if promotion.id in self._promotions:
            raise ValueError("promotion id already exists")
        self._promotions[promotion.id] = promotion

    def add_submission(self, submission: ExerciseSubmission) -> None:
        if submission.id in self._submissions:
            raise ValueError("submission id already exists")
        self._submissions[submission.id] = submission

    # --- users ---

    def find_user_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def count_users_by_role(self) -> dict[str, int]:
        return dict(Counter(u.role for u in self._users.values()))

    def count_active_users(self, since: datetime.datetime) -> int:
        return sum(
            1
            for u in self._users.values()
            if u.last_login_at is not None and u.last_login_at >= since
        )

    def find_users_by_promotion(
        self, promotion_id: str, role: str = "student"
    ) -> list[User]:
        promotion = self._promotions.get(promotion_id)
        roster = set(promotion.student_ids) if promotion is not None else set()
        return [
            u
            for u in self._users.values()
            if u.role == role
            and (u.id in roster or u.current_promotion_id == promotion_id)
        ]

    # --- courses ---

    def find_course_by_id(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    def find_courses_by_instructor_or_collaborator(
        self, user_id: str, limit: int | None = None
    ) -> list[Course]:
        taught = sorted(
            (c for c in self._courses.values() if c.is_taught_by(user_id)),
            key=lambda c: c.updated_at or _EPOCH,
            reverse=True,
        )
        return taught if limit is None else taught[:limit]

    def count_courses(self) -> int:
        return len(self._courses)

    # --- promotions and progress ---

    def find_promotions_containing_course(self, course_id: str) -> list[Promotion]:
        return [p for p in self._promotions.values() if course_id in p.course_ids]

    def list_promotions(self) -> list[Promotion]:
        return list(self._promotions.values())

    def count_promotions(self) -> int:
        return len(self._promotions)

    def find_or_create_progress(
        self, promotion_id: str, student_id: str
    ) -> PromotionProgress:
        key = (promotion_id, student_id)
        existing = self._progress.get(key)
        if existing is not None:
            return existing

        promotion = self._promotions.get(promotion_id)
        course_ids = promotion.course_ids if promotion is not None else ()
        now = datetime.datetime.now(datetime.UTC)
        entries = []
        for course_id in course_ids:
            course = self._courses.get(course_id)
            entries.append(
                CourseProgress(
                    course_id=course_id,
                    total_chapters=len(course.chapters) if course else 0,
                    started_at=now,
                )
            )
        record = PromotionProgress.new(
            promotion_id=promotion_id,
            student_id=student_id,
            courses_progress=tuple(entries),
        )
        self._progress[key] = record
        return record

    def find_progress_by_promotion(self, promotion_id: str) -> list[PromotionProgress]:
        return [r for (pid, _), r in self._progress.items() if pid == promotion_id]

    def list_progress_records(self, limit: int | None = None) -> list[PromotionProgress]:
        records = list(self._progress.values())
        return records if limit is None else records[:limit]

    def count_progress_records(self) -> int:
        return len(self._progress)

    def save_progress(self, record: PromotionProgress) -> None:
        # Last write wins; concurrent updates are not serialized here
        self._progress[(record.promotion_id, record.student_id)] = record

    # --- submissions ---

    def find_submissions_by_student(
        self, student_id: str, limit: int | None = None
    ) -> list[ExerciseSubmission]:
        return _newest_first(
            (s for s in self._submissions.values() if s.student_id == student_id),
            limit,
        )

    def find_submissions_by_exercise_ids(
        self, exercise_ids: Iterable[str], limit: int | None = None
    ) -> list[ExerciseSubmission]:
        wanted = set(exercise_ids)
        if not wanted:
            return []
        return _newest_first(
            (s for s in self._submissions.values() if s.exercise_id in wanted),
            limit,
        )

    def count_submissions(self) -> int:
        return len(self._submissions)
