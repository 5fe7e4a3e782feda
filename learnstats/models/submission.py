from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    score: float | None = None
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class ExerciseSubmission:
    """A student's answer to an exercise.

    Grading fields (result, graded_at) are written by the grading
    subsystem; everything else is immutable once submitted.
    """

    id: str
    student_id: str
    exercise_id: str
    course_id: str | None
    submitted_at: datetime.datetime
    result: SubmissionResult | None = None
    graded_at: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        student_id: str,
        exercise_id: str,
        course_id: str | None = None,
        submitted_at: datetime.datetime | None = None,
        result: SubmissionResult | None = None,
        graded_at: datetime.datetime | None = None,
    ) -> ExerciseSubmission:
        return ExerciseSubmission(
            id=uuid4().hex,
            student_id=student_id,
            exercise_id=exercise_id,
            course_id=course_id,
            submitted_at=submitted_at or datetime.datetime.now(datetime.UTC),
            result=result,
            graded_at=graded_at,
        )

    @property
    def needs_grading(self) -> bool:
        return self.result is None or self.graded_at is None

    @property
    def score(self) -> float | None:
        return self.result.score if self.result is not None else None
