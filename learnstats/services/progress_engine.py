"""Incremental progress updates for one (student, course) entry.

Three update shapes are accepted:

  section_complete   adds a section id, adds time, recomputes the percentage
  exercise_complete  adds an exercise id, adds time, folds in the score
  untyped merge      unions id lists, adds time, optionally sets the percentage

Identifier sets merge by union, so replaying an update leaves them
unchanged.  Time is additive on every call: a replayed update counts its
minutes twice.

Expected failures (unknown student, no promotion, malformed payload...)
come back as a ``ProgressUpdateResult`` with ``success=False``.  Store
errors are not caught here.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from learnstats.core.metrics import PROGRESS_UPDATES
from learnstats.models.dashboard import (
    ProgressSnapshot,
    ProgressUpdateError,
    ProgressUpdateResult,
)
from learnstats.models.progress import CourseProgress
from learnstats.models.progress_update import (
    UPDATE_TYPES,
    ExerciseComplete,
    ProgressMerge,
    ProgressUpdate,
    SectionComplete,
)
from learnstats.repos.record_store import RecordStore
from learnstats.services.errors import ErrorCode, InvalidProgressUpdate
from learnstats.services.numbers import clamp_percentage, round_half_up

logger = logging.getLogger(__name__)

_MODELS: dict[str, type[SectionComplete] | type[ExerciseComplete]] = {
    "section_complete": SectionComplete,
    "exercise_complete": ExerciseComplete,
}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "update"
    return f"{location}: {first.get('msg', 'invalid value')}"


def parse_progress_update(payload: ProgressUpdate | Mapping[str, Any]) -> ProgressUpdate:
    """Turn a raw payload into one of the three update models.

    Raises InvalidProgressUpdate with INVALID_UPDATE_TYPE for an unknown
    ``type`` and INVALID_INPUT for anything pydantic rejects.
    """
    if isinstance(payload, SectionComplete | ExerciseComplete | ProgressMerge):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidProgressUpdate(
            ErrorCode.INVALID_INPUT, "Progress update must be a JSON object"
        )

    update_type = payload.get("type")
    try:
        if update_type is None:
            return ProgressMerge.model_validate(payload)
        if update_type not in UPDATE_TYPES:
            raise InvalidProgressUpdate(
                ErrorCode.INVALID_UPDATE_TYPE,
                'Invalid progress update type. Must be "section_complete" '
                'or "exercise_complete"',
            )
        return _MODELS[update_type].model_validate(payload)
    except ValidationError as e:
        raise InvalidProgressUpdate(ErrorCode.INVALID_INPUT, _describe(e)) from None


class ProgressEngine:
    def __init__(
        self,
        store: RecordStore,
        *,
        fallback_sections_per_course: int | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._fallback_sections = fallback_sections_per_course
        self._clock = clock

    def apply_update(
        self,
        student_id: str,
        course_id: str,
        update: ProgressUpdate | Mapping[str, Any],
    ) -> ProgressUpdateResult:
        try:
            parsed = parse_progress_update(update)
        except InvalidProgressUpdate as e:
            return self._failure(e.code, str(e))

        student = self._store.find_user_by_id(student_id)
        if student is None:
            return self._failure(
                ErrorCode.STUDENT_NOT_FOUND, f"Student not found: {student_id}"
            )
        if not student.current_promotion_id:
            return self._failure(
                ErrorCode.STUDENT_NOT_ENROLLED, "Student not enrolled in any promotion"
            )

        record = self._store.find_or_create_progress(
            student.current_promotion_id, student_id
        )
        entry = record.course(course_id)
        if entry is None:
            return self._failure(
                ErrorCode.COURSE_NOT_IN_PROMOTION, "Course not found in student promotion"
            )

        now = self._clock()
        updated = self._apply(entry, parsed, now)
        self._store.save_progress(record.with_course(updated))

        PROGRESS_UPDATES.labels(outcome="success").inc()
        logger.info(
            "Progress updated  student=%s course=%s type=%s progress=%d time_spent=%d",
            student_id,
            course_id,
            getattr(parsed, "type", "merge"),
            updated.progress_percentage,
            updated.time_spent,
        )
        return ProgressUpdateResult(
            success=True,
            data=ProgressSnapshot(
                progress_percentage=updated.progress_percentage,
                time_spent=updated.time_spent,
                completed_sections=len(updated.completed_sections),
                completed_exercises=len(updated.completed_exercises),
                last_activity_at=now,
            ),
        )

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def _apply(
        self, entry: CourseProgress, update: ProgressUpdate, now: datetime.datetime
    ) -> CourseProgress:
        time_spent = entry.time_spent + update.time_spent

        if isinstance(update, SectionComplete):
            sections = entry.completed_sections | {update.section_id}
            merged = replace(entry, completed_sections=sections, time_spent=time_spent)
            return self._recompute(merged, now)

        if isinstance(update, ExerciseComplete):
            newly_completed = update.exercise_id not in entry.completed_exercises
            exercises = entry.completed_exercises | {update.exercise_id}
            average_score = entry.average_score
            scored = entry.scored_exercises
            if update.score is not None and newly_completed:
                scored += 1
                average_score = _running_mean(entry.average_score, update.score, scored)
            merged = replace(
                entry,
                completed_exercises=exercises,
                time_spent=time_spent,
                average_score=average_score,
                scored_exercises=scored,
            )
            return self._recompute(merged, now)

        merged = replace(
            entry,
            completed_sections=entry.completed_sections | set(update.completed_sections),
            completed_exercises=entry.completed_exercises
            | set(update.completed_exercises),
            time_spent=time_spent,
            last_activity_at=now,
        )
        if update.progress_percentage is not None:
            merged = self._with_percentage(
                merged, clamp_percentage(update.progress_percentage), now
            )
        return merged

    def _recompute(self, entry: CourseProgress, now: datetime.datetime) -> CourseProgress:
        """Derive the percentage and chapter counts from the course structure."""
        course = self._store.find_course_by_id(entry.course_id)
        total_sections = course.total_sections if course is not None else 0
        chapters: dict[str, int] = {}
        if course is not None:
            chapters = {
                "chapters_completed": course.chapters_completed(entry.completed_sections),
                "total_chapters": len(course.chapters),
            }
        entry = replace(entry, last_activity_at=now, **chapters)

        if total_sections == 0:
            if self._fallback_sections is None:
                logger.debug(
                    "Course %s has no sections; keeping progress at %d",
                    entry.course_id,
                    entry.progress_percentage,
                )
                return entry
            total_sections = self._fallback_sections

        percentage = min(
            100, round_half_up(100 * len(entry.completed_sections) / total_sections)
        )
        return self._with_percentage(entry, percentage, now)

    @staticmethod
    def _with_percentage(
        entry: CourseProgress, percentage: int, now: datetime.datetime
    ) -> CourseProgress:
        completed_at = entry.completed_at
        if percentage >= 100 and completed_at is None:
            completed_at = now
        return replace(entry, progress_percentage=percentage, completed_at=completed_at)

    @staticmethod
    def _failure(code: ErrorCode, message: str) -> ProgressUpdateResult:
        PROGRESS_UPDATES.labels(outcome=code.value).inc()
        logger.info("Progress update rejected  code=%s message=%s", code.value, message)
        return ProgressUpdateResult(
            success=False,
            error=ProgressUpdateError(code=code.value, kind=code.kind, message=message),
        )


def _running_mean(previous: float | None, score: float, count: int) -> float:
    """Fold ``score`` into a mean over ``count`` scored exercises."""
    if previous is None or count <= 1:
        return float(score)
    return previous + (score - previous) / count
