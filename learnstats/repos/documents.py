"""Load a JSON document set into an InMemoryRecordStore.

The file mirrors the platform's document collections, camelCase keys
included::

    {
      "users": [{"id": "u1", "name": "Ada", "role": "student",
                 "currentPromotionId": "p1", "lastLoginAt": "2025-01-02T10:00:00+00:00"}],
      "courses": [{"id": "c1", "title": "Intro", "status": "published",
                   "instructorId": "t1", "chapters": [...]}],
      "promotions": [{"id": "p1", "title": "2025", "courseIds": ["c1"],
                      "studentIds": ["u1"]}],
      "progress": [{"promotionId": "p1", "studentId": "u1",
                    "coursesProgress": [{"courseId": "c1", "progressPercentage": 40}]}],
      "submissions": [{"id": "s1", "studentId": "u1", "exerciseId": "e1",
                       "submittedAt": "..."}]
    }
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from learnstats.models.course import Chapter, ContentItem, Course, Section
from learnstats.models.progress import CourseProgress, Promotion, PromotionProgress
from learnstats.models.submission import ExerciseSubmission, SubmissionResult
from learnstats.models.user import User
from learnstats.repos.record_store import InMemoryRecordStore

logger = logging.getLogger(__name__)


def _dt(raw: str | None) -> datetime.datetime | None:
    if not raw:
        return None
    value = datetime.datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.UTC)
    return value


def _user(doc: dict[str, Any]) -> User:
    return User(
        id=doc["id"],
        name=doc.get("name", ""),
        role=doc.get("role", "student"),
        current_promotion_id=doc.get("currentPromotionId"),
        last_login_at=_dt(doc.get("lastLoginAt")),
    )


def _content_item(doc: dict[str, Any]) -> ContentItem:
    return ContentItem(
        id=doc["id"],
        type=doc.get("type", "text"),
        title=doc.get("title", ""),
        exercise_id=doc.get("exerciseId"),
    )


def _course(doc: dict[str, Any]) -> Course:
    chapters = tuple(
        Chapter(
            id=ch["id"],
            title=ch.get("title", ""),
            sections=tuple(
                Section(
                    id=sec["id"],
                    title=sec.get("title", ""),
                    content=tuple(_content_item(c) for c in sec.get("content", [])),
                )
                for sec in ch.get("sections", [])
            ),
        )
        for ch in doc.get("chapters", [])
    )
    return Course(
        id=doc["id"],
        title=doc.get("title", ""),
        status=doc.get("status", "draft"),
        instructor_id=doc.get("instructorId"),
        instructor_name=doc.get("instructorName", ""),
        collaborator_ids=tuple(doc.get("collaboratorIds", [])),
        chapters=chapters,
        estimated_duration_hours=doc.get("estimatedDurationHours", 60),
        created_at=_dt(doc.get("createdAt")),
        updated_at=_dt(doc.get("updatedAt")),
    )


def _promotion(doc: dict[str, Any]) -> Promotion:
    return Promotion(
        id=doc["id"],
        title=doc.get("title", ""),
        course_ids=tuple(doc.get("courseIds", [])),
        student_ids=tuple(doc.get("studentIds", [])),
    )


def _course_progress(doc: dict[str, Any]) -> CourseProgress:
    completed_exercises = frozenset(doc.get("completedExercises", []))
    average_score = doc.get("averageScore")
    # Older documents carry no count; assume every completed exercise was scored
    scored = doc.get(
        "scoredExercises",
        len(completed_exercises) if average_score is not None else 0,
    )
    return CourseProgress(
        course_id=doc["courseId"],
        progress_percentage=doc.get("progressPercentage", 0),
        chapters_completed=doc.get("chaptersCompleted", 0),
        total_chapters=doc.get("totalChapters", 0),
        completed_sections=frozenset(doc.get("completedSections", [])),
        completed_exercises=completed_exercises,
        time_spent=doc.get("timeSpent", 0),
        average_score=average_score,
        scored_exercises=scored,
        status=doc.get("status", "active"),
        started_at=_dt(doc.get("startedAt")),
        completed_at=_dt(doc.get("completedAt")),
        last_activity_at=_dt(doc.get("lastActivityAt")),
    )


def _progress(doc: dict[str, Any]) -> PromotionProgress:
    record = PromotionProgress.new(
        promotion_id=doc["promotionId"],
        student_id=doc["studentId"],
        courses_progress=tuple(
            _course_progress(cp) for cp in doc.get("coursesProgress", [])
        ),
    )
    if "id" in doc:
        record = replace(record, id=doc["id"])
    return record


def _submission(doc: dict[str, Any]) -> ExerciseSubmission:
    result_doc = doc.get("result")
    result = (
        SubmissionResult(
            score=result_doc.get("score"), is_correct=result_doc.get("isCorrect", False)
        )
        if result_doc
        else None
    )
    submitted_at = _dt(doc.get("submittedAt")) or datetime.datetime.now(datetime.UTC)
    return ExerciseSubmission(
        id=doc["id"],
        student_id=doc["studentId"],
        exercise_id=doc["exerciseId"],
        course_id=doc.get("courseId"),
        submitted_at=submitted_at,
        result=result,
        graded_at=_dt(doc.get("gradedAt")),
    )


def load_documents(store: InMemoryRecordStore, documents: dict[str, Any]) -> None:
    """Insert every document of ``documents`` into ``store``."""
    for doc in documents.get("users", []):
        store.add_user(_user(doc))
    for doc in documents.get("courses", []):
        store.add_course(_course(doc))
    for doc in documents.get("promotions", []):
        store.add_promotion(_promotion(doc))
    for doc in documents.get("progress", []):
        store.save_progress(_progress(doc))
    for doc in documents.get("submissions", []):
        store.add_submission(_submission(doc))


def load_records_file(path: str | Path) -> InMemoryRecordStore:
    """Build a store from a JSON file (RECORDS_FILE)."""
    with Path(path).open(encoding="utf-8") as fh:
        documents = json.load(fh)
    store = InMemoryRecordStore()
    load_documents(store, documents)
    logger.info(
        "Loaded record documents from %s  users=%d courses=%d promotions=%d",
        path,
        len(documents.get("users", [])),
        len(documents.get("courses", [])),
        len(documents.get("promotions", [])),
    )
    return store
