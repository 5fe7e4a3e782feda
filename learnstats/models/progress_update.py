"""Incoming progress update shapes.

Clients send camelCase JSON (``sectionId``, ``timeSpent``); snake_case
names are accepted too so Python callers can build updates directly.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UPDATE_TYPES = ("section_complete", "exercise_complete")


class _In(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class SectionComplete(_In):
    type: Literal["section_complete"] = "section_complete"
    section_id: str = Field(min_length=1)
    time_spent: int = Field(default=0, ge=0)


class ExerciseComplete(_In):
    type: Literal["exercise_complete"] = "exercise_complete"
    exercise_id: str = Field(min_length=1)
    score: float | None = Field(default=None, ge=0, le=100)
    time_spent: int = Field(default=0, ge=0)


class ProgressMerge(_In):
    """Untyped partial update merged into the existing course entry."""

    completed_sections: list[str] = []
    completed_exercises: list[str] = []
    time_spent: int = Field(default=0, ge=0)
    progress_percentage: int | None = None


ProgressUpdate = SectionComplete | ExerciseComplete | ProgressMerge
