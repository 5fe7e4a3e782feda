from __future__ import annotations

import datetime
from collections.abc import Iterator
from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class ContentItem:
    id: str
    type: str  # text|video|exercise|quiz
    title: str = ""
    exercise_id: str | None = None  # set when type == "exercise"


@dataclass(frozen=True, slots=True)
class Section:
    id: str
    title: str
    content: tuple[ContentItem, ...] = ()


@dataclass(frozen=True, slots=True)
class Chapter:
    id: str
    title: str
    sections: tuple[Section, ...] = ()


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    status: str = "draft"  # draft|published
    instructor_id: str | None = None
    instructor_name: str = ""
    collaborator_ids: tuple[str, ...] = ()
    chapters: tuple[Chapter, ...] = ()
    estimated_duration_hours: int = 60
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        title: str,
        status: str = "draft",
        instructor_id: str | None = None,
        instructor_name: str = "",
        collaborator_ids: tuple[str, ...] = (),
        chapters: tuple[Chapter, ...] = (),
        estimated_duration_hours: int = 60,
    ) -> Course:
        now = datetime.datetime.now(datetime.UTC)
        return Course(
            id=uuid4().hex,
            title=title,
            status=status,
            instructor_id=instructor_id,
            instructor_name=instructor_name,
            collaborator_ids=collaborator_ids,
            chapters=chapters,
            estimated_duration_hours=estimated_duration_hours,
            created_at=now,
            updated_at=now,
        )

    def is_taught_by(self, user_id: str) -> bool:
        return self.instructor_id == user_id or user_id in self.collaborator_ids

    @property
    def total_sections(self) -> int:
        return sum(len(chapter.sections) for chapter in self.chapters)

    def exercise_items(self) -> Iterator[ContentItem]:
        """Walk chapter → section → content, yielding exercise items in order."""
        for chapter in self.chapters:
            for section in chapter.sections:
                for item in section.content:
                    if item.type == "exercise" and item.exercise_id:
                        yield item

    def chapters_completed(self, completed_sections: frozenset[str]) -> int:
        """Count chapters whose every section is in ``completed_sections``."""
        return sum(
            1
            for chapter in self.chapters
            if chapter.sections
            and all(s.id in completed_sections for s in chapter.sections)
        )
