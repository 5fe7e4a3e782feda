"""Process-local identifier lookups over course content.

Finding an exercise's title or a course's exercise ids means walking the
course's chapter → section → content tree.  ``CourseContentIndex`` keeps
the results in two fixed-capacity LRU maps so repeated dashboard
requests skip the walk.  The caches hold no authoritative state: clearing
them at any time only costs a re-walk.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

from learnstats.core.metrics import LOOKUP_CACHE_OPERATIONS
from learnstats.repos.record_store import RecordStore

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Capacity of the course-id → exercise-id list cache
COURSE_EXERCISE_IDS_CAPACITY = 100
# Capacity of the exercise-id → exercise metadata cache
EXERCISE_METADATA_CAPACITY = 30
# Exercise ids collected per course walk
MAX_EXERCISES_PER_COURSE = 50


class BoundedLRU(Generic[K, V]):
    """Mapping with a fixed entry ceiling; the least recently used entry goes first."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()

    def get(self, key: K) -> V | None:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: K, value: V) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        return list(self._entries)


@dataclass(frozen=True, slots=True)
class ExerciseInfo:
    exercise_id: str
    title: str
    course_id: str | None
    # False for the stand-in returned when the exercise cannot be located
    resolved: bool = True


UNKNOWN_EXERCISE_TITLE = "Unknown Exercise"


class CourseContentIndex:
    def __init__(
        self,
        store: RecordStore,
        *,
        exercise_ids_capacity: int = COURSE_EXERCISE_IDS_CAPACITY,
        exercise_metadata_capacity: int = EXERCISE_METADATA_CAPACITY,
    ) -> None:
        self._store = store
        self._exercise_ids: BoundedLRU[str, tuple[str, ...]] = BoundedLRU(
            exercise_ids_capacity
        )
        self._exercises: BoundedLRU[str, ExerciseInfo] = BoundedLRU(
            exercise_metadata_capacity
        )

    def exercise_ids_for_course(self, course_id: str) -> tuple[str, ...]:
        cached = self._exercise_ids.get(course_id)
        if cached is not None:
            LOOKUP_CACHE_OPERATIONS.labels(cache="exercise_ids", result="hit").inc()
            return cached
        LOOKUP_CACHE_OPERATIONS.labels(cache="exercise_ids", result="miss").inc()
        return tuple(info.exercise_id for info in self._walk_course(course_id))

    def _walk_course(self, course_id: str) -> list[ExerciseInfo]:
        """Walk the course tree and refresh both caches from it."""
        course = self._store.find_course_by_id(course_id)
        if course is None:
            # Not cached: the course may be created later
            return []

        infos: list[ExerciseInfo] = []
        for item in course.exercise_items():
            info = ExerciseInfo(
                exercise_id=item.exercise_id,  # type: ignore[arg-type]
                title=item.title or UNKNOWN_EXERCISE_TITLE,
                course_id=course.id,
            )
            infos.append(info)
            self._exercises.put(info.exercise_id, info)
            if len(infos) >= MAX_EXERCISES_PER_COURSE:
                break

        self._exercise_ids.put(course_id, tuple(info.exercise_id for info in infos))
        return infos

    def find_exercise(self, exercise_id: str, course_id: str | None) -> ExerciseInfo:
        """Metadata for ``exercise_id``; a stand-in entry when it cannot be located.

        A metadata miss always walks the course, even when its id list is
        still cached, since the metadata entry may have been evicted on its
        own.  The stand-in is cached only after that walk comes up empty, and
        is reused only for the same course.
        """
        cached = self._exercises.get(exercise_id)
        if cached is not None and (cached.resolved or cached.course_id == course_id):
            LOOKUP_CACHE_OPERATIONS.labels(cache="exercise_metadata", result="hit").inc()
            return cached
        LOOKUP_CACHE_OPERATIONS.labels(cache="exercise_metadata", result="miss").inc()

        if course_id is not None:
            for info in self._walk_course(course_id):
                if info.exercise_id == exercise_id:
                    self._exercises.put(exercise_id, info)
                    return info

        logger.debug("Exercise %s not found in course %s", exercise_id, course_id)
        info = ExerciseInfo(
            exercise_id=exercise_id,
            title=UNKNOWN_EXERCISE_TITLE,
            course_id=course_id,
            resolved=False,
        )
        if course_id is not None:
            self._exercises.put(exercise_id, info)
        return info

    def clear(self) -> None:
        self._exercise_ids.clear()
        self._exercises.clear()

    def stats(self) -> dict[str, int]:
        return {
            "exercise_ids": len(self._exercise_ids),
            "exercise_metadata": len(self._exercises),
        }
