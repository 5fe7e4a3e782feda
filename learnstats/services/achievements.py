"""Achievement rules evaluated against a student's learning statistics.

Achievements are never stored.  Each dashboard read re-evaluates the
rule table, and ``unlocked_at`` is stamped relative to the read time
(``now - days_ago``), so the same badge can report a different unlock
time on every request.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from learnstats.models.dashboard import Achievement, LearningStats

logger = logging.getLogger(__name__)

StatsInput = LearningStats | Mapping[str, Any]


class _Stats:
    """Attribute view over LearningStats or a mapping; missing/None reads as 0."""

    __slots__ = ("_source",)

    def __init__(self, source: StatsInput) -> None:
        self._source = source

    def __getattr__(self, name: str) -> float:
        if isinstance(self._source, Mapping):
            value = self._source.get(name)
        else:
            value = getattr(self._source, name, None)
        if value is None:
            return 0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0


@dataclass(frozen=True, slots=True)
class AchievementRule:
    id: str
    title: str
    description: str
    icon_name: str
    category: str
    days_ago: int
    unlocked: Callable[[_Stats], bool]

    def award(self, now: datetime.datetime) -> Achievement:
        return Achievement(
            id=self.id,
            title=self.title,
            description=self.description,
            icon_name=self.icon_name,
            category=self.category,  # type: ignore[arg-type]
            unlocked_at=now - datetime.timedelta(days=self.days_ago),
        )


# Evaluated in declaration order; output keeps this order.
RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        id="first-course",
        title="Course Completer",
        description="Completed your first course",
        icon_name="trophy",
        category="completion",
        days_ago=5,
        unlocked=lambda s: s.completed_courses >= 1,
    ),
    AchievementRule(
        id="five-courses",
        title="Learning Enthusiast",
        description="Completed five courses",
        icon_name="medal",
        category="completion",
        days_ago=3,
        unlocked=lambda s: s.completed_courses >= 5,
    ),
    AchievementRule(
        id="high-achiever",
        title="High Achiever",
        description="Average progress of 80% or more across at least three courses",
        icon_name="target",
        category="progress",
        days_ago=4,
        unlocked=lambda s: s.average_progress >= 80 and s.total_courses >= 3,
    ),
    AchievementRule(
        id="first-exercise",
        title="First Steps",
        description="Complete your first exercise",
        icon_name="trophy",
        category="progress",
        days_ago=7,
        unlocked=lambda s: s.completed_exercises > 0,
    ),
    AchievementRule(
        id="streak-5",
        title="Streak Master",
        description="Study for 5 consecutive days",
        icon_name="fire",
        category="streak",
        days_ago=2,
        unlocked=lambda s: s.current_streak >= 5,
    ),
    AchievementRule(
        id="high-scorer",
        title="Excellence",
        description="Maintain 90%+ average score",
        icon_name="star",
        category="score",
        days_ago=1,
        unlocked=lambda s: s.average_score >= 90,
    ),
)


def evaluate_achievements(
    stats: StatsInput | None, now: datetime.datetime | None = None
) -> list[Achievement]:
    """Return every achievement whose rule holds for ``stats``.

    Never raises: a rule that cannot be evaluated is logged and skipped.
    """
    if stats is None:
        return []
    now = now or datetime.datetime.now(datetime.UTC)
    view = _Stats(stats)

    unlocked: list[Achievement] = []
    for rule in RULES:
        try:
            if rule.unlocked(view):
                unlocked.append(rule.award(now))
        except Exception:
            logger.exception("Achievement rule %s failed; skipping", rule.id)
    return unlocked
