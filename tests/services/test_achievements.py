from __future__ import annotations

import datetime
import logging

import pytest

from learnstats.models.dashboard import LearningStats
from learnstats.services import achievements
from learnstats.services.achievements import (
    RULES,
    AchievementRule,
    evaluate_achievements,
)

NOW = datetime.datetime(2025, 6, 1, 12, 0, tzinfo=datetime.UTC)


def _ids(stats) -> list[str]:
    return [a.id for a in evaluate_achievements(stats, now=NOW)]


def test_none_stats_unlock_nothing() -> None:
    assert evaluate_achievements(None) == []


def test_zero_stats_unlock_nothing() -> None:
    assert evaluate_achievements(LearningStats(), now=NOW) == []


def test_single_completion_unlocks_only_first_course() -> None:
    stats = LearningStats(total_courses=2, completed_courses=1, average_progress=90)
    assert _ids(stats) == ["first-course"]


def test_every_rule_in_declaration_order() -> None:
    stats = {
        "completed_courses": 5,
        "average_progress": 85,
        "total_courses": 6,
        "completed_exercises": 3,
        "current_streak": 5,
        "average_score": 95,
    }
    assert _ids(stats) == [rule.id for rule in RULES]


def test_high_achiever_needs_three_courses() -> None:
    assert "high-achiever" not in _ids({"average_progress": 100, "total_courses": 2})
    assert "high-achiever" in _ids({"average_progress": 80, "total_courses": 3})


@pytest.mark.parametrize(
    ("stats", "expected"),
    [
        ({"average_score": 89}, []),
        ({"average_score": 90}, ["high-scorer"]),
        ({"current_streak": 4}, []),
        ({"current_streak": 5}, ["streak-5"]),
        ({"completed_exercises": 1}, ["first-exercise"]),
    ],
)
def test_threshold_boundaries(stats: dict, expected: list[str]) -> None:
    assert _ids(stats) == expected


def test_missing_and_null_fields_read_as_zero() -> None:
    assert _ids({"completed_courses": None, "average_score": "n/a"}) == []


def test_unlocked_at_is_relative_to_read_time() -> None:
    (badge,) = evaluate_achievements({"average_score": 100}, now=NOW)
    assert badge.title == "Excellence"
    assert badge.category == "score"
    assert badge.unlocked_at == NOW - datetime.timedelta(days=1)


def test_failing_rule_is_skipped(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def boom(_stats):
        raise RuntimeError("bad rule")

    broken = AchievementRule(
        id="broken",
        title="Broken",
        description="",
        icon_name="x",
        category="progress",
        days_ago=0,
        unlocked=boom,
    )
    monkeypatch.setattr(achievements, "RULES", (broken, *RULES))

    with caplog.at_level(logging.ERROR, logger="learnstats.services.achievements"):
        ids = _ids({"completed_courses": 1})

    assert ids == ["first-course"]
    assert any("broken" in r.getMessage() for r in caplog.records)
