"""Trend labels for course performance metrics.

There is no time series behind these.  A metric's trend is its position
relative to a fixed target: ``up`` above it, ``down`` below it,
``stable`` on it or when the course has no students.  Every metric built
here carries ``estimated=True`` so consumers do not read the trend as a
measured change.
"""

from __future__ import annotations

from typing import Literal

from learnstats.models.dashboard import PerformanceMetric

Trend = Literal["up", "down", "stable"]

# (metric name, target value)
METRIC_TARGETS: tuple[tuple[str, int], ...] = (
    ("Average Progress", 50),
    ("Completion Rate", 50),
    ("Average Score", 70),
    ("Dropout Rate", 20),
)


def estimate_trend(value: int, target: int, *, has_data: bool) -> Trend:
    if not has_data or value == target:
        return "stable"
    return "up" if value > target else "down"


def performance_metrics(
    *,
    average_progress: int,
    completion_rate: int,
    average_score: int,
    dropout_rate: int,
    has_students: bool,
) -> list[PerformanceMetric]:
    """Fixed-order metric list: progress, completion, score, dropout."""
    values = {
        "Average Progress": average_progress,
        "Completion Rate": completion_rate,
        "Average Score": average_score,
        "Dropout Rate": dropout_rate,
    }
    return [
        PerformanceMetric(
            metric=name,
            value=values[name],
            trend=estimate_trend(values[name], target, has_data=has_students),
        )
        for name, target in METRIC_TARGETS
    ]
