"""Rounding helpers shared by the aggregators.

Python's round() rounds halves to even; dashboard figures round halves
up, so 12.5% displays as 13%.
"""

from __future__ import annotations

import math
from collections.abc import Iterable


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def mean_rounded(values: Iterable[float]) -> int:
    """Rounded arithmetic mean, 0 for an empty input."""
    items = list(values)
    if not items:
        return 0
    return round_half_up(sum(items) / len(items))


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


def clamp_percentage(value: float) -> int:
    return max(0, min(100, round_half_up(value)))
