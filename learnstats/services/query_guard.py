"""Query Guard: bounds how many records an aggregation may touch.

Every dashboard and analytics computation fetches its input with a hard
cap (``fetch_cap``) and then asks the guard whether the input is over the
threshold for that scope.  When it is, the caller abandons the full
aggregation and returns the fixed fallback payload from
``learnstats.services.fallbacks``.  Worst-case cost stays proportional to
the threshold no matter how many records pile up upstream; accuracy is
traded for availability.

The guard only decides and reports.  It never retries and never produces
partial results.
"""

from __future__ import annotations

import logging
from collections.abc import Sized

from learnstats.core.config import GuardThresholds
from learnstats.core.metrics import QUERY_GUARD_TRIPS

logger = logging.getLogger(__name__)

STUDENT_ENROLLMENTS = "student_enrollments"
TEACHER_COURSES = "teacher_courses"
TEACHER_ENROLLMENTS = "teacher_enrollments"
COURSE_ENROLLMENTS = "course_enrollments"
PLATFORM_PROGRESS_RECORDS = "platform_progress_records"


class QueryGuard:
    def __init__(self, thresholds: GuardThresholds | None = None) -> None:
        self._thresholds = (thresholds or GuardThresholds()).as_dict()

    def threshold(self, scope: str) -> int:
        """Threshold for ``scope``; unknown scopes raise KeyError."""
        return self._thresholds[scope]

    def fetch_cap(self, scope: str) -> int:
        """Largest number of records worth fetching for ``scope``.

        One past the threshold: enough to detect overflow, never more.
        """
        return self.threshold(scope) + 1

    def exceeds(self, scope: str, records: Sized | int) -> bool:
        size = records if isinstance(records, int) else len(records)
        limit = self.threshold(scope)
        if size <= limit:
            return False

        QUERY_GUARD_TRIPS.labels(scope=scope).inc()
        logger.warning(
            "Query guard tripped  scope=%s records=%d threshold=%d; using fallback",
            scope,
            size,
            limit,
            extra={"guard_scope": scope},
        )
        return True
