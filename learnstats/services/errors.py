from __future__ import annotations

from enum import Enum


class StatsError(Exception):
    """Base class for errors raised by the aggregation engine."""


class ActorNotFound(StatsError):
    """The identity a dashboard is computed for does not exist."""

    def __init__(self, user_id: str, role: str = "user") -> None:
        super().__init__(f"{role} not found: {user_id}")
        self.user_id = user_id


class StudentNotFound(ActorNotFound):
    def __init__(self, user_id: str) -> None:
        super().__init__(user_id, role="student")


class TeacherNotFound(ActorNotFound):
    def __init__(self, user_id: str) -> None:
        super().__init__(user_id, role="teacher")


class CourseNotFound(StatsError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"course not found: {course_id}")
        self.course_id = course_id


class AggregationFailed(StatsError):
    """An aggregation could not complete for a reason other than a missing actor."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ErrorCode(str, Enum):
    """Expected progress-update outcomes, returned as values rather than raised."""

    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    STUDENT_NOT_ENROLLED = "STUDENT_NOT_ENROLLED"
    COURSE_NOT_IN_PROMOTION = "COURSE_NOT_IN_PROMOTION"
    INVALID_UPDATE_TYPE = "INVALID_UPDATE_TYPE"
    INVALID_INPUT = "INVALID_INPUT"

    @property
    def kind(self) -> str:
        return _KINDS[self]


_KINDS = {
    ErrorCode.STUDENT_NOT_FOUND: "not_found",
    ErrorCode.STUDENT_NOT_ENROLLED: "not_enrolled",
    ErrorCode.COURSE_NOT_IN_PROMOTION: "not_enrolled",
    ErrorCode.INVALID_UPDATE_TYPE: "invalid_input",
    ErrorCode.INVALID_INPUT: "invalid_input",
}


class InvalidProgressUpdate(StatsError):
    """Raised by the update parser; converted to a failure result by the engine."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
