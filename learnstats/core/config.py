from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
DashboardProviderName = Literal["real", "placeholder"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class GuardThresholds:
    """Maximum record counts an aggregation may touch before falling back.

    The defaults are sample values with no documented derivation; they are
    configurable rather than business rules.
    """

    student_enrollments: int = 20
    teacher_courses: int = 20
    teacher_enrollments: int = 100
    course_enrollments: int = 500
    platform_progress_records: int = 1000

    def as_dict(self) -> dict[str, int]:
        return {
            "student_enrollments": self.student_enrollments,
            "teacher_courses": self.teacher_courses,
            "teacher_enrollments": self.teacher_enrollments,
            "course_enrollments": self.course_enrollments,
            "platform_progress_records": self.platform_progress_records,
        }


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    port: int
    redis_url: str | None
    log_json: bool = False
    records_file: str | None = None
    dashboard_provider: DashboardProviderName = "real"
    dashboard_cache_ttl: int = 60
    weekly_goal_minutes: int = 300
    fallback_sections_per_course: int | None = None
    guard: GuardThresholds = field(default_factory=GuardThresholds)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _load_guard_thresholds() -> GuardThresholds:
    defaults = GuardThresholds()
    return GuardThresholds(
        student_enrollments=_getenv_int(
            "GUARD_STUDENT_ENROLLMENTS", defaults.student_enrollments, minimum=1
        ),
        teacher_courses=_getenv_int(
            "GUARD_TEACHER_COURSES", defaults.teacher_courses, minimum=1
        ),
        teacher_enrollments=_getenv_int(
            "GUARD_TEACHER_ENROLLMENTS", defaults.teacher_enrollments, minimum=1
        ),
        course_enrollments=_getenv_int(
            "GUARD_COURSE_ENROLLMENTS", defaults.course_enrollments, minimum=1
        ),
        platform_progress_records=_getenv_int(
            "GUARD_PLATFORM_PROGRESS_RECORDS",
            defaults.platform_progress_records,
            minimum=1,
        ),
    )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    provider_raw = _getenv("DASHBOARD_PROVIDER", "real").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if provider_raw not in ("real", "placeholder"):
        raise ValueError(
            f"DASHBOARD_PROVIDER must be real|placeholder (got {provider_raw!r})"
        )

    port = _getenv_int("PORT", 8000, minimum=1)

    fallback_sections_raw = _getenv("FALLBACK_SECTIONS_PER_COURSE", "")
    fallback_sections = (
        _getenv_int("FALLBACK_SECTIONS_PER_COURSE", 0, minimum=1)
        if fallback_sections_raw
        else None
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        port=port,
        redis_url=_getenv("REDIS_URL", "") or None,
        log_json=_getenv_bool("LOG_JSON", False),
        records_file=_getenv("RECORDS_FILE", "") or None,
        dashboard_provider=provider_raw,
        dashboard_cache_ttl=_getenv_int("DASHBOARD_CACHE_TTL", 60),
        weekly_goal_minutes=_getenv_int("WEEKLY_GOAL_MINUTES", 300),
        fallback_sections_per_course=fallback_sections,
        guard=_load_guard_thresholds(),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
