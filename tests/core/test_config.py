from __future__ import annotations

import pytest

from learnstats.core.config import AppEnv, GuardThresholds, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "DASHBOARD_PROVIDER",
    "DASHBOARD_CACHE_TTL",
    "WEEKLY_GOAL_MINUTES",
    "FALLBACK_SECTIONS_PER_COURSE",
    "GUARD_STUDENT_ENROLLMENTS",
    "GUARD_TEACHER_COURSES",
    "REDIS_URL",
    "RECORDS_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.dashboard_provider == "real"
    assert settings.dashboard_cache_ttl == 60
    assert settings.weekly_goal_minutes == 300
    assert settings.fallback_sections_per_course is None
    assert settings.redis_url is None
    assert settings.guard == GuardThresholds()


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("DASHBOARD_PROVIDER", "placeholder")
    monkeypatch.setenv("DASHBOARD_CACHE_TTL", "0")
    monkeypatch.setenv("FALLBACK_SECTIONS_PER_COURSE", "10")
    monkeypatch.setenv("GUARD_TEACHER_COURSES", "5")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.dashboard_provider == "placeholder"
    assert settings.dashboard_cache_ttl == 0
    assert settings.fallback_sections_per_course == 10
    assert settings.guard.teacher_courses == 5
    assert settings.guard.student_enrollments == 20


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"


# ---- invalid values ----


def test_load_settings_rejects_invalid_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL must be"):
        load_settings()


def test_load_settings_rejects_unknown_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_PROVIDER", "mock")
    with pytest.raises(ValueError, match="DASHBOARD_PROVIDER must be real|placeholder"):
        load_settings()


def test_load_settings_rejects_non_integer_threshold(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("GUARD_STUDENT_ENROLLMENTS", "many")
    with pytest.raises(ValueError, match="GUARD_STUDENT_ENROLLMENTS must be an integer"):
        load_settings()


def test_load_settings_rejects_zero_threshold(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUARD_TEACHER_COURSES", "0")
    with pytest.raises(ValueError, match="GUARD_TEACHER_COURSES must be >= 1"):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(app_env=app_env, log_level="info", port=8000, redis_url=None)


@pytest.mark.parametrize(
    ("app_env", "flags"),
    [
        ("dev", (True, False, False)),
        ("test", (False, True, False)),
        ("prod", (False, False, True)),
    ],
)
def test_settings_env_flags(app_env: AppEnv, flags: tuple[bool, bool, bool]) -> None:
    s = _make_settings(app_env)
    assert (s.is_dev, s.is_test, s.is_prod) == flags


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
