from __future__ import annotations

import logging

import pytest

from learnstats.repos.record_store import InMemoryRecordStore
from learnstats.services.dashboards import (
    PlaceholderAggregator,
    RealAggregator,
    build_dashboard_provider,
    build_services,
)
from learnstats.services.errors import AggregationFailed, CourseNotFound, StudentNotFound
from learnstats.services.lookup_cache import CourseContentIndex
from tests.conftest import add_course, add_promotion, add_user, make_settings, set_progress


class _BrokenStore(InMemoryRecordStore):
    def find_user_by_id(self, user_id: str):
        raise RuntimeError("connection reset")


def test_real_aggregator_computes_from_store(store: InMemoryRecordStore) -> None:
    add_course(store, "c1")
    add_promotion(store, "p1", ("c1",), ("s1",))
    add_user(store, "s1", promotion_id="p1")
    set_progress(store, "p1", "s1", "c1", 40)

    dashboard = RealAggregator(store).get_student_dashboard("s1")
    assert dashboard.source == "computed"
    assert dashboard.learning_stats.average_progress == 40


def test_real_aggregator_lets_not_found_through(store: InMemoryRecordStore) -> None:
    provider = RealAggregator(store)
    with pytest.raises(StudentNotFound):
        provider.get_student_dashboard("ghost")
    with pytest.raises(CourseNotFound):
        provider.get_course_analytics("ghost")


def test_real_aggregator_wraps_unexpected_errors(
    caplog: pytest.LogCaptureFixture,
) -> None:
    provider = RealAggregator(_BrokenStore())
    with caplog.at_level(logging.ERROR, logger="learnstats.services.dashboards"):
        with pytest.raises(AggregationFailed) as exc_info:
            provider.get_student_dashboard("s1")

    assert str(exc_info.value) == "Failed to get student dashboard: connection reset"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert any("student dashboard" in r.getMessage() for r in caplog.records)


def test_placeholder_payloads_are_deterministic() -> None:
    provider = PlaceholderAggregator(weekly_goal=120)

    student = provider.get_student_dashboard("anyone")
    assert student.source == "placeholder"
    assert student.learning_stats.weekly_goal == 120
    assert provider.get_teacher_dashboard("t").source == "placeholder"
    assert provider.get_admin_dashboard().source == "placeholder"
    assert provider.get_platform_course_metrics().source == "placeholder"

    analytics = provider.get_course_analytics("c9")
    assert analytics.source == "placeholder"
    assert analytics.overview.course_id == "c9"
    assert analytics == provider.get_course_analytics("c9")


def test_build_dashboard_provider_selects_variant(
    store: InMemoryRecordStore, caplog: pytest.LogCaptureFixture
) -> None:
    assert isinstance(build_dashboard_provider(make_settings(), store), RealAggregator)

    with caplog.at_level(logging.WARNING, logger="learnstats.services.dashboards"):
        provider = build_dashboard_provider(
            make_settings(dashboard_provider="placeholder"), store
        )
    assert isinstance(provider, PlaceholderAggregator)
    assert any("placeholder" in r.getMessage() for r in caplog.records)


def test_build_services_shares_one_content_index(store: InMemoryRecordStore) -> None:
    services = build_services(make_settings(dashboard_cache_ttl=15), store)

    assert services.store is store
    assert isinstance(services.content_index, CourseContentIndex)
    assert services.dashboard_cache_ttl == 15
    assert isinstance(services.dashboards, RealAggregator)
