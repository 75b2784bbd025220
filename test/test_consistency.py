from datetime import datetime, timedelta, timezone

import pytest

from py_read_models import ConsistencyMonitor
from helpers import make_event


@pytest.fixture
def monitor():
    yield ConsistencyMonitor()


def test_unknown_projection_has_zero_stats(monitor):
    assert monitor.get_average_lag("unknown") == 0
    assert monitor.get_max_lag("unknown") == 0
    assert monitor.get_sample_count("unknown") == 0


def test_record_lag_increments_sample_count(monitor):
    monitor.record_lag("proj", 100)
    monitor.record_lag("proj", 100)
    assert monitor.get_sample_count("proj") == 2


def test_average_and_max(monitor):
    monitor.record_lag("proj", 50)
    monitor.record_lag("proj", 300)
    monitor.record_lag("proj", 100)
    assert monitor.get_average_lag("proj") == 150
    assert monitor.get_max_lag("proj") == 300


def test_projections_are_tracked_independently(monitor):
    monitor.record_lag("a", 10)
    monitor.record_lag("b", 9000)
    assert monitor.get_max_lag("a") == 10
    assert monitor.is_healthy("a")
    assert not monitor.is_healthy("b")
    assert monitor.tracked_projections() == ["a", "b"]


def test_is_healthy_for_never_seen_projection(monitor):
    assert monitor.is_healthy("new-proj")
    assert monitor.is_healthy("new-proj", threshold_ms=-1)


def test_is_healthy_threshold_is_inclusive(monitor):
    monitor.record_lag("proj", 5000)
    assert monitor.is_healthy("proj")
    assert monitor.is_healthy("proj", 5000)
    assert not monitor.is_healthy("proj", 4999)


def test_is_healthy_default_threshold(monitor):
    monitor.record_lag("proj", 4000)
    assert monitor.is_healthy("proj")
    monitor.record_lag("proj", 5001)
    assert not monitor.is_healthy("proj")


def test_configured_default_threshold():
    monitor = ConsistencyMonitor(default_threshold_ms=100)
    monitor.record_lag("proj", 150)
    assert not monitor.is_healthy("proj")
    assert monitor.is_healthy("proj", 200)
    assert not monitor.get_report().overall_healthy


def test_report_includes_all_projections(monitor):
    monitor.record_lag("p1", 100)
    monitor.record_lag("p1", 300)
    monitor.record_lag("p2", 200)
    report = monitor.get_report()

    assert set(report.projections) == {"p1", "p2"}
    p1 = report.projections["p1"]
    assert p1.average_lag_ms == 200
    assert p1.max_lag_ms == 300
    assert p1.sample_count == 2
    assert p1.is_healthy
    assert report.overall_healthy


def test_report_unhealthy_when_any_projection_is_slow(monitor):
    monitor.record_lag("fast", 100)
    monitor.record_lag("slow", 9999)
    report = monitor.get_report(5000)
    assert not report.overall_healthy
    assert report.projections["fast"].is_healthy
    assert not report.projections["slow"].is_healthy
    assert monitor.get_report(10000).overall_healthy


def test_empty_report_is_healthy(monitor):
    report = monitor.get_report()
    assert report.projections == {}
    assert report.overall_healthy


def test_reset_clears_all_samples(monitor):
    monitor.record_lag("proj", 9000)
    monitor.reset()
    assert monitor.get_sample_count("proj") == 0
    assert monitor.get_average_lag("proj") == 0
    assert monitor.is_healthy("proj")
    assert monitor.get_report().projections == {}


def test_bounded_window_keeps_latest_samples():
    monitor = ConsistencyMonitor(max_samples=2)
    monitor.record_lag("proj", 9000)
    monitor.record_lag("proj", 10)
    monitor.record_lag("proj", 30)
    assert monitor.get_sample_count("proj") == 2
    assert monitor.get_max_lag("proj") == 30
    assert monitor.get_average_lag("proj") == 20
    assert monitor.is_healthy("proj")


def test_invalid_max_samples():
    with pytest.raises(ValueError):
        ConsistencyMonitor(max_samples=0)


def test_record_event_applied_measures_from_occurred_at(monitor):
    occurred = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    event = make_event(occurred_at=occurred)
    lag = monitor.record_event_applied("proj", event, applied_at=occurred + timedelta(seconds=2))
    assert lag == 2000
    assert monitor.get_max_lag("proj") == 2000


def test_record_event_applied_treats_naive_as_utc_and_clamps_skew(monitor):
    event = make_event(occurred_at=datetime(2026, 1, 1, 12, 0, 0))
    lag = monitor.record_event_applied(
        "proj", event, applied_at=datetime(2026, 1, 1, 11, 59, 59, tzinfo=timezone.utc)
    )
    assert lag == 0
    assert monitor.get_sample_count("proj") == 1


def test_record_event_applied_defaults_to_now(monitor):
    event = make_event(occurred_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    lag = monitor.record_event_applied("proj", event)
    assert 1000 <= lag < 60000
