# tests/test_scheduling.py
from datetime import datetime, timezone

from source_monitor.scheduling import hours_since, is_due
from source_monitor.storage.models import SourceMonitor

from conftest import hours_ago


def monitor(frequency, last_checked_at=None):
    return SourceMonitor(
        id="m1",
        source_name="Test",
        source_url="https://example.gov/",
        source_type="dhs_page",
        check_frequency=frequency,
        last_checked_at=last_checked_at,
    )


def test_never_checked_is_always_due(now):
    assert is_due(monitor("annually"), now)


def test_weekly_threshold(now):
    assert not is_due(monitor("weekly", hours_ago(now, 167)), now)
    assert is_due(monitor("weekly", hours_ago(now, 168)), now)


def test_monthly_threshold(now):
    assert not is_due(monitor("monthly", hours_ago(now, 719)), now)
    assert is_due(monitor("monthly", hours_ago(now, 720)), now)


def test_quarterly_and_annual_thresholds(now):
    assert not is_due(monitor("quarterly", hours_ago(now, 2159)), now)
    assert is_due(monitor("quarterly", hours_ago(now, 2160)), now)
    assert not is_due(monitor("annually", hours_ago(now, 8759)), now)
    assert is_due(monitor("annually", hours_ago(now, 8760)), now)


def test_force_overrides_schedule(now):
    assert is_due(monitor("weekly", hours_ago(now, 1)), now, force=True)


def test_naive_timestamps_are_utc():
    then = datetime(2025, 6, 1, 0, 0)
    now = datetime(2025, 6, 1, 6, 0, tzinfo=timezone.utc)
    assert hours_since(then, now) == 6.0
