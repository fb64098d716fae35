# src/source_monitor/scheduling.py
from datetime import datetime, timezone
from typing import Optional

from .constants import CheckFrequency, FREQUENCY_THRESHOLD_HOURS
from .storage.models import SourceMonitor


def hours_since(then: datetime, now: datetime) -> float:
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - then).total_seconds() / 3600.0


def is_due(monitor: SourceMonitor, now: Optional[datetime] = None, force: bool = False) -> bool:
    """
    True when the monitor was never checked, or when at least the frequency's
    threshold of hours has elapsed since its last check. `force` always wins.
    """
    if force or monitor.last_checked_at is None:
        return True
    now = now or datetime.now(timezone.utc)
    threshold = FREQUENCY_THRESHOLD_HOURS[CheckFrequency.from_string(monitor.check_frequency)]
    return hours_since(monitor.last_checked_at, now) >= threshold
