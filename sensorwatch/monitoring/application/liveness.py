"""Liveness evaluation from last report time and expected interval."""

from datetime import datetime, timedelta

from sensorwatch.monitoring.domain.models import as_utc
from sensorwatch.monitoring.domain.units import (
    DEFAULT_INTERVAL_MIN,
    MAX_INTERVAL_MIN,
    MIN_INTERVAL_MIN,
)

GRACE_FACTOR = 2.0


def clamp_interval(
    minutes: int | None,
    minimum: int = MIN_INTERVAL_MIN,
    maximum: int = MAX_INTERVAL_MIN,
    default: int = DEFAULT_INTERVAL_MIN,
) -> int:
    """Clamp a reporting interval to the supported range (None means the default)."""
    if minutes is None:
        return default
    return max(minimum, min(maximum, int(minutes)))


def offline_deadline(
    last_seen: datetime,
    expected_interval_min: int | None,
    grace_factor: float = GRACE_FACTOR,
) -> datetime:
    """Instant after which a device last seen at ``last_seen`` counts as offline."""
    interval = clamp_interval(expected_interval_min)
    return as_utc(last_seen) + timedelta(minutes=interval * grace_factor)


def is_offline(
    last_seen: datetime | None,
    expected_interval_min: int | None,
    now: datetime,
    grace_factor: float = GRACE_FACTOR,
) -> bool:
    """
    Decide whether a device is offline.

    A device is offline when it has never reported, or when more than
    ``grace_factor`` expected intervals have passed since it last did. Being
    exactly at the deadline still counts as online.

    Args:
        last_seen: Last report time, None if never seen
        expected_interval_min: Configured reporting interval in minutes (clamped to 5..120)
        now: Evaluation time
        grace_factor: Number of intervals tolerated before declaring the device offline

    Returns:
        True if the device is offline
    """
    if last_seen is None:
        return True
    return as_utc(now) > offline_deadline(last_seen, expected_interval_min, grace_factor)
