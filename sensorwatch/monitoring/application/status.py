"""Status aggregation: the single place where a device's overall status is derived."""

from collections.abc import Iterable, Mapping
from datetime import datetime

from sensorwatch.monitoring.application.liveness import GRACE_FACTOR, is_offline
from sensorwatch.monitoring.application.thresholds import evaluate
from sensorwatch.monitoring.domain.models import (
    BreachDirection,
    DeviceConfig,
    DeviceStatus,
    Reading,
    Rule,
)


def aggregate_status(
    offline: bool, breaches: Mapping[Rule, BreachDirection] | Iterable[BreachDirection]
) -> DeviceStatus:
    """
    Combine liveness and breach results into one status.

    Offline wins over alert, which wins over online.
    """
    if offline:
        return DeviceStatus.OFFLINE
    directions = breaches.values() if isinstance(breaches, Mapping) else breaches
    if any(direction != BreachDirection.NONE for direction in directions):
        return DeviceStatus.ALERT
    return DeviceStatus.ONLINE


def device_status(
    device: DeviceConfig,
    latest_reading: Reading | None,
    now: datetime,
    grace_factor: float = GRACE_FACTOR,
) -> DeviceStatus:
    """Derive a device's status from its configuration and most recent reading."""
    offline = is_offline(device.last_seen, device.sample_interval_min, now, grace_factor)
    breaches = evaluate(latest_reading, device.thresholds) if latest_reading is not None else {}
    return aggregate_status(offline, breaches)
