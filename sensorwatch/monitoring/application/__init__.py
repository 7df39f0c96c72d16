"""Application layer for device health and alert evaluation."""

from sensorwatch.monitoring.application.alert_lifecycle import AlertLifecycleManager
from sensorwatch.monitoring.application.liveness import clamp_interval, is_offline, offline_deadline
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.application.rollup import rollup, trailing_window
from sensorwatch.monitoring.application.status import aggregate_status, device_status
from sensorwatch.monitoring.application.thresholds import breach_direction, evaluate, find_breaches

__all__ = [
    "AlertLifecycleManager",
    "MonitoringService",
    "aggregate_status",
    "breach_direction",
    "clamp_interval",
    "device_status",
    "evaluate",
    "find_breaches",
    "is_offline",
    "offline_deadline",
    "rollup",
    "trailing_window",
]
