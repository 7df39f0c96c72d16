"""Device health and alert evaluation engine."""

from sensorwatch.monitoring.application import AlertLifecycleManager, MonitoringService
from sensorwatch.monitoring.domain import DeviceConfig, DeviceStatus, Reading, Rule, Thresholds

__all__ = [
    "AlertLifecycleManager",
    "MonitoringService",
    "DeviceConfig",
    "DeviceStatus",
    "Reading",
    "Rule",
    "Thresholds",
]
