"""Domain layer for device health and alert evaluation."""

from sensorwatch.monitoring.domain.exceptions import (
    ConfigurationError,
    DeviceNotFoundError,
    IngestAuthenticationError,
    InvalidReadingError,
    MonitoringException,
    StorageError,
)
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    AlertEventType,
    AlertTransition,
    BatchIngestResult,
    Breach,
    BreachDirection,
    DeviceAlertState,
    DeviceConfig,
    DeviceSnapshot,
    DeviceStatus,
    IngestResult,
    Reading,
    Rollup,
    Rule,
    Thresholds,
)
from sensorwatch.monitoring.domain.protocols import DeviceUnitOfWork, MonitoringStore

__all__ = [
    "Alert",
    "AlertEvent",
    "AlertEventType",
    "AlertTransition",
    "BatchIngestResult",
    "Breach",
    "BreachDirection",
    "DeviceAlertState",
    "DeviceConfig",
    "DeviceSnapshot",
    "DeviceStatus",
    "IngestResult",
    "Reading",
    "Rollup",
    "Rule",
    "Thresholds",
    "DeviceUnitOfWork",
    "MonitoringStore",
    "ConfigurationError",
    "DeviceNotFoundError",
    "IngestAuthenticationError",
    "InvalidReadingError",
    "MonitoringException",
    "StorageError",
]
