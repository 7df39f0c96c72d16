"""Infrastructure layer for device health and alert evaluation."""

from sensorwatch.monitoring.infrastructure.memory_store import InMemoryMonitoringStore
from sensorwatch.monitoring.infrastructure.sql_store import SqlMonitoringStore

__all__ = [
    "InMemoryMonitoringStore",
    "SqlMonitoringStore",
]
