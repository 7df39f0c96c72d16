"""Shared router dependencies."""

from sensorwatch.api.infrastructure.container import get_container
from sensorwatch.monitoring.application.monitoring_service import MonitoringService


def get_monitoring_service() -> MonitoringService:
    """Get monitoring service dependency."""
    return get_container().monitoring_service()
