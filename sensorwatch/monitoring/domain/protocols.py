"""Protocols (interfaces) for the storage collaborator of the monitoring engine."""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable

from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    AlertTransition,
    DeviceAlertState,
    DeviceConfig,
    Reading,
    Thresholds,
)


class DeviceUnitOfWork(Protocol):
    """
    Atomic view of one device's state while a reading batch is reconciled.

    Everything written through a unit of work is committed together when the
    context exits cleanly and discarded when it exits with an exception.
    """

    async def get_device(self) -> DeviceConfig:
        """Get the device configuration (raises DeviceNotFoundError)."""
        ...

    async def get_alert_state(self) -> DeviceAlertState:
        """Get active alerts by rule and the reconciliation watermark."""
        ...

    async def existing_reading_times(self, timestamps: list[datetime]) -> set[datetime]:
        """Return which of the given timestamps are already in the readings log."""
        ...

    async def add_readings(self, readings: list[Reading]) -> None:
        """Append readings to the log."""
        ...

    async def apply_transitions(self, transitions: list[AlertTransition]) -> None:
        """Persist opened/closed alerts and their events, assigning ids."""
        ...

    async def mark_evaluated(self, last_seen: datetime | None, last_evaluated_at: datetime | None) -> None:
        """Store the device's last_seen and reconciliation watermark."""
        ...


@runtime_checkable
class MonitoringStore(Protocol):
    """Interface for the relational store behind the engine."""

    def device_unit_of_work(self, device_id: str) -> AbstractAsyncContextManager[DeviceUnitOfWork]:
        """Open an atomic, device-scoped unit of work."""
        ...

    async def get_device(self, device_id: str) -> DeviceConfig | None:
        """Get a device configuration."""
        ...

    async def list_devices(self, organization_id: str | None = None) -> list[DeviceConfig]:
        """List devices, optionally for one organization, ordered by name."""
        ...

    async def update_device_settings(
        self, device_id: str, thresholds: Thresholds, sample_interval_min: int
    ) -> DeviceConfig:
        """Persist thresholds and reporting interval."""
        ...

    async def get_latest_reading(self, device_id: str, until: datetime | None = None) -> Reading | None:
        """Get the newest reading of a device, ignoring readings after ``until``."""
        ...

    async def list_readings(
        self, device_id: str, start: datetime | None, end: datetime, limit: int | None = None
    ) -> list[Reading]:
        """List readings with ``start <= ts <= end`` (no lower bound when start is None), newest first."""
        ...

    async def list_alerts(self, device_id: str, active_only: bool = False) -> list[Alert]:
        """List alerts of a device, newest first."""
        ...

    async def list_alert_events(self, device_id: str, limit: int) -> list[AlertEvent]:
        """List alert events of a device, newest first."""
        ...
