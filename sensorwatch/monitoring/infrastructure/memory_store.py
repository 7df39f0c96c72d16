"""In-memory MonitoringStore for tests, demos and single-process deployments."""

import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import AsyncGenerator

from loguru import logger

from sensorwatch.monitoring.domain.exceptions import DeviceNotFoundError
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    AlertTransition,
    DeviceAlertState,
    DeviceConfig,
    Reading,
    Thresholds,
    as_utc,
)
from sensorwatch.monitoring.domain.protocols import MonitoringStore


class InMemoryMonitoringStore(MonitoringStore):
    """Simple dict-backed storage; writes of a unit of work become visible on commit."""

    def __init__(self, devices: list[DeviceConfig] | None = None):
        self.devices: dict[str, DeviceConfig] = {}
        self.readings: dict[str, dict[datetime, Reading]] = {}
        self.alerts: dict[int, Alert] = {}
        self.events: list[AlertEvent] = []
        self._alert_ids = itertools.count(1)
        self._event_ids = itertools.count(1)

        for device in devices or []:
            self.add_device(device)

    def add_device(self, device: DeviceConfig) -> DeviceConfig:
        """Register a device (replacing any previous configuration)."""
        self.devices[device.device_id] = device
        self.readings.setdefault(device.device_id, {})
        return device

    @asynccontextmanager
    async def device_unit_of_work(self, device_id: str) -> AsyncGenerator["InMemoryDeviceUnitOfWork", None]:
        """Open a unit of work; staged writes are applied only if the block succeeds."""
        uow = InMemoryDeviceUnitOfWork(self, device_id)
        yield uow
        uow.commit()

    async def get_device(self, device_id: str) -> DeviceConfig | None:
        device = self.devices.get(device_id)
        return replace(device) if device else None

    async def list_devices(self, organization_id: str | None = None) -> list[DeviceConfig]:
        devices = [
            replace(d) for d in self.devices.values() if organization_id is None or d.organization_id == organization_id
        ]
        return sorted(devices, key=lambda d: d.name)

    async def update_device_settings(
        self, device_id: str, thresholds: Thresholds, sample_interval_min: int
    ) -> DeviceConfig:
        device = self.devices.get(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        device.thresholds = thresholds
        device.sample_interval_min = sample_interval_min
        return replace(device)

    async def get_latest_reading(self, device_id: str, until: datetime | None = None) -> Reading | None:
        readings = self.readings.get(device_id) or {}
        eligible = [ts for ts in readings if until is None or ts <= as_utc(until)]
        if not eligible:
            return None
        return readings[max(eligible)]

    async def list_readings(
        self, device_id: str, start: datetime | None, end: datetime, limit: int | None = None
    ) -> list[Reading]:
        end = as_utc(end)
        matching = [
            r
            for ts, r in (self.readings.get(device_id) or {}).items()
            if (start is None or as_utc(start) <= ts) and ts <= end
        ]
        matching.sort(key=lambda r: r.ts, reverse=True)
        return matching[:limit] if limit else matching

    async def list_alerts(self, device_id: str, active_only: bool = False) -> list[Alert]:
        alerts = [
            replace(a) for a in self.alerts.values() if a.device_id == device_id and (a.active or not active_only)
        ]
        return sorted(alerts, key=lambda a: a.id, reverse=True)

    async def list_alert_events(self, device_id: str, limit: int) -> list[AlertEvent]:
        events = [e for e in self.events if e.device_id == device_id]
        events.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return events[:limit]


@dataclass
class InMemoryDeviceUnitOfWork:
    """Stages one device's writes until commit."""

    store: InMemoryMonitoringStore
    device_id: str
    new_readings: list[Reading] = field(default_factory=list)
    transitions: list[AlertTransition] = field(default_factory=list)
    evaluated: tuple[datetime | None, datetime | None] | None = None

    async def get_device(self) -> DeviceConfig:
        device = await self.store.get_device(self.device_id)
        if device is None:
            raise DeviceNotFoundError(self.device_id)
        return device

    async def get_alert_state(self) -> DeviceAlertState:
        device = await self.get_device()
        active = await self.store.list_alerts(self.device_id, active_only=True)
        return DeviceAlertState(
            device_id=self.device_id,
            active={alert.rule: alert for alert in active},
            last_evaluated_at=device.last_evaluated_at,
        )

    async def existing_reading_times(self, timestamps: list[datetime]) -> set[datetime]:
        logged = self.store.readings.get(self.device_id) or {}
        return {ts for ts in timestamps if as_utc(ts) in logged}

    async def add_readings(self, readings: list[Reading]) -> None:
        self.new_readings.extend(readings)

    async def apply_transitions(self, transitions: list[AlertTransition]) -> None:
        self.transitions.extend(transitions)

    async def mark_evaluated(self, last_seen: datetime | None, last_evaluated_at: datetime | None) -> None:
        self.evaluated = (last_seen, last_evaluated_at)

    def commit(self):
        """Apply staged writes to the store."""
        store = self.store
        log = store.readings.setdefault(self.device_id, {})
        for reading in self.new_readings:
            log[as_utc(reading.ts)] = reading

        for transition in self.transitions:
            alert = transition.alert
            if alert.id is None:
                alert.id = next(store._alert_ids)
            store.alerts[alert.id] = replace(alert)
            store.events.append(replace(transition.event, alert_id=alert.id, id=next(store._event_ids)))

        if self.evaluated is not None:
            device = store.devices[self.device_id]
            device.last_seen, device.last_evaluated_at = self.evaluated

        logger.debug(
            f"Committed {len(self.new_readings)} readings and {len(self.transitions)} alert transitions "
            f"for device {self.device_id}"
        )
