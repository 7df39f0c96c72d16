"""SQLAlchemy implementation of MonitoringStore."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensorwatch.api.domain import models as orm
from sensorwatch.api.infrastructure.database import Database
from sensorwatch.api.infrastructure.repositories import (
    AlertEventRepository,
    AlertRepository,
    DeviceRepository,
    SensorReadingRepository,
)
from sensorwatch.monitoring.domain.exceptions import DeviceNotFoundError, StorageError
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    AlertEventType,
    AlertTransition,
    DeviceAlertState,
    DeviceConfig,
    Reading,
    Rule,
    Thresholds,
    as_utc,
)
from sensorwatch.monitoring.domain.protocols import MonitoringStore


def _utc(ts: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return as_utc(ts) if ts is not None else None


def device_to_config(device: orm.Device) -> DeviceConfig:
    """Convert device entity to engine configuration."""
    return DeviceConfig(
        device_id=device.id,
        name=device.name,
        organization_id=device.organization_id,
        thresholds=Thresholds(
            temp_min=device.temp_min,
            temp_max=device.temp_max,
            rh_min=device.rh_min,
            rh_max=device.rh_max,
        ),
        sample_interval_min=device.sample_interval_min,
        last_seen=_utc(device.last_seen),
        last_evaluated_at=_utc(device.last_evaluated_at),
        ingest_key=device.ingest_key,
    )


def reading_to_domain(reading: orm.SensorReading) -> Reading:
    return Reading(ts=as_utc(reading.ts), temp_c=reading.temp_c, rh=reading.rh)


def alert_to_domain(alert: orm.Alert) -> Alert:
    return Alert(
        id=alert.id,
        device_id=alert.device_id,
        rule=Rule(alert.rule),
        active=alert.active,
        breach_value=alert.breach_value,
        recovery_value=alert.recovery_value,
        created_at=as_utc(alert.created_at),
        recovered_at=_utc(alert.recovered_at),
    )


def event_to_domain(event: orm.AlertEvent, rule: Rule) -> AlertEvent:
    return AlertEvent(
        id=event.id,
        alert_id=event.alert_id,
        device_id=event.device_id,
        rule=Rule(rule),
        event_type=AlertEventType(event.event_type),
        value=event.value,
        created_at=as_utc(event.created_at),
    )


class SqlMonitoringStore(MonitoringStore):
    """Relational store accessed through the API layer's repositories."""

    def __init__(self, database: Database):
        """
        Initialize store.

        Args:
            database: Database connection manager
        """
        self.database = database

    @asynccontextmanager
    async def _session(self, device_id: str | None = None) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and surfaces driver failures as StorageError."""
        try:
            async with self.database.get_async_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Storage failure (device={device_id}): {e}")
            raise StorageError("Storage operation failed", device_id=device_id, original_error=e) from e

    @asynccontextmanager
    async def device_unit_of_work(self, device_id: str) -> AsyncGenerator["SqlDeviceUnitOfWork", None]:
        """Open a transaction holding a row lock on the device."""
        async with self._session(device_id) as session:
            yield SqlDeviceUnitOfWork(session, device_id)

    async def get_device(self, device_id: str) -> DeviceConfig | None:
        async with self._session(device_id) as session:
            device = await DeviceRepository(session).get_by_id(device_id)
            return device_to_config(device) if device else None

    async def list_devices(self, organization_id: str | None = None) -> list[DeviceConfig]:
        async with self._session() as session:
            devices = await DeviceRepository(session).list_all(organization_id)
            return [device_to_config(d) for d in devices]

    async def update_device_settings(
        self, device_id: str, thresholds: Thresholds, sample_interval_min: int
    ) -> DeviceConfig:
        async with self._session(device_id) as session:
            device_repo = DeviceRepository(session)
            device = await device_repo.get_by_id(device_id, for_update=True)
            if device is None:
                raise DeviceNotFoundError(device_id)

            device.temp_min = thresholds.temp_min
            device.temp_max = thresholds.temp_max
            device.rh_min = thresholds.rh_min
            device.rh_max = thresholds.rh_max
            device.sample_interval_min = sample_interval_min
            await device_repo.update(device)
            return device_to_config(device)

    async def get_latest_reading(self, device_id: str, until: datetime | None = None) -> Reading | None:
        async with self._session(device_id) as session:
            reading = await SensorReadingRepository(session).get_latest(device_id, until=_utc(until))
            return reading_to_domain(reading) if reading else None

    async def list_readings(
        self, device_id: str, start: datetime | None, end: datetime, limit: int | None = None
    ) -> list[Reading]:
        async with self._session(device_id) as session:
            readings = await SensorReadingRepository(session).list_by_device(
                device_id, _utc(start), as_utc(end), limit=limit
            )
            return [reading_to_domain(r) for r in readings]

    async def list_alerts(self, device_id: str, active_only: bool = False) -> list[Alert]:
        async with self._session(device_id) as session:
            alerts = await AlertRepository(session).list_by_device(device_id, active_only=active_only)
            return [alert_to_domain(a) for a in alerts]

    async def list_alert_events(self, device_id: str, limit: int) -> list[AlertEvent]:
        async with self._session(device_id) as session:
            rows = await AlertEventRepository(session).list_by_device(device_id, limit=limit)
            return [event_to_domain(event, rule) for event, rule in rows]


class SqlDeviceUnitOfWork:
    """Device-scoped unit of work over one session."""

    def __init__(self, session: AsyncSession, device_id: str):
        self.session = session
        self.device_id = device_id
        self.devices = DeviceRepository(session)
        self.readings = SensorReadingRepository(session)
        self.alerts = AlertRepository(session)
        self.events = AlertEventRepository(session)
        self._device: orm.Device | None = None
        self._alert_rows: dict[int, orm.Alert] = {}

    async def _load_device(self) -> orm.Device:
        if self._device is None:
            self._device = await self.devices.get_by_id(self.device_id, for_update=True)
            if self._device is None:
                raise DeviceNotFoundError(self.device_id)
        return self._device

    async def get_device(self) -> DeviceConfig:
        return device_to_config(await self._load_device())

    async def get_alert_state(self) -> DeviceAlertState:
        device = await self._load_device()
        rows = await self.alerts.list_by_device(self.device_id, active_only=True)
        self._alert_rows.update({row.id: row for row in rows})
        return DeviceAlertState(
            device_id=self.device_id,
            active={Rule(row.rule): alert_to_domain(row) for row in rows},
            last_evaluated_at=_utc(device.last_evaluated_at),
        )

    async def existing_reading_times(self, timestamps: list[datetime]) -> set[datetime]:
        if not timestamps:
            return set()
        normalized = [as_utc(ts) for ts in timestamps]
        logged = {
            as_utc(ts)
            for ts in await self.readings.list_timestamps(self.device_id, min(normalized), max(normalized))
        }
        return {ts for ts in timestamps if as_utc(ts) in logged}

    async def add_readings(self, readings: list[Reading]) -> None:
        if not readings:
            return
        await self.readings.bulk_create(
            self.device_id,
            [{"ts": as_utc(r.ts), "temp_c": r.value_for(Rule.TEMP), "rh": r.value_for(Rule.RH)} for r in readings],
        )

    async def apply_transitions(self, transitions: list[AlertTransition]) -> None:
        for transition in transitions:
            alert, event = transition.alert, transition.event

            if event.event_type == AlertEventType.BREACH:
                row = await self.alerts.create(self.device_id, alert.rule, event.value, event.created_at)
                alert.id = row.id
                self._alert_rows[row.id] = row
            else:
                row = self._alert_rows.get(alert.id) or await self.alerts.get_by_id(alert.id)
                await self.alerts.close(row, event.value, event.created_at)

            await self.events.create(
                alert_id=row.id,
                device_id=self.device_id,
                event_type=event.event_type,
                value=event.value,
                created_at=event.created_at,
            )

    async def mark_evaluated(self, last_seen: datetime | None, last_evaluated_at: datetime | None) -> None:
        device = await self._load_device()
        device.last_seen = last_seen
        device.last_evaluated_at = last_evaluated_at
        await self.devices.update(device)
