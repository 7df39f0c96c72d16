"""Repositories for data access."""

from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sensorwatch.api.domain.models import Alert, AlertEvent, Device, SensorReading
from sensorwatch.monitoring.domain.models import AlertEventType, Rule


class DeviceRepository:
    """Repository for Device entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        device_id: str,
        name: str,
        organization_id: str | None = None,
        ingest_key: str | None = None,
        temp_min: float | None = None,
        temp_max: float | None = None,
        rh_min: float | None = None,
        rh_max: float | None = None,
        sample_interval_min: int = 15,
    ) -> Device:
        """Create a new device."""
        device = Device(
            id=device_id,
            name=name,
            organization_id=organization_id,
            ingest_key=ingest_key,
            temp_min=temp_min,
            temp_max=temp_max,
            rh_min=rh_min,
            rh_max=rh_max,
            sample_interval_min=sample_interval_min,
        )
        self.session.add(device)
        await self.session.flush()
        return device

    async def get_by_id(self, device_id: str, for_update: bool = False) -> Device | None:
        """Get device by ID, optionally locking the row until the transaction ends."""
        query = select(Device).where(Device.id == device_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self, organization_id: str | None = None) -> Sequence[Device]:
        """List devices ordered by name."""
        query = select(Device).order_by(Device.name)
        if organization_id is not None:
            query = query.where(Device.organization_id == organization_id)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def update(self, device: Device) -> Device:
        """Update a device."""
        await self.session.flush()
        return device


class SensorReadingRepository:
    """Repository for SensorReading entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def bulk_create(self, device_id: str, readings_data: list[dict]) -> list[SensorReading]:
        """Bulk create readings from dicts with ts, temp_c, rh."""
        readings = []
        for data in readings_data:
            reading = SensorReading(
                device_id=device_id,
                ts=data["ts"],
                temp_c=data.get("temp_c"),
                rh=data.get("rh"),
            )
            self.session.add(reading)
            readings.append(reading)

        await self.session.flush()
        return readings

    async def list_timestamps(self, device_id: str, start: datetime, end: datetime) -> list[datetime]:
        """Timestamps already logged for a device in ``[start, end]``."""
        result = await self.session.execute(
            select(SensorReading.ts).where(
                SensorReading.device_id == device_id,
                SensorReading.ts >= start,
                SensorReading.ts <= end,
            )
        )
        return list(result.scalars().all())

    async def get_latest(self, device_id: str, until: datetime | None = None) -> SensorReading | None:
        """Get the newest reading of a device, optionally not after ``until``."""
        query = select(SensorReading).where(SensorReading.device_id == device_id)
        if until is not None:
            query = query.where(SensorReading.ts <= until)
        result = await self.session.execute(query.order_by(SensorReading.ts.desc()).limit(1))
        return result.scalar_one_or_none()

    async def list_by_device(
        self, device_id: str, start: datetime | None, end: datetime, limit: int | None = None
    ) -> Sequence[SensorReading]:
        """List readings in ``[start, end]`` (open start when None), newest first."""
        query = (
            select(SensorReading)
            .where(SensorReading.device_id == device_id, SensorReading.ts <= end)
            .order_by(SensorReading.ts.desc())
        )
        if start is not None:
            query = query.where(SensorReading.ts >= start)
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()


class AlertRepository:
    """Repository for Alert entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, device_id: str, rule: Rule, breach_value: float, created_at: datetime) -> Alert:
        """Create a new active alert."""
        alert = Alert(
            device_id=device_id,
            rule=rule,
            active=True,
            breach_value=breach_value,
            created_at=created_at,
        )
        self.session.add(alert)
        await self.session.flush()
        return alert

    async def get_by_id(self, alert_id: int) -> Alert | None:
        """Get alert by ID."""
        result = await self.session.execute(select(Alert).where(Alert.id == alert_id))
        return result.scalar_one_or_none()

    async def list_by_device(self, device_id: str, active_only: bool = False) -> Sequence[Alert]:
        """List alerts of a device, newest first."""
        query = select(Alert).where(Alert.device_id == device_id).order_by(Alert.id.desc())
        if active_only:
            query = query.where(Alert.active.is_(True))
        result = await self.session.execute(query)
        return result.scalars().all()

    async def close(self, alert: Alert, recovery_value: float, recovered_at: datetime) -> Alert:
        """Mark an alert as recovered."""
        alert.active = False
        alert.recovery_value = recovery_value
        alert.recovered_at = recovered_at
        await self.session.flush()
        return alert


class AlertEventRepository:
    """Repository for AlertEvent entities (append-only)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        alert_id: int,
        device_id: str,
        event_type: AlertEventType,
        value: float,
        created_at: datetime,
    ) -> AlertEvent:
        """Append an alert event."""
        event = AlertEvent(
            alert_id=alert_id,
            device_id=device_id,
            event_type=event_type,
            value=value,
            created_at=created_at,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_by_device(self, device_id: str, limit: int = 50) -> list[tuple[AlertEvent, Rule]]:
        """List events of a device with their alert's rule, newest first."""
        result = await self.session.execute(
            select(AlertEvent, Alert.rule)
            .join(Alert, AlertEvent.alert_id == Alert.id)
            .where(AlertEvent.device_id == device_id)
            .order_by(AlertEvent.created_at.desc(), AlertEvent.id.desc())
            .limit(limit)
        )
        return [(event, rule) for event, rule in result.all()]
