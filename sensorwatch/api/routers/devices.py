"""API routes for device dashboards and settings."""

from fastapi import APIRouter, Depends, HTTPException, Query

from sensorwatch.api.domain.schemas import (
    AlertEventResponse,
    AlertResponse,
    DeviceResponse,
    DeviceSettingsUpdate,
    DeviceSnapshotListResponse,
    DeviceSnapshotResponse,
    ReadingResponse,
    RollupResponse,
    StatusResponse,
    TemperatureUnit,
)
from sensorwatch.api.routers.dependencies import get_monitoring_service
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.domain.exceptions import (
    ConfigurationError,
    DeviceNotFoundError,
    StorageError,
)
from sensorwatch.monitoring.domain.models import (
    DeviceConfig,
    DeviceSnapshot,
    DeviceStatus,
    Reading,
    Rollup,
    Thresholds,
    as_utc,
)
from sensorwatch.monitoring.domain.units import c_to_f, f_to_c

router = APIRouter(prefix="/api/devices", tags=["devices"])


def _temp(value: float | None, unit: TemperatureUnit) -> float | None:
    if value is None or unit == "C":
        return value
    return c_to_f(value)


def _device_to_response(device: DeviceConfig) -> DeviceResponse:
    return DeviceResponse(
        id=device.device_id,
        name=device.name,
        organization_id=device.organization_id,
        temp_min=device.thresholds.temp_min,
        temp_max=device.thresholds.temp_max,
        rh_min=device.thresholds.rh_min,
        rh_max=device.thresholds.rh_max,
        sample_interval_min=device.sample_interval_min,
        last_seen=device.last_seen,
    )


def _reading_to_response(reading: Reading, unit: TemperatureUnit) -> ReadingResponse:
    return ReadingResponse(ts=reading.ts, temp=_temp(reading.temp_c, unit), rh=reading.rh)


def _rollup_to_response(stats: Rollup, unit: TemperatureUnit, window_hours: int) -> RollupResponse:
    return RollupResponse(
        unit=unit,
        window_hours=window_hours,
        high_temp=_temp(stats.high_temp, unit),
        low_temp=_temp(stats.low_temp, unit),
        high_rh=stats.high_rh,
        low_rh=stats.low_rh,
    )


def _snapshot_to_response(
    snapshot: DeviceSnapshot, unit: TemperatureUnit, window_hours: int
) -> DeviceSnapshotResponse:
    return DeviceSnapshotResponse(
        device=_device_to_response(snapshot.device),
        status=snapshot.status,
        latest_reading=_reading_to_response(snapshot.latest_reading, unit) if snapshot.latest_reading else None,
        active_alerts=[AlertResponse.model_validate(alert) for alert in snapshot.active_alerts],
        rollup=_rollup_to_response(snapshot.rollup, unit, window_hours),
        sample_interval_min=snapshot.sample_interval_min,
        checked_at=snapshot.checked_at,
    )


@router.get("", response_model=DeviceSnapshotListResponse)
async def list_devices(
    organization_id: str | None = None,
    status: DeviceStatus | None = None,
    unit: TemperatureUnit = "C",
    service: MonitoringService = Depends(get_monitoring_service),
):
    """
    List devices with status, latest reading and 24h highs/lows (the devices grid).

    Use `status=online|alert|offline` to narrow the grid.
    """
    try:
        snapshots = await service.list_device_snapshots(organization_id, status=status)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)

    window = service.config.rollup_window_hours
    devices = [_snapshot_to_response(snapshot, unit, window) for snapshot in snapshots]
    return DeviceSnapshotListResponse(devices=devices, total=len(devices))


@router.get("/{device_id}", response_model=DeviceSnapshotResponse)
async def get_device(
    device_id: str,
    unit: TemperatureUnit = "C",
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Get the device page snapshot."""
    try:
        snapshot = await service.get_snapshot(device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return _snapshot_to_response(snapshot, unit, service.config.rollup_window_hours)


@router.get("/{device_id}/status", response_model=StatusResponse)
async def get_device_status(
    device_id: str,
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Get the current status of a device (offline > alert > online)."""
    now = as_utc(service.clock())
    try:
        status = await service.get_status(device_id, now=now)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return StatusResponse(device_id=device_id, status=status, checked_at=now)


@router.get("/{device_id}/alerts", response_model=list[AlertResponse])
async def list_device_alerts(
    device_id: str,
    active: bool = False,
    service: MonitoringService = Depends(get_monitoring_service),
):
    """List alerts of a device, newest first. Use `active=true` for open alerts only."""
    try:
        if active:
            alerts = await service.list_active_alerts(device_id)
        else:
            alerts = await service.list_alerts(device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return [AlertResponse.model_validate(alert) for alert in alerts]


@router.get("/{device_id}/alert-events", response_model=list[AlertEventResponse])
async def list_device_alert_events(
    device_id: str,
    limit: int = Query(50, ge=1, le=500),
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Alert history of a device, newest first (capped at the configured limit)."""
    try:
        events = await service.list_alert_history(device_id, limit=limit)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return [AlertEventResponse.model_validate(event) for event in events]


@router.get("/{device_id}/rollup", response_model=RollupResponse)
async def get_device_rollup(
    device_id: str,
    unit: TemperatureUnit = "C",
    service: MonitoringService = Depends(get_monitoring_service),
):
    """High/low temperature and humidity over the trailing window."""
    try:
        stats = await service.get_rollup(device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return _rollup_to_response(stats, unit, service.config.rollup_window_hours)


@router.get("/{device_id}/readings", response_model=list[ReadingResponse])
async def list_device_readings(
    device_id: str,
    unit: TemperatureUnit = "C",
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Recent readings of a device, newest first (trailing window, or the newest ones if it is empty)."""
    try:
        readings = await service.list_recent_readings(device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return [_reading_to_response(reading, unit) for reading in readings]


@router.patch("/{device_id}/settings", response_model=DeviceResponse)
async def update_device_settings(
    device_id: str,
    data: DeviceSettingsUpdate,
    service: MonitoringService = Depends(get_monitoring_service),
):
    """
    Update thresholds and/or the reporting interval.

    Only fields present in the body change; send `null` to clear a bound.
    Temperature bounds are given in `unit` and stored in °C.
    """
    try:
        device = await service.get_device(device_id)

        thresholds = None
        changed = data.model_fields_set & {"temp_min", "temp_max", "rh_min", "rh_max"}
        if changed:
            current = device.thresholds
            values = {
                "temp_min": current.temp_min,
                "temp_max": current.temp_max,
                "rh_min": current.rh_min,
                "rh_max": current.rh_max,
            }
            for name in changed:
                value = getattr(data, name)
                if name.startswith("temp") and value is not None and data.unit == "F":
                    value = f_to_c(value)
                values[name] = value
            thresholds = Thresholds(**values)

        updated = await service.update_settings(
            device_id,
            thresholds=thresholds,
            sample_interval_min=data.sample_interval_min,
        )
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=e.message)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    return _device_to_response(updated)
