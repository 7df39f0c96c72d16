"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sensorwatch.monitoring.domain.models import AlertEventType, DeviceStatus, Rule
from sensorwatch.monitoring.domain.units import INTERVAL_OPTIONS

TemperatureUnit = Literal["C", "F"]


# Ingest Schemas
class ReadingIn(BaseModel):
    """Single reading as sent by device firmware."""

    ts: datetime
    temp_c: float | None = None
    rh: float | None = None


class IngestRequest(BaseModel):
    """Schema for a device's reading batch."""

    device_id: str = Field(..., min_length=1, max_length=64)
    ingest_key: str = Field(..., min_length=1)
    readings: list[ReadingIn] = Field(..., min_length=1)


class IngestResponse(BaseModel):
    """Schema for ingest result."""

    ok: bool = True
    device_id: str
    stored: int
    duplicates: int
    stale: int
    opened: int
    recovered: int
    status: DeviceStatus


# Device Schemas
class DeviceResponse(BaseModel):
    """Schema for device response."""

    id: str
    name: str
    organization_id: str | None
    temp_min: float | None
    temp_max: float | None
    rh_min: float | None
    rh_max: float | None
    sample_interval_min: int | None
    last_seen: datetime | None


class DeviceSettingsUpdate(BaseModel):
    """
    Schema for updating thresholds and reporting interval.

    Only fields present in the request are changed; an explicit null clears a
    bound. Temperatures are interpreted in ``unit``.
    """

    unit: TemperatureUnit = "C"
    temp_min: float | None = None
    temp_max: float | None = None
    rh_min: float | None = Field(None, ge=0, le=100)
    rh_max: float | None = Field(None, ge=0, le=100)
    sample_interval_min: int | None = Field(None, description="One of 5, 10, ..., 120")

    @field_validator("sample_interval_min")
    @classmethod
    def check_interval(cls, value: int | None) -> int | None:
        if value is not None and value not in INTERVAL_OPTIONS:
            raise ValueError(f"sample_interval_min must be one of {list(INTERVAL_OPTIONS)}")
        return value

    @model_validator(mode="after")
    def check_ranges(self):
        for low, high in ((self.temp_min, self.temp_max), (self.rh_min, self.rh_max)):
            if low is not None and high is not None and low > high:
                raise ValueError("Minimum must not exceed maximum")
        return self


# Reading / Alert Schemas
class ReadingResponse(BaseModel):
    """Schema for reading response (temperature in the requested unit)."""

    model_config = ConfigDict(from_attributes=True)

    ts: datetime
    temp: float | None
    rh: float | None


class AlertResponse(BaseModel):
    """Schema for alert response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    rule: Rule
    active: bool
    breach_value: float
    recovery_value: float | None
    created_at: datetime
    recovered_at: datetime | None


class AlertEventResponse(BaseModel):
    """Schema for alert event response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    alert_id: int
    rule: Rule
    event_type: AlertEventType
    value: float
    created_at: datetime


class RollupResponse(BaseModel):
    """Schema for windowed high/low statistics."""

    unit: TemperatureUnit = "C"
    window_hours: int
    high_temp: float | None
    low_temp: float | None
    high_rh: float | None
    low_rh: float | None


class StatusResponse(BaseModel):
    """Schema for device status."""

    device_id: str
    status: DeviceStatus
    checked_at: datetime


class DeviceSnapshotResponse(BaseModel):
    """Schema for the device page / devices grid card."""

    device: DeviceResponse
    status: DeviceStatus
    latest_reading: ReadingResponse | None
    active_alerts: list[AlertResponse]
    rollup: RollupResponse
    sample_interval_min: int
    checked_at: datetime


class DeviceSnapshotListResponse(BaseModel):
    """Schema for list of device snapshots with count."""

    devices: list[DeviceSnapshotResponse]
    total: int
