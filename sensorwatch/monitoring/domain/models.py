"""Domain models for device health and alert evaluation."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum


class Rule(StrEnum):
    """Monitored quantity an alert pertains to."""

    TEMP = "temp"
    RH = "rh"


class BreachDirection(StrEnum):
    """Side of the configured range a value falls on."""

    NONE = "none"
    LOW = "low"
    HIGH = "high"


class DeviceStatus(StrEnum):
    """Overall device status shown on the dashboard."""

    ONLINE = "online"
    OFFLINE = "offline"
    ALERT = "alert"


class AlertEventType(StrEnum):
    """Kind of entry in the alert timeline."""

    BREACH = "breach"
    RECOVERY = "recovery"


def as_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime (naive values are taken to be UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def finite_or_none(value: float | None) -> float | None:
    """Return the value as a float, or None when it is missing or not finite."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class Reading:
    """A single temperature/humidity sample reported by a device."""

    ts: datetime
    temp_c: float | None = None  # °C
    rh: float | None = None  # %RH

    def value_for(self, rule: Rule) -> float | None:
        """Value of the quantity monitored by ``rule`` (None means no signal)."""
        raw = self.temp_c if rule == Rule.TEMP else self.rh
        return finite_or_none(raw)


@dataclass(frozen=True)
class Thresholds:
    """Per-device bounds; a missing bound means no limit on that side."""

    temp_min: float | None = None
    temp_max: float | None = None
    rh_min: float | None = None
    rh_max: float | None = None

    def bounds(self, rule: Rule) -> tuple[float | None, float | None]:
        """Return ``(minimum, maximum)`` for a rule."""
        if rule == Rule.TEMP:
            return finite_or_none(self.temp_min), finite_or_none(self.temp_max)
        return finite_or_none(self.rh_min), finite_or_none(self.rh_max)

    def is_empty(self) -> bool:
        return all(bound is None for rule in Rule for bound in self.bounds(rule))


@dataclass
class DeviceConfig:
    """Device configuration and liveness bookkeeping consumed by the engine."""

    device_id: str
    name: str = ""
    organization_id: str | None = None
    thresholds: Thresholds = field(default_factory=Thresholds)
    sample_interval_min: int | None = 15
    last_seen: datetime | None = None
    last_evaluated_at: datetime | None = None  # newest reading accounted for by the alert lifecycle
    ingest_key: str | None = None


@dataclass(frozen=True)
class Breach:
    """A value outside its configured range."""

    rule: Rule
    direction: BreachDirection
    value: float
    bound: float

    @property
    def magnitude(self) -> float:
        """Distance past the violated bound, in canonical units (°C or %RH points)."""
        return abs(self.value - self.bound)


@dataclass
class Alert:
    """Current/summary state of one breach episode for a (device, rule) pair."""

    device_id: str
    rule: Rule
    breach_value: float
    created_at: datetime
    active: bool = True
    recovery_value: float | None = None
    recovered_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class AlertEvent:
    """Immutable entry of the alert timeline."""

    device_id: str
    rule: Rule
    event_type: AlertEventType
    value: float
    created_at: datetime
    alert_id: int | None = None
    id: int | None = None


@dataclass(frozen=True)
class AlertTransition:
    """An alert state change together with the event that records it."""

    alert: Alert
    event: AlertEvent

    @property
    def rule(self) -> Rule:
        return self.alert.rule

    @property
    def opened(self) -> bool:
        return self.event.event_type == AlertEventType.BREACH


@dataclass
class DeviceAlertState:
    """Open alerts and reconciliation watermark for one device."""

    device_id: str
    active: dict[Rule, Alert] = field(default_factory=dict)
    last_evaluated_at: datetime | None = None


@dataclass(frozen=True)
class Rollup:
    """Windowed high/low statistics; None when a quantity has no data in the window."""

    high_temp: float | None = None
    low_temp: float | None = None
    high_rh: float | None = None
    low_rh: float | None = None


@dataclass
class DeviceSnapshot:
    """Read-only projection of a device for the dashboard."""

    device: DeviceConfig
    status: DeviceStatus
    latest_reading: Reading | None
    active_alerts: list[Alert]
    rollup: Rollup
    sample_interval_min: int
    checked_at: datetime


@dataclass
class IngestResult:
    """Outcome of ingesting one device's reading batch."""

    device_id: str
    stored: int = 0
    duplicates: int = 0
    evaluated: int = 0
    stale: int = 0
    transitions: list[AlertTransition] = field(default_factory=list)
    status: DeviceStatus | None = None

    @property
    def opened(self) -> list[Alert]:
        return [t.alert for t in self.transitions if t.opened]

    @property
    def closed(self) -> list[Alert]:
        return [t.alert for t in self.transitions if not t.opened]


@dataclass
class BatchIngestResult:
    """Outcome of ingesting batches for several devices."""

    results: dict[str, IngestResult] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures
