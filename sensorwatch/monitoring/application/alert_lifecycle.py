"""Alert lifecycle: open and close alerts per (device, rule) from ordered readings."""

from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from sensorwatch.monitoring.application.thresholds import evaluate
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    AlertEventType,
    AlertTransition,
    BreachDirection,
    DeviceAlertState,
    Reading,
    Rule,
    Thresholds,
    as_utc,
)


class AlertLifecycleManager:
    """
    Per-device state machine over the rules ``temp`` and ``rh``.

    Each rule is either Clear (no active alert) or Active. A breaching reading
    opens an alert when the rule is Clear; an in-range reading closes it when
    the rule is Active. Recurring breaches keep the existing alert without
    recording anything new, and a reading with no value for a rule leaves that
    rule untouched.

    Readings are applied in timestamp order and only when newer than the
    state's watermark, so re-delivered or late readings are no-ops.
    """

    def __init__(self, state: DeviceAlertState, thresholds: Thresholds):
        """
        Initialize manager for one device.

        Args:
            state: Open alerts and watermark loaded from the store (mutated in place)
            thresholds: Device thresholds to evaluate readings against
        """
        self.state = state
        self.thresholds = thresholds
        self.evaluated = 0
        self.stale = 0

    @property
    def device_id(self) -> str:
        return self.state.device_id

    @property
    def watermark(self) -> datetime | None:
        """Timestamp of the newest reading accounted for."""
        return self.state.last_evaluated_at

    def is_active(self, rule: Rule) -> bool:
        return rule in self.state.active

    def is_stale(self, reading: Reading) -> bool:
        """Whether a reading is at or before the watermark."""
        return self.watermark is not None and as_utc(reading.ts) <= as_utc(self.watermark)

    def apply(self, readings: Iterable[Reading]) -> list[AlertTransition]:
        """
        Apply a batch of readings.

        Args:
            readings: Readings in any order

        Returns:
            Transitions in the order they happened
        """
        transitions: list[AlertTransition] = []

        for reading in sorted(readings, key=lambda r: as_utc(r.ts)):
            if self.is_stale(reading):
                self.stale += 1
                logger.debug(f"Skipping reading at {reading.ts} for device {self.device_id}: not after {self.watermark}")
                continue
            transitions.extend(self.apply_reading(reading))

        return transitions

    def apply_reading(self, reading: Reading) -> list[AlertTransition]:
        """Apply one reading that is newer than the watermark."""
        ts = as_utc(reading.ts)
        transitions = []

        for rule, direction in evaluate(reading, self.thresholds).items():
            value = reading.value_for(rule)
            if value is None:
                continue

            active = self.state.active.get(rule)
            if direction != BreachDirection.NONE and active is None:
                transitions.append(self._open(rule, direction, value, ts))
            elif direction == BreachDirection.NONE and active is not None:
                transitions.append(self._close(active, value, ts))

        self.state.last_evaluated_at = ts
        self.evaluated += 1
        return transitions

    def _open(self, rule: Rule, direction: BreachDirection, value: float, ts: datetime) -> AlertTransition:
        alert = Alert(device_id=self.device_id, rule=rule, breach_value=value, created_at=ts)
        self.state.active[rule] = alert

        logger.info(f"Alert opened for device {self.device_id}: {rule} {direction} at {value} ({ts})")
        return AlertTransition(alert=alert, event=self._event(alert, AlertEventType.BREACH, value, ts))

    def _close(self, alert: Alert, value: float, ts: datetime) -> AlertTransition:
        alert.active = False
        alert.recovery_value = value
        alert.recovered_at = ts
        del self.state.active[alert.rule]

        logger.info(f"Alert recovered for device {self.device_id}: {alert.rule} at {value} ({ts})")
        return AlertTransition(alert=alert, event=self._event(alert, AlertEventType.RECOVERY, value, ts))

    def _event(self, alert: Alert, event_type: AlertEventType, value: float, ts: datetime) -> AlertEvent:
        return AlertEvent(
            device_id=self.device_id,
            rule=alert.rule,
            event_type=event_type,
            value=value,
            created_at=ts,
            alert_id=alert.id,
        )
