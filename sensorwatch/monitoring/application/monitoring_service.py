"""Monitoring service: ingest reading batches and serve dashboard projections."""

import asyncio
import uuid
from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from loguru import logger

from sensorwatch.logging import LoggingContext
from sensorwatch.config import MonitoringConfig
from sensorwatch.monitoring.application.alert_lifecycle import AlertLifecycleManager
from sensorwatch.monitoring.application.liveness import clamp_interval
from sensorwatch.monitoring.application.rollup import rollup, trailing_window
from sensorwatch.monitoring.application.status import device_status
from sensorwatch.monitoring.domain.exceptions import (
    ConfigurationError,
    DeviceNotFoundError,
    IngestAuthenticationError,
    InvalidReadingError,
)
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEvent,
    BatchIngestResult,
    DeviceConfig,
    DeviceSnapshot,
    DeviceStatus,
    IngestResult,
    Reading,
    Rollup,
    Thresholds,
    as_utc,
    finite_or_none,
)
from sensorwatch.monitoring.domain.protocols import MonitoringStore
from sensorwatch.monitoring.domain.units import snap_interval


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MonitoringService:
    """
    Entry point of the evaluation engine for the ingestion and dashboard layers.

    Reconciliation for one device is serialized through a per-device lock and
    runs inside one unit of work, so readings, last_seen, alerts and alert
    events are committed together. Different devices are independent.
    """

    def __init__(
        self,
        store: MonitoringStore,
        config: MonitoringConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize monitoring service.

        Args:
            store: Storage collaborator
            config: Monitoring configuration (defaults to environment settings)
            clock: Returns the current time, injectable for tests
        """
        self.store = store
        self.config = config or MonitoringConfig()
        self.clock = clock or utc_now
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(
        self, device_id: str, readings: Sequence[Reading], ingest_key: str | None = None
    ) -> IngestResult:
        """
        Store and evaluate a batch of readings for one device.

        Args:
            device_id: Device the readings belong to
            readings: Readings in any order, possibly containing duplicates
            ingest_key: When given, must match the device's ingest key

        Returns:
            Counts, alert transitions and the resulting device status

        Raises:
            DeviceNotFoundError: Unknown device
            IngestAuthenticationError: Ingest key mismatch
            InvalidReadingError: Empty, oversized or untimestamped batch
            StorageError: The store failed; the batch can be retried as a whole
        """
        normalized = self._normalize(device_id, readings)
        now = as_utc(self.clock())

        with LoggingContext(device_id=device_id, batch_id=uuid.uuid4().hex[:8]):
            async with self._locks[device_id]:
                result = await self._reconcile(device_id, normalized, ingest_key, now)

            result.status = await self.get_status(device_id, now=now)
            logger.info(
                f"Ingested batch for device {device_id}: {result.stored} stored, "
                f"{result.duplicates} duplicates, {result.stale} stale, "
                f"{len(result.opened)} opened, {len(result.closed)} recovered, status={result.status}"
            )
            return result

    async def ingest_many(self, batches: Mapping[str, Sequence[Reading]]) -> BatchIngestResult:
        """
        Ingest batches for several devices concurrently.

        A failure for one device is recorded in the result and does not stop
        the others.
        """
        outcome = BatchIngestResult()

        async def ingest_one(device_id: str, readings: Sequence[Reading]):
            try:
                outcome.results[device_id] = await self.ingest(device_id, readings)
            except Exception as e:
                logger.error(f"Ingest failed for device {device_id}: {e}")
                outcome.failures[device_id] = e

        await asyncio.gather(*[ingest_one(device_id, readings) for device_id, readings in batches.items()])

        logger.info(f"Batch ingest complete: {len(outcome.results)} succeeded, {len(outcome.failures)} failed")
        return outcome

    def _normalize(self, device_id: str, readings: Sequence[Reading]) -> list[Reading]:
        if not readings:
            raise InvalidReadingError("Reading batch is empty", details={"device_id": device_id})
        if len(readings) > self.config.max_batch_size:
            raise InvalidReadingError(
                f"Reading batch of {len(readings)} exceeds the limit of {self.config.max_batch_size}",
                details={"device_id": device_id, "count": len(readings)},
            )
        if any(reading.ts is None for reading in readings):
            raise InvalidReadingError("Every reading needs a timestamp", details={"device_id": device_id})
        return [replace(reading, ts=as_utc(reading.ts)) for reading in readings]

    async def _reconcile(
        self, device_id: str, readings: list[Reading], ingest_key: str | None, now: datetime
    ) -> IngestResult:
        result = IngestResult(device_id=device_id)

        async with self.store.device_unit_of_work(device_id) as uow:
            device = await uow.get_device()
            if ingest_key is not None and device.ingest_key != ingest_key:
                raise IngestAuthenticationError(device_id)

            # First reading wins for a repeated timestamp
            unique: dict[datetime, Reading] = {}
            for reading in readings:
                unique.setdefault(reading.ts, reading)
            existing = await uow.existing_reading_times(list(unique))
            fresh = [reading for ts, reading in unique.items() if ts not in existing]
            result.duplicates = len(readings) - len(fresh)

            await uow.add_readings(fresh)
            result.stored = len(fresh)

            # Readings dated past the horizon are kept but cannot advance the watermark
            horizon = self._horizon(now)
            current = [reading for reading in fresh if reading.ts <= horizon]
            if len(current) < len(fresh):
                logger.warning(
                    f"Device {device_id} sent {len(fresh) - len(current)} readings dated after {horizon}; not evaluated"
                )

            state = await uow.get_alert_state()
            manager = AlertLifecycleManager(state, device.thresholds)
            result.transitions = manager.apply(current)
            result.evaluated = manager.evaluated
            result.stale = manager.stale + len(fresh) - len(current)
            await uow.apply_transitions(result.transitions)

            last_seen = device.last_seen
            if fresh:
                newest = min(max(reading.ts for reading in fresh), now)
                last_seen = newest if last_seen is None else max(as_utc(last_seen), newest)
            await uow.mark_evaluated(last_seen, state.last_evaluated_at)

        return result

    # ------------------------------------------------------------------
    # Dashboard projections
    # ------------------------------------------------------------------

    async def get_device(self, device_id: str) -> DeviceConfig:
        device = await self.store.get_device(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    async def get_status(self, device_id: str, now: datetime | None = None) -> DeviceStatus:
        """Current status of a device (offline > alert > online)."""
        now = as_utc(now or self.clock())
        device = await self.get_device(device_id)
        latest = await self.store.get_latest_reading(device_id, until=self._horizon(now))
        return self._status(device, latest, now)

    async def list_active_alerts(self, device_id: str) -> list[Alert]:
        await self.get_device(device_id)
        return await self.store.list_alerts(device_id, active_only=True)

    async def list_alerts(self, device_id: str) -> list[Alert]:
        await self.get_device(device_id)
        return await self.store.list_alerts(device_id)

    async def list_alert_history(self, device_id: str, limit: int | None = None) -> list[AlertEvent]:
        """Alert events of a device, newest first, capped at the configured history limit."""
        await self.get_device(device_id)
        cap = self.config.alert_history_limit
        limit = cap if limit is None else max(1, min(limit, cap))
        return await self.store.list_alert_events(device_id, limit)

    async def get_rollup(self, device_id: str, now: datetime | None = None) -> Rollup:
        """High/low statistics over the trailing rollup window."""
        await self.get_device(device_id)
        return await self._rollup(device_id, now)

    async def get_snapshot(self, device_id: str, now: datetime | None = None) -> DeviceSnapshot:
        """Everything the device page shows, computed in one place."""
        device = await self.get_device(device_id)
        return await self._snapshot(device, now)

    async def list_device_snapshots(
        self,
        organization_id: str | None = None,
        status: DeviceStatus | None = None,
        now: datetime | None = None,
    ) -> list[DeviceSnapshot]:
        """
        Snapshots for the devices grid.

        Args:
            organization_id: Only devices of this organization
            status: Only devices whose derived status is this one
            now: Evaluation time
        """
        now = now or self.clock()
        devices = await self.store.list_devices(organization_id)
        snapshots = await asyncio.gather(*[self._snapshot(device, now) for device in devices])
        return [snapshot for snapshot in snapshots if status is None or snapshot.status == status]

    async def list_recent_readings(self, device_id: str, now: datetime | None = None) -> list[Reading]:
        """
        Reading history for the device page, newest first.

        Readings of the trailing window when there are any, otherwise the
        newest readings regardless of age. Readings dated past the clock
        horizon are left out.
        """
        await self.get_device(device_id)
        now = as_utc(now or self.clock())
        limit = self.config.recent_readings_limit
        start, _ = trailing_window(now, self.config.rollup_window_hours)
        end = self._horizon(now)

        readings = await self.store.list_readings(device_id, start, end, limit=limit)
        if not readings:
            readings = await self.store.list_readings(device_id, None, end, limit=limit)
        return readings

    async def _snapshot(self, device: DeviceConfig, now: datetime | None) -> DeviceSnapshot:
        now = as_utc(now or self.clock())
        latest = await self.store.get_latest_reading(device.device_id, until=self._horizon(now))
        return DeviceSnapshot(
            device=device,
            status=self._status(device, latest, now),
            latest_reading=latest,
            active_alerts=await self.store.list_alerts(device.device_id, active_only=True),
            rollup=await self._rollup(device.device_id, now),
            sample_interval_min=self._interval(device.sample_interval_min),
            checked_at=now,
        )

    async def _rollup(self, device_id: str, now: datetime | None) -> Rollup:
        start, end = trailing_window(now or self.clock(), self.config.rollup_window_hours)
        readings = await self.store.list_readings(device_id, start, end, limit=self.config.rollup_max_readings)
        return rollup(readings, start, end)

    def _status(self, device: DeviceConfig, latest: Reading | None, now: datetime | None) -> DeviceStatus:
        device = replace(device, sample_interval_min=self._interval(device.sample_interval_min))
        return device_status(device, latest, now or self.clock(), self.config.offline_grace_factor)

    def _horizon(self, now: datetime) -> datetime:
        """Latest reading timestamp accepted as current at ``now``."""
        return as_utc(now) + timedelta(seconds=self.config.future_tolerance_s)

    def _interval(self, minutes: int | None) -> int:
        return clamp_interval(
            minutes,
            minimum=self.config.min_interval_min,
            maximum=self.config.max_interval_min,
            default=self.config.default_interval_min,
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def update_settings(
        self,
        device_id: str,
        thresholds: Thresholds | None = None,
        sample_interval_min: int | None = None,
    ) -> DeviceConfig:
        """
        Persist thresholds and/or the reporting interval.

        The interval is clamped and snapped to the option set. Inverted
        ranges are stored as given; the threshold evaluator treats them as
        disabled.

        Raises:
            DeviceNotFoundError: Unknown device
            ConfigurationError: A bound is not a finite number
        """
        device = await self.get_device(device_id)
        thresholds = thresholds or device.thresholds
        for name, bound in vars(thresholds).items():
            if bound is not None and finite_or_none(bound) is None:
                raise ConfigurationError(f"Threshold {name} must be a finite number", details={"device_id": device_id})

        interval = snap_interval(
            sample_interval_min if sample_interval_min is not None else device.sample_interval_min,
            minimum=self.config.min_interval_min,
            maximum=self.config.max_interval_min,
            step=self.config.interval_step_min,
            default=self.config.default_interval_min,
        )

        for name, (low, high) in {
            "temp": (thresholds.temp_min, thresholds.temp_max),
            "rh": (thresholds.rh_min, thresholds.rh_max),
        }.items():
            if low is not None and high is not None and low > high:
                logger.warning(f"Device {device_id} has an inverted {name} range ({low} > {high}); rule disabled")

        async with self._locks[device_id]:
            updated = await self.store.update_device_settings(device_id, thresholds, interval)

        logger.info(f"Updated settings for device {device_id}: interval={interval}min")
        return updated
