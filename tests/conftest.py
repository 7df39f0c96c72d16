"""Shared fixtures."""

import pytest

from sensorwatch.api.infrastructure.database import Database
from sensorwatch.config import MonitoringConfig
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.domain.models import DeviceConfig, Thresholds
from sensorwatch.monitoring.infrastructure.memory_store import InMemoryMonitoringStore
from sensorwatch.monitoring.infrastructure.sql_store import SqlMonitoringStore

from tests.factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitoring_config():
    return MonitoringConfig()


@pytest.fixture
def device():
    return DeviceConfig(
        device_id="dev-1",
        name="Cold room",
        organization_id="org-1",
        thresholds=Thresholds(temp_max=25.0),
        sample_interval_min=15,
        ingest_key="secret",
    )


@pytest.fixture
def store(device):
    return InMemoryMonitoringStore([device])


@pytest.fixture
def service(store, monitoring_config, clock):
    return MonitoringService(store, config=monitoring_config, clock=clock)


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'sensorwatch.db'}")
    await db.create_all()
    yield db
    await db.drop_all()
    await db.close()


@pytest.fixture
def sql_store(database):
    return SqlMonitoringStore(database)
