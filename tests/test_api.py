"""Tests for the HTTP API with the engine over the in-memory store."""

import pytest
from fastapi.testclient import TestClient

from sensorwatch.api.main_app import app
from sensorwatch.api.routers.dependencies import get_monitoring_service
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.domain.exceptions import StorageError
from sensorwatch.monitoring.domain.models import DeviceConfig
from sensorwatch.monitoring.infrastructure.memory_store import InMemoryMonitoringStore

from tests.factories import at


class UnavailableStore(InMemoryMonitoringStore):
    """Store whose backend is down."""

    async def get_device(self, device_id):
        raise StorageError("Storage operation failed", device_id=device_id)

    async def list_devices(self, organization_id=None):
        raise StorageError("Storage operation failed")

    def device_unit_of_work(self, device_id):
        raise StorageError("Storage operation failed", device_id=device_id)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_monitoring_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def ingest_body(*readings, ingest_key="secret", device_id="dev-1"):
    return {
        "device_id": device_id,
        "ingest_key": ingest_key,
        "readings": [
            {"ts": at(minutes).isoformat(), "temp_c": temp_c, "rh": rh} for minutes, temp_c, rh in readings
        ],
    }


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_ingest(client):
    response = client.post("/api/ingest", json=ingest_body((-5, 20.0, 45.0), (0, 27.0, 46.0)))

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["stored"] == 2
    assert data["opened"] == 1
    assert data["status"] == "alert"


def test_ingest_twice_reports_duplicates(client):
    body = ingest_body((0, 20.0, None))
    client.post("/api/ingest", json=body)

    data = client.post("/api/ingest", json=body).json()

    assert data["stored"] == 0
    assert data["duplicates"] == 1


def test_ingest_wrong_key(client):
    response = client.post("/api/ingest", json=ingest_body((0, 20.0, None), ingest_key="wrong"))

    assert response.status_code == 401


def test_ingest_unknown_device(client):
    response = client.post("/api/ingest", json=ingest_body((0, 20.0, None), device_id="ghost"))

    assert response.status_code == 404


def test_ingest_requires_readings(client):
    response = client.post("/api/ingest", json=ingest_body())

    assert response.status_code == 422


def test_device_snapshot_in_fahrenheit(client):
    client.post("/api/ingest", json=ingest_body((-10, 10.0, 40.0), (0, 20.0, 50.0)))

    response = client.get("/api/devices/dev-1", params={"unit": "F"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "online"
    assert data["device"]["id"] == "dev-1"
    assert data["latest_reading"]["temp"] == pytest.approx(68.0)
    assert data["rollup"]["unit"] == "F"
    assert data["rollup"]["low_temp"] == pytest.approx(50.0)
    assert data["rollup"]["high_temp"] == pytest.approx(68.0)
    assert data["rollup"]["high_rh"] == 50.0


def test_unknown_device_snapshot(client):
    assert client.get("/api/devices/ghost").status_code == 404


def test_list_devices(client):
    response = client.get("/api/devices", params={"organization_id": "org-1"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["devices"][0]["status"] == "offline"
    assert data["devices"][0]["latest_reading"] is None


def test_status(client):
    assert client.get("/api/devices/dev-1/status").json()["status"] == "offline"

    client.post("/api/ingest", json=ingest_body((0, 30.0, None)))

    assert client.get("/api/devices/dev-1/status").json()["status"] == "alert"


def test_alerts_and_events(client):
    client.post("/api/ingest", json=ingest_body((-10, 30.0, None), (-5, 20.0, None), (0, 31.0, None)))

    active = client.get("/api/devices/dev-1/alerts", params={"active": True}).json()
    every = client.get("/api/devices/dev-1/alerts").json()
    events = client.get("/api/devices/dev-1/alert-events", params={"limit": 2}).json()

    assert len(active) == 1
    assert active[0]["rule"] == "temp"
    assert active[0]["breach_value"] == 31.0
    assert len(every) == 2
    assert [e["event_type"] for e in events] == ["breach", "recovery"]


def test_rollup(client):
    client.post("/api/ingest", json=ingest_body((-30, 4.0, 35.0), (0, 6.0, None)))

    data = client.get("/api/devices/dev-1/rollup").json()

    assert data["window_hours"] == 24
    assert (data["low_temp"], data["high_temp"]) == (4.0, 6.0)
    assert (data["low_rh"], data["high_rh"]) == (35.0, 35.0)


def test_update_settings_in_fahrenheit(client, store):
    response = client.patch(
        "/api/devices/dev-1/settings",
        json={"unit": "F", "temp_max": 77.0, "sample_interval_min": 30},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["temp_max"] == pytest.approx(25.0)
    assert data["sample_interval_min"] == 30
    assert store.devices["dev-1"].thresholds.temp_max == pytest.approx(25.0)


def test_update_settings_clears_bound(client, store):
    response = client.patch("/api/devices/dev-1/settings", json={"temp_max": None, "rh_max": 70})

    assert response.status_code == 200
    assert store.devices["dev-1"].thresholds.temp_max is None
    assert store.devices["dev-1"].thresholds.rh_max == 70


def test_update_settings_leaves_omitted_fields(client, store):
    client.patch("/api/devices/dev-1/settings", json={"rh_min": 20})

    assert store.devices["dev-1"].thresholds.temp_max == 25.0
    assert store.devices["dev-1"].sample_interval_min == 15


@pytest.mark.parametrize(
    "body",
    [
        {"sample_interval_min": 17},
        {"sample_interval_min": 180},
        {"temp_min": 30, "temp_max": 10},
        {"rh_max": 120},
    ],
)
def test_update_settings_validation(client, body):
    assert client.patch("/api/devices/dev-1/settings", json=body).status_code == 422


def test_update_settings_unknown_device(client):
    assert client.patch("/api/devices/ghost/settings", json={"temp_max": 5}).status_code == 404


def test_ingest_batch_limit_comes_from_monitoring_config(client, monitoring_config):
    monitoring_config.max_batch_size = 3
    readings = [(-i, 20.0, None) for i in range(4)]

    response = client.post("/api/ingest", json=ingest_body(*readings))

    assert response.status_code == 400
    assert client.post("/api/ingest", json=ingest_body(*readings[:3])).status_code == 200


def test_ingest_default_batch_limit(client, monitoring_config):
    readings = [(-i, 20.0, None) for i in range(monitoring_config.max_batch_size + 1)]

    assert client.post("/api/ingest", json=ingest_body(*readings)).status_code == 400


def test_list_devices_by_status(client, store):
    store.add_device(DeviceConfig(device_id="dev-2", name="Freezer", organization_id="org-1"))
    client.post("/api/ingest", json=ingest_body((0, 30.0, None)))

    alerting = client.get("/api/devices", params={"status": "alert"}).json()
    offline = client.get("/api/devices", params={"status": "offline"}).json()
    online = client.get("/api/devices", params={"status": "online"}).json()

    assert [d["device"]["id"] for d in alerting["devices"]] == ["dev-1"]
    assert [d["device"]["id"] for d in offline["devices"]] == ["dev-2"]
    assert online == {"devices": [], "total": 0}


def test_list_devices_rejects_unknown_status(client):
    assert client.get("/api/devices", params={"status": "ok"}).status_code == 422


def test_recent_readings(client):
    client.post("/api/ingest", json=ingest_body((-25 * 60, 1.0, None), (-10, 0.0, 40.0), (0, 100.0, 41.0)))

    response = client.get("/api/devices/dev-1/readings", params={"unit": "F"})

    assert response.status_code == 200
    data = response.json()
    assert [r["temp"] for r in data] == [pytest.approx(212.0), pytest.approx(32.0)]
    assert [r["rh"] for r in data] == [41.0, 40.0]


def test_recent_readings_unknown_device(client):
    assert client.get("/api/devices/ghost/readings").status_code == 404


@pytest.fixture
def unavailable_client(monitoring_config, clock):
    service = MonitoringService(UnavailableStore(), config=monitoring_config, clock=clock)
    app.dependency_overrides[get_monitoring_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("GET", "/api/devices", None),
        ("GET", "/api/devices/dev-1", None),
        ("GET", "/api/devices/dev-1/status", None),
        ("GET", "/api/devices/dev-1/alerts", None),
        ("GET", "/api/devices/dev-1/alert-events", None),
        ("GET", "/api/devices/dev-1/rollup", None),
        ("GET", "/api/devices/dev-1/readings", None),
        ("PATCH", "/api/devices/dev-1/settings", {"temp_max": 5}),
        ("POST", "/api/ingest", ingest_body((0, 20.0, None))),
    ],
)
def test_storage_outage_is_service_unavailable(unavailable_client, method, path, body):
    response = unavailable_client.request(method, path, json=body)

    assert response.status_code == 503
