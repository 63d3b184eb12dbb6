import json
import random
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.sensor_store import SensorDataStore
from services.alerts import AlertLog
from services.sensors import SensorService
from services.simulator import FluctuationSimulator
from services.streaming import StreamingGateway
from settings import Settings

_T = "2024-01-01T00:00:00Z"


def _test_settings(**overrides) -> Settings:
    values = dict(
        stream_interval=0.02,
        fluctuation_interval=10.0,
        fluctuation_enabled=False,
        seed_on_startup=False,
        alert_history=50,
        slow_subscriber_ms=250.0,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def _noop_cache_clear() -> None:
    return None


@pytest.fixture
def service() -> SensorService:
    store = SensorDataStore()
    return SensorService(
        store=store,
        alerts=AlertLog(max_events=50),
        simulator=FluctuationSimulator(store, interval=10.0, rng=random.Random(0)),
    )


@pytest.fixture
def api_client(service: SensorService, monkeypatch) -> Iterator[TestClient]:
    gateway = StreamingGateway(service.store, interval=0.02)

    def build_test_service() -> SensorService:
        return service

    def build_test_gateway() -> StreamingGateway:
        return gateway

    build_test_service.cache_clear = _noop_cache_clear  # type: ignore[attr-defined]
    build_test_gateway.cache_clear = _noop_cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.get_settings", _test_settings)
    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.main.build_default_gateway", build_test_gateway)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_gateway", build_test_gateway)

    app = create_app()
    with TestClient(app) as client:
        yield client


def _ingest(client: TestClient, **payload) -> dict:
    response = client.post("/sensors/ingest", json={"timestamp": _T, **payload})
    assert response.status_code == 200, response.text
    return response.json()


def test_ingest_query_and_adjust_scenario(api_client: TestClient) -> None:
    body = _ingest(api_client, sensor_id="lab1", temperature=20, humidity=50)
    assert body == {"sensor_id": "lab1", "new_sensor": True}

    response = api_client.get("/sensors/lab1")
    assert response.status_code == 200
    assert response.json() == {
        "sensor_id": "lab1",
        "timestamp": _T,
        "temperature": 20.0,
        "humidity": 50.0,
    }

    response = api_client.post("/sensors/lab1/adjust", json={"temperature_change": 5})
    assert response.status_code == 200
    adjusted = response.json()
    assert adjusted["temperature"] == 25.0
    assert adjusted["humidity"] == 50.0
    assert adjusted["timestamp"] != _T


def test_second_ingest_is_not_new(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)

    assert _ingest(api_client, sensor_id="s1", temperature=21)["new_sensor"] is False


def test_ingest_rejects_malformed_payload_without_mutation(api_client: TestClient) -> None:
    missing_id = api_client.post("/sensors/ingest", json={"timestamp": _T, "temperature": 20})
    bad_time = api_client.post(
        "/sensors/ingest", json={"sensor_id": "s1", "timestamp": "not-a-time"}
    )

    assert missing_id.status_code == 400
    assert "sensor_id" in missing_id.json()["detail"]
    assert bad_time.status_code == 400
    assert api_client.get("/sensors").json()["count"] == 0


def test_get_unknown_sensor_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/sensors/ghost")

    assert response.status_code == 404
    assert "ghost" in response.json()["detail"]


def test_list_sensors(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="b", temperature=20)
    _ingest(api_client, sensor_id="a", co2=400)

    payload = api_client.get("/sensors").json()

    assert payload["count"] == 2
    assert [sensor["sensor_id"] for sensor in payload["sensors"]] == ["a", "b"]
    assert "temperature" not in payload["sensors"][0]
    assert payload["timestamp"]


def test_set_values(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20, humidity=50)

    response = api_client.post("/sensors/s1/values", json={"temperature": 30})

    assert response.status_code == 200
    assert response.json()["temperature"] == 30.0
    assert response.json()["humidity"] == 50.0


def test_set_values_errors(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)

    assert api_client.post("/sensors/ghost/values", json={"temperature": 1}).status_code == 404
    assert api_client.post("/sensors/s1/values", json={}).status_code == 400


def test_adjust_absent_metric_conflicts(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)

    response = api_client.post(
        "/sensors/s1/adjust", json={"temperature_change": 1, "humidity_change": 5}
    )

    assert response.status_code == 409
    assert "humidity" in response.json()["detail"]
    assert api_client.get("/sensors/s1").json()["temperature"] == 20.0


def test_adjust_overflow_is_rejected(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=1e308)

    response = api_client.post("/sensors/s1/adjust", json={"temperature_change": 1e308})

    assert response.status_code == 400
    assert "temperature" in response.json()["detail"]
    sensors = api_client.get("/sensors").json()["sensors"]
    assert sensors[0]["temperature"] == 1e308


def test_apply_preset_to_subset(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)
    _ingest(api_client, sensor_id="s2", temperature=21)

    response = api_client.post("/presets/hot_day", json={"sensor_ids": ["s1", "ghost"]})

    assert response.status_code == 200
    assert response.json() == {"condition": "hot_day", "updated": ["s1"], "missing": ["ghost"]}
    s1 = api_client.get("/sensors/s1").json()
    assert (s1["temperature"], s1["humidity"], s1["co2"], s1["pressure"]) == (32, 45, 410, 1010)
    assert api_client.get("/sensors/s2").json()["temperature"] == 21.0


def test_apply_preset_without_body_targets_all(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)
    _ingest(api_client, sensor_id="s2", temperature=21)

    response = api_client.post("/presets/stress_test")

    assert sorted(response.json()["updated"]) == ["s1", "s2"]


def test_unknown_preset_is_rejected(api_client: TestClient) -> None:
    assert api_client.post("/presets/blizzard").status_code == 422


def test_reset_and_delete(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=40)

    reset = api_client.post("/sensors/s1/reset").json()
    assert (reset["temperature"], reset["humidity"], reset["co2"], reset["pressure"]) == (
        24,
        65,
        400,
        1013,
    )

    assert api_client.delete("/sensors/s1").status_code == 204
    assert api_client.delete("/sensors/s1").status_code == 404
    assert api_client.post("/sensors/s1/reset").status_code == 404


def test_init_and_fluctuate(api_client: TestClient) -> None:
    seeded = api_client.post("/sensors/init").json()
    assert seeded["count"] == 4

    response = api_client.post("/sensors/fluctuate")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["sensors"]) == 4


def test_alerts_and_analysis(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=10, humidity=50)

    alerts = api_client.get("/alerts").json()
    analysis = api_client.get("/analysis").json()

    assert [(alert["metric"], alert["direction"]) for alert in alerts] == [("temperature", "low")]
    assert analysis[0]["sensor_id"] == "s1"
    assert analysis[0]["healthy"] is False
    assert {item["metric"]: item["status"] for item in analysis[0]["metrics"]} == {
        "temperature": "low",
        "humidity": "ok",
    }


def test_stats(api_client: TestClient, service: SensorService) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)
    service.store.subscribe(lambda reading: None, sensor_id="s1")

    stats = api_client.get("/stats").json()

    assert stats["subscriptions"]["total_subscribers"] == 1
    assert stats["subscriptions"]["sensor_specific_subscriptions"] == {"s1": 1}
    assert stats["store"]["total_sensors"] == 1
    assert stats["active_streams"] == 0
    assert stats["simulator_running"] is False


def test_websocket_stream(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)

    with api_client.websocket_connect("/ws/sensors") as websocket:
        initial = websocket.receive_json()
        update = websocket.receive_json()

    assert initial["type"] == "initial_data"
    assert initial["sensors"][0]["sensor_id"] == "s1"
    assert update["type"] == "sensor_update"
    assert update["count"] == 1


def test_sse_stream_with_limit(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="s1", temperature=20)

    response = api_client.get("/stream/sensors", params={"limit": 2})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]
    assert [event["type"] for event in events] == ["initial_data", "sensor_update"]


def test_dashboard_renders(api_client: TestClient) -> None:
    _ingest(api_client, sensor_id="greenhouse", temperature=20)

    response = api_client.get("/ui")

    assert response.status_code == 200
    assert "greenhouse" in response.text


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}


def test_lifespan_seeds_and_stops_simulator(service: SensorService, monkeypatch) -> None:
    def build_test_service() -> SensorService:
        return service

    build_test_service.cache_clear = _noop_cache_clear  # type: ignore[attr-defined]
    monkeypatch.setattr(
        "app.main.get_settings",
        lambda: _test_settings(seed_on_startup=True, fluctuation_enabled=True),
    )
    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)

    with TestClient(create_app()) as client:
        assert client.get("/sensors").json()["count"] == 4
        assert service.simulator.running is True

    assert service.simulator.running is False
