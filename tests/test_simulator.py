from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from typing import List

from datastore.sensor_store import SensorDataStore
from models.records import SensorReading
from services.simulator import FLUCTUATION_SPANS, FluctuationSimulator

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _store_with_sensors() -> SensorDataStore:
    store = SensorDataStore()
    store.set(
        "full",
        SensorReading(
            sensor_id="full",
            timestamp=_BASE_TIME,
            temperature=24.5,
            humidity=65.2,
            co2=420,
            pressure=1013.25,
        ),
    )
    store.set(
        "partial",
        SensorReading(sensor_id="partial", timestamp=_BASE_TIME, temperature=20.0),
    )
    return store


def test_fluctuate_all_stays_within_bounds() -> None:
    store = _store_with_sensors()
    simulator = FluctuationSimulator(store, rng=random.Random(7))
    before = {reading.sensor_id: reading for reading in store.list_readings()}

    for _ in range(50):
        simulator.fluctuate_all()
        for reading in store.list_readings():
            original = before[reading.sensor_id]
            for metric, value in reading.metrics().items():
                allowed = FLUCTUATION_SPANS[metric] / 2 + 0.5
                assert abs(value - getattr(original, metric)) <= allowed
            before[reading.sensor_id] = reading


def test_fluctuate_all_preserves_field_presence() -> None:
    store = _store_with_sensors()
    simulator = FluctuationSimulator(store, rng=random.Random(1))

    simulator.fluctuate_all()

    partial = store.get("partial")
    full = store.get("full")
    assert partial is not None and full is not None
    assert set(partial.metrics()) == {"temperature"}
    assert partial.humidity is None
    assert set(full.metrics()) == {"temperature", "humidity", "co2", "pressure"}


def test_fluctuate_all_rounds_per_metric() -> None:
    store = _store_with_sensors()
    simulator = FluctuationSimulator(store, rng=random.Random(3))

    simulator.fluctuate_all()

    full = store.get("full")
    assert full is not None
    assert full.co2 == round(full.co2)  # type: ignore[arg-type]
    assert full.temperature == round(full.temperature, 1)  # type: ignore[arg-type]
    assert full.humidity == round(full.humidity, 1)  # type: ignore[arg-type]
    assert full.pressure == round(full.pressure, 2)  # type: ignore[arg-type]


def test_fluctuate_all_stamps_fresh_timestamp_and_notifies() -> None:
    store = _store_with_sensors()
    received: List[SensorReading] = []
    store.subscribe(received.append)
    simulator = FluctuationSimulator(store, rng=random.Random(5))

    updated = simulator.fluctuate_all()

    assert len(updated) == 2
    assert len(received) == 2
    assert all(reading.timestamp > _BASE_TIME for reading in updated)


def test_fluctuate_all_on_empty_store() -> None:
    simulator = FluctuationSimulator(SensorDataStore())

    assert simulator.fluctuate_all() == []


def test_background_thread_ticks_and_stops() -> None:
    store = _store_with_sensors()
    received: List[SensorReading] = []
    store.subscribe(received.append, sensor_id="partial")
    simulator = FluctuationSimulator(store, interval=0.01, rng=random.Random(11))

    simulator.start()
    try:
        deadline = time.monotonic() + 2.0
        while not received and time.monotonic() < deadline:
            time.sleep(0.01)
        assert simulator.running is True
    finally:
        simulator.stop()

    assert received
    assert simulator.running is False
    count_after_stop = len(received)
    time.sleep(0.05)
    assert len(received) == count_after_stop
