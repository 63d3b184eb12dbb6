"""Random drift applied to every stored reading."""

from __future__ import annotations

import logging
import random
from threading import Event, Thread
from typing import Dict, List, Optional

from datastore.sensor_store import SensorDataStore
from models.errors import InvalidReadingError, SensorNotFoundError
from models.records import METRIC_FIELDS, SensorReading, round_metric
from services.alerts import AlertLog

logger = logging.getLogger(__name__)

# Full width of the uniform delta applied per tick; drift is +/- half of it.
FLUCTUATION_SPANS: Dict[str, float] = {
    "temperature": 2.0,
    "humidity": 5.0,
    "co2": 20.0,
    "pressure": 2.0,
}


class FluctuationSimulator:
    """Perturbs readings on demand or from a background timer thread."""

    def __init__(
        self,
        store: SensorDataStore,
        interval: float = 10.0,
        rng: Optional[random.Random] = None,
        alerts: Optional[AlertLog] = None,
    ) -> None:
        self.store = store
        self.interval = interval
        self.alerts = alerts
        self._rng = rng or random.Random()
        self._stop = Event()
        self._thread: Optional[Thread] = None

    def fluctuate_all(self) -> List[SensorReading]:
        updated: List[SensorReading] = []
        for sensor_id in self.store.sensor_ids():
            try:
                reading = self.store.update(sensor_id, self._perturb)
            except SensorNotFoundError:
                # Deleted between listing and updating.
                continue
            except InvalidReadingError as exc:
                logger.warning(
                    "Fluctuation skipped",
                    extra={"sensor_id": sensor_id, "reason": str(exc)},
                )
                continue
            if self.alerts is not None:
                self.alerts.check(reading)
            updated.append(reading)
        logger.debug("Applied sensor fluctuations", extra={"sensor_count": len(updated)})
        return updated

    def _perturb(self, reading: SensorReading) -> SensorReading:
        values = {}
        for metric in METRIC_FIELDS:
            current = getattr(reading, metric)
            if current is None:
                continue
            half_span = FLUCTUATION_SPANS[metric] / 2
            drifted = current + self._rng.uniform(-half_span, half_span)
            values[metric] = round_metric(metric, drifted)
        return reading.with_values(values)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name="sensor-fluctuation", daemon=True)
        self._thread.start()
        logger.info("Fluctuation simulator started (interval=%ss)", self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.fluctuate_all()
            except Exception:
                logger.exception("Fluctuation tick failed")
