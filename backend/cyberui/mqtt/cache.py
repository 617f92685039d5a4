"""Latest known MQTT value per (car_id, metric).

Fed by TelemetryIngress, read by the HTTP handlers. Values are kept as the raw
strings received from the broker; interpreting them is up to the reader.
"""
from __future__ import annotations

import threading


class StatusCache:
    def __init__(self) -> None:
        # car_id → metric → raw value
        self._data: dict[int, dict[str, str]] = {}
        self._lock = threading.Lock()

    def set(self, car_id: int, metric: str, value: str) -> None:
        with self._lock:
            metrics = self._data.get(car_id)
            if metrics is None:
                metrics = self._data[car_id] = {}
            metrics[metric] = value

    def get(self, car_id: int, metric: str, default: str | None = None) -> str | None:
        """Latest value, or ``default`` if the car or metric was never written.

        Stored values are always strings, never None, so with the default
        ``default`` a None result means "absent".
        """
        with self._lock:
            metrics = self._data.get(car_id)
            if metrics is None:
                return default
            return metrics.get(metric, default)

    def get_all(self, car_id: int) -> dict[str, str]:
        """Snapshot of every cached metric for one car ({} if unknown).

        Returns a copy: callers may mutate it freely without locking.
        """
        with self._lock:
            metrics = self._data.get(car_id)
            return dict(metrics) if metrics else {}

    def car_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._data)

    def __contains__(self, car_id: object) -> bool:
        with self._lock:
            return car_id in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
