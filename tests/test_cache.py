from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from cyberui.mqtt.cache import StatusCache


def test_empty_cache_reports_absent() -> None:
    cache = StatusCache()

    assert cache.get(1, "soc") is None
    assert cache.get(1, "soc", default="n/a") == "n/a"
    assert cache.get_all(1) == {}
    assert 1 not in cache
    assert len(cache) == 0


def test_set_then_get_and_snapshot() -> None:
    cache = StatusCache()

    cache.set(1, "soc", "80")
    assert cache.get(1, "soc") == "80"

    cache.set(1, "range", "300")
    assert cache.get_all(1) == {"soc": "80", "range": "300"}
    assert cache.get_all(2) == {}
    assert cache.car_ids() == [1]


def test_overwrite_is_last_write_wins() -> None:
    cache = StatusCache()

    cache.set(7, "battery_level", "50")
    cache.set(7, "battery_level", "49")

    assert cache.get(7, "battery_level") == "49"
    assert cache.get_all(7) == {"battery_level": "49"}


def test_unset_metric_on_known_car_is_absent() -> None:
    cache = StatusCache()
    cache.set(1, "soc", "80")

    assert cache.get(1, "odometer") is None


def test_empty_value_is_distinct_from_absent() -> None:
    cache = StatusCache()
    cache.set(1, "geofence", "")

    assert cache.get(1, "geofence") == ""
    assert cache.get(1, "geofence", default="n/a") == ""
    assert cache.get_all(1) == {"geofence": ""}


def test_cars_are_isolated() -> None:
    cache = StatusCache()

    cache.set(1, "state", "online")
    cache.set(2, "state", "asleep")

    assert cache.get(1, "state") == "online"
    assert cache.get(2, "state") == "asleep"
    assert cache.get(3, "state") is None
    assert cache.car_ids() == [1, 2]


def test_snapshot_is_a_copy() -> None:
    cache = StatusCache()
    cache.set(1, "soc", "80")

    snapshot = cache.get_all(1)
    snapshot["soc"] = "0"
    snapshot["injected"] = "x"
    snapshot.clear()

    assert cache.get(1, "soc") == "80"
    assert cache.get(1, "injected") is None
    assert cache.get_all(1) == {"soc": "80"}


def test_negative_car_ids_are_plain_keys() -> None:
    cache = StatusCache()
    cache.set(-32768, "soc", "1")

    assert cache.get(-32768, "soc") == "1"
    assert cache.car_ids() == [-32768]


def test_concurrent_writers_and_readers_lose_no_updates() -> None:
    cache = StatusCache()
    writers = 8
    per_writer = 500
    start = threading.Barrier(writers * 2)

    def write(car_id: int) -> None:
        start.wait()
        for i in range(per_writer):
            cache.set(car_id, f"m{i}", str(i))

    def read(car_id: int) -> int:
        start.wait()
        seen = 0
        for i in range(per_writer):
            snapshot = cache.get_all(car_id)
            # a snapshot never contains a torn entry
            assert all(k == f"m{v}" for k, v in snapshot.items())
            seen = max(seen, len(snapshot))
            cache.get(car_id, f"m{i}")
        return seen

    with ThreadPoolExecutor(max_workers=writers * 2) as pool:
        futures = [pool.submit(write, car_id) for car_id in range(writers)]
        futures += [pool.submit(read, car_id) for car_id in range(writers)]
        for f in futures:
            f.result()

    for car_id in range(writers):
        snapshot = cache.get_all(car_id)
        assert len(snapshot) == per_writer
        assert snapshot["m0"] == "0"
        assert snapshot[f"m{per_writer - 1}"] == str(per_writer - 1)
