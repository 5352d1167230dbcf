from __future__ import annotations

from dashcache.services.events import CACHE_UPDATED, EventBus
from dashcache.services.storage import JsonFileStorage, MemoryStorage


def test_json_file_storage_round_trip(tmp_path) -> None:
    storage = JsonFileStorage(tmp_path / "cache")
    assert storage.get_item("agency_data_cache_v1") is None

    storage.set_item("agency_data_cache_v1", '{"clients": []}')
    assert storage.get_item("agency_data_cache_v1") == '{"clients": []}'
    assert (tmp_path / "cache" / "agency_data_cache_v1.json").exists()

    storage.remove_item("agency_data_cache_v1")
    storage.remove_item("agency_data_cache_v1")
    assert storage.get_item("agency_data_cache_v1") is None


def test_json_file_storage_sanitizes_keys(tmp_path) -> None:
    storage = JsonFileStorage(tmp_path)
    assert storage.path_for("../escape me").parent == tmp_path


def test_memory_storage() -> None:
    storage = MemoryStorage()
    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_event_bus_delivers_until_unsubscribed() -> None:
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(CACHE_UPDATED, received.append)

    bus.emit(CACHE_UPDATED, {"lastUpdated": "a"})
    unsubscribe()
    bus.emit(CACHE_UPDATED, {"lastUpdated": "b"})

    assert received == [{"lastUpdated": "a"}]


def test_failing_listener_does_not_block_others() -> None:
    bus = EventBus()
    received = []

    def broken(detail) -> None:
        raise RuntimeError("listener bug")

    bus.subscribe(CACHE_UPDATED, broken)
    bus.subscribe(CACHE_UPDATED, received.append)
    bus.emit(CACHE_UPDATED, {"lastUpdated": "x"})

    assert received == [{"lastUpdated": "x"}]
