"""Tests for the StateStore: first-observation silence, change notification, validation, counters."""

import pytest

from pyneuron_modbus import PointId, PointPrefix, StateStore
from pyneuron_modbus.errors import InvalidPointError, UnknownPointError


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def events(store: StateStore) -> list[tuple[str, str]]:
    received: list[tuple[str, str]] = []
    store.subscribe(lambda point, value: received.append((point, value)))
    return received


def test_first_observation_is_silent(store: StateStore, events: list) -> None:
    assert store.set_if_changed("DO1.1", True) is False
    assert store.set_if_changed("DI1.1", 0) is False
    assert events == []
    assert store.get("DO1.1") == 1
    assert store.get("DI1.1") == 0


def test_change_emits_once(store: StateStore, events: list) -> None:
    store.set_if_changed("DO1.1", 0)
    assert store.set_if_changed("DO1.1", 1) is True
    assert store.set_if_changed("DO1.1", 1) is False
    assert store.set_if_changed("DO1.1", True) is False
    assert events == [("DO1.1", "1")]


def test_values_are_normalized_to_zero_or_one(store: StateStore) -> None:
    store.set_if_changed("DI1.2", True)
    store.set_if_changed("DI1.3", 7)
    assert store.get("DI1.2") == 1
    assert store.get("DI1.3") == 1


def test_get_unknown_returns_none(store: StateStore) -> None:
    assert store.get("DO9.9") is None
    assert store.get_count("DI1.1") is None


def test_get_accepts_point_id(store: StateStore) -> None:
    store.set_if_changed(PointId(PointPrefix.DO, 1, 2), 1)
    assert store.get("do1.2") == 1


def test_validate_unknown_raises(store: StateStore) -> None:
    with pytest.raises(UnknownPointError) as exc_info:
        store.validate("DO1.1")
    assert exc_info.value.point == "DO1.1"


def test_validate_malformed_raises(store: StateStore) -> None:
    with pytest.raises(InvalidPointError):
        store.validate("DO1")


def test_membership_tolerates_malformed_ids(store: StateStore) -> None:
    store.set_if_changed("DO1.1", 0)
    assert "DO1.1" in store
    assert "DO1" not in store
    assert "garbage" not in store
    assert 42 not in store


def test_validate_known_returns_point(store: StateStore) -> None:
    store.set_if_changed("DO1.1", 0)
    assert store.validate("DO1.1") == PointId(PointPrefix.DO, 1, 1)


def test_unsubscribe_stops_delivery(store: StateStore) -> None:
    received: list[tuple[str, str]] = []
    unsubscribe = store.subscribe(lambda p, v: received.append((p, v)))
    store.set_if_changed("DO1.1", 0)
    store.set_if_changed("DO1.1", 1)
    unsubscribe()
    store.set_if_changed("DO1.1", 0)
    assert received == [("DO1.1", "1")]


def test_failing_subscriber_does_not_block_others(store: StateStore) -> None:
    received: list[str] = []

    def broken(point: str, value: str) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(lambda p, v: received.append(p))
    store.set_if_changed("DI1.1", 0)
    store.set_if_changed("DI1.1", 1)
    assert received == ["DI1.1"]
    assert store.get("DI1.1") == 1


def test_counters_are_separate(store: StateStore, events: list) -> None:
    store.set_count("DI1.1", 42)
    store.set_count("DI1.1", 43)
    assert store.get_count("DI1.1") == 43
    assert store.get("DI1.1") is None
    assert events == []
    with pytest.raises(ValueError):
        store.set_count("DI1.1", -1)


def test_snapshot_is_ordered(store: StateStore) -> None:
    store.set_if_changed("DO1.10", 1)
    store.set_if_changed("DO1.2", 0)
    store.set_if_changed("DI2.1", 1)
    assert list(store.snapshot()) == ["DI2.1", "DO1.2", "DO1.10"]
    assert len(store) == 3
    assert "DO1.2" in store
    assert "DO1.3" not in store
