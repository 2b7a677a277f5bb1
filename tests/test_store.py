"""Tests for the in-memory state store."""

from __future__ import annotations

import pytest

from screepy.interfaces import Namespace, StateStoreError
from screepy.memory import InMemoryStateStore, record_size


class TestInMemoryStateStore:
    """Records are live, namespaced dictionaries."""

    def test_get_creates_live_record(self) -> None:
        store = InMemoryStateStore()

        store.get(Namespace.UNITS, "Ghoul #1")["role"] = "ghoul"

        assert store.get(Namespace.UNITS, "Ghoul #1") == {"role": "ghoul"}
        assert store.keys(Namespace.UNITS) == ["Ghoul #1"]

    def test_contains_does_not_create(self) -> None:
        store = InMemoryStateStore()

        assert store.contains(Namespace.UNITS, "Nobody") is False
        assert store.keys(Namespace.UNITS) == []

    def test_namespaces_are_separate(self) -> None:
        store = InMemoryStateStore()
        store.set(Namespace.SPAWNERS, "Spawn1", {"x": 1})

        assert store.keys(Namespace.UNITS) == []
        assert store.keys(Namespace.SPAWNERS) == ["Spawn1"]

    def test_delete_ignores_missing(self) -> None:
        store = InMemoryStateStore()
        store.set(Namespace.UNITS, "A", {})

        store.delete(Namespace.UNITS, "A")
        store.delete(Namespace.UNITS, "A")

        assert len(store) == 0

    def test_set_rejects_non_mappings(self) -> None:
        store = InMemoryStateStore()

        with pytest.raises(StateStoreError):
            store.set(Namespace.UNITS, "A", ["ghoul"])  # type: ignore[arg-type]

    def test_initial_data_uses_host_namespaces(self) -> None:
        store = InMemoryStateStore({"creeps": {"Ghoul #1": {"role": "ghoul"}}})

        assert store.contains(Namespace.UNITS, "Ghoul #1")

    def test_snapshot_is_a_copy(self) -> None:
        store = InMemoryStateStore()
        store.set(Namespace.UNITS, "A", {"role": "ghoul"})

        snapshot = store.snapshot()
        store.get(Namespace.UNITS, "A")["role"] = "harvest"

        assert snapshot["creeps"]["A"] == {"role": "ghoul"}


class TestRecordSize:
    """Serialized record sizes."""

    def test_compact_json_bytes(self) -> None:
        assert record_size({"role": "ghoul"}) == 16
        assert record_size({}) == 2

    def test_unserializable_record(self) -> None:
        with pytest.raises(StateStoreError):
            record_size({"bad": object()})
