"""Persisted-state store implementations."""

from screepy.memory.store import InMemoryStateStore, record_size

__all__ = ["InMemoryStateStore", "record_size"]
