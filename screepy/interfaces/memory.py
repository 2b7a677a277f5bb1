"""Persisted-state interface.

The host keeps a key-value store that survives across ticks. Records are
plain mutable dictionaries grouped by namespace (units, spawners, rooms) and
keyed by the owning entity's name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any


class Namespace(StrEnum):
    """Top-level sections of the persisted store."""

    UNITS = "creeps"
    SPAWNERS = "spawns"
    ROOMS = "rooms"


class StateStore(ABC):
    """Abstract interface for the host's persisted state.

    Records returned by ``get`` are live: mutating them mutates the store.
    There is no locking; callers follow a single-writer-per-phase discipline.
    """

    @abstractmethod
    def get(self, namespace: Namespace, key: str) -> dict[str, Any]:
        """Get the mutable record for a key, creating an empty one if absent.

        Args:
            namespace: Store section.
            key: Entity name.

        Returns:
            The live record.
        """
        ...

    @abstractmethod
    def set(self, namespace: Namespace, key: str, record: dict[str, Any]) -> None:
        """Replace the record for a key."""
        ...

    @abstractmethod
    def delete(self, namespace: Namespace, key: str) -> None:
        """Delete the record for a key. Missing keys are ignored."""
        ...

    @abstractmethod
    def keys(self, namespace: Namespace) -> list[str]:
        """Get all keys currently stored in a namespace."""
        ...

    @abstractmethod
    def contains(self, namespace: Namespace, key: str) -> bool:
        """Check whether a record exists without creating it."""
        ...


class StateStoreError(Exception):
    """Error raised when a persisted record cannot be read or written."""

    pass
