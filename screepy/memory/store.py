"""In-memory persisted-state store.

Records live in a dictionary of namespaces for the lifetime of the process.
A real host would serialize this between ticks; the in-memory store keeps the
same live-record semantics so that controllers can mutate what ``get``
returns.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from screepy.interfaces.memory import Namespace, StateStore, StateStoreError

logger = logging.getLogger(__name__)


def record_size(record: dict[str, Any]) -> int:
    """Serialized size of a record in bytes."""
    try:
        return len(json.dumps(record, separators=(",", ":")).encode("utf-8"))
    except (TypeError, ValueError) as e:
        raise StateStoreError(f"Record is not serializable: {e}") from e


class InMemoryStateStore(StateStore):
    """Dictionary-backed state store.

    Example:
        >>> store = InMemoryStateStore()
        >>> store.get(Namespace.UNITS, "Ghoul #1")["role"] = "ghoul"
        >>> store.keys(Namespace.UNITS)
        ['Ghoul #1']
    """

    def __init__(self, data: dict[str, dict[str, dict[str, Any]]] | None = None) -> None:
        """Initialize the store.

        Args:
            data: Initial contents keyed by namespace value, then entity name.
        """
        self._data: dict[str, dict[str, dict[str, Any]]] = {ns.value: {} for ns in Namespace}
        for namespace, records in (data or {}).items():
            self._data.setdefault(namespace, {}).update(records)

    def _section(self, namespace: Namespace) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(str(namespace), {})

    def get(self, namespace: Namespace, key: str) -> dict[str, Any]:
        return self._section(namespace).setdefault(key, {})

    def set(self, namespace: Namespace, key: str, record: dict[str, Any]) -> None:
        if not isinstance(record, dict):
            raise StateStoreError(
                f"Record for {key!r} must be a mapping, got {type(record).__name__}"
            )
        self._section(namespace)[key] = record

    def delete(self, namespace: Namespace, key: str) -> None:
        self._section(namespace).pop(key, None)

    def keys(self, namespace: Namespace) -> list[str]:
        return list(self._section(namespace))

    def contains(self, namespace: Namespace, key: str) -> bool:
        return key in self._section(namespace)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole store as JSON-compatible data."""
        return json.loads(json.dumps(self._data))

    def __len__(self) -> int:
        return sum(len(records) for records in self._data.values())
