"""Metrics collection for the tick scheduler.

This module provides metrics tracking for:
- Tick count and timing
- Unit step outcomes and host rejections
- Spawn requests and their results
- Terminations and garbage-collected records
- Isolated unit failures

Example:
    >>> from screepy.runtime.metrics import MetricsCollector
    >>>
    >>> metrics = MetricsCollector()
    >>> with metrics.time_tick():
    ...     scheduler.tick()
    >>>
    >>> stats = metrics.get_metrics()
    >>> print(f"Spawned: {stats.spawns_succeeded}")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from screepy.interfaces.world import ResultCode, describe_result
from screepy.models.outcomes import StepKind, StepOutcome

logger = logging.getLogger(__name__)


class ColonyMetrics(BaseModel):
    """Snapshot of colony metrics at a point in time.

    Attributes:
        ticks: Total scheduler ticks run.
        avg_tick_time_ms: Average wall time of a tick.
        outcomes: Count of unit step outcomes by kind.
        rejections: Count of host rejections by mapped label.
        spawns_requested: Spawn requests sent to the host.
        spawns_succeeded: Spawn requests the host accepted.
        spawns_failed: Spawn requests the host rejected.
        terminations: Units removed because they had no viable target.
        records_collected: Persisted records freed by GC.
        bytes_collected: Serialized size of the freed records.
        unit_failures: Unit failures contained by the recovery coordinator.
        started_at: When collection started.
    """

    ticks: int = Field(default=0, ge=0)
    avg_tick_time_ms: float = Field(default=0.0, ge=0.0)

    outcomes: dict[str, int] = Field(default_factory=dict)
    rejections: dict[str, int] = Field(default_factory=dict)

    spawns_requested: int = Field(default=0, ge=0)
    spawns_succeeded: int = Field(default=0, ge=0)
    spawns_failed: int = Field(default=0, ge=0)

    terminations: int = Field(default=0, ge=0)
    records_collected: int = Field(default=0, ge=0)
    bytes_collected: int = Field(default=0, ge=0)
    unit_failures: int = Field(default=0, ge=0)

    started_at: datetime | None = Field(default=None)

    model_config = {"frozen": True}

    @property
    def spawn_success_rate(self) -> float:
        """Calculate spawn success rate (0.0 to 1.0)."""
        if self.spawns_requested == 0:
            return 0.0
        return self.spawns_succeeded / self.spawns_requested


@dataclass
class _TimingStats:
    """Internal helper for tracking timing statistics."""

    total_ms: float = 0.0
    count: int = 0

    def record(self, duration_ms: float) -> None:
        """Record a timing measurement."""
        self.total_ms += duration_ms
        self.count += 1

    @property
    def average_ms(self) -> float:
        """Get average duration in milliseconds."""
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count


class MetricsCollector:
    """Collects metrics while the scheduler runs.

    All methods are cheap enough to call for every unit on every tick.
    """

    def __init__(self) -> None:
        """Initialize the metrics collector."""
        self._clear()
        logger.debug("MetricsCollector initialized")

    def _clear(self) -> None:
        self._tick_timing = _TimingStats()
        self._outcomes: dict[str, int] = {}
        self._rejections: dict[str, int] = {}
        self._spawns_succeeded = 0
        self._spawns_failed = 0
        self._terminations = 0
        self._records_collected = 0
        self._bytes_collected = 0
        self._unit_failures = 0
        self._started_at: datetime | None = None

    def start(self) -> None:
        """Mark the start of metrics collection."""
        self._started_at = datetime.now()

    def record_tick(self, duration_ms: float) -> None:
        self._tick_timing.record(duration_ms)

    @contextmanager
    def time_tick(self) -> Iterator[None]:
        """Time a tick and record it on exit."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record_tick((time.perf_counter() - started) * 1000)

    def record_outcome(self, outcome: StepOutcome) -> None:
        """Record a unit step outcome."""
        kind = outcome.kind.value
        self._outcomes[kind] = self._outcomes.get(kind, 0) + 1
        if outcome.kind == StepKind.REJECTED and outcome.result is not None:
            label = describe_result(outcome.result)
            self._rejections[label] = self._rejections.get(label, 0) + 1
        elif outcome.kind == StepKind.TERMINATED:
            self._terminations += 1

    def record_spawn(self, result: int) -> None:
        """Record the host's answer to a spawn request."""
        if result == ResultCode.OK:
            self._spawns_succeeded += 1
        else:
            self._spawns_failed += 1

    def record_collection(self, size_bytes: int) -> None:
        """Record one garbage-collected record."""
        self._records_collected += 1
        self._bytes_collected += size_bytes

    def record_unit_failure(self) -> None:
        self._unit_failures += 1

    def get_metrics(self) -> ColonyMetrics:
        """Get a snapshot of the current metrics."""
        return ColonyMetrics(
            ticks=self._tick_timing.count,
            avg_tick_time_ms=self._tick_timing.average_ms,
            outcomes=dict(self._outcomes),
            rejections=dict(self._rejections),
            spawns_requested=self._spawns_succeeded + self._spawns_failed,
            spawns_succeeded=self._spawns_succeeded,
            spawns_failed=self._spawns_failed,
            terminations=self._terminations,
            records_collected=self._records_collected,
            bytes_collected=self._bytes_collected,
            unit_failures=self._unit_failures,
            started_at=self._started_at,
        )

    def reset(self) -> None:
        """Reset all metrics."""
        self._clear()
