"""Tick scheduler.

This module provides the Scheduler class, the single entry point the host
calls once per tick:

1. Garbage-collect persisted unit records with no live unit
2. Run the room coordinator for every room, in host order

Example:
    >>> from screepy.core.scheduler import Scheduler
    >>> from screepy.runtime.metrics import MetricsCollector
    >>>
    >>> scheduler = Scheduler(world, store, config, metrics=MetricsCollector())
    >>> report = scheduler.tick()
    >>> print(report.collected, report.spawn_requests)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from screepy.config.loader import Config
from screepy.entities.naming import NameGenerator
from screepy.entities.room import RoomCoordinator
from screepy.interfaces.memory import Namespace
from screepy.memory.store import record_size
from screepy.models.outcomes import TickReport
from screepy.runtime.metrics import MetricsCollector
from screepy.runtime.recovery import RecoveryPolicy, UnitRecoveryCoordinator

if TYPE_CHECKING:
    from screepy.interfaces.memory import StateStore
    from screepy.interfaces.world import World

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs one colony tick against a world and its persisted state.

    The scheduler holds no colony state of its own between ticks; everything
    that must survive lives in the state store.

    Attributes:
        metrics: Metrics collector instance.
    """

    def __init__(
        self,
        world: World,
        store: StateStore,
        config: Config | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            world: The live world.
            store: Persisted-state store.
            config: Configuration. Uses defaults if None.
            metrics: Metrics collector. Creates new one if None.
        """
        self._world = world
        self._store = store
        self._config = config or Config()
        self._metrics = metrics or MetricsCollector()
        self._names = NameGenerator(world)
        self._recovery = UnitRecoveryCoordinator(RecoveryPolicy.from_config(self._config.recovery))
        self._on_tick_complete: Callable[[TickReport], None] | None = None

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def set_callbacks(self, on_tick_complete: Callable[[TickReport], None] | None = None) -> None:
        """Set an optional callback run with each tick's report."""
        self._on_tick_complete = on_tick_complete

    def collect_garbage(self) -> list[str]:
        """Delete unit records whose unit no longer exists.

        Returns:
            Names of the deleted records, in store order.
        """
        live = {unit.name for unit in self._world.units()}
        collected = []
        for name in self._store.keys(Namespace.UNITS):
            if name in live:
                continue
            size = record_size(self._store.get(Namespace.UNITS, name))
            self._store.delete(Namespace.UNITS, name)
            self._metrics.record_collection(size)
            logger.info("GC non-existent creep %s (%d bytes)", name, size)
            collected.append(name)
        return collected

    def tick(self) -> TickReport:
        """Run one full tick: GC, then every room."""
        with self._metrics.time_tick():
            report = TickReport(collected=self.collect_garbage())
            for room in self._world.rooms():
                coordinator = RoomCoordinator(
                    room,
                    self._world,
                    self._store,
                    self._config,
                    names=self._names,
                    recovery=self._recovery,
                    metrics=self._metrics,
                )
                room_report = coordinator.run()
                if room_report.aborted:
                    logger.error("Room %s aborted after repeated unit failures", room.name)
                report.rooms.append(room_report)

        if self._on_tick_complete:
            self._on_tick_complete(report)
        return report

    def run(self, ticks: int, advance: Callable[[], None] | None = None) -> int:
        """Run a fixed number of ticks.

        Args:
            ticks: Number of ticks to run.
            advance: Called after each tick to move the host's clock.

        Returns:
            Number of ticks completed.
        """
        self._metrics.start()
        completed = 0
        while completed < ticks:
            self.tick()
            if advance is not None:
                advance()
            completed += 1
        logger.info("Scheduler finished %d ticks", completed)
        return completed
