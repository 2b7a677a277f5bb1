"""Room coordinator.

A room is the supply/demand scope of the colony. Each tick the coordinator:

1. Takes a census of managed units in the room and splits it into the
   harvest line and the upgrade line.
2. Refreshes each ghoul's targets from its capacity state.
3. Steps every managed unit once, after its orders. Units still being
   spawned are counted but not stepped.
4. Removes units that ended their step with nothing left to do.
5. Asks the room's primary spawner for at most one new ghoul when a line is
   under quota.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from screepy.config.loader import Config
from screepy.entities.ghoul import Ghoul
from screepy.entities.handle import EntityHandle
from screepy.entities.harvester import Harvester
from screepy.entities.naming import NameGenerator
from screepy.interfaces.memory import Namespace
from screepy.interfaces.world import (
    Depot,
    FindKind,
    Resource,
    ResourceNode,
    ResultCode,
    describe_result,
)
from screepy.models.memory import Role
from screepy.models.outcomes import RoomReport, StepOutcome
from screepy.runtime.metrics import MetricsCollector
from screepy.runtime.recovery import RecoveryPolicy, UnitRecoveryCoordinator

if TYPE_CHECKING:
    from screepy.interfaces.memory import StateStore
    from screepy.interfaces.world import Room, Unit, World

logger = logging.getLogger(__name__)

HARVEST_LINE = "harvest"
UPGRADE_LINE = "upgrade"

CONTROLLERS: dict[Role, type[EntityHandle]] = {
    Role.GHOUL: Ghoul,
    Role.HARVESTER: Harvester,
}


def wrap_unit(unit: Unit, world: World, store: StateStore) -> EntityHandle | None:
    """Wrap a live unit in the controller matching its record.

    Returns:
        The controller, or None for units without a managed role.
    """
    if not store.contains(Namespace.UNITS, unit.name):
        return None
    role = store.get(Namespace.UNITS, unit.name).get("role")
    try:
        controller = CONTROLLERS[Role(role)]
    except ValueError:
        logger.debug("Ignoring unit %s with unmanaged role %r", unit.name, role)
        return None
    return controller(unit, world, store)


class RoomCoordinator:
    """Coordinates the units and the spawner of one room.

    Example:
        >>> coordinator = RoomCoordinator(room, world, store, config)
        >>> report = coordinator.run()
        >>> print(report.harvesting, report.spawn_name)
    """

    def __init__(
        self,
        room: Room,
        world: World,
        store: StateStore,
        config: Config | None = None,
        *,
        names: NameGenerator | None = None,
        recovery: UnitRecoveryCoordinator | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            room: Room to coordinate.
            world: World the room belongs to.
            store: Persisted-state store.
            config: Configuration. Uses defaults if None.
            names: Name generator for new units.
            recovery: Per-unit failure isolation. Built from config if None.
            metrics: Metrics collector. Creates new one if None.
        """
        self._room = room
        self._world = world
        self._store = store
        self._config = config or Config()
        self._names = names or NameGenerator(world)
        self._recovery = recovery or UnitRecoveryCoordinator(
            RecoveryPolicy.from_config(self._config.recovery)
        )
        self._metrics = metrics or MetricsCollector()

    @property
    def name(self) -> str:
        return self._room.name

    def harvest_quota(self) -> int:
        """Desired size of the harvest line."""
        return self._config.spawning.max_harvesters

    def upgrade_quota(self) -> int:
        """Desired size of the upgrade line."""
        return self._config.spawning.max_upgraders

    def run(self) -> RoomReport:
        """Run one tick for this room."""
        report = RoomReport(room=self.name)
        self._recovery.begin_tick()

        for unit in self._world.units(self.name):
            line = self._census_line(unit)
            try:
                handle = wrap_unit(unit, self._world, self._store)
                if handle is None:
                    continue
                if unit.spawning:
                    outcome = StepOutcome.idle(None, "spawning")
                else:
                    if self._config.behavior.reissue_orders and isinstance(handle, Ghoul):
                        self.issue_orders(handle)
                    outcome = handle.step()
            except Exception as error:
                if not self._isolate(error, unit.name):
                    report.aborted = True
                    return report
                report.outcomes[unit.name] = StepOutcome.failed(str(error))
                # A failed step leaves the unit alive, so it stays in the census
                self._count(report, line)
                continue

            report.outcomes[unit.name] = outcome
            self._metrics.record_outcome(outcome)
            if outcome.is_terminal:
                self._terminate(unit, outcome)
                continue

            if isinstance(handle, Ghoul):
                line = HARVEST_LINE if handle.is_harvesting else UPGRADE_LINE
            self._count(report, line)

        self._spawn(report)
        return report

    def _census_line(self, unit: Unit) -> str | None:
        """Line of a unit read from its raw record, before any validation.

        Returns None for units this room does not manage.
        """
        if not self._store.contains(Namespace.UNITS, unit.name):
            return None
        record = self._store.get(Namespace.UNITS, unit.name)
        role = record.get("role")
        if role == Role.HARVESTER:
            return HARVEST_LINE
        if role != Role.GHOUL:
            return None
        if record.get("harvestTarget") or record.get("harvest"):
            return HARVEST_LINE
        return UPGRADE_LINE

    @staticmethod
    def _count(report: RoomReport, line: str | None) -> None:
        if line == HARVEST_LINE:
            report.harvesting += 1
        elif line == UPGRADE_LINE:
            report.upgrading += 1

    def _isolate(self, error: Exception, unit_name: str) -> bool:
        """Contain a unit failure; re-raises when isolation is off."""
        if not self._recovery.isolating:
            raise error
        self._metrics.record_unit_failure()
        return self._recovery.handle(error, unit_name)

    def _terminate(self, unit: Unit, outcome: StepOutcome) -> None:
        logger.warning('"%s" lost the will to live (%s)', unit.name, outcome.reason)
        code = self._world.terminate(unit)
        if code != ResultCode.OK:
            logger.error("Terminating %s failed: %s", unit.name, describe_result(code))

    def issue_orders(self, ghoul: Ghoul) -> None:
        """Refresh a ghoul's targets from its capacity state.

        Empty harvesters are pointed at an active source, full harvesters at
        the least loaded depot. Empty upgraders are pointed at the fullest
        depot; full upgraders drop their depot. Partly loaded ghouls keep
        their orders.
        """
        memory = ghoul.memory
        if ghoul.is_harvesting:
            if ghoul.has_empty_capacity(Resource.ENERGY):
                node = self._active_node(memory.harvest_target, ghoul)
                if node is not None:
                    memory.harvest_target = node.id
            elif ghoul.has_full_capacity(Resource.ENERGY):
                depot = ghoul.find_container_with_capacity(Resource.ENERGY)
                if depot is not None:
                    memory.transfer_target = depot.id
        elif ghoul.has_empty_capacity(Resource.ENERGY):
            depot = ghoul.find_container_with_capacity(Resource.ENERGY, fullest=True)
            if depot is not None:
                memory.transfer_target = depot.id
        elif ghoul.has_full_capacity(Resource.ENERGY):
            memory.transfer_target = None
        ghoul.flush()

    def _active_node(self, current: str | None, ghoul: Ghoul) -> ResourceNode | None:
        """Keep the current source while it is active, else the nearest active one."""
        nodes: list[ResourceNode] = self._world.find(self.name, FindKind.SOURCES_ACTIVE)
        for node in nodes:
            if node.id == current:
                return node
        return self._world.find_nearest(ghoul.unit.pos, FindKind.SOURCES_ACTIVE)

    def primary_depot(self) -> Depot | None:
        """The spawner this room spawns from: the first one the host lists."""
        spawners: list[Depot] = self._world.find(self.name, FindKind.SPAWNERS)
        return spawners[0] if spawners else None

    def _status(self, spawner: Depot, text: str, report: RoomReport) -> None:
        report.status = text
        self._world.render_text(self.name, spawner.pos.x, spawner.pos.y + 1.1, text)

    def _spawn(self, report: RoomReport) -> None:
        spawner = self.primary_depot()
        if spawner is None:
            logger.info('No spawner detected in room: "%s"', self.name)
            report.status = "No spawner"
            return
        if spawner.spawning:
            self._status(spawner, f"Spawning: {spawner.spawning}", report)
            return

        if report.harvesting < self.harvest_quota():
            node = self._world.find_nearest(spawner.pos, FindKind.SOURCES_ACTIVE)
            if node is None:
                logger.info('No source detected in room: "%s"', self.name)
                report.status = "No source"
                return
            self._request_spawn(spawner, Ghoul.create_memory(node.id), report)
        elif report.upgrading < self.upgrade_quota():
            if self._room.controller is None:
                logger.info('No controller detected in room: "%s"', self.name)
                report.status = "No controller"
                return
            self._request_spawn(spawner, Ghoul.create_memory(), report)
        else:
            self._status(spawner, "Idle", report)

    def _request_spawn(self, spawner: Depot, memory: dict, report: RoomReport) -> None:
        spawning = self._config.spawning
        name = self._names.next(spawning.name_prefix)
        code = self._world.spawn(spawner, spawning.body, name, memory)
        self._metrics.record_spawn(code)
        report.spawn_name = name
        report.spawn_result = code
        if code == ResultCode.OK:
            logger.info('Spawning "%s" from %s: %s', name, spawner.name, memory)
            self._status(spawner, f"Spawning: {name}", report)
        else:
            logger.warning('Spawning "%s" failed: %s', name, describe_result(code))
            report.status = f"Spawn failed: {describe_result(code)}"

    def __str__(self) -> str:
        return f"<Room|{self.name}>"
