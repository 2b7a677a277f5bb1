"""Single-role harvester controller.

Harvesters predate ghouls. They harvest the first active source in their
room, then either refuel the room's spawner or upgrade the controller,
depending on how full the spawner is.
"""

from __future__ import annotations

import logging
from typing import Any

from screepy.entities.handle import EntityHandle
from screepy.interfaces.world import Depot, FindKind, Resource, Verb
from screepy.models.memory import Goal, HarvesterMemory, Role
from screepy.models.outcomes import StepOutcome

logger = logging.getLogger(__name__)

# Refuel the spawner while more than this share of it is empty.
REFUEL_THRESHOLD = 0.5


class Harvester(EntityHandle[HarvesterMemory]):
    """Controller for a unit in the legacy harvest role."""

    role = Role.HARVESTER

    @staticmethod
    def is_a(record: dict[str, Any]) -> bool:
        return record.get("role") == Role.HARVESTER

    def step(self) -> StepOutcome:
        self._switch_goals()
        goal = self.memory.goal
        if goal == Goal.UPGRADE:
            outcome = self._upgrade()
        elif goal == Goal.DEPOSIT:
            outcome = self._refuel()
        else:
            outcome = self._harvest()
        self.label("Harvester", self.memory.goal.value)
        self.flush()
        return outcome

    def _spawner(self) -> Depot | None:
        spawners: list[Depot] = self._world.find(self._unit.room, FindKind.SPAWNERS)
        return spawners[0] if spawners else None

    def _switch_goals(self) -> None:
        if self.has_empty_capacity(Resource.ENERGY):
            self.memory.goal = Goal.HARVEST
        elif self.has_full_capacity(Resource.ENERGY):
            spawner = self._spawner()
            if spawner is None:
                logger.info("%s: no spawners found", self)
                return
            store = spawner.store
            capacity = store.get_capacity(Resource.ENERGY)
            if capacity <= 0:
                # Nothing to refuel
                self.memory.goal = Goal.UPGRADE
                return
            empty_share = store.get_free_capacity(Resource.ENERGY) / capacity
            self.memory.goal = Goal.DEPOSIT if empty_share > REFUEL_THRESHOLD else Goal.UPGRADE

    def _harvest(self) -> StepOutcome:
        sources = self._world.find(self._unit.room, FindKind.SOURCES_ACTIVE)
        if not sources:
            return StepOutcome.terminated(Goal.HARVEST, "no sources")
        return self.act(Verb.HARVEST, sources[0], Goal.HARVEST, style="#ffaa00")

    def _upgrade(self) -> StepOutcome:
        controller = self.find_controller()
        if controller is None:
            logger.info("%s: no room controller found", self)
            return StepOutcome.idle(Goal.UPGRADE, "no controller")
        return self.act(Verb.UPGRADE, controller, Goal.UPGRADE, style="#fff")

    def _refuel(self) -> StepOutcome:
        spawner = self._spawner()
        if spawner is None:
            return StepOutcome.terminated(Goal.DEPOSIT, "no containers")
        return self.act(
            Verb.TRANSFER, spawner, Goal.DEPOSIT, resource=Resource.ENERGY, style="#cc4433"
        )

    def __str__(self) -> str:
        return f"<{self._unit.name}#{self._unit.id}>"
