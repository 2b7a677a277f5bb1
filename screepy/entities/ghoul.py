"""Ghoul worker controller.

Ghouls are the basic worker unit (work, carry, move). A ghoul with a
``harvestTarget`` works the harvest line: harvest from its source, then
deposit into a depot, or upgrade the controller when depots are full. A
ghoul without one works the upgrade line: withdraw from a depot, then
upgrade the controller.

Sub-goals only change at the capacity extremes. Between empty and full the
ghoul keeps doing what it last decided, so a partly loaded ghoul never
thrashes between goals.
"""

from __future__ import annotations

import logging
from typing import Any

from screepy.entities.handle import EntityHandle
from screepy.interfaces.world import Depot, FindKind, Resource, ResourceNode, Verb
from screepy.models.memory import GhoulMemory, Goal, Role, dump_memory
from screepy.models.outcomes import StepOutcome

logger = logging.getLogger(__name__)

HARVEST_STYLE = "#ffaa00"
DEPOSIT_STYLE = "#cc4433"
UPGRADE_STYLE = "#33cc55"


class Ghoul(EntityHandle[GhoulMemory]):
    """Controller for a unit in the ghoul role."""

    role = Role.GHOUL

    @staticmethod
    def is_a(record: dict[str, Any]) -> bool:
        """Whether a persisted record belongs to a ghoul."""
        return record.get("role") == Role.GHOUL

    @staticmethod
    def create_memory(harvest_target: str | None = None) -> dict[str, Any]:
        """Create the initial record for a new ghoul.

        Args:
            harvest_target: Source id for the harvest line, or None for the
                upgrade line.
        """
        return dump_memory(GhoulMemory(harvest_target=harvest_target))

    @property
    def is_harvesting(self) -> bool:
        """Whether this ghoul works the harvest line."""
        return self.memory.is_harvesting

    @property
    def is_upgrading(self) -> bool:
        """Whether this ghoul works the upgrade line."""
        return not self.memory.is_harvesting

    def step(self) -> StepOutcome:
        if self.memory.harvest_target:
            outcome = self._run_harvest_line()
        else:
            outcome = self._run_upgrade_line()
        self.flush()
        return outcome

    def _switch(self, goal: Goal, announcement: str) -> None:
        if self.memory.goal == goal:
            return
        logger.debug("%s: goal %s -> %s", self, self.memory.goal, goal.value)
        self.memory.goal = goal
        if goal in (Goal.HARVEST, Goal.UPGRADE):
            self.memory.transfer_target = None
        self.say(announcement)

    def _run_upgrade_line(self) -> StepOutcome:
        if self.has_full_capacity(Resource.ENERGY):
            self._switch(Goal.UPGRADE, "Upgrade")
        elif self.has_empty_capacity(Resource.ENERGY):
            self._switch(Goal.WITHDRAW, "Withdraw")

        if self.memory.goal == Goal.UPGRADE:
            return self._upgrade()
        return self._withdraw()

    def _run_harvest_line(self) -> StepOutcome:
        if self.has_full_capacity(Resource.ENERGY):
            depot = self._resolve_depot()
            if depot is not None and depot.store.get_free_capacity(Resource.ENERGY) == 0:
                self._switch(Goal.UPGRADE, "Upgrade")
            else:
                self._switch(Goal.DEPOSIT, "Deposit")
        elif self.has_empty_capacity(Resource.ENERGY):
            self._switch(Goal.HARVEST, "Harvest")

        if self.memory.goal == Goal.DEPOSIT:
            return self._deposit()
        if self.memory.goal == Goal.UPGRADE:
            return self._upgrade()
        return self._harvest()

    def _resolve_depot(self, *, fullest: bool = False) -> Depot | None:
        """Get the ordered depot if it still exists, else pick one by load."""
        target = self.memory.transfer_target
        if target:
            ordered = self._world.find(self._unit.room, FindKind.DEPOTS, lambda d: d.id == target)
            if ordered:
                return ordered[0]
        return self.find_container_with_capacity(Resource.ENERGY, fullest=fullest)

    def _harvest(self) -> StepOutcome:
        target = self.memory.harvest_target
        sources: list[ResourceNode] = self._world.find(
            self._unit.room, FindKind.SOURCES_ACTIVE, lambda s: s.id == target
        )
        if not sources:
            return StepOutcome.terminated(Goal.HARVEST, "no sources")
        outcome = self.act(Verb.HARVEST, sources[0], Goal.HARVEST, style=HARVEST_STYLE)
        self.label("Harvest")
        return outcome

    def _deposit(self) -> StepOutcome:
        depot = self._resolve_depot()
        if depot is None:
            return StepOutcome.terminated(Goal.DEPOSIT, "no containers")
        self.memory.transfer_target = depot.id
        outcome = self.act(
            Verb.TRANSFER, depot, Goal.DEPOSIT, resource=Resource.ENERGY, style=DEPOSIT_STYLE
        )
        self.label("Deposit")
        return outcome

    def _withdraw(self) -> StepOutcome:
        depot = self._resolve_depot(fullest=True)
        if depot is None:
            return StepOutcome.terminated(Goal.WITHDRAW, "no containers")
        self.memory.transfer_target = depot.id
        outcome = self.act(
            Verb.WITHDRAW, depot, Goal.WITHDRAW, resource=Resource.ENERGY, style=DEPOSIT_STYLE
        )
        self.label("Withdraw")
        return outcome

    def _upgrade(self) -> StepOutcome:
        controller = self.find_controller()
        if controller is None:
            self.label("Idle")
            return StepOutcome.idle(Goal.UPGRADE, "no controller")
        outcome = self.act(Verb.UPGRADE, controller, Goal.UPGRADE, style=UPGRADE_STYLE)
        self.label("Upgrade")
        return outcome

    def label(self, name: str, description: str | None = None, icon: str | None = None) -> None:
        """Label the ghoul with its current action."""
        super().label("Ghoul", name, "\N{GHOST}")
