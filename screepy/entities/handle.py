"""Typed handles over managed world objects.

A handle binds a live unit to its persisted record and checks, at
construction, that the record carries the role the handle expects.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from screepy.interfaces.memory import Namespace, StateStoreError
from screepy.interfaces.world import (
    Depot,
    Entity,
    FindKind,
    Resource,
    ResultCode,
    RoomController,
    Verb,
    describe_result,
)
from screepy.models.memory import (
    Goal,
    Role,
    RoleMismatchError,
    dump_memory,
    unit_memory_adapter,
)
from screepy.models.outcomes import StepOutcome

if TYPE_CHECKING:
    from screepy.interfaces.memory import StateStore
    from screepy.interfaces.world import Unit, World

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class EntityHandle(ABC, Generic[M]):
    """Base wrapper for a managed unit and its typed record.

    Subclasses declare ``role`` and implement ``step``.
    The typed memory is a working copy; ``flush`` writes it back into the
    live record.
    """

    role: ClassVar[Role]

    def __init__(self, unit: Unit, world: World, store: StateStore) -> None:
        """Wrap a unit.

        Args:
            unit: Live unit from the world census.
            world: World the unit lives in.
            store: Persisted-state store holding the unit's record.

        Raises:
            RoleMismatchError: If the record's role is not ``role``.
            StateStoreError: If the record does not parse.
        """
        self._unit = unit
        self._world = world
        self._record = store.get(Namespace.UNITS, unit.name)

        actual = self._record.get("role")
        if actual != self.role:
            raise RoleMismatchError(f"<{unit.name}#{unit.id}>", actual, self.role.value)

        try:
            self._memory: M = unit_memory_adapter.validate_python(self._record)  # type: ignore[assignment]
        except ValidationError as e:
            raise StateStoreError(f"{self}: invalid record: {e}") from e

    @property
    def unit(self) -> Unit:
        return self._unit

    @property
    def name(self) -> str:
        return self._unit.name

    @property
    def memory(self) -> M:
        """Typed working copy of the unit's record."""
        return self._memory

    def flush(self) -> None:
        """Write the typed memory back into the live record."""
        data = dump_memory(self._memory)
        self._record.clear()
        self._record.update(data)

    def has_full_capacity(self, resource: str = Resource.ENERGY) -> bool:
        """Whether the unit has no free capacity left for ``resource``."""
        return self._unit.store.get_free_capacity(resource) == 0

    def has_empty_capacity(self, resource: str = Resource.ENERGY) -> bool:
        """Whether the unit holds none of ``resource``."""
        return self._unit.store.get_used_capacity(resource) == 0

    def find_container_with_capacity(
        self,
        resource: str = Resource.ENERGY,
        *,
        fullest: bool = False,
    ) -> Depot | None:
        """Pick a depot in the unit's room by current load.

        Depots are ranked by used capacity of ``resource``; the least loaded
        wins unless ``fullest`` is set. Ties keep host enumeration order.

        Args:
            resource: Resource to rank by.
            fullest: Prefer the most loaded depot instead (for withdrawals).

        Returns:
            The selected depot, or None if the room has none.
        """
        depots: list[Depot] = self._world.find(self._unit.room, FindKind.DEPOTS)
        if not depots:
            return None
        # sorted() stays stable with reverse=True, so ties keep host order
        ranked = sorted(
            depots,
            key=lambda d: d.store.get_used_capacity(resource),
            reverse=fullest,
        )
        return ranked[0]

    def find_controller(self) -> RoomController | None:
        """Get the controller of the unit's room, if it has one."""
        room = self._world.room(self._unit.room)
        return room.controller if room is not None else None

    def say(self, text: str) -> None:
        self._world.say(self._unit, text)

    def label(self, name: str, description: str | None = None, icon: str | None = None) -> None:
        """Render a name above the unit and an optional description below."""
        x, y = self._unit.pos.x, self._unit.pos.y
        room = self._unit.room
        self._world.render_text(room, x, y - 0.5, name, size=0.3)
        if description:
            self._world.render_text(room, x, y + 0.5, description.upper(), size=0.15)
        if icon:
            self._world.render_text(room, x, y + 0.15, icon, size=0.5)

    def act(
        self,
        verb: Verb,
        target: Entity,
        goal: Goal,
        *,
        resource: str | None = None,
        style: str | None = None,
    ) -> StepOutcome:
        """Attempt an action, moving toward the target when out of range.

        Any result other than OK or NOT_IN_RANGE is logged and not retried.
        """
        code = self._world.perform(self._unit, verb, target, resource)
        if code == ResultCode.OK:
            return StepOutcome.acted(goal)
        if code == ResultCode.NOT_IN_RANGE:
            self._world.move_toward(self._unit, target, style)
            return StepOutcome.moved(goal, code)
        logger.warning(
            "%s: %s on %s rejected: %s", self, verb.value, target.id, describe_result(code)
        )
        return StepOutcome.rejected(goal, code)

    @abstractmethod
    def step(self) -> StepOutcome:
        """Run this unit for one tick and flush its record."""
        ...

    def __str__(self) -> str:
        return f"{self.role.value}|#{self._unit.id}"
