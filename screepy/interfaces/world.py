"""World interface for the simulation host.

The host owns the live world: rooms, units, structures, movement and the
low-level action verbs. Controllers only ever see the world through this
interface so that a tick can be replayed against an in-memory fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from enum import IntEnum, StrEnum
from typing import Any


class ResultCode(IntEnum):
    """Result codes returned by host actions."""

    OK = 0
    NOT_OWNER = -1
    NO_PATH = -2
    NAME_EXISTS = -3
    BUSY = -4
    NOT_FOUND = -5
    NOT_ENOUGH_RESOURCES = -6
    INVALID_TARGET = -7
    FULL = -8
    NOT_IN_RANGE = -9
    INVALID_ARGS = -10
    TIRED = -11
    NO_BODYPART = -12
    RCL_NOT_ENOUGH = -14


_RESULT_LABELS = {
    ResultCode.OK: "ok",
    ResultCode.NOT_OWNER: "not owner",
    ResultCode.NO_PATH: "no path",
    ResultCode.NAME_EXISTS: "name exists",
    ResultCode.BUSY: "busy",
    ResultCode.NOT_FOUND: "not found",
    ResultCode.NOT_ENOUGH_RESOURCES: "not enough resources",
    ResultCode.INVALID_TARGET: "invalid target",
    ResultCode.FULL: "full",
    ResultCode.NOT_IN_RANGE: "not in range",
    ResultCode.INVALID_ARGS: "invalid arguments",
    ResultCode.TIRED: "tired",
    ResultCode.NO_BODYPART: "no body part",
    ResultCode.RCL_NOT_ENOUGH: "insufficient controller level",
}


def describe_result(code: int) -> str:
    """Map a host result code to a human-readable label."""
    try:
        return _RESULT_LABELS[ResultCode(code)]
    except ValueError:
        return f"unknown error ({code})"


class Resource(StrEnum):
    """Resource types a store can hold."""

    ENERGY = "energy"


class BodyPart(StrEnum):
    """Body parts a unit can be spawned with."""

    WORK = "work"
    CARRY = "carry"
    MOVE = "move"


class Verb(StrEnum):
    """Low-level action verbs understood by the host."""

    HARVEST = "harvest"
    TRANSFER = "transfer"
    WITHDRAW = "withdraw"
    UPGRADE = "upgrade"


class FindKind(StrEnum):
    """Kinds of entity the host can search for."""

    SOURCES = "sources"
    SOURCES_ACTIVE = "sources_active"
    DEPOTS = "depots"
    SPAWNERS = "spawners"
    UNITS = "units"


class DepotType(StrEnum):
    """Structure types that act as a depot."""

    SPAWN = "spawn"
    CONTAINER = "container"


class Position:
    """A tile position inside a room."""

    __slots__ = ("x", "y", "room")

    def __init__(self, x: int, y: int, room: str) -> None:
        self.x = x
        self.y = y
        self.room = room

    def range_to(self, other: Position) -> int:
        """Chebyshev distance to another position in the same room."""
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def __repr__(self) -> str:
        return f"Position({self.x}, {self.y}, {self.room!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return (self.x, self.y, self.room) == (other.x, other.y, other.room)

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.room))


class Store:
    """A bounded resource store."""

    __slots__ = ("_capacity", "_contents")

    def __init__(self, capacity: int, contents: dict[str, int] | None = None) -> None:
        """Initialize a store.

        Args:
            capacity: Total capacity shared by all resources.
            contents: Initial amount held per resource.
        """
        self._capacity = capacity
        self._contents: dict[str, int] = dict(contents or {})

    def get_capacity(self, resource: str = Resource.ENERGY) -> int:
        return self._capacity

    def get_used_capacity(self, resource: str = Resource.ENERGY) -> int:
        return self._contents.get(resource, 0)

    def get_free_capacity(self, resource: str = Resource.ENERGY) -> int:
        return self._capacity - sum(self._contents.values())

    def add(self, resource: str, amount: int) -> int:
        """Add up to ``amount``; returns what actually fit."""
        moved = max(0, min(amount, self.get_free_capacity(resource)))
        self._contents[resource] = self._contents.get(resource, 0) + moved
        return moved

    def remove(self, resource: str, amount: int) -> int:
        """Remove up to ``amount``; returns what was actually taken."""
        moved = max(0, min(amount, self.get_used_capacity(resource)))
        self._contents[resource] = self._contents.get(resource, 0) - moved
        return moved

    def __repr__(self) -> str:
        return f"Store({self._contents}, capacity={self._capacity})"


class Entity:
    """Base for anything that lives in the world."""

    __slots__ = ("id", "pos")

    def __init__(self, entity_id: str, pos: Position) -> None:
        self.id = entity_id
        self.pos = pos

    @property
    def room(self) -> str:
        return self.pos.room

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"


class Unit(Entity):
    """A mobile unit (creep)."""

    __slots__ = ("name", "body", "store", "spawning")

    def __init__(
        self,
        entity_id: str,
        name: str,
        pos: Position,
        store: Store,
        body: Sequence[BodyPart] = (BodyPart.WORK, BodyPart.CARRY, BodyPart.MOVE),
    ) -> None:
        super().__init__(entity_id, pos)
        self.name = name
        self.store = store
        self.body = list(body)
        self.spawning = False


class Depot(Entity):
    """A spawner or container holding resources."""

    __slots__ = ("name", "depot_type", "store", "spawning")

    def __init__(
        self,
        entity_id: str,
        pos: Position,
        store: Store,
        depot_type: DepotType = DepotType.SPAWN,
        name: str | None = None,
    ) -> None:
        super().__init__(entity_id, pos)
        self.name = name or entity_id
        self.depot_type = depot_type
        self.store = store
        self.spawning: str | None = None

    @property
    def can_spawn(self) -> bool:
        return self.depot_type == DepotType.SPAWN


class ResourceNode(Entity):
    """A regenerating resource node (source)."""

    __slots__ = ("energy", "energy_capacity")

    def __init__(self, entity_id: str, pos: Position, energy: int, energy_capacity: int) -> None:
        super().__init__(entity_id, pos)
        self.energy = energy
        self.energy_capacity = energy_capacity

    @property
    def is_active(self) -> bool:
        return self.energy > 0


class RoomController(Entity):
    """The upgradeable controller structure of a room."""

    __slots__ = ("level", "progress")

    def __init__(self, entity_id: str, pos: Position, level: int = 1) -> None:
        super().__init__(entity_id, pos)
        self.level = level
        self.progress = 0


class Room:
    """A world partition; owns at most one controller."""

    __slots__ = ("name", "controller")

    def __init__(self, name: str, controller: RoomController | None = None) -> None:
        self.name = name
        self.controller = controller

    def __repr__(self) -> str:
        return f"Room({self.name!r})"


Predicate = Callable[[Any], bool]


class World(ABC):
    """Abstract interface for the simulation host.

    The world is responsible for:
    - Enumerating rooms and live units (the census)
    - Entity queries by kind
    - Executing action verbs and movement
    - Spawning and terminating units
    - Rendering debug text
    """

    @abstractmethod
    def rooms(self) -> list[Room]:
        """Get all active rooms, in host enumeration order."""
        ...

    def room(self, name: str) -> Room | None:
        """Get an active room by name."""
        for room in self.rooms():
            if room.name == name:
                return room
        return None

    @abstractmethod
    def units(self, room: str | None = None) -> list[Unit]:
        """Get live units, optionally restricted to one room.

        Args:
            room: Room name, or None for every room.

        Returns:
            Units in host enumeration order.
        """
        ...

    @abstractmethod
    def find(self, room: str, kind: FindKind, predicate: Predicate | None = None) -> list[Any]:
        """Find every entity of a kind in a room.

        Args:
            room: Room name to search.
            kind: Kind of entity.
            predicate: Optional filter applied to each candidate.

        Returns:
            Matching entities in host enumeration order.

        Raises:
            WorldError: If the host cannot search for ``kind``.
        """
        ...

    @abstractmethod
    def find_nearest(
        self,
        origin: Position,
        kind: FindKind,
        predicate: Predicate | None = None,
    ) -> Any | None:
        """Find the entity of a kind closest to ``origin`` in its room."""
        ...

    @abstractmethod
    def perform(
        self,
        actor: Unit,
        verb: Verb,
        target: Entity,
        resource: str | None = None,
    ) -> int:
        """Attempt an action verb against a target.

        Returns:
            A host result code; see ResultCode.
        """
        ...

    @abstractmethod
    def move_toward(self, actor: Unit, target: Entity, style: str | None = None) -> int:
        """Move one step toward a target.

        Args:
            actor: The moving unit.
            target: Destination entity.
            style: Optional path visualization hint (a stroke colour).
        """
        ...

    @abstractmethod
    def spawn(
        self,
        depot: Depot,
        body: Sequence[BodyPart],
        name: str,
        memory: dict[str, Any],
    ) -> int:
        """Request a new unit from a spawner.

        The host stores ``memory`` as the unit's persisted record.

        Returns:
            A host result code; see ResultCode.
        """
        ...

    @abstractmethod
    def terminate(self, unit: Unit) -> int:
        """Remove a unit from the world."""
        ...

    def say(self, unit: Unit, text: str) -> None:  # noqa: B027
        """Show a short speech bubble above a unit."""

    def render_text(self, room: str, x: float, y: float, text: str, size: float = 0.3) -> None:  # noqa: B027
        """Render debug text in a room."""


class WorldError(Exception):
    """Error raised when the host cannot serve a request."""

    pass
