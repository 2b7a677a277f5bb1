"""In-memory simulation host.

This module provides:
- InMemoryWorld: Grid-based World implementation for tests and the CLI
- build_demo_world: Single-room demo colony from SimulationConfig

The in-memory host follows the real host's rules closely enough for the
controllers to behave the same way:
- Harvest, transfer and withdraw need range 1, upgrading needs range 3
- Movement advances one tile per call
- Spawning costs energy per body part and takes 3 ticks per part
- Sources regenerate every 300 ticks

Every action, move and label is recorded so that tests can assert on what a
tick actually asked the host to do.

Example:
    >>> world = InMemoryWorld(store)
    >>> world.add_room("W1N1")
    >>> world.add_source("W1N1", 10, 10)
    >>> world.add_depot("W1N1", 25, 25, energy=300)
    >>> scheduler.tick()
    >>> world.advance()
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from screepy.interfaces.memory import Namespace, StateStore
from screepy.interfaces.world import (
    BodyPart,
    Depot,
    DepotType,
    Entity,
    FindKind,
    Position,
    Predicate,
    Resource,
    ResourceNode,
    ResultCode,
    Room,
    RoomController,
    Store,
    Unit,
    Verb,
    World,
    WorldError,
)

if TYPE_CHECKING:
    from screepy.config.loader import SimulationConfig

logger = logging.getLogger(__name__)

ROOM_SIZE = 50
PART_COST: dict[BodyPart, int] = {BodyPart.WORK: 100, BodyPart.CARRY: 50, BodyPart.MOVE: 50}
SPAWN_TICKS_PER_PART = 3
CARRY_CAPACITY = 50
HARVEST_POWER = 2
UPGRADE_POWER = 1
SOURCE_CAPACITY = 3000
SOURCE_REGEN_TICKS = 300
SPAWN_CAPACITY = 300
CONTAINER_CAPACITY = 2000

ACTION_RANGE: dict[Verb, int] = {
    Verb.HARVEST: 1,
    Verb.TRANSFER: 1,
    Verb.WITHDRAW: 1,
    Verb.UPGRADE: 3,
}


@dataclass(frozen=True)
class ActionRecord:
    """One action verb the host was asked to perform."""

    tick: int
    actor: str
    verb: Verb
    target: str
    result: int


@dataclass(frozen=True)
class MoveRecord:
    """One movement request."""

    tick: int
    actor: str
    target: str
    style: str | None
    result: int


@dataclass(frozen=True)
class TextRecord:
    """One piece of rendered debug text or speech."""

    tick: int
    room: str
    text: str


def _step_toward(origin: int, goal: int) -> int:
    if goal > origin:
        return origin + 1
    if goal < origin:
        return origin - 1
    return origin


def body_cost(body: Sequence[BodyPart]) -> int:
    """Energy needed to spawn a body."""
    return sum(PART_COST[BodyPart(part)] for part in body)


class InMemoryWorld(World):
    """World implementation backed by plain Python objects.

    Entities are enumerated in insertion order, which stands in for the
    host enumeration order everywhere the controllers depend on it.
    """

    def __init__(self, store: StateStore) -> None:
        """Initialize an empty world.

        Args:
            store: State store that receives the records of spawned units.
        """
        self._store = store
        self._rooms: dict[str, Room] = {}
        self._units: dict[str, Unit] = {}
        self._sources: list[ResourceNode] = []
        self._depots: list[Depot] = []
        self._hatching: dict[str, int] = {}
        self._next_id = 1
        self.tick = 0

        self.actions: list[ActionRecord] = []
        self.moves: list[MoveRecord] = []
        self.labels: list[TextRecord] = []
        self.speech: list[TextRecord] = []
        self.terminated: list[str] = []

    def _new_id(self, kind: str) -> str:
        entity_id = f"{kind}{self._next_id}"
        self._next_id += 1
        return entity_id

    # Builders

    def add_room(self, name: str, controller_at: tuple[int, int] | None = (25, 25)) -> Room:
        """Add a room, optionally with a controller at ``controller_at``."""
        controller = None
        if controller_at is not None:
            x, y = controller_at
            controller = RoomController(self._new_id("ctrl"), Position(x, y, name))
        room = Room(name, controller)
        self._rooms[name] = room
        return room

    def add_source(
        self,
        room: str,
        x: int,
        y: int,
        energy: int = SOURCE_CAPACITY,
        capacity: int = SOURCE_CAPACITY,
        entity_id: str | None = None,
    ) -> ResourceNode:
        position = Position(x, y, room)
        node = ResourceNode(entity_id or self._new_id("src"), position, energy, capacity)
        self._sources.append(node)
        return node

    def add_depot(
        self,
        room: str,
        x: int,
        y: int,
        energy: int = 0,
        capacity: int | None = None,
        depot_type: DepotType = DepotType.SPAWN,
        name: str | None = None,
        entity_id: str | None = None,
    ) -> Depot:
        """Add a spawner or container."""
        if capacity is None:
            capacity = SPAWN_CAPACITY if depot_type == DepotType.SPAWN else CONTAINER_CAPACITY
        store = Store(capacity, {Resource.ENERGY: energy})
        entity_id = entity_id or self._new_id(str(depot_type))
        depot = Depot(entity_id, Position(x, y, room), store, depot_type, name)
        self._depots.append(depot)
        return depot

    def add_unit(
        self,
        name: str,
        room: str,
        x: int,
        y: int,
        body: Sequence[BodyPart] = (BodyPart.WORK, BodyPart.CARRY, BodyPart.MOVE),
        energy: int = 0,
        memory: dict[str, Any] | None = None,
    ) -> Unit:
        """Add a live unit, optionally writing its record."""
        capacity = CARRY_CAPACITY * sum(1 for part in body if part == BodyPart.CARRY)
        store = Store(capacity, {Resource.ENERGY: energy})
        unit = Unit(self._new_id("unit"), name, Position(x, y, room), store, body)
        self._units[name] = unit
        if memory is not None:
            self._store.set(Namespace.UNITS, name, dict(memory))
        return unit

    def remove_source(self, node: ResourceNode) -> None:
        self._sources = [s for s in self._sources if s is not node]

    def remove_depot(self, depot: Depot) -> None:
        self._depots = [d for d in self._depots if d is not depot]

    def get_unit(self, name: str) -> Unit | None:
        return self._units.get(name)

    # Queries

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def units(self, room: str | None = None) -> list[Unit]:
        return [u for u in self._units.values() if room is None or u.room == room]

    def find(self, room: str, kind: FindKind, predicate: Predicate | None = None) -> list[Any]:
        candidates: list[Any]
        if kind == FindKind.SOURCES:
            candidates = [s for s in self._sources if s.room == room]
        elif kind == FindKind.SOURCES_ACTIVE:
            candidates = [s for s in self._sources if s.room == room and s.is_active]
        elif kind == FindKind.DEPOTS:
            candidates = [d for d in self._depots if d.room == room]
        elif kind == FindKind.SPAWNERS:
            candidates = [d for d in self._depots if d.room == room and d.can_spawn]
        elif kind == FindKind.UNITS:
            candidates = self.units(room)
        else:
            raise WorldError(f"Unsupported find kind: {kind}")
        if predicate is not None:
            candidates = [c for c in candidates if predicate(c)]
        return candidates

    def find_nearest(
        self,
        origin: Position,
        kind: FindKind,
        predicate: Predicate | None = None,
    ) -> Any | None:
        candidates = self.find(origin.room, kind, predicate)
        if not candidates:
            return None
        return min(candidates, key=lambda c: origin.range_to(c.pos))

    # Actions

    def perform(
        self,
        actor: Unit,
        verb: Verb,
        target: Entity,
        resource: str | None = None,
    ) -> int:
        code = self._perform(actor, verb, target, resource or Resource.ENERGY)
        self.actions.append(ActionRecord(self.tick, actor.name, verb, target.id, code))
        return code

    def _perform(self, actor: Unit, verb: Verb, target: Entity, resource: str) -> int:
        if actor.name not in self._units:
            return ResultCode.NOT_FOUND
        if actor.spawning:
            return ResultCode.BUSY

        in_range = (
            target.room == actor.room and actor.pos.range_to(target.pos) <= ACTION_RANGE[verb]
        )
        work = sum(1 for part in actor.body if part == BodyPart.WORK)

        if verb == Verb.HARVEST:
            if not isinstance(target, ResourceNode):
                return ResultCode.INVALID_TARGET
            if work == 0:
                return ResultCode.NO_BODYPART
            if not target.is_active:
                return ResultCode.NOT_ENOUGH_RESOURCES
            if not in_range:
                return ResultCode.NOT_IN_RANGE
            taken = min(HARVEST_POWER * work, target.energy)
            target.energy -= taken
            actor.store.add(resource, taken)
            return ResultCode.OK

        if verb == Verb.TRANSFER:
            if not isinstance(target, Depot):
                return ResultCode.INVALID_TARGET
            if actor.store.get_used_capacity(resource) == 0:
                return ResultCode.NOT_ENOUGH_RESOURCES
            if target.store.get_free_capacity(resource) <= 0:
                return ResultCode.FULL
            if not in_range:
                return ResultCode.NOT_IN_RANGE
            amount = min(
                actor.store.get_used_capacity(resource), target.store.get_free_capacity(resource)
            )
            target.store.add(resource, actor.store.remove(resource, amount))
            return ResultCode.OK

        if verb == Verb.WITHDRAW:
            if not isinstance(target, Depot):
                return ResultCode.INVALID_TARGET
            if actor.store.get_free_capacity(resource) <= 0:
                return ResultCode.FULL
            if target.store.get_used_capacity(resource) == 0:
                return ResultCode.NOT_ENOUGH_RESOURCES
            if not in_range:
                return ResultCode.NOT_IN_RANGE
            amount = min(
                actor.store.get_free_capacity(resource), target.store.get_used_capacity(resource)
            )
            actor.store.add(resource, target.store.remove(resource, amount))
            return ResultCode.OK

        if verb == Verb.UPGRADE:
            if not isinstance(target, RoomController):
                return ResultCode.INVALID_TARGET
            if work == 0:
                return ResultCode.NO_BODYPART
            if actor.store.get_used_capacity(Resource.ENERGY) == 0:
                return ResultCode.NOT_ENOUGH_RESOURCES
            if not in_range:
                return ResultCode.NOT_IN_RANGE
            target.progress += actor.store.remove(Resource.ENERGY, UPGRADE_POWER * work)
            return ResultCode.OK

        return ResultCode.INVALID_ARGS

    def move_toward(self, actor: Unit, target: Entity, style: str | None = None) -> int:
        code = self._move(actor, target)
        self.moves.append(MoveRecord(self.tick, actor.name, target.id, style, code))
        return code

    def _move(self, actor: Unit, target: Entity) -> int:
        if actor.spawning:
            return ResultCode.BUSY
        if BodyPart.MOVE not in actor.body:
            return ResultCode.NO_BODYPART
        if target.room != actor.room:
            return ResultCode.NO_PATH
        # Stop next to the target, never on it
        if actor.pos.range_to(target.pos) > 1:
            actor.pos = Position(
                _step_toward(actor.pos.x, target.pos.x),
                _step_toward(actor.pos.y, target.pos.y),
                actor.room,
            )
        return ResultCode.OK

    def spawn(
        self,
        depot: Depot,
        body: Sequence[BodyPart],
        name: str,
        memory: dict[str, Any],
    ) -> int:
        if not depot.can_spawn:
            return ResultCode.INVALID_TARGET
        if depot.spawning:
            return ResultCode.BUSY
        try:
            parts = [BodyPart(part) for part in body]
        except ValueError:
            return ResultCode.INVALID_ARGS
        if not parts:
            return ResultCode.INVALID_ARGS
        if name in self._units:
            return ResultCode.NAME_EXISTS
        cost = body_cost(parts)
        if depot.store.get_used_capacity(Resource.ENERGY) < cost:
            return ResultCode.NOT_ENOUGH_RESOURCES

        depot.store.remove(Resource.ENERGY, cost)
        y = min(depot.pos.y + 1, ROOM_SIZE - 1)
        unit = self.add_unit(name, depot.room, depot.pos.x, y, parts, memory=memory)
        unit.spawning = True
        depot.spawning = name
        self._hatching[name] = SPAWN_TICKS_PER_PART * len(parts)
        logger.debug("Host: %s spawning %s (%d energy)", depot.name, name, cost)
        return ResultCode.OK

    def terminate(self, unit: Unit) -> int:
        if self._units.pop(unit.name, None) is None:
            return ResultCode.NOT_FOUND
        if self._hatching.pop(unit.name, None) is not None:
            self._finish_spawn(unit.name)
        self.terminated.append(unit.name)
        return ResultCode.OK

    def say(self, unit: Unit, text: str) -> None:
        self.speech.append(TextRecord(self.tick, unit.room, f"{unit.name}: {text}"))

    def render_text(self, room: str, x: float, y: float, text: str, size: float = 0.3) -> None:
        self.labels.append(TextRecord(self.tick, room, text))

    # Time

    def _finish_spawn(self, name: str) -> None:
        for depot in self._depots:
            if depot.spawning == name:
                depot.spawning = None

    def advance(self) -> None:
        """Move the world to the next tick.

        Finishes spawns whose time is up, regenerates sources and clears the
        per-tick label buffer.
        """
        self.tick += 1
        for name in list(self._hatching):
            self._hatching[name] -= 1
            if self._hatching[name] > 0:
                continue
            del self._hatching[name]
            unit = self._units.get(name)
            if unit is not None:
                unit.spawning = False
            self._finish_spawn(name)

        if self.tick % SOURCE_REGEN_TICKS == 0:
            for node in self._sources:
                node.energy = node.energy_capacity
        self.labels.clear()


def build_demo_world(config: SimulationConfig, store: StateStore) -> InMemoryWorld:
    """Build a single-room colony with one spawner.

    Sources and containers are scattered with a seeded RNG so that runs are
    reproducible.
    """
    rng = random.Random(config.seed)
    world = InMemoryWorld(store)
    world.add_room(config.room, controller_at=(25, 40))
    world.add_depot(config.room, 25, 25, energy=config.spawn_energy, name="Spawn1")
    for _ in range(config.sources):
        world.add_source(config.room, rng.randint(2, 47), rng.randint(2, 20))
    for _ in range(config.containers):
        world.add_depot(
            config.room,
            rng.randint(20, 30),
            rng.randint(28, 35),
            depot_type=DepotType.CONTAINER,
        )
    return world
