"""Interface definitions for the host collaborators.

Controllers depend only on these interfaces so that the host can be swapped
for an in-memory fake in tests.
"""

from screepy.interfaces.memory import Namespace, StateStore, StateStoreError
from screepy.interfaces.world import (
    BodyPart,
    Depot,
    DepotType,
    FindKind,
    Position,
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
    describe_result,
)

__all__ = [
    "BodyPart",
    "Depot",
    "DepotType",
    "FindKind",
    "Namespace",
    "Position",
    "Resource",
    "ResourceNode",
    "ResultCode",
    "Room",
    "RoomController",
    "StateStore",
    "StateStoreError",
    "Store",
    "Unit",
    "Verb",
    "World",
    "WorldError",
    "describe_result",
]
