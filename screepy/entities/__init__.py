"""Controllers for managed world objects.

This package provides:
- EntityHandle: Typed, role-checked wrapper over a unit and its record
- Ghoul: Worker state machine (harvest / deposit / withdraw / upgrade)
- Harvester: Legacy single-role harvester
- RoomCoordinator: Per-room census, orders and spawning
- NameGenerator: Collision-probing unit names
"""

from screepy.entities.ghoul import Ghoul
from screepy.entities.handle import EntityHandle, RoleMismatchError
from screepy.entities.harvester import Harvester
from screepy.entities.naming import NameGenerator
from screepy.entities.room import CONTROLLERS, RoomCoordinator, wrap_unit

__all__ = [
    "CONTROLLERS",
    "EntityHandle",
    "Ghoul",
    "Harvester",
    "NameGenerator",
    "RoleMismatchError",
    "RoomCoordinator",
    "wrap_unit",
]
