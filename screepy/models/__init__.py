"""Shared data models.

All models use Pydantic for validation and serialization.
"""

from screepy.models.memory import (
    GhoulMemory,
    Goal,
    HarvesterMemory,
    Role,
    RoleMismatchError,
    UnitMemory,
    dump_memory,
    unit_memory_adapter,
)
from screepy.models.outcomes import RoomReport, StepKind, StepOutcome, TickReport

__all__ = [
    "GhoulMemory",
    "Goal",
    "HarvesterMemory",
    "Role",
    "RoleMismatchError",
    "RoomReport",
    "StepKind",
    "StepOutcome",
    "TickReport",
    "UnitMemory",
    "dump_memory",
    "unit_memory_adapter",
]
