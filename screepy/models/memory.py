"""Persisted-state models for managed units.

A unit's record is a tagged variant keyed by ``role``. Records are parsed
through a discriminated union so that dispatch over roles is exhaustive and
a wrong tag is caught at conversion time.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class Role(StrEnum):
    """Role tags stored in a unit record."""

    GHOUL = "ghoul"
    HARVESTER = "harvest"


class Goal(StrEnum):
    """Sub-goal labels cached in a unit record."""

    HARVEST = "harvest"
    DEPOSIT = "deposit"
    UPGRADE = "upgrade"
    WITHDRAW = "withdraw"


class RoleMismatchError(Exception):
    """Raised when a record does not carry the role a controller expects."""

    def __init__(self, entity: str, actual: Any, expected: str) -> None:
        """Initialize the error.

        Args:
            entity: Identity of the wrapped object.
            actual: Role tag found in the record.
            expected: Role tag the controller requires.
        """
        super().__init__(f"{entity}: expected role {expected!r}, got {actual!r}")
        self.entity = entity
        self.actual = actual
        self.expected = expected


# "refuel" is the older name for depositing into a spawner
LEGACY_GOALS = {"refuel": Goal.DEPOSIT}


class GhoulMemory(BaseModel):
    """Record of a ghoul worker.

    ``harvest_target`` selects the harvest line; without it the ghoul works
    the upgrade line. ``transfer_target`` names the depot the ghoul is
    currently moving to.
    """

    role: Literal["ghoul"] = "ghoul"
    harvest_target: str | None = Field(
        default=None,
        validation_alias=AliasChoices("harvestTarget", "harvest_target", "harvest"),
        serialization_alias="harvestTarget",
    )
    transfer_target: str | None = Field(
        default=None,
        validation_alias=AliasChoices("transferTarget", "transfer_target"),
        serialization_alias="transferTarget",
    )
    goal: Goal | None = Field(default=None, description="Cached sub-goal")

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    @field_validator("goal", mode="before")
    @classmethod
    def normalize_goal(cls, value: Any) -> Any:
        return LEGACY_GOALS.get(value, value) if isinstance(value, str) else value

    @property
    def is_harvesting(self) -> bool:
        return bool(self.harvest_target)


class HarvesterMemory(BaseModel):
    """Record of a single-role harvester."""

    role: Literal["harvest"] = "harvest"
    goal: Goal = Field(default=Goal.HARVEST)

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    @field_validator("goal", mode="before")
    @classmethod
    def normalize_goal(cls, value: Any) -> Any:
        return LEGACY_GOALS.get(value, value) if isinstance(value, str) else value


UnitMemory = Annotated[GhoulMemory | HarvesterMemory, Field(discriminator="role")]

unit_memory_adapter: TypeAdapter[GhoulMemory | HarvesterMemory] = TypeAdapter(UnitMemory)


def dump_memory(memory: BaseModel) -> dict[str, Any]:
    """Serialize a memory model to the host record layout."""
    return memory.model_dump(mode="json", by_alias=True, exclude_none=True)
