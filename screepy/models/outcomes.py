"""Outcome models produced by controllers during a tick."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from screepy.models.memory import Goal


class StepKind(StrEnum):
    """How a unit's step ended."""

    ACTED = "acted"
    MOVED = "moved"
    REJECTED = "rejected"
    IDLE = "idle"
    TERMINATED = "terminated"
    FAILED = "failed"


class StepOutcome(BaseModel):
    """Result of running one unit for one tick.

    A ``TERMINATED`` outcome asks the caller to remove the unit; the unit
    controller never removes itself.
    """

    kind: StepKind = Field(..., description="How the step ended")
    goal: Goal | None = Field(default=None, description="Sub-goal the unit worked on")
    result: int | None = Field(default=None, description="Host result code, if an action ran")
    reason: str | None = Field(default=None, description="Why the unit idled or terminated")

    model_config = {"frozen": True}

    @classmethod
    def acted(cls, goal: Goal) -> StepOutcome:
        return cls(kind=StepKind.ACTED, goal=goal, result=0)

    @classmethod
    def moved(cls, goal: Goal, result: int) -> StepOutcome:
        return cls(kind=StepKind.MOVED, goal=goal, result=result)

    @classmethod
    def rejected(cls, goal: Goal, result: int) -> StepOutcome:
        return cls(kind=StepKind.REJECTED, goal=goal, result=result)

    @classmethod
    def idle(cls, goal: Goal | None, reason: str) -> StepOutcome:
        return cls(kind=StepKind.IDLE, goal=goal, reason=reason)

    @classmethod
    def terminated(cls, goal: Goal | None, reason: str) -> StepOutcome:
        return cls(kind=StepKind.TERMINATED, goal=goal, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> StepOutcome:
        return cls(kind=StepKind.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind == StepKind.TERMINATED


class RoomReport(BaseModel):
    """Summary of one coordinator run."""

    room: str
    harvesting: int = Field(default=0, ge=0)
    upgrading: int = Field(default=0, ge=0)
    outcomes: dict[str, StepOutcome] = Field(default_factory=dict)
    spawn_name: str | None = Field(default=None, description="Name requested from the spawner")
    spawn_result: int | None = Field(default=None)
    status: str = Field(default="", description="Spawner status label")
    aborted: bool = Field(default=False)


class TickReport(BaseModel):
    """Summary of one scheduler tick."""

    collected: list[str] = Field(default_factory=list, description="Records freed by GC")
    rooms: list[RoomReport] = Field(default_factory=list)

    @property
    def spawn_requests(self) -> int:
        return sum(1 for r in self.rooms if r.spawn_name is not None)
