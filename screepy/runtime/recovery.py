"""Per-unit failure classification and bounded isolation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import ValidationError

from screepy.interfaces.memory import StateStoreError
from screepy.interfaces.world import WorldError
from screepy.models.memory import RoleMismatchError

if TYPE_CHECKING:
    from screepy.config.loader import RecoveryConfig

logger = logging.getLogger(__name__)


class UnitFailureClass(StrEnum):
    """Typed failure classes for a unit's processing."""

    INVARIANT = "invariant"
    RECORD = "record"
    HOST = "host"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecoveryPolicy:
    """Whether and how often unit failures are contained within a tick."""

    isolate_unit_failures: bool = True
    max_unit_failures_per_tick: int = 5

    @classmethod
    def from_config(cls, config: RecoveryConfig) -> RecoveryPolicy:
        return cls(
            isolate_unit_failures=config.isolate_unit_failures,
            max_unit_failures_per_tick=config.max_unit_failures_per_tick,
        )


class UnitRecoveryCoordinator:
    """Stateful per-tick budget for isolating failing units.

    One failing unit must not abort the rest of its room. Each isolated
    failure spends one unit of the budget; once it is spent the caller
    should stop processing the room. Room coordinators reset the budget at
    the start of each room tick.
    """

    def __init__(self, policy: RecoveryPolicy | None = None) -> None:
        self._policy = policy or RecoveryPolicy()
        self._failures: dict[UnitFailureClass, int] = {}

    @property
    def isolating(self) -> bool:
        """Whether unit failures are contained at all."""
        return self._policy.isolate_unit_failures

    @property
    def failures(self) -> int:
        return sum(self._failures.values())

    def begin_tick(self) -> None:
        """Reset the failure budget."""
        self._failures.clear()

    def classify(self, error: Exception) -> UnitFailureClass:
        """Classify an exception raised while processing a unit."""
        if isinstance(error, RoleMismatchError):
            return UnitFailureClass.INVARIANT
        if isinstance(error, StateStoreError | ValidationError):
            return UnitFailureClass.RECORD
        if isinstance(error, WorldError):
            return UnitFailureClass.HOST
        return UnitFailureClass.UNKNOWN

    def handle(self, error: Exception, unit_name: str) -> bool:
        """Decide whether processing may continue after a unit failed.

        Returns:
            True if the failure was contained and the caller should move on
            to the next unit, False if the caller should stop processing.
        """
        failure_class = self.classify(error)
        if not self._policy.isolate_unit_failures:
            return False

        budget = self._policy.max_unit_failures_per_tick
        if self.failures >= budget:
            logger.error(
                "[RECOVERY] Budget exhausted (%s/%s), %s failure on %s: %s",
                self.failures,
                budget,
                failure_class.value,
                unit_name,
                error,
            )
            return False

        self._failures[failure_class] = self._failures.get(failure_class, 0) + 1
        logger.error(
            "[RECOVERY] Skipping %s after %s failure (%s/%s): %s",
            unit_name,
            failure_class.value,
            self.failures,
            budget,
            error,
        )
        return True
