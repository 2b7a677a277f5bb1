"""Runtime support: metrics and per-unit failure isolation."""

from screepy.runtime.metrics import ColonyMetrics, MetricsCollector
from screepy.runtime.recovery import (
    RecoveryPolicy,
    UnitFailureClass,
    UnitRecoveryCoordinator,
)

__all__ = [
    "ColonyMetrics",
    "MetricsCollector",
    "RecoveryPolicy",
    "UnitFailureClass",
    "UnitRecoveryCoordinator",
]
