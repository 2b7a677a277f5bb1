"""Colony tick scheduling."""

from screepy.core.scheduler import Scheduler

__all__ = ["Scheduler"]
