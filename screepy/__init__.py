"""screepy - a colony controller for a tick-based unit simulation.

Each tick the scheduler garbage-collects stale unit records, then every room
coordinator takes a census, refreshes unit orders, steps each unit once and
asks its spawner for at most one new worker.
"""

__version__ = "0.1.0"
