"""In-memory simulation host."""

from screepy.host.world import InMemoryWorld, body_cost, build_demo_world

__all__ = ["InMemoryWorld", "body_cost", "build_demo_world"]
