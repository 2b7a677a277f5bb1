"""Unit name generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from screepy.interfaces.world import World


class NameGenerator:
    """Generates names that are unused in the current world snapshot.

    Names are probed sequentially (``"Ghoul #1"``, ``"Ghoul #2"``, ...) until
    a free one is found. The host is still the authority: a spawn can fail
    with NAME_EXISTS if another spawner claimed the name in the meantime.
    """

    def __init__(self, world: World) -> None:
        self._world = world

    def next(self, prefix: str) -> str:
        """Return the first unused ``"<prefix> #<n>"`` name."""
        taken = {unit.name for unit in self._world.units()}
        attempt = 1
        while f"{prefix} #{attempt}" in taken:
            attempt += 1
        return f"{prefix} #{attempt}"
