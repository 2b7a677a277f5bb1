"""Tests for the room coordinator."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from screepy.config.loader import BehaviorConfig, Config, RecoveryConfig, SpawningConfig
from screepy.entities import Ghoul, RoomCoordinator, wrap_unit
from screepy.entities.harvester import Harvester
from screepy.host.world import InMemoryWorld
from screepy.interfaces import (
    DepotType,
    FindKind,
    Namespace,
    ResultCode,
    StateStoreError,
    WorldError,
)
from screepy.memory.store import InMemoryStateStore
from screepy.models import StepKind
from screepy.runtime.metrics import MetricsCollector

ROOM = "W1N1"


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def world(store: InMemoryStateStore) -> InMemoryWorld:
    world = InMemoryWorld(store)
    world.add_room(ROOM, controller_at=(25, 40))
    world.add_source(ROOM, 10, 10, entity_id="S1")
    world.add_depot(ROOM, 25, 25, energy=300, name="Spawn1", entity_id="D1")
    return world


def _coordinator(
    world: InMemoryWorld,
    store: InMemoryStateStore,
    config: Config | None = None,
    metrics: MetricsCollector | None = None,
) -> RoomCoordinator:
    return RoomCoordinator(world.room(ROOM), world, store, config, metrics=metrics)


class TestWrapUnit:
    """Units are dispatched to the controller of their role."""

    def test_dispatches_by_role(self, world: InMemoryWorld, store: InMemoryStateStore) -> None:
        ghoul = world.add_unit("G", ROOM, 1, 1, memory={"role": "ghoul"})
        harvester = world.add_unit("H", ROOM, 2, 2, memory={"role": "harvest"})

        assert isinstance(wrap_unit(ghoul, world, store), Ghoul)
        assert isinstance(wrap_unit(harvester, world, store), Harvester)

    def test_units_without_record_are_ignored(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        unit = world.add_unit("Stranger", ROOM, 1, 1)

        assert wrap_unit(unit, world, store) is None
        assert not store.contains(Namespace.UNITS, "Stranger")

    def test_unmanaged_roles_are_ignored(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        unit = world.add_unit("Miner", ROOM, 1, 1, memory={"role": "miner"})
        assert wrap_unit(unit, world, store) is None


class TestSpawning:
    """Spawn quota decisions."""

    def test_spawns_harvester_for_nearest_source(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        report = _coordinator(world, store).run()

        assert report.spawn_name == "Ghoul #1"
        assert report.spawn_result == ResultCode.OK
        assert store.get(Namespace.UNITS, "Ghoul #1") == {"role": "ghoul", "harvestTarget": "S1"}
        assert world.get_unit("Ghoul #1").spawning is True

    def test_single_request_with_tagged_record(self, store: InMemoryStateStore) -> None:
        """One source, one small depot, no units: exactly one request."""
        world = InMemoryWorld(store)
        world.add_room(ROOM)
        world.add_source(ROOM, 10, 10, entity_id="S1")
        world.add_depot(ROOM, 25, 25, energy=0, capacity=100, entity_id="D1")
        world.spawn = MagicMock(wraps=world.spawn)  # type: ignore[method-assign]

        report = _coordinator(world, store).run()

        world.spawn.assert_called_once()
        _, _, name, memory = world.spawn.call_args.args
        assert memory == {"role": "ghoul", "harvestTarget": "S1"}
        assert name == "Ghoul #1"
        assert report.spawn_result == ResultCode.NOT_ENOUGH_RESOURCES

    def test_spawns_nearest_source_to_spawner(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_source(ROOM, 24, 22, entity_id="S2")

        _coordinator(world, store).run()

        assert store.get(Namespace.UNITS, "Ghoul #1")["harvestTarget"] == "S2"

    @pytest.mark.parametrize("population", [2, 3])
    def test_no_spawn_at_or_above_cap(
        self, world: InMemoryWorld, store: InMemoryStateStore, population: int
    ) -> None:
        for i in range(population):
            world.add_unit(
                f"Worker {i}", ROOM, 11, 9 + i, memory={"role": "ghoul", "harvestTarget": "S1"}
            )

        report = _coordinator(world, store).run()

        assert report.harvesting == population
        assert report.spawn_name is None
        assert report.status == "Idle"

    def test_upgrader_spawned_after_harvest_line_is_full(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        config = Config(spawning=SpawningConfig(max_harvesters=1, max_upgraders=1))
        world.add_unit("Worker", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})

        report = _coordinator(world, store, config).run()

        assert report.spawn_name == "Ghoul #1"
        assert store.get(Namespace.UNITS, "Ghoul #1") == {"role": "ghoul"}

    def test_upgrader_needs_controller(
        self, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        world = InMemoryWorld(store)
        world.add_room(ROOM, controller_at=None)
        world.add_depot(ROOM, 25, 25, energy=300)
        config = Config(spawning=SpawningConfig(max_harvesters=0, max_upgraders=1))

        with caplog.at_level(logging.INFO):
            report = _coordinator(world, store, config).run()

        assert report.spawn_name is None
        assert "No controller detected" in caplog.text

    def test_harvesters_count_toward_harvest_line(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_unit("Old", ROOM, 11, 10, memory={"role": "harvest"})

        report = _coordinator(world, store).run()

        assert report.harvesting == 1
        assert report.spawn_name == "Ghoul #1"

    def test_busy_spawner_blocks_requests(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.find(ROOM, FindKind.SPAWNERS)[0].spawning = "Ghoul #7"

        report = _coordinator(world, store).run()

        assert report.spawn_name is None
        assert report.status == "Spawning: Ghoul #7"
        assert any(label.text == "Spawning: Ghoul #7" for label in world.labels)

    def test_no_spawner(self, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture) -> None:
        world = InMemoryWorld(store)
        world.add_room(ROOM)
        world.add_source(ROOM, 10, 10)

        with caplog.at_level(logging.INFO):
            report = _coordinator(world, store).run()

        assert report.spawn_name is None
        assert 'No spawner detected in room: "W1N1"' in caplog.text

    def test_no_source(self, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture) -> None:
        world = InMemoryWorld(store)
        world.add_room(ROOM)
        world.add_depot(ROOM, 25, 25, energy=300)

        with caplog.at_level(logging.INFO):
            report = _coordinator(world, store).run()

        assert report.spawn_name is None
        assert 'No source detected in room: "W1N1"' in caplog.text

    def test_spawn_failure_is_logged(
        self, world: InMemoryWorld, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        world.find(ROOM, FindKind.SPAWNERS)[0].store.remove("energy", 300)
        metrics = MetricsCollector()

        with caplog.at_level(logging.WARNING):
            report = _coordinator(world, store, metrics=metrics).run()

        assert report.spawn_result == ResultCode.NOT_ENOUGH_RESOURCES
        assert 'Spawning "Ghoul #1" failed: not enough resources' in caplog.text
        assert metrics.get_metrics().spawns_failed == 1

    def test_primary_depot_is_first_spawner(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_depot(ROOM, 30, 30, energy=300, entity_id="D2")
        world.add_depot(ROOM, 5, 5, depot_type=DepotType.CONTAINER)

        assert _coordinator(world, store).primary_depot().id == "D1"


class TestTermination:
    """Units that report Terminated are removed by the coordinator."""

    def test_terminated_unit_removed_once(
        self, world: InMemoryWorld, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        world.find(ROOM, FindKind.SOURCES)[0].energy = 0
        world.add_unit("Ghoul #3", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})
        metrics = MetricsCollector()

        with caplog.at_level(logging.WARNING):
            report = _coordinator(world, store, metrics=metrics).run()

        warnings = [r for r in caplog.records if "lost the will to live" in r.getMessage()]
        assert len(warnings) == 1
        assert warnings[0].getMessage() == '"Ghoul #3" lost the will to live (no sources)'
        assert world.terminated == ["Ghoul #3"]
        assert world.get_unit("Ghoul #3") is None
        assert report.outcomes["Ghoul #3"].kind == StepKind.TERMINATED
        assert report.harvesting == 0
        assert metrics.get_metrics().terminations == 1

    def test_terminated_unit_not_counted_before_spawning(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        config = Config(behavior=BehaviorConfig(reissue_orders=False))
        world.add_unit("Lost", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S9"})

        report = _coordinator(world, store, config).run()

        assert world.terminated == ["Lost"]
        assert report.harvesting == 0
        assert report.spawn_name == "Ghoul #1"


class TestOrders:
    """Order re-issue from capacity state."""

    def _ghoul(
        self, world: InMemoryWorld, store: InMemoryStateStore, energy: int, **memory: str
    ) -> Ghoul:
        unit = world.add_unit("G", ROOM, 20, 20, energy=energy, memory={"role": "ghoul", **memory})
        return Ghoul(unit, world, store)

    def test_empty_harvester_keeps_active_source(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_source(ROOM, 20, 21, entity_id="S2")
        ghoul = self._ghoul(world, store, 0, harvestTarget="S1")

        _coordinator(world, store).issue_orders(ghoul)

        assert store.get(Namespace.UNITS, "G")["harvestTarget"] == "S1"

    def test_empty_harvester_moves_off_depleted_source(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.find(ROOM, FindKind.SOURCES)[0].energy = 0
        world.add_source(ROOM, 40, 40, entity_id="S2")
        world.add_source(ROOM, 20, 22, entity_id="S3")
        ghoul = self._ghoul(world, store, 0, harvestTarget="S1")

        _coordinator(world, store).issue_orders(ghoul)

        assert store.get(Namespace.UNITS, "G")["harvestTarget"] == "S3"

    def test_full_harvester_targets_least_loaded(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_depot(ROOM, 5, 5, energy=10, depot_type=DepotType.CONTAINER, entity_id="C1")
        ghoul = self._ghoul(world, store, 50, harvestTarget="S1")

        _coordinator(world, store).issue_orders(ghoul)

        assert store.get(Namespace.UNITS, "G")["transferTarget"] == "C1"

    def test_empty_upgrader_targets_fullest(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_depot(ROOM, 5, 5, energy=10, depot_type=DepotType.CONTAINER, entity_id="C1")
        ghoul = self._ghoul(world, store, 0)

        _coordinator(world, store).issue_orders(ghoul)

        assert store.get(Namespace.UNITS, "G")["transferTarget"] == "D1"

    def test_full_upgrader_drops_depot(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        ghoul = self._ghoul(world, store, 50, transferTarget="D1")

        _coordinator(world, store).issue_orders(ghoul)

        assert "transferTarget" not in store.get(Namespace.UNITS, "G")

    def test_partial_ghoul_keeps_orders(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        ghoul = self._ghoul(world, store, 20, harvestTarget="S1", transferTarget="C9")

        _coordinator(world, store).issue_orders(ghoul)

        assert store.get(Namespace.UNITS, "G") == {
            "role": "ghoul",
            "harvestTarget": "S1",
            "transferTarget": "C9",
        }


class TestIsolation:
    """One failing unit does not abort the room."""

    def _add_broken(self, world: InMemoryWorld, name: str) -> None:
        world.add_unit(name, ROOM, 1, 1, memory={"role": "ghoul", "goal": "dance"})

    def test_failing_unit_is_skipped(
        self, world: InMemoryWorld, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        self._add_broken(world, "Broken")
        world.add_unit("Fine", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})
        metrics = MetricsCollector()

        with caplog.at_level(logging.ERROR):
            report = _coordinator(world, store, metrics=metrics).run()

        assert report.outcomes["Broken"].kind == StepKind.FAILED
        assert report.outcomes["Fine"].kind == StepKind.ACTED
        assert report.aborted is False
        assert "[RECOVERY] Skipping Broken" in caplog.text
        assert metrics.get_metrics().unit_failures == 1

    def test_budget_exhaustion_aborts_room(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        config = Config(recovery=RecoveryConfig(max_unit_failures_per_tick=1))
        self._add_broken(world, "Broken 1")
        self._add_broken(world, "Broken 2")
        world.add_unit("Fine", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})

        report = _coordinator(world, store, config).run()

        assert report.aborted is True
        assert "Fine" not in report.outcomes
        assert report.spawn_name is None

    def test_failing_unit_stays_in_census(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_unit("Fine", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})
        world.add_unit(
            "Broken", ROOM, 1, 1, memory={"role": "ghoul", "harvestTarget": "S1", "goal": "dance"}
        )
        world.spawn = MagicMock(wraps=world.spawn)  # type: ignore[method-assign]

        report = _coordinator(world, store).run()

        assert report.outcomes["Broken"].kind == StepKind.FAILED
        assert report.harvesting == 2
        assert report.spawn_name is None
        world.spawn.assert_not_called()

    def test_host_errors_are_isolated(
        self, world: InMemoryWorld, store: InMemoryStateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        world.add_unit("Fine", ROOM, 11, 11, memory={"role": "ghoul", "harvestTarget": "S1"})
        host_down = WorldError("host unavailable")
        world.perform = MagicMock(side_effect=host_down)  # type: ignore[method-assign]

        with caplog.at_level(logging.ERROR):
            report = _coordinator(world, store).run()

        assert report.outcomes["Fine"].kind == StepKind.FAILED
        assert report.aborted is False
        assert "[RECOVERY] Skipping Fine after host failure" in caplog.text

    def test_failing_upgrader_counts_on_upgrade_line(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        self._add_broken(world, "Broken")

        report = _coordinator(world, store).run()

        assert report.upgrading == 1
        assert report.harvesting == 0

    def test_errors_propagate_without_isolation(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        config = Config(recovery=RecoveryConfig(isolate_unit_failures=False))
        self._add_broken(world, "Broken")

        with pytest.raises(StateStoreError):
            _coordinator(world, store, config).run()


class TestCensus:
    """Units being spawned count but do not act."""

    def test_spawning_unit_is_counted_not_stepped(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        unit = world.add_unit("Egg", ROOM, 25, 26, memory={"role": "ghoul", "harvestTarget": "S1"})
        unit.spawning = True

        report = _coordinator(world, store).run()

        assert report.harvesting == 1
        assert report.outcomes["Egg"].kind == StepKind.IDLE
        assert [a for a in world.actions if a.actor == "Egg"] == []

    def test_upgrade_line_is_counted_separately(
        self, world: InMemoryWorld, store: InMemoryStateStore
    ) -> None:
        world.add_unit("Up", ROOM, 25, 37, energy=50, memory={"role": "ghoul"})

        report = _coordinator(world, store).run()

        assert report.upgrading == 1
        assert report.harvesting == 0
