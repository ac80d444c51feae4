"""
Force Simulation Tests
======================

Covers the alpha schedule, the one-frame-at-a-time scheduling discipline,
pins, numerical failure and disposal.
"""
import itertools
import math

import numpy as np
import pytest

from graphi.config import SimulationSettings
from graphi.errors import DataError, NumericalInstabilityError
from graphi.layout.forces import Force
from graphi.layout.scheduler import ManualScheduler
from graphi.layout.simulation import ForceSimulation, SimulationState
from graphi.model.dataset import Citation

from conftest import make_dataset, make_node


class PoisonForce(Force):
    """Injects an infinite velocity on the given tick."""

    def __init__(self, on_tick):
        super().__init__()
        self.on_tick = on_tick
        self.calls = 0

    def apply(self, alpha):
        self.calls += 1
        if self.calls == self.on_tick:
            self.simulation.velocities[0, 0] = np.inf


class TestConstruction:

    def test_unknown_edge_endpoint_rejected(self, two_node_dataset):
        with pytest.raises(DataError, match="unknown node"):
            ForceSimulation(two_node_dataset.papers, [Citation("A", "Z")])

    def test_initial_state(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        assert sim.state is SimulationState.INITIALIZING
        assert sim.alpha == 1.0
        assert sim.tick_count == 0
        assert not sim.is_running
        assert list(sim.forces) == ["link", "charge", "center", "collision"]

    def test_edges_resolved_to_nodes(self, build, two_node_dataset):
        sim, _ = build(two_node_dataset)
        edge = sim.edges[0]
        assert edge.source is sim.node("A")
        assert edge.target is sim.node("B")

    def test_initial_positions_are_distinct_and_around_center(self, build, chain_dataset, config):
        sim, _ = build(chain_dataset)
        positions = sim.positions
        assert len({tuple(p) for p in positions.round(6)}) == len(positions)
        distances = np.hypot(*(positions - np.array(config.canvas.center)).T)
        assert distances.max() < 50

    def test_node_lookup(self, build, two_node_dataset):
        sim, _ = build(two_node_dataset)
        assert sim.has_node("A")
        assert not sim.has_node("Z")
        with pytest.raises(KeyError):
            sim.node("Z")

    def test_alpha_target_clamped(self, build, two_node_dataset):
        sim, _ = build(two_node_dataset)
        sim.alpha_target = 3.0
        assert sim.alpha_target == 1.0
        sim.alpha_target = -1.0
        assert sim.alpha_target == 0.0


class TestConvergence:

    def test_headless_run_converges(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        ticks = sim.run(max_ticks=1000)
        assert sim.is_converged
        assert sim.state is SimulationState.CONVERGED
        assert sim.alpha < sim.settings.alpha_min
        assert 295 <= ticks <= 305

    def test_alpha_stays_in_unit_interval(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        seen = []
        sim.ticked.connect(lambda positions: seen.append(sim.alpha))
        sim.run()
        assert all(0.0 <= a <= 1.0 for a in seen)
        assert seen == sorted(seen, reverse=True)

    def test_converged_layout_has_no_overlaps(self, build, chain_dataset):
        sim, scale = build(chain_dataset)
        sim.run()
        radii = [scale(node.paper.citations) for node in sim.nodes]
        for i, j in itertools.combinations(range(len(sim.nodes)), 2):
            distance = math.dist(sim.positions[i], sim.positions[j])
            assert distance >= radii[i] + radii[j] - 0.5

    def test_linked_nodes_settle_near_link_distance(self, build, two_node_dataset, config):
        sim, _ = build(two_node_dataset)
        sim.run()
        distance = math.dist(sim.positions[0], sim.positions[1])
        # Repulsion stretches the spring a little; it never collapses it
        assert config.forces.link_distance * 0.8 < distance < config.forces.link_distance * 2

    def test_layout_centered_on_canvas(self, build, chain_dataset, config):
        sim, _ = build(chain_dataset)
        sim.run()
        assert tuple(sim.positions.mean(axis=0)) == pytest.approx(config.canvas.center, abs=1.0)

    def test_same_seed_same_layout(self, build, chain_dataset):
        first, _ = build(chain_dataset)
        second, _ = build(chain_dataset)
        first.run()
        second.run()
        np.testing.assert_allclose(first.positions, second.positions)


class TestScheduling:

    def test_restart_ticks_once_per_frame_until_converged(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        ticks = []
        ended = []
        sim.ticked.connect(lambda positions: ticks.append(scheduler.pending))
        sim.ended.connect(lambda: ended.append(sim.tick_count))

        sim.restart()
        assert sim.is_running
        scheduler.run_until_idle()

        assert len(ticks) == sim.tick_count
        # The next frame is only requested after listeners have run
        assert set(ticks) == {0}
        assert ended == [sim.tick_count]
        assert not sim.is_running
        assert sim.state is SimulationState.CONVERGED

    def test_restart_is_idempotent(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.restart()
        sim.restart()
        assert scheduler.pending == 1
        scheduler.run_frames(1)
        assert sim.tick_count == 1

    def test_stop_halts_ticking(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.restart()
        scheduler.run_frames(5)
        sim.stop()
        count = sim.tick_count
        scheduler.run_frames(50)
        assert sim.tick_count == count
        assert not sim.is_running

    def test_restart_after_convergence_resumes(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.run()
        count = sim.tick_count
        sim.alpha_target = 0.3
        sim.restart()
        scheduler.run_frames(10)
        assert sim.tick_count == count + 10
        assert sim.alpha > sim.settings.alpha_min


class TestPins:

    def test_pinned_node_follows_pin(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        assert sim.pin("3", 100.0, 50.0)
        for _ in range(20):
            sim.tick()
            node = sim.node("3")
            assert (node.x, node.y) == (100.0, 50.0)
            assert (node.vx, node.vy) == (0.0, 0.0)
            assert node.is_pinned

    def test_single_axis_pin(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        sim.pin("3", 100.0, None)
        sim.tick()
        node = sim.node("3")
        assert node.fx == 100.0 and node.fy is None
        assert node.x == 100.0

    def test_active_pin_prevents_convergence(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        sim.pin("0", 0.0, 0.0)
        sim.run(max_ticks=600)
        assert sim.alpha < sim.settings.alpha_min
        assert not sim.is_converged
        sim.unpin("0")
        assert sim.is_converged

    def test_pin_unknown_node_is_ignored(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        assert not sim.pin("nope", 1.0, 1.0)
        assert not sim.has_pins

    def test_find_nearest(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        x, y = sim.node("5").x, sim.node("5").y
        assert sim.find(x + 0.1, y).id == "5"
        assert sim.find(x + 1000, y, radius=5) is None


class TestFailure:

    def test_non_finite_velocity_fails_the_run(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.force("poison", PoisonForce(on_tick=3))
        failures = []
        sim.failed.connect(failures.append)

        sim.restart()
        scheduler.run_until_idle()

        assert sim.state is SimulationState.FAILED
        assert sim.tick_count == 2
        assert len(failures) == 1
        assert isinstance(failures[0], NumericalInstabilityError)
        assert failures[0].node_ids == ["0"]
        assert scheduler.pending == 0

    def test_direct_tick_raises(self, build, chain_dataset):
        sim, _ = build(chain_dataset)
        sim.force("poison", PoisonForce(on_tick=1))
        with pytest.raises(NumericalInstabilityError):
            sim.tick()

    def test_failed_run_cannot_restart(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.force("poison", PoisonForce(on_tick=1))
        with pytest.raises(NumericalInstabilityError):
            sim.tick()
        sim.restart()
        assert scheduler.pending == 0
        assert sim.run() == 0


class TestDisposal:

    def test_dispose_cancels_pending_frame(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        ticks = []
        sim.ticked.connect(lambda positions: ticks.append(1))
        sim.restart()
        scheduler.run_frames(3)
        sim.dispose()

        assert sim.state is SimulationState.DISPOSED
        assert scheduler.pending == 0
        scheduler.run_frames(100)
        assert len(ticks) == 3
        assert len(sim.ticked) == 0

    def test_disposed_simulation_ignores_everything(self, build, chain_dataset, scheduler):
        sim, _ = build(chain_dataset)
        sim.dispose()
        sim.restart()
        sim.tick()
        assert scheduler.pending == 0
        assert sim.tick_count == 0
        assert not sim.pin("0", 1.0, 1.0)
        sim.dispose()

    def test_switching_datasets_gives_fresh_layouts(self, build, chain_dataset, two_node_dataset):
        x_first, _ = build(chain_dataset)
        initial = x_first.positions_copy()
        x_first.run()
        x_first.dispose()

        y, _ = build(two_node_dataset)
        y.run()
        y.dispose()

        x_again, _ = build(chain_dataset)
        assert x_again.tick_count == 0
        assert x_again.alpha == 1.0
        np.testing.assert_allclose(x_again.positions, initial)
        assert x_again.positions is not x_first.positions
        assert not np.allclose(x_again.positions, x_first.positions)


class TestIndependentInstances:

    def test_two_simulations_do_not_share_state(self):
        scheduler = ManualScheduler()
        papers = make_dataset([make_node("A"), make_node("B")]).papers
        first = ForceSimulation(papers, settings=SimulationSettings(seed=1), scheduler=scheduler)
        second = ForceSimulation(papers, settings=SimulationSettings(seed=1), scheduler=scheduler)
        first.alpha_target = 0.5
        first.pin("A", 0.0, 0.0)
        assert second.alpha_target == 0.0
        assert not second.has_pins
