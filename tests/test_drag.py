"""
Drag Tests
==========

A dragged node must sit exactly under the pointer on every tick, the layout
must stay warm while any drag is active, and releasing must hand the node
back to the physics.
"""
import pytest

from graphi.interaction.drag import DragController


@pytest.fixture
def running(build, chain_dataset):
    sim, _ = build(chain_dataset)
    sim.run()
    return sim


@pytest.fixture
def drag(running, config):
    return DragController(running, warm_alpha_target=config.simulation.warm_alpha_target)


class TestDragController:

    def test_dragged_node_tracks_pointer_every_tick(self, running, drag, scheduler):
        assert drag.start(1, "4", (100.0, 120.0))
        path = [(110.0, 125.0), (150.0, 90.0), (-20.0, 40.0), (300.0, 300.0)]
        for point in path:
            drag.move(1, point)
            scheduler.run_frames(1)
            node = running.node("4")
            assert (node.x, node.y) == point
            assert (node.vx, node.vy) == (0.0, 0.0)

    def test_drag_warms_converged_simulation(self, running, drag, scheduler):
        assert running.is_converged
        drag.start(1, "2", (0.0, 0.0))
        assert running.alpha_target == 0.3
        assert running.is_running
        scheduler.run_frames(20)
        assert running.alpha > running.settings.alpha_min

    def test_release_unpins_and_cools(self, running, drag, scheduler):
        drag.start(1, "2", (0.0, 0.0))
        scheduler.run_frames(5)
        assert drag.end(1)
        node = running.node("2")
        assert not node.is_pinned
        assert running.alpha_target == 0.0
        scheduler.run_until_idle()
        assert running.is_converged
        assert (node.x, node.y) != (0.0, 0.0)

    def test_second_drag_keeps_warmth_until_last_release(self, running, drag):
        drag.start(1, "1", (0.0, 0.0))
        drag.start(2, "6", (50.0, 50.0))
        drag.end(1)
        assert running.alpha_target == 0.3
        assert running.node("6").is_pinned
        drag.end(2)
        assert running.alpha_target == 0.0

    def test_one_node_per_pointer_and_pointer_per_node(self, drag):
        assert drag.start(1, "1", (0.0, 0.0))
        assert not drag.start(1, "2", (0.0, 0.0))
        assert not drag.start(2, "1", (0.0, 0.0))
        assert drag.active == {1: "1"}

    def test_unknown_node_discarded(self, drag, running):
        assert not drag.start(1, "missing", (0.0, 0.0))
        assert not drag.is_dragging()
        assert not running.is_running

    def test_events_after_dispose_discarded(self, drag, running):
        drag.start(1, "1", (0.0, 0.0))
        running.dispose()
        assert not drag.move(1, (5.0, 5.0))
        assert not drag.is_dragging(1)
        assert not drag.end(1)

    def test_cancel_all(self, drag, running):
        drag.start(1, "1", (0.0, 0.0))
        drag.start(2, "2", (1.0, 1.0))
        drag.cancel_all()
        assert not drag.is_dragging()
        assert not running.has_pins
