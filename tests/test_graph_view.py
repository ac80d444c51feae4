"""
Widget smoke tests, run on the offscreen Qt platform with a virtual clock.
"""
import json

import pytest
from PySide6.QtCore import QCoreApplication, QSettings

from graphi.config import GraphConfig, SimulationSettings
from graphi.layout.scheduler import ManualScheduler
from graphi.layout.simulation import SimulationState
from graphi.model.io import DatasetLoader
from graphi.view.graph_view import GraphView
from graphi.view.main_window import MainWindow

from conftest import make_node


@pytest.fixture
def data_dir(tmp_path):
    for name, nodes, edges in [
        ("x.json", [make_node("A", 10), make_node("B", 1000)], [{"source": "A", "target": "B"}]),
        ("y.json", [make_node("P", 1), make_node("Q", 2), make_node("R", 3)], [{"source": "P", "target": "R"}]),
        ("bad.json", [make_node("A")], [{"source": "A", "target": "nope"}]),
    ]:
        (tmp_path / name).write_text(json.dumps({"nodes": nodes, "edges": edges}), encoding="utf-8")
    return tmp_path


@pytest.fixture
def isolated_settings(tmp_path):
    QCoreApplication.setOrganizationName("graphi-tests")
    QCoreApplication.setApplicationName("graphi")
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    QSettings.setPath(QSettings.Format.IniFormat, QSettings.Scope.UserScope, str(tmp_path / "settings"))
    yield


@pytest.fixture
def view_config():
    return GraphConfig(simulation=SimulationSettings(seed=3))


class TestGraphView:

    def test_show_dataset_builds_items_and_converges(self, qapp, data_dir, view_config):
        scheduler = ManualScheduler()
        view = GraphView(view_config, scheduler=scheduler)
        converged = []
        view.simulation_converged.connect(converged.append)

        view.show_dataset(DatasetLoader(str(data_dir)).load("x.json"))
        assert set(view.items_sink.nodes) == {"A", "B"}
        assert len(view.items_sink.lines) == 1

        scheduler.run_until_idle()
        assert view.simulation.state is SimulationState.CONVERGED
        assert converged == [view.simulation.tick_count]

        b = view.simulation.node("B")
        ellipse = view.items_sink.nodes["B"]
        assert (ellipse.pos().x(), ellipse.pos().y()) == pytest.approx((b.x, b.y))
        view.clear()

    def test_switching_dataset_disposes_previous(self, qapp, data_dir, view_config):
        scheduler = ManualScheduler()
        view = GraphView(view_config, scheduler=scheduler)
        loader = DatasetLoader(str(data_dir))

        view.show_dataset(loader.load("x.json"))
        first_sim, first_controller = view.simulation, view.controller
        scheduler.run_frames(10)

        view.show_dataset(loader.load("y.json"))
        assert first_sim.is_disposed
        assert first_controller.is_disposed
        assert set(view.items_sink.nodes) == {"P", "Q", "R"}

        view.show_dataset(loader.load("x.json"))
        assert view.simulation is not first_sim
        assert view.simulation.tick_count == 0
        view.clear()
        assert view.simulation is None
        assert view.tooltip_overlay is None
        assert scheduler.pending == 0

    def test_zoom_buttons_transform_root(self, qapp, data_dir, view_config):
        scheduler = ManualScheduler()
        view = GraphView(view_config, scheduler=scheduler)
        view.show_dataset(DatasetLoader(str(data_dir)).load("x.json"))
        view.btn_zoom_in.click()
        scheduler.advance(400)
        assert view._root.transform().m11() == pytest.approx(1.5)
        view.btn_reset.click()
        scheduler.advance(600)
        assert view._root.transform().m11() == pytest.approx(1.0)
        view.clear()


class TestMainWindow:

    def test_loads_initial_dataset_and_remembers_it(self, qapp, data_dir, view_config, isolated_settings):
        window = MainWindow(
            config=view_config,
            loader=DatasetLoader(str(data_dir)),
            scheduler=ManualScheduler(),
            initial_dataset="y.json",
        )
        assert window.state.dataset.identifier == "y.json"
        assert window.graph_view.simulation is not None
        assert QSettings().value("ui/last_dataset") == "y.json"
        window.close()

    def test_bad_dataset_keeps_view_empty(self, qapp, data_dir, view_config, isolated_settings):
        window = MainWindow(
            config=view_config,
            loader=DatasetLoader(str(data_dir)),
            scheduler=ManualScheduler(),
            initial_dataset="x.json",
        )
        window.show_error_dialogs = False
        assert not window.load_dataset("bad.json")
        assert window.graph_view.simulation is None
        assert window.state.dataset is None
        assert "nope" in window.state.last_error
        window.close()
