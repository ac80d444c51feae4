"""
Shared fixtures: small hand-made datasets, a virtual-clock scheduler and an
offscreen QApplication for the widget tests.
"""
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from graphi.config import GraphConfig, SimulationSettings
from graphi.layout.scale import RadiusScale
from graphi.layout.scheduler import ManualScheduler
from graphi.layout.simulation import build_simulation
from graphi.model.dataset import Dataset


def make_node(node_id, citations=100, title=None, category="Deep Learning", year=2020, authors="Doe, Roe"):
    return {
        "id": node_id,
        "title": title or f"Paper {node_id}",
        "authors": authors,
        "year": year,
        "citations": citations,
        "category": category,
    }


def make_dataset(nodes, edges=(), identifier="test.json"):
    return Dataset.from_payload(identifier, {
        "nodes": list(nodes),
        "edges": [{"source": s, "target": t} for s, t in edges],
    })


@pytest.fixture
def config():
    """Default configuration with a fixed seed so runs are repeatable."""
    return GraphConfig(simulation=SimulationSettings(seed=7))


@pytest.fixture
def scheduler():
    return ManualScheduler(frame_interval_ms=16)


@pytest.fixture
def two_node_dataset():
    """A (10 citations) cites B (1000 citations)."""
    return make_dataset([make_node("A", 10), make_node("B", 1000)], [("A", "B")])


@pytest.fixture
def chain_dataset():
    nodes = [make_node(str(i), citations=10 * (i + 1)) for i in range(8)]
    edges = [(str(i), str(i + 1)) for i in range(7)]
    return make_dataset(nodes, edges)


@pytest.fixture
def build(config, scheduler):
    """Factory returning (simulation, radius_scale) for a dataset."""
    def _build(dataset, cfg=None):
        cfg = cfg or config
        scale = RadiusScale.from_papers(dataset.papers, cfg.node_radius.min, cfg.node_radius.max)
        return build_simulation(dataset, cfg, scale, scheduler), scale
    return _build


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    yield app
