"""
Render Binder
=============
Turns the current simulation state into drawable geometry.

Why is this file needed?
------------------------
1. Separation: The engine knows nothing about circles, lines or text; the
   widgets know nothing about forces. The binder is the only place where the
   two meet.
2. Statelessness: Every SceneFrame is recomputed from node positions alone,
   so a frame can be rebuilt at any time (after a resize, a dataset switch or
   a failed run) without replaying ticks.

Note: This module should be pure Python/NumPy and should NOT import PySide6.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from graphi.config import LabelSettings
from graphi.render.styles import ARROW_HALF_WIDTH, ARROW_LENGTH, category_color

if TYPE_CHECKING:
    from graphi.interaction.transform import Point
    from graphi.layout.scale import RadiusScale
    from graphi.layout.simulation import ForceSimulation

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


def truncate_title(title: str, max_length: int = 30) -> str:
    """Shorten a title for its on-canvas label; tooltips keep the full text."""
    if len(title) > max_length:
        return title[:max_length] + ELLIPSIS
    return title


# --- FRAME DATA ---

@dataclass(frozen=True)
class NodeGlyph:
    node_id: str
    cx: float
    cy: float
    radius: float
    color: str


@dataclass(frozen=True)
class EdgeGlyph:
    """
    Line from the source centre to the target centre.

    ``arrow`` is the arrowhead triangle (tip first). The tip sits on the
    target circle's boundary so it stays visible above the target node.
    """
    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    arrow: tuple[Point, Point, Point]

    @property
    def arrow_tip(self) -> Point:
        return self.arrow[0]


@dataclass(frozen=True)
class LabelGlyph:
    node_id: str
    text: str
    x: float
    y: float


@dataclass(frozen=True)
class SceneFrame:
    tick: int
    nodes: tuple[NodeGlyph, ...]
    edges: tuple[EdgeGlyph, ...]
    labels: tuple[LabelGlyph, ...]

    def node(self, node_id: str) -> Optional[NodeGlyph]:
        for glyph in self.nodes:
            if glyph.node_id == node_id:
                return glyph
        return None


class SceneSink(ABC):
    """Anything that can display a SceneFrame (the Qt scene, a test recorder)."""

    @abstractmethod
    def apply_frame(self, frame: SceneFrame) -> None: ...


# --- BINDER ---

def arrowhead(x1: float, y1: float, x2: float, y2: float, target_radius: float) -> tuple[Point, Point, Point]:
    dx = x2 - x1
    dy = y2 - y1
    length = math.hypot(dx, dy)
    if length == 0:
        ux, uy = 1.0, 0.0
    else:
        ux, uy = dx / length, dy / length

    tip_x = x2 - ux * target_radius
    tip_y = y2 - uy * target_radius
    base_x = tip_x - ux * ARROW_LENGTH
    base_y = tip_y - uy * ARROW_LENGTH
    # Perpendicular (-uy, ux)
    return (
        (tip_x, tip_y),
        (base_x - uy * ARROW_HALF_WIDTH, base_y + ux * ARROW_HALF_WIDTH),
        (base_x + uy * ARROW_HALF_WIDTH, base_y - ux * ARROW_HALF_WIDTH),
    )


class RenderBinder:
    """
    Paints the simulation on a SceneSink after every tick.

    Radii, colours and label texts depend only on the paper, so they are
    derived once here; positions are read fresh on each frame.
    """

    def __init__(
        self,
        simulation: ForceSimulation,
        radius_scale: RadiusScale,
        label_settings: LabelSettings,
        sink: Optional[SceneSink] = None,
    ) -> None:
        self.simulation = simulation
        self.radius_scale = radius_scale
        self.label_settings = label_settings
        self.sink = sink

        self._radii = [radius_scale(node.paper.citations) for node in simulation.nodes]
        self._colors = [category_color(node.paper.category) for node in simulation.nodes]
        self._texts = [truncate_title(node.paper.title, label_settings.max_title_length) for node in simulation.nodes]
        self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        """Start repainting on every tick and paint the initial positions."""
        if self._attached:
            return
        self.simulation.ticked.connect(self._on_ticked)
        self._attached = True
        self.render()

    def detach(self) -> None:
        if not self._attached:
            return
        self.simulation.ticked.disconnect(self._on_ticked)
        self._attached = False

    def radius_of(self, node_id: str) -> float:
        return self._radii[self.simulation.node(node_id).index]

    def _on_ticked(self, positions) -> None:
        self.render()

    def render(self) -> Optional[SceneFrame]:
        frame = self.frame()
        if self.sink is not None:
            self.sink.apply_frame(frame)
        return frame

    def frame(self) -> SceneFrame:
        """Scene geometry for the current node positions."""
        positions = self.simulation.positions
        margin = self.label_settings.margin

        nodes: list[NodeGlyph] = []
        labels: list[LabelGlyph] = []
        for node in self.simulation.nodes:
            i = node.index
            x = float(positions[i, 0])
            y = float(positions[i, 1])
            r = self._radii[i]
            nodes.append(NodeGlyph(node.id, x, y, r, self._colors[i]))
            labels.append(LabelGlyph(node.id, self._texts[i], x, y + r + margin))

        edges: list[EdgeGlyph] = []
        for edge in self.simulation.edges:
            s = edge.source.index
            t = edge.target.index
            x1, y1 = float(positions[s, 0]), float(positions[s, 1])
            x2, y2 = float(positions[t, 0]), float(positions[t, 1])
            edges.append(EdgeGlyph(
                source_id=edge.source.id,
                target_id=edge.target.id,
                x1=x1, y1=y1, x2=x2, y2=y2,
                arrow=arrowhead(x1, y1, x2, y2, self._radii[t]),
            ))

        return SceneFrame(
            tick=self.simulation.tick_count,
            nodes=tuple(nodes),
            edges=tuple(edges),
            labels=tuple(labels),
        )
