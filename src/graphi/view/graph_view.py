"""
Graph View Widget (QGraphicsView)
=================================
The canvas that shows one dataset's layout and takes the user's gestures.

Why is this file needed?
------------------------
1. Lifecycle: It builds the radius scale, simulation, binder and interaction
   controller for a dataset, and tears all of them down (tooltip overlay
   included) before the next dataset is shown.
2. Painting: SceneItems applies each SceneFrame to QGraphicsItems that hang
   below a single root item; the View Transform is that root item's transform.
3. Input: Mouse and wheel events are converted to canvas coordinates and
   handed to the InteractionController. No gesture logic lives here.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import (
    QBrush, QColor, QCursor, QMouseEvent, QPainter, QPen, QPolygonF, QResizeEvent, QTransform, QWheelEvent
)
from PySide6.QtWidgets import (
    QFrame, QGraphicsEllipseItem, QGraphicsItem, QGraphicsItemGroup, QGraphicsLineItem, QGraphicsPolygonItem,
    QGraphicsScene, QGraphicsSimpleTextItem, QGraphicsView, QHBoxLayout, QPushButton, QWidget
)

from graphi.config import GraphConfig
from graphi.errors import NumericalInstabilityError
from graphi.interaction.controller import InteractionController
from graphi.interaction.tooltip import TooltipContent
from graphi.interaction.transform import ViewTransform
from graphi.layout.scale import RadiusScale
from graphi.layout.scheduler import FrameScheduler
from graphi.layout.simulation import ForceSimulation, build_simulation
from graphi.model.dataset import Dataset
from graphi.render import styles
from graphi.render.binder import RenderBinder, SceneFrame, SceneSink
from graphi.view.scheduler import QtFrameScheduler
from graphi.view.tooltip import TooltipOverlay

logger = logging.getLogger(__name__)

# Z-order inside the root item
Z_EDGES = 0
Z_NODES = 1
Z_LABELS = 2


class SceneItems(SceneSink):
    """
    QGraphicsItems for one dataset. Items are created on the first frame and
    only moved afterwards.
    """

    def __init__(self, root: QGraphicsItem) -> None:
        self.root = root
        self.nodes: dict[str, QGraphicsEllipseItem] = {}
        self.labels: dict[str, QGraphicsSimpleTextItem] = {}
        self.lines: list[QGraphicsLineItem] = []
        self.arrows: list[QGraphicsPolygonItem] = []
        self.last_frame: Optional[SceneFrame] = None

        self._node_pen = QPen(QColor(styles.NODE_STROKE_COLOR), styles.NODE_STROKE_WIDTH)
        self._hover_pen = QPen(QColor(styles.NODE_HOVER_STROKE_COLOR), styles.NODE_STROKE_WIDTH)
        edge_color = QColor(styles.EDGE_COLOR)
        edge_color.setAlphaF(styles.EDGE_OPACITY)
        self._edge_pen = QPen(edge_color, styles.EDGE_WIDTH)
        self._arrow_brush = QBrush(edge_color)

    def _build(self, frame: SceneFrame) -> None:
        self.clear()
        for edge in frame.edges:
            line = QGraphicsLineItem(self.root)
            line.setPen(self._edge_pen)
            line.setZValue(Z_EDGES)
            self.lines.append(line)

            arrow = QGraphicsPolygonItem(self.root)
            arrow.setPen(QPen(Qt.PenStyle.NoPen))
            arrow.setBrush(self._arrow_brush)
            arrow.setZValue(Z_EDGES)
            self.arrows.append(arrow)

        for glyph in frame.nodes:
            r = glyph.radius
            ellipse = QGraphicsEllipseItem(-r, -r, 2 * r, 2 * r, self.root)
            ellipse.setBrush(QBrush(QColor(glyph.color)))
            ellipse.setPen(self._node_pen)
            ellipse.setZValue(Z_NODES)
            ellipse.setData(0, glyph.node_id)
            self.nodes[glyph.node_id] = ellipse

        for label in frame.labels:
            text = QGraphicsSimpleTextItem(label.text, self.root)
            text.setBrush(QBrush(QColor(styles.LABEL_COLOR)))
            font = text.font()
            font.setPointSize(styles.LABEL_FONT_SIZE)
            text.setFont(font)
            text.setZValue(Z_LABELS)
            self.labels[label.node_id] = text

    def apply_frame(self, frame: SceneFrame) -> None:
        if len(frame.nodes) != len(self.nodes) or len(frame.edges) != len(self.lines):
            self._build(frame)

        for edge, line, arrow in zip(frame.edges, self.lines, self.arrows):
            line.setLine(edge.x1, edge.y1, edge.x2, edge.y2)
            arrow.setPolygon(QPolygonF([QPointF(x, y) for x, y in edge.arrow]))

        for glyph in frame.nodes:
            self.nodes[glyph.node_id].setPos(glyph.cx, glyph.cy)

        for label in frame.labels:
            text = self.labels[label.node_id]
            bounds = text.boundingRect()
            text.setPos(label.x - bounds.width() / 2, label.y - bounds.height() / 2)

        self.last_frame = frame

    def set_highlight(self, node_id: Optional[str]) -> None:
        for key, ellipse in self.nodes.items():
            ellipse.setPen(self._hover_pen if key == node_id else self._node_pen)

    def clear(self) -> None:
        scene = self.root.scene()
        for item in [*self.lines, *self.arrows, *self.nodes.values(), *self.labels.values()]:
            if scene is not None:
                scene.removeItem(item)
        self.lines.clear()
        self.arrows.clear()
        self.nodes.clear()
        self.labels.clear()
        self.last_frame = None


class GraphView(QGraphicsView):
    """
    Interactive canvas for one dataset at a time.

    Signals:
        simulation_failed(str): The layout produced non-finite values and was halted.
        simulation_converged(int): The layout came to rest after the given number of ticks.
        hovered_changed(str): Id of the node under the pointer ("" when none).
    """
    simulation_failed = Signal(str)
    simulation_converged = Signal(int)
    hovered_changed = Signal(str)

    def __init__(
        self,
        config: Optional[GraphConfig] = None,
        scheduler: Optional[FrameScheduler] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.config = config or GraphConfig()
        self.scheduler = scheduler or QtFrameScheduler(self.config.simulation.frame_interval_ms, parent=self)

        canvas = self.config.canvas
        self._scene = QGraphicsScene(0, 0, canvas.width, canvas.height, self)
        self._scene.setBackgroundBrush(QBrush(QColor(styles.BACKGROUND_COLOR)))
        self.setScene(self._scene)

        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setMouseTracking(True)
        self.setMinimumSize(int(canvas.width), int(canvas.height))

        self._root = QGraphicsItemGroup()
        self._scene.addItem(self._root)
        self.items_sink = SceneItems(self._root)

        # --- Per-dataset objects ---
        self.dataset: Optional[Dataset] = None
        self.radius_scale: Optional[RadiusScale] = None
        self.simulation: Optional[ForceSimulation] = None
        self.binder: Optional[RenderBinder] = None
        self.controller: Optional[InteractionController] = None
        self.tooltip_overlay: Optional[TooltipOverlay] = None

        self._create_controls()

    # --- CONTROLS ---

    def _create_controls(self) -> None:
        self.controls = QWidget(self)
        layout = QHBoxLayout(self.controls)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        self.btn_zoom_in = QPushButton("+")
        self.btn_zoom_in.setToolTip("Zoom in")
        self.btn_zoom_out = QPushButton("−")
        self.btn_zoom_out.setToolTip("Zoom out")
        self.btn_reset = QPushButton("Reset")
        self.btn_reset.setToolTip("Reset zoom")

        for button in (self.btn_zoom_in, self.btn_zoom_out, self.btn_reset):
            button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
            button.setMinimumWidth(32)
            layout.addWidget(button)

        self.btn_zoom_in.clicked.connect(self.zoom_in)
        self.btn_zoom_out.clicked.connect(self.zoom_out)
        self.btn_reset.clicked.connect(self.reset_view)
        self._place_controls()

    def _place_controls(self) -> None:
        self.controls.adjustSize()
        margin = 10
        self.controls.move(self.viewport().width() - self.controls.width() - margin, margin)

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self._place_controls()

    def zoom_in(self) -> None:
        if self.controller is not None:
            self.controller.zoom_in()

    def zoom_out(self) -> None:
        if self.controller is not None:
            self.controller.zoom_out()

    def reset_view(self) -> None:
        if self.controller is not None:
            self.controller.reset_view()

    # --- DATASET LIFECYCLE ---

    def show_dataset(self, dataset: Dataset) -> None:
        """
        Discard whatever is shown and start a fresh layout of ``dataset``.

        Args:
            dataset: Validated papers and citations.
        """
        self.clear()
        config = self.config

        self.dataset = dataset
        self.radius_scale = RadiusScale.from_papers(dataset.papers, config.node_radius.min, config.node_radius.max)
        self.simulation = build_simulation(dataset, config, self.radius_scale, self.scheduler)
        self.controller = InteractionController(self.simulation, self.radius_scale, config, self.scheduler)
        self.binder = RenderBinder(self.simulation, self.radius_scale, config.labels, self.items_sink)
        self.tooltip_overlay = TooltipOverlay(self.viewport(), config.tooltip.offset)

        self.controller.zoom.changed.connect(self._apply_transform)
        self.controller.tooltip.shown.connect(self._on_tooltip_shown)
        self.controller.tooltip.hidden.connect(self._on_tooltip_hidden)
        self.controller.tooltip.hover_changed.connect(self._on_hover_changed)
        self.simulation.failed.connect(self._on_simulation_failed)
        self.simulation.ended.connect(self._on_simulation_ended)

        self._apply_transform(self.controller.zoom.transform)
        self.binder.attach()
        self.simulation.restart()
        logger.info(f"Showing dataset '{dataset.identifier}'.")

    def clear(self) -> None:
        """Stop the layout, drop gesture handling, remove items and the tooltip."""
        if self.controller is not None:
            self.controller.dispose()
        if self.binder is not None:
            self.binder.detach()
        if self.simulation is not None:
            self.simulation.dispose()
        if self.tooltip_overlay is not None:
            self.tooltip_overlay.dispose()

        self.items_sink.clear()
        self._root.setTransform(QTransform())
        self.viewport().unsetCursor()

        self.dataset = None
        self.radius_scale = None
        self.simulation = None
        self.binder = None
        self.controller = None
        self.tooltip_overlay = None

    # --- CALLBACKS ---

    def _apply_transform(self, transform: ViewTransform) -> None:
        self._root.setTransform(QTransform(transform.k, 0, 0, transform.k, transform.x, transform.y))

    def _on_tooltip_shown(self, content: TooltipContent, anchor: tuple[float, float]) -> None:
        if self.tooltip_overlay is None:
            return
        point = self.mapFromScene(QPointF(*anchor))
        self.tooltip_overlay.show_content(content, (point.x(), point.y()))

    def _on_tooltip_hidden(self) -> None:
        if self.tooltip_overlay is not None:
            self.tooltip_overlay.hide_content()

    def _on_hover_changed(self, node_id: Optional[str]) -> None:
        self.items_sink.set_highlight(node_id)
        self.hovered_changed.emit(node_id or "")

    def _on_simulation_failed(self, error: NumericalInstabilityError) -> None:
        self.simulation_failed.emit(str(error))

    def _on_simulation_ended(self) -> None:
        if self.simulation is not None:
            self.simulation_converged.emit(self.simulation.tick_count)

    # --- INPUT ---

    def _canvas_point(self, event: QMouseEvent | QWheelEvent) -> tuple[float, float]:
        point = self.mapToScene(event.position().toPoint())
        return point.x(), point.y()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if self.controller is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        kind = self.controller.pointer_press(self._canvas_point(event))
        if kind is not None:
            self.viewport().setCursor(QCursor(Qt.CursorShape.ClosedHandCursor))
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self.controller is None:
            super().mouseMoveEvent(event)
            return
        self.controller.pointer_move(self._canvas_point(event))
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self.controller is None or event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        self.controller.pointer_release(self._canvas_point(event))
        self.viewport().unsetCursor()
        event.accept()

    def wheelEvent(self, event: QWheelEvent) -> None:
        if self.controller is None:
            super().wheelEvent(event)
            return
        # Qt reports +120 per notch away from the user; that direction zooms in
        self.controller.wheel(-event.angleDelta().y(), self._canvas_point(event))
        event.accept()

    def leaveEvent(self, event) -> None:
        if self.controller is not None:
            self.controller.pointer_leave()
        super().leaveEvent(event)
