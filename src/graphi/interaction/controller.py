"""
Interaction Controller
======================
Routes pointer and wheel gestures to the drag, pan/zoom and tooltip logic.

Why is this file needed?
------------------------
1. Routing: A press is offered to the registered gesture handlers in priority
   order; node dragging is registered ahead of canvas panning, so a press on a
   node never pans the view. The handler that claims the press receives the
   rest of that pointer's gesture.
2. Coordinates: Screen (canvas) positions are converted to layout coordinates
   with the current View Transform before they reach the simulation.
3. Lifetime: dispose() detaches every handler, cancels timers and animations
   and hides the tooltip; gestures arriving afterwards are dropped silently.

Note: This module should be pure Python/NumPy and should NOT import PySide6.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from graphi.config import GraphConfig
from graphi.interaction.drag import DragController
from graphi.interaction.tooltip import TooltipController
from graphi.interaction.transform import Point
from graphi.interaction.zoom import ZoomController
from graphi.layout.scheduler import FrameScheduler

if TYPE_CHECKING:
    from graphi.layout.scale import RadiusScale
    from graphi.layout.simulation import ForceSimulation
    from graphi.model.dataset import Paper

logger = logging.getLogger(__name__)

MOUSE_POINTER = 0


class GestureKind(StrEnum):
    DRAG = "drag"
    PAN = "pan"


class GestureHandler(ABC):
    """A gesture recogniser offered every press in priority order."""
    kind: GestureKind

    @abstractmethod
    def press(self, pointer_id: int, screen: Point) -> bool:
        """Return True to claim the gesture."""

    @abstractmethod
    def move(self, pointer_id: int, screen: Point) -> None: ...

    @abstractmethod
    def release(self, pointer_id: int, screen: Point) -> None: ...

    @abstractmethod
    def cancel(self) -> None: ...


class NodeDragHandler(GestureHandler):
    kind = GestureKind.DRAG

    def __init__(self, drag: DragController, hit_test: Callable[[Point], Optional[str]], to_data: Callable[[Point], Point]) -> None:
        self.drag = drag
        self.hit_test = hit_test
        self.to_data = to_data

    def press(self, pointer_id: int, screen: Point) -> bool:
        node_id = self.hit_test(screen)
        if node_id is None:
            return False
        return self.drag.start(pointer_id, node_id, self.to_data(screen))

    def move(self, pointer_id: int, screen: Point) -> None:
        self.drag.move(pointer_id, self.to_data(screen))

    def release(self, pointer_id: int, screen: Point) -> None:
        self.drag.end(pointer_id)

    def cancel(self) -> None:
        self.drag.cancel_all()


class CanvasPanHandler(GestureHandler):
    kind = GestureKind.PAN

    def __init__(self, zoom: ZoomController) -> None:
        self.zoom = zoom

    def press(self, pointer_id: int, screen: Point) -> bool:
        self.zoom.pan_start(screen)
        return True

    def move(self, pointer_id: int, screen: Point) -> None:
        self.zoom.pan_move(screen)

    def release(self, pointer_id: int, screen: Point) -> None:
        self.zoom.pan_end()

    def cancel(self) -> None:
        self.zoom.pan_end()


class InteractionController:
    """
    Single writer of pins and of the View Transform for one graph view.
    """
    DRAG_PRIORITY = 0
    PAN_PRIORITY = 100

    def __init__(
        self,
        simulation: ForceSimulation,
        radius_scale: RadiusScale,
        config: GraphConfig,
        scheduler: FrameScheduler,
    ) -> None:
        self.simulation = simulation
        self.radius_scale = radius_scale
        self.config = config

        self.zoom = ZoomController(config.zoom, (config.canvas.width, config.canvas.height), scheduler)
        self.drag = DragController(
            simulation,
            warm_alpha_target=config.simulation.warm_alpha_target,
            rest_alpha_target=config.simulation.alpha_target,
        )
        self.tooltip = TooltipController(config.tooltip, scheduler, self._lookup)

        self._radii = np.array([radius_scale(node.paper.citations) for node in simulation.nodes], dtype=np.float64)
        self._handlers: list[tuple[int, GestureHandler]] = []
        self._claims: dict[int, GestureHandler] = {}
        self._disposed = False

        self.register_handler(NodeDragHandler(self.drag, self.hit_test, self.to_data), self.DRAG_PRIORITY)
        self.register_handler(CanvasPanHandler(self.zoom), self.PAN_PRIORITY)

    # ------------------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------------------

    def register_handler(self, handler: GestureHandler, priority: int) -> None:
        """Lower priority values are offered the press first."""
        self._handlers.append((priority, handler))
        self._handlers.sort(key=lambda item: item[0])

    def unregister_handler(self, handler: GestureHandler) -> None:
        self._handlers = [(p, h) for p, h in self._handlers if h is not handler]
        for pointer_id, claimed in list(self._claims.items()):
            if claimed is handler:
                del self._claims[pointer_id]

    @property
    def handlers(self) -> list[GestureHandler]:
        return [handler for _, handler in self._handlers]

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------------------

    def to_data(self, screen: Point) -> Point:
        return self.zoom.transform.invert(screen)

    def to_screen(self, data: Point) -> Point:
        return self.zoom.transform.apply(data)

    def hit_test(self, screen: Point) -> Optional[str]:
        """
        Id of the topmost node whose circle contains ``screen``, or None.

        Nodes later in the dataset are drawn on top, so they win ties.
        """
        if self._disposed or self.simulation.is_disposed or not self.simulation.nodes:
            return None
        x, y = self.to_data(screen)
        positions = self.simulation.positions
        distance = np.hypot(positions[:, 0] - x, positions[:, 1] - y)
        hits = np.flatnonzero(distance <= self._radii)
        if hits.size == 0:
            return None
        return self.simulation.nodes[int(hits[-1])].id

    def _lookup(self, node_id: str) -> Optional[Paper]:
        if self.simulation.is_disposed or not self.simulation.has_node(node_id):
            return None
        return self.simulation.node(node_id).paper

    # ------------------------------------------------------------------------------
    # Pointer events (screen coordinates)
    # ------------------------------------------------------------------------------

    def pointer_press(self, screen: Point, pointer_id: int = MOUSE_POINTER) -> Optional[GestureKind]:
        if self._disposed:
            return None
        if pointer_id in self._claims:
            logger.debug(f"Pointer {pointer_id} pressed twice; keeping the first gesture.")
            return self._claims[pointer_id].kind

        for _, handler in self._handlers:
            if handler.press(pointer_id, screen):
                self._claims[pointer_id] = handler
                return handler.kind
        return None

    def pointer_move(self, screen: Point, pointer_id: int = MOUSE_POINTER) -> None:
        if self._disposed:
            return
        handler = self._claims.get(pointer_id)
        if handler is not None:
            handler.move(pointer_id, screen)
        self._update_hover(screen)

    def pointer_release(self, screen: Point, pointer_id: int = MOUSE_POINTER) -> None:
        if self._disposed:
            return
        handler = self._claims.pop(pointer_id, None)
        if handler is not None:
            handler.release(pointer_id, screen)

    def pointer_leave(self) -> None:
        """Pointer left the canvas."""
        if self._disposed:
            return
        hovered = self.tooltip.hovered
        if hovered is not None:
            self.tooltip.leave(hovered)

    def wheel(self, delta_y: float, screen: Point) -> None:
        if self._disposed:
            return
        self.zoom.wheel(delta_y, screen)

    def _update_hover(self, screen: Point) -> None:
        node_id = self.hit_test(screen)
        hovered = self.tooltip.hovered
        if node_id == hovered:
            if node_id is not None:
                self.tooltip.move(screen)
            return
        if hovered is not None:
            self.tooltip.leave(hovered)
        if node_id is not None:
            self.tooltip.enter(node_id, screen)

    # ------------------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------------------

    def zoom_in(self) -> None:
        if not self._disposed:
            self.zoom.zoom_in()

    def zoom_out(self) -> None:
        if not self._disposed:
            self.zoom.zoom_out()

    def reset_view(self) -> None:
        if not self._disposed:
            self.zoom.reset()

    def dispose(self) -> None:
        if self._disposed:
            return
        for handler in self.handlers:
            handler.cancel()
        self._handlers.clear()
        self._claims.clear()
        self.tooltip.dispose()
        self.zoom.dispose()
        self._disposed = True
        logger.debug("Interaction controller disposed.")
