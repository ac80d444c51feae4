from __future__ import annotations

import logging
from typing import Optional

from graphi.interaction.transform import Point
from graphi.layout.simulation import ForceSimulation

logger = logging.getLogger(__name__)


class DragController:
    """
    Pins dragged nodes to the pointer.

    The first active drag warms the simulation (raises alpha_target and
    restarts it) so the rest of the layout follows the dragged node; the
    last drag to end lets it cool down again. One node per pointer.
    """

    def __init__(self, simulation: ForceSimulation, warm_alpha_target: float, rest_alpha_target: float = 0.0) -> None:
        self.simulation = simulation
        self.warm_alpha_target = warm_alpha_target
        self.rest_alpha_target = rest_alpha_target
        self._drags: dict[int, str] = {}

    @property
    def active(self) -> dict[int, str]:
        """Pointer id -> dragged node id."""
        return dict(self._drags)

    def dragged_node(self, pointer_id: int) -> Optional[str]:
        return self._drags.get(pointer_id)

    def is_dragging(self, pointer_id: Optional[int] = None) -> bool:
        if pointer_id is None:
            return bool(self._drags)
        return pointer_id in self._drags

    def _usable(self, node_id: str) -> bool:
        return not self.simulation.is_disposed and self.simulation.has_node(node_id)

    def start(self, pointer_id: int, node_id: str, point: Point) -> bool:
        """
        Begin dragging ``node_id`` with ``pointer_id`` at data-space ``point``.

        Returns:
            False if the gesture was discarded.
        """
        if not self._usable(node_id):
            logger.debug(f"Discarding drag start on unavailable node '{node_id}'.")
            return False
        if pointer_id in self._drags:
            logger.debug(f"Pointer {pointer_id} is already dragging '{self._drags[pointer_id]}'.")
            return False
        if node_id in self._drags.values():
            logger.debug(f"Node '{node_id}' is already being dragged.")
            return False

        if not self._drags:
            self.simulation.alpha_target = self.warm_alpha_target
            self.simulation.restart()

        self._drags[pointer_id] = node_id
        self.simulation.pin(node_id, point[0], point[1])
        return True

    def move(self, pointer_id: int, point: Point) -> bool:
        node_id = self._drags.get(pointer_id)
        if node_id is None:
            return False
        if not self._usable(node_id):
            logger.debug(f"Discarding drag of removed node '{node_id}'.")
            del self._drags[pointer_id]
            return False
        return self.simulation.pin(node_id, point[0], point[1])

    def end(self, pointer_id: int) -> bool:
        node_id = self._drags.pop(pointer_id, None)
        if node_id is None:
            return False
        if not self._usable(node_id):
            logger.debug(f"Discarding drag end of removed node '{node_id}'.")
            return False

        self.simulation.unpin(node_id)
        if not self._drags:
            self.simulation.alpha_target = self.rest_alpha_target
        return True

    def cancel_all(self) -> None:
        for pointer_id in list(self._drags):
            self.end(pointer_id)
