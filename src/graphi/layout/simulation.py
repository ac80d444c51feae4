"""
Force Simulation Engine
=======================
The iterative layout solver that moves nodes toward a force equilibrium.

Why is this file needed?
------------------------
1. Physics: It combines the registered force terms and integrates node
   velocities and positions (semi-implicit Euler with velocity decay).
2. Cooling: It owns the alpha schedule that makes the forces fade out so the
   layout comes to rest.
3. Scheduling: It drives itself one frame at a time on a FrameScheduler,
   guarded by a single running flag, and reports every step through the
   ``ticked`` hook.

Note: This module should be pure Python/NumPy and should NOT import PySide6.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from graphi.config import GraphConfig, SimulationSettings
from graphi.errors import DataError, NumericalInstabilityError
from graphi.events import EventHook
from graphi.layout.forces import CenterForce, CollisionForce, Force, LinkForce, ManyBodyForce
from graphi.layout.scheduler import FrameScheduler, ManualScheduler, TimerHandle

if TYPE_CHECKING:
    import numpy.typing as npt

    from graphi.layout.scale import RadiusScale
    from graphi.model.dataset import Citation, Dataset, Paper

logger = logging.getLogger(__name__)

INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))
JIGGLE_SIZE = 1e-6


class SimulationState(StrEnum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    CONVERGED = "converged"
    DISPOSED = "disposed"
    FAILED = "failed"


class LayoutNode:
    """
    A paper as seen by the simulation.

    Position, velocity and pin are views onto the simulation's arrays, so
    reading ``node.x`` always returns the current value.
    """
    __slots__ = ("paper", "index", "_simulation")

    def __init__(self, paper: Paper, index: int, simulation: ForceSimulation) -> None:
        self.paper = paper
        self.index = index
        self._simulation = simulation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r}, x={self.x:.2f}, y={self.y:.2f})"

    @property
    def id(self) -> str:
        return self.paper.id

    @property
    def x(self) -> float:
        return float(self._simulation.positions[self.index, 0])

    @property
    def y(self) -> float:
        return float(self._simulation.positions[self.index, 1])

    @property
    def vx(self) -> float:
        return float(self._simulation.velocities[self.index, 0])

    @property
    def vy(self) -> float:
        return float(self._simulation.velocities[self.index, 1])

    @property
    def fx(self) -> Optional[float]:
        """Pinned x-coordinate, or None when the axis is free."""
        value = self._simulation.pins[self.index, 0]
        return None if np.isnan(value) else float(value)

    @property
    def fy(self) -> Optional[float]:
        """Pinned y-coordinate, or None when the axis is free."""
        value = self._simulation.pins[self.index, 1]
        return None if np.isnan(value) else float(value)

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None or self.fy is not None


@dataclass(frozen=True)
class LayoutEdge:
    """A citation resolved to the two nodes it connects."""
    source: LayoutNode
    target: LayoutNode
    index: int


class ForceSimulation:
    """
    Force-directed layout of one dataset.

    Each instance owns its own alpha schedule and force parameters, so
    several simulations can run side by side without interfering.
    """

    def __init__(
        self,
        papers: Sequence[Paper],
        citations: Sequence[Citation] = (),
        settings: Optional[SimulationSettings] = None,
        scheduler: Optional[FrameScheduler] = None,
        center: tuple[float, float] = (0.0, 0.0),
    ) -> None:
        """
        Resolve citations to nodes and place every node on its initial position.

        Args:
            papers: Nodes of the graph.
            citations: Directed edges; both ends must be in ``papers``.
            settings: Alpha schedule; defaults to SimulationSettings().
            scheduler: Clock used by restart(); a ManualScheduler when omitted.
            center: Point the initial spiral is laid out around.

        Raises:
            DataError: If a citation references an unknown paper.
        """
        self.settings = settings or SimulationSettings()
        self.scheduler = scheduler or ManualScheduler(self.settings.frame_interval_ms)
        self.center = center
        self.state = SimulationState.INITIALIZING

        self.nodes: list[LayoutNode] = [LayoutNode(paper, i, self) for i, paper in enumerate(papers)]
        self._by_id: dict[str, LayoutNode] = {node.id: node for node in self.nodes}
        self.edges: list[LayoutEdge] = self._resolve_edges(citations)

        n = len(self.nodes)
        self.positions: npt.NDArray[np.float64] = np.zeros((n, 2), dtype=np.float64)
        self.velocities: npt.NDArray[np.float64] = np.zeros((n, 2), dtype=np.float64)
        self.pins: npt.NDArray[np.float64] = np.full((n, 2), np.nan, dtype=np.float64)
        self._place_initial()

        self.alpha = self.settings.alpha
        self._alpha_target = self.settings.alpha_target
        self.tick_count = 0

        self.rng = np.random.default_rng(self.settings.seed)
        self._forces: dict[str, Force] = {}

        self._running = False
        self._frame: Optional[TimerHandle] = None

        # Hooks: ticked(positions), ended(), failed(error)
        self.ticked = EventHook("ticked")
        self.ended = EventHook("ended")
        self.failed = EventHook("failed")

        logger.debug(f"Simulation created with {n} nodes and {len(self.edges)} edges.")

    # ------------------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------------------

    def _resolve_edges(self, citations: Sequence[Citation]) -> list[LayoutEdge]:
        edges: list[LayoutEdge] = []
        for i, citation in enumerate(citations):
            try:
                source = self._by_id[citation.source]
                target = self._by_id[citation.target]
            except KeyError as e:
                raise DataError(f"Edge #{i} references unknown node {e.args[0]!r}.") from e
            edges.append(LayoutEdge(source=source, target=target, index=i))
        return edges

    def _place_initial(self) -> None:
        """Phyllotaxis spiral: deterministic and free of coincident points."""
        n = len(self.nodes)
        i = np.arange(n, dtype=np.float64)
        radius = self.settings.initial_radius * np.sqrt(0.5 + i)
        angle = i * INITIAL_ANGLE
        self.positions[:, 0] = self.center[0] + radius * np.cos(angle)
        self.positions[:, 1] = self.center[1] + radius * np.sin(angle)
        self.velocities[:] = 0.0

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @alpha_target.setter
    def alpha_target(self, value: float) -> None:
        self._alpha_target = min(1.0, max(0.0, float(value)))

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_disposed(self) -> bool:
        return self.state is SimulationState.DISPOSED

    @property
    def has_pins(self) -> bool:
        return bool(np.any(~np.isnan(self.pins)))

    @property
    def is_converged(self) -> bool:
        return self.alpha < self.settings.alpha_min and not self.has_pins

    def force(self, name: str, force: Optional[Force] = None) -> Optional[Force]:
        """
        Get or register a named force.

        Args:
            name: Key of the force, e.g. "charge".
            force: When given, replaces the force under ``name`` and initializes it.

        Returns:
            The force registered under ``name`` (None if there is none).
        """
        if force is None:
            return self._forces.get(name)
        force.initialize(self)
        self._forces[name] = force
        return force

    def remove_force(self, name: str) -> None:
        self._forces.pop(name, None)

    @property
    def forces(self) -> dict[str, Force]:
        return dict(self._forces)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def node(self, node_id: str) -> LayoutNode:
        """Raises KeyError for unknown ids."""
        return self._by_id[node_id]

    def positions_copy(self) -> npt.NDArray[np.float64]:
        return self.positions.copy()

    def find(self, x: float, y: float, radius: float = math.inf) -> Optional[LayoutNode]:
        """
        Node closest to (x, y) within ``radius``, or None.
        """
        if not self.nodes:
            return None
        d2 = np.sum((self.positions - np.array([x, y])) ** 2, axis=1)
        i = int(np.argmin(d2))
        if d2[i] > radius * radius:
            return None
        return self.nodes[i]

    def pin(self, node_id: str, x: Optional[float], y: Optional[float]) -> bool:
        """
        Force a node to (x, y). A None axis stays free.

        Returns:
            False if the simulation is disposed or the node is unknown.
        """
        if self.is_disposed or node_id not in self._by_id:
            logger.debug(f"Ignoring pin of '{node_id}' on a disposed or foreign simulation.")
            return False
        index = self._by_id[node_id].index
        self.pins[index, 0] = np.nan if x is None else x
        self.pins[index, 1] = np.nan if y is None else y
        return True

    def unpin(self, node_id: str) -> bool:
        return self.pin(node_id, None, None)

    def jiggle(self, size: int | tuple[int, ...]) -> npt.NDArray[np.float64]:
        """Tiny random offsets used to separate coincident points."""
        return (self.rng.random(size) - 0.5) * JIGGLE_SIZE

    # ------------------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------------------

    def tick(self) -> None:
        """
        Advance the layout by one step and notify ``ticked`` listeners.

        Raises:
            NumericalInstabilityError: If a position or velocity became NaN/Infinity.
                The simulation is left in the FAILED state.
        """
        if self.state in (SimulationState.DISPOSED, SimulationState.FAILED):
            logger.debug(f"Tick ignored in state '{self.state}'.")
            return

        for force in self._forces.values():
            force.apply(self.alpha)

        self._integrate()
        self._check_finite()

        self.alpha += (self._alpha_target - self.alpha) * self.settings.alpha_decay
        self.alpha = min(1.0, max(0.0, self.alpha))
        self.tick_count += 1

        self.state = SimulationState.CONVERGED if self.is_converged else SimulationState.RUNNING
        self.ticked.emit(self.positions)

    def _integrate(self) -> None:
        pinned = ~np.isnan(self.pins)
        self.velocities *= 1.0 - self.settings.velocity_decay
        self.positions += self.velocities
        self.positions[pinned] = self.pins[pinned]
        self.velocities[pinned] = 0.0

    def _check_finite(self) -> None:
        finite = np.isfinite(self.positions).all(axis=1) & np.isfinite(self.velocities).all(axis=1)
        if finite.all():
            return

        bad = [self.nodes[i].id for i in np.flatnonzero(~finite)]
        self.state = SimulationState.FAILED
        self._cancel_frame()
        msg = f"Non-finite layout at tick {self.tick_count + 1} for node(s) {bad[:5]}."
        logger.error(msg)
        raise NumericalInstabilityError(msg, tick=self.tick_count + 1, node_ids=bad)

    def run(self, max_ticks: int = 1000) -> int:
        """
        Tick synchronously until converged (headless use).

        Returns:
            Number of ticks performed.
        """
        ticks = 0
        while ticks < max_ticks and not self.is_converged:
            if self.state in (SimulationState.DISPOSED, SimulationState.FAILED):
                break
            self.tick()
            ticks += 1
        return ticks

    # ------------------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------------------

    def restart(self) -> ForceSimulation:
        """Resume ticking on the scheduler, one tick per frame."""
        if self.state in (SimulationState.DISPOSED, SimulationState.FAILED):
            logger.debug(f"Restart ignored in state '{self.state}'.")
            return self
        if not self._running:
            logger.debug(f"Simulation started (alpha={self.alpha:.4f}, target={self._alpha_target:.2f}).")
        self._running = True
        self.state = SimulationState.RUNNING
        if self._frame is None or not self._frame.active:
            self._frame = self.scheduler.request_frame(self._on_frame)
        return self

    def stop(self) -> ForceSimulation:
        """Stop scheduling ticks. Positions are kept."""
        self._cancel_frame()
        return self

    def _cancel_frame(self) -> None:
        self._running = False
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def _on_frame(self) -> None:
        self._frame = None
        if not self._running:
            return

        try:
            self.tick()
        except NumericalInstabilityError as e:
            self.failed.emit(e)
            return

        if self.is_converged:
            self._running = False
            logger.info(f"Layout converged after {self.tick_count} ticks.")
            self.ended.emit()
            return

        if self._running:
            self._frame = self.scheduler.request_frame(self._on_frame)

    def dispose(self) -> None:
        """Stop for good and drop every listener."""
        if self.is_disposed:
            return
        self._cancel_frame()
        self.state = SimulationState.DISPOSED
        self.ticked.disconnect_all()
        self.ended.disconnect_all()
        self.failed.disconnect_all()
        logger.info("Simulation disposed.")


def build_simulation(
    dataset: Dataset,
    config: GraphConfig,
    radius_scale: RadiusScale,
    scheduler: Optional[FrameScheduler] = None,
) -> ForceSimulation:
    """
    Create the standard simulation for a dataset: link, charge, center and
    collision forces configured from ``config``.

    Args:
        dataset: Validated papers and citations.
        config: Application configuration.
        radius_scale: Citation-to-radius mapping of this dataset.
        scheduler: Frame scheduler to run on.

    Returns:
        A simulation in the INITIALIZING state; call restart() to run it.
    """
    forces = config.forces
    cx, cy = config.canvas.center

    simulation = ForceSimulation(
        dataset.papers,
        dataset.citations,
        settings=config.simulation,
        scheduler=scheduler,
        center=(cx, cy),
    )
    simulation.force("link", LinkForce(distance=forces.link_distance, iterations=forces.link_iterations))
    simulation.force("charge", ManyBodyForce(
        strength=forces.charge_strength,
        theta=forces.theta,
        distance_min=forces.charge_distance_min,
        distance_max=forces.charge_distance_max,
        barnes_hut_threshold=forces.barnes_hut_threshold,
    ))
    simulation.force("center", CenterForce(cx, cy, strength=forces.center_strength))
    simulation.force("collision", CollisionForce(
        radius=lambda node: radius_scale(node.paper.citations),
        padding=forces.collision_padding,
        strength=forces.collision_strength,
        iterations=forces.collision_iterations,
    ))

    logger.info(
        f"Simulation for '{dataset.identifier}' ready: {len(simulation.nodes)} nodes, "
        f"{len(simulation.edges)} edges, forces {list(simulation.forces)}."
    )
    return simulation
