"""
Layout Forces
=============
The four force terms combined by the simulation on every tick.

Each force adds a velocity contribution (or, for centering, a direct shift)
to the arrays owned by the simulation. Forces never integrate positions
themselves; that is the simulation's job once every force has run.

Classes:
    Force: Abstract base class.
    LinkForce: Degree-normalised springs along citations.
    ManyBodyForce: Mutual repulsion, exact or Barnes-Hut.
    CenterForce: Keeps the layout's centre of mass on the canvas centre.
    CollisionForce: Pushes overlapping circles apart.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np
from scipy.spatial import KDTree

from graphi.layout.quadtree import QuadTree

if TYPE_CHECKING:
    import numpy.typing as npt

    from graphi.layout.simulation import ForceSimulation, LayoutNode

logger = logging.getLogger(__name__)


class Force(ABC):
    """
    Abstract base class for a force term.
    """

    def __init__(self) -> None:
        self.simulation: Optional[ForceSimulation] = None

    def initialize(self, simulation: ForceSimulation) -> None:
        """
        Bind the force to a simulation and precompute per-node or per-edge data.

        Called when the force is registered and whenever the node set changes.
        """
        self.simulation = simulation

    @abstractmethod
    def apply(self, alpha: float) -> None:
        """
        Accumulate this force's contribution for the current tick.

        Args:
            alpha: Current simulation temperature in [0, 1].
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LinkForce(Force):
    """
    Spring along every edge with a fixed rest length.

    Strength of a link is 1 / min(degree(source), degree(target)), so hubs
    are not torn apart by their many springs. The correction is split by
    degree: the endpoint with more links moves less.
    """

    def __init__(self, distance: float = 30.0, iterations: int = 1) -> None:
        super().__init__()
        self.distance = distance
        self.iterations = iterations

        self._sources: npt.NDArray[np.int64] = np.empty(0, dtype=np.int64)
        self._targets: npt.NDArray[np.int64] = np.empty(0, dtype=np.int64)
        self._strengths: npt.NDArray[np.float64] = np.empty(0, dtype=np.float64)
        self._bias: npt.NDArray[np.float64] = np.empty(0, dtype=np.float64)

    def initialize(self, simulation: ForceSimulation) -> None:
        super().initialize(simulation)
        edges = simulation.edges
        n = len(simulation.nodes)

        self._sources = np.array([edge.source.index for edge in edges], dtype=np.int64)
        self._targets = np.array([edge.target.index for edge in edges], dtype=np.int64)

        degree = np.bincount(np.concatenate([self._sources, self._targets]), minlength=n).astype(np.float64)
        source_degree = degree[self._sources]
        target_degree = degree[self._targets]

        self._strengths = 1.0 / np.maximum(np.minimum(source_degree, target_degree), 1.0)
        self._bias = source_degree / np.maximum(source_degree + target_degree, 1.0)

    def apply(self, alpha: float) -> None:
        if self._sources.size == 0:
            return

        sim = self.simulation
        positions = sim.positions
        velocities = sim.velocities
        s, t = self._sources, self._targets

        for _ in range(self.iterations):
            # Use the positions the endpoints are about to reach
            delta = (positions[t] + velocities[t]) - (positions[s] + velocities[s])
            zero = delta == 0.0
            if zero.any():
                delta[zero] = sim.jiggle(int(zero.sum()))

            length = np.hypot(delta[:, 0], delta[:, 1])
            factor = (length - self.distance) / length * alpha * self._strengths
            delta *= factor[:, np.newaxis]

            np.add.at(velocities, t, -delta * self._bias[:, np.newaxis])
            np.add.at(velocities, s, delta * (1.0 - self._bias)[:, np.newaxis])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(distance={self.distance})"


class ManyBodyForce(Force):
    """
    Every node pushes (negative strength) or pulls every other node with a
    velocity change of ``(x_j - x_i) * strength * alpha / d²``.

    Below ``barnes_hut_threshold`` nodes the sum is evaluated exactly with
    numpy broadcasting; above it a quadtree approximation keeps the cost near
    O(n log n).
    """

    def __init__(
        self,
        strength: float = -30.0,
        theta: float = 0.9,
        distance_min: float = 1.0,
        distance_max: float = math.inf,
        barnes_hut_threshold: int = 200,
    ) -> None:
        super().__init__()
        self.strength = strength
        self.theta = theta
        self.distance_min2 = distance_min * distance_min
        self.distance_max2 = distance_max * distance_max
        self.barnes_hut_threshold = barnes_hut_threshold

    def apply(self, alpha: float) -> None:
        n = len(self.simulation.nodes)
        if n < 2:
            return
        if n > self.barnes_hut_threshold:
            self._apply_barnes_hut(alpha)
        else:
            self._apply_exact(alpha)

    def _apply_exact(self, alpha: float) -> None:
        sim = self.simulation
        positions = sim.positions
        n = positions.shape[0]

        # delta[i, j] = x_j - x_i
        delta = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]
        l = np.einsum("ijk,ijk->ij", delta, delta)

        off_diagonal = ~np.eye(n, dtype=bool)
        coincident = (l == 0.0) & off_diagonal
        if coincident.any():
            delta[coincident] = sim.jiggle((int(coincident.sum()), 2))
            l = np.einsum("ijk,ijk->ij", delta, delta)

        l = np.where(l < self.distance_min2, np.sqrt(self.distance_min2 * l), l)

        weights = np.zeros_like(l)
        mask = off_diagonal & (l < self.distance_max2)
        weights[mask] = self.strength * alpha / l[mask]

        sim.velocities += np.einsum("ijk,ij->ik", delta, weights)

    def _apply_barnes_hut(self, alpha: float) -> None:
        sim = self.simulation
        tree = QuadTree(sim.positions)
        scale = self.strength * alpha

        def jiggle() -> float:
            return float(sim.jiggle(1)[0])

        for i in range(len(sim.nodes)):
            fx, fy = tree.field_at(
                i,
                theta=self.theta,
                distance_min2=self.distance_min2,
                distance_max2=self.distance_max2,
                jiggle=jiggle,
            )
            sim.velocities[i, 0] += fx * scale
            sim.velocities[i, 1] += fy * scale

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(strength={self.strength}, theta={self.theta})"


class CenterForce(Force):
    """
    Shifts all nodes together so that their mean position moves toward
    (x, y). Strength 1 recentres fully on every tick. Relative positions are
    unaffected, so this never fights the other forces.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0, strength: float = 1.0) -> None:
        super().__init__()
        self.x = x
        self.y = y
        self.strength = strength

    def apply(self, alpha: float) -> None:
        positions = self.simulation.positions
        if positions.shape[0] == 0:
            return
        mean = positions.mean(axis=0)
        positions += (np.array([self.x, self.y]) - mean) * self.strength

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(x={self.x}, y={self.y})"


class CollisionForce(Force):
    """
    Treats nodes as circles of ``radius(node) + padding`` and pushes every
    overlapping pair apart along the line between their centres.

    The push is shared in proportion to the squared radius of the other
    circle, so small nodes give way to large ones. Not scaled by alpha:
    overlaps keep resolving while the other forces cool down.
    """

    def __init__(
        self,
        radius: Callable[[LayoutNode], float],
        padding: float = 0.0,
        strength: float = 1.0,
        iterations: int = 1,
    ) -> None:
        super().__init__()
        self.radius = radius
        self.padding = padding
        self.strength = strength
        self.iterations = iterations
        self._radii: npt.NDArray[np.float64] = np.empty(0, dtype=np.float64)

    def initialize(self, simulation: ForceSimulation) -> None:
        super().initialize(simulation)
        self._radii = np.array(
            [self.radius(node) + self.padding for node in simulation.nodes],
            dtype=np.float64,
        )

    @property
    def radii(self) -> npt.NDArray[np.float64]:
        """Padded collision radius of every node."""
        return self._radii

    def apply(self, alpha: float) -> None:
        n = self._radii.shape[0]
        if n < 2:
            return

        sim = self.simulation
        reach = 2.0 * float(self._radii.max())

        for _ in range(self.iterations):
            predicted = sim.positions + sim.velocities
            pairs = KDTree(predicted).query_pairs(r=reach, output_type="ndarray")
            if pairs.size == 0:
                return
            i, j = pairs[:, 0], pairs[:, 1]

            delta = predicted[i] - predicted[j]
            l = np.einsum("ij,ij->i", delta, delta)
            r_sum = self._radii[i] + self._radii[j]
            overlapping = l < r_sum * r_sum
            if not overlapping.any():
                return

            i, j, delta, l, r_sum = i[overlapping], j[overlapping], delta[overlapping], l[overlapping], r_sum[overlapping]

            coincident = l == 0.0
            if coincident.any():
                delta[coincident] = sim.jiggle((int(coincident.sum()), 2))
                l = np.einsum("ij,ij->i", delta, delta)

            length = np.sqrt(l)
            push = delta * ((r_sum - length) / length * self.strength)[:, np.newaxis]

            ri2 = self._radii[i] ** 2
            rj2 = self._radii[j] ** 2
            share = rj2 / (ri2 + rj2)

            np.add.at(sim.velocities, i, push * share[:, np.newaxis])
            np.add.at(sim.velocities, j, -push * (1.0 - share)[:, np.newaxis])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(padding={self.padding}, strength={self.strength})"
