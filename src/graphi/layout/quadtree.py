from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


class Quad:
    """
    Square cell of the tree. Leaves keep the indices of their points,
    internal cells keep four children.
    """
    __slots__ = ("x0", "y0", "x1", "y1", "children", "indices", "count", "cx", "cy")

    def __init__(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.x1 = x1
        self.y1 = y1
        self.children: list[Quad] | None = None
        self.indices: list[int] = []
        self.count = 0
        self.cx = 0.0
        self.cy = 0.0

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    def child_for(self, x: float, y: float) -> Quad:
        mx = (self.x0 + self.x1) / 2
        my = (self.y0 + self.y1) / 2
        return self.children[int(x >= mx) + 2 * int(y >= my)]

    def split(self) -> None:
        mx = (self.x0 + self.x1) / 2
        my = (self.y0 + self.y1) / 2
        self.children = [
            Quad(self.x0, self.y0, mx, my),
            Quad(mx, self.y0, self.x1, my),
            Quad(self.x0, my, mx, self.y1),
            Quad(mx, my, self.x1, self.y1),
        ]


class QuadTree:
    """
    Point quadtree with per-cell centre of mass, used for the Barnes-Hut
    approximation of the charge force.

    Points closer together than the smallest cell at MAX_DEPTH share a leaf.
    """
    MAX_DEPTH = 24

    def __init__(self, points: npt.NDArray[np.float64]) -> None:
        self.points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if self.points.shape[0] == 0:
            raise ValueError("Cannot build a quadtree without points.")

        x0, y0 = self.points.min(axis=0)
        x1, y1 = self.points.max(axis=0)
        # Square root cell, slightly enlarged so max-coordinate points fall inside
        size = max(x1 - x0, y1 - y0, 1e-9) * (1.0 + 1e-9) + 1e-9
        self.root = Quad(float(x0), float(y0), float(x0) + size, float(y0) + size)

        for i, (x, y) in enumerate(self.points):
            self._insert(self.root, i, float(x), float(y), 0)
        self._accumulate(self.root)

    def _insert(self, quad: Quad, i: int, x: float, y: float, depth: int) -> None:
        while quad.children is not None:
            quad = quad.child_for(x, y)
            depth += 1

        if not quad.indices or depth >= self.MAX_DEPTH:
            quad.indices.append(i)
            return

        existing = quad.indices
        quad.indices = []
        quad.split()
        for j in existing:
            px, py = self.points[j]
            self._insert(quad, j, float(px), float(py), depth)
        self._insert(quad, i, x, y, depth)

    def _accumulate(self, quad: Quad) -> None:
        if quad.children is None:
            quad.count = len(quad.indices)
            if quad.count:
                cx, cy = self.points[quad.indices].mean(axis=0)
                quad.cx, quad.cy = float(cx), float(cy)
            return

        sx = sy = 0.0
        count = 0
        for child in quad.children:
            self._accumulate(child)
            if child.count:
                count += child.count
                sx += child.cx * child.count
                sy += child.cy * child.count
        quad.count = count
        if count:
            quad.cx, quad.cy = sx / count, sy / count

    def leaves(self) -> list[Quad]:
        result: list[Quad] = []
        stack = [self.root]
        while stack:
            quad = stack.pop()
            if quad.children is None:
                if quad.indices:
                    result.append(quad)
            else:
                stack.extend(quad.children)
        return result

    def field_at(
        self,
        i: int,
        theta: float,
        distance_min2: float = 1.0,
        distance_max2: float = math.inf,
        jiggle: Callable[[], float] | None = None,
    ) -> tuple[float, float]:
        """
        Sum of ``(x_j - x_i) / d²`` over all other points, with distant cells
        replaced by their centre of mass.

        The caller multiplies the result by ``strength * alpha``.

        Args:
            i: Index of the point the field is evaluated for.
            theta: Opening angle; a cell is approximated when width / distance < theta.
            distance_min2: Squared distances below this are softened to sqrt(distance_min2 * d²).
            distance_max2: Squared distances at or beyond this contribute nothing.
            jiggle: Source of tiny offsets for coincident points.

        Returns:
            The (x, y) field components.
        """
        x, y = self.points[i]
        theta2 = theta * theta
        fx = fy = 0.0

        stack = [self.root]
        while stack:
            quad = stack.pop()
            if quad.count == 0:
                continue

            if quad.children is not None:
                dx = quad.cx - x
                dy = quad.cy - y
                l = dx * dx + dy * dy
                if theta2 > 0 and quad.width * quad.width / theta2 < l:
                    if l < distance_max2:
                        if l < distance_min2:
                            l = math.sqrt(distance_min2 * l)
                        fx += dx * quad.count / l
                        fy += dy * quad.count / l
                    continue
                stack.extend(quad.children)
                continue

            for j in quad.indices:
                if j == i:
                    continue
                dx = self.points[j, 0] - x
                dy = self.points[j, 1] - y
                if dx == 0 and dy == 0:
                    if jiggle is None:
                        continue
                    dx, dy = jiggle(), jiggle()
                l = dx * dx + dy * dy
                if l >= distance_max2:
                    continue
                if l < distance_min2:
                    l = math.sqrt(distance_min2 * l)
                fx += dx / l
                fy += dy / l

        return fx, fy
