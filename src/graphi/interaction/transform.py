from __future__ import annotations

from dataclasses import dataclass

Point = tuple[float, float]


@dataclass(frozen=True)
class ViewTransform:
    """
    Uniform scale ``k`` followed by translation ``(x, y)``.

    Maps data (layout) coordinates to screen (canvas) coordinates:
    ``screen = data * k + (x, y)``.
    """
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, point: Point) -> Point:
        return point[0] * self.k + self.x, point[1] * self.k + self.y

    def invert(self, point: Point) -> Point:
        return (point[0] - self.x) / self.k, (point[1] - self.y) / self.k

    def translate_by(self, dx: float, dy: float) -> ViewTransform:
        """Shift in screen pixels."""
        return ViewTransform(self.k, self.x + dx, self.y + dy)

    def scale_to(self, k: float, anchor: Point) -> ViewTransform:
        """
        Change the scale while keeping the data point under ``anchor`` (screen) fixed.
        """
        data_x, data_y = self.invert(anchor)
        return ViewTransform(k, anchor[0] - data_x * k, anchor[1] - data_y * k)

    def interpolate(self, other: ViewTransform, t: float) -> ViewTransform:
        return ViewTransform(
            self.k + (other.k - self.k) * t,
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
        )

    def as_tuple(self) -> tuple[float, float, float]:
        return self.k, self.x, self.y


IDENTITY = ViewTransform()
