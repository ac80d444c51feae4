from __future__ import annotations

import logging
from typing import Optional

from graphi.config import ZoomSettings
from graphi.events import EventHook
from graphi.interaction.transform import IDENTITY, Point, ViewTransform
from graphi.layout.scheduler import FrameScheduler, TimerHandle

logger = logging.getLogger(__name__)


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


class ZoomController:
    """
    Sole owner of the View Transform.

    Handles wheel zoom and canvas panning immediately, and animates the
    programmatic zoom in / zoom out / reset over a fixed duration on the
    scheduler's clock. Scale always stays inside the configured extent.
    """

    def __init__(
        self,
        settings: ZoomSettings,
        viewport: tuple[float, float],
        scheduler: FrameScheduler,
    ) -> None:
        self.settings = settings
        self.viewport = viewport
        self.scheduler = scheduler

        self._transform = IDENTITY
        self._pan_origin: Optional[Point] = None
        self._animation: Optional[TimerHandle] = None
        self._disposed = False

        # changed(transform)
        self.changed = EventHook("transform_changed")

    # ------------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------------

    @property
    def transform(self) -> ViewTransform:
        return self._transform

    @property
    def is_animating(self) -> bool:
        return self._animation is not None and self._animation.active

    @property
    def is_panning(self) -> bool:
        return self._pan_origin is not None

    @property
    def viewport_center(self) -> Point:
        return self.viewport[0] / 2, self.viewport[1] / 2

    def clamp_scale(self, k: float) -> float:
        low, high = self.settings.scale_extent
        return min(high, max(low, k))

    def set_transform(self, transform: ViewTransform) -> None:
        if self._disposed:
            return
        k = self.clamp_scale(transform.k)
        if k != transform.k:
            transform = ViewTransform(k, transform.x, transform.y)
        if transform == self._transform:
            return
        self._transform = transform
        self.changed.emit(transform)

    # ------------------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------------------

    def wheel(self, delta_y: float, anchor: Point) -> None:
        """
        Zoom around the pointer. Positive ``delta_y`` (scrolling down) zooms out.
        """
        if self._disposed:
            return
        self.cancel_animation()
        factor = 2 ** (-delta_y * self.settings.wheel_delta_factor)
        k = self.clamp_scale(self._transform.k * factor)
        self.set_transform(self._transform.scale_to(k, anchor))

    def pan_start(self, point: Point) -> None:
        if self._disposed:
            return
        self.cancel_animation()
        self._pan_origin = point

    def pan_move(self, point: Point) -> None:
        if self._pan_origin is None or self._disposed:
            return
        dx = point[0] - self._pan_origin[0]
        dy = point[1] - self._pan_origin[1]
        self._pan_origin = point
        self.set_transform(self._transform.translate_by(dx, dy))

    def pan_end(self) -> None:
        self._pan_origin = None

    # ------------------------------------------------------------------------------
    # Programmatic zoom
    # ------------------------------------------------------------------------------

    def zoom_in(self) -> None:
        self.scale_by(self.settings.step, self.settings.zoom_duration_ms)

    def zoom_out(self) -> None:
        self.scale_by(1.0 / self.settings.step, self.settings.zoom_duration_ms)

    def reset(self) -> None:
        self.animate_to(IDENTITY, self.settings.reset_duration_ms)

    def scale_by(self, factor: float, duration_ms: float, anchor: Optional[Point] = None) -> None:
        """Animate a relative zoom around ``anchor`` (the viewport centre by default)."""
        anchor = anchor or self.viewport_center
        k = self.clamp_scale(self._transform.k * factor)
        self.animate_to(self._transform.scale_to(k, anchor), duration_ms)

    def animate_to(self, target: ViewTransform, duration_ms: float) -> None:
        """
        Move toward ``target`` over ``duration_ms`` with cubic in-out easing.

        A new animation replaces a running one, starting from wherever the
        transform currently is.
        """
        if self._disposed:
            return
        self.cancel_animation()
        target = ViewTransform(self.clamp_scale(target.k), target.x, target.y)

        if duration_ms <= 0:
            self.set_transform(target)
            return

        start = self._transform
        started_at = self.scheduler.now()

        def step() -> None:
            self._animation = None
            if self._disposed:
                return
            t = min(1.0, (self.scheduler.now() - started_at) / duration_ms)
            if t >= 1.0:
                self.set_transform(target)
                return
            self.set_transform(start.interpolate(target, ease_cubic_in_out(t)))
            self._animation = self.scheduler.request_frame(step)

        self._animation = self.scheduler.request_frame(step)

    def cancel_animation(self) -> None:
        if self._animation is not None:
            self._animation.cancel()
            self._animation = None

    def dispose(self) -> None:
        self.cancel_animation()
        self._pan_origin = None
        self._disposed = True
        self.changed.disconnect_all()
