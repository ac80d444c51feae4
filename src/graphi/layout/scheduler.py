"""
Frame Scheduling
================
The cooperative clock that simulation frames, zoom animations and tooltip
delays run on.

Why is this file needed?
------------------------
1. Determinism: The engine schedules exactly one frame at a time and checks a
   single running flag before scheduling the next, so start/stop/dispose are
   ordinary method calls rather than timer juggling.
2. Testability: ManualScheduler advances a virtual clock explicitly, which lets
   the layout and the interaction controllers run headless with exact timing.
   The Qt application uses the QTimer-backed scheduler from the view layer.

Note: This module should be pure Python and should NOT import PySide6.
"""
from __future__ import annotations

import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """A pending callback that may be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is still waiting to run."""


class FrameScheduler(ABC):
    """
    Single-threaded scheduler. Callbacks never overlap: each runs to
    completion before the next one starts.
    """

    def __init__(self, frame_interval_ms: float = 16.0) -> None:
        self.frame_interval_ms = frame_interval_ms

    @abstractmethod
    def now(self) -> float:
        """Current time in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay_ms`` milliseconds."""

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` at the next frame boundary."""
        return self.call_later(self.frame_interval_ms, callback)


class ScheduledCall(TimerHandle):
    __slots__ = ("due", "callback", "_state")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self._state = "pending"

    def cancel(self) -> None:
        if self._state == "pending":
            self._state = "cancelled"

    @property
    def active(self) -> bool:
        return self._state == "pending"

    def fire(self) -> None:
        self._state = "done"
        self.callback()


class ManualScheduler(FrameScheduler):
    """
    Scheduler with a virtual clock that only moves when told to.

    Used for headless layout runs and by the test-suite.
    """

    def __init__(self, frame_interval_ms: float = 16.0, start_ms: float = 0.0) -> None:
        super().__init__(frame_interval_ms)
        self._now = start_ms
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if call.active)

    def advance(self, ms: float) -> int:
        """
        Move the clock forward and run every callback that falls due.

        Callbacks scheduled while advancing also run if they fall inside the window.

        Args:
            ms: How far to move the clock.

        Returns:
            Number of callbacks that ran.
        """
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            if not call.active:
                continue
            self._now = due
            call.fire()
            fired += 1
        self._now = target
        return fired

    def run_frames(self, count: int) -> int:
        """Advance by ``count`` frame intervals."""
        return self.advance(count * self.frame_interval_ms)

    def run_until_idle(self, limit_ms: float = 600_000.0) -> int:
        """
        Run callbacks in due order until none are pending or ``limit_ms`` has passed.

        Returns:
            Number of callbacks that ran.
        """
        deadline = self._now + limit_ms
        fired = 0
        while self._queue:
            due, _, call = self._queue[0]
            if due > deadline:
                break
            heapq.heappop(self._queue)
            if not call.active:
                continue
            self._now = due
            call.fire()
            fired += 1
        if self._queue and self.pending:
            logger.debug(f"Scheduler still has {self.pending} pending callbacks after {limit_ms} ms.")
        return fired
