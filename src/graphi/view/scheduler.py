"""
Qt Frame Scheduler
Runs simulation frames, zoom animations and tooltip delays on the Qt event loop.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QElapsedTimer, QObject, QTimer

from graphi.layout.scheduler import FrameScheduler, TimerHandle

logger = logging.getLogger(__name__)


class QtTimerHandle(TimerHandle):
    def __init__(self, timer: QTimer, callback: Callable[[], None], owner: QtFrameScheduler) -> None:
        self._timer: Optional[QTimer] = timer
        self._callback = callback
        self._owner = owner
        timer.timeout.connect(self._fire)

    @property
    def active(self) -> bool:
        return self._timer is not None

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._release()

    def _fire(self) -> None:
        if self._timer is None:
            return
        self._release()
        self._callback()

    def _release(self) -> None:
        timer, self._timer = self._timer, None
        self._owner._forget(self)
        timer.deleteLater()


class QtFrameScheduler(FrameScheduler):
    """
    Single-shot QTimers owned by one QObject. Everything runs on the GUI
    thread, so callbacks never overlap.
    """

    def __init__(self, frame_interval_ms: float = 16.0, parent: Optional[QObject] = None) -> None:
        super().__init__(frame_interval_ms)
        self.owner = QObject(parent)
        self._clock = QElapsedTimer()
        self._clock.start()
        self._handles: set[QtTimerHandle] = set()

    def now(self) -> float:
        return float(self._clock.elapsed())

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self.owner)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer, callback, self)
        self._handles.add(handle)
        timer.start(max(0, int(round(delay_ms))))
        return handle

    @property
    def pending(self) -> int:
        return len(self._handles)

    def _forget(self, handle: QtTimerHandle) -> None:
        self._handles.discard(handle)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        logger.debug("All pending frame callbacks cancelled.")
