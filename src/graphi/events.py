from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventHook:
    """
    Minimal signal for the Qt-free layers (engine, controllers, binder).

    Mirrors the connect/disconnect/emit surface of a Qt ``Signal`` so the
    layout code reads the same as the widgets that consume it. Listeners are
    called synchronously in registration order.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._listeners: list[Callable[..., Any]] = []

    def connect(self, listener: Callable[..., Any]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def disconnect(self, listener: Callable[..., Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            logger.debug(f"Listener {listener!r} was not connected to '{self.name}'.")

    def disconnect_all(self) -> None:
        self._listeners.clear()

    def emit(self, *args: Any) -> None:
        # Copy so listeners may disconnect themselves while being called
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)
