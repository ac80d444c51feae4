"""
Hover Tooltip Scheduling
========================
Decides *when* a node's tooltip is shown or hidden; the view decides how.

Timing rules:
    - A tooltip appears only after the pointer has stayed on the same node for
      the show delay; shorter hovers show nothing.
    - After the pointer leaves, the tooltip disappears once the hide delay has
      passed. Entering a node again before that cancels the pending hide, so
      brushing past the edge of a node does not make the tooltip flicker.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from graphi.config import TooltipSettings
from graphi.events import EventHook
from graphi.interaction.transform import Point
from graphi.layout.scheduler import FrameScheduler, TimerHandle
from graphi.model.dataset import Paper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TooltipContent:
    """Read-only description of a paper; the title is never truncated here."""
    node_id: str
    title: str
    authors: str
    year: str
    citations: str
    category: str

    @classmethod
    def from_paper(cls, paper: Paper) -> TooltipContent:
        return cls(
            node_id=paper.id,
            title=paper.title,
            authors=paper.authors,
            year=str(paper.year),
            citations=f"{paper.citations:,}",
            category=paper.category,
        )

    def lines(self) -> list[str]:
        return [
            self.title,
            f"Authors: {self.authors}",
            f"Year: {self.year}",
            f"Citations: {self.citations}",
            f"Category: {self.category}",
        ]

    def to_html(self) -> str:
        e = html.escape
        return (
            f"<strong>{e(self.title)}</strong><br/>"
            f"<strong>Authors:</strong> {e(self.authors)}<br/>"
            f"<strong>Year:</strong> {e(self.year)}<br/>"
            f"<strong>Citations:</strong> {e(self.citations)}<br/>"
            f"<strong>Category:</strong> {e(self.category)}"
        )


class TooltipController:
    def __init__(
        self,
        settings: TooltipSettings,
        scheduler: FrameScheduler,
        lookup: Callable[[str], Optional[Paper]],
    ) -> None:
        self.settings = settings
        self.scheduler = scheduler
        self.lookup = lookup

        self._hovered: Optional[str] = None
        self._visible: Optional[str] = None
        self._anchor: Point = (0.0, 0.0)
        self._show_timer: Optional[TimerHandle] = None
        self._hide_timer: Optional[TimerHandle] = None
        self._disposed = False

        # shown(content, anchor), hidden(), hover_changed(node_id | None)
        self.shown = EventHook("tooltip_shown")
        self.hidden = EventHook("tooltip_hidden")
        self.hover_changed = EventHook("hover_changed")

    @property
    def hovered(self) -> Optional[str]:
        return self._hovered

    @property
    def visible(self) -> Optional[str]:
        """Id of the node whose tooltip is on screen."""
        return self._visible

    @property
    def anchor(self) -> Point:
        return self._anchor

    def enter(self, node_id: str, anchor: Point) -> None:
        if self._disposed:
            return
        if self.lookup(node_id) is None:
            logger.debug(f"Discarding hover on unknown node '{node_id}'.")
            return

        self._cancel(self._hide_timer)
        self._hide_timer = None
        self._anchor = anchor

        if self._hovered != node_id:
            self._hovered = node_id
            self.hover_changed.emit(node_id)

        if self._visible == node_id:
            return

        self._cancel(self._show_timer)
        self._show_timer = self.scheduler.call_later(self.settings.show_delay_ms, lambda: self._show(node_id))

    def move(self, anchor: Point) -> None:
        if self._hovered is not None:
            self._anchor = anchor

    def leave(self, node_id: str) -> None:
        if self._disposed or self._hovered != node_id:
            return

        self._hovered = None
        self.hover_changed.emit(None)

        self._cancel(self._show_timer)
        self._show_timer = None

        if self._visible is not None and (self._hide_timer is None or not self._hide_timer.active):
            self._hide_timer = self.scheduler.call_later(self.settings.hide_delay_ms, self._hide)

    def _show(self, node_id: str) -> None:
        self._show_timer = None
        if self._disposed or self._hovered != node_id:
            return
        paper = self.lookup(node_id)
        if paper is None:
            logger.debug(f"Node '{node_id}' vanished before its tooltip was shown.")
            return
        self._visible = node_id
        self.shown.emit(TooltipContent.from_paper(paper), self._anchor)

    def _hide(self) -> None:
        self._hide_timer = None
        if self._visible is None:
            return
        self._visible = None
        self.hidden.emit()

    @staticmethod
    def _cancel(timer: Optional[TimerHandle]) -> None:
        if timer is not None:
            timer.cancel()

    def dispose(self) -> None:
        """Cancel timers and hide immediately."""
        if self._disposed:
            return
        self._cancel(self._show_timer)
        self._cancel(self._hide_timer)
        self._show_timer = self._hide_timer = None
        if self._visible is not None:
            self._visible = None
            self.hidden.emit()
        self._hovered = None
        self._disposed = True
        self.shown.disconnect_all()
        self.hidden.disconnect_all()
        self.hover_changed.disconnect_all()
