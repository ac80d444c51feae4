from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QPoint, Qt
from PySide6.QtWidgets import QLabel, QWidget

from graphi.interaction.tooltip import TooltipContent

logger = logging.getLogger(__name__)

TOOLTIP_STYLE = """
    QLabel {
        background-color: rgba(0, 0, 0, 204);
        color: white;
        padding: 8px;
        border-radius: 4px;
        font-size: 12px;
    }
"""


class TooltipOverlay(QLabel):
    """
    Floating paper description next to the pointer.

    A top-level tool window, so it has to be disposed explicitly when the
    graph view switches datasets or closes.
    """

    def __init__(self, host: QWidget, offset: tuple[float, float] = (10, -28)) -> None:
        super().__init__(None, Qt.WindowType.ToolTip | Qt.WindowType.FramelessWindowHint)
        self.host = host
        self.offset = offset
        self.setTextFormat(Qt.TextFormat.RichText)
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.setStyleSheet(TOOLTIP_STYLE)
        self.setMaximumWidth(320)
        self.setWordWrap(True)
        self.content: Optional[TooltipContent] = None
        self.hide()

    def show_content(self, content: TooltipContent, anchor: tuple[float, float]) -> None:
        """Show ``content`` near ``anchor`` given in host widget coordinates."""
        self.content = content
        self.setText(content.to_html())
        self.adjustSize()
        local = QPoint(int(anchor[0] + self.offset[0]), int(anchor[1] + self.offset[1]))
        self.move(self.host.mapToGlobal(local))
        self.show()
        self.raise_()

    def hide_content(self) -> None:
        self.content = None
        self.hide()

    def dispose(self) -> None:
        self.hide_content()
        self.deleteLater()
        logger.debug("Tooltip overlay disposed.")
