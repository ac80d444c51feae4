from __future__ import annotations

CATEGORY_COLORS: dict[str, str] = {
    "Deep Learning": "#ff6b6b",
    "NLP": "#4ecdc4",
    "Computer Vision": "#45b7d1",
    "Machine Learning": "#96ceb4",
}
DEFAULT_COLOR = "#feca57"

EDGE_COLOR = "#999999"
EDGE_WIDTH = 1.5
EDGE_OPACITY = 0.6
NODE_STROKE_COLOR = "#ffffff"
NODE_STROKE_WIDTH = 2.0
NODE_HOVER_STROKE_COLOR = "#333333"
LABEL_COLOR = "#333333"
LABEL_FONT_SIZE = 10
BACKGROUND_COLOR = "#f8f9fa"

# Arrowhead triangle, in layout units
ARROW_LENGTH = 10.0
ARROW_HALF_WIDTH = 5.0


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, DEFAULT_COLOR)
