"""The Qt layer: widgets, the tooltip overlay and the QTimer scheduler."""
