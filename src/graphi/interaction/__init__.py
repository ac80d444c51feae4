"""Pan/zoom, node dragging and hover tooltips, independent of any toolkit."""
