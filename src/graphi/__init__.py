"""Citation graph explorer with a force-directed layout."""

__version__ = "0.1.0"
