"""Bundled datasets, located through importlib.resources."""
