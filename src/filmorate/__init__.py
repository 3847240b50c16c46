"""Filmorate – social film-rating service."""

__version__ = "0.1.0"
