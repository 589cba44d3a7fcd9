"""Shelfquest reading app components."""

__version__ = "0.1.0"
