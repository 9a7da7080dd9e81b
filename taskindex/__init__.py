"""Indexed in-memory task store with filtering, search and paginated sync."""

__version__ = "0.1.0"
