"""Glance - desktop context capture."""

__version__ = "0.1.0"
