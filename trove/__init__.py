"""Trove: an extensible event-record store."""

__version__ = "0.1.0"
