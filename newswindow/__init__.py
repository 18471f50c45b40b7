"""Keyword news search bucketed into time windows, with an offline cache."""

__version__ = "0.1.0"
