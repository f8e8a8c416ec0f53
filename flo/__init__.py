"""Flo: authenticated, cached request layer for the Flo business suite."""

__version__ = "0.4.0"
