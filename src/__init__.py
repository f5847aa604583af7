# src/__init__.py — v1
"""flowcapture — staged browser capture with heuristic extraction."""

from flowcapture.version import __version__

__all__ = ["__version__"]
