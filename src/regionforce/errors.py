"""Exceptions raised for malformed graph data."""

from __future__ import annotations


class GraphDataError(ValueError):
    """Supplied entity or relationship records fail basic id shape checks."""
