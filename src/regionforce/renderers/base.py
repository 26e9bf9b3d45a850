"""Base renderer protocol."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from regionforce.model import Entity
from regionforce.regions import RegionMap
from regionforce.session import Frame


class Renderer(Protocol):
    """Protocol that all renderers must implement."""

    def render(self, frame: Frame, entities: Mapping[str, Entity], region_map: RegionMap) -> str:
        """Render one frame of positions and routed paths to an output string."""
        ...
