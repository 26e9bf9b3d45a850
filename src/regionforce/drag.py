"""Drag/pin controller — takes a node out of the free variables while it is moved."""

from __future__ import annotations

import logging
from enum import Enum

from regionforce.engine import LayoutEngine
from regionforce.errors import GraphDataError
from regionforce.model import Entity, Point
from regionforce.regions import RegionMap

logger = logging.getLogger(__name__)


class DragMode(Enum):
    KEEP_PINNED = "keep_pinned"  # node stays where it was dropped
    RELEASE = "release"  # node rejoins the simulation on drop


class DragController:
    """Handles start/move/end drag events between ticks."""

    def __init__(self, engine: LayoutEngine, region_map: RegionMap, mode: DragMode = DragMode.KEEP_PINNED) -> None:
        self.engine = engine
        self.region_map = region_map
        self.mode = mode
        self._active: set[str] = set()

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._active)

    def _live(self, node_id: str, entity: Entity | None = None) -> Entity:
        node = self.engine.node(node_id) or entity
        if node is None:
            raise GraphDataError(f"node {node_id!r} is not in the live working set")
        return node

    def start(self, node_id: str) -> None:
        node = self._live(node_id)
        node.pinned = node.position.copy()
        self._active.add(node_id)
        self.engine.alpha_target = self.engine.config.drag_alpha_target
        self.engine.reheat()

    def move(self, node_id: str, pointer: Point, entity: Entity | None = None) -> Point:
        """Pin the node at the pointer, clamped to its padded region. Returns the pin.

        ``entity`` stands in for a dragged node that a projection has since
        removed from the working set.
        """
        node = self._live(node_id, entity)
        rect = self.region_map.rect_of(node.region_key)
        pinned = rect.clamp(pointer, self.engine.config.region_padding)
        node.pinned = pinned
        node.position = pinned.copy()
        return pinned

    def end(self, node_id: str, entity: Entity | None = None) -> None:
        """Finish a drag. An active drag always ends, even if its node was filtered out meanwhile."""
        node = self.engine.node(node_id) or entity
        if node is None and node_id not in self._active:
            raise GraphDataError(f"node {node_id!r} is not in the live working set")
        self._active.discard(node_id)
        if node is not None and self.mode is DragMode.RELEASE:
            node.pinned = None
        if not self._active:
            self.engine.alpha_target = 0.0
        self.engine.reheat()
        logger.debug("drag end %s (%s)", node_id, self.mode.value)

    def unpin(self, node_id: str) -> None:
        """Release a node left pinned by an earlier drag."""
        node = self._live(node_id)
        if node_id in self._active:
            return
        node.pinned = None
        self.engine.reheat()
