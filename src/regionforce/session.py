"""Graph session — the explicit context object tying the core together.

A session owns one engine, projector, router and drag controller over one
full graph. The host drives it:

    session = GraphSession.create(entities, relationships)
    frame = session.tick()                      # once per display frame
    session.project(state.toggled_house("Slytherin"))
    session.drag_start("HarryPotter"); session.drag_move(...); session.drag_end(...)
    session.dispose()

Everything runs on the caller's thread between ticks; nothing here blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from regionforce.drag import DragController, DragMode
from regionforce.engine import EngineState, LayoutConfig, LayoutEngine
from regionforce.errors import GraphDataError
from regionforce.model import (
    Edge,
    Entity,
    Point,
    Relationship,
    build_graph,
    consolidate_relationships,
    validate_entities,
)
from regionforce.projection import FilterState, Projection, SubgraphProjector
from regionforce.regions import RegionMap
from regionforce.routing import EdgeRouter, PathDescriptor, RouterConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One tick's output for the renderer."""

    positions: dict[str, Point]
    paths: list[PathDescriptor]
    alpha: float
    state: EngineState


class GraphSession:
    def __init__(
        self,
        entities: Sequence[Entity],
        edges: Sequence[Edge],
        region_map: RegionMap,
        config: LayoutConfig | None = None,
        router_config: RouterConfig | None = None,
        drag_mode: DragMode = DragMode.KEEP_PINNED,
    ) -> None:
        self._by_id = validate_entities(entities)
        self.entities = list(entities)
        self.edges = list(edges)
        self.region_map = region_map
        self.graph = build_graph(self.entities, self.edges)
        self.engine = LayoutEngine(region_map, config)
        self.projector = SubgraphProjector(self.engine, region_map)
        self.router = EdgeRouter(router_config)
        self.drag = DragController(self.engine, region_map, drag_mode)
        self.filter_state = FilterState.all_enabled(region_map.scheme)
        self._disposed = False

    @classmethod
    def create(
        cls,
        entities: Iterable[Entity],
        links: Iterable[Relationship | Edge],
        region_map: RegionMap | None = None,
        config: LayoutConfig | None = None,
        router_config: RouterConfig | None = None,
        drag_mode: DragMode = DragMode.KEEP_PINNED,
    ) -> GraphSession:
        """Bind regions, consolidate relationships and run the initial (all-enabled) projection.

        ``links`` may be raw relationships or already-consolidated edges.
        """
        region_map = region_map or RegionMap.from_layout()
        entities = list(entities)
        by_id = validate_entities(entities)
        for entity in entities:
            region_map.bind(entity)

        links = list(links)
        relationships = [link for link in links if isinstance(link, Relationship)]
        edges = [link for link in links if isinstance(link, Edge)]
        if relationships:
            edges += consolidate_relationships(relationships, by_id)
        dangling = [e for e in edges if e.source_id not in by_id or e.target_id not in by_id]
        if dangling:
            logger.warning("dropping %d edges with unknown endpoints", len(dangling))
            edges = [e for e in edges if e not in dangling]
        unique: dict[tuple[str, str, str], Edge] = {}
        for edge in edges:
            unique.setdefault(edge.key, edge)
        if len(unique) < len(edges):
            logger.warning("dropping %d duplicate edges", len(edges) - len(unique))
            edges = list(unique.values())

        session = cls(entities, edges, region_map, config, router_config, drag_mode)
        session.project(session.filter_state)
        logger.info("session created: %d entities, %d edges", len(entities), len(edges))
        return session

    def _check(self) -> None:
        if self._disposed:
            raise RuntimeError("session has been disposed")

    def entity(self, entity_id: str) -> Entity:
        try:
            return self._by_id[entity_id]
        except KeyError:
            raise GraphDataError(f"unknown entity id: {entity_id!r}") from None

    # ── Lifecycle ──

    def tick(self, dt: float | None = None) -> Frame:
        """Advance the layout one frame and route every visible edge."""
        self._check()
        positions = self.engine.advance(dt)
        paths = self.router.route(self.engine.edges, positions)
        return Frame(positions=positions, paths=paths, alpha=self.engine.alpha, state=self.engine.state)

    def run(self, ticks: int, dt: float | None = None) -> Frame:
        """Advance ``ticks`` frames (at least one) and return the last."""
        frame = self.tick(dt)
        for _ in range(ticks - 1):
            frame = self.tick(dt)
        return frame

    def project(self, state: FilterState) -> Projection:
        self._check()
        self.filter_state = state
        return self.projector.apply(self.entities, self.edges, state, self.graph)

    def dispose(self) -> None:
        self.engine.clear()
        self._disposed = True

    # ── Interaction ──

    def drag_start(self, node_id: str) -> None:
        self._check()
        self.drag.start(node_id)

    def drag_move(self, node_id: str, pointer: Point) -> Point:
        self._check()
        return self.drag.move(node_id, pointer, self.entity(node_id))

    def drag_end(self, node_id: str) -> None:
        """End a drag; valid even when a filter change hid the node mid-drag."""
        self._check()
        self.drag.end(node_id, self.entity(node_id))

    def recategorize(self, entity_id: str, categories: Iterable[str]) -> str:
        """Change an entity's categories; re-derives its region and reprojects."""
        self._check()
        entity = self.entity(entity_id)
        key = entity.recategorize(categories, self.region_map)
        rect = self.region_map.rect_of(key)
        padding = self.engine.config.region_padding
        if entity.pinned is None and not rect.contains(entity.position, padding):
            entity.position = rect.clamp(entity.position, padding)
        self.project(self.filter_state)
        return key
