"""Subgraph projection — filter state → visible nodes/edges, reconciled with the engine.

Rules, in precedence order:

  1. Focus present in the graph: the focus node plus every node sharing an
     edge with it; only edges incident to the focus. Role/house filters are
     ignored while a focus is active.
  2. Otherwise, per dimension (role, house): a node with any category in that
     dimension needs at least one of them checked. Nodes with no category in
     a dimension are unaffected by it. Edges need both endpoints visible.
  3. A focus id missing from the graph is treated as no focus.

Inactive nodes stay visible but their incident edges are hidden; the focus
node can never be inactive.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType

import networkx as nx

from regionforce.engine import LayoutEngine
from regionforce.model import Edge, Entity, Point, build_graph
from regionforce.regions import CategoryScheme, Rect, RegionMap

logger = logging.getLogger(__name__)

SEED_PADDING: float = 10.0
SEED_JITTER: float = 15.0


# ─── Filter State ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FilterState:
    """Viewer filter selection. Owned by the UI layer; read-only to the core."""

    role_flags: frozenset[str] = field(default_factory=frozenset)
    house_flags: frozenset[str] = field(default_factory=frozenset)
    focus_id: str | None = None
    inactive_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def all_enabled(cls, scheme: CategoryScheme) -> FilterState:
        """Every role and house checked, no focus (the reset state)."""
        return cls(role_flags=frozenset(scheme.roles), house_flags=frozenset(scheme.houses))

    def with_focus(self, focus_id: str | None) -> FilterState:
        return replace(self, focus_id=focus_id or None)

    def toggled_role(self, role: str) -> FilterState:
        return replace(self, role_flags=self.role_flags ^ {role})

    def toggled_house(self, house: str) -> FilterState:
        return replace(self, house_flags=self.house_flags ^ {house})

    def toggled_inactive(self, node_id: str) -> FilterState:
        """Flip a node's inactive mark. The focus node cannot be deactivated."""
        if node_id == self.focus_id:
            return self
        return replace(self, inactive_ids=self.inactive_ids ^ {node_id})


@dataclass(frozen=True)
class Projection:
    """Visible node ids (in full-graph order) and visible edges."""

    node_ids: tuple[str, ...]
    edges: tuple[Edge, ...]
    focus_id: str | None = None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.node_ids


# ─── Projection ───────────────────────────────────────────────────────────────


def passes_category_filters(entity: Entity, state: FilterState, scheme: CategoryScheme) -> bool:
    """No-focus visibility rule for a single node."""
    roles = scheme.roles_of(entity.categories)
    if roles and not roles & state.role_flags:
        return False
    houses = scheme.houses_of(entity.categories)
    if houses and not houses & state.house_flags:
        return False
    return True


def project(
    full_nodes: Sequence[Entity],
    full_edges: Sequence[Edge],
    state: FilterState,
    scheme: CategoryScheme,
    graph: nx.MultiGraph | None = None,
) -> Projection:
    """Compute the visible subgraph. Pure: same inputs, same result.

    ``graph`` is the undirected full graph used for neighbour lookup; it is
    built on the fly when not supplied.
    """
    ids = [n.id for n in full_nodes]
    focus = state.focus_id if state.focus_id in set(ids) else None

    if focus is not None:
        if graph is None:
            graph = build_graph(full_nodes, full_edges)
        neighbours = set(graph.neighbors(focus)) - {focus}
        visible = {focus} | neighbours
        edges = [e for e in full_edges if e.touches(focus) and e.source_id != e.target_id and e.other(focus) in visible]
    else:
        if state.focus_id is not None:
            logger.debug("focus %r not in graph; using category filters", state.focus_id)
        visible = {n.id for n in full_nodes if passes_category_filters(n, state, scheme)}
        edges = [e for e in full_edges if e.source_id in visible and e.target_id in visible]

    inactive = state.inactive_ids - {focus}
    if inactive:
        edges = [e for e in edges if e.source_id not in inactive and e.target_id not in inactive]

    return Projection(
        node_ids=tuple(nid for nid in ids if nid in visible),
        edges=tuple(edges),
        focus_id=focus,
    )


# ─── Seeding ──────────────────────────────────────────────────────────────────


def _jitter(node_id: str, scale: float) -> tuple[float, float]:
    """Deterministic offset in [-scale/2, scale/2] derived from the node id."""
    h = hashlib.md5(node_id.encode()).hexdigest()
    x_val = int(h[:8], 16) / 0xFFFFFFFF
    y_val = int(h[8:16], 16) / 0xFFFFFFFF
    return ((x_val - 0.5) * scale, (y_val - 0.5) * scale)


def seed_position(
    rect: Rect,
    index: int,
    total: int,
    node_id: str,
    padding: float = SEED_PADDING,
    jitter: float = SEED_JITTER,
) -> Point:
    """Grid slot ``index`` of ``total`` inside ``rect``, with a small per-node jitter.

    The grid has ``ceil(sqrt(total))`` columns; slots fill row by row.
    """
    total = max(total, 1)
    cols = math.ceil(math.sqrt(total))
    rows = math.ceil(total / cols)
    row, col = divmod(index, cols)

    cell_w = (rect.width - padding * 2) / cols
    cell_h = (rect.height - padding * 2) / rows
    jx, jy = _jitter(node_id, jitter)
    return Point(
        rect.x + padding + col * cell_w + cell_w / 2 + jx,
        rect.y + padding + row * cell_h + cell_h / 2 + jy,
    )


# ─── Reconciliation ───────────────────────────────────────────────────────────


class SubgraphProjector:
    """Applies projections to a live LayoutEngine without restarting layout.

    Nodes that stay visible keep position and pin. Nodes that leave are
    parked; if they come back and still fit their region they resume where
    they were. Brand-new nodes are seeded on their region's grid after the
    region's current occupants. Parked positions are forgotten once the node
    is absent from the full entity set.
    """

    def __init__(self, engine: LayoutEngine, region_map: RegionMap, scheme: CategoryScheme | None = None) -> None:
        self.engine = engine
        self.region_map = region_map
        self.scheme = scheme or region_map.scheme
        self._parked: dict[str, Point] = {}
        self.last: Projection | None = None

    @property
    def parked(self) -> Mapping[str, Point]:
        return MappingProxyType(self._parked)

    def apply(
        self,
        full_nodes: Sequence[Entity],
        full_edges: Sequence[Edge],
        state: FilterState,
        graph: nx.MultiGraph | None = None,
    ) -> Projection:
        projection = project(full_nodes, full_edges, state, self.scheme, graph)
        by_id = {n.id: n for n in full_nodes}
        live = self.engine.nodes
        visible = set(projection.node_ids)

        # Park leavers; forget parked nodes that no longer exist at all.
        for nid, node in live.items():
            if nid not in visible:
                self._parked[nid] = node.position.copy()
        for nid in [nid for nid in self._parked if nid not in by_id]:
            del self._parked[nid]

        occupancy: dict[str, int] = {}
        region_totals: dict[str, int] = {}
        for nid in projection.node_ids:
            key = by_id[nid].region_key
            region_totals[key] = region_totals.get(key, 0) + 1
            if nid in live:
                occupancy[key] = occupancy.get(key, 0) + 1

        padding = self.engine.config.region_padding
        seeded = 0
        for nid in projection.node_ids:
            if nid in live:
                continue
            node = by_id[nid]
            rect = self.region_map.rect_of(node.region_key)
            parked = self._parked.pop(nid, None)
            if parked is not None and (node.is_pinned or rect.contains(parked, padding)):
                node.position = parked
                continue
            slot = occupancy.get(node.region_key, 0)
            occupancy[node.region_key] = slot + 1
            node.position = seed_position(rect, slot, region_totals[node.region_key], nid)
            seeded += 1

        self.engine.set_working_set((by_id[nid] for nid in projection.node_ids), projection.edges)
        self.last = projection
        logger.debug(
            "projection: %d nodes (%d seeded), %d edges, focus=%s",
            len(projection.node_ids),
            seeded,
            len(projection.edges),
            projection.focus_id,
        )
        return projection
