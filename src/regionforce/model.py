"""Graph data model — entities, directed relationships and consolidated edges.

Raw relationships are directed records. Routing and layout work on
consolidated edges, where a pair of opposite relationships between the same
two entities is merged into one edge:

  - same status both ways  → one mutual edge
  - different statuses     → one split edge carrying both statuses
  - no reverse             → one one-way edge

Edges always store plain entity ids; live entity objects are only resolved
at the rendering boundary.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from regionforce.errors import GraphDataError

if TYPE_CHECKING:
    from regionforce.regions import RegionMap

logger = logging.getLogger(__name__)

DEFAULT_REGION_KEY = "Outside of Hogwarts"


@dataclass
class Point:
    """A 2D point in layout space."""

    x: float
    y: float

    def copy(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class Entity:
    """A graph node.

    Identity and categories are fixed at load time. ``position`` and
    ``pinned`` are mutated by the layout engine and drag controller;
    ``region_key`` is derived from ``categories`` by a RegionMap and only
    changes together with them (see ``recategorize``).
    """

    id: str
    display_name: str
    categories: frozenset[str] = field(default_factory=frozenset)
    image_ref: str | None = None
    region_key: str = DEFAULT_REGION_KEY
    position: Point = field(default_factory=lambda: Point(0.0, 0.0))
    pinned: Point | None = None

    @property
    def is_pinned(self) -> bool:
        return self.pinned is not None

    def recategorize(self, categories: Iterable[str], region_map: RegionMap) -> str:
        """Replace the category set and re-derive the region key. Returns the new key."""
        self.categories = frozenset(categories)
        return region_map.bind(self)


@dataclass(frozen=True)
class Relationship:
    """A raw directed relationship record."""

    source_id: str
    target_id: str
    status: str
    capital_weight: float = 0.0


@dataclass(frozen=True)
class Edge:
    """A consolidated edge between two entities.

    ``reverse_status`` is set when the target also points back at the source.
    ``is_mutual`` is True only when both directions carry the same status.
    """

    source_id: str
    target_id: str
    status: str
    reverse_status: str | None = None
    is_mutual: bool = False
    capital_weight: float = 0.0

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source_id, self.target_id, self.status)

    @property
    def is_split(self) -> bool:
        """Both directions exist but carry different statuses."""
        return self.reverse_status is not None and self.reverse_status != self.status

    @property
    def is_one_way(self) -> bool:
        return self.reverse_status is None

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id

    def other(self, node_id: str) -> str:
        """The endpoint opposite ``node_id``."""
        return self.target_id if self.source_id == node_id else self.source_id


# ─── Consolidation ────────────────────────────────────────────────────────────


def consolidate_relationships(
    relationships: Iterable[Relationship],
    entity_ids: Iterable[str],
) -> list[Edge]:
    """Merge directed relationships into routing edges.

    Dangling relationships (an endpoint outside ``entity_ids``) and
    self-relationships are dropped here, never at render time. Exact
    duplicates ``(source, target, status)`` collapse to the first record.

    For each unordered pair {A, B}:
      1. every status present in both A→B and B→A becomes one mutual edge;
      2. remaining statuses are paired in input order into split edges,
         oriented like the earlier of the two relationships;
      3. whatever is left becomes one-way edges.

    Output order follows the first appearance of each relationship.
    """
    known = set(entity_ids)

    # Directed multigraph keyed by status: one edge per (source, target, status).
    directed: nx.MultiDiGraph = nx.MultiDiGraph()
    order: dict[tuple[str, str, str], int] = {}

    for rel in relationships:
        if not rel.source_id or not rel.target_id:
            raise GraphDataError(f"relationship with empty endpoint: {rel!r}")
        if rel.source_id not in known or rel.target_id not in known:
            logger.warning("dropping dangling relationship %s -> %s", rel.source_id, rel.target_id)
            continue
        if rel.source_id == rel.target_id:
            logger.warning("dropping self relationship on %s", rel.source_id)
            continue
        key = (rel.source_id, rel.target_id, rel.status)
        if key in order:
            continue
        order[key] = len(order)
        directed.add_edge(rel.source_id, rel.target_id, key=rel.status, weight=rel.capital_weight)

    def statuses(src: str, tgt: str) -> list[str]:
        if not directed.has_edge(src, tgt):
            return []
        return sorted(directed[src][tgt], key=lambda s: order[(src, tgt, s)])

    def weight(src: str, tgt: str, status: str) -> float:
        return directed[src][tgt][status]["weight"]

    ranked: list[tuple[int, Edge]] = []
    seen_pairs: set[frozenset[str]] = set()

    for src, tgt, _status in sorted(order, key=order.__getitem__):
        pair = frozenset((src, tgt))
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)

        forward = statuses(src, tgt)
        backward = statuses(tgt, src)

        # 1. Mutual: same status both ways.
        shared = [s for s in forward if s in backward]
        for status in shared:
            ranked.append(
                (
                    order[(src, tgt, status)],
                    Edge(src, tgt, status, reverse_status=status, is_mutual=True, capital_weight=weight(src, tgt, status)),
                )
            )
        forward = [s for s in forward if s not in shared]
        backward = [s for s in backward if s not in shared]

        # 2. Split: pair leftovers in input order.
        for fwd, bwd in zip(forward, backward):
            fwd_rank = order[(src, tgt, fwd)]
            bwd_rank = order[(tgt, src, bwd)]
            if fwd_rank <= bwd_rank:
                edge = Edge(src, tgt, fwd, reverse_status=bwd, capital_weight=weight(src, tgt, fwd))
            else:
                edge = Edge(tgt, src, bwd, reverse_status=fwd, capital_weight=weight(tgt, src, bwd))
            ranked.append((min(fwd_rank, bwd_rank), edge))
        paired = min(len(forward), len(backward))

        # 3. One-way leftovers.
        for status in forward[paired:]:
            ranked.append((order[(src, tgt, status)], Edge(src, tgt, status, capital_weight=weight(src, tgt, status))))
        for status in backward[paired:]:
            ranked.append((order[(tgt, src, status)], Edge(tgt, src, status, capital_weight=weight(tgt, src, status))))

    ranked.sort(key=lambda item: item[0])
    return [edge for _, edge in ranked]


def validate_entities(entities: Iterable[Entity]) -> dict[str, Entity]:
    """Index entities by id, rejecting empty or duplicate ids."""
    by_id: dict[str, Entity] = {}
    for entity in entities:
        if not isinstance(entity.id, str) or not entity.id:
            raise GraphDataError(f"entity with invalid id: {entity.id!r}")
        if entity.id in by_id:
            raise GraphDataError(f"duplicate entity id: {entity.id}")
        by_id[entity.id] = entity
    return by_id


def build_graph(entities: Iterable[Entity], edges: Iterable[Edge]) -> nx.MultiGraph:
    """Undirected multigraph over the full entity set, one graph edge per Edge."""
    g: nx.MultiGraph = nx.MultiGraph()
    for entity in entities:
        g.add_node(entity.id)
    for edge in edges:
        if edge.source_id in g and edge.target_id in g:
            g.add_edge(edge.source_id, edge.target_id, data=edge)
    return g


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def split_camel_case(identifier: str) -> str:
    """``"HarryPotter"`` → ``"Harry Potter"``. Used when a record has no display name."""
    return _CAMEL_BOUNDARY.sub(" ", identifier).strip()
