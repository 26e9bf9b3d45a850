"""Edge routing — per-tick path geometry for every visible edge.

For an edge u → v:
  - The base line runs centre to centre, shortened at each end by the node's
    rendered radius so it stops at the glyph.
  - Parallel edges (same ordered pair) fan out perpendicular to the base line
    by ``(index - median_index) * spread_unit``, symmetric about zero.
  - If a separate edge runs v → u, a fixed extra offset keeps the two
    directions apart (each is offset to its own left, so they never overlap).
  - Offsets below the straight threshold give a straight segment; otherwise
    one quadratic curve through the displaced midpoint.

Indicators: one-way → arrow at the target; mutual same-status → arrows at
both ends; split status → two half-segments meeting at the midpoint, each
styled by its own direction's status.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Flag, auto

from regionforce.model import Edge, Point
from regionforce.styles import style_key

logger = logging.getLogger(__name__)


class Indicator(Flag):
    NONE = 0
    END_ARROW = auto()
    START_ARROW = auto()
    SPLIT = auto()


@dataclass
class RouterConfig:
    spread_unit: float = 25.0
    bidir_offset: float = 15.0
    straight_threshold: float = 5.0
    # Node box half-size + margin at the source; box + label at the target.
    source_radius: float = 25.0
    target_radius: float = 45.0


# ─── Geometry ─────────────────────────────────────────────────────────────────


def _mid(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def _fmt(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class PathSegment:
    """A straight segment, or a quadratic curve when ``control`` is set."""

    start: Point
    end: Point
    control: Point | None = None

    @property
    def is_curved(self) -> bool:
        return self.control is not None

    def point_at(self, t: float) -> Point:
        if self.control is None:
            return Point(self.start.x + (self.end.x - self.start.x) * t, self.start.y + (self.end.y - self.start.y) * t)
        u = 1 - t
        c = self.control
        return Point(
            u * u * self.start.x + 2 * u * t * c.x + t * t * self.end.x,
            u * u * self.start.y + 2 * u * t * c.y + t * t * self.end.y,
        )

    def split(self) -> tuple[PathSegment, PathSegment]:
        """Halves at t = 0.5 (de Casteljau for curves)."""
        if self.control is None:
            mid = _mid(self.start, self.end)
            return PathSegment(self.start, mid), PathSegment(mid.copy(), self.end)
        q0 = _mid(self.start, self.control)
        q1 = _mid(self.control, self.end)
        mid = _mid(q0, q1)
        return PathSegment(self.start, mid, q0), PathSegment(mid.copy(), self.end, q1)

    def svg_d(self) -> str:
        head = f"M {_fmt(self.start.x)},{_fmt(self.start.y)}"
        if self.control is None:
            return f"{head} L {_fmt(self.end.x)},{_fmt(self.end.y)}"
        c = self.control
        return f"{head} Q {_fmt(c.x)},{_fmt(c.y)} {_fmt(self.end.x)},{_fmt(self.end.y)}"


@dataclass(frozen=True)
class PathDescriptor:
    """Routed geometry for one edge, ready for a renderer.

    ``segments`` has one entry, or two halves for a split edge; ``style_keys``
    is parallel to ``segments``.
    """

    edge: Edge
    segments: tuple[PathSegment, ...]
    indicators: Indicator
    style_keys: tuple[str, ...]
    offset: float = 0.0

    @property
    def is_curved(self) -> bool:
        return any(seg.is_curved for seg in self.segments)

    @property
    def midpoint(self) -> Point:
        if len(self.segments) == 2:
            return self.segments[0].end.copy()
        return self.segments[0].point_at(0.5)

    def svg_d(self) -> str:
        return " ".join(seg.svg_d() for seg in self.segments)


# ─── Routing ──────────────────────────────────────────────────────────────────


def parallel_offset(index: int, count: int, spread_unit: float) -> float:
    """Perpendicular offset of edge ``index`` in a family of ``count`` parallel edges."""
    if count <= 1:
        return 0.0
    return (index - (count - 1) / 2) * spread_unit


def route_edge(
    edge: Edge,
    source_pos: Point,
    target_pos: Point,
    parallel_index: int = 0,
    parallel_count: int = 1,
    has_reverse: bool = False,
    config: RouterConfig | None = None,
) -> PathDescriptor:
    """Route a single edge between two positions."""
    cfg = config or RouterConfig()

    angle = math.atan2(target_pos.y - source_pos.y, target_pos.x - source_pos.x)
    cos_a, sin_a = math.cos(angle), math.sin(angle)

    offset = parallel_offset(parallel_index, parallel_count, cfg.spread_unit)
    if has_reverse:
        offset += cfg.bidir_offset

    start = Point(source_pos.x + cos_a * cfg.source_radius, source_pos.y + sin_a * cfg.source_radius)
    end = Point(target_pos.x - cos_a * cfg.target_radius, target_pos.y - sin_a * cfg.target_radius)

    if abs(offset) < cfg.straight_threshold:
        segment = PathSegment(start, end)
    else:
        mid = _mid(start, end)
        # Perpendicular = angle + 90°.
        control = Point(mid.x - sin_a * offset, mid.y + cos_a * offset)
        segment = PathSegment(start, end, control)

    if edge.is_split:
        return PathDescriptor(
            edge=edge,
            segments=segment.split(),
            indicators=Indicator.SPLIT,
            style_keys=(style_key(edge.status), style_key(edge.reverse_status)),
            offset=offset,
        )
    if edge.is_mutual or edge.reverse_status is not None:
        indicators = Indicator.END_ARROW | Indicator.START_ARROW
    else:
        indicators = Indicator.END_ARROW
    return PathDescriptor(
        edge=edge,
        segments=(segment,),
        indicators=indicators,
        style_keys=(style_key(edge.status),),
        offset=offset,
    )


class EdgeRouter:
    """Routes a whole visible edge set against the current positions."""

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config or RouterConfig()

    def route(self, edges: Iterable[Edge], positions: Mapping[str, Point]) -> list[PathDescriptor]:
        edges = list(edges)

        # Parallel families by ordered (source, target) pair, in input order.
        families: dict[tuple[str, str], list[Edge]] = {}
        for edge in edges:
            families.setdefault((edge.source_id, edge.target_id), []).append(edge)
        index_in_family: dict[tuple[str, str, str], int] = {}
        for family in families.values():
            for i, edge in enumerate(family):
                index_in_family.setdefault(edge.key, i)

        paths: list[PathDescriptor] = []
        for edge in edges:
            source_pos = positions.get(edge.source_id)
            target_pos = positions.get(edge.target_id)
            if source_pos is None or target_pos is None:
                logger.debug("no position for edge %s -> %s; skipped", edge.source_id, edge.target_id)
                continue
            pair = (edge.source_id, edge.target_id)
            paths.append(
                route_edge(
                    edge,
                    source_pos,
                    target_pos,
                    parallel_index=index_in_family[edge.key],
                    parallel_count=len(families[pair]),
                    has_reverse=(edge.target_id, edge.source_id) in families,
                    config=self.config,
                )
            )
        return paths
