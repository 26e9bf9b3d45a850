"""Static circular view — visible nodes on one ring, ordered by house.

With a focus node, the focus sits at the centre and everything else rings
around it. No simulation is involved; positions are a pure function of the
node order.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from regionforce.model import Entity, Point
from regionforce.regions import CategoryScheme

CIRCLE_SIZE: float = 1400
CIRCLE_MARGIN: float = 200


def house_order(nodes: Sequence[Entity], scheme: CategoryScheme) -> list[Entity]:
    """Stable sort by the scheme's house order; houseless nodes last."""
    rank = {house: i for i, house in enumerate(scheme.houses)}

    def key(node: Entity) -> int:
        ranks = [rank[c] for c in node.categories if c in rank]
        return min(ranks) if ranks else len(rank)

    return sorted(nodes, key=key)


def circular_positions(
    nodes: Sequence[Entity],
    scheme: CategoryScheme,
    focus_id: str | None = None,
    width: float = CIRCLE_SIZE,
    height: float = CIRCLE_SIZE,
    margin: float = CIRCLE_MARGIN,
) -> dict[str, Point]:
    """Ring layout starting at 12 o'clock, clockwise in house order."""
    cx, cy = width / 2, height / 2
    radius = min(width, height) / 2 - margin

    ordered = house_order(nodes, scheme)
    positions: dict[str, Point] = {}
    if focus_id is not None and any(n.id == focus_id for n in ordered):
        positions[focus_id] = Point(cx, cy)
        ordered = [n for n in ordered if n.id != focus_id]

    count = len(ordered)
    for i, node in enumerate(ordered):
        angle = (i / count) * 2 * math.pi - math.pi / 2
        positions[node.id] = Point(cx + radius * math.cos(angle), cy + radius * math.sin(angle))
    return positions
