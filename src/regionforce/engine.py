"""Layout engine — region-constrained iterative force simulation.

One call to ``LayoutEngine.advance`` is one tick:

  1. Edge attraction   — springs toward a rest length (short inside a region,
                         long across regions), split between endpoints by degree.
  2. Node repulsion    — every pair pushed apart, ``strength * alpha / d²``
                         along the separating vector.
  3. Integration       — velocity decay, then position += velocity, scaled by
                         ``dt / frame_time``.
  4. Pins & collision  — pinned nodes snap to their pin; pairs closer than two
                         collision radii are pushed apart directly. Both run
                         every tick, even while settling or with ``dt == 0``.
  5. Containment       — every unpinned node is clamped into its padded
                         region; outward velocity is zeroed on contact.
  6. Alpha decay       — alpha moves geometrically toward ``alpha_target``.

The engine never blocks and owns no timer: the host calls ``advance`` once per
frame and stops calling it to cancel.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from regionforce.model import Edge, Entity, Point
from regionforce.regions import RegionMap

logger = logging.getLogger(__name__)


class EngineState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    SETTLING = "settling"


@dataclass
class LayoutConfig:
    """Force and integration parameters."""

    link_distance_same_region: float = 120.0
    link_distance_cross_region: float = 250.0
    link_strength: float = 0.1
    charge_strength: float = -200.0
    charge_distance_min: float = 1.0
    collision_radius: float = 70.0
    collision_strength: float = 1.0
    velocity_decay: float = 0.4
    alpha_decay: float = 0.01
    alpha_min: float = 0.001
    initial_alpha: float = 1.0
    reheat_alpha: float = 0.5
    drag_alpha_target: float = 0.3
    region_padding: float = 10.0
    frame_time: float = 1.0 / 60.0
    seed: int = 0


class LayoutEngine:
    """Owns the live working set (nodes by id, edges) and steps it one tick at a time.

    Nodes are the caller's ``Entity`` objects; the engine mutates their
    ``position`` in place and keeps velocities privately.
    """

    def __init__(self, region_map: RegionMap, config: LayoutConfig | None = None) -> None:
        self.region_map = region_map
        self.config = config or LayoutConfig()
        self._nodes: dict[str, Entity] = {}
        self._edges: list[Edge] = []
        self._degree: dict[str, int] = {}
        self._velocity: dict[str, list[float]] = {}
        self._alpha = self.config.initial_alpha
        self._alpha_target = 0.0
        self._state = EngineState.INITIALIZING
        self._rng = random.Random(self.config.seed)
        self.tick_count = 0

    # ── State ──

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @alpha_target.setter
    def alpha_target(self, value: float) -> None:
        self._alpha_target = max(0.0, value)
        if self._alpha_target >= self.config.alpha_min and self._state is EngineState.SETTLING:
            self._set_state(EngineState.RUNNING)

    @property
    def nodes(self) -> dict[str, Entity]:
        return self._nodes

    @property
    def edges(self) -> list[Edge]:
        return self._edges

    def node(self, node_id: str) -> Entity | None:
        return self._nodes.get(node_id)

    def velocity_of(self, node_id: str) -> Point:
        vx, vy = self._velocity.get(node_id, (0.0, 0.0))
        return Point(vx, vy)

    def positions(self) -> dict[str, Point]:
        """Snapshot of every live node's position."""
        return {nid: node.position.copy() for nid, node in self._nodes.items()}

    def _set_state(self, state: EngineState) -> None:
        if state is not self._state:
            logger.debug("engine %s -> %s (alpha=%.4f)", self._state.value, state.value, self._alpha)
            self._state = state

    # ── Working set ──

    def set_working_set(self, nodes: Iterable[Entity], edges: Iterable[Edge], alpha: float | None = None) -> None:
        """Replace the live nodes/edges and re-energize.

        Nodes that stay keep their velocity; edges with an endpoint outside
        the new node set are ignored.
        """
        self._nodes = {node.id: node for node in nodes}
        self._velocity = {nid: self._velocity.get(nid, [0.0, 0.0]) for nid in self._nodes}
        self._edges = [e for e in edges if e.source_id in self._nodes and e.target_id in self._nodes]

        self._degree = dict.fromkeys(self._nodes, 0)
        for edge in self._edges:
            self._degree[edge.source_id] += 1
            self._degree[edge.target_id] += 1

        if alpha is None and self._state is EngineState.INITIALIZING:
            return
        self.reheat(alpha)

    def reheat(self, alpha: float | None = None) -> None:
        """Reset alpha to the reheat level (or ``alpha``)."""
        self._alpha = self.config.reheat_alpha if alpha is None else alpha
        if self._state is EngineState.SETTLING:
            self._set_state(EngineState.RUNNING)

    def clear(self) -> None:
        self._nodes = {}
        self._edges = []
        self._degree = {}
        self._velocity = {}

    # ── Tick ──

    def advance(self, dt: float | None = None) -> dict[str, Point]:
        """Run one tick and return the resulting positions.

        ``dt`` is the elapsed frame time in seconds; ``None`` means exactly one
        nominal frame.
        """
        cfg = self.config
        step = 1.0 if dt is None else max(dt, 0.0) / cfg.frame_time

        if self._state is EngineState.INITIALIZING:
            self._set_state(EngineState.RUNNING)

        if self._state is EngineState.RUNNING and step > 0:
            alpha = self._alpha
            self._apply_links(alpha)
            self._apply_charge(alpha)
            self._integrate(step)
        # Hard constraints hold in every state and for any dt.
        self._apply_pins()
        self._apply_collisions()
        self._contain()

        if self._state is EngineState.RUNNING:
            # Geometric decay toward the target: (1 - decay) per nominal frame.
            factor = 1.0 - (1.0 - cfg.alpha_decay) ** step
            self._alpha += (self._alpha_target - self._alpha) * factor
            if self._alpha < cfg.alpha_min and self._alpha_target < cfg.alpha_min:
                self._set_state(EngineState.SETTLING)

        self.tick_count += 1
        return self.positions()

    def _jiggle(self) -> float:
        return (self._rng.random() - 0.5) * 1e-6

    def _apply_links(self, alpha: float) -> None:
        cfg = self.config
        for edge in self._edges:
            source = self._nodes[edge.source_id]
            target = self._nodes[edge.target_id]
            vs = self._velocity[edge.source_id]
            vt = self._velocity[edge.target_id]

            dx = target.position.x + vt[0] - source.position.x - vs[0]
            dy = target.position.y + vt[1] - source.position.y - vs[1]
            if dx == 0 and dy == 0:
                dx, dy = self._jiggle(), self._jiggle()
            dist = math.hypot(dx, dy)

            if source.region_key == target.region_key:
                rest = cfg.link_distance_same_region
            else:
                rest = cfg.link_distance_cross_region
            k = (dist - rest) / dist * alpha * cfg.link_strength
            dx *= k
            dy *= k

            # The lower-degree endpoint moves more.
            ds = self._degree[edge.source_id]
            dtg = self._degree[edge.target_id]
            bias = ds / (ds + dtg)
            vt[0] -= dx * bias
            vt[1] -= dy * bias
            vs[0] += dx * (1 - bias)
            vs[1] += dy * (1 - bias)

    def _apply_charge(self, alpha: float) -> None:
        cfg = self.config
        min_d2 = cfg.charge_distance_min * cfg.charge_distance_min
        ids = list(self._nodes)
        for i, a_id in enumerate(ids):
            a = self._nodes[a_id].position
            va = self._velocity[a_id]
            for b_id in ids[i + 1 :]:
                b = self._nodes[b_id].position
                vb = self._velocity[b_id]
                dx = b.x - a.x
                dy = b.y - a.y
                if dx == 0 and dy == 0:
                    dx, dy = self._jiggle(), self._jiggle()
                d2 = max(dx * dx + dy * dy, min_d2)
                w = cfg.charge_strength * alpha / d2
                va[0] += dx * w
                va[1] += dy * w
                vb[0] -= dx * w
                vb[1] -= dy * w

    def _integrate(self, step: float) -> None:
        keep = (1.0 - self.config.velocity_decay) ** step
        for nid, node in self._nodes.items():
            v = self._velocity[nid]
            if node.pinned is not None:
                continue
            v[0] *= keep
            v[1] *= keep
            node.position.x += v[0] * step
            node.position.y += v[1] * step

    def _apply_collisions(self) -> None:
        cfg = self.config
        min_sep = 2 * cfg.collision_radius
        nodes = list(self._nodes.values())
        for i, a in enumerate(nodes):
            for b in nodes[i + 1 :]:
                if a.pinned is not None and b.pinned is not None:
                    continue
                dx = b.position.x - a.position.x
                dy = b.position.y - a.position.y
                dist = math.hypot(dx, dy)
                if dist >= min_sep:
                    continue
                if dist == 0:
                    dx, dy = self._jiggle(), self._jiggle()
                    dist = math.hypot(dx, dy)
                push = (min_sep - dist) * cfg.collision_strength
                ux, uy = dx / dist, dy / dist
                if a.pinned is not None:
                    share_a, share_b = 0.0, 1.0
                elif b.pinned is not None:
                    share_a, share_b = 1.0, 0.0
                else:
                    share_a = share_b = 0.5
                a.position.x -= ux * push * share_a
                a.position.y -= uy * push * share_a
                b.position.x += ux * push * share_b
                b.position.y += uy * push * share_b

    def _apply_pins(self) -> None:
        for nid, node in self._nodes.items():
            if node.pinned is not None:
                node.position = node.pinned.copy()
                self._velocity[nid][0] = 0.0
                self._velocity[nid][1] = 0.0

    def _contain(self) -> None:
        padding = self.config.region_padding
        for nid, node in self._nodes.items():
            if node.pinned is not None:
                continue
            rect = self.region_map.rect_of(node.region_key)
            pos = node.position
            clamped = rect.clamp(pos, padding)
            v = self._velocity[nid]
            # Zero only the velocity component still pointing outward.
            if (pos.x < clamped.x and v[0] < 0) or (pos.x > clamped.x and v[0] > 0):
                v[0] = 0.0
            if (pos.y < clamped.y and v[1] < 0) or (pos.y > clamped.y and v[1] > 0):
                v[1] = 0.0
            if rect.interior(padding) is None:
                v[0] = v[1] = 0.0
            node.position = clamped
