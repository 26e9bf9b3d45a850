"""Tests for engine.py — the region-constrained force simulation.

Covers:
  - containment after every tick, including degenerate and unknown regions
  - pinned nodes exempt from forces and containment
  - link rest length by region, repulsion and collision
  - alpha decay, reheat and the INITIALIZING → RUNNING ⇄ SETTLING lifecycle
  - determinism under a fixed seed
"""

from __future__ import annotations

import math

import pytest

from regionforce.engine import EngineState, LayoutConfig, LayoutEngine
from regionforce.model import Edge, Entity, Point
from regionforce.regions import Rect, RegionMap, RegionRule

# ─── Helpers ──────────────────────────────────────────────────────────────────

REGION_MAP = RegionMap.from_layout()


def node(nid: str, region: str, x: float, y: float) -> Entity:
    return Entity(id=nid, display_name=nid, region_key=region, position=Point(x, y))


def make_engine(nodes: list[Entity], edges: list[Edge] = (), **overrides) -> LayoutEngine:
    engine = LayoutEngine(REGION_MAP, LayoutConfig(**overrides))
    engine.set_working_set(nodes, edges)
    return engine


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def sample_graph() -> tuple[list[Entity], list[Edge]]:
    """A handful of nodes spread over several regions, some starting outside them."""
    nodes = [
        node("A", "Student+Gryffindor", 1600, 600),
        node("B", "Student+Gryffindor", 1610, 600),
        node("C", "Student+Slytherin", 0, 0),
        node("D", "Hogwarts Staff", 900, 100),
        node("E", "Outside of Hogwarts", 900, 1300),
        node("F", "Non-Academic Residents+Ravenclaw", 5000, 5000),
        node("G", "Student+Slytherin", 200, 600),
    ]
    edges = [
        Edge("A", "B", "Friend", reverse_status="Friend", is_mutual=True),
        Edge("A", "C", "Rival"),
        Edge("C", "D", "Enemy"),
        Edge("D", "E", "Family"),
        Edge("E", "F", "Friend"),
        Edge("G", "C", "Friend"),
    ]
    return nodes, edges


# ─── Containment ──────────────────────────────────────────────────────────────


class TestContainment:
    def test_every_node_inside_its_region_after_every_tick(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        for _ in range(120):
            positions = engine.advance()
            for n in nodes:
                rect = REGION_MAP.rect_of(n.region_key)
                assert rect.contains(positions[n.id], padding=10, tolerance=1e-6), (
                    f"{n.id} at {positions[n.id]} escaped {n.region_key}"
                )

    def test_start_outside_is_clamped_on_first_tick(self):
        engine = make_engine([node("F", "Non-Academic Residents+Ravenclaw", 5000, 5000)])
        pos = engine.advance()["F"]
        rect = REGION_MAP.rect_of("Non-Academic Residents+Ravenclaw")
        assert pos == Point(rect.right - 10, rect.bottom - 10)

    def test_unknown_region_uses_default(self):
        engine = make_engine([node("X", "Durmstrang", -100, -100)])
        pos = engine.advance()["X"]
        assert REGION_MAP.rect_of("Outside of Hogwarts").contains(pos, padding=10)

    def test_degenerate_region_pins_to_center(self):
        """A region with no usable interior holds its nodes at the centre."""
        regions = {"tiny": Rect(100, 100, 10, 10), "default": Rect(0, 0, 1000, 1000)}
        rmap = RegionMap(regions, (RegionRule(lambda cats, house: "t" in cats, "tiny"),), default_key="default")
        engine = LayoutEngine(rmap)
        a = Entity(id="a", display_name="a", region_key="tiny", position=Point(500, 500))
        b = Entity(id="b", display_name="b", region_key="default", position=Point(400, 400))
        engine.set_working_set([a, b], [Edge("a", "b", "Friend")])
        for _ in range(5):
            positions = engine.advance()
            assert positions["a"] == Point(105, 105)
        assert engine.velocity_of("a") == Point(0.0, 0.0)

    def test_outward_velocity_zeroed_at_boundary(self):
        """A long cross-region spring drags A into its column wall; only A's outward push is cancelled."""
        a = node("a", "Hogwarts Staff+Slytherin", 480, 300)
        b = node("b", "Hogwarts Staff+Gryffindor", 1500, 300)
        engine = make_engine([a, b], [Edge("a", "b", "Friend")])
        positions = engine.advance()

        wall = REGION_MAP.rect_of("Hogwarts Staff+Slytherin").right - 10
        assert positions["a"].x == pytest.approx(wall)
        assert engine.velocity_of("a").x == 0.0
        assert engine.velocity_of("b").x < 0


# ─── Pinning ──────────────────────────────────────────────────────────────────


class TestPinned:
    def test_pinned_node_stays_put_even_outside_region(self):
        nodes, edges = sample_graph()
        nodes[0].pinned = Point(5000, 5000)
        engine = make_engine(nodes, edges)
        for _ in range(10):
            assert engine.advance()["A"] == Point(5000, 5000)
        assert engine.velocity_of("A") == Point(0.0, 0.0)

    def test_pinned_node_not_moved_by_collision(self):
        a = node("a", "Student+Slytherin", 200, 600)
        b = node("b", "Student+Slytherin", 250, 600)
        a.pinned = Point(200, 600)
        engine = make_engine([a, b], charge_strength=0.0)
        positions = engine.advance()
        assert positions["a"] == Point(200, 600)
        assert positions["b"].x == pytest.approx(340)

    def test_pin_still_applied_while_settling(self):
        engine = make_engine([node("a", "Student+Slytherin", 200, 600)], alpha_decay=0.9)
        for _ in range(10):
            engine.advance()
        assert engine.state is EngineState.SETTLING
        engine.node("a").pinned = Point(300, 700)
        assert engine.advance()["a"] == Point(300, 700)


# ─── Forces ───────────────────────────────────────────────────────────────────


class TestLinkForce:
    def test_same_region_pair_pulled_toward_short_rest_length(self):
        a = node("a", "Student+Slytherin", 200, 600)
        b = node("b", "Student+Slytherin", 380, 600)
        engine = make_engine([a, b], [Edge("a", "b", "Friend")], charge_strength=0.0, collision_radius=0.0)
        positions = engine.advance()
        assert distance(positions["a"], positions["b"]) < 180

    def test_cross_region_pair_pushed_toward_long_rest_length(self):
        a = node("a", "Student+Slytherin", 400, 600)
        b = node("b", "Student+Ravenclaw", 580, 600)
        engine = make_engine([a, b], [Edge("a", "b", "Friend")], charge_strength=0.0, collision_radius=0.0)
        positions = engine.advance()
        assert distance(positions["a"], positions["b"]) > 180

    def test_edges_to_nodes_outside_working_set_ignored(self):
        engine = make_engine([node("a", "Student+Slytherin", 200, 600)], [Edge("a", "zz", "Friend")])
        assert engine.edges == []
        engine.advance()


class TestCharge:
    def test_unlinked_nodes_repel(self):
        a = node("a", "Student+Slytherin", 200, 600)
        b = node("b", "Student+Slytherin", 400, 600)
        engine = make_engine([a, b], collision_radius=0.0)
        positions = engine.advance()
        assert distance(positions["a"], positions["b"]) > 200


class TestCollision:
    def test_overlapping_nodes_pushed_to_separation(self):
        a = node("a", "Student+Slytherin", 200, 600)
        b = node("b", "Student+Slytherin", 250, 600)
        engine = make_engine([a, b], charge_strength=0.0)
        positions = engine.advance()
        assert distance(positions["a"], positions["b"]) == pytest.approx(140)
        assert positions["a"].x == pytest.approx(155)

    def test_applies_while_settling(self):
        """A node pinned onto a settled neighbour pushes it away on the next tick."""
        a = node("a", "Student+Slytherin", 100, 500)
        b = node("b", "Student+Slytherin", 275, 655)
        engine = make_engine([a, b], alpha_decay=0.9)
        for _ in range(10):
            engine.advance()
        assert engine.state is EngineState.SETTLING

        b_pos = engine.node("b").position.copy()
        a.pinned = Point(b_pos.x - 20, b_pos.y)
        positions = engine.advance()
        assert engine.state is EngineState.SETTLING
        assert positions["a"] == a.pinned
        assert distance(positions["a"], positions["b"]) == pytest.approx(140)

    def test_applies_with_zero_dt(self):
        a = node("a", "Student+Slytherin", 200, 600)
        b = node("b", "Student+Slytherin", 250, 600)
        engine = make_engine([a, b], charge_strength=0.0)
        positions = engine.advance(dt=0.0)
        assert distance(positions["a"], positions["b"]) == pytest.approx(140)

    def test_coincident_nodes_separate_deterministically(self):
        def run() -> dict[str, Point]:
            a = node("a", "Student+Slytherin", 200, 600)
            b = node("b", "Student+Slytherin", 200, 600)
            return make_engine([a, b]).advance()

        first, second = run(), run()
        assert first == second
        assert distance(first["a"], first["b"]) == pytest.approx(140, abs=1e-3)


# ─── Lifecycle ────────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_initial_state_and_alpha(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        assert engine.state is EngineState.INITIALIZING
        assert engine.alpha == 1.0

    def test_first_tick_runs_and_decays(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        engine.advance()
        assert engine.state is EngineState.RUNNING
        assert engine.alpha == pytest.approx(0.99)
        assert engine.tick_count == 1

    def test_alpha_decreases_monotonically(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        previous = engine.alpha
        for _ in range(50):
            engine.advance()
            assert engine.alpha < previous
            previous = engine.alpha

    def test_settles_below_alpha_min(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges, alpha_decay=0.5)
        for _ in range(20):
            engine.advance()
        assert engine.state is EngineState.SETTLING
        assert engine.alpha < engine.config.alpha_min

    def test_settled_engine_does_not_move_nodes(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges, alpha_decay=0.5, collision_radius=0.0)
        for _ in range(20):
            engine.advance()
        before = engine.positions()
        assert engine.advance() == before

    def test_reheat_resumes(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges, alpha_decay=0.5)
        for _ in range(20):
            engine.advance()
        engine.reheat()
        assert engine.state is EngineState.RUNNING
        assert engine.alpha == 0.5

    def test_alpha_target_wakes_settled_engine(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges, alpha_decay=0.5)
        for _ in range(20):
            engine.advance()
        engine.alpha_target = 0.3
        assert engine.state is EngineState.RUNNING
        for _ in range(50):
            engine.advance()
        assert engine.alpha == pytest.approx(0.3, abs=1e-6)
        assert engine.state is EngineState.RUNNING

    def test_new_working_set_reheats_after_start(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        engine.advance()
        engine.set_working_set(nodes[:3], edges)
        assert engine.alpha == 0.5
        assert set(engine.nodes) == {"A", "B", "C"}

    def test_zero_dt_applies_only_constraints(self):
        engine = make_engine([node("F", "Non-Academic Residents+Ravenclaw", 5000, 5000)])
        engine.advance(dt=0.0)
        assert engine.alpha == 1.0
        rect = REGION_MAP.rect_of("Non-Academic Residents+Ravenclaw")
        assert rect.contains(engine.node("F").position, padding=10)

    def test_clear_empties_working_set(self):
        nodes, edges = sample_graph()
        engine = make_engine(nodes, edges)
        engine.clear()
        assert engine.nodes == {}
        assert engine.advance() == {}


class TestPositions:
    def test_positions_are_copies(self):
        engine = make_engine([node("a", "Student+Slytherin", 200, 600)])
        snapshot = engine.positions()
        snapshot["a"].x = -1
        assert engine.node("a").position.x == 200

    def test_same_seed_same_layout(self):
        def run() -> dict[str, Point]:
            nodes, edges = sample_graph()
            engine = make_engine(nodes, edges)
            for _ in range(30):
                engine.advance()
            return engine.positions()

        assert run() == run()
