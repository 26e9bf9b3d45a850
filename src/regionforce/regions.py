"""Region partition — static rectangular zones and entity-to-region assignment.

The canvas is split once into stacked role bands. Bands flagged
``split_by_house`` are further divided into house columns, so a house column
overlays every split band. A separate catch-all band below the container
holds entities with no recognised affiliation.

Region assignment is an ordered rule table: the first rule whose predicate
matches an entity's category set names its region. Precedence is data, not
nested branching.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from regionforce.model import DEFAULT_REGION_KEY, Entity, Point

# ─── Categories ───────────────────────────────────────────────────────────────

STAFF = "Hogwarts Staff"
STUDENT = "Student"
RESIDENT = "Non-Academic Residents"
OUTSIDER = DEFAULT_REGION_KEY

SLYTHERIN = "Slytherin"
RAVENCLAW = "Ravenclaw"
HUFFLEPUFF = "Hufflepuff"
GRYFFINDOR = "Gryffindor"

CONTAINER_KEY = "Hogwarts"


@dataclass(frozen=True)
class CategoryScheme:
    """The two filterable category dimensions."""

    roles: tuple[str, ...] = (STAFF, STUDENT, RESIDENT, OUTSIDER)
    houses: tuple[str, ...] = (SLYTHERIN, RAVENCLAW, HUFFLEPUFF, GRYFFINDOR)

    def roles_of(self, categories: Iterable[str]) -> frozenset[str]:
        return frozenset(c for c in categories if c in self.roles)

    def houses_of(self, categories: Iterable[str]) -> frozenset[str]:
        return frozenset(c for c in categories if c in self.houses)


# ─── Geometry ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle. Width/height may be zero or negative (degenerate)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def interior(self, padding: float) -> tuple[float, float, float, float] | None:
        """(min_x, max_x, min_y, max_y) after padding, or None when no usable area is left."""
        min_x, max_x = self.x + padding, self.x + self.width - padding
        min_y, max_y = self.y + padding, self.y + self.height - padding
        if min_x >= max_x or min_y >= max_y:
            return None
        return (min_x, max_x, min_y, max_y)

    def clamp(self, point: Point, padding: float = 0.0) -> Point:
        """Nearest point inside the padded interior; the centre if the interior is empty."""
        bounds = self.interior(padding)
        if bounds is None:
            return self.center
        min_x, max_x, min_y, max_y = bounds
        return Point(min(max(point.x, min_x), max_x), min(max(point.y, min_y), max_y))

    def contains(self, point: Point, padding: float = 0.0, tolerance: float = 1e-9) -> bool:
        bounds = self.interior(padding)
        if bounds is None:
            center = self.center
            return math.isclose(point.x, center.x, abs_tol=tolerance) and math.isclose(
                point.y, center.y, abs_tol=tolerance
            )
        min_x, max_x, min_y, max_y = bounds
        return (
            min_x - tolerance <= point.x <= max_x + tolerance
            and min_y - tolerance <= point.y <= max_y + tolerance
        )

    def union(self, other: Rect) -> Rect:
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)


@dataclass(frozen=True)
class Region:
    key: str
    rect: Rect


# ─── Layout Configuration ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Band:
    """One horizontal role band, top to bottom."""

    role: str
    height: float
    split_by_house: bool
    gap_after: float = 0.0


def _default_bands() -> tuple[Band, ...]:
    return (
        Band(STAFF, 120, split_by_house=False, gap_after=10),
        Band(STAFF, 250, split_by_house=True),
        Band(STUDENT, 450, split_by_house=True),
        Band(RESIDENT, 100, split_by_house=True, gap_after=10),
        Band(RESIDENT, 80, split_by_house=False),
    )


@dataclass(frozen=True)
class RegionLayout:
    """Static band/column configuration the region rectangles are computed from."""

    canvas_width: float = 1920
    canvas_height: float = 1080
    section_padding: float = 50
    column_gap: float = 5
    container_slack: float = 100
    outside_gap: float = 20
    outside_fraction: float = 0.25
    bands: tuple[Band, ...] = field(default_factory=_default_bands)
    # Left-to-right column order.
    house_columns: tuple[str, ...] = (SLYTHERIN, RAVENCLAW, HUFFLEPUFF, GRYFFINDOR)
    # Tie-break when an entity belongs to several houses: first listed wins.
    house_priority: tuple[str, ...] = (SLYTHERIN, RAVENCLAW, GRYFFINDOR, HUFFLEPUFF)
    # Students always sit in a house column; houseless students land here.
    fallback_house: str = GRYFFINDOR
    default_key: str = OUTSIDER


# ─── Rule Table ───────────────────────────────────────────────────────────────

Predicate = Callable[[frozenset[str], str | None], bool]


@dataclass(frozen=True)
class RegionRule:
    """``(predicate, key_template)``; the template is formatted with ``house=``."""

    predicate: Predicate
    key_template: str

    def key_for(self, house: str | None) -> str:
        return self.key_template.format(house=house)


def _has(category: str) -> Predicate:
    return lambda cats, house: category in cats


def _has_with_house(category: str) -> Predicate:
    return lambda cats, house: category in cats and house is not None


def default_rules(layout: RegionLayout) -> tuple[RegionRule, ...]:
    """Priority-ordered assignment rules for the default band layout."""
    return (
        RegionRule(_has(OUTSIDER), layout.default_key),
        RegionRule(_has_with_house(STAFF), STAFF + "+{house}"),
        RegionRule(_has(STAFF), STAFF),
        RegionRule(_has_with_house(STUDENT), STUDENT + "+{house}"),
        RegionRule(_has(STUDENT), f"{STUDENT}+{layout.fallback_house}"),
        RegionRule(_has_with_house(RESIDENT), RESIDENT + "+{house}"),
        RegionRule(_has(RESIDENT), RESIDENT),
    )


# ─── Region Map ───────────────────────────────────────────────────────────────


class RegionMap:
    """Immutable key → rectangle table plus the rule table that assigns keys.

    Build with ``RegionMap.from_layout``; rectangles are computed once and
    never re-derived per tick.
    """

    def __init__(
        self,
        regions: dict[str, Rect],
        rules: tuple[RegionRule, ...],
        default_key: str = OUTSIDER,
        house_priority: tuple[str, ...] = (SLYTHERIN, RAVENCLAW, GRYFFINDOR, HUFFLEPUFF),
        scheme: CategoryScheme | None = None,
        role_bands: dict[str, Rect] | None = None,
        house_columns: dict[str, Rect] | None = None,
    ) -> None:
        if default_key not in regions:
            raise ValueError(f"default region {default_key!r} has no rectangle")
        self._regions = dict(regions)
        self.rules = rules
        self.default_key = default_key
        self.house_priority = house_priority
        self.scheme = scheme or CategoryScheme()
        self._role_bands = dict(role_bands or {})
        self._house_columns = dict(house_columns or {})

    @classmethod
    def from_layout(cls, layout: RegionLayout | None = None) -> RegionMap:
        """Compute every region rectangle from the stacked-band configuration."""
        layout = layout or RegionLayout()

        container = Rect(
            0,
            0,
            layout.canvas_width,
            sum(b.height for b in layout.bands) + layout.container_slack,
        )
        pad = layout.section_padding
        inner_width = container.width - 2 * pad
        n_cols = len(layout.house_columns)
        column_width = (inner_width - (n_cols - 1) * layout.column_gap) / n_cols if n_cols else inner_width

        regions: dict[str, Rect] = {CONTAINER_KEY: container}
        role_bands: dict[str, Rect] = {}
        house_columns: dict[str, Rect] = {}

        y = container.y + pad
        for band in layout.bands:
            band_rect = Rect(container.x + pad, y, inner_width, band.height)
            if band.split_by_house:
                for i, house in enumerate(layout.house_columns):
                    x = container.x + pad + i * (column_width + layout.column_gap)
                    rect = Rect(x, y, column_width, band.height)
                    regions[f"{band.role}+{house}"] = rect
                    house_columns[house] = house_columns[house].union(rect) if house in house_columns else rect
            else:
                regions[band.role] = band_rect
            role_bands[band.role] = role_bands[band.role].union(band_rect) if band.role in role_bands else band_rect
            y += band.height + band.gap_after

        regions[layout.default_key] = Rect(
            0,
            container.height + layout.outside_gap,
            layout.canvas_width,
            layout.canvas_height * layout.outside_fraction - layout.outside_gap,
        )
        role_bands[layout.default_key] = regions[layout.default_key]

        scheme = CategoryScheme(
            roles=tuple(dict.fromkeys([b.role for b in layout.bands] + [layout.default_key])),
            houses=layout.house_columns,
        )
        return cls(
            regions,
            default_rules(layout),
            default_key=layout.default_key,
            house_priority=layout.house_priority,
            scheme=scheme,
            role_bands=role_bands,
            house_columns=house_columns,
        )

    # ── Assignment ──

    def house_of(self, categories: Iterable[str]) -> str | None:
        """The entity's house; with several, the first in ``house_priority``."""
        cats = set(categories)
        for house in self.house_priority:
            if house in cats:
                return house
        return None

    def region_key_of(self, categories: Iterable[str]) -> str:
        """Pure, total mapping from a category set to a region key."""
        cats = frozenset(categories)
        house = self.house_of(cats)
        for rule in self.rules:
            if rule.predicate(cats, house):
                return rule.key_for(house)
        return self.default_key

    def bind(self, entity: Entity) -> str:
        """Derive and store ``entity.region_key`` from its categories."""
        entity.region_key = self.region_key_of(entity.categories)
        return entity.region_key

    # ── Lookup ──

    def rect_of(self, key: str | None) -> Rect:
        """Rectangle for ``key``; unknown keys get the default region."""
        if key is None:
            return self._regions[self.default_key]
        return self._regions.get(key, self._regions[self.default_key])

    def __contains__(self, key: object) -> bool:
        return key in self._regions

    def __iter__(self) -> Iterator[Region]:
        return self.regions()

    def regions(self) -> Iterator[Region]:
        for key, rect in self._regions.items():
            yield Region(key, rect)

    def role_band_rect(self, role: str) -> Rect | None:
        """Union of every band belonging to ``role`` (overlay box)."""
        return self._role_bands.get(role)

    def house_column_rect(self, house: str) -> Rect | None:
        """Union of a house's column across all split bands (overlay box)."""
        return self._house_columns.get(house)

    @property
    def container(self) -> Rect | None:
        return self._regions.get(CONTAINER_KEY)
