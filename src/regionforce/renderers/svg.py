"""SVG renderer — renders a Frame to an SVG string.

This is the rendering boundary: edges carry plain ids, and live entities are
resolved here only to draw names.
"""

from __future__ import annotations

from collections.abc import Mapping

from regionforce.model import Entity, Point
from regionforce.regions import CONTAINER_KEY, Rect, RegionMap
from regionforce.routing import Indicator, PathDescriptor
from regionforce.session import Frame
from regionforce.styles import STATUS_COLORS, group_color, mutual_label, status_color

# ─── Constants ──────────────────────────────────────────────────────────────

NODE_SIZE = 40
NODE_TEXT_HEIGHT = 30
FONT_SIZE = 11
FONT_FAMILY = "sans-serif"
PADDING = 20  # canvas margin around the region layout

_EDGE_STROKE = 'fill="none" stroke-width="2" opacity="0.6"'
_NODE_FILL_STROKE = 'fill="white" stroke="#1f2937" stroke-width="2"'


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _font(size: int = FONT_SIZE) -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{size}"'


def _marker_id(key: str, start: bool = False) -> str:
    slug = key.replace(" ", "-")
    return f"arrow-start-{slug}" if start else f"arrow-{slug}"


def _num(v: float) -> str:
    return f"{v:.1f}".rstrip("0").rstrip(".")


# ─── Definitions ────────────────────────────────────────────────────────────


def _render_markers() -> str:
    parts = ["<defs>"]
    for key in STATUS_COLORS:
        color = status_color(key)
        parts.append(
            f'  <marker id="{_marker_id(key)}" viewBox="0 -5 10 10" refX="15" refY="0" '
            f'markerWidth="6" markerHeight="6" orient="auto">'
            f'<path d="M0,-5L10,0L0,5" fill="{color}"/></marker>'
        )
        parts.append(
            f'  <marker id="{_marker_id(key, start=True)}" viewBox="0 -5 10 10" refX="-5" refY="0" '
            f'markerWidth="6" markerHeight="6" orient="auto">'
            f'<path d="M10,-5L0,0L10,5" fill="{color}"/></marker>'
        )
    parts.append("</defs>")
    return "\n".join(parts)


# ─── Region Overlays ────────────────────────────────────────────────────────


def _box(rect: Rect, color: str, opacity: float = 0.15) -> str:
    return (
        f'<rect x="{_num(rect.x)}" y="{_num(rect.y)}" width="{_num(rect.width)}" height="{_num(rect.height)}" '
        f'rx="10" fill="{color}" fill-opacity="{opacity}" stroke="{color}" stroke-width="3"/>'
    )


def _render_regions(region_map: RegionMap) -> str:
    parts: list[str] = []
    container = region_map.container
    if container is not None:
        parts.append(_box(container, "#6b7280", 0.05))
        parts.append(
            f'<text x="{_num(container.x + 20)}" y="{_num(container.y + 30)}" {_font(20)} '
            f'font-weight="bold" fill="#374151">{_escape(CONTAINER_KEY)}</text>'
        )

    scheme = region_map.scheme
    for role in scheme.roles:
        rect = region_map.role_band_rect(role)
        if rect is None:
            continue
        color = group_color(role)
        parts.append(_box(rect, color))
        parts.append(
            f'<text x="{_num(rect.x + 20)}" y="{_num(rect.y + 25)}" {_font(16)} '
            f'font-weight="bold" fill="{color}">{_escape(role)}</text>'
        )
    for house in scheme.houses:
        rect = region_map.house_column_rect(house)
        if rect is None:
            continue
        color = group_color(house)
        parts.append(_box(rect, color))
        parts.append(
            f'<text x="{_num(rect.x + rect.width / 2)}" y="{_num(rect.y - 10)}" {_font(16)} '
            f'font-weight="bold" fill="{color}" text-anchor="middle">{_escape(house)}</text>'
        )
    return "\n".join(parts)


# ─── Edge Rendering ─────────────────────────────────────────────────────────


def _render_edge(path: PathDescriptor) -> str:
    edge = path.edge
    parts: list[str] = []

    if Indicator.SPLIT in path.indicators:
        for segment, key in zip(path.segments, path.style_keys):
            parts.append(f'<path d="{segment.svg_d()}" stroke="{status_color(key)}" {_EDGE_STROKE}/>')
        label = f"{edge.status} / {edge.reverse_status}"
    else:
        key = path.style_keys[0]
        markers = ""
        if Indicator.END_ARROW in path.indicators:
            markers += f' marker-end="url(#{_marker_id(key)})"'
        if Indicator.START_ARROW in path.indicators:
            markers += f' marker-start="url(#{_marker_id(key, start=True)})"'
        parts.append(f'<path d="{path.svg_d()}" stroke="{status_color(key)}" {_EDGE_STROKE}{markers}/>')
        label = mutual_label(edge.status) if edge.is_mutual else edge.status

    mid = path.midpoint
    parts.append(
        f'<text x="{_num(mid.x)}" y="{_num(mid.y + 4)}" text-anchor="middle" {_font()} '
        f'fill="#374151">{_escape(label)}</text>'
    )
    return "\n".join(parts)


# ─── Node Rendering ─────────────────────────────────────────────────────────


def _render_node(entity: Entity | None, node_id: str, pos: Point) -> str:
    half = NODE_SIZE / 2
    name = entity.display_name if entity is not None else node_id
    parts = [
        f'<g class="node" transform="translate({_num(pos.x)},{_num(pos.y)})">',
        f'<rect x="{-half}" y="{-half}" width="{NODE_SIZE}" height="{NODE_SIZE}" rx="2" {_NODE_FILL_STROKE}/>',
    ]
    if entity is not None and entity.image_ref:
        parts.append(
            f'<image href="{_escape(entity.image_ref)}" x="{-half + 2}" y="{-half + 2}" '
            f'width="{NODE_SIZE - 4}" height="{NODE_SIZE - 4}"/>'
        )
    parts.append(
        f'<text y="{half + 15}" text-anchor="middle" {_font()} font-weight="500">{_escape(name)}</text>'
    )
    parts.append("</g>")
    return "\n".join(parts)


# ─── Public Renderer ────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer — consumes a Frame, produces an SVG string."""

    def __init__(self, draw_regions: bool = True) -> None:
        self.draw_regions = draw_regions

    def render(self, frame: Frame, entities: Mapping[str, Entity], region_map: RegionMap) -> str:
        if not frame.positions:
            return ""

        extent = region_map.rect_of(region_map.default_key)
        for region in region_map.regions():
            extent = extent.union(region.rect)
        max_x = max([extent.right] + [p.x + NODE_SIZE for p in frame.positions.values()])
        max_y = max([extent.bottom] + [p.y + NODE_SIZE + NODE_TEXT_HEIGHT for p in frame.positions.values()])
        svg_w = int(max_x + PADDING * 2)
        svg_h = int(max_y + PADDING * 2)

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{svg_w}" height="{svg_h}" '
            f'viewBox="{-PADDING} {-PADDING} {svg_w} {svg_h}">',
            _render_markers(),
            f'<rect x="{-PADDING}" y="{-PADDING}" width="{svg_w}" height="{svg_h}" fill="white"/>',
        ]

        if self.draw_regions:
            parts.append(_render_regions(region_map))

        # Edges (behind nodes), sorted for deterministic output.
        for path in sorted(frame.paths, key=lambda p: p.edge.key):
            parts.append(_render_edge(path))

        for node_id in sorted(frame.positions):
            parts.append(_render_node(entities.get(node_id), node_id, frame.positions[node_id]))

        parts.append("</svg>")
        return "\n".join(parts)
