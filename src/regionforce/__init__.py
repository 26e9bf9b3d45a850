"""regionforce — region-constrained force layout for relationship graphs."""

from regionforce.drag import DragController, DragMode
from regionforce.engine import EngineState, LayoutConfig, LayoutEngine
from regionforce.errors import GraphDataError
from regionforce.model import Edge, Entity, Point, Relationship, consolidate_relationships
from regionforce.projection import FilterState, Projection, SubgraphProjector, project
from regionforce.regions import CategoryScheme, Rect, Region, RegionLayout, RegionMap, RegionRule
from regionforce.routing import EdgeRouter, Indicator, PathDescriptor, PathSegment, RouterConfig, route_edge
from regionforce.session import Frame, GraphSession

__all__ = [
    "CategoryScheme",
    "DragController",
    "DragMode",
    "Edge",
    "EdgeRouter",
    "EngineState",
    "Entity",
    "Frame",
    "FilterState",
    "GraphDataError",
    "GraphSession",
    "Indicator",
    "LayoutConfig",
    "LayoutEngine",
    "PathDescriptor",
    "PathSegment",
    "Point",
    "Projection",
    "Rect",
    "Region",
    "RegionLayout",
    "RegionMap",
    "RegionRule",
    "Relationship",
    "RouterConfig",
    "SubgraphProjector",
    "consolidate_relationships",
    "project",
    "route_edge",
]
