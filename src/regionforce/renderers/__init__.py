"""Renderers turn a Frame into an output document."""

from regionforce.renderers.base import Renderer
from regionforce.renderers.svg import SvgRenderer

__all__ = ["Renderer", "SvgRenderer"]
