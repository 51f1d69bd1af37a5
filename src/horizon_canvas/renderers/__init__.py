"""Output renderers for canvas documents."""

from horizon_canvas.renderers.base import Renderer
from horizon_canvas.renderers.canvas import CanvasRenderer
from horizon_canvas.renderers.svg import SvgRenderer

__all__ = ["CanvasRenderer", "Renderer", "SvgRenderer"]
