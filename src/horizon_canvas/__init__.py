"""horizon_canvas — lay out classified conversation graphs as JSON Canvas documents."""

from horizon_canvas.api import estimate_raw_count, generate_canvas, render_canvas_json, render_svg, write_canvas
from horizon_canvas.content import build_card_content, smart_trim
from horizon_canvas.density import DensityMode, DensityPolicy, classify_density
from horizon_canvas.errors import GraphContractError, HorizonCanvasError
from horizon_canvas.height import estimate_height
from horizon_canvas.layout import layout_graph
from horizon_canvas.payload import parse_graph, parse_response
from horizon_canvas.routing import route_edges
from horizon_canvas.types import (
    CanvasDocument,
    CanvasEdge,
    CanvasNode,
    ClassifiedGraph,
    GraphNode,
    Phase,
    Relation,
)

__version__ = "0.1.0"

__all__ = [
    "CanvasDocument",
    "CanvasEdge",
    "CanvasNode",
    "ClassifiedGraph",
    "DensityMode",
    "DensityPolicy",
    "GraphContractError",
    "GraphNode",
    "HorizonCanvasError",
    "Phase",
    "Relation",
    "build_card_content",
    "classify_density",
    "estimate_height",
    "estimate_raw_count",
    "generate_canvas",
    "layout_graph",
    "parse_graph",
    "parse_response",
    "render_canvas_json",
    "render_svg",
    "route_edges",
    "smart_trim",
    "write_canvas",
]
