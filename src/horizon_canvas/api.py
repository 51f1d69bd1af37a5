"""Public API — classified graph in, canvas document out."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from horizon_canvas.content import FileEntry, build_file_map
from horizon_canvas.density import DensityPolicy, classify_density
from horizon_canvas.layout import layout_graph
from horizon_canvas.payload import parse_graph
from horizon_canvas.renderers.canvas import CanvasRenderer
from horizon_canvas.renderers.svg import SvgRenderer
from horizon_canvas.routing import route_edges
from horizon_canvas.types import CanvasDocument, ClassifiedGraph

logger = logging.getLogger(__name__)


def estimate_raw_count(graph: ClassifiedGraph) -> int:
    """Best guess at the number of source items behind *graph*.

    Uses the distinct source indices cited by all nodes (noise included);
    falls back to the node count when no node cites a source.
    """
    cited = {idx for node in graph.nodes for idx in node.source_indices}
    return len(cited) if cited else len(graph.nodes)


def generate_canvas(
    payload: Mapping[str, Any] | list[Any] | ClassifiedGraph,
    raw_count: int | None = None,
    *,
    file_mapping: Iterable[FileEntry | Mapping[str, object]] = (),
    base_path: str = "",
    session_title: str = "",
    policy: DensityPolicy | None = None,
) -> CanvasDocument:
    """Run the whole pipeline: policy → parse → layout → routing.

    Args:
        payload: Classifier output (``{phases, nodes, edges, ...}``) or an
            already parsed ``ClassifiedGraph``.
        raw_count: Number of source items; estimated from the graph when omitted.
        file_mapping: 1-based ``{index, fileName}`` entries for card back-links.
        base_path: Vault folder holding the session folder.
        session_title: Session folder name.
        policy: Explicit density policy; overrides *raw_count*.

    Returns:
        The canvas document; empty when every node is noise.

    Raises:
        GraphContractError: if the payload is structurally malformed.
    """
    graph = payload if isinstance(payload, ClassifiedGraph) else parse_graph(payload)
    if policy is None:
        policy = classify_density(estimate_raw_count(graph) if raw_count is None else raw_count)

    layout = layout_graph(
        graph,
        policy,
        file_map=build_file_map(file_mapping),
        base_path=base_path,
        session_title=session_title,
    )
    document = CanvasDocument(nodes=layout.nodes, edges=route_edges(graph, layout))
    logger.info(
        "Canvas for %r: %d node(s), %d edge(s), %s",
        session_title or graph.main_topic,
        len(document.nodes),
        len(document.edges),
        "grouped" if layout.grouped else "flat",
    )
    return document


def render_canvas_json(document: CanvasDocument) -> str:
    return CanvasRenderer().render(document)


def render_svg(document: CanvasDocument) -> str:
    return SvgRenderer().render(document)


def write_canvas(document: CanvasDocument, path: str | Path) -> Path:
    """Write *document* as a ``.canvas`` file, creating parent folders."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_canvas_json(document), encoding="utf-8")
    logger.info("Wrote %s", target)
    return target
