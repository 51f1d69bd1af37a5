"""Edge router — turns classifier relations into canvas connections.

Three families, in output order:

  1. Spokes: hub → every satellite of its phase.
  2. Relations, under the gateway protocol: a relation between two phases
     is redirected onto the two phase hubs, so groups are only ever joined
     hub-to-hub. Redirected duplicates collapse to the first occurrence.
  3. Fallback chain, only when the classifier sent no relations at all:
     hub → next hub in phase order (or reading order when ungrouped).

Connection sides follow from the relative position of the two cards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import networkx as nx

from horizon_canvas.layout import LayoutResult
from horizon_canvas.types import (
    COLOR_CROSS_EDGE,
    COLOR_LOCAL_EDGE,
    CanvasEdge,
    CanvasNode,
    ClassifiedGraph,
    Relation,
    Side,
)

logger = logging.getLogger(__name__)

# Two cards whose tops differ by at most this much count as the same row.
SAME_ROW_TOLERANCE: int = 40


def choose_sides(source: CanvasNode, target: CanvasNode) -> tuple[Side, Side]:
    """Pick ``(from_side, to_side)`` from the relative position of two cards.

    Same row → left to right; target above → loop out via both right sides;
    otherwise → bottom to top.
    """
    dy = target.y - source.y
    if abs(dy) <= SAME_ROW_TOLERANCE:
        return Side.Right, Side.Left
    if dy < 0:
        return Side.Right, Side.Right
    return Side.Bottom, Side.Top


# ─── Spokes ───────────────────────────────────────────────────────────────────


def route_spokes(layout: LayoutResult) -> list[CanvasEdge]:
    """Hub → satellite edges for every grouped phase."""
    edges: list[CanvasEdge] = []
    for block in layout.blocks:
        if block.hub_id is None:
            continue
        for satellite_id in block.satellite_ids:
            edges.append(
                CanvasEdge(
                    id=f"edge-spoke-{block.hub_id}-{satellite_id}",
                    from_id=block.hub_id,
                    to_id=satellite_id,
                    from_side=Side.Bottom,
                    to_side=Side.Top,
                    color=COLOR_LOCAL_EDGE,
                )
            )
    return edges


# ─── Gateway Protocol ─────────────────────────────────────────────────────────


def relation_digraph(relations: list[Relation], phase_of: Mapping[str, str]) -> nx.DiGraph:
    """Load the usable relations into a DiGraph over placed cards.

    Node attribute ``phase`` holds the card's phase id. Edge attributes hold
    the relation's input position (``order``) and ``label``. Relations with an
    endpoint that has no card, self-loops, and repeated pairs are dropped.
    """
    graph: nx.DiGraph = nx.DiGraph()
    for card_id, phase_id in phase_of.items():
        graph.add_node(card_id, phase=phase_id)

    for order, rel in enumerate(relations):
        if rel.source not in graph or rel.target not in graph:
            logger.debug("Dropping relation #%d %s -> %s: unknown endpoint", order, rel.source, rel.target)
            continue
        if rel.source == rel.target:
            logger.debug("Dropping relation #%d: self-loop on %s", order, rel.source)
            continue
        if graph.has_edge(rel.source, rel.target):
            continue
        graph.add_edge(rel.source, rel.target, order=order, label=rel.label)
    return graph


def route_relations(
    graph: nx.DiGraph,
    layout: LayoutResult,
    added_edges: set[tuple[str, str]],
) -> list[CanvasEdge]:
    """Apply the gateway protocol to every relation in *graph*.

    *added_edges* holds ``(from, to)`` pairs already drawn; it is updated in
    place so that each resolved pair is drawn once.
    """
    hubs: dict[str, str | None] = {b.phase.id: b.hub_id for b in layout.blocks}
    node_map = layout.node_map()

    edges: list[CanvasEdge] = []
    for src, tgt, attrs in sorted(graph.edges(data=True), key=lambda e: e[2]["order"]):
        src_phase = graph.nodes[src]["phase"]
        tgt_phase = graph.nodes[tgt]["phase"]
        crosses = src_phase != tgt_phase

        from_id, to_id = src, tgt
        if crosses:
            from_id = hubs[src_phase] or src
            to_id = hubs[tgt_phase] or tgt

        key = (from_id, to_id)
        if key in added_edges:
            logger.debug("Relation #%d %s -> %s collapses onto existing %s", attrs["order"], src, tgt, key)
            continue
        added_edges.add(key)

        from_side, to_side = choose_sides(node_map[from_id], node_map[to_id])
        edges.append(
            CanvasEdge(
                id=f"edge-rel-{attrs['order']}",
                from_id=from_id,
                to_id=to_id,
                from_side=from_side,
                to_side=to_side,
                color=COLOR_CROSS_EDGE if crosses else COLOR_LOCAL_EDGE,
                label=attrs.get("label"),
            )
        )
    return edges


# ─── Fallback Chain ───────────────────────────────────────────────────────────


def route_fallback(layout: LayoutResult) -> list[CanvasEdge]:
    """Sequential edges used when the classifier supplied no relations."""
    edges: list[CanvasEdge] = []

    if layout.grouped:
        hubs = [b.hub_id for b in layout.blocks if b.hub_id is not None]
        for i, (current, following) in enumerate(zip(hubs, hubs[1:])):
            edges.append(
                CanvasEdge(
                    id=f"edge-seq-{i}",
                    from_id=current,
                    to_id=following,
                    from_side=Side.Right,
                    to_side=Side.Left,
                    color=COLOR_CROSS_EDGE,
                )
            )
        return edges

    # Ungrouped: follow reading order, wrapping from a row's end to the next row.
    row_of: dict[str, int] = {}
    order: list[str] = []
    for block in layout.blocks:
        for row_idx, row in enumerate(block.rows):
            for card_id in row:
                row_of[card_id] = row_idx
                order.append(card_id)

    for i, (current, following) in enumerate(zip(order, order[1:])):
        same_row = row_of[current] == row_of[following]
        edges.append(
            CanvasEdge(
                id=f"edge-seq-{i}",
                from_id=current,
                to_id=following,
                from_side=Side.Right if same_row else Side.Bottom,
                to_side=Side.Left if same_row else Side.Top,
                color=COLOR_LOCAL_EDGE,
            )
        )
    return edges


# ─── Entry Point ──────────────────────────────────────────────────────────────


def route_edges(graph: ClassifiedGraph, layout: LayoutResult) -> list[CanvasEdge]:
    """Produce every canvas edge for a laid-out graph."""
    if not layout.blocks:
        return []

    spokes = route_spokes(layout)
    if not graph.relations:
        return spokes + route_fallback(layout)

    added_edges: set[tuple[str, str]] = {(e.from_id, e.to_id) for e in spokes}
    relations = route_relations(relation_digraph(graph.relations, layout.phase_of()), layout, added_edges)
    logger.debug("Routed %d of %d relation(s)", len(relations), len(graph.relations))
    return spokes + relations
