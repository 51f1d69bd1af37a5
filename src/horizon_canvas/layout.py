"""Spatial layout engine — hub-and-satellite grids tiled in a grid of groups.

Stages:
  1. Partition  (drop noise, keep active phases, pick one hub per phase)
  2. Measure    (card text → width from size class, height from the estimator)
  3. Arrange    (hub on top, satellites in a 3-column grid, rows centred)
  4. Tile       (phase groups in a 2-column grid, folded with a GridCursor)

Ungrouped mode (no phases, or a policy without groups) skips the hub split
and the group boxes: every card goes into one flat grid from the origin.

All state is local to one ``layout_graph`` call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from horizon_canvas.content import build_card_content
from horizon_canvas.density import DensityPolicy, LayoutMetrics
from horizon_canvas.height import estimate_height
from horizon_canvas.types import (
    COLOR_CARD,
    COLOR_GROUP,
    CanvasKind,
    CanvasNode,
    ClassifiedGraph,
    GraphNode,
    Phase,
    SizeClass,
    resolve_color,
)

logger = logging.getLogger(__name__)

# ─── Constants ────────────────────────────────────────────────────────────────

SIZE_SCALE: dict[SizeClass, float] = {
    SizeClass.S: 0.8,
    SizeClass.M: 1.0,
    SizeClass.L: 1.3,
}
DEFAULT_SIZE = SizeClass.M
HUB_SIZE = SizeClass.L

GROUP_PREFIX = "group-"
UNGROUPED_PHASE_ID = "root"
ORPHAN_PHASE_ID = "unassigned"
ORPHAN_PHASE_TITLE = "Other"


def size_width(size: SizeClass | None, card_width: int) -> int:
    """Pixel width of a card of the given size class (``M`` when unset)."""
    return round(card_width * SIZE_SCALE[size or DEFAULT_SIZE])


# ─── Layout IR ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ContentContext:
    """Everything the content shaper needs besides the node itself."""

    file_map: Mapping[int, str] = field(default_factory=dict)
    base_path: str = ""
    session_title: str = ""
    body_budget: int | None = None


@dataclass
class MeasuredCard:
    """A node with its rendered text and predicted size, not yet positioned."""

    node: GraphNode
    text: str
    width: int
    height: int


@dataclass
class CardRow:
    """One row of the satellite grid. Height is the tallest member."""

    cards: list[MeasuredCard]
    gap: int

    @property
    def width(self) -> int:
        return sum(c.width for c in self.cards) + self.gap * (len(self.cards) - 1)

    @property
    def height(self) -> int:
        return max(c.height for c in self.cards)


@dataclass
class PhaseBlock:
    """The laid-out result for one phase.

    Attributes:
        phase: The phase (implicit ``root`` phase in ungrouped mode).
        hub_id: Id of the hub card; ``None`` in ungrouped mode.
        satellite_ids: Non-hub card ids in placement order.
        rows: Card ids per grid row (satellite rows, or all rows when flat).
        group: The group box; ``None`` in ungrouped mode.
        cards: Positioned cards, hub first.
    """

    phase: Phase
    hub_id: str | None
    satellite_ids: list[str]
    rows: list[list[str]]
    group: CanvasNode | None
    cards: list[CanvasNode]

    @property
    def member_ids(self) -> list[str]:
        return [c.id for c in self.cards]

    @property
    def width(self) -> int:
        if self.group is not None:
            return self.group.width
        return max((c.right for c in self.cards), default=0)

    @property
    def height(self) -> int:
        if self.group is not None:
            return self.group.height
        return max((c.bottom for c in self.cards), default=0)


@dataclass
class LayoutResult:
    """Output of the layout engine: canvas nodes plus per-phase structure."""

    blocks: list[PhaseBlock] = field(default_factory=list)
    grouped: bool = False

    @property
    def nodes(self) -> list[CanvasNode]:
        """Canvas nodes, each group box ahead of its cards."""
        out: list[CanvasNode] = []
        for block in self.blocks:
            if block.group is not None:
                out.append(block.group)
            out.extend(block.cards)
        return out

    def node_map(self) -> dict[str, CanvasNode]:
        return {n.id: n for n in self.nodes}

    def phase_of(self) -> dict[str, str]:
        """Card id → id of the phase it was placed in."""
        return {card_id: block.phase.id for block in self.blocks for card_id in block.member_ids}


@dataclass(frozen=True)
class GridCursor:
    """Placement cursor for tiling groups; a new value per placed group."""

    columns: int
    gap_x: int
    gap_y: int
    x: int = 0
    y: int = 0
    column: int = 0
    row_height: int = 0

    def wrapped(self) -> GridCursor:
        """The cursor moved to a fresh row if the current row is full."""
        if self.column < self.columns:
            return self
        return replace(self, x=0, y=self.y + self.row_height + self.gap_y, column=0, row_height=0)

    def advance(self, width: int, height: int) -> GridCursor:
        """The cursor after placing a block of *width* × *height* at its position."""
        return replace(
            self,
            x=self.x + width + self.gap_x,
            column=self.column + 1,
            row_height=max(self.row_height, height),
        )


# ─── Partition ────────────────────────────────────────────────────────────────


def partition_phases(graph: ClassifiedGraph, use_groups: bool) -> tuple[list[tuple[Phase, list[GraphNode]]], bool]:
    """Assign non-noise nodes to active phases.

    Returns ``(phases, grouped)``. Phases without members are dropped;
    nodes whose phase is missing or unknown are collected into a trailing
    ``Other`` phase so that every non-noise node gets a card.
    """
    signal = graph.signal_nodes()
    if not signal:
        return [], bool(use_groups and graph.phases)

    if not use_groups or not graph.phases:
        return [(Phase(id=UNGROUPED_PHASE_ID), signal)], False

    members: dict[str, list[GraphNode]] = {p.id: [] for p in graph.phases}
    orphans: list[GraphNode] = []
    for node in signal:
        if node.phase_id is not None and node.phase_id in members:
            members[node.phase_id].append(node)
        else:
            orphans.append(node)

    active = [(p, members[p.id]) for p in graph.phases if members[p.id]]
    if orphans:
        orphan_id = ORPHAN_PHASE_ID
        while orphan_id in members:
            orphan_id += "_"
        logger.debug("%d node(s) without a known phase go to %r", len(orphans), orphan_id)
        active.append((Phase(id=orphan_id, title=ORPHAN_PHASE_TITLE), orphans))
    return active, True


def assign_group_ids(phases: list[Phase], card_ids: set[str]) -> list[str]:
    """Group box id per phase: ``group-{phase id}``.

    An id that clashes with a card id or an earlier group id is suffixed
    with ``_`` until it is free.
    """
    taken = set(card_ids)
    ids: list[str] = []
    for phase in phases:
        group_id = f"{GROUP_PREFIX}{phase.id}"
        while group_id in taken:
            group_id += "_"
        taken.add(group_id)
        ids.append(group_id)
    return ids


def split_hub(nodes: list[GraphNode]) -> tuple[GraphNode, list[GraphNode]]:
    """Pick the phase hub: the first node flagged ``hub``, else the first node."""
    hub = next((n for n in nodes if n.is_hub), nodes[0])
    return hub, [n for n in nodes if n is not hub]


# ─── Measure & Arrange ────────────────────────────────────────────────────────


def measure_card(node: GraphNode, width: int, ctx: ContentContext) -> MeasuredCard:
    text = build_card_content(node, ctx.file_map, ctx.base_path, ctx.session_title, ctx.body_budget)
    has_footer = bool(node.source_indices)
    return MeasuredCard(node=node, text=text, width=width, height=estimate_height(text, width, has_footer))


def chunk_rows(cards: list[MeasuredCard], columns: int, gap: int) -> list[CardRow]:
    """Split cards into grid rows of at most *columns* cards."""
    return [CardRow(cards=cards[i : i + columns], gap=gap) for i in range(0, len(cards), columns)]


def place_card(card: MeasuredCard, x: int, y: int) -> CanvasNode:
    return CanvasNode(
        id=card.node.id,
        kind=CanvasKind.Card,
        x=x,
        y=y,
        width=card.width,
        height=card.height,
        color=resolve_color(card.node.color_tag, COLOR_CARD),
        text=card.text,
    )


def place_rows(rows: list[CardRow], left: int, top: int, inner_width: int, gap_y: int) -> tuple[list[CanvasNode], int]:
    """Place rows top-down, each centred in *inner_width*.

    Returns the placed cards and the bottom edge of the last row (``top``
    when there are no rows).
    """
    placed: list[CanvasNode] = []
    y = top
    bottom = top
    for row in rows:
        x = left + (inner_width - row.width) // 2
        for card in row.cards:
            placed.append(place_card(card, x, y))
            x += card.width + row.gap
        bottom = y + row.height
        y = bottom + gap_y
    return placed, bottom


def layout_phase(
    phase: Phase,
    nodes: list[GraphNode],
    origin: tuple[int, int],
    group_id: str,
    policy: DensityPolicy,
    metrics: LayoutMetrics,
    ctx: ContentContext,
) -> PhaseBlock:
    """Lay out one phase as a group: hub on top, satellite grid beneath."""
    ox, oy = origin
    hub_node, satellite_nodes = split_hub(nodes)

    hub = measure_card(hub_node, size_width(HUB_SIZE, policy.card_width), ctx)
    satellites = [measure_card(n, size_width(n.size, policy.card_width), ctx) for n in satellite_nodes]
    rows = chunk_rows(satellites, metrics.satellite_columns, metrics.card_gap_x)

    inner_width = max([hub.width] + [r.width for r in rows])
    left = ox + metrics.group_padding
    hub_y = oy + metrics.group_padding + metrics.title_band

    hub_card = place_card(hub, left + (inner_width - hub.width) // 2, hub_y)
    bottom = hub_card.bottom
    satellite_cards: list[CanvasNode] = []
    if rows:
        satellite_cards, bottom = place_rows(rows, left, bottom + metrics.card_gap_y, inner_width, metrics.card_gap_y)

    group = CanvasNode(
        id=group_id,
        kind=CanvasKind.Group,
        x=ox,
        y=oy,
        width=inner_width + 2 * metrics.group_padding,
        height=bottom - oy + metrics.group_padding,
        color=COLOR_GROUP,
        label=phase.title or phase.id,
    )
    logger.debug(
        "Phase %r at (%d, %d): hub %r, %d satellite(s) in %d row(s), box %dx%d",
        phase.id,
        ox,
        oy,
        hub_node.id,
        len(satellites),
        len(rows),
        group.width,
        group.height,
    )
    return PhaseBlock(
        phase=phase,
        hub_id=hub_node.id,
        satellite_ids=[c.id for c in satellite_cards],
        rows=[[c.node.id for c in row.cards] for row in rows],
        group=group,
        cards=[hub_card, *satellite_cards],
    )


def layout_flat(phase: Phase, nodes: list[GraphNode], policy: DensityPolicy, metrics: LayoutMetrics, ctx: ContentContext) -> PhaseBlock:
    """Ungrouped mode: one grid of all cards from the origin, no hub, no box."""
    cards = [measure_card(n, size_width(n.size, policy.card_width), ctx) for n in nodes]
    rows = chunk_rows(cards, metrics.satellite_columns, metrics.card_gap_x)
    inner_width = max(r.width for r in rows)
    placed, _ = place_rows(rows, 0, 0, inner_width, metrics.card_gap_y)
    logger.debug("Flat layout: %d card(s) in %d row(s)", len(placed), len(rows))
    return PhaseBlock(
        phase=phase,
        hub_id=None,
        satellite_ids=[],
        rows=[[c.node.id for c in row.cards] for row in rows],
        group=None,
        cards=placed,
    )


# ─── Tiling ───────────────────────────────────────────────────────────────────


def place_phase(
    cursor: GridCursor,
    phase: Phase,
    nodes: list[GraphNode],
    group_id: str,
    policy: DensityPolicy,
    metrics: LayoutMetrics,
    ctx: ContentContext,
) -> tuple[PhaseBlock, GridCursor]:
    """Lay out one phase at the cursor and return it with the next cursor."""
    cursor = cursor.wrapped()
    block = layout_phase(phase, nodes, (cursor.x, cursor.y), group_id, policy, metrics, ctx)
    return block, cursor.advance(block.width, block.height)


def layout_graph(
    graph: ClassifiedGraph,
    policy: DensityPolicy,
    *,
    file_map: Mapping[int, str] | None = None,
    base_path: str = "",
    session_title: str = "",
    metrics: LayoutMetrics | None = None,
) -> LayoutResult:
    """Compute positions and sizes for every non-noise node of *graph*.

    Args:
        graph: The parsed classifier output.
        policy: Density policy (card width, grouping, body budget).
        file_map: 0-based source index → note file name, for card footers.
        base_path: Vault folder the session folder lives in.
        session_title: Session folder name, used in back-link paths.
        metrics: Spacing override; derived from *policy* when omitted.

    Returns:
        A ``LayoutResult``; empty when nothing survives the noise filter.
    """
    metrics = metrics or LayoutMetrics.for_policy(policy)
    ctx = ContentContext(
        file_map=file_map or {},
        base_path=base_path,
        session_title=session_title,
        body_budget=policy.body_budget,
    )

    phases, grouped = partition_phases(graph, policy.use_groups)
    if not phases:
        logger.info("No signal nodes to lay out")
        return LayoutResult(blocks=[], grouped=grouped)

    if not grouped:
        phase, nodes = phases[0]
        return LayoutResult(blocks=[layout_flat(phase, nodes, policy, metrics, ctx)], grouped=False)

    cursor = GridCursor(columns=metrics.group_columns, gap_x=metrics.group_gap_x, gap_y=metrics.group_gap_y)
    group_ids = assign_group_ids([p for p, _ in phases], {n.id for _, nodes in phases for n in nodes})
    blocks: list[PhaseBlock] = []
    for (phase, nodes), group_id in zip(phases, group_ids):
        block, cursor = place_phase(cursor, phase, nodes, group_id, policy, metrics, ctx)
        blocks.append(block)
    return LayoutResult(blocks=blocks, grouped=True)
