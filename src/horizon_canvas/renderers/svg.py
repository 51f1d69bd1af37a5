"""SVG renderer — a quick preview of a canvas document without the note app."""

from __future__ import annotations

from horizon_canvas.height import render_links
from horizon_canvas.types import PALETTE, CanvasDocument, CanvasEdge, CanvasNode, Side

# ─── Constants ────────────────────────────────────────────────────────────────

FONT_SIZE = 14
LINE_HEIGHT = 20
FONT_FAMILY = "sans-serif"
PADDING = 40  # canvas margin in pixels
TEXT_INSET = 16  # card border to text
CHAR_W = 8  # approximate pixels per narrow glyph
STUB = 24  # length of the straight segment leaving/entering a side
LOOP_OFFSET = 60  # how far a right→right loop swings out
NEUTRAL = "#888888"

_SG_STROKE = 'stroke-width="1.5" stroke-dasharray="6 4"'

Point = tuple[int, int]


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _font(size: int = FONT_SIZE, weight: str = "normal") -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{size}" font-weight="{weight}"'


def _colour(tag: str) -> str:
    return PALETTE.get(tag, NEUTRAL)


# ─── Geometry Helpers ─────────────────────────────────────────────────────────


def _anchor(node: CanvasNode, side: Side) -> Point:
    """Midpoint of the given side of a node box."""
    if side is Side.Top:
        return (node.x + node.width // 2, node.y)
    if side is Side.Bottom:
        return (node.x + node.width // 2, node.bottom)
    if side is Side.Left:
        return (node.x, node.y + node.height // 2)
    return (node.right, node.y + node.height // 2)


def _stub(point: Point, side: Side) -> Point:
    x, y = point
    if side is Side.Top:
        return (x, y - STUB)
    if side is Side.Bottom:
        return (x, y + STUB)
    if side is Side.Left:
        return (x - STUB, y)
    return (x + STUB, y)


def _edge_points(src: CanvasNode, dst: CanvasNode, edge: CanvasEdge) -> list[Point]:
    start = _anchor(src, edge.from_side)
    end = _anchor(dst, edge.to_side)
    if edge.from_side is Side.Right and edge.to_side is Side.Right:
        loop_x = max(start[0], end[0]) + LOOP_OFFSET
        return [start, (loop_x, start[1]), (loop_x, end[1]), end]
    return [start, _stub(start, edge.from_side), _stub(end, edge.to_side), end]


# ─── Shape Rendering ──────────────────────────────────────────────────────────


def _card_lines(node: CanvasNode) -> list[str]:
    """Text lines that fit inside the card, headings stripped of their marks."""
    max_chars = max(1, (node.width - 2 * TEXT_INSET) // CHAR_W)
    max_lines = max(1, (node.height - 2 * TEXT_INSET) // LINE_HEIGHT)
    lines: list[str] = []
    for raw in render_links(node.text or "").split("\n"):
        line = raw.strip().lstrip("#").strip()
        if not line or line == "---":
            continue
        lines.append(line if len(line) <= max_chars else line[: max_chars - 1] + "…")
    return lines[:max_lines]


def _render_card(node: CanvasNode) -> str:
    stroke = _colour(node.color)
    parts = [
        f'<rect x="{node.x}" y="{node.y}" width="{node.width}" height="{node.height}" rx="8" '
        f'fill="white" stroke="{stroke}" stroke-width="2"/>'
    ]
    lines = _card_lines(node)
    if lines:
        tx = node.x + TEXT_INSET
        ty = node.y + TEXT_INSET + FONT_SIZE
        tspans = "".join(
            f'<tspan x="{tx}" y="{ty + i * LINE_HEIGHT}">{_escape(line)}</tspan>' for i, line in enumerate(lines)
        )
        parts.append(f'<text {_font()} fill="#222">{tspans}</text>')
    return "\n".join(parts)


def _render_group(node: CanvasNode) -> str:
    stroke = _colour(node.color)
    return "\n".join(
        [
            f'<rect x="{node.x}" y="{node.y}" width="{node.width}" height="{node.height}" rx="12" '
            f'fill="{stroke}" fill-opacity="0.08" stroke="{stroke}" {_SG_STROKE}/>',
            f'<text x="{node.x + TEXT_INSET}" y="{node.y + FONT_SIZE + 12}" {_font(FONT_SIZE + 2, "bold")} '
            f'fill="#444">{_escape(node.label or "")}</text>',
        ]
    )


def _render_edge(edge: CanvasEdge, node_map: dict[str, CanvasNode]) -> str:
    src = node_map.get(edge.from_id)
    dst = node_map.get(edge.to_id)
    if src is None or dst is None:
        return ""

    points = _edge_points(src, dst, edge)
    pts = " ".join(f"{x},{y}" for x, y in points)
    parts = [f'<polyline points="{pts}" fill="none" stroke="{_colour(edge.color)}" stroke-width="2"/>']

    if edge.label:
        lx = (points[1][0] + points[2][0]) // 2
        ly = (points[1][1] + points[2][1]) // 2 - 6
        parts.append(
            f'<text x="{lx}" y="{ly}" text-anchor="middle" {_font(FONT_SIZE - 2)} fill="#333">{_escape(edge.label)}</text>'
        )
    return "\n".join(parts)


# ─── Public Renderer ──────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer — consumes a CanvasDocument, produces an SVG string."""

    def render(self, document: CanvasDocument) -> str:
        if document.is_empty:
            return ""

        node_map = {n.id: n for n in document.nodes}
        max_x = max(n.right for n in document.nodes) + LOOP_OFFSET
        max_y = max(n.bottom for n in document.nodes)
        svg_w = max_x + PADDING * 2
        svg_h = max_y + PADDING * 2

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{svg_w}" height="{svg_h}" viewBox="0 0 {svg_w} {svg_h}">',
            f'<rect width="{svg_w}" height="{svg_h}" fill="white"/>',
            f'<g transform="translate({PADDING},{PADDING})">',
        ]

        # Groups behind everything, then edges, then cards on top.
        for node in document.groups():
            parts.append(_render_group(node))

        for edge in sorted(document.edges, key=lambda e: (e.from_id, e.to_id)):
            rendered = _render_edge(edge, node_map)
            if rendered:
                parts.append(rendered)

        for node in document.cards():
            parts.append(_render_card(node))

        parts.append("</g>")
        parts.append("</svg>")
        return "\n".join(parts)
