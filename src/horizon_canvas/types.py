"""Core types shared by the layout pipeline.

Input side: the classified conversation graph (``GraphNode``, ``Phase``,
``Relation``, ``ClassifiedGraph``) as produced by the external classifier.
Output side: the positioned canvas entities (``CanvasNode``, ``CanvasEdge``,
``CanvasDocument``) that serialise to the JSON Canvas format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ─── Enumerations ─────────────────────────────────────────────────────────────


class NodeKind(str, Enum):
    """Classifier verdict for a node. Noise nodes never reach the canvas."""

    Signal = "signal"
    Noise = "noise"


class SizeClass(str, Enum):
    """Card size class. Width is a multiple of the policy card width."""

    S = "S"
    M = "M"
    L = "L"


class CanvasKind(str, Enum):
    Card = "card"
    Group = "group"


class Side(str, Enum):
    """Attachment side of an edge endpoint."""

    Top = "top"
    Bottom = "bottom"
    Left = "left"
    Right = "right"


# ─── Colour Convention ────────────────────────────────────────────────────────

# JSON Canvas preset colours, keyed by the tag the renderer understands.
PALETTE: dict[str, str] = {
    "1": "#fb464c",  # red
    "2": "#e9973f",  # orange
    "3": "#e0de71",  # yellow
    "4": "#44cf6e",  # green
    "5": "#53dfdd",  # cyan
    "6": "#a882ff",  # purple
}

PALETTE_NAMES: dict[str, str] = {
    "red": "1",
    "orange": "2",
    "yellow": "3",
    "green": "4",
    "cyan": "5",
    "purple": "6",
}

COLOR_CARD: str = "4"
COLOR_GROUP: str = "6"
COLOR_LOCAL_EDGE: str = "3"
COLOR_CROSS_EDGE: str = "4"


def resolve_color(tag: object, default: str) -> str:
    """Map a classifier colour hint onto a preset tag, falling back to *default*.

    Accepts preset numbers (``"4"`` or ``4``) and palette names (``"green"``).
    Anything else is ignored.
    """
    if tag is None:
        return default
    text = str(tag).strip().lower()
    if text in PALETTE:
        return text
    return PALETTE_NAMES.get(text, default)


# ─── Input Graph ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RawItem:
    """One question/answer pair of the source conversation (0-based index)."""

    index: int
    question: str
    answer: str
    external_id: str = ""


@dataclass
class GraphNode:
    """A classified node. Read-only for the layout engine."""

    id: str
    label: str = ""
    body: str = ""
    kind: NodeKind = NodeKind.Signal
    phase_id: str | None = None
    emoji: str | None = None
    source_indices: list[int] = field(default_factory=list)
    size: SizeClass | None = None
    color_tag: str | None = None
    is_hub: bool = False

    @property
    def is_noise(self) -> bool:
        return self.kind is NodeKind.Noise


@dataclass(frozen=True)
class Phase:
    """A thematic group of nodes, drawn as a canvas group box."""

    id: str
    title: str = ""
    summary: str = ""


@dataclass(frozen=True)
class Relation:
    """A classifier-supplied relation between two node ids."""

    source: str
    target: str
    label: str | None = None


@dataclass
class ClassifiedGraph:
    """The classifier's full answer after payload parsing."""

    nodes: list[GraphNode] = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    main_topic: str = ""
    summary: str = ""

    def signal_nodes(self) -> list[GraphNode]:
        """Non-noise nodes in classifier order."""
        return [n for n in self.nodes if not n.is_noise]


# ─── Canvas Output ────────────────────────────────────────────────────────────


@dataclass
class CanvasNode:
    """A positioned canvas entity: a text card or a group box."""

    id: str
    kind: CanvasKind
    x: int
    y: int
    width: int
    height: int
    color: str
    text: str | None = None
    label: str | None = None

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_dict(self) -> dict[str, Any]:
        if self.kind is CanvasKind.Group:
            head: dict[str, Any] = {"id": self.id, "type": "group", "label": self.label or ""}
        else:
            head = {"id": self.id, "type": "text", "text": self.text or ""}
        head.update(x=self.x, y=self.y, width=self.width, height=self.height, color=self.color)
        return head


@dataclass
class CanvasEdge:
    """A routed connection between two canvas node ids."""

    id: str
    from_id: str
    to_id: str
    from_side: Side
    to_side: Side
    color: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "fromNode": self.from_id,
            "toNode": self.to_id,
            "fromSide": self.from_side.value,
            "toSide": self.to_side.value,
            "color": self.color,
        }
        if self.label:
            out["label"] = self.label
        return out


@dataclass
class CanvasDocument:
    """The output payload: ``{nodes, edges}`` in JSON Canvas shape."""

    nodes: list[CanvasNode] = field(default_factory=list)
    edges: list[CanvasEdge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def cards(self) -> list[CanvasNode]:
        return [n for n in self.nodes if n.kind is CanvasKind.Card]

    def groups(self) -> list[CanvasNode]:
        return [n for n in self.nodes if n.kind is CanvasKind.Group]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
