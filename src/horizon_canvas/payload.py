"""Classifier payload boundary.

The classifier answers with loosely-shaped JSON (often wrapped in a markdown
fence, sometimes truncated at the token limit). This module turns that answer
into a ``ClassifiedGraph``:

  * ``extract_json`` finds and, if needed, repairs the JSON text.
  * ``parse_graph`` validates the structure and normalises field names.

Only a structurally unusable answer raises ``GraphContractError``; every
other gap is defaulted here or later in the layout.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Collection, Mapping
from typing import Any

from horizon_canvas.errors import GraphContractError
from horizon_canvas.types import ClassifiedGraph, GraphNode, NodeKind, Phase, Relation, SizeClass

logger = logging.getLogger(__name__)

# ─── JSON Extraction ──────────────────────────────────────────────────────────

_JSON_FENCE_RE = re.compile(r"```json\s*\n?(.*?)\n?```", re.DOTALL)
_ANY_FENCE_RE = re.compile(r"```\s*\n?(.*?)\n?```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_DANGLING_TAIL_RE = re.compile(r"[,:\s]+$")

_CLOSERS = {"{": "}", "[": "]"}


def _find_json_text(text: str) -> str | None:
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    match = _ANY_FENCE_RE.search(text)
    if match and match.group(1).strip().startswith(("{", "[")):
        return match.group(1).strip()

    match = _OBJECT_RE.search(text)
    if match:
        return match.group(0)

    # Truncated answer: an opening brace but no closing one.
    first = text.find("{")
    if first != -1:
        return text[first:].strip()

    stripped = text.strip()
    if stripped.startswith("["):
        return stripped
    return None


def repair_json(text: str) -> str:
    """Best-effort repair of JSON cut off mid-stream.

    Drops trailing commas, terminates an open string, and closes any
    brackets and braces left open, innermost first.
    """
    text = _TRAILING_COMMA_RE.sub(r"\1", text.strip())

    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()

    if in_string:
        text += '"'
    text = _DANGLING_TAIL_RE.sub("", text)
    return text + "".join(reversed(stack))


def extract_json(text: str | None) -> Any:
    """Pull the JSON value out of a classifier answer.

    Raises:
        GraphContractError: if no JSON can be found or repaired.
    """
    if not text or not text.strip():
        raise GraphContractError("classifier response is empty")

    candidate = _find_json_text(text)
    if candidate is None:
        raise GraphContractError("no JSON found in classifier response")

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("Classifier JSON did not parse (%s), attempting repair", exc)

    repaired = repair_json(candidate)
    try:
        value = json.loads(repaired)
    except json.JSONDecodeError as exc:
        raise GraphContractError(f"classifier JSON could not be repaired: {exc}") from exc
    logger.warning("Classifier JSON repaired (%d -> %d chars)", len(candidate), len(repaired))
    return value


# ─── Graph Parsing ────────────────────────────────────────────────────────────


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _indices(value: Any) -> list[int]:
    """Coerce a classifier index list, skipping anything that is not an index."""
    if not isinstance(value, (list, tuple)):
        return []
    out: list[int] = []
    for item in value:
        if isinstance(item, bool):
            continue
        try:
            idx = int(item)
        except (TypeError, ValueError):
            continue
        if idx >= 0:
            out.append(idx)
    return out


def _size(value: Any) -> SizeClass | None:
    text = _text(value).strip().upper()
    return SizeClass(text) if text in SizeClass.__members__ else None


def _kind(raw: Mapping[str, Any]) -> NodeKind:
    verdict = _text(_first(raw, "kind", "type", "classification")).strip().lower()
    if verdict == NodeKind.Noise.value or raw.get("is_off_topic") or raw.get("isOffTopic"):
        return NodeKind.Noise
    return NodeKind.Signal


def _fallback_id(position: int, taken: Collection[str]) -> str:
    node_id = f"node-{position}"
    while node_id in taken:
        node_id += "_"
    return node_id


def parse_node(raw: Mapping[str, Any], position: int, taken: Collection[str] = ()) -> GraphNode:
    """Normalise one node entry.

    A missing id becomes ``node-{position}``, suffixed with ``_`` while it
    clashes with an id in *taken*.
    """
    node_id = _optional_text(raw.get("id")) or _fallback_id(position, taken)
    return GraphNode(
        id=node_id,
        label=_text(raw.get("label")),
        body=_text(_first(raw, "body", "canvas_summary", "summary")),
        kind=_kind(raw),
        phase_id=_optional_text(_first(raw, "phase_id", "phaseId")),
        emoji=_optional_text(raw.get("emoji")),
        source_indices=_indices(_first(raw, "source_indices", "sourceIndices", "qa_indices")),
        size=_size(raw.get("size")),
        color_tag=_optional_text(_first(raw, "color_tag", "colorTag", "color")),
        is_hub=bool(_first(raw, "hub", "is_hub", "isHub")),
    )


def _parse_phases(raw_phases: Any) -> list[Phase]:
    if not isinstance(raw_phases, (list, tuple)):
        if raw_phases is not None:
            logger.debug("Ignoring phases of type %s", type(raw_phases).__name__)
        return []
    phases: list[Phase] = []
    seen: set[str] = set()
    for raw in raw_phases:
        if not isinstance(raw, Mapping):
            continue
        phase_id = _optional_text(raw.get("id"))
        if phase_id is None or phase_id in seen:
            continue
        seen.add(phase_id)
        phases.append(Phase(id=phase_id, title=_text(raw.get("title")), summary=_text(raw.get("summary"))))
    return phases


def _parse_relations(raw_edges: Any) -> list[Relation]:
    if not isinstance(raw_edges, (list, tuple)):
        return []
    relations: list[Relation] = []
    for raw in raw_edges:
        if not isinstance(raw, Mapping):
            continue
        source = _optional_text(_first(raw, "from", "source", "fromNode"))
        target = _optional_text(_first(raw, "to", "target", "toNode"))
        if source is None or target is None:
            continue
        relations.append(Relation(source=source, target=target, label=_optional_text(raw.get("label"))))
    return relations


def parse_graph(payload: Any) -> ClassifiedGraph:
    """Validate and normalise a classifier payload.

    A bare list is treated as the node list. ``nodes`` is the only mandatory
    field; phases, edges, topic and summary fall back to empty values.

    Raises:
        GraphContractError: if the payload is not a mapping (or list), if
            ``nodes`` is missing or not a list, or if a node entry is not an
            object.
    """
    if isinstance(payload, list):
        logger.debug("Payload is a bare list, wrapping it as nodes")
        payload = {"nodes": payload}
    if not isinstance(payload, Mapping):
        raise GraphContractError(f"classifier payload must be an object, got {type(payload).__name__}")

    raw_nodes = payload.get("nodes")
    if not isinstance(raw_nodes, (list, tuple)):
        raise GraphContractError("classifier payload has no 'nodes' list")

    # Explicit ids are reserved before any missing id is generated.
    taken: set[str] = set()
    for position, raw in enumerate(raw_nodes):
        if not isinstance(raw, Mapping):
            raise GraphContractError(f"node #{position} is not an object: {raw!r}")
        explicit_id = _optional_text(raw.get("id"))
        if explicit_id is not None:
            taken.add(explicit_id)

    nodes: list[GraphNode] = []
    seen: set[str] = set()
    for position, raw in enumerate(raw_nodes):
        node = parse_node(raw, position, taken)
        taken.add(node.id)
        if node.id in seen:
            logger.warning("Dropping node #%d: duplicate id %r", position, node.id)
            continue
        seen.add(node.id)
        nodes.append(node)

    return ClassifiedGraph(
        nodes=nodes,
        phases=_parse_phases(payload.get("phases")),
        relations=_parse_relations(payload.get("edges")),
        main_topic=_text(payload.get("main_topic")),
        summary=_text(payload.get("summary")),
    )


def parse_response(text: str) -> ClassifiedGraph:
    """Parse a raw classifier answer (markdown-wrapped JSON) into a graph."""
    return parse_graph(extract_json(text))
