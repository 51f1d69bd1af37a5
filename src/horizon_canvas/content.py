"""Content shaper — turns classifier text into fixed-shape card content.

Two independent jobs:

  * ``smart_trim`` strips noise that would blow up a card or a prompt
    (long code blocks, inline base64 images) and enforces a length budget.
  * ``build_card_content`` assembles the final card markdown: heading,
    body, and a back-link footer pointing at the synced note files.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from horizon_canvas.types import GraphNode, NodeKind

logger = logging.getLogger(__name__)

# ─── Smart Trim ───────────────────────────────────────────────────────────────

CODE_FOLD_THRESHOLD: int = 6  # blocks with more lines than this are folded
TRUNCATION_MARKER: str = "...(truncated)"
BASE64_PLACEHOLDER: str = "[Base64 Image]"

_CODE_BLOCK_RE = re.compile(r"```(\w*)\n(.*?)```", re.DOTALL)
_BASE64_IMAGE_RE = re.compile(r"data:image/[\w.+-]+;base64,[A-Za-z0-9+/=]+")


def _fold_code_block(match: re.Match[str]) -> str:
    lang, code = match.group(1), match.group(2)
    line_count = len(code.splitlines())
    if line_count <= CODE_FOLD_THRESHOLD:
        return match.group(0)
    return f"```{lang}\n[Code: {line_count} lines hidden]\n```"


def smart_trim(text: str | None, max_length: int) -> str:
    """Fold long code blocks, drop base64 images, and cap the length.

    The result never exceeds *max_length* characters unless *max_length* is
    shorter than the truncation marker itself. Applying ``smart_trim`` again
    with the same or a larger budget returns the input unchanged.
    """
    if not text:
        return ""

    processed = _CODE_BLOCK_RE.sub(_fold_code_block, text)
    processed = _BASE64_IMAGE_RE.sub(BASE64_PLACEHOLDER, processed)

    if len(processed) > max_length:
        keep = max(0, max_length - len(TRUNCATION_MARKER))
        return processed[:keep] + TRUNCATION_MARKER
    return processed


# ─── File Mapping ─────────────────────────────────────────────────────────────

_NOTE_INDEX_RE = re.compile(r"^(\d+)-")


@dataclass(frozen=True)
class FileEntry:
    """One synced note file. ``index`` is 1-based, as in the note names."""

    index: int
    file_name: str


def build_file_map(entries: Iterable[FileEntry | Mapping[str, object]] | None) -> dict[int, str]:
    """Convert a 1-based file mapping into a 0-based ``index → file name`` lookup.

    Entries may be ``FileEntry`` objects or ``{"index", "fileName"}`` mappings.
    Malformed entries are skipped.
    """
    file_map: dict[int, str] = {}
    for entry in entries or ():
        if isinstance(entry, FileEntry):
            index, name = entry.index, entry.file_name
        elif isinstance(entry, Mapping):
            index = entry.get("index")
            name = entry.get("fileName", entry.get("file_name"))
        else:
            logger.debug("Skipping file mapping entry of type %s", type(entry).__name__)
            continue
        if isinstance(index, bool) or not isinstance(index, int) or not name:
            logger.debug("Skipping malformed file mapping entry %r", entry)
            continue
        file_map[index - 1] = str(name)
    return file_map


def file_mapping_from_names(names: Iterable[str]) -> list[FileEntry]:
    """Derive the file mapping from synced note names such as ``007-20250101-0930.md``.

    Non-markdown files and ``_``-prefixed files (``_INDEX.md``) are ignored.
    """
    mapping: list[FileEntry] = []
    for name in names:
        if not name.endswith(".md") or name.startswith("_"):
            continue
        match = _NOTE_INDEX_RE.match(name)
        if match:
            mapping.append(FileEntry(index=int(match.group(1)), file_name=name))
    mapping.sort(key=lambda e: e.index)
    return mapping


def build_file_path(base_path: str, session_title: str, file_name: str) -> str:
    """Vault-relative path of a note; empty segments are dropped."""
    return "/".join(part for part in (base_path, session_title, file_name) if part)


# ─── Card Content ─────────────────────────────────────────────────────────────

MAX_FOOTER_LINKS: int = 6
FOOTER_SEPARATOR: str = "---"
DEFAULT_SIGNAL_ICON: str = "🟢"
DEFAULT_NOISE_ICON: str = "🔸"
DEFAULT_LABEL: str = "Node"
DEFAULT_BODY: str = "No summary"


def build_footer(
    source_indices: list[int],
    file_map: Mapping[int, str],
    base_path: str = "",
    session_title: str = "",
) -> str:
    """Back-link line for a card: at most six links, then ``+Nmore``."""
    links: list[str] = []
    for idx in source_indices[:MAX_FOOTER_LINKS]:
        file_name = file_map.get(idx)
        if file_name:
            links.append(f"[[{build_file_path(base_path, session_title, file_name)}|QA{idx + 1}]]")

    overflow = len(source_indices) - MAX_FOOTER_LINKS
    if overflow > 0:
        links.append(f"+{overflow}more")
    return " ".join(links)


def build_card_content(
    node: GraphNode,
    file_map: Mapping[int, str],
    base_path: str = "",
    session_title: str = "",
    body_budget: int | None = None,
) -> str:
    """Assemble the markdown shown on a card.

    Layout::

        ### 🏗️ Label

        body text (trimmed to *body_budget* when given)

        ---
        [[Base/Session/001-….md|QA1]] [[…|QA2]] +3more

    The footer is present iff the node has source indices.
    """
    default_icon = DEFAULT_NOISE_ICON if node.kind is NodeKind.Noise else DEFAULT_SIGNAL_ICON
    icon = node.emoji or default_icon
    body = node.body or DEFAULT_BODY
    if body_budget is not None:
        body = smart_trim(body, body_budget)

    card_text = f"### {icon} {node.label or DEFAULT_LABEL}\n\n{body}"
    if node.source_indices:
        footer = build_footer(node.source_indices, file_map, base_path, session_title)
        card_text += f"\n\n{FOOTER_SEPARATOR}\n{footer}"
    return card_text
