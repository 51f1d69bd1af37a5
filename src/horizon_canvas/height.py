"""Height estimator — predicts the rendered height of a card's text block.

This is a prediction, not a text-metrics measurement. Each line's visual
length is a sum of per-character weights (wide glyphs count 1.8, everything
else 1.0), divided by a per-width line capacity to get wrapped rows.
Headings, separators, blank lines, and the back-link footer get fixed
contributions.
"""

from __future__ import annotations

import math
import re

# ─── Constants ────────────────────────────────────────────────────────────────

WIDE_GLYPH_WEIGHT: float = 1.8
NARROW_GLYPH_WEIGHT: float = 1.0
NARROW_MAX_CODEPOINT: int = 0xFF  # single-byte range

PADDING_HEIGHT: int = 50  # top 25 + bottom 25
BOTTOM_BUFFER: int = 15
ROW_HEIGHT: int = 26
BLANK_LINE_HEIGHT: int = 5
HEADING_HEIGHT: int = 40
SEPARATOR_HEIGHT: int = 15
FOOTER_HEIGHT: int = 36  # separator + one line of back-links
MIN_HEIGHT: int = 100

# (minimum card width, visual units per line), widest first.
CAPACITY_STEPS: tuple[tuple[int, int], ...] = (
    (560, 62),
    (401, 50),
    (0, 38),
)

_ALIASED_LINK_RE = re.compile(r"\[\[[^\]|]*\|([^\]]*)\]\]")
_PLAIN_LINK_RE = re.compile(r"\[\[([^\]]*)\]\]")
_FOOTER_TOKEN = r"(?:\[\[[^\]]+\]\]|\+\d+more)"
_FOOTER_LINE_RE = re.compile(rf"^(?:{_FOOTER_TOKEN}(?: {_FOOTER_TOKEN})*)?$")

# ─── Visual Weight ────────────────────────────────────────────────────────────


def visual_weight(char: str) -> float:
    """Approximate glyph width of a single code point."""
    return WIDE_GLYPH_WEIGHT if ord(char) > NARROW_MAX_CODEPOINT else NARROW_GLYPH_WEIGHT


def visual_length(line: str) -> float:
    return sum(visual_weight(ch) for ch in line)


def line_capacity(card_width: int) -> int:
    """Visual units that fit on one line of a card of *card_width* pixels."""
    for min_width, capacity in CAPACITY_STEPS:
        if card_width >= min_width:
            return capacity
    return CAPACITY_STEPS[-1][1]


def render_links(text: str) -> str:
    """Replace wiki links with the text a renderer displays for them."""
    text = _ALIASED_LINK_RE.sub(r"\1", text)
    return _PLAIN_LINK_RE.sub(r"\1", text)


# ─── Estimation ───────────────────────────────────────────────────────────────


def split_footer(text: str) -> tuple[str, bool]:
    """Split off a trailing back-link footer (``---`` then one line of links)."""
    lines = text.split("\n")
    if len(lines) >= 2 and lines[-2].strip() == "---" and _FOOTER_LINE_RE.match(lines[-1].strip()):
        return "\n".join(lines[:-2]), True
    return text, False


def line_height(line: str, capacity: int) -> int:
    """Height contribution of a single (link-rendered) line."""
    stripped = line.strip()
    if not stripped:
        return BLANK_LINE_HEIGHT
    if stripped.startswith("#"):
        return HEADING_HEIGHT
    if stripped.startswith("---"):
        return SEPARATOR_HEIGHT
    rows = max(1, math.ceil(visual_length(stripped) / capacity))
    return rows * ROW_HEIGHT


def estimate_height(text: str | None, card_width: int, has_footer: bool | None = None) -> int:
    """Predict the pixel height of a card showing *text* at *card_width*.

    *has_footer* says whether the last two lines are the back-link footer;
    when ``None`` the footer is detected from the text. Identical input
    always yields identical output, and adding body text never makes a card
    shorter.
    """
    if not text:
        return MIN_HEIGHT

    if has_footer is None:
        body, has_footer = split_footer(text)
    elif has_footer:
        body = text.rsplit("\n", 2)[0]
    else:
        body = text
    capacity = line_capacity(card_width)

    total = PADDING_HEIGHT
    for line in render_links(body).split("\n"):
        total += line_height(line, capacity)
    if has_footer:
        total += FOOTER_HEIGHT
    total += BOTTOM_BUFFER
    return max(MIN_HEIGHT, total)
