"""JSON Canvas renderer — the ``.canvas`` document the note app opens."""

from __future__ import annotations

import json

from horizon_canvas.types import CanvasDocument

INDENT = 2


class CanvasRenderer:
    """Serialise a document as JSON Canvas text (UTF-8 kept verbatim)."""

    def render(self, document: CanvasDocument) -> str:
        return json.dumps(document.to_dict(), indent=INDENT, ensure_ascii=False)
