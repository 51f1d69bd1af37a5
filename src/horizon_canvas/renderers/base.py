"""Base renderer protocol."""

from __future__ import annotations

from typing import Protocol

from horizon_canvas.types import CanvasDocument


class Renderer(Protocol):
    """Protocol that all renderers must implement."""

    def render(self, document: CanvasDocument) -> str:
        """Render a laid-out canvas document to an output string."""
        ...
