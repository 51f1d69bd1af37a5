"""Exceptions raised by horizon_canvas.

Only structural contract violations surface as exceptions. Gaps in the
classifier output (missing sizes, colours, file mappings, dangling relation
endpoints) are absorbed by the layout and routing stages.
"""

from __future__ import annotations


class HorizonCanvasError(Exception):
    """Base class for all horizon_canvas errors."""


class GraphContractError(HorizonCanvasError, ValueError):
    """The classified graph is not well-formed (e.g. ``nodes`` is not a list)."""
