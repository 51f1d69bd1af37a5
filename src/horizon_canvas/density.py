"""Density classifier — maps the raw item count onto a compression tier.

The policy is advisory for the classifier (it is phrased into the generation
constraints) and authoritative for the layout: card width, grouping, and the
length budgets of the content shaper all come from here.

Tiers, from least to most compressed:

  simple        ≤ 15 items   one card per item, no groups
  story        16–50 items   ~60 % of items survive, 2–6 groups
  map         51–120 items   ~30 % survive, 5–10 groups
  architecture  > 120 items  ~15 % survive (capped at 40), up to 12 groups
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class DensityMode(str, Enum):
    Simple = "simple"
    Story = "story"
    Map = "map"
    Architecture = "architecture"


class MergeStrength(str, Enum):
    Off = "none"
    Medium = "medium"
    High = "high"
    Maximum = "maximum"


@dataclass(frozen=True)
class DensityPolicy:
    """Compression tier for one session.

    Attributes:
        mode: Tier name.
        use_groups: Whether phases are drawn as group boxes.
        target_phase_count: Number of phases the classifier is asked for (0 = ungrouped).
        merge_strength: How aggressively the classifier should merge items.
        nodes_per_group: Ideal phase capacity used to derive ``target_phase_count``.
        estimated_node_count: Expected number of surviving nodes.
        card_width: Base card width in pixels (size class ``M``).
        question_budget: Max characters of each question fed to the classifier.
        answer_budget: Max characters of each answer fed to the classifier.
        body_budget: Max characters of a card body on the canvas.
    """

    mode: DensityMode
    use_groups: bool
    target_phase_count: int
    merge_strength: MergeStrength
    nodes_per_group: int
    estimated_node_count: int
    card_width: int
    question_budget: int
    answer_budget: int
    body_budget: int

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "useGroups": self.use_groups,
            "targetPhaseCount": self.target_phase_count,
            "mergeStrength": self.merge_strength.value,
            "nodesPerGroup": self.nodes_per_group,
            "estimatedNodeCount": self.estimated_node_count,
            "cardWidth": self.card_width,
            "questionBudget": self.question_budget,
            "answerBudget": self.answer_budget,
            "bodyBudget": self.body_budget,
        }


# Upper bounds (inclusive) of the first three tiers.
SIMPLE_MAX = 15
STORY_MAX = 50
MAP_MAX = 120

ARCHITECTURE_NODE_CAP = 40


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def classify_density(raw_count: int) -> DensityPolicy:
    """Pick the compression tier for *raw_count* source items.

    Raises:
        ValueError: if *raw_count* is negative or not an integer.
    """
    if isinstance(raw_count, bool) or not isinstance(raw_count, int):
        raise ValueError(f"raw_count must be an integer, got {raw_count!r}")
    if raw_count < 0:
        raise ValueError(f"raw_count must be non-negative, got {raw_count}")

    if raw_count <= SIMPLE_MAX:
        policy = DensityPolicy(
            mode=DensityMode.Simple,
            use_groups=False,
            target_phase_count=0,
            merge_strength=MergeStrength.Off,
            nodes_per_group=10,
            estimated_node_count=raw_count,
            card_width=360,
            question_budget=600,
            answer_budget=1200,
            body_budget=600,
        )
    elif raw_count <= STORY_MAX:
        estimated = math.ceil(raw_count * 0.6)
        policy = DensityPolicy(
            mode=DensityMode.Story,
            use_groups=True,
            target_phase_count=_clamp(math.ceil(estimated / 6), 2, 6),
            merge_strength=MergeStrength.Medium,
            nodes_per_group=6,
            estimated_node_count=estimated,
            card_width=380,
            question_budget=400,
            answer_budget=800,
            body_budget=500,
        )
    elif raw_count <= MAP_MAX:
        estimated = math.ceil(raw_count * 0.3)
        policy = DensityPolicy(
            mode=DensityMode.Map,
            use_groups=True,
            target_phase_count=_clamp(math.ceil(estimated / 8), 5, 10),
            merge_strength=MergeStrength.High,
            nodes_per_group=8,
            estimated_node_count=estimated,
            card_width=400,
            question_budget=200,
            answer_budget=400,
            body_budget=450,
        )
    else:
        estimated = min(ARCHITECTURE_NODE_CAP, math.ceil(raw_count * 0.15))
        policy = DensityPolicy(
            mode=DensityMode.Architecture,
            use_groups=True,
            target_phase_count=_clamp(math.ceil(estimated / 5), 1, 12),
            merge_strength=MergeStrength.Maximum,
            nodes_per_group=5,
            estimated_node_count=estimated,
            card_width=480,
            question_budget=150,
            answer_budget=300,
            body_budget=700,
        )

    logger.info(
        "Strategy: %s (raw %d -> ~%d nodes)",
        policy.mode.value.upper(),
        raw_count,
        policy.estimated_node_count,
    )
    return policy


# ─── Layout Metrics ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutMetrics:
    """Pixel spacing used by the spatial layout engine."""

    card_gap_x: int = 50  # horizontal gap between cards in a row
    card_gap_y: int = 100  # vertical gap between hub and rows, and between rows
    group_padding: int = 40  # inner margin of a group box
    title_band: int = 40  # space reserved for the group label above the hub
    group_gap_x: int = 180
    group_gap_y: int = 150
    satellite_columns: int = 3
    group_columns: int = 2

    @classmethod
    def for_policy(cls, policy: DensityPolicy) -> LayoutMetrics:
        """Wide architecture cards get roomier spacing."""
        if policy.mode is DensityMode.Architecture:
            return cls(card_gap_x=60, group_padding=50, group_gap_x=220, group_gap_y=180)
        return cls()
