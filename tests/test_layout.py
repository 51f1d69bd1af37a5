"""Tests for layout.py — partition, hub/satellite arrangement, group tiling.

Geometry checks use the story tier (card width 380, hub 494) and default
metrics, with short bodies so every card is 136 px tall.
"""

from __future__ import annotations

from horizon_canvas.density import LayoutMetrics, classify_density
from horizon_canvas.layout import (
    ORPHAN_PHASE_ID,
    UNGROUPED_PHASE_ID,
    GridCursor,
    assign_group_ids,
    layout_graph,
    partition_phases,
    size_width,
    split_hub,
)
from horizon_canvas.types import (
    COLOR_CARD,
    COLOR_GROUP,
    CanvasKind,
    CanvasNode,
    ClassifiedGraph,
    GraphNode,
    NodeKind,
    Phase,
    SizeClass,
)

STORY = classify_density(30)
SIMPLE = classify_density(5)
METRICS = LayoutMetrics()
CARD_HEIGHT = 136  # padding 50 + heading 40 + blank 5 + one row 26 + buffer 15

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_node(node_id: str, phase: str | None = None, **kwargs) -> GraphNode:
    """Node with a one-word body so its height is predictable."""
    return GraphNode(id=node_id, label=node_id.upper(), body="body", phase_id=phase, **kwargs)


def make_phased_graph(*phases: tuple[str, int]) -> ClassifiedGraph:
    """One phase per ``(phase_id, node_count)``; node ids are ``{phase}-{i}``."""
    nodes = [make_node(f"{pid}-{i}", pid) for pid, count in phases for i in range(count)]
    return ClassifiedGraph(nodes=nodes, phases=[Phase(id=pid, title=pid.title()) for pid, _ in phases])


def contains(outer: CanvasNode, inner: CanvasNode) -> bool:
    return outer.x <= inner.x and outer.y <= inner.y and inner.right <= outer.right and inner.bottom <= outer.bottom


def overlaps(a: CanvasNode, b: CanvasNode) -> bool:
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom


# ─── Partition Tests ──────────────────────────────────────────────────────────


class TestPartition:
    def test_noise_dropped(self):
        graph = make_phased_graph(("p1", 2))
        graph.nodes.append(make_node("n", "p1", kind=NodeKind.Noise))
        phases, grouped = partition_phases(graph, use_groups=True)
        assert grouped is True
        assert [n.id for n in phases[0][1]] == ["p1-0", "p1-1"]

    def test_empty_phases_skipped(self):
        graph = make_phased_graph(("p1", 1), ("p2", 0), ("p3", 1))
        phases, _ = partition_phases(graph, use_groups=True)
        assert [p.id for p, _ in phases] == ["p1", "p3"]

    def test_orphans_collected(self):
        graph = make_phased_graph(("p1", 1))
        graph.nodes += [make_node("lost", "nope"), make_node("none")]
        phases, _ = partition_phases(graph, use_groups=True)
        orphan_phase, orphans = phases[-1]
        assert orphan_phase.id == ORPHAN_PHASE_ID
        assert orphan_phase.title == "Other"
        assert [n.id for n in orphans] == ["lost", "none"]

    def test_orphan_phase_id_does_not_collide(self):
        graph = ClassifiedGraph(
            nodes=[make_node("a", ORPHAN_PHASE_ID), make_node("b", "gone")],
            phases=[Phase(id=ORPHAN_PHASE_ID)],
        )
        phases, _ = partition_phases(graph, use_groups=True)
        assert [p.id for p, _ in phases] == [ORPHAN_PHASE_ID, ORPHAN_PHASE_ID + "_"]

    def test_no_phases_is_ungrouped(self):
        graph = ClassifiedGraph(nodes=[make_node("a"), make_node("b")])
        phases, grouped = partition_phases(graph, use_groups=True)
        assert grouped is False
        assert phases[0][0].id == UNGROUPED_PHASE_ID

    def test_policy_without_groups_is_ungrouped(self):
        phases, grouped = partition_phases(make_phased_graph(("p1", 2)), use_groups=False)
        assert grouped is False
        assert len(phases) == 1


class TestGroupIds:
    def test_prefixed_phase_id(self):
        assert assign_group_ids([Phase(id="a"), Phase(id="b")], {"n1"}) == ["group-a", "group-b"]

    def test_clash_with_card_id_suffixed(self):
        """A card literally named ``group-b`` pushes the box id to ``group-b_``."""
        assert assign_group_ids([Phase(id="a"), Phase(id="b")], {"group-b"}) == ["group-a", "group-b_"]

    def test_suffixed_id_does_not_clash_with_later_phase(self):
        ids = assign_group_ids([Phase(id="b"), Phase(id="b_")], {"group-b"})
        assert ids == ["group-b_", "group-b__"]


class TestSplitHub:
    def test_first_node_by_default(self):
        hub, rest = split_hub([make_node("a"), make_node("b")])
        assert hub.id == "a"
        assert [n.id for n in rest] == ["b"]

    def test_explicit_hub_flag(self):
        hub, rest = split_hub([make_node("a"), make_node("b", is_hub=True), make_node("c", is_hub=True)])
        assert hub.id == "b"
        assert [n.id for n in rest] == ["a", "c"]


# ─── Hub & Satellite Tests ────────────────────────────────────────────────────


class TestPhaseLayout:
    def test_hub_with_seven_satellites(self):
        """Hub on top, satellites in rows of 3, 3, 1, group sized to fit."""
        result = layout_graph(make_phased_graph(("p1", 8)), STORY)
        block = result.blocks[0]
        assert block.hub_id == "p1-0"
        assert block.rows == [["p1-1", "p1-2", "p1-3"], ["p1-4", "p1-5", "p1-6"], ["p1-7"]]

        nodes = result.node_map()
        hub = nodes["p1-0"]
        assert hub.width == size_width(SizeClass.L, 380) == 494
        assert hub.y == METRICS.group_padding + METRICS.title_band

        row_width = 3 * 380 + 2 * METRICS.card_gap_x
        group = block.group
        assert group is not None
        assert group.width == row_width + 2 * METRICS.group_padding
        last_row_bottom = hub.bottom + 3 * METRICS.card_gap_y + 3 * CARD_HEIGHT
        assert group.height == last_row_bottom + METRICS.group_padding
        assert group.label == "P1"
        assert group.color == COLOR_GROUP

    def test_rows_centred(self):
        result = layout_graph(make_phased_graph(("p1", 8)), STORY)
        nodes = result.node_map()
        inner_left = METRICS.group_padding
        row_width = 3 * 380 + 2 * METRICS.card_gap_x
        assert nodes["p1-0"].x == inner_left + (row_width - 494) // 2
        assert nodes["p1-1"].x == inner_left
        assert nodes["p1-7"].x == inner_left + (row_width - 380) // 2

    def test_rows_do_not_overlap(self):
        result = layout_graph(make_phased_graph(("p1", 8)), STORY)
        cards = [n for n in result.nodes if n.kind is CanvasKind.Card]
        for i, a in enumerate(cards):
            for b in cards[i + 1 :]:
                assert not overlaps(a, b), f"{a.id} overlaps {b.id}"
        nodes = result.node_map()
        assert nodes["p1-4"].y >= nodes["p1-1"].bottom + METRICS.card_gap_y

    def test_hub_only_phase(self):
        """A single-node phase is a hub in a box, with no satellites."""
        block = layout_graph(make_phased_graph(("p1", 1)), STORY).blocks[0]
        assert block.satellite_ids == []
        assert block.rows == []
        assert block.group.height == METRICS.group_padding + METRICS.title_band + CARD_HEIGHT + METRICS.group_padding

    def test_size_classes(self):
        graph = make_phased_graph(("p1", 1))
        graph.nodes += [make_node("s", "p1", size=SizeClass.S), make_node("l", "p1", size=SizeClass.L)]
        nodes = layout_graph(graph, STORY).node_map()
        assert nodes["s"].width == 304
        assert nodes["l"].width == 494

    def test_card_fields(self):
        graph = make_phased_graph(("p1", 2))
        graph.nodes[1].color_tag = "red"
        nodes = layout_graph(graph, STORY).node_map()
        assert nodes["p1-0"].color == COLOR_CARD
        assert nodes["p1-1"].color == "1"
        assert nodes["p1-0"].text == "### 🟢 P1-0\n\nbody"
        assert nodes["p1-0"].height == CARD_HEIGHT


# ─── Tiling Tests ─────────────────────────────────────────────────────────────


class TestTiling:
    def test_groups_tile_in_two_columns(self):
        result = layout_graph(make_phased_graph(("a", 2), ("b", 4), ("c", 1)), STORY)
        g1, g2, g3 = (b.group for b in result.blocks)
        assert (g1.x, g1.y) == (0, 0)
        assert g2.x == g1.right + METRICS.group_gap_x
        assert g2.y == 0
        assert g3.x == 0
        assert g3.y == max(g1.bottom, g2.bottom) + METRICS.group_gap_y

    def test_cards_inside_their_group(self):
        result = layout_graph(make_phased_graph(("a", 5), ("b", 2), ("c", 3)), STORY)
        for block in result.blocks:
            for card in block.cards:
                assert contains(block.group, card)

    def test_groups_do_not_overlap(self):
        result = layout_graph(make_phased_graph(("a", 5), ("b", 2), ("c", 3), ("d", 7)), STORY)
        groups = [b.group for b in result.blocks]
        for i, a in enumerate(groups):
            for b in groups[i + 1 :]:
                assert not overlaps(a, b)

    def test_group_precedes_its_cards(self):
        nodes = layout_graph(make_phased_graph(("a", 2), ("b", 2)), STORY).nodes
        assert [n.id for n in nodes] == ["group-a", "a-0", "a-1", "group-b", "b-0", "b-1"]

    def test_cursor_wraps(self):
        cursor = GridCursor(columns=2, gap_x=10, gap_y=20)
        cursor = cursor.wrapped().advance(100, 50)
        cursor = cursor.wrapped().advance(100, 80)
        cursor = cursor.wrapped()
        assert (cursor.x, cursor.y, cursor.column) == (0, 100, 0)


# ─── Bijection & Degenerate Cases ─────────────────────────────────────────────


class TestCoverage:
    def test_every_signal_node_has_one_card(self):
        graph = make_phased_graph(("a", 3), ("b", 2))
        graph.nodes += [make_node("noise", "a", kind=NodeKind.Noise), make_node("orphan", "zzz")]
        result = layout_graph(graph, STORY)
        card_ids = [n.id for n in result.nodes if n.kind is CanvasKind.Card]
        assert sorted(card_ids) == sorted(n.id for n in graph.signal_nodes())
        assert "noise" not in card_ids

    def test_node_named_like_a_group_keeps_ids_unique(self):
        graph = ClassifiedGraph(
            nodes=[make_node("group-b", "a"), make_node("n2", "b")],
            phases=[Phase(id="a"), Phase(id="b")],
        )
        result = layout_graph(graph, STORY)
        ids = [n.id for n in result.nodes]
        assert ids == ["group-a", "group-b", "group-b_", "n2"]
        assert result.node_map()["group-b"].kind is CanvasKind.Card

    def test_orphan_group_id_avoids_card_id(self):
        graph = ClassifiedGraph(nodes=[make_node("group-unassigned", "gone")], phases=[Phase(id="p1")])
        ids = [n.id for n in layout_graph(graph, STORY).nodes]
        assert len(ids) == len(set(ids))
        assert "group-unassigned_" in ids

    def test_footer_height_follows_source_indices(self):
        """A body that merely looks like a footer is measured line by line."""
        graph = ClassifiedGraph(nodes=[make_node("a"), make_node("b", source_indices=[0])])
        graph.nodes[0].body = "hello\n\n---\n[[x]]"
        nodes = layout_graph(graph, SIMPLE, file_map={0: "x.md"}).node_map()
        assert nodes["a"].height == 50 + (40 + 5 + 26 + 5 + 15 + 26) + 15
        assert nodes["b"].height == 50 + (40 + 5 + 26 + 5) + 36 + 15

    def test_ungrouped_has_no_groups(self):
        graph = make_phased_graph(("a", 2), ("b", 2))
        result = layout_graph(graph, SIMPLE)
        assert result.grouped is False
        assert all(n.kind is CanvasKind.Card for n in result.nodes)
        assert len(result.nodes) == 4

    def test_ungrouped_grid_from_origin(self):
        graph = ClassifiedGraph(nodes=[make_node(f"n{i}") for i in range(5)])
        result = layout_graph(graph, SIMPLE)
        block = result.blocks[0]
        assert block.rows == [["n0", "n1", "n2"], ["n3", "n4"]]
        nodes = result.node_map()
        assert (nodes["n0"].x, nodes["n0"].y) == (0, 0)
        assert nodes["n3"].y == nodes["n0"].bottom + METRICS.card_gap_y

    def test_all_noise_is_empty(self):
        graph = ClassifiedGraph(nodes=[make_node("a", kind=NodeKind.Noise)], phases=[Phase(id="p1")])
        result = layout_graph(graph, STORY)
        assert result.blocks == []
        assert result.nodes == []

    def test_no_nodes_is_empty(self):
        assert layout_graph(ClassifiedGraph(), SIMPLE).nodes == []

    def test_footer_links_use_session_path(self):
        graph = ClassifiedGraph(nodes=[make_node("a", source_indices=[0])])
        result = layout_graph(graph, SIMPLE, file_map={0: "001-a.md"}, base_path="Vault", session_title="S")
        assert result.nodes[0].text.endswith("---\n[[Vault/S/001-a.md|QA1]]")
