"""Tests for scenegraph.normalize.normalizer (tree walk end to end)."""

import json
import math
from unittest.mock import patch

import pytest

from scenegraph.integrations.host import DocumentHost
from scenegraph.nodes import ContainerNode, NodeType, RectangleNode, VectorNode
from scenegraph.normalize import ConversionContext, TreeNormalizer, nodes_to_json
from scenegraph.normalize.context import TOO_MANY_NODES_WARNING
from scenegraph.normalize.normalizer import FAILED_NODE_WARNING, count_host_nodes


def _all_nodes(tree):
    return [n for root in tree for n in root.walk()]


class TestStructure:

    @pytest.mark.asyncio
    async def test_sample_document(self, sample_nodes_response, context):
        host = DocumentHost.from_rest_responses(sample_nodes_response)

        [card] = await nodes_to_json(host, host.select(), context)

        assert isinstance(card, ContainerNode)
        assert (card.x, card.y, card.width, card.height) == (0, 0, 320, 200)
        assert [c.name for c in card.children] == ["Title", "Divider"]
        divider = card.children[1]
        assert (divider.x, divider.y) == (16, 32)
        assert divider.parent_id == "1:1"
        assert card.parent_id is None
        assert (card.padding_left, card.padding_right) == (16, 0)
        assert card.item_spacing == 8

    @pytest.mark.asyncio
    async def test_drops_hidden_and_unsupported(self, make_host, make_node, context):
        root = make_node(
            "1", "FRAME", width=400, height=400,
            children=[
                make_node("2", "RECTANGLE", "Visible"),
                make_node("3", "RECTANGLE", "Hidden", visible=False),
                make_node("4", "SLICE", "Slice"),
                make_node("5", "STICKY", "Unknown"),
            ],
        )
        host = make_host(root)

        [frame] = await nodes_to_json(host, host.select(), context)

        assert [c.name for c in frame.children] == ["Visible"]

    @pytest.mark.asyncio
    async def test_hidden_top_level_node(self, make_host, make_node, context):
        host = make_host(make_node("1", "FRAME", visible=False, children=[make_node("2")]))
        assert await nodes_to_json(host, host.select(), context) == []

    @pytest.mark.asyncio
    async def test_empty_container_becomes_rectangle(self, make_host, make_node, context):
        host = make_host(make_node("1", "INSTANCE", "Placeholder", children=[]))

        [node] = await nodes_to_json(host, host.select(), context)

        assert isinstance(node, RectangleNode)
        assert node.type == NodeType.RECTANGLE
        assert node.unique_name == "Placeholder"

    @pytest.mark.asyncio
    async def test_group_becomes_free_form_frame(self, make_host, make_node, context):
        group = make_node("1", "GROUP", width=400, height=400, children=[make_node("2")])
        host = make_host(group)

        [node] = await nodes_to_json(host, host.select(), context)

        assert isinstance(node, ContainerNode)
        assert node.type == NodeType.FRAME
        assert node.layout_mode == "NONE"
        assert node.is_relative

    @pytest.mark.asyncio
    async def test_vector_kinds(self, make_host, make_node, context):
        host = make_host(make_node("1", "STAR", width=400, height=400))
        [node] = await nodes_to_json(host, host.select(), context)
        assert isinstance(node, VectorNode)

    @pytest.mark.asyncio
    async def test_individual_stroke_weights_flattened(self, make_host, make_node, context):
        raw = make_node(
            "1", "RECTANGLE", width=400, height=400,
            individualStrokeWeights={"top": 1, "bottom": 2, "left": 3, "right": 4},
            cornerRadius=6,
        )
        host = make_host(raw)

        [node] = await nodes_to_json(host, host.select(), context)

        out = node.to_dict()
        assert (out["strokeTopWeight"], out["strokeBottomWeight"]) == (1, 2)
        assert (out["strokeLeftWeight"], out["strokeRightWeight"]) == (3, 4)
        assert out["cornerRadius"] == 6
        assert "individualStrokeWeights" not in out


class TestNames:

    @pytest.mark.asyncio
    async def test_sibling_names_deduplicated(self, make_host, make_node, context):
        root = make_node(
            "1", "FRAME", "Toolbar", width=400, height=400,
            children=[make_node(str(i), "RECTANGLE", "Icon") for i in range(2, 5)],
        )
        host = make_host(root)

        [frame] = await nodes_to_json(host, host.select(), context)

        assert [c.unique_name for c in frame.children] == ["Icon", "Icon_01", "Icon_02"]

    @pytest.mark.asyncio
    async def test_names_unique_across_the_run(self, make_host, make_node, context):
        host = make_host(make_node("1", "RECTANGLE", "Box"), make_node("2", "RECTANGLE", "Box"))

        nodes = await nodes_to_json(host, host.select(), context)

        assert [n.unique_name for n in nodes] == ["Box", "Box_01"]


class TestRotation:

    @pytest.mark.asyncio
    async def test_group_in_group(self, make_host, make_node, context):
        leaf = make_node("3", "RECTANGLE", "Leaf", x=10, y=10, width=20, height=20)
        inner = make_node(
            "2", "GROUP", "Inner", width=300, height=300, rotation=math.pi / 4, children=[leaf]
        )
        outer = make_node(
            "1", "GROUP", "Outer", width=400, height=400, rotation=math.pi / 2, children=[inner]
        )
        host = make_host(outer)

        [root] = await nodes_to_json(host, host.select(), context)

        inner_node = root.children[0]
        leaf_node = inner_node.children[0]
        assert root.rotation == 0 and root.cumulative_rotation == 0
        assert inner_node.rotation == 0
        assert inner_node.cumulative_rotation == pytest.approx(-90)
        assert leaf_node.rotation == 0
        assert leaf_node.cumulative_rotation == pytest.approx(-135)

    @pytest.mark.asyncio
    async def test_frame_keeps_own_rotation(self, make_host, make_node, context):
        frame = make_node(
            "1", "FRAME", width=400, height=400, rotation=math.pi / 2,
            children=[make_node("2", "RECTANGLE", rotation=-math.pi / 2)],
        )
        host = make_host(frame)

        [root] = await nodes_to_json(host, host.select(), context)

        assert root.rotation == pytest.approx(-90)
        assert root.children[0].rotation == pytest.approx(90)
        assert root.children[0].cumulative_rotation == 0


class TestFlattening:

    @pytest.mark.asyncio
    async def test_descendants_of_flattened_node_not_flattened(self, make_host, make_node, context):
        icon = make_node(
            "1", "FRAME", "Icon", width=32, height=32,
            children=[
                make_node("2", "VECTOR", width=16, height=16),
                make_node("3", "GROUP", width=16, height=16,
                          children=[make_node("4", "ELLIPSE", width=8, height=8)]),
            ],
        )
        host = make_host(icon)

        [node] = await nodes_to_json(host, host.select(), context)

        flags = {n.id: n.can_be_flattened for n in node.walk()}
        assert flags == {"1": True, "2": False, "3": False, "4": False}

    @pytest.mark.asyncio
    async def test_icon_mode_uses_custom_classifier(self, make_host, make_node, settings):
        context = ConversionContext(settings=settings.model_copy(update={"embed_vectors": True}))
        host = make_host(make_node("1", "VECTOR", width=400, height=400))
        context.reset()

        [node] = await TreeNormalizer(
            host, context, icon_classifier=lambda raw, max_size: True
        ).normalize(host.select())

        assert node.can_be_flattened


class TestNodeLimit:

    def test_count_host_nodes_stops_early(self, make_host, make_node):
        root = make_node("r", "FRAME", children=[make_node(str(i)) for i in range(50)])
        host = make_host(root)
        assert count_host_nodes(host.roots[0], 1000) == 51
        assert count_host_nodes(host.roots[0], 10) == 11

    @pytest.mark.asyncio
    async def test_over_limit_skips_run_with_one_warning(self, make_host, make_node, context):
        root = make_node(
            "r", "FRAME", width=400, height=400,
            children=[make_node(f"c{i}", "RECTANGLE", "Cell") for i in range(500)],
        )
        host = make_host(root)

        nodes = await nodes_to_json(host, host.select(), context)

        assert nodes == []
        assert context.warnings.to_list() == [TOO_MANY_NODES_WARNING.format(limit=500)]
        assert host.export_calls == []

    @pytest.mark.asyncio
    async def test_at_limit_converts_everything(self, make_host, make_node, context):
        root = make_node(
            "r", "FRAME", width=400, height=400,
            children=[make_node(f"c{i}", "RECTANGLE", "Cell") for i in range(499)],
        )
        host = make_host(root)

        nodes = await nodes_to_json(host, host.select(), context)

        emitted = _all_nodes(nodes)
        assert len(emitted) == 500
        assert len({n.unique_name for n in emitted}) == 500
        assert len(context.warnings) == 0

    @pytest.mark.asyncio
    async def test_selection_total_counts(self, make_host, make_node, settings):
        context = ConversionContext(settings=settings, node_limit=3)
        host = make_host(make_node("1"), make_node("2"), make_node("3"), make_node("4"))

        assert await nodes_to_json(host, host.select(), context) == []
        assert len(context.warnings) == 1

    @pytest.mark.asyncio
    async def test_guard_during_walk_keeps_processed_prefix(self, make_host, make_node, settings):
        context = ConversionContext(settings=settings, node_limit=3)
        root = make_node(
            "r", "FRAME", width=400, height=400,
            children=[make_node(f"c{i}", "RECTANGLE", "Cell") for i in range(5)],
        )
        host = make_host(root, make_node("after", "RECTANGLE", "After"))

        # Undercount so the run gets past the selection pre-check
        with patch("scenegraph.normalize.normalizer.count_host_nodes", return_value=1):
            nodes = await nodes_to_json(host, host.select(), context)

        assert [n.id for n in nodes] == ["r"]
        assert {c.id for c in nodes[0].children} == {"c0", "c1"}
        assert context.limit_exceeded
        assert context.warnings.to_list() == [TOO_MANY_NODES_WARNING.format(limit=3)]

    def test_guard_warns_once(self, settings):
        context = ConversionContext(settings=settings, node_limit=1)
        assert context.count_node()
        assert not context.count_node()
        assert not context.count_node()
        assert context.limit_exceeded
        assert len(context.warnings) == 1


class TestFailures:

    @pytest.mark.asyncio
    async def test_failed_node_does_not_affect_siblings(self, make_host, make_node, context):
        host = make_host(
            make_node("1", "RECTANGLE", "First"),
            make_node("2", "RECTANGLE", "Broken"),
            make_node("3", "RECTANGLE", "Last"),
            failing_ids={"2"},
        )

        nodes = await nodes_to_json(host, host.select(), context)

        assert [n.name for n in nodes] == ["First", "Last"]
        assert context.warnings.to_list() == [FAILED_NODE_WARNING.format(name="Broken")]


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_repeated_runs_identical(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(
            sample_nodes_response, {"meta": {"variables": {"VariableID:1:10": {"name": "Text/Primary"}}}}
        )
        context = ConversionContext()

        first = [n.to_dict() for n in await nodes_to_json(host, host.select(), context)]
        second = [n.to_dict() for n in await nodes_to_json(host, host.select(), context)]
        fresh = [n.to_dict() for n in await nodes_to_json(host, host.select(), ConversionContext())]

        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)
        assert first == fresh
        assert first[0]["children"][0]["fills"][0]["variableColorName"] == "Text-Primary"
