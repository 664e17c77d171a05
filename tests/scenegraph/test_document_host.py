"""Tests for scenegraph.integrations.host."""

import pytest

from scenegraph.integrations.host import DocumentHost, styled_runs_from_rest


class TestDocumentHost:

    def test_from_rest_responses(self, sample_nodes_response, sample_variables_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response, sample_variables_response)
        assert [r.id for r in host.roots] == ["1:1"]
        assert host.variables["VariableID:1:11"] == "Brand/Primary"

    def test_without_variables(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response)
        assert host.variables == {}

    def test_select_by_id(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response)
        selected = host.select(["1:3", "missing", "1:2"])
        assert [n.name for n in selected] == ["Divider", "Title"]

    def test_select_all_roots(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response)
        assert [n.id for n in host.select()] == ["1:1"]

    def test_children_are_host_nodes(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response)
        root = host.roots[0]
        assert [c.type for c in root.children] == ["TEXT", "RECTANGLE"]

    @pytest.mark.asyncio
    async def test_export_returns_a_copy(self, sample_nodes_response):
        host = DocumentHost.from_rest_responses(sample_nodes_response)
        root = host.roots[0]
        exported = await host.export_raw_tree(root)
        exported["children"].clear()
        assert len(root.raw["children"]) == 2

    @pytest.mark.asyncio
    async def test_unknown_variable(self):
        host = DocumentHost([], {"a": "A"})
        assert await host.resolve_variable_name("b") is None


class TestStyledRunsFromRest:

    def test_splits_on_override_changes(self):
        raw = {
            "characters": "abcd",
            "style": {"fontFamily": "Inter", "fontSize": 12},
            "fills": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 0}}],
            "characterStyleOverrides": [0, 2, 2],
            "styleOverrideTable": {
                "2": {"fontSize": 20, "fills": [{"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0}}]},
            },
        }

        runs = styled_runs_from_rest(raw)

        assert [(r["characters"], r["start"], r["end"]) for r in runs] == [
            ("a", 0, 1), ("bc", 1, 3), ("d", 3, 4),
        ]
        assert [r["fontSize"] for r in runs] == [12, 20, 12]
        assert runs[1]["fills"][0]["color"]["r"] == 1
        assert runs[0]["fontName"] == {"family": "Inter", "style": "Regular"}

    def test_only_requested_fields(self):
        runs = styled_runs_from_rest({"characters": "x", "style": {"fontSize": 9}}, ("fontSize",))
        assert runs == [{"characters": "x", "start": 0, "end": 1, "fontSize": 9}]

    def test_line_height_and_spacing(self):
        runs = styled_runs_from_rest(
            {"characters": "x", "style": {"lineHeightPx": 18, "letterSpacing": 0.5}},
            ("lineHeight", "letterSpacing"),
        )
        assert runs[0]["lineHeight"] == {"unit": "PIXELS", "value": 18}
        assert runs[0]["letterSpacing"] == {"unit": "PIXELS", "value": 0.5}

    def test_no_characters(self):
        assert styled_runs_from_rest({"characters": ""}) == []
