"""Fixtures for scene-graph pipeline tests.

Provides REST-format node factories, in-memory hosts, and fresh conversion
contexts.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from scenegraph.integrations.host import DocumentHost
from scenegraph.normalize import ConversionContext, ConversionSettings


def _node(
    node_id: str,
    node_type: str = "RECTANGLE",
    name: Optional[str] = None,
    x: float = 0,
    y: float = 0,
    width: float = 100,
    height: float = 100,
    children: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    node: Dict[str, Any] = {
        "id": node_id,
        "name": name if name is not None else node_type.title(),
        "type": node_type,
        "absoluteBoundingBox": {"x": x, "y": y, "width": width, "height": height},
    }
    if children is not None:
        node["children"] = children
    node.update(extra)
    return node


def _solid(r: float, g: float, b: float, variable_id: Optional[str] = None, **extra: Any):
    paint: Dict[str, Any] = {
        "type": "SOLID",
        "blendMode": "NORMAL",
        "color": {"r": r, "g": g, "b": b, "a": 1},
    }
    if variable_id:
        paint["boundVariables"] = {"color": {"type": "VARIABLE_ALIAS", "id": variable_id}}
    paint.update(extra)
    return paint


class CountingHost(DocumentHost):
    """DocumentHost that records host calls and can fail exports."""

    def __init__(self, documents, variables=None, failing_ids=()):
        super().__init__(documents, variables)
        self.variable_calls: List[str] = []
        self.export_calls: List[str] = []
        self.failing_ids = set(failing_ids)

    async def export_raw_tree(self, node):
        self.export_calls.append(node.id)
        if node.id in self.failing_ids:
            raise RuntimeError(f"export failed for {node.id}")
        return await super().export_raw_tree(node)

    async def resolve_variable_name(self, variable_id):
        self.variable_calls.append(variable_id)
        # Yield so concurrent lookups overlap
        await asyncio.sleep(0)
        return await super().resolve_variable_name(variable_id)


@pytest.fixture
def make_node():
    """Factory for REST-format node dicts."""
    return _node


@pytest.fixture
def solid():
    """Factory for SOLID paint dicts (optionally bound to a variable)."""
    return _solid


@pytest.fixture
def make_host():
    """Factory for CountingHost over the given root documents."""
    def _make(*documents, variables=None, failing_ids=()):
        return CountingHost(list(documents), variables, failing_ids)
    return _make


@pytest.fixture
def settings():
    return ConversionSettings()


@pytest.fixture
def context(settings):
    return ConversionContext(settings=settings)


@pytest.fixture
def sample_nodes_response():
    """Sample Figma /v1/files/:key/nodes response."""
    return {
        "name": "TestFile",
        "nodes": {
            "1:1": {
                "document": _node(
                    "1:1", "FRAME", "Card", x=100, y=100, width=320, height=200,
                    layoutMode="VERTICAL",
                    paddingLeft=16,
                    itemSpacing=8,
                    children=[
                        _node(
                            "1:2", "TEXT", "Title", x=116, y=100, width=200, height=24,
                            characters="Hello",
                            style={"fontFamily": "Inter", "fontSize": 16, "fontWeight": 600},
                            fills=[_solid(0, 0, 0, "VariableID:1:10")],
                        ),
                        _node(
                            "1:3", "RECTANGLE", "Divider", x=116, y=132, width=288, height=1,
                            fills=[_solid(0.2, 0.4, 0.6)],
                        ),
                    ],
                ),
            },
        },
    }


@pytest.fixture
def sample_variables_response():
    """Sample Figma /v1/files/:key/variables/local response."""
    return {
        "meta": {
            "variables": {
                "VariableID:1:10": {"name": "Text/Primary", "resolvedType": "COLOR"},
                "VariableID:1:11": {"name": "Brand/Primary", "resolvedType": "COLOR"},
            },
            "variableCollections": {},
        }
    }
