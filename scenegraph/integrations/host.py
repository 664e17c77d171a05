"""Host scene-graph collaborators.

The normalizer only talks to the host through ``SceneHost``: export a node's
raw JSON tree, resolve a variable id to its name, and fetch a text node's
styled runs. ``DocumentHost`` implements it over REST-format JSON (inline
documents, or responses fetched by ``FigmaClient``).
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

logger = logging.getLogger("scenegraph.integrations.host")

# Fields requested for every styled text run
STYLED_TEXT_FIELDS = (
    "fontName",
    "fills",
    "fontSize",
    "fontWeight",
    "hyperlink",
    "indentation",
    "letterSpacing",
    "lineHeight",
    "listOptions",
    "textCase",
    "textDecoration",
    "textStyleId",
    "fillStyleId",
    "openTypeFeatures",
)


class HostNode(Protocol):
    id: str
    name: str
    type: str

    @property
    def children(self) -> Sequence["HostNode"]: ...


class SceneHost(Protocol):
    async def export_raw_tree(self, node: HostNode) -> Dict[str, Any]: ...

    async def resolve_variable_name(self, variable_id: str) -> Optional[str]: ...

    async def get_styled_text_runs(
        self, node: HostNode, fields: Sequence[str]
    ) -> List[Dict[str, Any]]: ...


class DocumentNode:
    """Host node handle over one raw REST JSON node."""

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw
        self.id: str = raw.get("id", "")
        self.name: str = raw.get("name", "")
        self.type: str = raw.get("type", "")
        self._children: Optional[List[DocumentNode]] = None

    @property
    def children(self) -> List["DocumentNode"]:
        if self._children is None:
            self._children = [DocumentNode(c) for c in self.raw.get("children") or []]
        return self._children

    def __repr__(self) -> str:
        return f"DocumentNode({self.type} {self.id!r} {self.name!r})"


class DocumentHost:
    """In-memory ``SceneHost`` over REST-format node trees.

    Args:
        documents: Root node dicts (each as returned under ``document`` by
            GET /v1/files/:key/nodes).
        variables: Variable id → variable name.
    """

    def __init__(
        self,
        documents: Iterable[Dict[str, Any]],
        variables: Optional[Dict[str, str]] = None,
    ):
        self.roots = [DocumentNode(d) for d in documents]
        self.variables = dict(variables or {})

    @classmethod
    def from_rest_responses(
        cls,
        file_nodes_response: Dict[str, Any],
        variables_response: Optional[Dict[str, Any]] = None,
    ) -> "DocumentHost":
        """Build a host from /v1/files/:key/nodes and /variables/local responses."""
        documents = [
            entry["document"]
            for entry in (file_nodes_response.get("nodes") or {}).values()
            if entry and entry.get("document")
        ]
        variables: Dict[str, str] = {}
        if variables_response:
            meta = variables_response.get("meta", {})
            for var_id, var_data in (meta.get("variables") or {}).items():
                name = var_data.get("name")
                if name:
                    variables[var_id] = name
        logger.info(
            f"DocumentHost: {len(documents)} root(s), {len(variables)} variable(s)"
        )
        return cls(documents, variables)

    def find(self, node_id: str) -> Optional[DocumentNode]:
        for root in self.roots:
            found = _find(root, node_id)
            if found is not None:
                return found
        return None

    def select(self, node_ids: Optional[Sequence[str]] = None) -> List[DocumentNode]:
        """Selection for a conversion run: given ids (unknown ones skipped) or all roots."""
        if not node_ids:
            return list(self.roots)
        selected = []
        for node_id in node_ids:
            node = self.find(node_id)
            if node is None:
                logger.warning(f"select: node {node_id} not found in document")
                continue
            selected.append(node)
        return selected

    async def export_raw_tree(self, node: DocumentNode) -> Dict[str, Any]:
        return copy.deepcopy(node.raw)

    async def resolve_variable_name(self, variable_id: str) -> Optional[str]:
        return self.variables.get(variable_id)

    async def get_styled_text_runs(
        self, node: DocumentNode, fields: Sequence[str] = STYLED_TEXT_FIELDS
    ) -> List[Dict[str, Any]]:
        return styled_runs_from_rest(node.raw, fields)


def _find(node: DocumentNode, node_id: str) -> Optional[DocumentNode]:
    if node.id == node_id:
        return node
    for child in node.children:
        found = _find(child, node_id)
        if found is not None:
            return found
    return None


# --- Styled runs from REST text overrides ---


def styled_runs_from_rest(
    raw: Dict[str, Any], fields: Sequence[str] = STYLED_TEXT_FIELDS
) -> List[Dict[str, Any]]:
    """Split a REST TEXT node into runs of characters sharing one style override.

    ``characterStyleOverrides[i]`` names the ``styleOverrideTable`` entry for
    character ``i``; 0 (or a missing trailing entry) means the base style.
    """
    characters: str = raw.get("characters") or ""
    if not characters:
        return []

    base_style: Dict[str, Any] = raw.get("style") or {}
    base_fills: List[Dict[str, Any]] = raw.get("fills") or []
    overrides: List[int] = raw.get("characterStyleOverrides") or []
    table: Dict[str, Dict[str, Any]] = raw.get("styleOverrideTable") or {}

    runs: List[Dict[str, Any]] = []
    start = 0
    current = _override_at(overrides, 0)
    for i in range(1, len(characters) + 1):
        key = _override_at(overrides, i) if i < len(characters) else None
        if i < len(characters) and key == current:
            continue
        override = table.get(str(current), {}) if current else {}
        style = {**base_style, **override}
        fills = override.get("fills", base_fills)
        run = {"characters": characters[start:i], "start": start, "end": i}
        for field_name in fields:
            run[field_name] = _run_field(field_name, style, fills)
        runs.append(run)
        start = i
        current = key
    return runs


def _override_at(overrides: List[int], index: int) -> int:
    return overrides[index] if index < len(overrides) else 0


def _run_field(name: str, style: Dict[str, Any], fills: List[Dict[str, Any]]) -> Any:
    if name == "fills":
        return copy.deepcopy(fills)
    if name == "fontName":
        return {
            "family": style.get("fontFamily", ""),
            "style": style.get("fontStyle") or ("Italic" if style.get("italic") else "Regular"),
        }
    if name == "lineHeight":
        if "lineHeightPx" in style:
            return {"unit": "PIXELS", "value": style["lineHeightPx"]}
        return {"unit": "AUTO"}
    if name == "letterSpacing":
        return {"unit": "PIXELS", "value": style.get("letterSpacing", 0)}
    if name == "textDecoration":
        return style.get("textDecoration", "NONE")
    if name == "textCase":
        return style.get("textCase", "ORIGINAL")
    return style.get(name)
