"""Heuristic "looks like an icon" check used when vector embedding is on.

Operates on raw host JSON so it can be decided before the subtree is
normalized.
"""

from __future__ import annotations

from typing import Any, Dict

from ..nodes.types import VECTOR_TYPES, NodeType

# Primitive shapes that are icons on their own when small enough
_ICON_PRIMITIVES = {t.value for t in VECTOR_TYPES} | {NodeType.BOOLEAN_OPERATION.value}

# Containers that may wrap icon primitives
_ICON_CONTAINERS = {
    NodeType.FRAME.value, NodeType.GROUP.value, NodeType.COMPONENT.value,
    NodeType.INSTANCE.value, NodeType.BOOLEAN_OPERATION.value,
}

# Children that rule out an icon
_DISQUALIFYING_TYPES = {NodeType.TEXT.value, NodeType.SLICE.value}


def has_svg_export_settings(raw: Dict[str, Any]) -> bool:
    return any(
        isinstance(s, dict) and s.get("format") == "SVG"
        for s in raw.get("exportSettings") or []
    )


def is_within_max_size(raw: Dict[str, Any], max_size: int) -> bool:
    box = raw.get("absoluteBoundingBox") or {}
    width = raw.get("width", box.get("width"))
    height = raw.get("height", box.get("height"))
    if not isinstance(width, (int, float)) or not isinstance(height, (int, float)):
        return False
    return 0 < width <= max_size and 0 < height <= max_size


def is_likely_icon(raw: Dict[str, Any], max_size: int = 64) -> bool:
    """Small vector primitive, or small container made only of icon parts."""
    if raw.get("visible") is False:
        return False
    if has_svg_export_settings(raw):
        return True
    if not is_within_max_size(raw, max_size):
        return False
    return _is_icon_part(raw)


def _is_icon_part(raw: Dict[str, Any]) -> bool:
    node_type = raw.get("type")
    if node_type in _DISQUALIFYING_TYPES:
        return False
    if node_type in _ICON_PRIMITIVES and not raw.get("children"):
        return True
    if node_type == NodeType.RECTANGLE.value:
        # Plain rectangles only count inside an icon container
        return True
    if node_type not in _ICON_CONTAINERS:
        return False
    # Auto-layout frames are layout, not artwork
    if node_type == NodeType.FRAME.value and raw.get("layoutMode") not in (None, "NONE"):
        return False
    visible = [c for c in raw.get("children") or [] if c.get("visible") is not False]
    if not visible:
        return False
    if all(c.get("type") == NodeType.RECTANGLE.value for c in visible):
        return False
    return all(_is_icon_part(c) for c in visible)
