"""Decide which subtrees are emitted as one embedded SVG.

Policies:
- explicit opt-in: an SVG export setting always qualifies;
- icon mode (``embedVectors`` on): ``is_likely_icon`` within the max size;
- asset mode (``embedVectors`` off): the node is within the max size and
  built only from vector-drawing leaves, or containers whose visible
  children all qualify.

A node below an already flattened ancestor never qualifies.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from ..nodes.types import NodeType
from .context import ConversionSettings
from .icon_detection import has_svg_export_settings, is_likely_icon, is_within_max_size

IconClassifier = Callable[[Dict[str, Any], int], bool]

ASSET_LEAF_TYPES = frozenset({
    NodeType.VECTOR.value,
    NodeType.BOOLEAN_OPERATION.value,
    NodeType.RECTANGLE.value,
    NodeType.ELLIPSE.value,
    NodeType.STAR.value,
    NodeType.POLYGON.value,
    NodeType.REGULAR_POLYGON.value,
    NodeType.LINE.value,
})

ASSET_CONTAINER_TYPES = frozenset({
    NodeType.GROUP.value,
    NodeType.FRAME.value,
    NodeType.COMPONENT.value,
    NodeType.INSTANCE.value,
})


def is_pure_vector_asset(raw: Dict[str, Any]) -> bool:
    """True for vector leaves and containers whose visible children all qualify."""
    if not raw or raw.get("visible") is False:
        return False
    node_type = raw.get("type")
    if node_type in ASSET_LEAF_TYPES:
        return True
    if node_type not in ASSET_CONTAINER_TYPES:
        return False
    visible = [c for c in raw.get("children") or [] if c.get("visible") is not False]
    if not visible:
        return False
    return all(is_pure_vector_asset(c) for c in visible)


def can_flatten(
    raw: Dict[str, Any],
    settings: ConversionSettings,
    inside_flattened: bool,
    icon_classifier: IconClassifier = is_likely_icon,
) -> bool:
    """Flatten decision for one node, made on its raw (pre-normalized) JSON."""
    if inside_flattened:
        return False
    opted_in = has_svg_export_settings(raw)
    max_size = settings.embed_vectors_max_size
    if settings.embed_vectors:
        return icon_classifier(raw, max_size)
    return opted_in or (is_within_max_size(raw, max_size) and is_pure_vector_asset(raw))
