"""Normalized node model."""

from .models import (
    ColorVariableMapping,
    ContainerNode,
    NormalizedNode,
    RectangleNode,
    TextNode,
    VectorNode,
    build_node,
)
from .types import (
    BoundingBox,
    Color,
    Effect,
    GradientStop,
    NodeType,
    Paint,
    StyledTextSegment,
    VariableAlias,
)

__all__ = [
    "BoundingBox",
    "Color",
    "ColorVariableMapping",
    "ContainerNode",
    "Effect",
    "GradientStop",
    "NodeType",
    "NormalizedNode",
    "Paint",
    "RectangleNode",
    "StyledTextSegment",
    "TextNode",
    "VariableAlias",
    "VectorNode",
    "build_node",
]
