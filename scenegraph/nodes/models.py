"""Normalized scene-tree model.

One dataclass variant per node kind:

- ContainerNode: FRAME / SECTION / COMPONENT / COMPONENT_SET / INSTANCE /
  BOOLEAN_OPERATION (and GROUP after it is converted to FRAME)
- RectangleNode: RECTANGLE (and childless containers)
- TextNode: TEXT
- VectorNode: VECTOR / ELLIPSE / STAR / POLYGON / REGULAR_POLYGON / LINE

The parent link is ``parent_id``; resolve it through the conversion context's
node index. Nodes never hold a reference to their parent object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .types import (
    CONTAINER_TYPES,
    VECTOR_TYPES,
    BoundingBox,
    Effect,
    NodeType,
    Paint,
    StyledTextSegment,
)


@dataclass
class ColorVariableMapping:
    """Resolved variable for one color found inside a flattened subtree."""
    variable_id: str
    variable_name: str

    def to_dict(self) -> Dict[str, str]:
        return {"variableId": self.variable_id, "variableName": self.variable_name}


@dataclass
class NormalizedNode:
    id: str
    name: str
    type: NodeType
    unique_name: str = ""

    # Geometry, relative to the parent (root: relative to origin)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0  # degrees
    cumulative_rotation: float = 0.0  # degrees
    absolute_bounding_box: Optional[BoundingBox] = None

    parent_id: Optional[str] = None

    # Paint
    fills: List[Paint] = field(default_factory=list)
    strokes: List[Paint] = field(default_factory=list)
    effects: List[Effect] = field(default_factory=list)
    stroke_top_weight: Optional[float] = None
    stroke_bottom_weight: Optional[float] = None
    stroke_left_weight: Optional[float] = None
    stroke_right_weight: Optional[float] = None
    export_settings: List[Dict[str, Any]] = field(default_factory=list)

    # Participation in the parent's layout
    layout_mode: Optional[str] = None
    layout_grow: Optional[float] = None
    layout_sizing_horizontal: Optional[str] = None
    layout_sizing_vertical: Optional[str] = None
    layout_positioning: Optional[str] = None
    primary_axis_align_items: Optional[str] = None
    counter_axis_align_items: Optional[str] = None

    # Rendering hints
    can_be_flattened: bool = False
    color_variable_mappings: Optional[Dict[str, ColorVariableMapping]] = None

    # Host fields without a dedicated attribute (cornerRadius, opacity, ...)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def children(self) -> List["NormalizedNode"]:
        return []

    @property
    def is_absolute(self) -> bool:
        return self.layout_positioning == "ABSOLUTE"

    def walk(self) -> Iterator["NormalizedNode"]:
        """Pre-order traversal of this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase shape consumed by code generators."""
        out: Dict[str, Any] = dict(self.properties)
        out.update({
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "uniqueName": self.unique_name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "rotation": self.rotation,
            "cumulativeRotation": self.cumulative_rotation,
            "parentId": self.parent_id,
            "fills": [p.to_dict() for p in self.fills],
            "strokes": [p.to_dict() for p in self.strokes],
            "effects": [e.to_dict() for e in self.effects],
            "layoutMode": self.layout_mode,
            "layoutGrow": self.layout_grow,
            "layoutSizingHorizontal": self.layout_sizing_horizontal,
            "layoutSizingVertical": self.layout_sizing_vertical,
            "primaryAxisAlignItems": self.primary_axis_align_items,
            "counterAxisAlignItems": self.counter_axis_align_items,
            "canBeFlattened": self.can_be_flattened,
        })
        if self.absolute_bounding_box:
            out["absoluteBoundingBox"] = self.absolute_bounding_box.to_dict()
        if self.layout_positioning:
            out["layoutPositioning"] = self.layout_positioning
        if self.export_settings:
            out["exportSettings"] = self.export_settings
        for side in ("top", "bottom", "left", "right"):
            weight = getattr(self, f"stroke_{side}_weight")
            if weight is not None:
                out[f"stroke{side.capitalize()}Weight"] = weight
        if self.color_variable_mappings is not None:
            out["colorVariableMappings"] = {
                key: m.to_dict() for key, m in self.color_variable_mappings.items()
            }
        return out


@dataclass
class ContainerNode(NormalizedNode):
    child_nodes: List[NormalizedNode] = field(default_factory=list)
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    item_spacing: Optional[float] = None
    is_relative: bool = False
    item_reverse_z_index: bool = False

    @property
    def children(self) -> List[NormalizedNode]:
        return self.child_nodes

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update({
            "paddingLeft": self.padding_left,
            "paddingRight": self.padding_right,
            "paddingTop": self.padding_top,
            "paddingBottom": self.padding_bottom,
            "isRelative": self.is_relative,
            "children": [c.to_dict() for c in self.child_nodes],
        })
        if self.item_spacing is not None:
            out["itemSpacing"] = self.item_spacing
        if self.item_reverse_z_index:
            out["itemReverseZIndex"] = True
        return out


@dataclass
class RectangleNode(NormalizedNode):
    pass


@dataclass
class VectorNode(NormalizedNode):
    pass


@dataclass
class TextNode(NormalizedNode):
    characters: str = ""
    styled_text_segments: List[StyledTextSegment] = field(default_factory=list)
    text_auto_resize: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[float] = None
    text_align_horizontal: Optional[str] = None
    text_align_vertical: Optional[str] = None
    letter_spacing: Optional[float] = None
    line_height_px: Optional[float] = None
    # Style keys without a dedicated attribute (textCase, italic, ...)
    text_style: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update(self.text_style)
        out.update({
            "characters": self.characters,
            "styledTextSegments": [s.to_dict() for s in self.styled_text_segments],
            "textAutoResize": self.text_auto_resize,
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "fontWeight": self.font_weight,
            "textAlignHorizontal": self.text_align_horizontal,
            "textAlignVertical": self.text_align_vertical,
            "letterSpacing": self.letter_spacing,
            "lineHeightPx": self.line_height_px,
        })
        return out


# --- Construction from host JSON ---

# Raw keys consumed by build_node (everything else lands in ``properties``)
_CONSUMED_KEYS = frozenset({
    "id", "name", "type", "visible", "children", "rotation", "absoluteBoundingBox",
    "fills", "strokes", "effects", "individualStrokeWeights", "exportSettings",
    "layoutMode", "layoutGrow", "layoutSizingHorizontal", "layoutSizingVertical",
    "layoutPositioning", "primaryAxisAlignItems", "counterAxisAlignItems",
    "paddingLeft", "paddingRight", "paddingTop", "paddingBottom", "itemSpacing",
    "itemReverseZIndex", "isRelative", "characters", "style", "textAutoResize",
    "characterStyleOverrides", "styleOverrideTable",
})

# TEXT style keys with a dedicated TextNode attribute
_TEXT_STYLE_FIELDS = {
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "fontWeight": "font_weight",
    "textAlignHorizontal": "text_align_horizontal",
    "textAlignVertical": "text_align_vertical",
    "letterSpacing": "letter_spacing",
    "lineHeightPx": "line_height_px",
    "textAutoResize": "text_auto_resize",
}


def node_class_for(node_type: NodeType) -> type:
    if node_type in CONTAINER_TYPES:
        return ContainerNode
    if node_type == NodeType.TEXT:
        return TextNode
    if node_type in VECTOR_TYPES:
        return VectorNode
    return RectangleNode


def build_node(raw: Dict[str, Any], node_type: NodeType) -> NormalizedNode:
    """Create the variant for ``node_type`` from a raw host JSON node.

    Geometry, names and layout defaults are filled in later by the
    normalizer; this only carries over what the host exported.
    """
    cls = node_class_for(node_type)
    common: Dict[str, Any] = dict(
        id=raw["id"],
        name=raw.get("name", ""),
        type=node_type,
        absolute_bounding_box=BoundingBox.from_raw(raw.get("absoluteBoundingBox")),
        fills=[Paint.from_raw(p) for p in _as_list(raw.get("fills"))],
        strokes=[Paint.from_raw(p) for p in _as_list(raw.get("strokes"))],
        effects=[Effect.from_raw(e) for e in _as_list(raw.get("effects"))],
        export_settings=list(_as_list(raw.get("exportSettings"))),
        layout_mode=raw.get("layoutMode"),
        layout_grow=raw.get("layoutGrow"),
        layout_sizing_horizontal=raw.get("layoutSizingHorizontal"),
        layout_sizing_vertical=raw.get("layoutSizingVertical"),
        layout_positioning=raw.get("layoutPositioning"),
        primary_axis_align_items=raw.get("primaryAxisAlignItems"),
        counter_axis_align_items=raw.get("counterAxisAlignItems"),
        properties={k: v for k, v in raw.items() if k not in _CONSUMED_KEYS},
    )

    weights = raw.get("individualStrokeWeights")
    if isinstance(weights, dict):
        common.update(
            stroke_top_weight=weights.get("top"),
            stroke_bottom_weight=weights.get("bottom"),
            stroke_left_weight=weights.get("left"),
            stroke_right_weight=weights.get("right"),
        )

    if cls is ContainerNode:
        return ContainerNode(
            **common,
            padding_left=raw.get("paddingLeft"),
            padding_right=raw.get("paddingRight"),
            padding_top=raw.get("paddingTop"),
            padding_bottom=raw.get("paddingBottom"),
            item_spacing=raw.get("itemSpacing"),
            is_relative=bool(raw.get("isRelative", False)),
            item_reverse_z_index=bool(raw.get("itemReverseZIndex", False)),
        )
    if cls is TextNode:
        return TextNode(
            **common,
            characters=raw.get("characters", ""),
            text_auto_resize=raw.get("textAutoResize"),
        )
    return cls(**common)


def inline_text_style(node: TextNode, style: Dict[str, Any]) -> None:
    """Copy a TEXT node's base style onto the node itself."""
    for key, value in style.items():
        attr = _TEXT_STYLE_FIELDS.get(key)
        if attr:
            setattr(node, attr, value)
        else:
            node.text_style[key] = value


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []
