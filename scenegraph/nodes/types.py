"""Value types shared by normalized nodes: node kinds, colors, paints, effects.

Raw inputs are REST-format dicts (the host's JSON export). Each type parses
the fields it understands and keeps everything else in ``extra`` so that
``to_dict()`` round-trips the host payload for the code generator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeType(str, Enum):
    DOCUMENT = "DOCUMENT"
    CANVAS = "CANVAS"
    FRAME = "FRAME"
    GROUP = "GROUP"
    SECTION = "SECTION"
    COMPONENT = "COMPONENT"
    COMPONENT_SET = "COMPONENT_SET"
    INSTANCE = "INSTANCE"
    RECTANGLE = "RECTANGLE"
    TEXT = "TEXT"
    VECTOR = "VECTOR"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    ELLIPSE = "ELLIPSE"
    STAR = "STAR"
    POLYGON = "POLYGON"
    REGULAR_POLYGON = "REGULAR_POLYGON"
    LINE = "LINE"
    SLICE = "SLICE"

    @classmethod
    def parse(cls, value: Any) -> Optional["NodeType"]:
        """Return the enum member for ``value`` or None for unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            return None


# Containers that degrade to a plain rectangle when they have no children
EMPTY_CONVERTIBLE_TYPES = frozenset({
    NodeType.FRAME, NodeType.INSTANCE, NodeType.COMPONENT, NodeType.COMPONENT_SET,
})

# Kinds normalized into a ContainerNode
CONTAINER_TYPES = frozenset({
    NodeType.FRAME, NodeType.GROUP, NodeType.SECTION, NodeType.COMPONENT,
    NodeType.COMPONENT_SET, NodeType.INSTANCE, NodeType.BOOLEAN_OPERATION,
})

# Vector drawing primitives
VECTOR_TYPES = frozenset({
    NodeType.VECTOR, NodeType.ELLIPSE, NodeType.STAR, NodeType.POLYGON,
    NodeType.REGULAR_POLYGON, NodeType.LINE,
})

# Kinds that survive normalization
SUPPORTED_TYPES = CONTAINER_TYPES | VECTOR_TYPES | {NodeType.RECTANGLE, NodeType.TEXT}

GRADIENT_PAINT_TYPES = frozenset({
    "GRADIENT_LINEAR", "GRADIENT_RADIAL", "GRADIENT_ANGULAR", "GRADIENT_DIAMOND",
})

SHADOW_EFFECT_TYPES = frozenset({"DROP_SHADOW", "INNER_SHADOW"})


@dataclass
class Color:
    """RGBA color with channels in the 0-1 range."""
    r: float
    g: float
    b: float
    a: float = 1.0

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> Optional["Color"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            r=float(raw.get("r", 0)),
            g=float(raw.get("g", 0)),
            b=float(raw.get("b", 0)),
            a=float(raw.get("a", 1)),
        )

    def to_rgb255(self) -> tuple[int, int, int]:
        return round(self.r * 255), round(self.g * 255), round(self.b * 255)

    def to_hex(self) -> str:
        """Lowercase ``#rrggbb`` (alpha ignored)."""
        r, g, b = self.to_rgb255()
        return f"#{r:02x}{g:02x}{b:02x}"

    def to_dict(self) -> Dict[str, float]:
        return {"r": self.r, "g": self.g, "b": self.b, "a": self.a}


@dataclass
class VariableAlias:
    """A design-system variable bound to a color slot."""
    id: str
    name: Optional[str] = None

    @classmethod
    def from_bound_variables(cls, raw: Any) -> Optional["VariableAlias"]:
        if not isinstance(raw, dict):
            return None
        alias = raw.get("color")
        if not isinstance(alias, dict) or not alias.get("id"):
            return None
        return cls(id=alias["id"], name=alias.get("name"))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": "VARIABLE_ALIAS", "id": self.id}
        if self.name:
            out["name"] = self.name
        return out


@dataclass
class GradientStop:
    position: float
    color: Optional[Color] = None
    bound_variable: Optional[VariableAlias] = None
    variable_color_name: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "GradientStop":
        return cls(
            position=float(raw.get("position", 0)),
            color=Color.from_raw(raw.get("color")),
            bound_variable=VariableAlias.from_bound_variables(raw.get("boundVariables")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"position": self.position}
        if self.color:
            out["color"] = self.color.to_dict()
        if self.bound_variable:
            out["boundVariables"] = {"color": self.bound_variable.to_dict()}
        if self.variable_color_name:
            out["variableColorName"] = self.variable_color_name
        return out


_PAINT_KEYS = {"type", "blendMode", "visible", "opacity", "color", "boundVariables", "gradientStops"}


@dataclass
class Paint:
    """A fill or stroke entry."""
    type: str
    blend_mode: str = "NORMAL"
    visible: bool = True
    opacity: float = 1.0
    color: Optional[Color] = None
    bound_variable: Optional[VariableAlias] = None
    variable_color_name: Optional[str] = None
    gradient_stops: List[GradientStop] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "Paint":
        return cls(
            type=raw.get("type", "SOLID"),
            blend_mode=raw.get("blendMode") or "NORMAL",
            visible=raw.get("visible", True) is not False,
            opacity=float(raw.get("opacity", 1)),
            color=Color.from_raw(raw.get("color")),
            bound_variable=VariableAlias.from_bound_variables(raw.get("boundVariables")),
            gradient_stops=[GradientStop.from_raw(s) for s in raw.get("gradientStops") or []],
            extra={k: v for k, v in raw.items() if k not in _PAINT_KEYS},
        )

    @property
    def is_gradient(self) -> bool:
        return self.type in GRADIENT_PAINT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "blendMode": self.blend_mode,
            "visible": self.visible,
            "opacity": self.opacity,
        }
        if self.color:
            out["color"] = self.color.to_dict()
        if self.bound_variable:
            out["boundVariables"] = {"color": self.bound_variable.to_dict()}
        if self.variable_color_name:
            out["variableColorName"] = self.variable_color_name
        if self.gradient_stops:
            out["gradientStops"] = [s.to_dict() for s in self.gradient_stops]
        out.update(self.extra)
        return out


_EFFECT_KEYS = {"type", "visible", "color", "boundVariables"}


@dataclass
class Effect:
    """A shadow or blur effect."""
    type: str
    visible: bool = True
    color: Optional[Color] = None
    bound_variable: Optional[VariableAlias] = None
    variable_color_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "Effect":
        return cls(
            type=raw.get("type", ""),
            visible=raw.get("visible", True) is not False,
            color=Color.from_raw(raw.get("color")),
            bound_variable=VariableAlias.from_bound_variables(raw.get("boundVariables")),
            extra={k: v for k, v in raw.items() if k not in _EFFECT_KEYS},
        )

    @property
    def is_shadow(self) -> bool:
        return self.type in SHADOW_EFFECT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "visible": self.visible}
        if self.color:
            out["color"] = self.color.to_dict()
        if self.bound_variable:
            out["boundVariables"] = {"color": self.bound_variable.to_dict()}
        if self.variable_color_name:
            out["variableColorName"] = self.variable_color_name
        out.update(self.extra)
        return out


@dataclass
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["BoundingBox"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            x=float(raw.get("x", 0)),
            y=float(raw.get("y", 0)),
            width=float(raw.get("width", 0)),
            height=float(raw.get("height", 0)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class StyledTextSegment:
    """One styled run of a text node."""
    characters: str
    start: int
    end: int
    unique_id: str = ""
    fills: List[Paint] = field(default_factory=list)
    style: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "StyledTextSegment":
        reserved = {"characters", "start", "end", "fills", "uniqueId"}
        return cls(
            characters=raw.get("characters", ""),
            start=int(raw.get("start", 0)),
            end=int(raw.get("end", 0)),
            unique_id=raw.get("uniqueId", ""),
            fills=[Paint.from_raw(p) for p in raw.get("fills") or []],
            style={k: v for k, v in raw.items() if k not in reserved},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "characters": self.characters,
            "start": self.start,
            "end": self.end,
            "uniqueId": self.unique_id,
            "fills": [p.to_dict() for p in self.fills],
        }
        out.update(self.style)
        return out
