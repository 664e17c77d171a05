"""Code generation stage.

A generator turns the normalized tree into the artifacts shown on the display
side. The built-in ``JsonTreeGenerator`` emits the tree itself (the
"selection JSON" download) together with the solid colors it uses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

from .nodes import NormalizedNode
from .normalize.context import ConversionSettings
from .transport.messages import HTMLPreview, PreviewSize


@dataclass
class GeneratedArtifact:
    code: str
    html_preview: HTMLPreview = field(default_factory=HTMLPreview)
    colors: List[Dict[str, Any]] = field(default_factory=list)
    gradients: List[Dict[str, Any]] = field(default_factory=list)


class CodeGenerator(Protocol):
    def generate(
        self, nodes: Sequence[NormalizedNode], settings: ConversionSettings
    ) -> GeneratedArtifact: ...


class JsonTreeGenerator:
    """Pretty-printed JSON of the normalized tree."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def generate(
        self, nodes: Sequence[NormalizedNode], settings: ConversionSettings
    ) -> GeneratedArtifact:
        code = json.dumps([node.to_dict() for node in nodes], indent=self.indent)
        width = max((n.width for n in nodes), default=0)
        height = sum(n.height for n in nodes)
        return GeneratedArtifact(
            code=code,
            html_preview=HTMLPreview(size=PreviewSize(width=width, height=height)),
            colors=solid_colors(nodes, settings),
        )


def solid_colors(
    nodes: Sequence[NormalizedNode], settings: ConversionSettings
) -> List[Dict[str, Any]]:
    """Distinct visible solid fill colors, in first-seen order."""
    seen: Dict[str, Dict[str, Any]] = {}
    for root in nodes:
        for node in root.walk():
            for paint in node.fills:
                if paint.type != "SOLID" or not paint.visible or paint.color is None:
                    continue
                hex_value = paint.color.to_hex()
                if hex_value in seen:
                    continue
                name = paint.variable_color_name if settings.use_color_variables else None
                seen[hex_value] = {
                    "hex": hex_value,
                    "colorName": name or "",
                    "exportValue": f"var(--{name}, {hex_value})" if name else hex_value,
                }
    return list(seen.values())
