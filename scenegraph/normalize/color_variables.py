"""Design-system color variables.

Two jobs:

1. While a node is normalized, every fill/stroke/gradient stop/shadow bound
   to a variable gets ``variable_color_name`` (resolved through the host once
   per id per run).
2. After a flattened subtree is fully normalized, its bound solid colors are
   collected into ``color_variable_mappings`` so the SVG markup generator can
   swap literal colors for variables.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Dict, List, Optional

from ..integrations.host import SceneHost
from ..nodes import ColorVariableMapping, Effect, NormalizedNode, Paint
from .context import ConversionContext

logger = logging.getLogger("scenegraph.normalize.colors")

_CSS_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")

# Extra keys an SVG renderer may use instead of hex for these colors
_NAMED_ALIASES = {
    "#ffffff": ("white", "rgb(255,255,255)"),
    "#000000": ("black", "rgb(0,0,0)"),
}


def sanitize_variable_name(name: str) -> str:
    return _CSS_UNSAFE.sub("-", name)


def variable_to_color_name(variable_id: str, host_name: Optional[str]) -> str:
    """Stable CSS-friendly name for a variable.

    Uses the host's variable name ("Brand/Primary" → "Brand-Primary"), or the
    id itself when the host has no name for it.
    """
    if host_name:
        name = host_name.replace("/", "-").replace(" ", "-")
    else:
        name = variable_id.lower().replace(":", "-")
    return sanitize_variable_name(name.replace(",", ""))


class ColorVariableResolver:
    """Resolves variable ids for one conversion run.

    Results are cached in ``context.variable_cache``; concurrent requests for
    an id that is still being looked up share the same host call.
    """

    def __init__(self, host: SceneHost, context: ConversionContext):
        self._host = host
        self._context = context
        self._inflight: Dict[str, asyncio.Future] = {}

    async def resolve_variable(self, variable_id: str) -> str:
        cache = self._context.variable_cache
        if variable_id in cache:
            return cache[variable_id]
        pending = self._inflight.get(variable_id)
        if pending is not None:
            return await pending

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[variable_id] = future
        try:
            with self._context.stats.timed("variable_lookup"):
                host_name = await self._host.resolve_variable_name(variable_id)
            name = variable_to_color_name(variable_id, host_name)
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported twice
            future.exception()
            raise
        finally:
            self._inflight.pop(variable_id, None)

        cache[variable_id] = name
        future.set_result(name)
        return name

    async def resolve_paint(self, paint: Paint) -> None:
        """Attach ``variable_color_name`` to a bound solid paint or gradient stops."""
        self._context.stats.color_variable_calls += 1
        if paint.is_gradient:
            bound_stops = [s for s in paint.gradient_stops if s.bound_variable]
            if not bound_stops:
                return
            names = await asyncio.gather(
                *(self.resolve_variable(s.bound_variable.id) for s in bound_stops)
            )
            for stop, name in zip(bound_stops, names):
                stop.variable_color_name = name
        elif paint.type == "SOLID" and paint.bound_variable:
            paint.variable_color_name = await self.resolve_variable(paint.bound_variable.id)

    async def resolve_effect(self, effect: Effect) -> None:
        self._context.stats.color_variable_calls += 1
        if effect.bound_variable:
            effect.variable_color_name = await self.resolve_variable(effect.bound_variable.id)

    async def resolve_node(self, node: NormalizedNode) -> None:
        """Resolve all of a node's fills, strokes and shadow effects concurrently."""
        if not self._context.settings.use_color_variables:
            return
        await asyncio.gather(
            *(self.resolve_paint(p) for p in node.fills),
            *(self.resolve_paint(p) for p in node.strokes),
            *(self.resolve_effect(e) for e in node.effects if e.is_shadow),
        )

    async def resolve_paints(self, paints: List[Paint]) -> None:
        await asyncio.gather(*(self.resolve_paint(p) for p in paints))


def collect_subtree_color_mappings(node: NormalizedNode) -> Dict[str, ColorVariableMapping]:
    """Map colors used in ``node``'s subtree to their resolved variables.

    Keys are lowercase hex; pure white/black also get their CSS name and
    ``rgb()`` forms. Mappings found deeper in the tree win over the parent's.
    """
    mappings: Dict[str, ColorVariableMapping] = {}
    for paint in [*node.fills, *node.strokes]:
        _add_paint_mapping(mappings, paint)
    for child in node.children:
        mappings.update(collect_subtree_color_mappings(child))
    return mappings


def _add_paint_mapping(mappings: Dict[str, ColorVariableMapping], paint: Paint) -> None:
    if not (
        paint.type == "SOLID"
        and paint.variable_color_name
        and paint.color
        and paint.bound_variable
    ):
        return
    variable_name = paint.bound_variable.name or paint.variable_color_name
    info = ColorVariableMapping(
        variable_id=paint.bound_variable.id,
        variable_name=sanitize_variable_name(variable_name),
    )
    hex_color = paint.color.to_hex()
    mappings[hex_color] = info
    for alias in _NAMED_ALIASES.get(hex_color, ()):
        mappings[alias] = info


def get_variable_name_from_color(
    hex_color: str,
    mappings: Optional[Dict[str, ColorVariableMapping]],
) -> Optional[str]:
    """Variable name for a color inside a flattened node, if one was bound."""
    if not mappings:
        return None
    mapping = mappings.get(hex_color.lower())
    return mapping.variable_name if mapping else None
