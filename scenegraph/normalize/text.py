"""TEXT node enrichment: styled runs, run ids, run colors, inlined style."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from ..integrations.host import STYLED_TEXT_FIELDS, HostNode, SceneHost
from ..nodes import StyledTextSegment, TextNode
from ..nodes.models import inline_text_style
from .color_variables import ColorVariableResolver
from .context import ConversionContext
from .naming import segment_base_name

BLEND_MODE_WARNING = "BlendMode is not supported in Text colors"

_SUPPORTED_TEXT_BLEND_MODES = ("PASS_THROUGH", "NORMAL")


async def enrich_text_node(
    node: TextNode,
    raw: Dict[str, Any],
    host_node: HostNode,
    host: SceneHost,
    resolver: ColorVariableResolver,
    context: ConversionContext,
) -> None:
    with context.stats.timed("styled_text"):
        runs = await host.get_styled_text_runs(host_node, STYLED_TEXT_FIELDS)

    if runs:
        segments = [StyledTextSegment.from_raw(run) for run in runs]
        base = segment_base_name(node.unique_name or node.name)

        if context.settings.use_color_variables:
            for segment in segments:
                if any(f.blend_mode not in _SUPPORTED_TEXT_BLEND_MODES for f in segment.fills):
                    context.warnings.add(BLEND_MODE_WARNING)
            await asyncio.gather(*(resolver.resolve_paints(s.fills) for s in segments))

        if len(segments) == 1:
            segments[0].unique_id = f"{base}_span"
        else:
            for index, segment in enumerate(segments, start=1):
                segment.unique_id = f"{base}_span_{index:02d}"
        node.styled_text_segments = segments

    inline_text_style(node, raw.get("style") or {})
    if not node.text_auto_resize:
        node.text_auto_resize = "NONE"
