"""Generation-side conversion runner.

One run: announce start, normalize the selection, generate artifacts, and
ship them over the channel (chunked when large). Any failure that escapes
normalization ends the run with an ``error`` message instead.
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence

from .codegen import CodeGenerator, JsonTreeGenerator
from .integrations.host import HostNode, SceneHost
from .logging_config import get_pipeline_logger
from .nodes import NormalizedNode
from .normalize import ConversionContext, ConversionSettings, nodes_to_json
from .transport.channel import MessageChannel
from .transport.messages import ConversionStartMessage, EmptyMessage, ErrorMessage
from .transport.sender import ChunkedSender

logger = get_pipeline_logger()


async def run_conversion(
    host: SceneHost,
    nodes: Sequence[HostNode],
    settings: ConversionSettings,
    channel: MessageChannel,
    generator: Optional[CodeGenerator] = None,
    context: Optional[ConversionContext] = None,
    sender: Optional[ChunkedSender] = None,
) -> List[NormalizedNode]:
    """Convert ``nodes`` and post the result on ``channel``.

    Args:
        host: Host collaborator the nodes belong to.
        nodes: Selected top-level host nodes (may be empty).
        settings: User preferences for this run.
        channel: Destination channel; not closed here.
        generator: Code generator (default: JsonTreeGenerator).
        context: Per-run state; a fresh one is created when omitted.
        sender: Chunked sender bound to ``channel`` (default thresholds if omitted).

    Returns:
        The normalized tree (empty on error or empty selection).
    """
    generator = generator or JsonTreeGenerator()
    context = context or ConversionContext(settings=settings)
    context.settings = settings
    sender = sender or ChunkedSender(channel)

    if not nodes:
        await channel.post(EmptyMessage())
        return []

    await channel.post(ConversionStartMessage())
    start = time.perf_counter()
    try:
        tree = await nodes_to_json(host, nodes, context)
        artifact = generator.generate(tree, settings)
        await sender.send_conversion(
            code=artifact.code,
            html_preview=artifact.html_preview,
            colors=artifact.colors,
            gradients=artifact.gradients,
            warnings=context.warnings.to_list(),
            settings=settings,
        )
    except Exception as e:
        logger.error(f"Conversion failed: {e}", exc_info=True)
        await channel.post(ErrorMessage(error=str(e) or type(e).__name__))
        return []

    logger.info(
        f"Conversion done: {len(nodes)} selected, {len(tree)} emitted, "
        f"{len(context.warnings)} warnings, "
        f"{(time.perf_counter() - start) * 1000:.0f}ms"
    )
    return tree
