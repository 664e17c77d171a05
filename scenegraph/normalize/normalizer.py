"""Scene-tree normalization.

Walks each selected host node together with its exported JSON, producing the
normalized tree consumed by code generators:

    raw host JSON + host node  →  NormalizedNode (variant per node kind)

Per node: budget guard → visibility/id filter → empty container becomes a
rectangle → rotation folding → GROUP becomes a free-form FRAME → unsupported
kinds dropped → parent link → unique name → text runs → parent-relative
geometry → flatten decision + color variables → layout defaults → children.

Color mappings for flattened subtrees are collected in a second pass once the
whole top-level tree is normalized.

Top-level nodes are processed one at a time; a failure in one of them is
reported as a warning and does not affect the others.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from ..integrations.host import HostNode, SceneHost
from ..nodes import BoundingBox, ContainerNode, NormalizedNode, TextNode, build_node
from ..nodes.types import EMPTY_CONVERTIBLE_TYPES, SUPPORTED_TYPES, NodeType
from .color_variables import ColorVariableResolver, collect_subtree_color_mappings
from .context import ConversionContext
from .geometry import RectangleProjector, project, rectangle_from_bounding_box
from .icon_detection import is_likely_icon
from .layout import apply_layout_defaults, reorder_children, update_relative_positioning
from .naming import unique_name
from .rotation import fold_rotation
from .text import enrich_text_node
from .vector_assets import IconClassifier, can_flatten

logger = logging.getLogger("scenegraph.normalize")

FAILED_NODE_WARNING = (
    'Failed to process node "{name}". It might be too complex or contain errors.'
)

_ORIGIN = BoundingBox(x=0.0, y=0.0, width=0.0, height=0.0)


def count_host_nodes(node: HostNode, limit: int) -> int:
    """Size of a host subtree, stopping early once it exceeds ``limit``."""
    count = 1
    for child in node.children:
        count += count_host_nodes(child, limit)
        if count > limit:
            return count
    return count


class TreeNormalizer:
    """Normalizes host nodes for one conversion run.

    Args:
        host: Host collaborator (export, variables, styled text).
        context: Per-run state owned by the caller.
        icon_classifier: "Looks like an icon" check used in embed-vectors mode.
        projector: Bounding box + rotation → unrotated rectangle.
    """

    def __init__(
        self,
        host: SceneHost,
        context: ConversionContext,
        icon_classifier: IconClassifier = is_likely_icon,
        projector: RectangleProjector = rectangle_from_bounding_box,
    ):
        self._host = host
        self._context = context
        self._icon_classifier = icon_classifier
        self._projector = projector
        self._resolver = ColorVariableResolver(host, context)

    async def normalize(self, nodes: Sequence[HostNode]) -> List[NormalizedNode]:
        context = self._context

        total = 0
        for node in nodes:
            total += count_host_nodes(node, context.node_limit)
            if total > context.node_limit:
                context.warn_too_many_nodes()
                logger.warning(
                    f"normalize: selection exceeds {context.node_limit} nodes, skipping run"
                )
                return []

        run_start = time.perf_counter()
        result: List[NormalizedNode] = []
        for node in nodes:
            try:
                export_start = time.perf_counter()
                with context.stats.timed("export"):
                    raw = await self._host.export_raw_tree(node)
                logger.info(
                    f"[benchmark] export {node.id}: "
                    f"{(time.perf_counter() - export_start) * 1000:.0f}ms"
                )

                process_start = time.perf_counter()
                emitted = await self._process_pair(raw, node, parent=None, inherited_rotation=0.0)
                self._collect_color_mappings()
                logger.info(
                    f"[benchmark] process {node.id}: "
                    f"{(time.perf_counter() - process_start) * 1000:.0f}ms"
                )
                result.extend(emitted)
            except Exception as e:
                context.pending_color_collection.clear()
                logger.error(f"Error exporting/processing node {node.id}: {e}", exc_info=True)
                context.warnings.add(FAILED_NODE_WARNING.format(name=node.name))

        logger.info(
            f"[benchmark] run: {(time.perf_counter() - run_start) * 1000:.0f}ms, "
            f"{context.stats.summary()}"
        )
        return result

    async def _process_pair(
        self,
        raw: Dict[str, Any],
        host_node: HostNode,
        parent: Optional[ContainerNode],
        inherited_rotation: float,
        counted: bool = False,
    ) -> List[NormalizedNode]:
        """Normalize one node and its subtree; returns the nodes to emit (0..n)."""
        context = self._context
        if not counted and not context.count_node():
            return []

        if not raw.get("id") or raw.get("visible") is False:
            return []

        node_type = NodeType.parse(raw.get("type"))
        if node_type in EMPTY_CONVERTIBLE_TYPES and not raw.get("children"):
            return await self._process_pair(
                {**raw, "type": NodeType.RECTANGLE.value},
                host_node,
                parent,
                inherited_rotation,
                counted=True,
            )

        is_group = node_type == NodeType.GROUP
        rotation = fold_rotation(raw.get("rotation"), inherited_rotation, is_boundary=is_group)
        if is_group:
            node_type = NodeType.FRAME

        if node_type not in SUPPORTED_TYPES:
            return []

        node = build_node(raw, node_type)
        node.rotation = rotation.own
        node.cumulative_rotation = rotation.cumulative
        if is_group:
            node.layout_mode = "NONE"
            node.is_relative = True
        if parent is not None:
            node.parent_id = parent.id
        context.register(node)

        node.unique_name = unique_name(
            node.name, context.name_counters, fallback=node_type.value.lower()
        )

        if isinstance(node, TextNode):
            await enrich_text_node(node, raw, host_node, self._host, self._resolver, context)

        if node.absolute_bounding_box is not None:
            parent_box = None
            if parent is not None:
                parent_box = parent.absolute_bounding_box or _ORIGIN
            rect = project(
                node.absolute_bounding_box,
                parent_box,
                node.rotation,
                node.cumulative_rotation,
                self._projector,
            )
            node.x, node.y = rect.left, rect.top
            node.width, node.height = rect.width, rect.height

        inside_flattened = any(a.can_be_flattened for a in context.ancestors(node))
        node.can_be_flattened = can_flatten(
            {**raw, "type": node_type.value, "width": node.width, "height": node.height},
            context.settings,
            inside_flattened,
            self._icon_classifier,
        )
        if node.can_be_flattened and context.settings.use_color_variables:
            context.pending_color_collection.append(node.id)

        await self._resolver.resolve_node(node)

        raw_children: List[Dict[str, Any]] = raw.get("children") or []
        apply_layout_defaults(node, has_children=bool(raw_children))

        if isinstance(node, ContainerNode) and raw_children:
            host_children = {child.id: child for child in host_node.children}
            processed: List[NormalizedNode] = []
            for child_raw in raw_children:
                if child_raw.get("visible") is False:
                    continue
                host_child = host_children.get(child_raw.get("id"))
                if host_child is None:
                    continue
                processed.extend(
                    await self._process_pair(child_raw, host_child, node, rotation.for_children)
                )
                if context.limit_exceeded:
                    break
            node.child_nodes = processed
            update_relative_positioning(node)
            reorder_children(node)

        return [node]

    def _collect_color_mappings(self) -> None:
        """Second pass: attach color mappings to flattened nodes of the finished tree."""
        context = self._context
        for node_id in context.pending_color_collection:
            node = context.node_index[node_id]
            node.color_variable_mappings = collect_subtree_color_mappings(node)
        context.pending_color_collection.clear()


async def nodes_to_json(
    host: SceneHost,
    nodes: Sequence[HostNode],
    context: ConversionContext,
    **normalizer_options: Any,
) -> List[NormalizedNode]:
    """Normalize a selection. Resets ``context`` first; warnings end up in it."""
    context.reset()
    return await TreeNormalizer(host, context, **normalizer_options).normalize(nodes)
