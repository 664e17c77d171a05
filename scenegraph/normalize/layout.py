"""Layout field defaults and child ordering."""

from __future__ import annotations

from typing import List

from ..nodes import ContainerNode, NormalizedNode


def apply_layout_defaults(node: NormalizedNode, has_children: bool) -> None:
    """Backfill layout fields so downstream generators never probe for them."""
    if isinstance(node, ContainerNode) and node.layout_mode not in (None, "NONE"):
        for side in ("left", "right", "top", "bottom"):
            attr = f"padding_{side}"
            if getattr(node, attr) is None:
                setattr(node, attr, 0)

    if not node.layout_mode:
        node.layout_mode = "NONE"
    if not node.layout_grow:
        node.layout_grow = 0
    if not node.layout_sizing_horizontal:
        node.layout_sizing_horizontal = "FIXED"
    if not node.layout_sizing_vertical:
        node.layout_sizing_vertical = "FIXED"
    if not node.primary_axis_align_items:
        node.primary_axis_align_items = "MIN"
    if not node.counter_axis_align_items:
        node.counter_axis_align_items = "MIN"

    # Nothing to hug
    if node.layout_sizing_horizontal == "HUG" and not has_children:
        node.layout_sizing_horizontal = "FIXED"
    if node.layout_sizing_vertical == "HUG" and not has_children:
        node.layout_sizing_vertical = "FIXED"


def update_relative_positioning(node: ContainerNode) -> None:
    """Children are positioned absolutely without flow layout or when any child opts out of it."""
    if node.layout_mode == "NONE" or any(c.is_absolute for c in node.child_nodes):
        node.is_relative = True


def reorder_children(node: ContainerNode) -> None:
    """Apply reverse z-index: reversed absolute children first, then flow children in order."""
    if not node.item_reverse_z_index or not node.child_nodes or node.layout_mode == "NONE":
        return
    absolute: List[NormalizedNode] = []
    flow: List[NormalizedNode] = []
    for child in node.child_nodes:
        (absolute if child.is_absolute else flow).append(child)
    node.child_nodes = absolute[::-1] + flow
