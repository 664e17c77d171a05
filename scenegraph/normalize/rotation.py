"""Rotation folding.

The host reports rotation in radians, counter-clockwise positive. Normalized
nodes use degrees with the sign inverted. Groups are rotation boundaries:
when a group becomes a container its own rotation is zeroed and added to the
cumulative rotation its children inherit, so leaves keep their visual angle.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


def radians_to_degrees(radians: Optional[float]) -> float:
    """Host radians → normalized degrees (sign inverted)."""
    if not radians:
        return 0.0
    return -radians * (180 / math.pi)


@dataclass
class FoldedRotation:
    own: float  # degrees reported on the node itself
    cumulative: float  # degrees inherited from ancestors
    for_children: float  # cumulative passed down to the node's children


def fold_rotation(
    raw_rotation: Optional[float],
    inherited: float,
    is_boundary: bool,
) -> FoldedRotation:
    """Fold a node's host rotation into the cumulative chain.

    Args:
        raw_rotation: Host rotation in radians (None/0 for unrotated).
        inherited: Cumulative degrees received from the parent.
        is_boundary: True for group-type nodes.
    """
    own = radians_to_degrees(raw_rotation)
    if is_boundary:
        return FoldedRotation(own=0.0, cumulative=inherited, for_children=inherited + own)
    return FoldedRotation(own=own, cumulative=inherited, for_children=inherited)
