"""Parent-relative geometry from absolute bounding boxes.

The host export only carries each node's axis-aligned absolute bounding box.
For a rotated node that box is larger than the node, so the unrotated size
and top-left offset are recovered from the box and the effective rotation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

from ..nodes import BoundingBox

# |cos²θ - sin²θ| below this is treated as a 45° rotation
_DEGENERATE_EPSILON = 1e-6


@dataclass
class Rectangle:
    left: float
    top: float
    width: float
    height: float


# (parent-relative bounding box, rotation in host degrees) -> rectangle
RectangleProjector = Callable[[BoundingBox, float], Rectangle]


def rectangle_from_bounding_box(box: BoundingBox, rotation_degrees: float) -> Rectangle:
    """Unrotated rectangle whose rotation by ``-rotation_degrees`` fills ``box``.

    ``box`` is already relative to the parent's absolute origin.
    """
    theta = math.radians(-rotation_degrees)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    abs_cos, abs_sin = abs(cos_t), abs(sin_t)

    denominator = abs_cos * abs_cos - abs_sin * abs_sin
    if abs(denominator) < _DEGENERATE_EPSILON:
        # At 45° the box cannot separate width from height; assume a square
        side = box.width / (abs_cos + abs_sin) if (abs_cos + abs_sin) else box.width
        width = height = side
    else:
        height = (box.width * abs_sin - box.height * abs_cos) / -denominator
        if abs_cos > _DEGENERATE_EPSILON:
            width = (box.width - height * abs_sin) / abs_cos
        else:
            width = box.height

    corners = ((0.0, 0.0), (width, 0.0), (width, height), (0.0, height))
    rotated = [(x * cos_t + y * sin_t, -x * sin_t + y * cos_t) for x, y in corners]
    min_x = min(x for x, _ in rotated)
    min_y = min(y for _, y in rotated)

    return Rectangle(
        left=round(box.x - min_x, 2),
        top=round(box.y - min_y, 2),
        width=round(width, 2),
        height=round(height, 2),
    )


def project(
    box: BoundingBox,
    parent_box: Optional[BoundingBox],
    own_rotation: float,
    cumulative_rotation: float,
    projector: RectangleProjector = rectangle_from_bounding_box,
) -> Rectangle:
    """Position and size of a node in its parent's unrotated space.

    The root (no parent box) keeps its absolute size at the origin.
    """
    if parent_box is None:
        return Rectangle(left=0.0, top=0.0, width=box.width, height=box.height)
    relative = BoundingBox(
        x=box.x - parent_box.x,
        y=box.y - parent_box.y,
        width=box.width,
        height=box.height,
    )
    return projector(relative, -(own_rotation + cumulative_rotation))
