"""Tests for scenegraph.normalize.geometry."""

import pytest

from scenegraph.nodes import BoundingBox
from scenegraph.normalize.geometry import Rectangle, project, rectangle_from_bounding_box


class TestRectangleFromBoundingBox:

    def test_unrotated_box_is_unchanged(self):
        rect = rectangle_from_bounding_box(BoundingBox(10, 20, 30, 40), 0)
        assert rect == Rectangle(left=10, top=20, width=30, height=40)

    def test_quarter_turn_swaps_dimensions(self):
        # A 10x20 node rotated 90° has a 20x10 bounding box
        rect = rectangle_from_bounding_box(BoundingBox(0, 0, 20, 10), 90)
        assert rect.width == pytest.approx(10)
        assert rect.height == pytest.approx(20)

    def test_forty_five_degrees_assumes_square(self):
        side = 10.0
        diagonal = side * 2 ** 0.5
        rect = rectangle_from_bounding_box(BoundingBox(0, 0, diagonal, diagonal), 45)
        assert rect.width == pytest.approx(side, abs=0.01)
        assert rect.height == pytest.approx(side, abs=0.01)

    def test_values_rounded_to_two_places(self):
        rect = rectangle_from_bounding_box(BoundingBox(0.123456, 0, 10.987654, 5), 0)
        assert rect.left == 0.12
        assert rect.width == 10.99


class TestProject:

    def test_root_is_placed_at_origin(self):
        rect = project(BoundingBox(500, 300, 80, 60), None, 0, 0)
        assert rect == Rectangle(left=0, top=0, width=80, height=60)

    def test_child_is_relative_to_parent(self):
        rect = project(BoundingBox(110, 120, 20, 20), BoundingBox(100, 100, 200, 200), 0, 0)
        assert (rect.left, rect.top) == (10, 20)

    def test_projector_receives_negated_total_rotation(self):
        calls = []

        def projector(box, rotation):
            calls.append((box, rotation))
            return Rectangle(0, 0, box.width, box.height)

        project(BoundingBox(5, 5, 10, 10), BoundingBox(0, 0, 50, 50), -30, -90, projector)
        box, rotation = calls[0]
        assert rotation == 120
        assert (box.x, box.y) == (5, 5)
