"""Tests for the shape registry and the anchor resolver."""
from __future__ import annotations

import math
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from anchors import AnchorResolver, fallback_point
from geometry import Point, distance, rotate_point
from models import Node, ShapeKind
from shapes import AnchorDef, RegistryError, ShapeRegistry, create_default_registry
from shapes.common import center


@pytest.fixture(scope="module")
def registry():
    return create_default_registry()


@pytest.fixture(scope="module")
def resolver(registry):
    return AnchorResolver(registry)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_every_shape_registered(self, registry):
        assert set(registry.list_shapes()) == set(ShapeKind)
        for kind in ShapeKind:
            assert registry.has_anchors(kind)

    def test_duplicate_factory_rejected(self):
        reg = ShapeRegistry()
        reg.register(ShapeKind.CIRCLE, lambda node, register_color: None)
        with pytest.raises(RegistryError):
            reg.register(ShapeKind.CIRCLE, lambda node, register_color: None)

    def test_duplicate_anchor_id_rejected(self):
        reg = ShapeRegistry()
        with pytest.raises(RegistryError):
            reg.register_anchors(ShapeKind.RECTANGLE, [
                AnchorDef("north", center),
                AnchorDef("north", center),
            ])

    def test_alias_colliding_with_id_rejected(self):
        reg = ShapeRegistry()
        with pytest.raises(RegistryError):
            reg.register_anchors(ShapeKind.RECTANGLE, [
                AnchorDef("north", center),
                AnchorDef("top", center, aliases=("north",)),
            ])

    def test_empty_anchor_set_rejected(self):
        with pytest.raises(RegistryError):
            ShapeRegistry().register_anchors(ShapeKind.RECTANGLE, [])

    def test_registry_error_is_value_error(self):
        assert issubclass(RegistryError, ValueError)

    def test_incomplete_registry_fails_verification(self):
        with pytest.raises(RegistryError):
            ShapeRegistry().verify_complete()

    def test_alias_lookup_reports_canonical_id(self, registry):
        record = registry.find_anchor(ShapeKind.RECTANGLE, "northeast")
        assert record.id == "northeast"
        assert record.canonical_id == "north east"

    def test_anchor_listing_is_unique(self, registry):
        names = [r.canonical_id for r in registry.anchors(ShapeKind.CIRCLE)]
        assert len(names) == len(set(names))


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class TestAnchorResolver:
    def test_circle_east(self, resolver):
        node = Node(id="a", x=100, y=50, shape=ShapeKind.CIRCLE)
        assert resolver.resolve(node, "east") == Point(132, 50)

    def test_circle_north_is_up(self, resolver):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE)
        p = resolver.resolve(node, "north")
        assert p.x == pytest.approx(0, abs=1e-9)
        assert p.y == pytest.approx(-32)

    def test_alias_resolves_like_canonical(self, resolver):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.RECTANGLE)
        assert resolver.resolve(node, "northeast") == resolver.resolve(node, "north east")
        assert resolver.resolve(node, "north east") == Point(56, -32)

    def test_unknown_name_falls_back_to_center(self, resolver):
        node = Node(id="a", x=10, y=20, shape=ShapeKind.RECTANGLE)
        assert resolver.resolve(node, "nowhere") == Point(10, 20)

    def test_fallback_point_cardinals(self):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.RECTANGLE)
        assert fallback_point(node, "south") == Point(0, 32)
        assert fallback_point(node, None) == Point(0, 0)

    def test_cylinder_north_is_top_of_cap(self, resolver):
        node = Node(id="db", x=0, y=0, shape=ShapeKind.CYLINDER)
        p = resolver.resolve(node, "north")
        assert p.y == pytest.approx(-(12 + 19.6))

    def test_triangle_apex_points_east(self, resolver):
        node = Node(id="t", x=0, y=0, shape=ShapeKind.TRIANGLE)
        apex = resolver.resolve(node, "apex")
        assert apex.x > 0
        assert apex.y == pytest.approx(0, abs=1e-9)

    def test_tikz_anchor_spelling(self, resolver):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.RECTANGLE)
        assert resolver.tikz_anchor(node, "northeast") == "north east"
        assert resolver.tikz_anchor(node, None) is None

    def test_connectable_points_exclude_center(self, resolver):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE)
        names = [a.name for a in resolver.connectable_points(node)]
        assert "center" not in names
        assert "north" in names

    def test_nearest_cardinal(self, resolver):
        node = Node(id="a", x=0, y=0, shape=ShapeKind.CIRCLE)
        assert resolver.nearest_cardinal(node, Point(500, 10)) == "east"
        assert resolver.nearest_cardinal(node, Point(0, -400)) == "north"

    @pytest.mark.parametrize("shape", list(ShapeKind))
    def test_rotation_preserves_distance_to_center(self, resolver, shape):
        plain = Node(id="a", x=40, y=-25, shape=shape)
        turned = Node(id="b", x=40, y=-25, shape=shape, rotate=30, border_rotate=15)
        for anchor in resolver.anchor_points(plain):
            rotated = resolver.resolve(turned, anchor.name)
            assert distance(rotated, turned.center) == pytest.approx(
                distance(anchor.point, plain.center), abs=1e-6)

    def test_rotation_is_about_node_center(self, resolver):
        plain = Node(id="a", x=0, y=0, shape=ShapeKind.RECTANGLE)
        turned = Node(id="b", x=0, y=0, shape=ShapeKind.RECTANGLE, rotate=90)
        expected = rotate_point(resolver.resolve(plain, "east"), Point(0, 0), math.pi / 2)
        got = resolver.resolve(turned, "east")
        assert got.x == pytest.approx(expected.x, abs=1e-9)
        assert got.y == pytest.approx(expected.y, abs=1e-9)

    @pytest.mark.parametrize("angle", [-360, -270, -135, -45, 0, 30, 90, 180, 225, 360])
    @pytest.mark.parametrize("shape", list(ShapeKind))
    def test_rotated_anchor_matches_rotated_point(self, resolver, shape, angle):
        plain = Node(id="a", x=40, y=-25, shape=shape)
        turned = Node(id="b", x=40, y=-25, shape=shape, rotate=angle)
        for anchor in resolver.anchor_points(plain):
            expected = rotate_point(anchor.point, plain.center, math.radians(angle))
            got = resolver.resolve(turned, anchor.name)
            assert got.x == pytest.approx(expected.x, abs=1e-6)
            assert got.y == pytest.approx(expected.y, abs=1e-6)

    @pytest.mark.parametrize("shape", list(ShapeKind))
    def test_every_shape_has_connectable_cardinals(self, resolver, shape):
        node = Node(id="a", x=10, y=20, shape=shape)
        connectable = {a.name for a in resolver.connectable_points(node)}
        for name in ("north", "south", "east", "west"):
            assert name in connectable
            point = resolver.resolve(node, name)
            assert math.isfinite(point.x) and math.isfinite(point.y)
