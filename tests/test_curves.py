# tests/test_curves.py

import math

import pytest

from camera_fov.core.curves import Arc, Line, is_arc, ray_segment_intersection
from camera_fov.core.math_utils import (
    Plane,
    Transform3,
    feet_to_meters,
    meters_to_feet,
    mm_to_feet,
    normalize_deg,
)


def _close(a, b, tol=1e-9):
    return all(abs(x - y) <= tol for x, y in zip(a, b))


def test_unit_conversions():
    assert meters_to_feet(0.3048) == pytest.approx(1.0)
    assert feet_to_meters(10.0) == pytest.approx(3.048)
    assert mm_to_feet(304.8) == pytest.approx(1.0)


@pytest.mark.parametrize("angle,expected", [(-90.0, 270.0), (360.0, 0.0), (725.0, 5.0), (-1e-17, 0.0)])
def test_normalize_deg(angle, expected):
    assert normalize_deg(angle) == pytest.approx(expected)


def test_transform_multiply_applies_inner_first():
    outer = Transform3.translation((10.0, 0.0, 0.0))
    inner = Transform3.rotation_z(90.0)
    assert _close(outer.multiply(inner).of_point((1.0, 0.0, 0.0)), (10.0, 1.0, 0.0))
    assert _close(inner.multiply(outer).of_point((1.0, 0.0, 0.0)), (0.0, 11.0, 0.0))


def test_transform_from_revit_none_is_identity():
    assert Transform3.from_revit(None).is_identity()


def test_plane_rejects_zero_normal():
    with pytest.raises(ValueError):
        Plane((0, 0, 0), (0, 0, 0))
    with pytest.raises(ValueError):
        Plane((0, 0, 0), (float("nan"), 0, 1))


def test_plane_projection_is_orthogonal():
    pl = Plane.horizontal(2.0)
    assert pl.project_point((3.0, 4.0, 9.0)) == (3.0, 4.0, 2.0)
    assert pl.signed_distance((0.0, 0.0, 5.0)) == pytest.approx(3.0)


def test_ray_segment_hit_and_miss():
    # Ray along +Y from the origin, wall y = 5 from x = -1..1
    assert ray_segment_intersection(0, 0, 0, 1, -1, 5, 1, 5) == pytest.approx(5.0)
    # Behind the ray
    assert ray_segment_intersection(0, 0, 0, 1, -1, -5, 1, -5) is None
    # Parallel
    assert ray_segment_intersection(0, 0, 0, 1, 1, 0, 1, 10) is None


def test_line_is_immutable_and_reversible():
    ln = Line((0, 0), (3, 4))
    assert ln.length == pytest.approx(5.0)
    assert ln.reversed().start == (3.0, 4.0, 0.0)
    with pytest.raises(AttributeError):
        ln.start = (1, 1, 1)


def test_arc_from_center_quarter():
    a = Arc.from_center((0, 0, 0), 10.0, 0.0, math.pi / 2.0)
    assert is_arc(a)
    assert a.radius == pytest.approx(10.0)
    assert math.degrees(a.sweep) == pytest.approx(90.0)
    assert a.length == pytest.approx(10.0 * math.pi / 2.0)
    mid = a.evaluate_mid()
    assert _close(mid, (10.0 * math.cos(math.pi / 4), 10.0 * math.sin(math.pi / 4), 0.0))


def test_arc_rejects_collinear_points():
    with pytest.raises(ValueError):
        Arc((0, 0, 0), (2, 0, 0), (1, 0, 0))


def test_arc_from_center_wraps_end_angle():
    a = Arc.from_center((0, 0, 0), 1.0, math.radians(350), math.radians(10))
    assert math.degrees(a.sweep) == pytest.approx(20.0)


def test_arc_ray_intersection_respects_sweep():
    # Upper half circle of radius 5 about the origin
    a = Arc.from_center((0, 0, 0), 5.0, 0.0, math.pi - 1e-3)
    assert a.intersect_ray_xy((0, 0), (0, 1)) == [pytest.approx(5.0)]
    assert a.intersect_ray_xy((0, 0), (0, -1)) == []


def test_clockwise_arc_intersects_same_points():
    ccw = Arc((5, 0, 0), (0, 5, 0), (5 * math.cos(math.pi / 4), 5 * math.sin(math.pi / 4), 0))
    cw = ccw.reversed()
    d = (math.cos(math.radians(30)), math.sin(math.radians(30)))
    assert ccw.intersect_ray_xy((0, 0), d) == [pytest.approx(5.0)]
    assert cw.intersect_ray_xy((0, 0), d) == [pytest.approx(5.0)]


def test_transformed_and_flattened_arc():
    a = Arc.from_center((0, 0, 3.0), 2.0, 0.0, math.pi / 2.0)
    moved = a.transformed(Transform3.translation((1.0, 1.0, 0.0)))
    assert _close(moved.center, (1.0, 1.0, 3.0))
    flat = moved.flattened(0.0)
    assert flat.start[2] == 0.0
    assert flat.radius == pytest.approx(2.0)


def test_tessellate_runs_start_to_end():
    a = Arc.from_center((0, 0, 0), 1.0, 0.0, math.pi)
    pts = a.tessellate(10.0)
    assert pts[0] == a.start
    assert pts[-1] == a.end
    assert len(pts) >= 19
    r = a.reversed().tessellate(10.0)
    assert r[0] == a.end
