# tests/test_extraction.py

import math

import pytest

from camera_fov.config import Config
from camera_fov.core.curves import Arc, Line
from camera_fov.core.diagnostics import Diagnostics
from camera_fov.core.extraction import (
    ObstacleExtractor,
    curve_key,
    extract,
    extract_obstacles,
    project_curve,
)
from camera_fov.core.geometry_tree import CurveNode, GeometrySource, InstanceNode, SolidNode
from camera_fov.core.math_utils import Plane, Transform3

WHITELIST = ["OST_Walls", "OST_StructuralColumns"]
FLOOR = Plane.horizontal(0.0)


class _Cat(object):
    def __init__(self, name, parent=None):
        self.Name = name
        self.Parent = parent


STYLES = {
    "wall": _Cat("Walls"),
    "wall_sub": _Cat("Wall Sweeps", parent=_Cat("Walls")),
    "furniture": _Cat("Furniture"),
}


def _resolve(style_id):
    return STYLES.get(style_id)


def _square(z=0.0):
    pts = [(0, 0, z), (4, 0, z), (4, 4, z), (0, 4, z)]
    return [Line(pts[k], pts[(k + 1) % 4]) for k in range(4)]


def test_curve_key_is_order_independent_and_folds_negative_zero():
    a = Line((0.0, -0.0, 0.0), (1.23449, 2.0, 0.0))
    assert curve_key(a) == curve_key(a.reversed())
    assert curve_key(a) == "0.0000,0.0000,0.0000|1.2345,2.0000,0.0000"


def test_duplicate_edges_emitted_once_either_direction():
    edges = _square()
    reversed_edges = [e.reversed() for e in edges]
    roots = [SolidNode(edges), SolidNode(reversed_edges)]
    out = extract(roots, WHITELIST, FLOOR)
    assert len(out) == 4
    assert len(set(o.key for o in out)) == 4


def test_projection_flattens_to_plane():
    out = extract([SolidNode(_square(z=10.0))], WHITELIST, FLOOR)
    assert all(o.curve.start[2] == 0.0 and o.curve.end[2] == 0.0 for o in out)


def test_vertical_edge_is_degenerate_not_a_warning():
    ex = ObstacleExtractor(FLOOR)
    ex.add_source(GeometrySource([SolidNode([Line((1, 1, 0), (1, 1, 9))])]))
    assert ex.obstacles == []
    assert ex.counts["degenerate"] == 1
    assert ex.warnings == []


def test_edge_on_arc_projects_to_line():
    arc = Arc((0, 0, 0), (2, 0, 0), (1, 0, 1))
    projected = project_curve(arc, FLOOR, 0.001)
    assert isinstance(projected, Line)
    assert projected.length == pytest.approx(2.0)


def test_null_primitives_are_skipped_and_recorded():
    diag = Diagnostics()
    ex = ObstacleExtractor(FLOOR, diag=diag)
    ex.add_source(GeometrySource([SolidNode([None, Line((0, 0, 0), (1, 0, 0)), None]), None], source_id=11))
    assert len(ex.obstacles) == 1
    assert [w.reason for w in ex.warnings] == ["null_geometry"] * 3
    # Per-primitive warnings are de-duplicated on diagnostics
    events = diag.to_dict()["events"]
    assert len(events) == 1
    assert events[0]["extra"]["suppressed_count"] == 2


def test_degenerate_plane_skips_every_primitive():
    ex = ObstacleExtractor(((0, 0, 0), (0, 0, 0)))
    ex.add_source(GeometrySource([SolidNode(_square())]))
    assert ex.obstacles == []
    assert len(ex.warnings) == 4
    assert ex.warnings[0].reason == "degenerate_plane"


def test_host_transform_applies_to_linked_geometry():
    link = Transform3.translation((100.0, 0.0, 0.0))
    out = extract([SolidNode([Line((0, 0, 0), (1, 0, 0))])], WHITELIST, FLOOR, host_transform=link)
    assert out[0].curve.start == (100.0, 0.0, 0.0)
    assert out[0].curve.end == (101.0, 0.0, 0.0)


def test_linked_standalone_curves_are_skipped_but_host_curves_kept():
    curve = CurveNode(Line((0, 0, 0), (5, 0, 0)))
    linked = extract([curve], WHITELIST, FLOOR, host_transform=Transform3.identity())
    host = extract([curve], WHITELIST, FLOOR)
    assert linked == []
    assert len(host) == 1


def test_linked_curves_kept_when_heuristic_disabled():
    cfg = Config(skip_linked_standalone_curves=False)
    curve = CurveNode(Line((0, 0, 0), (5, 0, 0)))
    out = extract([curve], None, FLOOR, linked=True, cfg=cfg)
    assert len(out) == 1


def test_linked_style_filter_with_fail_open():
    roots = [
        SolidNode([Line((0, 0, 0), (1, 0, 0))], style_id="wall"),
        SolidNode([Line((0, 1, 0), (1, 1, 0))], style_id="wall_sub"),
        SolidNode([Line((0, 2, 0), (1, 2, 0))], style_id="furniture"),
        SolidNode([Line((0, 3, 0), (1, 3, 0))], style_id="missing"),
        SolidNode([Line((0, 4, 0), (1, 4, 0))]),
    ]
    out = extract(roots, WHITELIST, FLOOR, resolve_category=_resolve, linked=True)
    ys = sorted(o.curve.start[1] for o in out)
    assert ys == [0.0, 1.0, 3.0, 4.0]


def test_excluded_instance_style_still_descends():
    child = SolidNode([Line((0, 0, 0), (1, 0, 0))], style_id="wall")
    inst = InstanceNode([child], Transform3.translation((0, 5, 0)), style_id="furniture")
    out = extract([inst], WHITELIST, FLOOR, resolve_category=_resolve, linked=True)
    assert len(out) == 1
    assert out[0].curve.start == (0.0, 5.0, 0.0)


def test_host_content_ignores_styles():
    roots = [SolidNode([Line((0, 0, 0), (1, 0, 0))], style_id="furniture")]
    out = extract(roots, WHITELIST, FLOOR, resolve_category=_resolve)
    assert len(out) == 1


def test_deep_nesting_uses_worklist_and_composes_transforms():
    node = SolidNode([Line((0, 0, 0), (1, 0, 0))])
    depth = 3000
    for _ in range(depth):
        node = InstanceNode([node], Transform3.translation((1.0, 0.0, 0.0)))
    out = extract([node], WHITELIST, FLOOR)
    assert len(out) == 1
    assert out[0].curve.start[0] == pytest.approx(float(depth))


def test_nested_rotation_then_translation_order():
    # Inner rotation by 90 degrees, outer translation: the edge is rotated first.
    inner = InstanceNode([SolidNode([Line((0, 0, 0), (2, 0, 0))])], Transform3.rotation_z(90.0))
    outer = InstanceNode([inner], Transform3.translation((10.0, 0.0, 0.0)))
    out = extract([outer], WHITELIST, FLOOR)
    assert out[0].curve.start == pytest.approx((10.0, 0.0, 0.0))
    assert out[0].curve.end == pytest.approx((10.0, 2.0, 0.0))


def test_shared_key_set_across_host_and_link_sources():
    edge = Line((0, 0, 0), (3, 0, 0))
    sources = [
        GeometrySource([SolidNode([edge])], source_id="host:1", category="OST_Walls"),
        GeometrySource(
            [SolidNode([Line((-100, 0, 0), (-97, 0, 0))], style_id="wall")],
            host_transform=Transform3.translation((100.0, 0.0, 0.0)),
            linked=True,
            source_id="link:7",
            resolve_category=_resolve,
        ),
    ]
    ex = extract_obstacles(sources, FLOOR)
    assert len(ex.obstacles) == 1
    assert ex.obstacles[0].source_id == "host:1"
    assert ex.counts["duplicates"] == 1
    assert ex.summary()["obstacles"] == 1


def test_host_source_outside_whitelist_is_filtered():
    ex = extract_obstacles(
        [GeometrySource([SolidNode(_square())], category="OST_Furniture")], FLOOR
    )
    assert ex.obstacles == []
    assert ex.counts["filtered"] == 1


def test_arc_midpoint_key_keeps_distinct_arcs_sharing_endpoints():
    upper = Arc((-1, 0, 0), (1, 0, 0), (0, 1, 0))
    lower = Arc((-1, 0, 0), (1, 0, 0), (0, -1, 0))
    roots = [SolidNode([upper, lower])]
    assert len(extract(roots, WHITELIST, FLOOR)) == 1
    cfg = Config(dedupe_arc_midpoint=True)
    assert len(extract(roots, WHITELIST, FLOOR, cfg=cfg)) == 2


def test_obstacle_identity_is_by_reference():
    out = extract([SolidNode(_square())], WHITELIST, FLOOR)
    assert out[0] is not out[1]
    assert not out[0].is_arc
    assert math.isclose(out[0].curve.length, 4.0)


class _CatId(object):
    def __init__(self, v):
        self.IntegerValue = v


class _LocalizedCat(object):
    """Category as seen on Revit before 2023 with a non-English UI: no BuiltInCategory."""

    def __init__(self, name, cid):
        self.Name = name
        self.Parent = None
        self.Id = _CatId(cid)


def _linked_square(style_id, resolver, category_ids=None):
    return GeometrySource(
        [SolidNode(_square(), style_id=style_id)],
        linked=True,
        source_id="link:3",
        resolve_category=resolver,
        category_ids=category_ids,
    )


def test_localized_linked_wall_is_kept_by_category_id():
    styles = {"wall": _LocalizedCat("Seinad", -2000011), "furniture": _LocalizedCat("Mööbel", -2000080)}
    ex = extract_obstacles([_linked_square("wall", styles.get)], FLOOR)
    assert len(ex.obstacles) == 4
    assert ex.counts["filtered"] == 0

    ex = extract_obstacles([_linked_square("furniture", styles.get)], FLOOR)
    assert ex.obstacles == []
    assert ex.summary()["policy"]["excluded_by_reason"] == {"not_in_allowlist": 1}


def test_link_document_category_ids_resolve_localized_styles():
    cfg = Config(category_whitelist=["OST_Walls", "OST_StairsRailing"])
    styles = {"railing": _LocalizedCat("Piirded", -2000126)}

    ex = extract_obstacles([_linked_square("railing", styles.get)], FLOOR, cfg=cfg)
    assert ex.obstacles == []

    source = _linked_square("railing", styles.get, category_ids={-2000126: "OST_StairsRailing"})
    ex = extract_obstacles([source], FLOOR, cfg=cfg)
    assert len(ex.obstacles) == 4


def test_extract_without_whitelist_uses_default_categories():
    styles = {"wall": _LocalizedCat("Seinad", -2000011), "furniture": _LocalizedCat("Mööbel", -2000080)}
    pts = [(10, 0, 0), (14, 0, 0), (14, 4, 0), (10, 4, 0)]
    furniture = [Line(pts[k], pts[(k + 1) % 4]) for k in range(4)]
    roots = [SolidNode(_square(), style_id="wall"), SolidNode(furniture, style_id="furniture")]
    out = extract(roots, None, FLOOR, resolve_category=styles.get, linked=True)
    assert len(out) == 4
    assert all(o.curve.start[0] <= 4.0 for o in out)
