# tests/test_geometry_adapter.py

import math

import pytest

import camera_fov.revit.geometry_adapter as ga
from camera_fov.core.camera import CameraProfile
from camera_fov.core.curves import Arc, Line
from camera_fov.core.extraction import extract_obstacles
from camera_fov.core.geometry_tree import NODE_CURVE, NODE_INSTANCE, NODE_SOLID, GeometrySource
from camera_fov.core.math_utils import Plane
from camera_fov.core.synthesizer import synthesize


class _FakeXYZ:
    def __init__(self, x, y, z=0.0):
        self.X = x
        self.Y = y
        self.Z = z


class _FakeId:
    def __init__(self, v):
        self.IntegerValue = v


class _FakeId2024:
    def __init__(self, v):
        self.Value = v


class _FakeType:
    def __init__(self, name):
        self.Name = name


class _FakeCurve:
    def __init__(self, type_name, points, bound=True, style=None):
        self._type = _FakeType(type_name)
        self._points = [_FakeXYZ(*p) for p in points]
        self.IsBound = bound
        self.GraphicsStyleId = style

    def GetType(self):
        return self._type

    def GetEndPoint(self, i):
        return self._points[i]

    def Evaluate(self, param, normalized):
        assert normalized
        return self._points[2]


class _BrokenCurve(_FakeCurve):
    def GetEndPoint(self, i):
        raise RuntimeError("curve is not bound")


class _FakeEdge:
    def __init__(self, curve):
        self._curve = curve

    def AsCurve(self):
        if self._curve is None:
            raise RuntimeError("edge has no curve")
        return self._curve


class _FakeSolid:
    def __init__(self, curves, style=None):
        self.Edges = [_FakeEdge(c) for c in curves]
        self.GraphicsStyleId = style


class _FakeTransform:
    def __init__(self, origin):
        self.Origin = _FakeXYZ(*origin)
        self.BasisX = _FakeXYZ(1.0, 0.0, 0.0)
        self.BasisY = _FakeXYZ(0.0, 1.0, 0.0)
        self.BasisZ = _FakeXYZ(0.0, 0.0, 1.0)


class _FakeInstance:
    def __init__(self, children, origin=(0.0, 0.0, 0.0)):
        self._children = children
        self.Transform = _FakeTransform(origin)

    def GetSymbolGeometry(self):
        return self._children


class _FakeMesh:
    NumTriangles = 12


def _line(a, b, **kw):
    return _FakeCurve("Line", [a, b], **kw)


def _box_edges(x0, y0, x1, y1):
    c = [(x0, y0, 0.0), (x1, y0, 0.0), (x1, y1, 0.0), (x0, y1, 0.0)]
    return [_line(c[k], c[(k + 1) % 4]) for k in range(4)]


def test_element_id_value_handles_both_apis():
    assert ga.element_id_value(None) is None
    assert ga.element_id_value(_FakeId(42)) == 42
    assert ga.element_id_value(_FakeId2024(7)) == 7
    assert ga.element_id_value(object()) is None


def test_style_id_of_skips_invalid_ids():
    assert ga.style_id_of(_line((0, 0), (1, 0), style=_FakeId(-1))) is None
    sid = _FakeId(12)
    assert ga.style_id_of(_line((0, 0), (1, 0), style=sid)) is sid
    assert ga.style_id_of(_FakeMesh()) is None


def test_convert_line_and_arc():
    line = ga.convert_curve(_line((0, 0, 1), (2, 0, 1)))
    assert line == Line((0, 0, 1), (2, 0, 1))

    arc = ga.convert_curve(_FakeCurve("Arc", [(1, 0, 0), (-1, 0, 0), (0, 1, 0)]))
    assert isinstance(arc, Arc)
    assert arc.radius == pytest.approx(1.0)


def test_unsupported_curves_become_none():
    assert ga.convert_curve(None) is None
    assert ga.convert_curve(_FakeCurve("HermiteSpline", [(0, 0), (1, 1)])) is None
    assert ga.convert_curve(_FakeCurve("Arc", [(1, 0), (-1, 0), (0, 1)], bound=False)) is None
    assert ga.convert_curve(_BrokenCurve("Line", [(0, 0), (1, 0)])) is None


def test_convert_geometry_builds_tree():
    geom = [
        None,
        _FakeSolid(_box_edges(0, 0, 1, 1) + [None], style=_FakeId(3)),
        _FakeSolid([]),
        _FakeMesh(),
        _line((0, 0), (5, 0)),
        _FakeInstance([_FakeSolid(_box_edges(0, 0, 2, 2))], origin=(10.0, 0.0, 0.0)),
    ]
    nodes = ga.convert_geometry(geom)
    assert [n.kind for n in nodes] == [NODE_SOLID, NODE_CURVE, NODE_INSTANCE]
    solid = nodes[0]
    assert len(solid.edges) == 5
    assert solid.edges[-1] is None
    assert solid.style_id.IntegerValue == 3
    inst = nodes[2]
    assert inst.transform.origin == (10.0, 0.0, 0.0)
    assert inst.children[0].kind == NODE_SOLID


def test_runaway_nesting_is_truncated():
    node = _FakeSolid(_box_edges(0, 0, 1, 1))
    for _ in range(ga._MAX_INSTANCE_DEPTH + 5):
        node = _FakeInstance([node])
    nodes = ga.convert_geometry([node])
    depth = 0
    while nodes and nodes[0].kind == NODE_INSTANCE:
        nodes = nodes[0].children
        depth += 1
    assert nodes == []
    assert depth <= ga._MAX_INSTANCE_DEPTH + 1


class _FakeSketchPlane:
    def __init__(self, z):
        self._plane = type("P", (), {"Origin": _FakeXYZ(0, 0, z), "Normal": _FakeXYZ(0, 0, 1)})()

    def GetPlane(self):
        return self._plane


class _FakeLevel:
    def __init__(self, elevation):
        self.Elevation = elevation


class _FakeView:
    def __init__(self, sketch=None, level=None, origin=None):
        self.SketchPlane = sketch
        self.GenLevel = level
        self.Origin = origin
        self.Id = _FakeId(900)


@pytest.mark.parametrize(
    "view, fallback, expected",
    [
        (_FakeView(sketch=_FakeSketchPlane(3.0), level=_FakeLevel(1.0)), 7.0, 3.0),
        (_FakeView(level=_FakeLevel(1.0)), 7.0, 1.0),
        (_FakeView(origin=_FakeXYZ(0, 0, 2.0)), 7.0, 7.0),
        (_FakeView(origin=_FakeXYZ(0, 0, 2.0)), None, 2.0),
        (_FakeView(), None, 0.0),
    ],
)
def test_view_plane_resolution_order(view, fallback, expected):
    plane = ga.view_plane(view, fallback_z=fallback)
    assert isinstance(plane, Plane)
    assert plane.origin[2] == expected
    assert plane.is_horizontal()


class _FakeStyle:
    def __init__(self, category):
        self.GraphicsStyleCategory = category


class _FakeDoc:
    def __init__(self, elements):
        self._elements = elements

    def GetElement(self, eid):
        return self._elements.get(ga.element_id_value(eid))


def test_category_resolver_reads_graphics_style():
    walls = object()
    resolve = ga.make_category_resolver(_FakeDoc({5: _FakeStyle(walls)}))
    assert resolve(_FakeId(5)) is walls
    assert resolve(_FakeId(6)) is None


class _FakeLink:
    Name = "Structure.rvt"
    Id = _FakeId(77)

    def GetLinkDocument(self):
        return None


def test_unloaded_link_yields_no_sources():
    assert ga.collect_link_sources(_FakeLink(), None) == []


@pytest.mark.skipif(ga.FilteredElementCollector is not None, reason="runs outside Revit only")
def test_collectors_are_empty_outside_revit():
    assert ga.collect_host_sources(object(), _FakeView(), None) == []
    assert ga.collect_boundary_curves(object(), _FakeView(), None) == []


def test_converted_tree_feeds_synthesis():
    # Camera in a 10 x 10 room with a free-standing column
    room = _FakeSolid(_box_edges(-5, -5, 5, 5))
    column = _FakeInstance([_FakeSolid(_box_edges(-0.5, -0.5, 0.5, 0.5))], origin=(2.0, 0.0, 0.0))
    sources = [
        GeometrySource(ga.convert_geometry([room]), source_id=1, category="OST_Walls"),
        GeometrySource(ga.convert_geometry([column]), source_id=2, category="OST_StructuralColumns"),
    ]
    extractor = extract_obstacles(sources, Plane.horizontal(0.0))
    assert len(extractor.obstacles) == 8

    cam = CameraProfile((0, 0, 0), 0.0, 45.0, 100.0, 2.0)
    loop = synthesize(cam, extractor.obstacles)
    assert loop.is_closed()
    # The column face shadows the middle of the cone
    faces = [
        c for c in loop
        if c.kind == "line" and c.start[0] == pytest.approx(1.5) and c.end[0] == pytest.approx(1.5)
    ]
    assert len(faces) == 1
    assert faces[0].start[1] < 0.0 < faces[0].end[1]
    assert max(math.hypot(v[0], v[1]) for v in loop.vertices()) <= math.hypot(5.0, 5.0) + 1e-9
