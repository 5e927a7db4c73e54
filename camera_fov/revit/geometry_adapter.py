"""
Revit geometry -> host-independent geometry tree.

Converts GeometryElement content into SolidNode / CurveNode / InstanceNode
so camera_fov.core.extraction never touches the Revit API. Everything is
duck-typed (Edges, GetSymbolGeometry, GetEndPoint, GraphicsStyleId), which
keeps the module importable and testable outside Revit.

Notes
-----
- Only Line and Arc curves are converted; other curve types (splines,
  ellipses, unbound circles) become None and are reported by the extractor.
- Instances are converted from GetSymbolGeometry() plus their Transform;
  transform composition is left to the extractor's worklist.
"""

from ..core.curves import Arc, Line
from ..core.extraction import ObstacleCurve, project_curve
from ..core.geometry_tree import CurveNode, GeometrySource, InstanceNode, SolidNode
from ..core.math_utils import Plane, Transform3
from .collection_policy import resolve_category_ids

# Optional Revit API bindings (allow pytest outside Revit)
try:
    from Autodesk.Revit.DB import (
        ElementMulticategoryFilter,
        FilteredElementCollector,
        Options,
        ViewDetailLevel,
    )
except Exception:
    ElementMulticategoryFilter = None
    FilteredElementCollector = None
    Options = None
    ViewDetailLevel = None

_MAX_INSTANCE_DEPTH = 64


def _log(level, msg):
    """Print-based log line (Dynamo/pyRevit hosts without logging config)."""
    print("[{0}] camera_fov.geometry: {1}".format(level, msg))


def _type_name(obj):
    try:
        return obj.GetType().Name
    except Exception:
        return type(obj).__name__


def _xyz(p):
    return (float(p.X), float(p.Y), float(p.Z))


def element_id_value(eid):
    """Integer value of an ElementId (Revit 2024+ .Value, older .IntegerValue)."""
    if eid is None:
        return None
    for attr in ("Value", "IntegerValue"):
        v = getattr(eid, attr, None)
        if v is not None:
            try:
                return int(v)
            except (TypeError, ValueError):
                continue
    return None


def style_id_of(obj):
    """GraphicsStyleId of a geometry object; None when absent or invalid."""
    sid = getattr(obj, "GraphicsStyleId", None)
    if sid is None:
        return None
    v = element_id_value(sid)
    if v is not None and v < 0:
        return None
    return sid


def convert_curve(c):
    """Revit Curve -> Line/Arc; None for unbound or unsupported curves."""
    if c is None:
        return None
    name = _type_name(c)
    if name not in ("Line", "Arc"):
        return None
    try:
        if getattr(c, "IsBound", True) is False:
            return None
        start = _xyz(c.GetEndPoint(0))
        end = _xyz(c.GetEndPoint(1))
        if name == "Line":
            return Line(start, end)
        mid = _xyz(c.Evaluate(0.5, True))
        return Arc(start, end, mid)
    except Exception as e:
        _log("DEBUG", "curve conversion failed ({0}): {1}".format(name, e))
        return None


def _edge_curves(solid):
    out = []
    edges = getattr(solid, "Edges", None)
    if edges is None:
        return out
    for edge in edges:
        try:
            out.append(convert_curve(edge.AsCurve()))
        except Exception as e:
            _log("DEBUG", "edge AsCurve failed: {0}".format(e))
            out.append(None)
    return out


def convert_geometry(geom, _depth=0):
    """Convert an iterable of Revit GeometryObjects into geometry-tree nodes."""
    nodes = []
    if geom is None:
        return nodes
    if _depth > _MAX_INSTANCE_DEPTH:
        _log("WARN", "instance nesting deeper than {0}; truncated".format(_MAX_INSTANCE_DEPTH))
        return nodes

    for obj in geom:
        if obj is None:
            continue
        if hasattr(obj, "GetSymbolGeometry") or hasattr(obj, "GetInstanceGeometry"):
            if hasattr(obj, "GetSymbolGeometry"):
                children = convert_geometry(obj.GetSymbolGeometry(), _depth + 1)
                transform = Transform3.from_revit(getattr(obj, "Transform", None))
            else:
                children = convert_geometry(obj.GetInstanceGeometry(), _depth + 1)
                transform = Transform3.identity()
            nodes.append(InstanceNode(children, transform, style_id=style_id_of(obj)))
        elif hasattr(obj, "Edges"):
            edges = _edge_curves(obj)
            if edges:
                nodes.append(SolidNode(edges, style_id=style_id_of(obj)))
        elif hasattr(obj, "GetEndPoint"):
            nodes.append(CurveNode(convert_curve(obj), style_id=style_id_of(obj)))
        # Meshes, points and polylines carry no obstacle edges
    return nodes


def make_category_resolver(doc):
    """style_id -> Category via doc.GetElement(style).GraphicsStyleCategory.

    Returns None when the style or its category cannot be found; exceptions
    propagate to the CategoryFilter, which keeps the primitive.
    """

    def resolve(style_id):
        style = doc.GetElement(style_id)
        if style is None:
            return None
        return getattr(style, "GraphicsStyleCategory", None)

    return resolve


def view_plane(view, fallback_z=None):
    """Projection plane of a plan view.

    Order: the view's sketch plane, a horizontal plane at the view's level
    elevation, then a horizontal plane at ``fallback_z`` (camera elevation),
    then the view origin.
    """
    sketch = getattr(view, "SketchPlane", None)
    if sketch is not None:
        p = sketch.GetPlane()
        return Plane(_xyz(p.Origin), _xyz(p.Normal))
    level = getattr(view, "GenLevel", None)
    if level is not None:
        return Plane.horizontal(float(level.Elevation))
    if fallback_z is not None:
        return Plane.horizontal(float(fallback_z))
    origin = getattr(view, "Origin", None)
    z = float(origin.Z) if origin is not None else 0.0
    return Plane.horizontal(z)


def _builtin_categories(names):
    from Autodesk.Revit.DB import BuiltInCategory  # type: ignore

    out = []
    for n in names:
        bic = getattr(BuiltInCategory, n, None)
        if bic is not None:
            out.append(bic)
    return out


def _category_bic(elem, id_map):
    cat = getattr(elem, "Category", None)
    if cat is None:
        return None
    return id_map.get(element_id_value(getattr(cat, "Id", None)))


def _host_options(view):
    opts = Options()
    opts.View = view
    opts.ComputeReferences = True
    return opts


def _link_options():
    opts = Options()
    opts.ComputeReferences = False
    opts.DetailLevel = ViewDetailLevel.Fine
    return opts


def collect_host_sources(doc, view, cfg):
    """GeometrySource per whitelisted, non-type element visible in view."""
    sources = []
    if FilteredElementCollector is None:
        _log("WARN", "Revit API not available; no host elements collected")
        return sources

    from System.Collections.Generic import List  # type: ignore
    from Autodesk.Revit.DB import BuiltInCategory  # type: ignore

    bics = List[BuiltInCategory](_builtin_categories(cfg.category_whitelist))
    collector = (
        FilteredElementCollector(doc, view.Id)
        .WherePasses(ElementMulticategoryFilter(bics))
        .WhereElementIsNotElementType()
    )
    id_map = resolve_category_ids(doc, cfg.category_whitelist)
    opts = _host_options(view)

    for elem in collector:
        try:
            geom = elem.get_Geometry(opts)
        except Exception as e:
            _log("DEBUG", "get_Geometry failed for {0}: {1}".format(element_id_value(elem.Id), e))
            continue
        if geom is None:
            continue
        sources.append(
            GeometrySource(
                convert_geometry(geom),
                host_transform=None,
                linked=False,
                source_id=element_id_value(elem.Id),
                category=_category_bic(elem, id_map),
            )
        )
    _log("INFO", "Collected {0} host obstacle elements".format(len(sources)))
    return sources


def collect_link_sources(link_instance, cfg):
    """GeometrySource per whitelisted element of one linked model.

    Every source carries the link's total transform as its host transform.
    """
    sources = []
    link_doc = link_instance.GetLinkDocument()
    if link_doc is None:
        _log("WARN", "Link document is not loaded: {0}".format(getattr(link_instance, "Name", "?")))
        return sources

    from System.Collections.Generic import List  # type: ignore
    from Autodesk.Revit.DB import BuiltInCategory  # type: ignore

    link_trf = Transform3.from_revit(link_instance.GetTotalTransform())
    bics = List[BuiltInCategory](_builtin_categories(cfg.category_whitelist))
    collector = (
        FilteredElementCollector(link_doc)
        .WherePasses(ElementMulticategoryFilter(bics))
        .WhereElementIsNotElementType()
    )
    id_map = resolve_category_ids(link_doc, cfg.category_whitelist)
    opts = _link_options()
    link_key = element_id_value(link_instance.Id)
    resolver = make_category_resolver(link_doc)

    for elem in collector:
        try:
            geom = elem.get_Geometry(opts)
        except Exception as e:
            _log("DEBUG", "link get_Geometry failed: {0}".format(e))
            continue
        if geom is None:
            continue
        sources.append(
            GeometrySource(
                convert_geometry(geom),
                host_transform=link_trf,
                linked=True,
                source_id="{0}:{1}".format(link_key, element_id_value(elem.Id)),
                category=_category_bic(elem, id_map),
                resolve_category=resolver,
                category_ids=id_map,
            )
        )
    return sources


def collect_boundary_curves(doc, view, cfg, line_style_name="Boundary"):
    """Existing detail curves drawn with the boundary line style, as obstacles.

    Lets a previously traced (and hand-edited) obstacle outline be reused
    without re-extracting model geometry.
    """
    obstacles = []
    if FilteredElementCollector is None:
        return obstacles
    from Autodesk.Revit.DB import CurveElement  # type: ignore

    plane = view_plane(view)
    for ce in FilteredElementCollector(doc, view.Id).OfClass(CurveElement):
        style = getattr(ce, "LineStyle", None)
        if style is None or getattr(style, "Name", None) != line_style_name:
            continue
        curve = convert_curve(getattr(ce, "GeometryCurve", None))
        if curve is None:
            continue
        projected = project_curve(curve, plane, cfg.degenerate_length_ft)
        if projected is not None:
            obstacles.append(ObstacleCurve(projected, source_id=element_id_value(ce.Id)))
    return obstacles
