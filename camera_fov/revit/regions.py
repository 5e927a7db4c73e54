"""
Revit region host: BoundaryLoop -> FilledRegion in a plan view.

RevitRegionHost is the document-side implementation of
camera_fov.pipeline.RegionHost. It also owns the one-time document setup the
pipeline relies on: the DORI filled region types and the "Boundary" line
style used to trace obstacle outlines.

Notes
-----
- Must be importable under pytest (outside Revit). Autodesk names are bound
  through a guarded import and only touched inside methods.
- When the document is already modifiable (a Dynamo node inside the
  TransactionManager), no nested Transaction is started.
"""

from contextlib import contextmanager

from ..core.camera import DORI_LEVELS, dori_region_type_name
from ..pipeline import RegionHost
from .geometry_adapter import element_id_value

# Optional Revit API bindings (allow pytest outside Revit)
try:
    from Autodesk.Revit.DB import (
        Arc as RevitArc,
        Color,
        CurveElement,
        CurveLoop,
        FilledRegion,
        FilledRegionType,
        FillPatternElement,
        FilteredElementCollector,
        GraphicsStyle,
        Line as RevitLine,
        Transaction,
        XYZ,
    )
except Exception:
    RevitArc = None
    Color = None
    CurveElement = None
    CurveLoop = None
    FilledRegion = None
    FilledRegionType = None
    FillPatternElement = None
    FilteredElementCollector = None
    GraphicsStyle = None
    RevitLine = None
    Transaction = None
    XYZ = None

INVISIBLE_LINE_STYLE = "<Invisible lines>"
BOUNDARY_LINE_STYLE = "Boundary"

# dori_<ppm>px -> RGB
DORI_REGION_COLORS = {
    "dori_25px": (255, 213, 213),
    "dori_63px": (255, 252, 232),
    "dori_125px": (223, 239, 255),
    "dori_250px": (226, 252, 231),
}


def _log(level, msg):
    print("[{0}] camera_fov.regions: {1}".format(level, msg))


def missing_region_types(existing_names):
    """DORI region type names (detection first) absent from existing_names.

    Example:
        >>> missing_region_types(["dori_63px", "Solid Black"])
        ['dori_25px', 'dori_125px', 'dori_250px']
    """
    existing = set(existing_names or ())
    out = []
    for level, _ in DORI_LEVELS:
        name = dori_region_type_name(level)
        if name not in existing:
            out.append(name)
    return out


@contextmanager
def revit_transaction(doc, name):
    """Start/commit a Transaction; roll back and re-raise on exception."""
    if getattr(doc, "IsModifiable", False):
        yield None
        return

    t = Transaction(doc, name)
    t.Start()
    try:
        yield t
    except Exception:
        try:
            t.RollBack()
        except Exception as rb_e:
            _log("WARN", "RollBack failed for '{0}': {1}".format(name, rb_e))
        raise
    t.Commit()


def _xyz(p):
    return XYZ(float(p[0]), float(p[1]), float(p[2]))


def to_revit_curve(curve):
    """camera_fov Line/Arc -> Autodesk Line/Arc."""
    if getattr(curve, "kind", None) == "arc":
        return RevitArc.Create(_xyz(curve.start), _xyz(curve.end), _xyz(curve.evaluate_mid()))
    return RevitLine.CreateBound(_xyz(curve.start), _xyz(curve.end))


def to_curve_loop(loop):
    cl = CurveLoop()
    for c in loop:
        cl.Append(to_revit_curve(c))
    return cl


def find_graphics_style(doc, name):
    for gs in FilteredElementCollector(doc).OfClass(GraphicsStyle):
        if str(gs.Name).lower() == name.lower():
            return gs
    return None


def region_types_by_name(doc):
    """{name: ElementId} of every FilledRegionType in doc."""
    out = {}
    for rt in FilteredElementCollector(doc).OfClass(FilledRegionType):
        out[str(rt.Name)] = rt.Id
    return out


def ensure_dori_region_types(doc):
    """Create the missing dori_* filled region types with solid colored fills.

    Returns:
        {region type name: ElementId} for all four DORI types

    Raises:
        RuntimeError when the document has no region type to duplicate or no
        solid fill pattern.
    """
    existing = dict((rt.Name, rt) for rt in FilteredElementCollector(doc).OfClass(FilledRegionType))
    missing = missing_region_types(existing.keys())
    if missing:
        template = next(iter(existing.values()), None)
        if template is None:
            raise RuntimeError("No filled region type to duplicate")
        solid = None
        for fp in FilteredElementCollector(doc).OfClass(FillPatternElement):
            if fp.GetFillPattern().IsSolidFill:
                solid = fp
                break
        if solid is None:
            raise RuntimeError("Solid fill pattern not found")

        with revit_transaction(doc, "Create DORI region types"):
            for name in missing:
                new_type = template.Duplicate(name)
                new_type.ForegroundPatternId = solid.Id
                new_type.ForegroundPatternColor = Color(*DORI_REGION_COLORS[name])
                new_type.IsMasking = False
                existing[name] = new_type
        _log("INFO", "Created region types: {0}".format(", ".join(missing)))

    return dict((name, existing[name].Id) for name in DORI_REGION_COLORS if name in existing)


def ensure_boundary_line_style(doc, name=BOUNDARY_LINE_STYLE):
    """Green solid 'Boundary' subcategory of Lines; returns its projection GraphicsStyle."""
    from Autodesk.Revit.DB import BuiltInCategory, GraphicsStyleType, LinePatternElement  # type: ignore

    lines = doc.Settings.Categories.get_Item(BuiltInCategory.OST_Lines)
    sub = None
    for c in lines.SubCategories:
        if c.Name == name:
            sub = c
            break
    if sub is None:
        with revit_transaction(doc, "Create boundary line style"):
            sub = doc.Settings.Categories.NewSubcategory(lines, name)
            sub.LineColor = Color(0, 255, 0)
            sub.SetLineWeight(1, GraphicsStyleType.Projection)
            for lp in FilteredElementCollector(doc).OfClass(LinePatternElement):
                if lp.Name == "Solid":
                    sub.SetLinePatternId(lp.Id, GraphicsStyleType.Projection)
                    break
    return sub.GetGraphicsStyle(GraphicsStyleType.Projection)


def draw_detail_curves(doc, view, obstacles, line_style=None):
    """Trace obstacle curves as detail lines (optionally styled). Returns created ids."""
    ids = []
    with revit_transaction(doc, "Trace obstacles"):
        for ob in obstacles:
            try:
                dc = doc.Create.NewDetailCurve(view, to_revit_curve(ob.curve))
            except Exception as e:
                _log("DEBUG", "detail curve failed for {0}: {1}".format(ob.source_id, e))
                continue
            if line_style is not None:
                dc.LineStyle = line_style
            ids.append(dc.Id)
    return ids


class RevitRegionHost(RegionHost):
    """FilledRegion-backed region host for one plan view.

    Args:
        doc: Revit Document
        view: plan view receiving the regions
        default_region_type_id: ElementId used when a render names no type
        hide_outline: apply '<Invisible lines>' to the region's boundary curves
    """

    def __init__(self, doc, view, default_region_type_id=None, hide_outline=True):
        self.doc = doc
        self.view = view
        self.default_region_type_id = default_region_type_id
        self.hide_outline = hide_outline
        self._types = None
        self._invisible = None

    @contextmanager
    def transaction(self, name):
        with revit_transaction(self.doc, name):
            yield self

    def _resolve_type(self, region_type_id):
        if region_type_id is None:
            region_type_id = self.default_region_type_id
        if region_type_id is None:
            region_type_id = self.doc.GetDefaultElementTypeId(_filled_region_type_group())
        if isinstance(region_type_id, str):
            if self._types is None:
                self._types = region_types_by_name(self.doc)
            if region_type_id not in self._types:
                raise KeyError("Filled region type not found: {0}".format(region_type_id))
            return self._types[region_type_id]
        return region_type_id

    def _hide_outline(self, region):
        if self._invisible is None:
            self._invisible = find_graphics_style(self.doc, INVISIBLE_LINE_STYLE)
            if self._invisible is None:
                raise RuntimeError("{0} style not found".format(INVISIBLE_LINE_STYLE))
        for eid in region.GetDependentElements(None):
            el = self.doc.GetElement(eid)
            if isinstance(el, CurveElement):
                el.LineStyle = self._invisible

    def create_region(self, loop, region_type_id=None):
        from System.Collections.Generic import List  # type: ignore

        type_id = self._resolve_type(region_type_id)
        loops = List[CurveLoop]([to_curve_loop(loop)])
        region = FilledRegion.Create(self.doc, type_id, self.view.Id, loops)
        if self.hide_outline:
            self._hide_outline(region)
        return region.Id

    def delete_region(self, handle):
        if handle is None or self.doc.GetElement(handle) is None:
            return False
        self.doc.Delete(handle)
        _log("DEBUG", "Deleted region {0}".format(element_id_value(handle)))
        return True


def _filled_region_type_group():
    from Autodesk.Revit.DB import ElementTypeGroup  # type: ignore
    return ElementTypeGroup.FilledRegionType
