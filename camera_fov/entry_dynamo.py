"""
Dynamo / pyRevit entry point for the camera FOV pipeline.

Compatible with CPython3 (Dynamo 3.x, pyRevit) and IronPython (Dynamo 2.x).

Usage in a Dynamo Python node:
    import sys
    sys.path.append(r'C:\\path\\to\\camera_fov_repo')

    from camera_fov.entry_dynamo import run_fov, get_current_document, get_current_view
    from camera_fov.config import Config

    doc = get_current_document()
    view = get_current_view()
    cameras = UnwrapElement(IN[0])

    cfg = Config(angular_resolution_deg=0.5)

    # Plain region, 20 m range
    OUT = run_fov(doc, view, cameras, cfg, max_range_m=20.0)

    # DORI layers instead (ranges from the camera resolution and FOV)
    OUT = run_fov(doc, view, cameras, cfg, dori_levels=["detection", "recognition"])

Re-running in the same Revit session replaces each camera's regions in place;
undo_last(doc, view) removes the regions created by the previous run.
"""

try:
    from .config import Config
    from .core.diagnostics import Diagnostics
    from .core.errors import SynthesisError
    from .core.extraction import extract_obstacles
    from .core.math_utils import Plane, meters_to_feet
    from .pipeline import FOVSession, dori_layers
    from .revit.camera_reader import read_camera
    from .revit.geometry_adapter import collect_boundary_curves, element_id_value, view_plane
    from .revit.linked_documents import collect_obstacle_sources
    from .revit.regions import (
        RevitRegionHost,
        draw_detail_curves,
        ensure_boundary_line_style,
        ensure_dori_region_types,
    )
except Exception:
    # Dynamo sometimes imports modules without package context; fall back to absolute.
    from camera_fov.config import Config
    from camera_fov.core.diagnostics import Diagnostics
    from camera_fov.core.errors import SynthesisError
    from camera_fov.core.extraction import extract_obstacles
    from camera_fov.core.math_utils import Plane, meters_to_feet
    from camera_fov.pipeline import FOVSession, dori_layers
    from camera_fov.revit.camera_reader import read_camera
    from camera_fov.revit.geometry_adapter import collect_boundary_curves, element_id_value, view_plane
    from camera_fov.revit.linked_documents import collect_obstacle_sources
    from camera_fov.revit.regions import (
        RevitRegionHost,
        draw_detail_curves,
        ensure_boundary_line_style,
        ensure_dori_region_types,
    )

# (doc identity, view id) -> FOVSession; keeps region keys and the undo batch
# alive between node runs.
_SESSIONS = {}


def _log(level, msg):
    print("[{0}] camera_fov.entry: {1}".format(level, msg))


def get_current_document():
    """Get current Revit document (works in both IronPython and CPython3).

    Raises:
        RuntimeError: If not running in Revit/Dynamo context
    """
    try:
        from RevitServices.Persistence import DocumentManager  # type: ignore

        doc = DocumentManager.Instance.CurrentDBDocument
        if doc is not None:
            return doc
    except ImportError:
        pass

    try:
        return __revit__.ActiveUIDocument.Document  # noqa: F821
    except NameError:
        pass

    raise RuntimeError(
        "Not running in Revit/Dynamo context. "
        "Pass the Document directly to run_fov()."
    )


def get_current_view():
    """Get current active view (works in both IronPython and CPython3).

    Raises:
        RuntimeError: If not running in Revit/Dynamo context
    """
    try:
        from RevitServices.Persistence import DocumentManager  # type: ignore

        doc = DocumentManager.Instance.CurrentDBDocument
        if doc is not None and doc.ActiveView is not None:
            return doc.ActiveView
    except (ImportError, AttributeError):
        pass

    try:
        return __revit__.ActiveUIDocument.ActiveView  # noqa: F821
    except NameError:
        pass

    raise RuntimeError("Not running in Revit/Dynamo context. Pass the view as input.")


def _normalize_cameras(doc, cameras):
    """Single element / list / Dynamo wrappers / ids -> list of Revit elements."""
    if cameras is None:
        return []
    if not isinstance(cameras, (list, tuple)):
        cameras = [cameras]
    out = []
    for c in cameras:
        c = getattr(c, "InternalElement", c)
        if isinstance(c, int) or not hasattr(c, "Location"):
            c = doc.GetElement(_element_id(c))
        if c is not None:
            out.append(c)
    return out


def _element_id(v):
    if isinstance(v, int):
        from Autodesk.Revit.DB import ElementId  # type: ignore
        return ElementId(v)
    return v


def get_session(doc, view, cfg=None, diag=None):
    """The FOVSession for (doc, view), created on first use."""
    key = (id(doc), element_id_value(getattr(view, "Id", None)))
    session = _SESSIONS.get(key)
    if session is None:
        cfg = cfg or Config()
        session = FOVSession(RevitRegionHost(doc, view), [], cfg=cfg, diag=diag)
        _SESSIONS[key] = session
    else:
        if cfg is not None:
            session.cfg = cfg
        if diag is not None:
            session.diag = diag
    return session


def _plane_for(view, cfg, camera_z):
    if cfg.plane_z_source == "camera":
        return Plane.horizontal(camera_z)
    return view_plane(view, fallback_z=camera_z)


def _render_camera(session, reading, cfg, max_range_ft, dori_levels, region_type_id,
                   preset_deg, user_rotation_deg, fov_deg, dori_type_ids):
    """Render one camera; returns (JSON-safe result entry, created handles)."""
    handles = []
    entry = {"camera_id": reading.camera_id, "reading": reading.to_dict(), "regions": [], "errors": []}
    fov = reading.fov_deg if fov_deg is None else float(fov_deg)

    if dori_levels:
        profile = reading.to_profile(1.0, cfg.angular_resolution_deg, preset_deg, user_rotation_deg, fov)
        layers = dori_layers(reading.resolution_px, fov, dori_levels, dori_type_ids)
        for layer, handle, loop in session.render_layers(profile, layers):
            if handle is None:
                entry["errors"].append("DORI layer '{0}' failed".format(layer.label))
                continue
            handles.append(handle)
            entry["regions"].append({
                "id": element_id_value(handle),
                "layer": layer.label,
                "range_ft": layer.range_ft,
                "boundary": loop.to_dict(),
            })
        return entry, handles

    profile = reading.to_profile(max_range_ft, cfg.angular_resolution_deg, preset_deg, user_rotation_deg, fov)
    try:
        handle, loop = session.render(profile, region_type_id)
    except SynthesisError as e:
        entry["errors"].append(str(e))
        return entry, handles
    entry["regions"].append({
        "id": element_id_value(handle),
        "range_ft": max_range_ft,
        "boundary": loop.to_dict(),
    })
    handles.append(handle)
    return entry, handles


def _trace_obstacles(doc, view, obstacles):
    style = ensure_boundary_line_style(doc)
    return draw_detail_curves(doc, view, obstacles, line_style=style)


def run_fov(doc, view, cameras, cfg=None, max_range_m=None, dori_levels=None,
            region_type_id=None, link_names=None, preset_deg=0.0,
            user_rotation_deg=None, fov_deg=None, trace_obstacles=False,
            reuse_boundary_curves=False):
    """Draw FOV regions for camera elements in a plan view.

    Args:
        doc: Revit Document
        view: plan view receiving the regions
        cameras: camera family instance(s), Dynamo wrappers or element ids
        cfg: Config (defaults if None)
        max_range_m: range of a single region per camera (meters)
        dori_levels: DORI level names; renders one region per level instead
        region_type_id: FilledRegionType id or name for single-range renders
        link_names: link instance names to include (None: every link in view)
        preset_deg / user_rotation_deg / fov_deg: overrides of the values read
            from the camera element
        trace_obstacles: draw the extracted obstacles as 'Boundary' detail lines
        reuse_boundary_curves: add existing 'Boundary' detail lines in the view
            to the obstacles

    Returns:
        {
            'success': bool,
            'cameras': [per-camera results],
            'obstacles': extraction summary,
            'config': cfg.to_dict(),
            'errors': [...],
            'diagnostics': Diagnostics.to_dict(),
        }
    """
    if doc is None or view is None:
        return {"success": False, "cameras": [], "config": {}, "errors": ["doc or view is None"]}

    cfg = cfg or Config()
    diag = Diagnostics(cfg.diagnostics_max_events)
    errors = []

    if not dori_levels and (max_range_m is None or max_range_m <= 0):
        return {
            "success": False,
            "cameras": [],
            "config": cfg.to_dict(),
            "errors": ["max_range_m must be positive when no DORI levels are requested"],
        }

    elements = _normalize_cameras(doc, cameras)
    session = get_session(doc, view, cfg, diag)

    dori_type_ids = None
    if dori_levels:
        try:
            dori_type_ids = ensure_dori_region_types(doc)
        except Exception as e:
            errors.append("DORI region types unavailable: {0}".format(e))
            return {"success": False, "cameras": [], "config": cfg.to_dict(), "errors": errors}

    sources, source_info = collect_obstacle_sources(doc, view, cfg, link_names=link_names)

    boundary_curves = []
    if reuse_boundary_curves:
        boundary_curves = collect_boundary_curves(doc, view, cfg)

    results = []
    batch = []
    traced = []
    obstacle_summary = {}
    extracted = {}
    for element in elements:
        try:
            reading = read_camera(doc, element, cfg, diag)
        except ValueError as e:
            errors.append("camera {0}: {1}".format(element_id_value(getattr(element, "Id", None)), e))
            continue

        plane = _plane_for(view, cfg, reading.position[2])
        plane_key = (round(plane.origin[2], 6), tuple(round(v, 9) for v in plane.normal))
        if plane_key not in extracted:
            extractor = extract_obstacles(sources, plane, cfg=cfg, diag=diag)
            extracted[plane_key] = list(extractor.obstacles) + boundary_curves
            obstacle_summary = extractor.summary()
            if trace_obstacles:
                try:
                    traced.extend(_trace_obstacles(doc, view, extractor.obstacles))
                except Exception as e:
                    errors.append("obstacle tracing failed: {0}".format(e))
        session.obstacles = extracted[plane_key]
        session.plane_z = plane.origin[2]

        max_range_ft = meters_to_feet(max_range_m) if max_range_m else None
        try:
            entry, handles = _render_camera(
                session, reading, cfg, max_range_ft, dori_levels, region_type_id,
                preset_deg, user_rotation_deg, fov_deg, dori_type_ids,
            )
        except Exception as e:
            # Host write failures roll back; keep going with the other cameras.
            errors.append("camera {0}: {1}: {2}".format(reading.camera_id, type(e).__name__, e))
            continue
        errors.extend("camera {0}: {1}".format(reading.camera_id, m) for m in entry["errors"])
        results.append(entry)
        batch.extend(handles)

    session.last_batch = batch
    obstacle_summary["sources"] = source_info
    obstacle_summary["boundary_curves"] = len(boundary_curves)
    obstacle_summary["traced"] = len(traced)
    _log("INFO", "Rendered {0} camera(s), {1} error(s)".format(len(results), len(errors)))
    return {
        "success": len(errors) == 0,
        "cameras": results,
        "obstacles": obstacle_summary,
        "config": cfg.to_dict(),
        "errors": errors,
        "diagnostics": diag.to_dict(),
    }


def undo_last(doc, view):
    """Delete the regions created by the last run_fov call on this view."""
    key = (id(doc), element_id_value(getattr(view, "Id", None)))
    session = _SESSIONS.get(key)
    if session is None:
        return 0
    return session.undo_last_batch()


def clear_regions(doc, view, camera_id=None):
    """Delete FOV regions drawn in this view during the session (all, or one camera's)."""
    key = (id(doc), element_id_value(getattr(view, "Id", None)))
    session = _SESSIONS.get(key)
    if session is None:
        return 0
    return session.clear(camera_id)
