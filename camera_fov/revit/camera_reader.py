"""
Camera family instance -> CameraProfile.

Reads the placement point and rotation from the element's LocationPoint and
the FOV / user rotation / resolution from the configured family parameters.
Parameters are looked up on the instance first, then on its type.

Everything is duck-typed (Location, LookupParameter, GetTypeId, Symbol) so the
reader is testable with plain fakes.
"""

import math
import re

from ..core.camera import (
    CameraProfile,
    camera_orientation_deg,
    resolve_fov_deg,
    should_flip,
)
from ..core.math_utils import as_point3
from .geometry_adapter import element_id_value
from .safe_api import safe_call

PHASE = "camera"


class CameraReading(object):
    """Raw values read from one camera element (angles in degrees, lengths in feet)."""

    __slots__ = (
        "camera_id",
        "position",
        "location_rotation_rad",
        "user_rotation_deg",
        "flip",
        "fov_deg",
        "resolution_px",
    )

    def __init__(self, camera_id, position, location_rotation_rad=0.0, user_rotation_deg=0.0,
                 flip=False, fov_deg=93.0, resolution_px=None):
        self.camera_id = camera_id
        self.position = position
        self.location_rotation_rad = location_rotation_rad
        self.user_rotation_deg = user_rotation_deg
        self.flip = flip
        self.fov_deg = fov_deg
        self.resolution_px = resolution_px

    def orientation_deg(self, preset_deg=0.0, user_rotation_deg=None):
        """Cone bearing; ``user_rotation_deg`` replaces the stored user rotation."""
        user = self.user_rotation_deg if user_rotation_deg is None else user_rotation_deg
        return camera_orientation_deg(self.location_rotation_rad, user, preset_deg, self.flip)

    def to_profile(self, max_range_ft, angular_resolution_deg, preset_deg=0.0,
                   user_rotation_deg=None, fov_deg=None):
        return CameraProfile.from_fov(
            self.position,
            self.orientation_deg(preset_deg, user_rotation_deg),
            self.fov_deg if fov_deg is None else fov_deg,
            max_range_ft,
            angular_resolution_deg,
            camera_id=self.camera_id,
        )

    def to_dict(self):
        return dict((name, getattr(self, name)) for name in self.__slots__)


def _element_type(doc, element):
    """FamilyInstance.Symbol, else doc.GetElement(GetTypeId()); None when absent."""
    symbol = getattr(element, "Symbol", None)
    if symbol is not None:
        return symbol
    get_type_id = getattr(element, "GetTypeId", None)
    if get_type_id is None or doc is None:
        return None
    type_id = get_type_id()
    v = element_id_value(type_id)
    if v is None or v < 0:
        return None
    return doc.GetElement(type_id)


def _lookup(obj, name):
    if obj is None:
        return None
    fn = getattr(obj, "LookupParameter", None)
    if fn is None:
        return None
    return fn(name)


def _as_double(param):
    if param is None:
        return None
    return float(param.AsDouble())


def parse_resolution(param):
    """Horizontal resolution in pixels from a text, integer or double parameter.

    Text values keep their digits only ("3840 px" -> 3840). Returns None when
    nothing positive can be read.
    """
    if param is None:
        return None
    text = None
    for getter in ("AsString", "AsValueString"):
        fn = getattr(param, getter, None)
        if fn is None:
            continue
        try:
            text = fn()
        except Exception:
            text = None
        if text and str(text).strip():
            break
        text = None

    if text:
        digits = re.sub(r"\D", "", str(text))
        if digits:
            return int(digits)

    storage = str(getattr(param, "StorageType", ""))
    if storage.endswith("Integer"):
        value = int(param.AsInteger())
    elif storage.endswith("Double"):
        value = int(round(param.AsDouble()))
    else:
        return None
    return value if value > 0 else None


def read_location(element):
    """(position, rotation_rad) from a LocationPoint; rotation falls back to the
    instance transform's BasisY when LocationPoint.Rotation is unavailable.

    Raises:
        ValueError when the element has no point location.
    """
    loc = getattr(element, "Location", None)
    point = getattr(loc, "Point", None) if loc is not None else None
    if point is None:
        raise ValueError("camera element has no point location")
    position = as_point3(point)

    try:
        return position, float(loc.Rotation)
    except Exception:
        pass
    try:
        basis_y = element.GetTransform().BasisY
        return position, math.atan2(float(basis_y.Y), float(basis_y.X))
    except Exception:
        return position, 0.0


def read_camera(doc, element, cfg, diag=None):
    """Read one camera element into a CameraReading.

    Raises:
        ValueError when the element has no point location.
    """
    camera_id = element_id_value(getattr(element, "Id", None))
    ctx = {"camera_id": camera_id}
    position, rotation_rad = read_location(element)

    user_param = safe_call(
        diag, phase=PHASE, callsite="read_camera.user_rotation",
        fn=lambda: _as_double(_lookup(element, cfg.param_user_rotation)),
        default=None, context=ctx,
    )
    user_deg = math.degrees(user_param) if user_param is not None else 0.0

    elem_type = safe_call(
        diag, phase=PHASE, callsite="read_camera.type",
        fn=lambda: _element_type(doc, element), default=None, context=ctx, policy="warn",
    )
    fov_deg = resolve_fov_deg(
        override_rad=safe_call(
            diag, phase=PHASE, callsite="read_camera.fov_override",
            fn=lambda: _as_double(_lookup(element, cfg.param_fov_override)),
            default=None, context=ctx,
        ),
        instance_rad=safe_call(
            diag, phase=PHASE, callsite="read_camera.fov_instance",
            fn=lambda: _as_double(_lookup(element, cfg.param_standard_fov)),
            default=None, context=ctx,
        ),
        type_rad=safe_call(
            diag, phase=PHASE, callsite="read_camera.fov_type",
            fn=lambda: _as_double(_lookup(elem_type, cfg.param_standard_fov)),
            default=None, context=ctx,
        ),
        default_deg=cfg.default_fov_deg,
    )

    def _resolution():
        p = _lookup(element, cfg.param_resolution)
        if p is None:
            p = _lookup(elem_type, cfg.param_resolution)
        return parse_resolution(p)

    resolution = safe_call(
        diag, phase=PHASE, callsite="read_camera.resolution",
        fn=_resolution, default=None, context=ctx, policy="warn",
    )

    reading = CameraReading(
        camera_id,
        position,
        location_rotation_rad=rotation_rad,
        user_rotation_deg=user_deg,
        flip=should_flip(user_deg if user_param is not None else None),
        fov_deg=fov_deg,
        resolution_px=resolution or cfg.horizontal_resolution_px,
    )
    if diag is not None:
        diag.debug(
            phase=PHASE,
            callsite="read_camera",
            message="Camera read",
            camera_id=camera_id,
            extra={"fov_deg": fov_deg, "resolution_px": reading.resolution_px, "flip": reading.flip},
        )
    return reading
