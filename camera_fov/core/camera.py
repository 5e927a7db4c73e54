"""
Camera profile and camera-derived quantities.

CameraProfile is the per-request input of one synthesis call. The helpers
below turn raw camera element data (family rotation, FOV parameters, sensor
resolution) into profile fields.
"""

import math

from .errors import DegenerateCamera
from .math_utils import as_point3, direction_xy, is_finite_point, normalize_deg

# DORI pixel densities in pixels per meter (EN 62676-4).
DORI_LEVELS = (
    ("detection", 25.0),
    ("observation", 63.0),
    ("recognition", 125.0),
    ("identification", 250.0),
)
DORI_PPM = dict(DORI_LEVELS)

_FULL_CIRCLE_EPS = 1e-9
_PARAM_EPS = 0.001


class CameraProfile(object):
    """Immutable camera description for one synthesis call.

    Attributes:
        position: (x, y, z) in feet
        orientation_deg: bearing of the cone axis, counter-clockwise from +X
        half_fov_deg: half the cone angle; 180 means a full circle
        max_range_ft: ray length
        angular_resolution_deg: ray spacing
        camera_id: opaque id used for region keys and diagnostics

    Example:
        >>> cam = CameraProfile((0, 0, 0), 90.0, 45.0, 10.0, 10.0)
        >>> cam.full_circle
        False
        >>> cam.with_resolution(5.0).angular_resolution_deg
        5.0
    """

    __slots__ = (
        "position",
        "orientation_deg",
        "half_fov_deg",
        "max_range_ft",
        "angular_resolution_deg",
        "camera_id",
    )

    def __init__(self, position, orientation_deg, half_fov_deg, max_range_ft,
                 angular_resolution_deg, camera_id=None):
        try:
            pos = as_point3(position)
        except (TypeError, ValueError, IndexError):
            pos = (float("nan"),) * 3
        object.__setattr__(self, "position", pos)
        object.__setattr__(self, "orientation_deg", float(orientation_deg))
        object.__setattr__(self, "half_fov_deg", float(half_fov_deg))
        object.__setattr__(self, "max_range_ft", float(max_range_ft))
        object.__setattr__(self, "angular_resolution_deg", float(angular_resolution_deg))
        object.__setattr__(self, "camera_id", camera_id)

    def __setattr__(self, name, value):
        raise AttributeError("CameraProfile is immutable")

    @classmethod
    def from_fov(cls, position, orientation_deg, fov_deg, max_range_ft,
                 angular_resolution_deg, camera_id=None):
        """Build from the full cone angle (a 360 degree FOV is a full circle)."""
        return cls(position, orientation_deg, float(fov_deg) / 2.0, max_range_ft,
                   angular_resolution_deg, camera_id=camera_id)

    @property
    def full_circle(self):
        return abs(self.half_fov_deg * 2.0 - 360.0) <= _FULL_CIRCLE_EPS

    @property
    def fov_deg(self):
        return self.half_fov_deg * 2.0

    def _replace(self, **changes):
        fields = dict((name, getattr(self, name)) for name in self.__slots__)
        fields.update(changes)
        return CameraProfile(**fields)

    def with_position(self, position):
        return self._replace(position=position)

    def with_resolution(self, angular_resolution_deg):
        return self._replace(angular_resolution_deg=angular_resolution_deg)

    def with_range(self, max_range_ft):
        return self._replace(max_range_ft=max_range_ft)

    def jittered(self, offset_ft):
        """Camera moved offset_ft along its orientation vector."""
        dx, dy = direction_xy(self.orientation_deg)
        x, y, z = self.position
        return self.with_position((x + dx * offset_ft, y + dy * offset_ft, z))

    def validate(self):
        """Raise DegenerateCamera for inputs no retry can fix."""
        if not is_finite_point(self.position):
            raise DegenerateCamera("camera position is not finite: {0}".format(self.position))
        if not math.isfinite(self.max_range_ft) or self.max_range_ft <= 0:
            raise DegenerateCamera("max range must be positive, got {0}".format(self.max_range_ft))
        if not math.isfinite(self.angular_resolution_deg) or self.angular_resolution_deg <= 0:
            raise DegenerateCamera(
                "angular resolution must be positive, got {0}".format(self.angular_resolution_deg)
            )
        if not math.isfinite(self.orientation_deg):
            raise DegenerateCamera("orientation is not finite")
        if not (0.0 < self.half_fov_deg <= 180.0 + _FULL_CIRCLE_EPS):
            raise DegenerateCamera(
                "half FOV must be in (0, 180], got {0}".format(self.half_fov_deg)
            )
        return self

    def __eq__(self, other):
        if not isinstance(other, CameraProfile):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in self.__slots__)

    def __hash__(self):
        return hash(tuple(getattr(self, n) for n in self.__slots__))

    def __repr__(self):
        return (
            "CameraProfile(position={0}, orientation={1:.2f}, half_fov={2:.2f}, "
            "range={3:.3f}ft, res={4}deg, id={5!r})".format(
                self.position,
                self.orientation_deg,
                self.half_fov_deg,
                self.max_range_ft,
                self.angular_resolution_deg,
                self.camera_id,
            )
        )


def dori_distance_m(resolution_px, fov_deg, level):
    """DORI distance in meters, rounded to 0.1 m.

    distance = (resolution / ppm) * (360 / fov) / (2 * pi)

    ``level`` is a DORI level name or a pixels-per-meter value.

    Example:
        >>> dori_distance_m(1920, 93.0, "detection")
        47.3
    """
    ppm = DORI_PPM.get(str(level).lower()) if not isinstance(level, (int, float)) else float(level)
    if ppm is None:
        raise ValueError("unknown DORI level: {0!r}".format(level))
    if resolution_px <= 0 or fov_deg <= 0 or ppm <= 0:
        raise ValueError("resolution, fov and ppm must be positive")
    width_m = float(resolution_px) / ppm
    return round(width_m * (360.0 / float(fov_deg)) / (2.0 * math.pi), 1)


def dori_region_type_name(level):
    """Filled-region type name used for a DORI layer, e.g. 'dori_25px'."""
    return "dori_{0}px".format(int(DORI_PPM[str(level).lower()]))


def base_orientation_deg(location_rotation_rad):
    """Cone bearing implied by the family placement.

    The camera family's zero faces down the sheet; the model's zero is +X, so
    the family rotation is shifted by -90 degrees.
    """
    return normalize_deg(math.degrees(float(location_rotation_rad)) - 90.0)


def camera_orientation_deg(location_rotation_rad, user_rotation_deg=0.0, preset_deg=0.0,
                           flip=False):
    """Final cone bearing in [0, 360).

    Sum of the family bearing, the user rotation and a preset quarter turn,
    plus 180 degrees when ``flip`` is set (cameras whose user rotation
    parameter was already non-zero when read).
    """
    angle = base_orientation_deg(location_rotation_rad) + float(user_rotation_deg) + float(preset_deg)
    if flip:
        angle += 180.0
    return normalize_deg(angle)


def should_flip(user_rotation_param_deg):
    """Whether a stored user rotation triggers the 180 degree correction."""
    return user_rotation_param_deg is not None and float(user_rotation_param_deg) > _PARAM_EPS


def resolve_fov_deg(override_rad=None, instance_rad=None, type_rad=None, default_deg=93.0):
    """Pick the camera FOV in degrees from parameter values in radians.

    Priority: a non-zero override, then the instance standard FOV, then the
    type standard FOV, then ``default_deg``.
    """
    if override_rad is not None and abs(float(override_rad)) > _PARAM_EPS:
        return math.degrees(float(override_rad))
    if instance_rad is not None:
        return math.degrees(float(instance_rad))
    if type_rad is not None:
        return math.degrees(float(type_rad))
    return float(default_deg)
