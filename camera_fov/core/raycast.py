"""
Radial ray casting: one sample per angle, nearest obstacle hit or max range.

All intersection work happens in the XY plane at the camera elevation;
obstacles are expected to be plane-projected already.
"""

import math

from .math_utils import direction_xy

KIND_APEX = "apex"
KIND_MAX_RANGE = "max_range"
KIND_OBSTACLE_HIT = "obstacle_hit"

_ANGLE_EPS = 1e-9


class FOVSamplePoint(object):
    """One ray-cast result.

    ``obstacle`` is the struck ObstacleCurve for OBSTACLE_HIT samples and None
    otherwise. ``angle_deg`` is the ray bearing (None for the apex).
    """

    __slots__ = ("point", "kind", "obstacle", "angle_deg")

    def __init__(self, point, kind, obstacle=None, angle_deg=None):
        self.point = point
        self.kind = kind
        self.obstacle = obstacle
        self.angle_deg = angle_deg

    @property
    def is_hit(self):
        return self.kind == KIND_OBSTACLE_HIT

    @property
    def is_max_range(self):
        return self.kind == KIND_MAX_RANGE

    def same_obstacle(self, other):
        return (
            self.kind == KIND_OBSTACLE_HIT
            and other.kind == KIND_OBSTACLE_HIT
            and self.obstacle is other.obstacle
        )

    def __repr__(self):
        return "FOVSamplePoint({0}, {1}, angle={2})".format(self.point, self.kind, self.angle_deg)


def sample_angles(camera):
    """Ray bearings in degrees for a camera, in increasing order.

    Full circle: 0 up to (not including) 360. Cone: orientation - half through
    orientation + half inclusive; the exact end bearing is appended when the
    step does not land on it.

    Example:
        >>> from camera_fov.core.camera import CameraProfile
        >>> sample_angles(CameraProfile((0, 0, 0), 90.0, 45.0, 10.0, 30.0))
        [45.0, 75.0, 105.0, 135.0]
        >>> sample_angles(CameraProfile((0, 0, 0), 0.0, 45.0, 10.0, 40.0))
        [-45.0, -5.0, 35.0, 45.0]
    """
    step = camera.angular_resolution_deg
    if camera.full_circle:
        count = int(math.ceil(360.0 / step - _ANGLE_EPS))
        return [i * step for i in range(count) if i * step < 360.0 - _ANGLE_EPS]

    start = camera.orientation_deg - camera.half_fov_deg
    end = camera.orientation_deg + camera.half_fov_deg
    angles = []
    i = 0
    while True:
        a = start + i * step
        if a > end + _ANGLE_EPS:
            break
        angles.append(a)
        i += 1
    if not angles or end - angles[-1] > _ANGLE_EPS:
        angles.append(end)
    return angles


def nearest_hit(origin, direction, max_range, obstacles):
    """Return (distance, obstacle) of the nearest hit within max_range, or (None, None)."""
    best_t = None
    best = None
    for obstacle in obstacles:
        for t in obstacle.curve.intersect_ray_xy(origin, direction):
            if t > max_range:
                continue
            if best_t is None or t < best_t:
                best_t = t
                best = obstacle
    return best_t, best


def cast_rays(camera, obstacles):
    """Ordered FOVSamplePoint list for a camera.

    Cones start with the apex (the camera position), producing a pie shape.
    """
    ox, oy, oz = camera.position
    origin = (ox, oy)
    max_range = camera.max_range_ft
    obstacles = list(obstacles)

    samples = []
    if not camera.full_circle:
        samples.append(FOVSamplePoint((ox, oy, oz), KIND_APEX))

    for angle in sample_angles(camera):
        dx, dy = direction_xy(angle)
        t, obstacle = nearest_hit(origin, (dx, dy), max_range, obstacles)
        if obstacle is None:
            samples.append(
                FOVSamplePoint((ox + dx * max_range, oy + dy * max_range, oz), KIND_MAX_RANGE,
                               angle_deg=angle)
            )
        else:
            samples.append(
                FOVSamplePoint((ox + dx * t, oy + dy * t, oz), KIND_OBSTACLE_HIT,
                               obstacle=obstacle, angle_deg=angle)
            )
    return samples
