"""
Immutable curve primitives (Line, Arc) and their XY ray intersections.

Curves carry 3D endpoints in feet. Ray intersection is evaluated in the XY
plane: the working plane is horizontal at the camera elevation, so only the
X/Y components of a curve participate in visibility.

Arcs are defined by three points (start, end, and any point strictly between
them on the arc). Centre, radius and sweep are derived on construction;
three collinear points raise ValueError.
"""

import math

from .math_utils import (
    add,
    as_point3,
    cross,
    distance,
    dot,
    norm,
    scale,
    sub,
)

TWO_PI = 2.0 * math.pi
_PARALLEL_EPS = 1e-12
_ANGLE_EPS = 1e-9


def _unsigned_angle(a, b):
    return math.atan2(norm(cross(a, b)), dot(a, b))


def _circumcenter(a, b, c):
    """Circumcentre of three 3D points; None when they are collinear."""
    u = sub(b, a)
    v = sub(c, a)
    w = cross(u, v)
    ww = dot(w, w)
    if ww < 1e-18:
        return None
    num = cross(sub(scale(v, dot(u, u)), scale(u, dot(v, v))), w)
    return add(a, scale(num, 1.0 / (2.0 * ww)))


def _circumcenter_xy(a, b, c):
    ax, ay = a[0], a[1]
    bx, by = b[0], b[1]
    cx, cy = c[0], c[1]
    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    if abs(d) < 1e-12:
        return None
    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    ux = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / d
    uy = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / d
    return (ux, uy)


def ray_segment_intersection(ox, oy, dx, dy, x1, y1, x2, y2):
    """Parameter t where ray (ox + t*dx, oy + t*dy) hits segment (x1,y1)-(x2,y2).

    Returns t >= 0 on a hit, None on a miss or when parallel.
    """
    sx = x2 - x1
    sy = y2 - y1
    denom = dx * sy - dy * sx
    if abs(denom) < _PARALLEL_EPS:
        return None

    t = ((x1 - ox) * sy - (y1 - oy) * sx) / denom
    u = ((x1 - ox) * dy - (y1 - oy) * dx) / denom

    if t >= 0 and -_ANGLE_EPS <= u <= 1.0 + _ANGLE_EPS:
        return t
    return None


class Line:
    """Straight segment between two 3D points."""

    __slots__ = ("start", "end")
    kind = "line"

    def __init__(self, start, end):
        object.__setattr__(self, "start", as_point3(start))
        object.__setattr__(self, "end", as_point3(end))

    def __setattr__(self, name, value):
        raise AttributeError("Line is immutable")

    @property
    def length(self):
        return distance(self.start, self.end)

    def evaluate_mid(self):
        return scale(add(self.start, self.end), 0.5)

    def reversed(self):
        return Line(self.end, self.start)

    def transformed(self, t):
        return Line(t.of_point(self.start), t.of_point(self.end))

    def flattened(self, z):
        return Line(
            (self.start[0], self.start[1], z), (self.end[0], self.end[1], z)
        )

    def intersect_ray_xy(self, origin, direction):
        t = ray_segment_intersection(
            origin[0], origin[1], direction[0], direction[1],
            self.start[0], self.start[1], self.end[0], self.end[1],
        )
        return [] if t is None else [t]

    def tessellate(self, step_deg=None):
        return [self.start, self.end]

    def __eq__(self, other):
        return (
            isinstance(other, Line)
            and self.start == other.start
            and self.end == other.end
        )

    def __hash__(self):
        return hash(("line", self.start, self.end))

    def __repr__(self):
        return "Line({0}, {1})".format(self.start, self.end)


class Arc:
    """Circular arc through start, an interior point, and end.

    Example:
        >>> a = Arc.from_center((0.0, 0.0, 0.0), 10.0, 0.0, math.pi / 2.0)
        >>> round(a.radius, 6), round(math.degrees(a.sweep), 6)
        (10.0, 90.0)
    """

    __slots__ = ("start", "end", "mid", "center", "radius", "sweep", "_normal")
    kind = "arc"

    def __init__(self, start, end, mid):
        start = as_point3(start)
        end = as_point3(end)
        mid = as_point3(mid)
        center = _circumcenter(start, mid, end)
        if center is None:
            raise ValueError("arc points are collinear")
        s = sub(start, center)
        m = sub(mid, center)
        e = sub(end, center)
        sweep = _unsigned_angle(s, m) + _unsigned_angle(m, e)
        if sweep <= _ANGLE_EPS:
            raise ValueError("arc has zero sweep")
        n = cross(s, m)
        if norm(n) < 1e-18:
            n = cross(m, e)
        n_len = norm(n)
        normal = scale(n, 1.0 / n_len) if n_len > 0 else (0.0, 0.0, 1.0)

        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)
        object.__setattr__(self, "mid", mid)
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "radius", norm(s))
        object.__setattr__(self, "sweep", sweep)
        object.__setattr__(self, "_normal", normal)

    def __setattr__(self, name, value):
        raise AttributeError("Arc is immutable")

    @classmethod
    def through_points(cls, start, end, mid):
        return cls(start, end, mid)

    @classmethod
    def from_center(cls, center, radius, start_angle, end_angle, z=None):
        """Counter-clockwise arc in a horizontal plane; angles in radians.

        If end_angle < start_angle the end is wrapped by a full turn.
        """
        center = as_point3(center)
        if z is None:
            z = center[2]
        if end_angle < start_angle:
            end_angle += TWO_PI
        if end_angle - start_angle <= _ANGLE_EPS:
            raise ValueError("arc has zero sweep")
        if end_angle - start_angle >= TWO_PI - _ANGLE_EPS:
            raise ValueError("arc sweep must be less than a full circle")
        mid_angle = 0.5 * (start_angle + end_angle)

        def _at(a):
            return (
                center[0] + radius * math.cos(a),
                center[1] + radius * math.sin(a),
                z,
            )

        return cls(_at(start_angle), _at(end_angle), _at(mid_angle))

    @property
    def length(self):
        return self.radius * self.sweep

    @property
    def normal(self):
        return self._normal

    def evaluate_mid(self):
        """Point at half the sweep (Rodrigues rotation of start about the normal)."""
        v = sub(self.start, self.center)
        k = self._normal
        half = 0.5 * self.sweep
        c = math.cos(half)
        s = math.sin(half)
        rotated = add(
            add(scale(v, c), scale(cross(k, v), s)),
            scale(k, dot(k, v) * (1.0 - c)),
        )
        return add(self.center, rotated)

    def reversed(self):
        return Arc(self.end, self.start, self.mid)

    def transformed(self, t):
        return Arc(t.of_point(self.start), t.of_point(self.end), t.of_point(self.mid))

    def flattened(self, z):
        return Arc(
            (self.start[0], self.start[1], z),
            (self.end[0], self.end[1], z),
            (self.mid[0], self.mid[1], z),
        )

    # ------------------------------------------------------------------
    # XY circle view (used by ray casting and the simplicity check)

    def _xy_circle(self):
        c = _circumcenter_xy(self.start, self.mid, self.end)
        if c is None:
            return None
        r = math.hypot(self.start[0] - c[0], self.start[1] - c[1])
        a0 = math.atan2(self.start[1] - c[1], self.start[0] - c[0])
        a1 = math.atan2(self.end[1] - c[1], self.end[0] - c[0])
        am = math.atan2(self.mid[1] - c[1], self.mid[0] - c[0])
        span = (a1 - a0) % TWO_PI
        offset = (am - a0) % TWO_PI
        if offset <= span:
            return c, r, a0, span
        # Clockwise arc: same point set as the ccw arc from end to start
        return c, r, a1, TWO_PI - span

    def contains_angle_xy(self, angle):
        circle = self._xy_circle()
        if circle is None:
            return False
        _, _, ccw_start, span = circle
        return (angle - ccw_start) % TWO_PI <= span + _ANGLE_EPS

    def intersect_ray_xy(self, origin, direction):
        circle = self._xy_circle()
        if circle is None:
            return []
        (cx, cy), r, ccw_start, span = circle
        fx = origin[0] - cx
        fy = origin[1] - cy
        dx, dy = direction[0], direction[1]
        a = dx * dx + dy * dy
        if a < _PARALLEL_EPS:
            return []
        b = 2.0 * (fx * dx + fy * dy)
        c = fx * fx + fy * fy - r * r
        disc = b * b - 4.0 * a * c
        if disc < 0.0:
            return []
        root = math.sqrt(disc)
        hits = []
        for t in ((-b - root) / (2.0 * a), (-b + root) / (2.0 * a)):
            if t < 0.0:
                continue
            px = origin[0] + t * dx
            py = origin[1] + t * dy
            ang = math.atan2(py - cy, px - cx)
            if (ang - ccw_start) % TWO_PI <= span + _ANGLE_EPS:
                hits.append(t)
        return hits

    def tessellate(self, step_deg=10.0):
        """Points along the arc in XY from start to end, inclusive."""
        circle = self._xy_circle()
        if circle is None:
            return [self.start, self.end]
        (cx, cy), r, ccw_start, span = circle
        n = max(2, int(math.ceil(math.degrees(span) / max(step_deg, 1e-6))))
        z = self.start[2]
        pts = [
            (
                cx + r * math.cos(ccw_start + span * i / n),
                cy + r * math.sin(ccw_start + span * i / n),
                z,
            )
            for i in range(n + 1)
        ]
        # Orient along start -> end
        if distance(pts[0], self.start) > distance(pts[-1], self.start):
            pts.reverse()
        pts[0] = self.start
        pts[-1] = self.end
        return pts

    def __eq__(self, other):
        return (
            isinstance(other, Arc)
            and self.start == other.start
            and self.end == other.end
            and self.mid == other.mid
        )

    def __hash__(self):
        return hash(("arc", self.start, self.end, self.mid))

    def __repr__(self):
        return "Arc(start={0}, end={1}, radius={2:.4f}, sweep={3:.2f}deg)".format(
            self.start, self.end, self.radius, math.degrees(self.sweep)
        )


def is_arc(curve):
    return getattr(curve, "kind", None) == "arc"
