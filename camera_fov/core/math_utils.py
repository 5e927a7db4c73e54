"""
Mathematical utilities for the camera FOV pipeline.

Provides vector helpers, affine transforms, projection planes and unit
conversion. All lengths are decimal feet (the host model's internal unit);
conversion to meters/millimeters happens only at the edges.
"""

import math

FEET_PER_METER = 1.0 / 0.3048
MM_PER_FOOT = 304.8

# Host minimum curve length in feet (matches Revit's ShortCurveTolerance).
SHORT_CURVE_TOLERANCE_FT = 0.00256


def meters_to_feet(m):
    return float(m) / 0.3048


def feet_to_meters(ft):
    return float(ft) * 0.3048


def mm_to_feet(mm):
    return float(mm) / MM_PER_FOOT


def normalize_deg(angle):
    """Normalize an angle in degrees to [0, 360)."""
    a = float(angle) % 360.0
    if a < 0.0:
        a += 360.0
    # -1e-17 % 360 rounds up to exactly 360.0
    if a >= 360.0:
        a -= 360.0
    return a


def direction_xy(angle_deg):
    """Unit vector (dx, dy) for a bearing in degrees (counter-clockwise from +X)."""
    r = math.radians(angle_deg)
    return (math.cos(r), math.sin(r))


def add(a, b):
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a, b):
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale(a, s):
    return (a[0] * s, a[1] * s, a[2] * s)


def dot(a, b):
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a, b):
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def norm(a):
    return math.sqrt(dot(a, a))


def distance(a, b):
    return norm(sub(a, b))


def distance_xy(a, b):
    return math.hypot(a[0] - b[0], a[1] - b[1])


def as_point3(p):
    """Coerce (x, y), (x, y, z) or an XYZ-like object to a float 3-tuple."""
    if hasattr(p, "X") and hasattr(p, "Y"):
        return (float(p.X), float(p.Y), float(getattr(p, "Z", 0.0)))
    if len(p) == 2:
        return (float(p[0]), float(p[1]), 0.0)
    return (float(p[0]), float(p[1]), float(p[2]))


def is_finite_point(p):
    try:
        return all(math.isfinite(float(c)) for c in p)
    except (TypeError, ValueError):
        return False


class Transform3:
    """Affine 3D transform: origin plus three basis vectors (columns).

    ``T.of_point(p) = origin + p.x * basis_x + p.y * basis_y + p.z * basis_z``

    ``A.multiply(B)`` is the composition that applies B first, then A. When
    walking nested geometry from the outside in, the accumulated transform is
    ``outer.multiply(inner)``.

    Example:
        >>> t = Transform3.translation((1.0, 0.0, 0.0))
        >>> r = Transform3.rotation_z(90.0)
        >>> t.multiply(r).of_point((1.0, 0.0, 0.0))
        (1.0, 1.0, 0.0)
    """

    __slots__ = ("origin", "basis_x", "basis_y", "basis_z")

    def __init__(self, origin, basis_x, basis_y, basis_z):
        self.origin = as_point3(origin)
        self.basis_x = as_point3(basis_x)
        self.basis_y = as_point3(basis_y)
        self.basis_z = as_point3(basis_z)

    @classmethod
    def identity(cls):
        return cls((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))

    @classmethod
    def translation(cls, offset):
        return cls(offset, (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))

    @classmethod
    def rotation_z(cls, angle_deg, origin=(0.0, 0.0, 0.0)):
        c = math.cos(math.radians(angle_deg))
        s = math.sin(math.radians(angle_deg))
        # Snap tiny residues so right-angle rotations stay exact in tests
        c = 0.0 if abs(c) < 1e-15 else c
        s = 0.0 if abs(s) < 1e-15 else s
        return cls(origin, (c, s, 0.0), (-s, c, 0.0), (0.0, 0.0, 1.0))

    @classmethod
    def from_revit(cls, t):
        """Build from a Revit DB.Transform-like object (Origin/BasisX/BasisY/BasisZ)."""
        if t is None:
            return cls.identity()
        return cls(t.Origin, t.BasisX, t.BasisY, t.BasisZ)

    def of_vector(self, v):
        x, y, z = as_point3(v)
        bx, by, bz = self.basis_x, self.basis_y, self.basis_z
        return (
            x * bx[0] + y * by[0] + z * bz[0],
            x * bx[1] + y * by[1] + z * bz[1],
            x * bx[2] + y * by[2] + z * bz[2],
        )

    def of_point(self, p):
        return add(self.origin, self.of_vector(p))

    def multiply(self, inner):
        """Return self ∘ inner (inner applied first)."""
        return Transform3(
            self.of_point(inner.origin),
            self.of_vector(inner.basis_x),
            self.of_vector(inner.basis_y),
            self.of_vector(inner.basis_z),
        )

    def is_identity(self, tol=1e-12):
        ident = Transform3.identity()
        for a, b in (
            (self.origin, ident.origin),
            (self.basis_x, ident.basis_x),
            (self.basis_y, ident.basis_y),
            (self.basis_z, ident.basis_z),
        ):
            if distance(a, b) > tol:
                return False
        return True

    def __repr__(self):
        return "Transform3(origin={0}, x={1}, y={2}, z={3})".format(
            self.origin, self.basis_x, self.basis_y, self.basis_z
        )


class Plane:
    """Projection plane given by an origin and a normal.

    Raises:
        ValueError: if the normal has zero length or is not finite.

    Example:
        >>> pl = Plane((0.0, 0.0, 3.0), (0.0, 0.0, 2.0))
        >>> pl.project_point((1.0, 2.0, 7.5))
        (1.0, 2.0, 3.0)
    """

    __slots__ = ("origin", "normal")

    def __init__(self, origin, normal):
        self.origin = as_point3(origin)
        n = as_point3(normal)
        length = norm(n)
        if not math.isfinite(length) or length < 1e-12:
            raise ValueError("plane normal must be a non-zero finite vector")
        self.normal = scale(n, 1.0 / length)

    @classmethod
    def horizontal(cls, z=0.0):
        return cls((0.0, 0.0, float(z)), (0.0, 0.0, 1.0))

    def signed_distance(self, p):
        return dot(sub(as_point3(p), self.origin), self.normal)

    def project_point(self, p):
        p = as_point3(p)
        d = self.signed_distance(p)
        return sub(p, scale(self.normal, d))

    def is_horizontal(self, tol=1e-9):
        return abs(abs(self.normal[2]) - 1.0) <= tol

    def __repr__(self):
        return "Plane(origin={0}, normal={1})".format(self.origin, self.normal)
