"""
BoundaryLoop: the closed curve loop handed to the region host.

Validation covers closure, continuity, primitive count, zero-length
primitives and (optionally) self-intersection. Failures raise
SynthesisRetryableFailure so the retry ladder can move on.
"""

from .curves import Line
from .errors import SynthesisRetryableFailure
from .math_utils import SHORT_CURVE_TOLERANCE_FT, distance

STRATEGY_MERGED = "merged"
STRATEGY_POLYGON = "polygon"


class BoundaryLoop(object):
    """Ordered closed sequence of Line/Arc primitives.

    Attributes:
        curves: list of curves; curve[k].end meets curve[k+1].start
        strategy: "merged" (run-merged arcs/lines) or "polygon" (raw samples)
        resolution_deg: angular resolution the loop was built at
        jittered: True when built from the jittered camera position
    """

    __slots__ = ("curves", "strategy", "resolution_deg", "jittered")

    def __init__(self, curves, strategy=STRATEGY_MERGED, resolution_deg=None, jittered=False):
        self.curves = list(curves)
        self.strategy = strategy
        self.resolution_deg = resolution_deg
        self.jittered = bool(jittered)

    def __len__(self):
        return len(self.curves)

    def __iter__(self):
        return iter(self.curves)

    def vertices(self):
        """Start vertex of every primitive (the loop is implicitly closed)."""
        return [c.start for c in self.curves]

    def is_closed(self, tol=SHORT_CURVE_TOLERANCE_FT):
        if not self.curves:
            return False
        return distance(self.curves[-1].end, self.curves[0].start) <= tol

    def kinds(self):
        return [c.kind for c in self.curves]

    def flattened(self, z):
        """Same loop with every primitive moved to elevation z (XY unchanged)."""
        return BoundaryLoop(
            [c.flattened(z) for c in self.curves],
            strategy=self.strategy,
            resolution_deg=self.resolution_deg,
            jittered=self.jittered,
        )

    def validate(self, tol=SHORT_CURVE_TOLERANCE_FT, check_simple=False, arc_step_deg=10.0):
        """Raise SynthesisRetryableFailure if the loop is not a usable boundary."""
        if len(self.curves) < 3:
            raise SynthesisRetryableFailure(
                "loop has {0} primitives; need at least 3".format(len(self.curves)),
                self.resolution_deg, self.jittered,
            )
        for k, c in enumerate(self.curves):
            if c.length <= tol:
                raise SynthesisRetryableFailure(
                    "primitive {0} is shorter than tolerance".format(k),
                    self.resolution_deg, self.jittered,
                )
            nxt = self.curves[(k + 1) % len(self.curves)]
            if distance(c.end, nxt.start) > tol:
                reason = "loop is open" if k == len(self.curves) - 1 else (
                    "gap between primitive {0} and {1}".format(k, k + 1)
                )
                raise SynthesisRetryableFailure(reason, self.resolution_deg, self.jittered)

        distinct = []
        for v in self.vertices():
            if all(distance(v, d) > tol for d in distinct):
                distinct.append(v)
                if len(distinct) >= 3:
                    break
        if len(distinct) < 3:
            raise SynthesisRetryableFailure(
                "loop has fewer than 3 distinct vertices", self.resolution_deg, self.jittered
            )

        if check_simple and not is_simple_loop(self.curves, arc_step_deg):
            raise SynthesisRetryableFailure(
                "loop is self-intersecting", self.resolution_deg, self.jittered
            )
        return self

    def to_dict(self):
        out = []
        for c in self.curves:
            item = {"kind": c.kind, "start": list(c.start), "end": list(c.end)}
            if c.kind == "arc":
                item["mid"] = list(c.mid)
                item["center"] = list(c.center)
                item["radius"] = c.radius
            out.append(item)
        return {
            "strategy": self.strategy,
            "resolution_deg": self.resolution_deg,
            "jittered": self.jittered,
            "curves": out,
        }

    def __repr__(self):
        return "BoundaryLoop({0} curves, strategy={1}, res={2}, jittered={3})".format(
            len(self.curves), self.strategy, self.resolution_deg, self.jittered
        )


def _orient(a, b, c):
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def segments_cross(p1, p2, q1, q2, eps=1e-9):
    """True when two XY segments cross or overlap (touching at an end does not count)."""
    d1 = _orient(q1, q2, p1)
    d2 = _orient(q1, q2, p2)
    d3 = _orient(p1, p2, q1)
    d4 = _orient(p1, p2, q2)

    if ((d1 > eps and d2 < -eps) or (d1 < -eps and d2 > eps)) and (
        (d3 > eps and d4 < -eps) or (d3 < -eps and d4 > eps)
    ):
        return True

    # Collinear overlap
    if abs(d1) <= eps and abs(d2) <= eps and abs(d3) <= eps and abs(d4) <= eps:
        ax = abs(p2[0] - p1[0]) >= abs(p2[1] - p1[1])
        i = 0 if ax else 1
        lo1, hi1 = sorted((p1[i], p2[i]))
        lo2, hi2 = sorted((q1[i], q2[i]))
        return min(hi1, hi2) - max(lo1, lo2) > eps
    return False


def is_simple_loop(curves, arc_step_deg=10.0):
    """Check a closed loop for self-intersection in XY.

    Arcs are tessellated; segments are swept by min-x so only bounding-box
    neighbours are compared. Consecutive segments (including last/first) may
    share their common vertex.
    """
    pts = []
    for c in curves:
        seq = c.tessellate(arc_step_deg)
        if pts:
            seq = seq[1:]
        pts.extend(seq)
    if len(pts) < 4:
        return True
    if distance(pts[0], pts[-1]) <= SHORT_CURVE_TOLERANCE_FT:
        pts = pts[:-1]

    n = len(pts)
    segs = []
    for k in range(n):
        a = pts[k]
        b = pts[(k + 1) % n]
        segs.append((min(a[0], b[0]), max(a[0], b[0]), min(a[1], b[1]), max(a[1], b[1]), k, a, b))
    segs.sort(key=lambda s: s[0])

    for ia in range(len(segs)):
        xmin_a, xmax_a, ymin_a, ymax_a, ka, a1, a2 = segs[ia]
        for ib in range(ia + 1, len(segs)):
            xmin_b, _, ymin_b, ymax_b, kb, b1, b2 = segs[ib]
            if xmin_b > xmax_a:
                break
            if ymin_b > ymax_a or ymax_b < ymin_a:
                continue
            gap = abs(ka - kb)
            if gap == 1 or gap == n - 1:
                # Neighbours: only a collinear fold-back counts
                if segments_cross(a1, a2, b1, b2) and _folds_back(a1, a2, b1, b2):
                    return False
                continue
            if segments_cross(a1, a2, b1, b2):
                return False
    return True


def _folds_back(a1, a2, b1, b2):
    va = (a2[0] - a1[0], a2[1] - a1[1])
    vb = (b2[0] - b1[0], b2[1] - b1[1])
    return va[0] * vb[0] + va[1] * vb[1] < 0


def dedupe_points(points, tol=SHORT_CURVE_TOLERANCE_FT):
    """Drop points within tol of the previously kept point."""
    out = []
    for p in points:
        if not out or distance(p, out[-1]) > tol:
            out.append(p)
    return out


def fallback_polygon(points, tol=SHORT_CURVE_TOLERANCE_FT, resolution_deg=None, jittered=False):
    """Point-to-point polygon through raw samples with near-duplicates collapsed.

    Raises:
        SynthesisRetryableFailure when fewer than 3 distinct points remain.
    """
    pts = dedupe_points(points, tol)
    if len(pts) >= 2 and distance(pts[0], pts[-1]) <= tol:
        pts = pts[:-1]
    if len(pts) < 3:
        raise SynthesisRetryableFailure(
            "fewer than 3 distinct sample points ({0})".format(len(pts)), resolution_deg, jittered
        )
    pts.append(pts[0])
    curves = [Line(pts[k], pts[k + 1]) for k in range(len(pts) - 1)]
    return BoundaryLoop(curves, strategy=STRATEGY_POLYGON, resolution_deg=resolution_deg,
                        jittered=jittered)
