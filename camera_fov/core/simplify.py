"""
Loop simplification: ordered ray samples -> minimal closed curve loop.

Runs of consecutive samples are merged:

    run                               reconstruction
    --------------------------------  ----------------------------------------
    MAX_RANGE x >= 2                  arc about the camera (increasing angle)
    OBSTACLE_HIT(same obstacle) x>=2  arc obstacle with interior mid sample:
                                      three-point arc; otherwise a line
    any other consecutive pair        line

Each reconstruction returns a tagged Reconstruction (ARC, LINE, SKIP or
FAILED). The decision table below picks the fallback for each tag; nothing
relies on exception unwinding.

    requested  result   action
    ---------  -------  ------------------------------------------------
    arc        ARC      append
    arc        FAILED   retry as line
    line       LINE     append
    line       FAILED   SynthesisRetryableFailure (tier fails)
    any        SKIP     run collapses to a shared vertex; nothing appended
"""

import math

from .boundary import STRATEGY_MERGED, BoundaryLoop
from .curves import Arc, Line
from .errors import SynthesisRetryableFailure
from .math_utils import SHORT_CURVE_TOLERANCE_FT, distance, distance_xy
from .raycast import KIND_MAX_RANGE, FOVSamplePoint

SHAPE_ARC = "arc"
SHAPE_LINE = "line"
SHAPE_SKIP = "skip"
SHAPE_FAILED = "failed"

RUN_MAX_RANGE = "max_range"
RUN_OBSTACLE = "obstacle"
RUN_STEP = "step"


class Reconstruction(object):
    """Tagged outcome of rebuilding one run."""

    __slots__ = ("shape", "curves", "reason")

    def __init__(self, shape, curves=None, reason=None):
        self.shape = shape
        self.curves = list(curves or [])
        self.reason = reason

    @classmethod
    def arc(cls, *curves):
        return cls(SHAPE_ARC, curves)

    @classmethod
    def line(cls, curve):
        return cls(SHAPE_LINE, [curve])

    @classmethod
    def skip(cls, reason=None):
        return cls(SHAPE_SKIP, reason=reason)

    @classmethod
    def failed(cls, reason):
        return cls(SHAPE_FAILED, reason=reason)

    @property
    def ok(self):
        return self.shape in (SHAPE_ARC, SHAPE_LINE, SHAPE_SKIP)

    def __repr__(self):
        return "Reconstruction({0}, curves={1}, reason={2!r})".format(
            self.shape, len(self.curves), self.reason
        )


class LoopSimplifier(object):
    """Builds a BoundaryLoop from FOVSamplePoints.

    Subclass and override ``make_arc_about`` / ``make_three_point_arc`` /
    ``make_line`` to change (or sabotage, in tests) reconstruction.
    """

    def __init__(self, tolerance=SHORT_CURVE_TOLERANCE_FT, max_arc_radius=1.0e6):
        self.tolerance = float(tolerance)
        self.max_arc_radius = float(max_arc_radius)

    # ------------------------------------------------------------------
    # Primitive builders

    def make_line(self, a, b):
        if distance(a, b) <= self.tolerance:
            return Reconstruction.failed("line shorter than tolerance")
        return Reconstruction.line(Line(a, b))

    def _arc_about(self, center, a, b):
        cx, cy = center[0], center[1]
        r = distance_xy(a, center)
        a0 = math.atan2(a[1] - cy, a[0] - cx)
        a1 = math.atan2(b[1] - cy, b[0] - cx)
        if a1 < a0:
            a1 += 2.0 * math.pi
        if a1 - a0 <= 1e-12:
            raise ValueError("arc has zero sweep")
        am = 0.5 * (a0 + a1)
        mid = (cx + r * math.cos(am), cy + r * math.sin(am), a[2])
        return Arc(a, b, mid)

    def make_arc_about(self, center, points):
        """Counter-clockwise arc(s) about the camera through a max-range run.

        A run whose ends coincide sweeps the whole circle; it is split into
        three arcs at a third and two thirds of the run.
        """
        a, b = points[0], points[-1]
        try:
            if distance(a, b) <= self.tolerance:
                n = len(points) - 1
                if n < 3:
                    return Reconstruction.skip("max-range run collapses to one vertex")
                i1 = n // 3
                i2 = (2 * n) // 3
                cuts = [points[0], points[i1], points[i2], points[-1]]
                arcs = [self._arc_about(center, cuts[k], cuts[k + 1]) for k in range(3)]
                return Reconstruction.arc(*arcs)
            arc = self._arc_about(center, a, b)
        except ValueError as e:
            return Reconstruction.failed("arc about camera: {0}".format(e))
        if arc.radius > self.max_arc_radius:
            return Reconstruction.failed("arc radius too large")
        return Reconstruction.arc(arc)

    def make_three_point_arc(self, a, b, mid):
        try:
            arc = Arc.through_points(a, b, mid)
        except ValueError as e:
            return Reconstruction.failed("three-point arc: {0}".format(e))
        if arc.radius > self.max_arc_radius:
            return Reconstruction.failed("three-point arc radius too large")
        return Reconstruction.arc(arc)

    # ------------------------------------------------------------------
    # Runs

    def reconstruct_run(self, run_kind, samples, center):
        """Rebuild one run; applies the decision table.

        Raises:
            SynthesisRetryableFailure when even the straight line fails.
        """
        pts = [s.point for s in samples]
        start, end = pts[0], pts[-1]

        if run_kind == RUN_MAX_RANGE:
            result = self.make_arc_about(center, pts)
        elif run_kind == RUN_OBSTACLE:
            if distance(start, end) <= self.tolerance:
                result = Reconstruction.skip("obstacle run collapses to one vertex")
            else:
                result = None
                obstacle = samples[0].obstacle
                mid_index = (len(samples) - 1) // 2
                if obstacle is not None and obstacle.is_arc and 0 < mid_index < len(samples) - 1:
                    result = self.make_three_point_arc(start, end, pts[mid_index])
                if result is None or result.shape == SHAPE_FAILED:
                    result = self.make_line(start, end)
        else:
            if distance(start, end) <= self.tolerance:
                result = Reconstruction.skip("step shorter than tolerance")
            else:
                result = self.make_line(start, end)

        if result.shape == SHAPE_FAILED and run_kind == RUN_MAX_RANGE:
            result = self.make_line(start, end)
        if result.shape == SHAPE_FAILED:
            raise SynthesisRetryableFailure(result.reason or "reconstruction failed")
        return result

    # ------------------------------------------------------------------

    def prepare(self, samples):
        """Collapse near-duplicates and close the sequence.

        Raises:
            SynthesisRetryableFailure when fewer than 3 points survive.
        """
        points = []
        for s in samples:
            if not points or distance(s.point, points[-1].point) > self.tolerance:
                points.append(s)
        if len(points) < 3:
            raise SynthesisRetryableFailure(
                "fewer than 3 distinct sample points ({0})".format(len(points))
            )

        first = points[0]
        if distance(first.point, points[-1].point) > self.tolerance:
            points.append(first)
        else:
            last = points[-1]
            points[-1] = FOVSamplePoint(first.point, last.kind, last.obstacle, last.angle_deg)
        return points

    def runs(self, points):
        """Yield (run_kind, samples) covering consecutive point pairs."""
        n = len(points)
        i = 0
        while i < n - 1:
            cur = points[i]
            j = i + 1
            if cur.kind == KIND_MAX_RANGE and points[j].kind == KIND_MAX_RANGE:
                while j + 1 < n and points[j + 1].kind == KIND_MAX_RANGE:
                    j += 1
                yield RUN_MAX_RANGE, points[i:j + 1]
            elif cur.same_obstacle(points[j]):
                while j + 1 < n and cur.same_obstacle(points[j + 1]):
                    j += 1
                yield RUN_OBSTACLE, points[i:j + 1]
            else:
                yield RUN_STEP, points[i:j + 1]
            i = j

    def simplify(self, samples, center, resolution_deg=None, jittered=False):
        """Return an (unvalidated) merged BoundaryLoop."""
        try:
            points = self.prepare(samples)
            curves = []
            for run_kind, run in self.runs(points):
                result = self.reconstruct_run(run_kind, run, center)
                curves.extend(result.curves)
        except SynthesisRetryableFailure as e:
            e.resolution_deg = resolution_deg
            e.jittered = jittered
            raise
        return BoundaryLoop(curves, strategy=STRATEGY_MERGED, resolution_deg=resolution_deg,
                            jittered=jittered)
