# tests/test_simplify.py

import math

import pytest

from camera_fov.core.camera import CameraProfile
from camera_fov.core.curves import Arc, Line
from camera_fov.core.errors import SynthesisRetryableFailure
from camera_fov.core.extraction import ObstacleCurve
from camera_fov.core.raycast import KIND_MAX_RANGE, FOVSamplePoint, cast_rays
from camera_fov.core.simplify import (
    RUN_MAX_RANGE,
    RUN_OBSTACLE,
    RUN_STEP,
    SHAPE_ARC,
    LoopSimplifier,
    Reconstruction,
)


def _simplify(cam, obstacles, simplifier=None):
    simplifier = simplifier or LoopSimplifier()
    samples = cast_rays(cam, obstacles)
    return simplifier.simplify(samples, cam.position, resolution_deg=cam.angular_resolution_deg)


def test_hits_on_one_wall_merge_into_one_line():
    wall = ObstacleCurve(Line((-10.0, 5.0, 0.0), (10.0, 5.0, 0.0)))
    cam = CameraProfile((0, 0, 0), 90.0, 20.0, 100.0, 10.0)
    loop = _simplify(cam, [wall])
    assert loop.kinds() == ["line", "line", "line"]
    middle = loop.curves[1]
    assert middle.start[1] == pytest.approx(5.0)
    assert middle.end[1] == pytest.approx(5.0)
    assert loop.is_closed()
    loop.validate(check_simple=True)


def test_unobstructed_cone_is_a_pie():
    cam = CameraProfile((0, 0, 0), 90.0, 45.0, 10.0, 10.0)
    loop = _simplify(cam, [])
    assert loop.kinds() == ["line", "arc", "line"]
    arc = loop.curves[1]
    assert arc.radius == pytest.approx(10.0)
    assert math.degrees(arc.sweep) == pytest.approx(90.0)
    assert arc.center == pytest.approx((0.0, 0.0, 0.0))
    loop.validate(check_simple=True)


def test_unobstructed_full_circle_is_three_arcs():
    cam = CameraProfile((0, 0, 0), 0.0, 180.0, 10.0, 30.0)
    loop = _simplify(cam, [])
    assert loop.kinds() == ["arc", "arc", "arc"]
    assert sum(math.degrees(a.sweep) for a in loop.curves) == pytest.approx(360.0)
    loop.validate(check_simple=True)


def test_hits_on_arc_obstacle_rebuild_a_three_point_arc():
    arc = ObstacleCurve(Arc.from_center((0, 0, 0), 5.0, math.radians(60), math.radians(120)))
    cam = CameraProfile((0, 0, 0), 90.0, 20.0, 100.0, 10.0)
    loop = _simplify(cam, [arc])
    assert loop.kinds() == ["line", "arc", "line"]
    assert loop.curves[1].radius == pytest.approx(5.0)


def test_runs_cover_every_consecutive_pair():
    wall = ObstacleCurve(Line((-10.0, 5.0, 0.0), (10.0, 5.0, 0.0)))
    cam = CameraProfile((0, 0, 0), 90.0, 20.0, 100.0, 10.0)
    simplifier = LoopSimplifier()
    points = simplifier.prepare(cast_rays(cam, [wall]))
    runs = list(simplifier.runs(points))
    assert [kind for kind, _ in runs] == [RUN_STEP, RUN_OBSTACLE, RUN_STEP]
    assert sum(len(r) - 1 for _, r in runs) == len(points) - 1


def test_prepare_closes_sequence():
    cam = CameraProfile((0, 0, 0), 90.0, 20.0, 10.0, 10.0)
    points = LoopSimplifier().prepare(cast_rays(cam, []))
    assert points[0].point == points[-1].point


def test_prepare_rejects_collapsed_samples():
    p = (1.0, 1.0, 0.0)
    samples = [FOVSamplePoint(p, KIND_MAX_RANGE), FOVSamplePoint((1.0, 1.001, 0.0), KIND_MAX_RANGE)]
    with pytest.raises(SynthesisRetryableFailure):
        LoopSimplifier().prepare(samples)


class _NoArcs(LoopSimplifier):
    def make_arc_about(self, center, points):
        return Reconstruction.failed("arcs disabled")


class _NoLines(LoopSimplifier):
    def make_line(self, a, b):
        return Reconstruction.failed("lines disabled")


def test_failed_arc_about_camera_falls_back_to_line():
    cam = CameraProfile((0, 0, 0), 90.0, 45.0, 10.0, 10.0)
    loop = _simplify(cam, [], simplifier=_NoArcs())
    assert loop.kinds() == ["line", "line", "line"]


def test_failed_line_raises_retryable_with_tier_info():
    cam = CameraProfile((0, 0, 0), 90.0, 45.0, 10.0, 10.0)
    samples = cast_rays(cam, [])
    with pytest.raises(SynthesisRetryableFailure) as excinfo:
        _NoLines().simplify(samples, cam.position, resolution_deg=10.0, jittered=True)
    assert excinfo.value.resolution_deg == 10.0
    assert excinfo.value.jittered is True


def test_reconstruction_tags():
    assert Reconstruction.skip().ok
    assert not Reconstruction.failed("x").ok
    assert Reconstruction.arc().shape == SHAPE_ARC


def test_short_max_range_run_reconstructs_as_arc():
    simplifier = LoopSimplifier()
    a = FOVSamplePoint((10.0, 0.0, 0.0), KIND_MAX_RANGE)
    b = FOVSamplePoint((0.0, 10.0, 0.0), KIND_MAX_RANGE)
    result = simplifier.reconstruct_run(RUN_MAX_RANGE, [a, b], (0.0, 0.0, 0.0))
    assert result.shape == SHAPE_ARC
    assert result.curves[0].evaluate_mid() == pytest.approx(
        (10.0 * math.cos(math.pi / 4), 10.0 * math.sin(math.pi / 4), 0.0)
    )
