"""
FOV boundary synthesis with the retry ladder and polygon fallback.

    for (resolution, jittered) in cfg.retry_tiers():
        cast rays -> simplify runs -> validate       first valid loop wins
    polygon through the raw requested-resolution samples
    NoValidBoundary naming the last error

Tier failures (SynthesisRetryableFailure, or any unexpected exception from a
custom simplifier) are recorded and never surface on their own.
"""

from ..config import Config
from .boundary import fallback_polygon
from .camera import CameraProfile
from .errors import NoValidBoundary, SynthesisRetryableFailure
from .raycast import cast_rays
from .simplify import LoopSimplifier

PHASE = "synthesize"


def _describe(exc):
    return "{0}: {1}".format(type(exc).__name__, exc)


def _record_tier_failure(diag, camera, resolution, jittered, reason):
    if diag is None:
        return
    diag.debug(
        phase=PHASE,
        callsite="synthesize.tier",
        message="Boundary attempt failed",
        camera_id=camera.camera_id,
        extra={"resolution_deg": resolution, "jittered": jittered, "reason": reason},
    )


def synthesize_attempt(camera, samples, simplifier, tolerance, check_simple=True,
                       arc_step_deg=10.0, jittered=False):
    """One tier: merge runs of already-cast samples, then validate.

    Raises:
        SynthesisRetryableFailure
    """
    loop = simplifier.simplify(
        samples, camera.position, resolution_deg=camera.angular_resolution_deg, jittered=jittered
    )
    loop.validate(tol=tolerance, check_simple=check_simple, arc_step_deg=arc_step_deg)
    return loop


def synthesize(camera, obstacles, cfg=None, diag=None, simplifier=None):
    """Build the visible-area BoundaryLoop for one camera.

    Args:
        camera: CameraProfile; its angular_resolution_deg is the requested tier
        obstacles: iterable of ObstacleCurve (read-only)
        cfg: Config (ladder, jitter, tolerances); defaults to Config() with the
            camera's resolution as the requested one
        diag: optional Diagnostics
        simplifier: optional LoopSimplifier replacement

    Returns:
        BoundaryLoop (strategy "merged" or "polygon")

    Raises:
        DegenerateCamera: invalid camera input, before any ray is cast
        NoValidBoundary: every tier and the polygon fallback failed
    """
    if not isinstance(camera, CameraProfile):
        raise TypeError("camera must be a CameraProfile")
    camera.validate()

    requested = min(camera.angular_resolution_deg, 90.0)
    if cfg is None:
        cfg = Config(angular_resolution_deg=requested)
    elif abs(cfg.angular_resolution_deg - requested) > 1e-12:
        cfg = cfg.with_overrides(angular_resolution_deg=requested)

    tol = cfg.short_curve_tolerance_ft
    if simplifier is None:
        simplifier = LoopSimplifier(tolerance=tol, max_arc_radius=cfg.max_arc_radius_ft)

    obstacles = list(obstacles)
    attempts = []
    last_error = None
    first_samples = None

    for resolution, jittered in cfg.retry_tiers():
        attempt_camera = camera.with_resolution(resolution)
        if jittered:
            attempt_camera = attempt_camera.jittered(cfg.jitter_offset_ft)
        try:
            samples = cast_rays(attempt_camera, obstacles)
            if first_samples is None:
                first_samples = samples
            loop = synthesize_attempt(
                attempt_camera,
                samples,
                simplifier,
                tol,
                check_simple=cfg.validate_simple_loop,
                arc_step_deg=cfg.arc_tessellation_deg,
                jittered=jittered,
            )
        except SynthesisRetryableFailure as e:
            last_error = e.reason
            attempts.append((resolution, jittered, e.reason))
            _record_tier_failure(diag, camera, resolution, jittered, e.reason)
            continue
        except Exception as e:
            last_error = _describe(e)
            attempts.append((resolution, jittered, last_error))
            _record_tier_failure(diag, camera, resolution, jittered, last_error)
            continue

        if diag is not None:
            diag.info(
                phase=PHASE,
                callsite="synthesize",
                message="Boundary built",
                camera_id=camera.camera_id,
                extra={
                    "strategy": loop.strategy,
                    "resolution_deg": resolution,
                    "jittered": jittered,
                    "curves": len(loop),
                    "failed_attempts": len(attempts),
                },
            )
        return loop

    # Every merged tier failed: jagged polygon through the requested-resolution samples.
    try:
        if first_samples is None:
            first_samples = cast_rays(camera, obstacles)
        loop = fallback_polygon(
            [s.point for s in first_samples],
            tol=tol,
            resolution_deg=camera.angular_resolution_deg,
        )
        loop.validate(tol=tol, check_simple=False)
    except SynthesisRetryableFailure as e:
        last_error = e.reason
        attempts.append((camera.angular_resolution_deg, False, "polygon: " + e.reason))
    else:
        if diag is not None:
            diag.warn(
                phase=PHASE,
                callsite="synthesize.fallback",
                message="Using polygon fallback boundary",
                camera_id=camera.camera_id,
                extra={"last_error": last_error, "failed_attempts": len(attempts), "curves": len(loop)},
            )
        return loop

    if diag is not None:
        diag.error(
            phase=PHASE,
            callsite="synthesize",
            message="No valid boundary",
            camera_id=camera.camera_id,
            extra={"last_error": last_error, "attempts": len(attempts)},
        )
    raise NoValidBoundary("could not build a valid boundary", last_error=last_error,
                          attempts=attempts)
