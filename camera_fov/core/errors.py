"""
Error taxonomy for obstacle extraction and FOV synthesis.

- GeometryExtractionWarning: one skipped primitive (recorded, never raised)
- SynthesisRetryableFailure: one tier failed; the retry ladder continues
- SynthesisError: terminal, surfaced to the caller
    - NoValidBoundary: every tier and the polygon fallback failed
    - DegenerateCamera: invalid camera input, no retry
"""


class GeometryExtractionWarning(object):
    """Record of a primitive skipped during extraction."""

    __slots__ = ("reason", "source_id", "detail")

    def __init__(self, reason, source_id=None, detail=None):
        self.reason = reason
        self.source_id = source_id
        self.detail = detail

    def to_dict(self):
        return {
            "reason": self.reason,
            "source_id": self.source_id,
            "detail": self.detail,
        }

    def __repr__(self):
        return "GeometryExtractionWarning({0!r}, source_id={1!r})".format(
            self.reason, self.source_id
        )


class SynthesisRetryableFailure(Exception):
    """Boundary construction failed for one resolution/jitter tier."""

    def __init__(self, reason, resolution_deg=None, jittered=False):
        super().__init__(reason)
        self.reason = reason
        self.resolution_deg = resolution_deg
        self.jittered = jittered


class SynthesisError(Exception):
    """Terminal synthesis failure."""


class NoValidBoundary(SynthesisError):
    """All tiers and the polygon fallback failed.

    ``last_error`` names the last failure seen across the ladder; ``attempts``
    lists ``(resolution_deg, jittered, reason)`` per tier tried.
    """

    def __init__(self, message, last_error=None, attempts=None):
        if last_error is not None:
            message = "{0} (last error: {1})".format(message, last_error)
        super().__init__(message)
        self.last_error = last_error
        self.attempts = list(attempts or [])


class DegenerateCamera(SynthesisError):
    """Camera position, range, resolution or FOV angle is invalid."""
